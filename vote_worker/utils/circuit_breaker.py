"""
Circuit Breaker Pattern Implementation

Fails fast on calls to a best-effort collaborator (the social service) once it
has failed repeatedly, and lets a few probe calls through after a cool-down.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Service is down, requests fail immediately
- HALF_OPEN: Testing if service has recovered
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(Exception):
    """Raised when the circuit is open and the call was rejected."""

    def __init__(self, message: str, retry_after: float = 0):
        super().__init__(message)
        self.retry_after = retry_after


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker behavior."""
    # Number of consecutive failures before opening circuit
    failure_threshold: int = 5
    # Seconds to wait before letting a probe call through
    recovery_timeout: float = 30.0
    # Number of successful probes before closing again
    success_threshold: int = 1
    name: str = "default"


@dataclass
class CircuitBreakerStats:
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    last_failure_time: Optional[float] = None
    consecutive_failures: int = 0
    consecutive_successes: int = 0


class CircuitBreaker:
    """
    Usage:
        breaker = CircuitBreaker(CircuitBreakerConfig(name="tapestry"))
        result = await breaker.call(client.post, payload)
    """

    def __init__(self, config: Optional[CircuitBreakerConfig] = None, clock: Callable[[], float] = time.monotonic):
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._stats = CircuitBreakerStats()
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def stats(self) -> CircuitBreakerStats:
        return self._stats

    def _should_allow_request(self) -> bool:
        if self._state == CircuitState.CLOSED:
            return True

        if self._state == CircuitState.OPEN:
            if self._stats.last_failure_time is not None:
                elapsed = self._clock() - self._stats.last_failure_time
                if elapsed >= self.config.recovery_timeout:
                    self._state = CircuitState.HALF_OPEN
                    logger.info(
                        f"[CircuitBreaker:{self.config.name}] Transitioning to HALF_OPEN "
                        f"after {elapsed:.1f}s"
                    )
                    return True
            return False

        return True

    def _on_success(self) -> None:
        self._stats.total_calls += 1
        self._stats.successful_calls += 1
        self._stats.consecutive_successes += 1
        self._stats.consecutive_failures = 0

        if self._state == CircuitState.HALF_OPEN:
            if self._stats.consecutive_successes >= self.config.success_threshold:
                self._state = CircuitState.CLOSED
                logger.info(f"[CircuitBreaker:{self.config.name}] Circuit CLOSED")

    def _on_failure(self, error: Exception) -> None:
        self._stats.total_calls += 1
        self._stats.failed_calls += 1
        self._stats.last_failure_time = self._clock()
        self._stats.consecutive_failures += 1
        self._stats.consecutive_successes = 0

        if self._state == CircuitState.HALF_OPEN:
            self._state = CircuitState.OPEN
            logger.warning(f"[CircuitBreaker:{self.config.name}] Circuit OPEN (recovery failed): {error}")
        elif self._state == CircuitState.CLOSED:
            if self._stats.consecutive_failures >= self.config.failure_threshold:
                self._state = CircuitState.OPEN
                logger.error(
                    f"[CircuitBreaker:{self.config.name}] Circuit OPEN after "
                    f"{self._stats.consecutive_failures} consecutive failures: {error}"
                )

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Await a coroutine function through the circuit breaker.

        Raises:
            CircuitBreakerOpenError: If circuit is open
            Original exception: If func fails
        """
        async with self._lock:
            if not self._should_allow_request():
                self._stats.rejected_calls += 1
                retry_after = self.config.recovery_timeout
                if self._stats.last_failure_time is not None:
                    elapsed = self._clock() - self._stats.last_failure_time
                    retry_after = max(0.0, self.config.recovery_timeout - elapsed)
                raise CircuitBreakerOpenError(
                    f"Circuit breaker '{self.config.name}' is OPEN. Service temporarily unavailable.",
                    retry_after=retry_after,
                )

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            async with self._lock:
                self._on_failure(e)
            raise

        async with self._lock:
            self._on_success()
        return result

    def reset(self) -> None:
        self._state = CircuitState.CLOSED
        self._stats = CircuitBreakerStats()
        logger.info(f"[CircuitBreaker:{self.config.name}] Reset to CLOSED")

    def get_status(self) -> Dict[str, Any]:
        """Current state and counters for monitoring."""
        return {
            "name": self.config.name,
            "state": self._state.value,
            "stats": {
                "total_calls": self._stats.total_calls,
                "successful_calls": self._stats.successful_calls,
                "failed_calls": self._stats.failed_calls,
                "rejected_calls": self._stats.rejected_calls,
                "consecutive_failures": self._stats.consecutive_failures,
            },
        }
