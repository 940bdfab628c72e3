"""
Custom exceptions for the vote worker.

Provides a hierarchy of exceptions with HTTP-like error codes so the control
surface can map failures to responses consistently. Policy skips and failed
on-chain submissions are NOT exceptions; they travel as decision results.
"""
from typing import Optional


class VoteWorkerError(Exception):
    """Base exception for all vote worker errors."""

    def __init__(
        self,
        message: str,
        code: int = 500,
        retryable: bool = True,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.retryable = retryable
        self.retry_after = retry_after


# ============================================
# Cycle control
# ============================================

class CycleInProgressError(VoteWorkerError):
    """409 Conflict - a cycle is already running.

    This is a "busy" signal, not a failure: callers may retry later.
    """

    def __init__(self, message: str = "Cycle already in progress"):
        super().__init__(message, code=409, retryable=True)


# ============================================
# Collaborator errors
# ============================================

class ConfigurationError(VoteWorkerError):
    """500 - a collaborator is missing required configuration."""

    def __init__(self, message: str = "Service is not configured"):
        super().__init__(message, code=500, retryable=False)


class RateLimitError(VoteWorkerError):
    """429 Too Many Requests - local or remote rate limit exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        retry_after: float = 60.0
    ):
        super().__init__(message, code=429, retryable=True, retry_after=retry_after)


class AnalysisError(VoteWorkerError):
    """502 - the AI analysis service returned an unusable response."""

    def __init__(self, message: str = "AI analysis failed"):
        super().__init__(message, code=502, retryable=True)


class SigningError(VoteWorkerError):
    """502 - the signing service rejected the transaction."""

    def __init__(self, message: str = "Transaction signing failed"):
        super().__init__(message, code=502, retryable=True)


class ServiceUnavailableError(VoteWorkerError):
    """503 Service Unavailable - a collaborator is temporarily down."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable. Please try again later.",
        retry_after: float = 30.0
    ):
        super().__init__(message, code=503, retryable=True, retry_after=retry_after)
