import os
import sys
import logging
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from vote_worker.config.common_settings import read_bool_env, read_int_env

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 30_000
DEFAULT_MAX_CONCURRENCY = 1
# Pause between pairs handled by the same worker (AI provider rate limit)
DEFAULT_THROTTLE_DELAY_MS = 3_000


class WorkerRuntimeConfig(BaseModel):
    """Runtime settings for the autonomous vote worker."""

    enabled: bool = True
    interval_ms: int = Field(default=DEFAULT_INTERVAL_MS, gt=0)
    max_concurrency: int = Field(default=DEFAULT_MAX_CONCURRENCY, ge=1)
    dry_run: bool = False
    run_once: bool = False
    throttle_delay_ms: Optional[int] = Field(default=None, ge=0)

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000

    @property
    def throttle_delay_seconds(self) -> float:
        if self.throttle_delay_ms is None:
            return DEFAULT_THROTTLE_DELAY_MS / 1000
        return self.throttle_delay_ms / 1000

    def public_view(self) -> dict:
        """Config block reported by the status endpoint."""
        return {
            "enabled": self.enabled,
            "intervalMs": self.interval_ms,
            "maxConcurrency": self.max_concurrency,
            "dryRun": self.dry_run,
        }


def _read_throttle_override() -> Optional[int]:
    # Zero is a valid override (tests), so read_int_env's positive-only rule does not apply
    raw = os.environ.get("AGENT_WORKER_THROTTLE_MS")
    if raw is None or raw.strip() == "":
        return None
    try:
        parsed = int(raw.strip(), 10)
    except ValueError:
        logger.warning(f"Ignoring invalid AGENT_WORKER_THROTTLE_MS={raw!r}")
        return None
    return parsed if parsed >= 0 else None


def get_worker_runtime_config(argv: Optional[Sequence[str]] = None) -> WorkerRuntimeConfig:
    """Build the runtime config from environment variables and CLI flags.

    Args:
        argv: Command-line arguments to inspect; defaults to sys.argv

    Returns:
        WorkerRuntimeConfig with defaults applied for unset or invalid values
    """
    args = list(sys.argv if argv is None else argv)

    return WorkerRuntimeConfig(
        enabled=read_bool_env("AGENT_WORKER_ENABLED", True),
        interval_ms=read_int_env("AGENT_WORKER_INTERVAL_MS", DEFAULT_INTERVAL_MS),
        max_concurrency=read_int_env("AGENT_WORKER_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY),
        dry_run="--dry-run" in args or read_bool_env("AGENT_WORKER_DRY_RUN", False),
        run_once="--once" in args,
        throttle_delay_ms=_read_throttle_override(),
    )
