# Process-wide worker state reported by the control surface
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from vote_worker.data_models.vote_results import CycleSummary


class WorkerState(BaseModel):
    """Mutable worker state. Only the cycle supervisor writes it."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)

    is_running: bool = False
    cycle_in_progress: bool = False
    started_at: Optional[datetime] = None
    last_cycle_summary: Optional[CycleSummary] = None
    last_cycle_at: Optional[datetime] = None
    last_cycle_error: Optional[str] = None
    total_cycles_run: int = 0
    total_votes_executed: int = 0
    total_votes_failed: int = 0
    next_cycle_at: Optional[datetime] = None
    interval_ms: int = 0
