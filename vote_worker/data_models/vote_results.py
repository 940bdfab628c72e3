# Decision results and cycle summaries for the autonomous vote worker
from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from vote_worker.data_models.governance_schemas import VoteDirection


class SkipReason(str, Enum):
    """Machine-readable reasons a pair was deliberately not voted"""
    AGENT_MISSING_SIGNING_WALLET = "agent_missing_signing_wallet"
    PROPOSAL_NOT_VOTING = "proposal_not_voting"
    ALREADY_VOTED = "already_voted"
    AUTO_VOTE_DISABLED = "auto_vote_disabled"
    BELOW_CONFIDENCE_THRESHOLD = "below_confidence_threshold"


class _DecisionBase(BaseModel):
    agent_id: str
    proposal_address: str
    vote: Optional[VoteDirection] = None
    confidence: Optional[float] = None
    reasoning: Optional[str] = None
    tx_signature: Optional[str] = None
    social_post_id: Optional[str] = None

    @property
    def executed(self) -> bool:
        return False

    @property
    def skipped(self) -> bool:
        return False


class VoteExecuted(_DecisionBase):
    """On-chain vote submitted and recorded"""
    kind: Literal["executed"] = "executed"
    vote: VoteDirection
    confidence: float
    reasoning: str
    tx_signature: Optional[str] = None

    @property
    def executed(self) -> bool:
        return True


class VoteSkipped(_DecisionBase):
    """Policy decision not to vote; never an error"""
    kind: Literal["skipped"] = "skipped"
    skip_reason: SkipReason

    @property
    def skipped(self) -> bool:
        return True


class VotePreview(_DecisionBase):
    """Dry-run: what would have been submitted; nothing persisted"""
    kind: Literal["preview"] = "preview"
    vote: VoteDirection
    confidence: float
    reasoning: str


class VoteSubmissionFailed(_DecisionBase):
    """Vote attempted but the transaction build or signing call failed"""
    kind: Literal["submission_failed"] = "submission_failed"
    vote: VoteDirection
    confidence: float
    reasoning: str
    error: str = ""


DecisionResult = Union[VoteExecuted, VoteSkipped, VotePreview, VoteSubmissionFailed]


class PairFailed(BaseModel):
    """Unexpected exception caught at the pair boundary by the orchestrator"""
    kind: Literal["pair_failed"] = "pair_failed"
    agent_id: str
    proposal_address: str
    reason: str

    @property
    def executed(self) -> bool:
        return False

    @property
    def skipped(self) -> bool:
        return False


PairResult = Union[VoteExecuted, VoteSkipped, VotePreview, VoteSubmissionFailed, PairFailed]


class CycleSummary(BaseModel):
    """Outcome of one orchestrator pass. Never persisted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    started_at: datetime
    finished_at: datetime
    agents_scanned: int = 0
    agents_eligible: int = 0
    active_proposals: int = 0
    combinations_considered: int = 0
    executed: int = 0
    skipped: int = 0
    failed: int = 0
