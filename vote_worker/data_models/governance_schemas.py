# Records exchanged with the application database and the proposal source
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.65


class VoteDirection(str, Enum):
    """Vote direction as recorded in the vote outcome table"""
    FOR = "for"
    AGAINST = "against"
    ABSTAIN = "abstain"


class AgentRecord(BaseModel):
    """Voting agent row. Read-only to the worker."""
    id: int
    owner_wallet: str = ""
    name: str = ""
    values_profile: str = ""
    risk_tolerance: str = "moderate"
    is_active: bool = True
    config_json: str = "{}"
    signing_wallet_id: Optional[str] = None
    signing_wallet_address: Optional[str] = None

    @property
    def has_signing_wallet(self) -> bool:
        return bool(self.signing_wallet_id) and bool(self.signing_wallet_address)


class AgentAutonomyConfig(BaseModel):
    """Parsed view of an agent's configuration blob"""
    version: int = 1
    auto_vote: bool = False
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    values: List[str] = Field(default_factory=list)
    focus_areas: List[str] = Field(default_factory=list)
    # Delegator wallet address; the agent votes with this wallet's voting power
    delegator_address: Optional[str] = None


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    return [str(item) for item in value]


def parse_agent_config(raw: Optional[str]) -> AgentAutonomyConfig:
    """
    Parse an agent's free-form JSON configuration.

    Never raises: malformed JSON or a non-object payload yields the defaults,
    and each field with the wrong type falls back to its own default.

    Args:
        raw: The raw `config_json` string (camelCase keys, as stored)

    Returns:
        AgentAutonomyConfig with defaults applied at this boundary
    """
    defaults = AgentAutonomyConfig()
    if not raw:
        return defaults

    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Agent config is not valid JSON; using defaults")
        return defaults

    if not isinstance(parsed, dict):
        return defaults

    auto_vote = parsed.get("autoVote")
    threshold = parsed.get("confidenceThreshold")
    version = parsed.get("version")
    delegator = parsed.get("delegatorAddress")

    return AgentAutonomyConfig(
        version=version if isinstance(version, int) and not isinstance(version, bool) else defaults.version,
        auto_vote=auto_vote if isinstance(auto_vote, bool) else defaults.auto_vote,
        confidence_threshold=(
            float(threshold)
            if isinstance(threshold, (int, float)) and not isinstance(threshold, bool)
            else defaults.confidence_threshold
        ),
        values=_string_list(parsed.get("values")) or [],
        focus_areas=_string_list(parsed.get("focusAreas")) or [],
        delegator_address=delegator if isinstance(delegator, str) and delegator else None,
    )


class TrackedRealm(BaseModel):
    """Governance container the worker watches"""
    address: str
    name: str
    is_active: bool = True


class SerializedProposal(BaseModel):
    """Proposal as reported by the proposal source"""
    address: str
    title: str = ""
    description_link: str = ""
    status: str = "unknown"
    for_votes: float = 0
    against_votes: float = 0
    abstain_votes: float = 0
    voting_at: Optional[datetime] = None
    voting_end_at: Optional[datetime] = None

    def is_voting(self) -> bool:
        return (self.status or "").lower() == "voting"

    def is_voting_window_open(self, now: Optional[datetime] = None) -> bool:
        """True when the voting end is unknown or still in the future."""
        if self.voting_end_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        end = self.voting_end_at
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        return end > now


class ProposalContext(BaseModel):
    """Flat proposal view handed to the decision engine"""
    address: str
    title: str
    description: str
    realm_name: str
    realm_address: str
    for_votes: float = 0
    against_votes: float = 0
    abstain_votes: Optional[float] = None
    status: str


class VoteOutcomeRecord(BaseModel):
    """Durable, idempotent record of an agent's decision on one proposal"""
    agent_id: int
    proposal_address: str
    vote: VoteDirection
    reasoning: str
    confidence: float
    tx_signature: Optional[str] = None
    social_post_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def vote_key(self) -> str:
        return build_record_key(self.agent_id, self.proposal_address)


class AnalysisRecord(BaseModel):
    """Raw AI recommendation kept for audit; overwritten on re-analysis"""
    agent_id: int
    proposal_address: str
    analysis_json: str
    recommendation: str
    confidence: float
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def analysis_key(self) -> str:
        return build_record_key(self.agent_id, self.proposal_address)


def build_record_key(agent_id: int, proposal_address: str) -> str:
    """Natural key shared by vote outcomes and analyses."""
    return f"{agent_id}:{proposal_address}"
