# Structured output expected from the AI analysis service
from typing import List, Literal

from pydantic import BaseModel, Field

from vote_worker.data_models.governance_schemas import VoteDirection

RecommendedVote = Literal["FOR", "AGAINST", "ABSTAIN"]


class RiskAssessment(BaseModel):
    treasury_impact: str = Field(description="How this affects the DAO treasury")
    security_risk: str = Field(description="Any security implications")
    centralization_risk: str = Field(description="Impact on decentralization")
    overall_risk_score: float = Field(ge=0, le=100, description="0=no risk, 100=extreme risk")


class Recommendation(BaseModel):
    vote: RecommendedVote
    confidence: float = Field(ge=0, le=1, description="0-1 confidence score")
    reasoning: str = Field(description="Detailed reasoning for the vote recommendation")
    conditions: List[str] = Field(default_factory=list, description="Conditions or caveats")

    def to_vote_direction(self) -> VoteDirection:
        """Map the model's FOR/AGAINST/ABSTAIN to the recorded direction."""
        if self.vote == "FOR":
            return VoteDirection.FOR
        if self.vote == "AGAINST":
            return VoteDirection.AGAINST
        return VoteDirection.ABSTAIN


class GovernanceAnalysis(BaseModel):
    """Full analysis returned for one proposal and one agent's values"""

    summary: str = Field(description="2-3 sentence summary of the proposal")
    risk_assessment: RiskAssessment
    recommendation: Recommendation
