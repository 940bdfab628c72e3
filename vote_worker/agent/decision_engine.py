"""
Autonomous vote decision engine.

Decides and, when safe, executes one agent's vote on one proposal:

    wallet check -> status check -> idempotency check -> policy check
    -> AI analysis -> confidence gate -> (dry-run preview)
    -> build + sign + submit -> social post -> persist outcome

Policy outcomes and failed submissions are returned as decision results.
Only analysis or database failures propagate to the caller.
"""
import json
import logging
from typing import Optional

from vote_worker.data_models.analysis_schemas import GovernanceAnalysis
from vote_worker.data_models.governance_schemas import (
    AgentAutonomyConfig,
    AgentRecord,
    AnalysisRecord,
    ProposalContext,
    VoteDirection,
    VoteOutcomeRecord,
    parse_agent_config,
)
from vote_worker.data_models.vote_results import (
    DecisionResult,
    SkipReason,
    VoteExecuted,
    VotePreview,
    VoteSkipped,
    VoteSubmissionFailed,
)
from vote_worker.services.analysis_service import GovernanceAnalyzer
from vote_worker.services.signing_service import PrivySigningClient
from vote_worker.services.social_service import TapestryClient, extract_content_id
from vote_worker.services.transaction_builder import TransactionBuilderClient
from vote_worker.services.vote_database import VoteDatabase

logger = logging.getLogger(__name__)

MISSING_DESCRIPTION = "No description provided on-chain."
DEFAULT_FOCUS_AREAS = "general governance"


def build_agent_values_prompt(agent: AgentRecord, config: AgentAutonomyConfig) -> str:
    """Four-line description of the agent handed to the analysis prompt."""
    values_text = ", ".join(config.values) if config.values else agent.values_profile
    focus_text = ", ".join(config.focus_areas) if config.focus_areas else DEFAULT_FOCUS_AREAS
    return "\n".join([
        f"Agent name: {agent.name}",
        f"Core values: {values_text}",
        f"Focus areas: {focus_text}",
        f"Risk tolerance: {agent.risk_tolerance}",
    ])


def format_below_threshold_reasoning(reasoning: str, confidence: float, threshold: float) -> str:
    return f"{reasoning}\n\nConfidence {confidence:.3f} below threshold {threshold:.3f}."


def is_eligible_for_autonomy(agent: AgentRecord) -> bool:
    """Active, holds a signing wallet, and opted into automatic voting."""
    if not agent.is_active:
        return False
    if not agent.has_signing_wallet:
        return False
    return parse_agent_config(agent.config_json).auto_vote


class DecisionEngine:
    """Runs the per-pair decision pipeline against injected collaborators."""

    def __init__(
        self,
        database: VoteDatabase,
        analyzer: GovernanceAnalyzer,
        tx_builder: TransactionBuilderClient,
        signer: PrivySigningClient,
        social: Optional[TapestryClient] = None,
    ):
        self.database = database
        self.analyzer = analyzer
        self.tx_builder = tx_builder
        self.signer = signer
        self.social = social

    async def execute(self, agent: AgentRecord, proposal: ProposalContext, dry_run: bool = False) -> DecisionResult:
        """
        Decide and (unless dry-run) execute one agent's vote on one proposal.

        Args:
            agent: The voting agent
            proposal: Flat proposal context
            dry_run: When true, stop after the confidence gate without any
                side effect other than the stored analysis

        Returns:
            One of VoteExecuted, VoteSkipped, VotePreview, VoteSubmissionFailed

        Raises:
            AnalysisError: If the AI analysis is unusable
            RuntimeError: If the database is unreachable
        """
        agent_id = str(agent.id)
        base = {"agent_id": agent_id, "proposal_address": proposal.address}

        if not agent.has_signing_wallet:
            return VoteSkipped(**base, skip_reason=SkipReason.AGENT_MISSING_SIGNING_WALLET)

        if (proposal.status or "").lower() != "voting":
            return VoteSkipped(**base, skip_reason=SkipReason.PROPOSAL_NOT_VOTING)

        if await self.database.has_agent_voted(agent.id, proposal.address):
            return VoteSkipped(**base, skip_reason=SkipReason.ALREADY_VOTED)

        config = parse_agent_config(agent.config_json)
        if not config.auto_vote:
            return VoteSkipped(**base, skip_reason=SkipReason.AUTO_VOTE_DISABLED)

        analysis = await self.analyzer.analyze_proposal(
            title=proposal.title,
            description=proposal.description or MISSING_DESCRIPTION,
            realm_name=proposal.realm_name,
            for_votes=proposal.for_votes,
            against_votes=proposal.against_votes,
            agent_values=build_agent_values_prompt(agent, config),
        )
        recommendation = analysis.recommendation
        direction = recommendation.to_vote_direction()
        confidence = recommendation.confidence

        await self._store_analysis(agent, proposal, analysis)

        if confidence < config.confidence_threshold:
            return await self._abstain_below_threshold(agent, proposal, analysis, config, dry_run)

        if dry_run:
            logger.info(f"[dry-run] agent={agent_id} proposal={proposal.address} would vote {direction.value}")
            return VotePreview(
                **base, vote=direction, confidence=confidence, reasoning=recommendation.reasoning,
            )

        try:
            serialized = await self.tx_builder.build_cast_vote_transaction(
                proposal_address=proposal.address,
                voter_wallet_address=agent.signing_wallet_address,
                vote_direction=direction,
                realm_address=proposal.realm_address,
                delegator_address=config.delegator_address,
            )
            tx_signature = await self.signer.sign_and_send_transaction(
                wallet_id=agent.signing_wallet_id,
                agent_id=agent_id,
                serialized_transaction=serialized,
            )
        except Exception as e:
            # Nothing is posted or recorded when the on-chain vote did not go through
            logger.error(
                f"On-chain vote failed for agent={agent_id} proposal={proposal.address}: {e}",
                exc_info=True,
            )
            return VoteSubmissionFailed(
                **base, vote=direction, confidence=confidence,
                reasoning=recommendation.reasoning, error=str(e),
            )

        social_post_id = await self._try_post_social(
            agent, proposal.address, direction.value, recommendation.reasoning, confidence,
        )

        await self.database.record_vote(VoteOutcomeRecord(
            agent_id=agent.id,
            proposal_address=proposal.address,
            vote=direction,
            reasoning=recommendation.reasoning,
            confidence=confidence,
            tx_signature=tx_signature,
            social_post_id=social_post_id,
        ))

        logger.info(
            f"Agent {agent_id} voted {direction.value} on {proposal.address} "
            f"(confidence={confidence:.3f}, tx={tx_signature})"
        )
        return VoteExecuted(
            **base, vote=direction, confidence=confidence, reasoning=recommendation.reasoning,
            tx_signature=tx_signature, social_post_id=social_post_id,
        )

    async def _store_analysis(self, agent: AgentRecord, proposal: ProposalContext,
                              analysis: GovernanceAnalysis) -> None:
        await self.database.store_analysis(AnalysisRecord(
            agent_id=agent.id,
            proposal_address=proposal.address,
            analysis_json=json.dumps(analysis.model_dump()),
            recommendation=analysis.recommendation.vote,
            confidence=analysis.recommendation.confidence,
        ))

    async def _abstain_below_threshold(
        self,
        agent: AgentRecord,
        proposal: ProposalContext,
        analysis: GovernanceAnalysis,
        config: AgentAutonomyConfig,
        dry_run: bool,
    ) -> VoteSkipped:
        confidence = analysis.recommendation.confidence
        reasoning = format_below_threshold_reasoning(
            analysis.recommendation.reasoning, confidence, config.confidence_threshold,
        )
        social_post_id = None

        if not dry_run:
            social_post_id = await self._try_post_social(
                agent, proposal.address, VoteDirection.ABSTAIN.value, reasoning, confidence,
            )
            await self.database.record_vote(VoteOutcomeRecord(
                agent_id=agent.id,
                proposal_address=proposal.address,
                vote=VoteDirection.ABSTAIN,
                reasoning=reasoning,
                confidence=confidence,
                tx_signature=None,
                social_post_id=social_post_id,
            ))

        logger.info(
            f"Agent {agent.id} abstained on {proposal.address}: confidence {confidence:.3f} "
            f"below threshold {config.confidence_threshold:.3f}"
        )
        return VoteSkipped(
            agent_id=str(agent.id),
            proposal_address=proposal.address,
            skip_reason=SkipReason.BELOW_CONFIDENCE_THRESHOLD,
            vote=VoteDirection.ABSTAIN,
            confidence=confidence,
            reasoning=reasoning,
            tx_signature=None,
            social_post_id=social_post_id,
        )

    async def _try_post_social(self, agent: AgentRecord, proposal_address: str, vote: str,
                               reasoning: str, confidence: float) -> Optional[str]:
        """Best-effort reasoning post; any failure yields None."""
        if self.social is None or not self.social.is_configured():
            return None

        agent_id = str(agent.id)
        try:
            # owner_wallet is always a real address; the signing wallet may be a placeholder
            profile = await self.social.get_or_create_profile(agent.owner_wallet, agent.name)
            profile_id = (profile.get("profile") or {}).get("id") if isinstance(profile, dict) else None
            if not profile_id:
                logger.warning(f"No social profile id returned for agent={agent_id}")
                return None

            content = await self.social.post_vote_reasoning(
                profile_id=str(profile_id),
                proposal_address=proposal_address,
                agent_id=agent_id,
                vote=vote,
                reasoning=reasoning,
                confidence=confidence,
            )
            return extract_content_id(content)
        except Exception as e:
            logger.error(f"Social post failed for agent={agent_id} proposal={proposal_address}: {e}")
            return None
