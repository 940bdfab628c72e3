"""Unit tests for the autonomous vote decision engine.

Collaborators are mocks except the database, which is the in-memory store so
persisted outcomes can be inspected directly.
"""
import pytest

from vote_worker.data_models.governance_schemas import VoteDirection, parse_agent_config
from vote_worker.data_models.vote_results import (
    SkipReason,
    VoteExecuted,
    VotePreview,
    VoteSkipped,
    VoteSubmissionFailed,
)
from vote_worker.exceptions import RateLimitError

from ..decision_engine import (
    DecisionEngine,
    build_agent_values_prompt,
    format_below_threshold_reasoning,
    is_eligible_for_autonomy,
)
from .conftest import make_agent, make_analysis, make_proposal


@pytest.fixture
def engine(database, analyzer, tx_builder, signer, social):
    return DecisionEngine(database, analyzer, tx_builder, signer, social)


class TestPolicySkips:
    """Checks that short-circuit before any AI call."""

    @pytest.mark.asyncio
    async def test_missing_signing_wallet(self, engine, analyzer):
        result = await engine.execute(make_agent(wallet=False), make_proposal())

        assert isinstance(result, VoteSkipped)
        assert result.skip_reason == SkipReason.AGENT_MISSING_SIGNING_WALLET
        assert result.skipped and not result.executed
        analyzer.analyze_proposal.assert_not_called()

    @pytest.mark.asyncio
    async def test_proposal_not_voting(self, engine, analyzer):
        result = await engine.execute(make_agent(), make_proposal(status="succeeded"))

        assert result.skip_reason == SkipReason.PROPOSAL_NOT_VOTING
        analyzer.analyze_proposal.assert_not_called()

    @pytest.mark.asyncio
    async def test_status_check_is_case_insensitive(self, engine):
        result = await engine.execute(make_agent(), make_proposal(status="Voting"))
        assert isinstance(result, VoteExecuted)

    @pytest.mark.asyncio
    async def test_already_voted(self, engine, database, analyzer, signer):
        await engine.execute(make_agent(), make_proposal())
        analyzer.analyze_proposal.reset_mock()

        result = await engine.execute(make_agent(), make_proposal())

        assert result.skip_reason == SkipReason.ALREADY_VOTED
        analyzer.analyze_proposal.assert_not_called()
        assert signer.sign_and_send_transaction.await_count == 1
        assert database.vote_count() == 1

    @pytest.mark.asyncio
    async def test_auto_vote_disabled(self, engine, analyzer):
        result = await engine.execute(make_agent(auto_vote=False), make_proposal())

        assert result.skip_reason == SkipReason.AUTO_VOTE_DISABLED
        analyzer.analyze_proposal.assert_not_called()


class TestExecutedVote:
    """High-confidence recommendation goes all the way to the chain."""

    @pytest.mark.asyncio
    async def test_executes_and_records(self, engine, database, tx_builder, signer, social):
        agent = make_agent(agent_id=7)
        result = await engine.execute(agent, make_proposal())

        assert isinstance(result, VoteExecuted)
        assert result.executed and not result.skipped
        assert result.vote == VoteDirection.FOR
        assert result.confidence == 0.82
        assert result.tx_signature == "5igSignature"
        assert result.social_post_id == "content-1"

        tx_builder.build_cast_vote_transaction.assert_awaited_once_with(
            proposal_address="P1",
            voter_wallet_address="Signer7Address",
            vote_direction=VoteDirection.FOR,
            realm_address="Realm1",
            delegator_address=None,
        )
        signer.sign_and_send_transaction.assert_awaited_once_with(
            wallet_id="wallet-7", agent_id="7", serialized_transaction="AQAAAAserializedtransaction",
        )
        social.get_or_create_profile.assert_awaited_once_with("Owner7Wallet", "Agent 7")

        record = await database.get_vote(7, "P1")
        assert record.vote == VoteDirection.FOR
        assert record.tx_signature == "5igSignature"
        assert record.social_post_id == "content-1"

        analysis = await database.get_analysis(7, "P1")
        assert analysis.recommendation == "FOR"
        assert analysis.confidence == 0.82

    @pytest.mark.asyncio
    async def test_delegator_address_is_forwarded(self, engine, tx_builder):
        await engine.execute(make_agent(delegatorAddress="Delegator1"), make_proposal())

        kwargs = tx_builder.build_cast_vote_transaction.await_args.kwargs
        assert kwargs["delegator_address"] == "Delegator1"

    @pytest.mark.asyncio
    async def test_social_failure_is_swallowed(self, engine, database, social):
        social.post_vote_reasoning.side_effect = RuntimeError("tapestry down")

        result = await engine.execute(make_agent(), make_proposal())

        assert isinstance(result, VoteExecuted)
        assert result.social_post_id is None
        assert (await database.get_vote(1, "P1")).tx_signature == "5igSignature"

    @pytest.mark.asyncio
    async def test_missing_profile_id_yields_no_post(self, engine, social):
        social.get_or_create_profile.return_value = {"profile": {}}

        result = await engine.execute(make_agent(), make_proposal())

        assert result.social_post_id is None
        social.post_vote_reasoning.assert_not_called()

    @pytest.mark.asyncio
    async def test_unconfigured_social_is_skipped(self, engine, social):
        social.is_configured.return_value = False

        result = await engine.execute(make_agent(), make_proposal())

        assert isinstance(result, VoteExecuted)
        assert result.social_post_id is None
        social.get_or_create_profile.assert_not_called()

    @pytest.mark.asyncio
    async def test_nested_content_id(self, engine, social):
        social.post_vote_reasoning.return_value = {"content": {"id": "nested-9"}}

        result = await engine.execute(make_agent(), make_proposal())

        assert result.social_post_id == "nested-9"


class TestConfidenceGate:
    """Low-confidence recommendations become recorded abstentions."""

    @pytest.mark.asyncio
    async def test_below_threshold_abstains(self, engine, database, analyzer, tx_builder, social):
        analyzer.analyze_proposal.return_value = make_analysis(confidence=0.4, reasoning="Unclear scope.")

        result = await engine.execute(make_agent(threshold=0.65), make_proposal())

        assert isinstance(result, VoteSkipped)
        assert result.skip_reason == SkipReason.BELOW_CONFIDENCE_THRESHOLD
        assert result.vote == VoteDirection.ABSTAIN
        assert result.reasoning == "Unclear scope.\n\nConfidence 0.400 below threshold 0.650."
        assert result.tx_signature is None
        tx_builder.build_cast_vote_transaction.assert_not_called()

        assert social.post_vote_reasoning.await_args.kwargs["vote"] == "abstain"
        record = await database.get_vote(1, "P1")
        assert record.vote == VoteDirection.ABSTAIN
        assert record.tx_signature is None
        assert record.social_post_id == "content-1"
        assert record.reasoning == result.reasoning

    @pytest.mark.asyncio
    async def test_equal_to_threshold_votes(self, engine, analyzer):
        analyzer.analyze_proposal.return_value = make_analysis(confidence=0.65)

        result = await engine.execute(make_agent(threshold=0.65), make_proposal())

        assert isinstance(result, VoteExecuted)

    @pytest.mark.asyncio
    async def test_below_threshold_dry_run_persists_nothing(self, engine, database, analyzer, social):
        analyzer.analyze_proposal.return_value = make_analysis(confidence=0.1)

        result = await engine.execute(make_agent(), make_proposal(), dry_run=True)

        assert result.skip_reason == SkipReason.BELOW_CONFIDENCE_THRESHOLD
        assert database.vote_count() == 0
        social.get_or_create_profile.assert_not_called()
        # Analysis is stored regardless of dry-run
        assert database.analysis_count() == 1

    def test_reasoning_format(self):
        assert format_below_threshold_reasoning("R", 0.5, 0.9) == "R\n\nConfidence 0.500 below threshold 0.900."


class TestDryRunAndFailures:
    """Dry-run previews and failed submissions leave no vote behind."""

    @pytest.mark.asyncio
    async def test_dry_run_preview(self, engine, database, tx_builder, signer, social):
        result = await engine.execute(make_agent(), make_proposal(), dry_run=True)

        assert isinstance(result, VotePreview)
        assert not result.executed and not result.skipped
        assert result.vote == VoteDirection.FOR
        assert result.tx_signature is None
        tx_builder.build_cast_vote_transaction.assert_not_called()
        signer.sign_and_send_transaction.assert_not_called()
        social.get_or_create_profile.assert_not_called()
        assert database.vote_count() == 0

    @pytest.mark.asyncio
    async def test_signing_failure(self, engine, database, signer, social):
        signer.sign_and_send_transaction.side_effect = RateLimitError("slow down")

        result = await engine.execute(make_agent(), make_proposal())

        assert isinstance(result, VoteSubmissionFailed)
        assert not result.executed and not result.skipped
        assert result.tx_signature is None
        assert "slow down" in result.error
        social.get_or_create_profile.assert_not_called()
        assert database.vote_count() == 0
        assert database.analysis_count() == 1

    @pytest.mark.asyncio
    async def test_build_failure(self, engine, database, tx_builder, signer):
        tx_builder.build_cast_vote_transaction.side_effect = RuntimeError("builder down")

        result = await engine.execute(make_agent(), make_proposal())

        assert isinstance(result, VoteSubmissionFailed)
        signer.sign_and_send_transaction.assert_not_called()
        assert database.vote_count() == 0

    @pytest.mark.asyncio
    async def test_analysis_failure_propagates(self, engine, analyzer):
        analyzer.analyze_proposal.side_effect = RuntimeError("model unavailable")

        with pytest.raises(RuntimeError):
            await engine.execute(make_agent(), make_proposal())


class TestAnalysisInputs:
    """Prompt inputs derived from the agent and proposal."""

    @pytest.mark.asyncio
    async def test_empty_description_placeholder(self, engine, analyzer):
        await engine.execute(make_agent(), make_proposal(description=""))

        kwargs = analyzer.analyze_proposal.await_args.kwargs
        assert kwargs["description"] == "No description provided on-chain."

    def test_values_prompt_uses_config_values(self):
        agent = make_agent(values=["decentralization", "security"], focusAreas=["treasury"])
        prompt = build_agent_values_prompt(agent, parse_agent_config(agent.config_json))

        assert prompt == (
            "Agent name: Agent 1\n"
            "Core values: decentralization, security\n"
            "Focus areas: treasury\n"
            "Risk tolerance: conservative"
        )

    def test_values_prompt_falls_back_to_profile(self):
        agent = make_agent()
        prompt = build_agent_values_prompt(agent, parse_agent_config(agent.config_json))

        assert "Core values: Treasury prudence" in prompt
        assert "Focus areas: general governance" in prompt


class TestEligibility:

    def test_eligible(self):
        assert is_eligible_for_autonomy(make_agent())

    def test_inactive(self):
        assert not is_eligible_for_autonomy(make_agent(active=False))

    def test_no_wallet(self):
        assert not is_eligible_for_autonomy(make_agent(wallet=False))

    def test_auto_vote_off(self):
        assert not is_eligible_for_autonomy(make_agent(auto_vote=False))
