"""Shared builders for decision engine, orchestrator and supervisor tests."""
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from vote_worker.data_models.analysis_schemas import GovernanceAnalysis
from vote_worker.data_models.governance_schemas import AgentRecord, ProposalContext
from vote_worker.data_models.vote_results import CycleSummary
from vote_worker.services.vote_database import InMemoryVoteDatabase


def make_agent(agent_id=1, auto_vote=True, threshold=0.65, wallet=True, active=True, **config_extra):
    config = {"autoVote": auto_vote, "confidenceThreshold": threshold}
    config.update(config_extra)
    return AgentRecord(
        id=agent_id,
        owner_wallet=f"Owner{agent_id}Wallet",
        name=f"Agent {agent_id}",
        values_profile="Treasury prudence",
        risk_tolerance="conservative",
        is_active=active,
        config_json=json.dumps(config),
        signing_wallet_id=f"wallet-{agent_id}" if wallet else None,
        signing_wallet_address=f"Signer{agent_id}Address" if wallet else None,
    )


def make_proposal(address="P1", status="voting", description="Fund the grants program"):
    return ProposalContext(
        address=address,
        title=f"Proposal {address}",
        description=description,
        realm_name="Test DAO",
        realm_address="Realm1",
        for_votes=10,
        against_votes=2,
        status=status,
    )


def make_analysis(vote="FOR", confidence=0.82, reasoning="Aligned with treasury prudence."):
    return GovernanceAnalysis.model_validate({
        "summary": "A grants program proposal.",
        "risk_assessment": {
            "treasury_impact": "moderate",
            "security_risk": "low",
            "centralization_risk": "low",
            "overall_risk_score": 25,
        },
        "recommendation": {
            "vote": vote,
            "confidence": confidence,
            "reasoning": reasoning,
            "conditions": [],
        },
    })


def make_summary(executed=0, failed=0, skipped=0):
    now = datetime.now(timezone.utc)
    return CycleSummary(started_at=now, finished_at=now, executed=executed, failed=failed, skipped=skipped)


@pytest.fixture
def database():
    return InMemoryVoteDatabase()


@pytest.fixture
def analyzer():
    mock = MagicMock()
    mock.analyze_proposal = AsyncMock(return_value=make_analysis())
    return mock


@pytest.fixture
def tx_builder():
    mock = MagicMock()
    mock.build_cast_vote_transaction = AsyncMock(return_value="AQAAAAserializedtransaction")
    return mock


@pytest.fixture
def signer():
    mock = MagicMock()
    mock.sign_and_send_transaction = AsyncMock(return_value="5igSignature")
    return mock


@pytest.fixture
def social():
    mock = MagicMock()
    mock.is_configured = MagicMock(return_value=True)
    mock.get_or_create_profile = AsyncMock(return_value={"profile": {"id": "profile-1"}})
    mock.post_vote_reasoning = AsyncMock(return_value={"id": "content-1"})
    return mock
