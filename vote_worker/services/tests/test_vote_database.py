"""Tests for the vote stores: in-memory merge semantics and Postgres error handling."""
from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from vote_worker.data_models.governance_schemas import (
    AgentRecord,
    AnalysisRecord,
    TrackedRealm,
    VoteDirection,
    VoteOutcomeRecord,
)

from .. import vote_database
from ..vote_database import InMemoryVoteDatabase, PostgresVoteDatabase


def vote(tx=None, post=None, direction=VoteDirection.FOR, reasoning="first"):
    return VoteOutcomeRecord(
        agent_id=1, proposal_address="P1", vote=direction, reasoning=reasoning,
        confidence=0.8, tx_signature=tx, social_post_id=post,
    )


class TestRecordVote:
    """Idempotent merge of vote outcomes."""

    @pytest.mark.asyncio
    async def test_first_non_null_values_win(self):
        db = InMemoryVoteDatabase()

        await db.record_vote(vote())
        await db.record_vote(vote(tx="sig-1"))
        await db.record_vote(vote(tx="sig-2", post="post-1"))
        await db.record_vote(vote(tx="sig-3", post="post-2"))

        stored = await db.get_vote(1, "P1")
        assert db.vote_count() == 1
        assert stored.tx_signature == "sig-1"
        assert stored.social_post_id == "post-1"

    @pytest.mark.asyncio
    async def test_other_fields_are_not_overwritten(self):
        db = InMemoryVoteDatabase()

        await db.record_vote(vote(direction=VoteDirection.ABSTAIN, reasoning="first"))
        await db.record_vote(vote(direction=VoteDirection.FOR, reasoning="second", tx="sig"))

        stored = await db.get_vote(1, "P1")
        assert stored.vote == VoteDirection.ABSTAIN
        assert stored.reasoning == "first"
        assert stored.tx_signature == "sig"

    @pytest.mark.asyncio
    async def test_has_agent_voted(self):
        db = InMemoryVoteDatabase()
        assert not await db.has_agent_voted(1, "P1")

        await db.record_vote(vote())

        assert await db.has_agent_voted(1, "P1")
        assert not await db.has_agent_voted(2, "P1")


class TestStoreAnalysis:

    @pytest.mark.asyncio
    async def test_analysis_is_overwritten(self):
        db = InMemoryVoteDatabase()
        first = AnalysisRecord(agent_id=1, proposal_address="P1", analysis_json="{}", recommendation="FOR", confidence=0.9)
        second = AnalysisRecord(agent_id=1, proposal_address="P1", analysis_json='{"a": 1}', recommendation="AGAINST", confidence=0.3)

        await db.store_analysis(first)
        await db.store_analysis(second)

        stored = await db.get_analysis(1, "P1")
        assert db.analysis_count() == 1
        assert stored.recommendation == "AGAINST"
        assert stored.confidence == 0.3
        assert stored.created_at == first.created_at


class TestListing:

    @pytest.mark.asyncio
    async def test_only_active_rows(self):
        db = InMemoryVoteDatabase(
            agents=[AgentRecord(id=1), AgentRecord(id=2, is_active=False)],
            realms=[TrackedRealm(address="R1", name="One"), TrackedRealm(address="R2", name="Two", is_active=False)],
        )

        assert [a.id for a in await db.get_all_active_agents()] == [1]
        assert [r.address for r in await db.get_tracked_realms()] == ["R1"]


class TestPostgresErrors:

    @pytest.mark.asyncio
    async def test_sql_error_rolls_back_and_logs(self):
        cursor = MagicMock()
        cursor.execute.side_effect = psycopg2.Error("relation votes does not exist")
        conn = MagicMock()
        conn.cursor.return_value.__enter__.return_value = cursor
        pool = MagicMock()
        pool.get_connection.return_value = conn
        db = PostgresVoteDatabase(pool=pool)

        with patch("vote_worker.services.vote_database.logger") as log:
            with pytest.raises(RuntimeError, match="SQL execution error"):
                await db.has_agent_voted(1, "P1")

        conn.rollback.assert_called_once()
        pool.return_connection.assert_called_once_with(conn)
        log.error.assert_called_once()
        assert "relation votes" in log.error.call_args.args[0]

    def test_module_logger_name(self):
        assert vote_database.logger.name == "vote_worker.services.vote_database"
