"""
Application database access for the vote worker.

Two interchangeable stores implement VoteDatabase:

- PostgresVoteDatabase: the production store. Expects the `agents`,
  `tracked_realms`, `votes` and `ai_analyses` tables; `votes.vote_key` and
  `ai_analyses.analysis_key` are unique ("<agent_id>:<proposal_address>").
- InMemoryVoteDatabase: same semantics in process memory, for tests and
  local dry runs.

Vote outcomes are merged idempotently: the first write for a key creates the
row, later writes only fill a transaction signature or social post id that
is still empty. Analyses are overwritten on every write.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from vote_worker.data_models.governance_schemas import (
    AgentRecord,
    AnalysisRecord,
    TrackedRealm,
    VoteDirection,
    VoteOutcomeRecord,
    build_record_key,
)
from vote_worker.services.connection_pool import DatabaseConnectionPool, get_connection_pool

logger = logging.getLogger(__name__)


class VoteDatabase(ABC):
    """Async interface to agents, realms, vote outcomes and analyses."""

    @abstractmethod
    async def get_all_active_agents(self) -> List[AgentRecord]:
        ...

    @abstractmethod
    async def get_tracked_realms(self) -> List[TrackedRealm]:
        """Active tracked realms only."""
        ...

    @abstractmethod
    async def has_agent_voted(self, agent_id: int, proposal_address: str) -> bool:
        ...

    @abstractmethod
    async def record_vote(self, record: VoteOutcomeRecord) -> None:
        ...

    @abstractmethod
    async def store_analysis(self, record: AnalysisRecord) -> None:
        ...

    @abstractmethod
    async def get_vote(self, agent_id: int, proposal_address: str) -> Optional[VoteOutcomeRecord]:
        ...

    @abstractmethod
    async def get_analysis(self, agent_id: int, proposal_address: str) -> Optional[AnalysisRecord]:
        ...

    async def close(self) -> None:
        """Release held resources."""


class InMemoryVoteDatabase(VoteDatabase):
    """Process-local store with the same merge semantics as Postgres."""

    def __init__(self, agents: Iterable[AgentRecord] = (), realms: Iterable[TrackedRealm] = ()):
        self.agents: List[AgentRecord] = list(agents)
        self.realms: List[TrackedRealm] = list(realms)
        self._votes: Dict[str, VoteOutcomeRecord] = {}
        self._analyses: Dict[str, AnalysisRecord] = {}
        self._lock = asyncio.Lock()

    async def get_all_active_agents(self) -> List[AgentRecord]:
        return [agent for agent in self.agents if agent.is_active]

    async def get_tracked_realms(self) -> List[TrackedRealm]:
        return [realm for realm in self.realms if realm.is_active]

    async def has_agent_voted(self, agent_id: int, proposal_address: str) -> bool:
        return build_record_key(agent_id, proposal_address) in self._votes

    async def record_vote(self, record: VoteOutcomeRecord) -> None:
        async with self._lock:
            existing = self._votes.get(record.vote_key)
            if existing is None:
                self._votes[record.vote_key] = record.model_copy()
                return

            merged_tx = existing.tx_signature or record.tx_signature
            merged_post = existing.social_post_id or record.social_post_id
            if merged_tx != existing.tx_signature or merged_post != existing.social_post_id:
                self._votes[record.vote_key] = existing.model_copy(
                    update={"tx_signature": merged_tx, "social_post_id": merged_post}
                )

    async def store_analysis(self, record: AnalysisRecord) -> None:
        async with self._lock:
            existing = self._analyses.get(record.analysis_key)
            if existing is None:
                self._analyses[record.analysis_key] = record.model_copy()
                return
            self._analyses[record.analysis_key] = existing.model_copy(update={
                "analysis_json": record.analysis_json,
                "recommendation": record.recommendation,
                "confidence": record.confidence,
            })

    async def get_vote(self, agent_id: int, proposal_address: str) -> Optional[VoteOutcomeRecord]:
        return self._votes.get(build_record_key(agent_id, proposal_address))

    async def get_analysis(self, agent_id: int, proposal_address: str) -> Optional[AnalysisRecord]:
        return self._analyses.get(build_record_key(agent_id, proposal_address))

    def vote_count(self) -> int:
        return len(self._votes)

    def analysis_count(self) -> int:
        return len(self._analyses)


class PostgresVoteDatabase(VoteDatabase):
    """Postgres store; blocking psycopg2 calls run in a worker thread."""

    _AGENT_COLUMNS = (
        "id, owner_wallet, name, values_profile, risk_tolerance, is_active, "
        "config_json, privy_wallet_id, privy_wallet_address"
    )

    def __init__(self, pool: Optional[DatabaseConnectionPool] = None):
        self._pool = pool

    @property
    def pool(self) -> DatabaseConnectionPool:
        if self._pool is None:
            self._pool = get_connection_pool()
        return self._pool

    def _execute(self, sql: str, params: tuple = (), fetch: bool = True) -> List[Dict[str, Any]]:
        conn = self.pool.get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                rows = [dict(row) for row in cur.fetchall()] if fetch else []
            conn.commit()
            return rows
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"PostgresVoteDatabase: SQL error: {e}", exc_info=True)
            raise RuntimeError(f"SQL execution error: {e}") from e
        finally:
            self.pool.return_connection(conn)

    async def _run(self, sql: str, params: tuple = (), fetch: bool = True) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._execute, sql, params, fetch)

    @staticmethod
    def _agent_from_row(row: Dict[str, Any]) -> AgentRecord:
        return AgentRecord(
            id=row["id"],
            owner_wallet=row.get("owner_wallet") or "",
            name=row.get("name") or "",
            values_profile=row.get("values_profile") or "",
            risk_tolerance=row.get("risk_tolerance") or "moderate",
            is_active=bool(row.get("is_active")),
            config_json=row.get("config_json") or "{}",
            signing_wallet_id=row.get("privy_wallet_id"),
            signing_wallet_address=row.get("privy_wallet_address"),
        )

    async def get_all_active_agents(self) -> List[AgentRecord]:
        rows = await self._run(
            f"SELECT {self._AGENT_COLUMNS} FROM agents WHERE is_active = TRUE ORDER BY id"
        )
        return [self._agent_from_row(row) for row in rows]

    async def get_tracked_realms(self) -> List[TrackedRealm]:
        rows = await self._run(
            "SELECT address, name, is_active FROM tracked_realms WHERE is_active = TRUE ORDER BY address"
        )
        return [TrackedRealm(**row) for row in rows]

    async def has_agent_voted(self, agent_id: int, proposal_address: str) -> bool:
        rows = await self._run(
            "SELECT 1 AS found FROM votes WHERE vote_key = %s",
            (build_record_key(agent_id, proposal_address),),
        )
        return bool(rows)

    async def record_vote(self, record: VoteOutcomeRecord) -> None:
        await self._run(
            """
            INSERT INTO votes (vote_key, agent_id, proposal_address, vote, reasoning, confidence,
                               tx_signature, tapestry_content_id, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (vote_key) DO UPDATE SET
                tx_signature = COALESCE(votes.tx_signature, EXCLUDED.tx_signature),
                tapestry_content_id = COALESCE(votes.tapestry_content_id, EXCLUDED.tapestry_content_id)
            """,
            (
                record.vote_key, record.agent_id, record.proposal_address, record.vote.value,
                record.reasoning, record.confidence, record.tx_signature, record.social_post_id,
                record.created_at,
            ),
            fetch=False,
        )

    async def store_analysis(self, record: AnalysisRecord) -> None:
        await self._run(
            """
            INSERT INTO ai_analyses (analysis_key, agent_id, proposal_address, analysis_json,
                                     recommendation, confidence, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (analysis_key) DO UPDATE SET
                analysis_json = EXCLUDED.analysis_json,
                recommendation = EXCLUDED.recommendation,
                confidence = EXCLUDED.confidence
            """,
            (
                record.analysis_key, record.agent_id, record.proposal_address, record.analysis_json,
                record.recommendation, record.confidence, record.created_at,
            ),
            fetch=False,
        )

    async def get_vote(self, agent_id: int, proposal_address: str) -> Optional[VoteOutcomeRecord]:
        rows = await self._run(
            """
            SELECT agent_id, proposal_address, vote, reasoning, confidence, tx_signature,
                   tapestry_content_id, created_at
            FROM votes WHERE vote_key = %s
            """,
            (build_record_key(agent_id, proposal_address),),
        )
        if not rows:
            return None
        row = rows[0]
        return VoteOutcomeRecord(
            agent_id=row["agent_id"],
            proposal_address=row["proposal_address"],
            vote=VoteDirection(row["vote"]),
            reasoning=row["reasoning"],
            confidence=row["confidence"],
            tx_signature=row["tx_signature"],
            social_post_id=row["tapestry_content_id"],
            created_at=row["created_at"],
        )

    async def get_analysis(self, agent_id: int, proposal_address: str) -> Optional[AnalysisRecord]:
        rows = await self._run(
            """
            SELECT agent_id, proposal_address, analysis_json, recommendation, confidence, created_at
            FROM ai_analyses WHERE analysis_key = %s
            """,
            (build_record_key(agent_id, proposal_address),),
        )
        return AnalysisRecord(**rows[0]) if rows else None

    async def close(self) -> None:
        if self._pool is not None:
            await asyncio.to_thread(self._pool.close)
