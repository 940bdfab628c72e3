"""
Worker cycle orchestration.

One cycle discovers eligible agents and open proposals, evaluates every
(agent, proposal) pair through the decision engine on a bounded pool of
asyncio workers, and aggregates the outcomes into a CycleSummary.
"""
import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from vote_worker.agent.decision_engine import DecisionEngine, is_eligible_for_autonomy
from vote_worker.data_models.governance_schemas import AgentRecord, ProposalContext, TrackedRealm
from vote_worker.data_models.vote_results import (
    CycleSummary,
    PairFailed,
    PairResult,
    SkipReason,
    VoteSkipped,
)
from vote_worker.services.governance_client import GovernanceClient
from vote_worker.services.vote_database import VoteDatabase

logger = logging.getLogger(__name__)

# Pause between sequential AI analysis calls (provider rate limit)
DEFAULT_THROTTLE_DELAY_SECONDS = 3.0
MISSING_PROPOSAL_DESCRIPTION = "No proposal description provided."

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class CycleOptions:
    dry_run: bool = False
    max_concurrency: float = 1
    throttle_delay_seconds: float = DEFAULT_THROTTLE_DELAY_SECONDS


def normalize_concurrency(value: float) -> int:
    """Floor to an integer worker count of at least one; non-finite values mean one."""
    try:
        if not math.isfinite(value) or value < 1:
            return 1
    except TypeError:
        return 1
    return int(math.floor(value))


async def run_with_concurrency(
    items: Sequence[T],
    concurrency: float,
    worker: Callable[[T], Awaitable[R]],
    throttle_delay_seconds: float = DEFAULT_THROTTLE_DELAY_SECONDS,
) -> List[R]:
    """
    Process items with at most `concurrency` coroutines in flight.

    Workers pull the next index from a shared cursor; claiming an index never
    awaits, so each item is processed exactly once. After each item a worker
    pauses for `throttle_delay_seconds` unless no unclaimed items remain.
    Results keep the input order.
    """
    if not items:
        return []

    limit = min(normalize_concurrency(concurrency), len(items))
    results: List[Optional[R]] = [None] * len(items)
    cursor = 0

    async def worker_loop() -> None:
        nonlocal cursor
        while cursor < len(items):
            index = cursor
            cursor += 1
            results[index] = await worker(items[index])
            if throttle_delay_seconds > 0 and cursor < len(items):
                await asyncio.sleep(throttle_delay_seconds)

    await asyncio.gather(*(worker_loop() for _ in range(limit)))
    return results


def summarize_results(
    started_at: datetime,
    agents_scanned: int,
    agents_eligible: int,
    active_proposals: int,
    combinations_considered: int,
    results: Sequence[PairResult],
) -> CycleSummary:
    executed = skipped = failed = 0
    for result in results:
        if result.executed:
            executed += 1
        elif result.skipped:
            skipped += 1
        else:
            # Caught pair failures, failed submissions and dry-run previews
            failed += 1

    return CycleSummary(
        started_at=started_at,
        finished_at=datetime.now(timezone.utc),
        agents_scanned=agents_scanned,
        agents_eligible=agents_eligible,
        active_proposals=active_proposals,
        combinations_considered=combinations_considered,
        executed=executed,
        skipped=skipped,
        failed=failed,
    )


class CycleOrchestrator:
    """Runs a single worker cycle end to end."""

    def __init__(self, database: VoteDatabase, proposal_source: GovernanceClient, engine: DecisionEngine):
        self.database = database
        self.proposal_source = proposal_source
        self.engine = engine

    async def _proposals_for_realm(self, realm: TrackedRealm) -> List[ProposalContext]:
        try:
            proposals = await self.proposal_source.fetch_proposals_for_realm(realm.address)
        except Exception as e:
            logger.error(f"Failed to fetch proposals for realm {realm.address}: {e}", exc_info=True)
            return []

        now = datetime.now(timezone.utc)
        return [
            ProposalContext(
                address=proposal.address,
                title=proposal.title,
                description=proposal.description_link or MISSING_PROPOSAL_DESCRIPTION,
                realm_name=realm.name,
                realm_address=realm.address,
                for_votes=proposal.for_votes,
                against_votes=proposal.against_votes,
                abstain_votes=proposal.abstain_votes,
                status=proposal.status.lower() if proposal.status else "unknown",
            )
            for proposal in proposals
            if proposal.is_voting() and proposal.is_voting_window_open(now)
        ]

    async def collect_active_proposals(self) -> List[ProposalContext]:
        """Open proposals across all tracked realms; a failing realm contributes none."""
        realms = await self.database.get_tracked_realms()
        if not realms:
            logger.info("No tracked realms found in database")
            return []

        per_realm = await asyncio.gather(*(self._proposals_for_realm(realm) for realm in realms))
        return [proposal for proposals in per_realm for proposal in proposals]

    async def _run_pair(self, pair: Tuple[AgentRecord, ProposalContext], dry_run: bool) -> PairResult:
        agent, proposal = pair
        try:
            if await self.database.has_agent_voted(agent.id, proposal.address):
                return VoteSkipped(
                    agent_id=str(agent.id),
                    proposal_address=proposal.address,
                    skip_reason=SkipReason.ALREADY_VOTED,
                )
            return await self.engine.execute(agent, proposal, dry_run=dry_run)
        except Exception as e:
            logger.error(
                f"Pair execution failed for agent={agent.id} proposal={proposal.address}: {e}",
                exc_info=True,
            )
            return PairFailed(agent_id=str(agent.id), proposal_address=proposal.address, reason=str(e))

    async def run_cycle(self, options: CycleOptions) -> CycleSummary:
        """
        Run one full cycle.

        Raises:
            RuntimeError: If agents or realms cannot be loaded; per-pair and
                per-realm failures never abort the cycle
        """
        started_at = datetime.now(timezone.utc)
        logger.info(f"Starting cycle at {started_at.isoformat()} (dry_run={options.dry_run})")

        all_agents = await self.database.get_all_active_agents()
        eligible_agents = [agent for agent in all_agents if is_eligible_for_autonomy(agent)]
        active_proposals = await self.collect_active_proposals()

        pairs = [(agent, proposal) for agent in eligible_agents for proposal in active_proposals]

        results = await run_with_concurrency(
            pairs,
            options.max_concurrency,
            lambda pair: self._run_pair(pair, options.dry_run),
            options.throttle_delay_seconds,
        )

        summary = summarize_results(
            started_at,
            agents_scanned=len(all_agents),
            agents_eligible=len(eligible_agents),
            active_proposals=len(active_proposals),
            combinations_considered=len(pairs),
            results=results,
        )
        logger.info(f"Cycle summary {summary.model_dump_json(by_alias=True)}")
        return summary
