"""Wires the worker's collaborators together from environment settings."""
import logging
from dataclasses import dataclass
from typing import Optional

from vote_worker.agent.cycle_orchestrator import CycleOrchestrator
from vote_worker.agent.cycle_supervisor import CycleSupervisor
from vote_worker.agent.decision_engine import DecisionEngine
from vote_worker.config import common_settings
from vote_worker.config.worker_settings import WorkerRuntimeConfig
from vote_worker.services.analysis_service import GovernanceAnalyzer
from vote_worker.services.governance_client import GovernanceClient
from vote_worker.services.signing_service import PrivySigningClient
from vote_worker.services.social_service import TapestryClient
from vote_worker.services.transaction_builder import TransactionBuilderClient
from vote_worker.services.vote_database import InMemoryVoteDatabase, PostgresVoteDatabase, VoteDatabase

logger = logging.getLogger(__name__)


@dataclass
class WorkerServices:
    database: VoteDatabase
    governance: GovernanceClient
    tx_builder: TransactionBuilderClient
    signer: PrivySigningClient
    social: TapestryClient
    analyzer: GovernanceAnalyzer

    async def close(self) -> None:
        """Close every client and the database; one failing close does not stop the rest."""
        for resource in (self.governance, self.tx_builder, self.signer, self.social, self.database):
            try:
                await resource.close()
            except Exception as e:
                logger.error(f"Failed to close {type(resource).__name__}: {e}", exc_info=True)


def build_services(database: Optional[VoteDatabase] = None) -> WorkerServices:
    if database is None:
        if common_settings.USE_MEMORY_DATABASE:
            logger.warning("Using in-memory vote database; nothing will be persisted")
            database = InMemoryVoteDatabase()
        else:
            database = PostgresVoteDatabase()

    return WorkerServices(
        database=database,
        governance=GovernanceClient(),
        tx_builder=TransactionBuilderClient(),
        signer=PrivySigningClient(),
        social=TapestryClient(),
        analyzer=GovernanceAnalyzer(),
    )


def build_orchestrator(services: WorkerServices) -> CycleOrchestrator:
    engine = DecisionEngine(
        database=services.database,
        analyzer=services.analyzer,
        tx_builder=services.tx_builder,
        signer=services.signer,
        social=services.social,
    )
    return CycleOrchestrator(services.database, services.governance, engine)


def build_supervisor(services: WorkerServices, config: WorkerRuntimeConfig) -> CycleSupervisor:
    return CycleSupervisor(build_orchestrator(services), config)
