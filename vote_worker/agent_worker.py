"""
Standalone autonomous vote worker.

Runs worker cycles in a loop without the HTTP control surface:

    python -m vote_worker.agent_worker            # loop forever
    python -m vote_worker.agent_worker --once     # single cycle
    python -m vote_worker.agent_worker --dry-run  # analyze only, never submit
"""
import argparse
import asyncio
import sys
from typing import Optional, Sequence

from vote_worker.agent.worker_factory import build_orchestrator, build_services
from vote_worker.agent.cycle_orchestrator import CycleOptions
from vote_worker.config.worker_settings import WorkerRuntimeConfig, get_worker_runtime_config
from vote_worker.utils.logger import configure_module_logging, logger


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Autonomous governance vote worker")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument("--dry-run", action="store_true", help="Analyze proposals without submitting votes")
    return parser.parse_args(argv)


async def run_loop(config: WorkerRuntimeConfig) -> None:
    services = build_services()
    orchestrator = build_orchestrator(services)
    options = CycleOptions(
        dry_run=config.dry_run,
        max_concurrency=config.max_concurrency,
        throttle_delay_seconds=config.throttle_delay_seconds,
    )

    try:
        while True:
            try:
                await orchestrator.run_cycle(options)
            except Exception as e:
                logger.error(f"Cycle failed: {e}", exc_info=True)

            if config.run_once:
                return
            await asyncio.sleep(config.interval_seconds)
    finally:
        await services.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    flags = [flag for flag, enabled in (("--once", args.once), ("--dry-run", args.dry_run)) if enabled]
    config = get_worker_runtime_config(flags)

    configure_module_logging()
    if not config.enabled:
        logger.info("AGENT_WORKER_ENABLED is false; exiting.")
        return 0

    logger.info(f"Starting autonomous agent worker {config.model_dump()}")
    try:
        asyncio.run(run_loop(config))
    except KeyboardInterrupt:
        logger.info("Worker interrupted; exiting.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
