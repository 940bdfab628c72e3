from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from vote_worker.agent.cycle_supervisor import CycleSupervisor
from vote_worker.exceptions import CycleInProgressError
from vote_worker.utils.logger import logger

router = APIRouter()


def get_supervisor(request: Request) -> CycleSupervisor:
    """The supervisor built by the application lifespan."""
    return request.app.state.supervisor


async def health(supervisor: CycleSupervisor = Depends(get_supervisor)) -> dict:
    return supervisor.health()


async def status(supervisor: CycleSupervisor = Depends(get_supervisor)) -> dict:
    return supervisor.status()


async def trigger_cycle(supervisor: CycleSupervisor = Depends(get_supervisor)):
    """Run a live cycle now and return its summary."""
    try:
        summary = await supervisor.execute_cycle()
    except CycleInProgressError as e:
        return JSONResponse(status_code=e.code, content={"error": e.message})
    except Exception as e:
        logger.error(f"Triggered cycle failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})
    return summary.model_dump(mode="json", by_alias=True)


async def trigger_dry_run(supervisor: CycleSupervisor = Depends(get_supervisor)):
    """Run a forced dry-run cycle; worker totals are not touched."""
    try:
        summary = await supervisor.execute_dry_run()
    except CycleInProgressError as e:
        return JSONResponse(status_code=e.code, content={"error": e.message})
    except Exception as e:
        logger.error(f"Dry-run cycle failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})
    return summary.model_dump(mode="json", by_alias=True)


router.add_api_route("/health", health, methods=["GET"])
router.add_api_route("/status", status, methods=["GET"])
router.add_api_route("/trigger", trigger_cycle, methods=["POST"])
router.add_api_route("/cycle/dry-run", trigger_dry_run, methods=["POST"])
