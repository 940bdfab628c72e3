from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from vote_worker.agent.worker_factory import build_services, build_supervisor
from vote_worker.config.worker_settings import WorkerRuntimeConfig, get_worker_runtime_config
from vote_worker.routers.worker_router import router as worker_router
from vote_worker.utils.logger import configure_module_logging, logger

configure_module_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build collaborators, run the first cycle and start the loop; tear down on exit."""
    config: WorkerRuntimeConfig = app.state.config
    logger.info(f"Vote worker starting with config {config.public_view()}")

    services = build_services()
    supervisor = build_supervisor(services, config)
    app.state.supervisor = supervisor
    supervisor.mark_started()

    if config.enabled:
        # The first cycle runs right away; the HTTP surface stays responsive meanwhile
        supervisor.start_background_loop(run_immediately=True)
    else:
        logger.info("AGENT_WORKER_ENABLED is false; serving status only")

    try:
        yield
    finally:
        logger.info("Vote worker shutting down...")
        supervisor.mark_stopped()
        await supervisor.stop()
        await services.close()


def create_app(config: Optional[WorkerRuntimeConfig] = None) -> FastAPI:
    app = FastAPI(title="Vote Worker", version="0.1.0", lifespan=lifespan)
    app.state.config = config or get_worker_runtime_config()
    app.include_router(worker_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from vote_worker.config.common_settings import WORKER_PORT

    uvicorn.run(app, host="0.0.0.0", port=WORKER_PORT)
