"""FastAPI application factory."""

# Import timezone enforcement (sets TZ=UTC)
import asyncio
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from functools import partial

import structlog
import uvicorn
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from attendify.api.routes import admin, events, offers, payments, users
from attendify.core import timezone  # noqa: F401
from attendify.core.config import Settings, configure_logging
from attendify.core.database import create_engine, setup_db_session
from attendify.services.attendify import Attendify
from attendify.services.exceptions import AttendifyError
from attendify.services.ipfs.pinata_client import PinataClient
from attendify.services.ledger.gateway import LedgerGateway
from attendify.uow import create_uow_factory
from attendify.workers.sweeper_worker import run_sweeper_worker

logger = structlog.get_logger()

WORKER_RESTART_DELAY = 1.0


async def supervise_worker(
    name: str, run: Callable[[], Awaitable[None]], shutdown_event: asyncio.Event
) -> None:
    """Run a background loop until shutdown, starting it again whenever it dies.

    A crash is logged with its traceback and the loop is restarted after
    WORKER_RESTART_DELAY seconds. Cancelling the supervisor cancels the loop.
    """
    restarts = 0
    while not shutdown_event.is_set():
        try:
            await run()
        except Exception as exc:
            logger.error(
                "worker.crashed",
                worker=name,
                error_type=type(exc).__name__,
                restarts=restarts,
                exc_info=exc,
            )
        else:
            logger.warning("worker.returned", worker=name, restarts=restarts)

        await asyncio.sleep(WORKER_RESTART_DELAY)
        restarts += 1
        if not shutdown_event.is_set():
            logger.info("worker.restarting", worker=name, restarts=restarts)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire the service graph onto app.state and run the sweeper alongside the API.

    - Startup: Configure logging, build the store, ledger gateway and orchestrator,
      start the sweeper
    - Shutdown: Stop the sweeper, dispose the database engine
    """
    settings = Settings()  # type: ignore[call-arg]
    configure_logging(settings)

    engine = create_engine(settings.database_url, settings.db_pool_size)
    session_factory = setup_db_session(engine)
    uow_factory = create_uow_factory(session_factory)

    attendify = Attendify(
        uow_factory,
        LedgerGateway(settings.network_configs()),
        PinataClient(settings.pinata_jwt, timeout=settings.pinata_timeout_seconds),
        engine=engine,
        max_tickets=settings.max_tickets,
        default_slots=settings.default_user_slots,
    )
    await attendify.init()

    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.attendify = attendify

    shutdown_event = asyncio.Event()
    sweeper_task = asyncio.create_task(
        supervise_worker("sweeper", partial(run_sweeper_worker, attendify, settings), shutdown_event)
    )

    logger.info(
        "application.startup",
        db_url=settings.database_url.split("@")[-1],
        networks=[n.name for n in settings.network_configs()],
    )

    yield

    logger.info("application.shutdown")
    shutdown_event.set()
    sweeper_task.cancel()
    await asyncio.gather(sweeper_task, return_exceptions=True)

    await attendify.shutdown()


async def attendify_error_handler(request: Request, exc: AttendifyError) -> JSONResponse:
    """Render domain errors as 400 with the reason in the envelope."""
    logger.info(
        "api.request_rejected",
        path=request.url.path,
        error_type=type(exc).__name__,
        reason=exc.reason,
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"result": None, "error": exc.reason},
    )


def create_app() -> FastAPI:
    """Build the API with CORS, the domain error envelope and all routers."""
    settings = Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="Attendify Backend API",
        description="Proof-of-attendance NFTs on the XRP Ledger",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AttendifyError, attendify_error_handler)  # type: ignore[arg-type]

    app.include_router(events.router)  # prefix="/api/events" in definition
    app.include_router(offers.router)
    app.include_router(users.router)
    app.include_router(payments.router)
    app.include_router(admin.router)

    @app.get("/health")
    async def health_check(response: Response):
        """Probe the store and list the ledger networks this instance serves."""
        networks = sorted(n.name.lower() for n in app.state.attendify.gateway.networks)
        try:
            async with app.state.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("health.store_unreachable", error=str(exc))
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {"status": "degraded", "store": "unreachable", "networks": networks}

        return {"status": "healthy", "networks": networks}

    return app


app = create_app()


def main() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    settings = Settings()  # type: ignore[call-arg]
    uvicorn.run("attendify.app:app", host=settings.host, port=settings.port)
