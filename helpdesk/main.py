import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from helpdesk.api.routes import automation, metrics, ping, tickets
from helpdesk.core.config import get_settings
from helpdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from helpdesk.services import build_services, to_asyncpg_dsn

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    app.state.logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)
    app.state.tracer_provider = tracer_provider

    db_engine = create_async_engine(to_asyncpg_dsn(settings.postgres_dsn), future=True)
    session_factory = async_sessionmaker(db_engine, expire_on_commit=False)
    app.state.services = None
    try:
        services = build_services(settings, session_factory, engine=db_engine)
        await services.tickets.ensure_schema()
        app.state.services = services
    except Exception:
        logger.exception("Helpdesk services could not be initialised")
    try:
        yield
    finally:
        await db_engine.dispose()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    app.include_router(automation.router)
    app.include_router(metrics.router)
    return app


app = create_app()
