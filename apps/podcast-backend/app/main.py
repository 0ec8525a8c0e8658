from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from app.api.errors import register_exception_handlers
from app.api.router import api_router
from app.api.routers.health import router as health_router
from app.core.errors import ProviderConfigurationError
from app.core.logging import configure_logging
from app.core.settings import get_settings
from app.dependency_injection import build_container
from app.services.contracts import ConversationServiceProtocol, DatabaseServiceProtocol

settings = get_settings()
configure_logging(settings.effective_log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("starting podcast backend", extra={"app_env": settings.app_env})

    container = build_container(settings)
    database_service = container.resolve(DatabaseServiceProtocol)
    await database_service.connect()
    logger.info("database connection pool initialized")

    try:
        container.resolve(ConversationServiceProtocol)
    except ProviderConfigurationError:
        logger.exception("turn source is not configured; preview requests will be rejected")

    app.state.settings = settings
    app.state.container = container

    try:
        yield
    finally:
        await database_service.disconnect()
        logger.info("podcast backend shutdown complete")


app = FastAPI(
    title="Notebook Pod Backend",
    version="0.1.0",
    docs_url="/docs" if settings.enable_swagger else None,
    redoc_url="/redoc" if settings.enable_swagger else None,
    openapi_url="/openapi.json" if settings.enable_swagger else None,
    lifespan=lifespan,
)

register_exception_handlers(app)
app.include_router(health_router)
app.include_router(api_router, prefix="/api")
