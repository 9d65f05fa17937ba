import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .core.config import Settings, get_settings
from .core.errors import (
    ScreeningError,
    generic_error_handler,
    request_validation_error_handler,
    screening_error_handler,
)
from .llm.anthropic_client import GatewayConfig
from .llm.gateway import ModelGateway
from .screening.orchestrator import ScreeningOrchestrator
from .screening.session_store import InMemorySessionStore, SessionStore
from .api.routes.screening import router as screening_router
from .api.routes.legacy import router as legacy_router
from .api.routes.misc import router as misc_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(
        "Screening service starting (env=%s, model API key configured: %s)",
        settings.APP_ENV, "yes" if settings.ANTHROPIC_API_KEY else "no",
    )
    yield
    await app.state.orchestrator.store.aclose()


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[ModelGateway] = None,
    store: Optional[SessionStore] = None,
) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    gateway = gateway or ModelGateway(GatewayConfig.from_settings(settings))
    store = store or InMemorySessionStore(ttl_seconds=settings.SESSION_TTL_SECONDS)

    app = FastAPI(title="Mental Health Screener", version=settings.API_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.orchestrator = ScreeningOrchestrator(gateway, store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.add_exception_handler(ScreeningError, screening_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    app.include_router(misc_router)
    app.include_router(screening_router)
    app.include_router(legacy_router)
    return app


app = create_app()


def cli() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run("mh_screener.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
