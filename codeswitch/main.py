"""FastAPI application entrypoint.

Routes:
    GET  /                 liveness string
    GET  /status           status, open connections, uptime
    GET  /api/languages    language picker entries
    POST /api/transcribe   multipart ``audioFile`` → transcribed text
    WS   /ws               session relay (sendText, detectLanguages, audio)

The Capabilities bundle (Live or Fallback mapper/translator/transcriber) is
built once during the lifespan and stored on app.state for injection via
Depends(). Missing API keys degrade to fallbacks; they never block startup.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from codeswitch import __version__
from codeswitch.api.v1.health import router as health_router
from codeswitch.api.v1.relay import router as relay_router
from codeswitch.api.v1.transcribe import router as transcribe_router
from codeswitch.core.config import Settings, settings
from codeswitch.core.exceptions import CodeswitchError
from codeswitch.services.capabilities import Capabilities, build_capabilities
from codeswitch.services.relay.registry import ConnectionRegistry


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


_configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)


def create_app(
    app_settings: Settings | None = None,
    capabilities: Capabilities | None = None,
) -> FastAPI:
    """Build the application. Tests pass their own capabilities."""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("app_startup", env=app_settings.app_env, port=app_settings.port)
        app.state.settings = app_settings
        app.state.capabilities = capabilities or build_capabilities(app_settings)
        app.state.registry = ConnectionRegistry()
        logger.info(
            "app_capabilities_ready",
            text_generation=app.state.capabilities.text_generation_live,
            speech_to_text=app.state.capabilities.speech_to_text_live,
            cors_origins=app_settings.allowed_origins,
        )
        yield
        logger.info("app_shutdown")
        await app.state.capabilities.aclose()

    app = FastAPI(
        title="Codeswitch",
        description="Mixed-language annotation and translation relay.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins,
        allow_credentials="*" not in app_settings.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(CodeswitchError)
    async def codeswitch_error_handler(request: Request, exc: CodeswitchError) -> JSONResponse:
        """Structured error response for all Codeswitch exceptions."""
        logger.warning(
            "request_failed",
            path=request.url.path,
            code=exc.code,
            status_code=exc.status_code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(health_router)
    app.include_router(transcribe_router)
    app.include_router(relay_router)
    return app


app = create_app()


def run() -> None:
    """Console entry point: serve ``app`` on the configured host and port."""
    uvicorn.run(
        "codeswitch.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
