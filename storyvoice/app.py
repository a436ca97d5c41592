"""FastAPI application factory."""

import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.health import create_health_router
from .api.voice import router as voice_api_router
from .core.config import Settings, get_settings
from .domain.errors import ErrorKind
from .lifecycle import lifespan
from .middleware import ErrorHandlerMiddleware, RequestIdMiddleware
from .services.voice_router import VoiceRequestRouter
from .version import __version__

logger = logging.getLogger(__name__)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies get the same 400 shape as missing fields."""
    logger.info(f"Invalid request body on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Invalid request body",
            "errorKind": ErrorKind.VALIDATION.value,
        },
    )


def create_app(
    settings: Optional[Settings] = None,
    voice_router: Optional[VoiceRequestRouter] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (defaults to environment/.env)
        voice_router: Pre-built router; when given, the lifespan skips wiring
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="StoryVoice",
        description="Character voice narration with provider fallback and caching",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.voice_router = voice_router

    # Outermost last: RequestId wraps ErrorHandler so 500s carry the header
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials="*" not in settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(voice_api_router)
    app.include_router(create_health_router())

    @app.get("/")
    async def root() -> Dict[str, str]:
        """Root endpoint for API info"""
        return {"message": "StoryVoice API", "version": __version__, "status": "running"}

    return app
