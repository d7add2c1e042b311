from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from src.domain.errors import CardDirectoryError
from src.infrastructure.config import Settings

logger = logging.getLogger("nfccards.api")


def add_default_middlewares(app: FastAPI, settings: Settings) -> None:
    # CORS configuration
    # Development/staging default to common local frontend origins;
    # production uses CORS_ORIGINS and falls back to a wildcard without credentials
    allowed_origins = list(settings.cors_origins) or ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allowed_origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


def add_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CardDirectoryError)
    async def _card_directory_error(request: Request, exc: CardDirectoryError) -> JSONResponse:
        logger.debug("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
