from __future__ import annotations

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.infrastructure.api.middlewares import add_default_middlewares, add_exception_handlers
from src.infrastructure.api.routes.auth_routes import router as auth_router
from src.infrastructure.api.routes.card_routes import router as card_router
from src.infrastructure.api.routes.role_routes import router as role_router
from src.infrastructure.config import Settings, configure_logging, load_settings


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings)
    app = FastAPI(
        title="NFC Cards Backend",
        version="0.1.0",
        description="""
        ## NFC Cards Backend API

        Binds physical NFC tags to holder profiles. Admins assign a tag once;
        anyone who scans the tag (or types its id) gets the bound profile,
        read-only.

        ### Features
        - **Card assignment**: One binding per tag, for good
        - **Lookup**: Public, by scanned serial number, tag link, or typed id
        - **Deactivation**: One-way; deactivated tags look unknown to scanners
        - **Roles**: The first admin bootstraps themselves, admins manage the rest

        ### Authentication
        Admin endpoints require a Supabase access token in the Authorization
        header:
        ```
        Authorization: Bearer your-jwt-token
        ```

        ### Error Responses
        - **401 Unauthorized**: Missing or invalid authentication token
        - **403 Forbidden**: The caller is not an admin
        - **404 Not Found**: No active card for the tag, or unknown card record
        - **409 Conflict**: The tag has already been assigned
        - **422 Unprocessable Entity**: Validation error or unusable scan result
        - **500 Internal Server Error**: Unexpected server error
        """,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    add_default_middlewares(app, settings)
    add_exception_handlers(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the NFC Cards API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "nfccards-backend", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(auth_router)
    app.include_router(role_router)
    app.include_router(card_router)
    return app


app = create_app()
