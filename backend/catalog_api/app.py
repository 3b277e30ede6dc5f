"""Application factory for the Catalog API."""
from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .routers import actors, admin, health, movies
from .services.credits import CreditsProvider
from .services.ratings import RatingsProvider
from .settings import CatalogSettings
from .state import AppState


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    message = str(first.get("msg") or "Invalid request")
    message = message.removeprefix("Value error, ")
    location = [str(part) for part in first.get("loc") or () if part not in ("body", "query", "path")]
    if location and first.get("type") != "value_error":
        message = f"{'.'.join(location)}: {message}"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message, "errors": jsonable_errors(errors)},
    )


def jsonable_errors(errors: list) -> list[dict]:
    return [
        {"loc": list(error.get("loc") or ()), "msg": str(error.get("msg")), "type": error.get("type")}
        for error in errors
    ]


def create_app(
    settings: CatalogSettings | None = None,
    *,
    credits_provider: CreditsProvider | None = None,
    ratings_provider: RatingsProvider | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application."""

    resolved_settings = settings or CatalogSettings()
    app_state = AppState(
        settings=resolved_settings,
        credits_provider=credits_provider,
        ratings_provider=ratings_provider,
    )

    app = FastAPI(title="Catalog API", version="0.1.0", debug=resolved_settings.debug)
    app.state.app_state = app_state
    app.state.settings = app_state.settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=resolved_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    # Admin routes go first so "/movies/admin" is not captured as an id or slug.
    for router in (health.router, admin.router, movies.router, actors.router):
        app.include_router(router)

    return app
