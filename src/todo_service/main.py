from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import NotFoundError
from .listeners import TodoChangeListener
from .logging import get_logger, setup_logging
from .repositories import ChangeEventRepository, get_change_event_repository, get_repository
from .routers import change_events as change_events_router
from .routers import todos as todos_router
from .services import ChangeEventService, TodoService
from .settings import Settings, get_settings

logger = get_logger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "CRUD operations for Todo items with filtering, sorting, and pagination.",
    },
    {
        "name": "todo-changes",
        "description": "Read-only access to the change events recorded for every todo mutation.",
    },
]


def _field_errors(exc: RequestValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        name = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc)
        errors.setdefault(name or "request", err.get("msg", "Validation error"))
    return errors


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": [... pydantic/fastapi error details ...],
                "errors": {"<field>": "<message>", ...}
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": jsonable_encoder(exc.errors()),
                "errors": _field_errors(exc),
            },
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": "NotFound", "detail": exc.message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_error",
            method=request.method,
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={"error": "InternalServerError", "message": "An unexpected error occurred"},
        )


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    clock: Optional[Callable[[], datetime]] = None,
    event_store: Optional[ChangeEventRepository] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Wires the configured todo repository and change event store, registers the
    change listener on the repository and exposes the services on app.state.

    Args:
        settings: Settings to use; read from the environment when omitted.
        clock: Time source shared by the repository and the change listener.
        event_store: Change event store to use instead of the configured one.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Todo Backend",
        description="Backend API service for managing todos with an append-only change event trail.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    repository = get_repository(settings, clock=clock)
    event_store = event_store or get_change_event_repository(settings)
    repository.add_listener(TodoChangeListener(event_store, clock=clock, strict=settings.change_events_strict))

    app.state.settings = settings
    app.state.todo_service = TodoService(repository)
    app.state.change_event_service = ChangeEventService(event_store)

    _register_exception_handlers(app)

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check() -> Dict[str, Any]:
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(todos_router.router)
    app.include_router(change_events_router.router)

    logger.info(
        "app_configured",
        backend=settings.persistence_backend,
        change_events_strict=settings.change_events_strict,
    )
    return app


app = create_app()
