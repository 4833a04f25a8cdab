import logging
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logging_config import configure_logging
from .repositories import Repository, build_repository
from .routers import books as books_router
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "books", "description": "CRUD operations for Book records."},
]


def _error(
    status_code: int,
    message: str,
    errors: Optional[list] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {"success": False, "message": message}
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Render HTTP errors (including unknown routes) in the error envelope.
    """
    return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return 400 for bodies that are not valid JSON or carry wrongly typed fields.

    Response format:
        {
            "success": false,
            "message": "Invalid request body",
            "errors": [... pydantic/fastapi error details ...]
        }
    """
    logger.warning("Request validation failed on %s %s: %s", request.method, request.url.path, exc.errors())
    return _error(400, "Invalid request body", errors=jsonable_errors(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error(500, books_router.INTERNAL_ERROR_MESSAGE)


def jsonable_errors(exc: RequestValidationError) -> list:
    """Strip non-serialisable context (e.g. exception instances) from validation errors."""
    return [
        {key: value for key, value in err.items() if key in {"type", "loc", "msg"}}
        for err in exc.errors()
    ]


# PUBLIC_INTERFACE
def create_app(repository: Optional[Repository] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        repository: Book store to serve; built from settings when omitted.
        settings: Application settings; read from the environment when omitted.

    Returns:
        FastAPI: The configured application, with the repository on app.state.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_file)

    app = FastAPI(
        title="Books Backend",
        description="Backend API service for a books inventory with pluggable storage backends.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.settings = settings
    app.state.repository = repository if repository is not None else build_repository(settings)

    # '*' (or an empty list) allows every origin
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check(request: Request):
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"success": True, "message": "Healthy", "backend": request.app.state.settings.persistence_backend}

    app.include_router(books_router.router)
    logger.info("Books backend configured with %s store", settings.persistence_backend)
    return app


app = create_app()


# PUBLIC_INTERFACE
def run() -> None:
    """Serve the default application with uvicorn on HOST:PORT."""
    settings = get_settings()
    logger.info("Server is running on port %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
