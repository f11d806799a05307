import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import eduadmin.core.models  # noqa: F401  registers every table on Base.metadata
from eduadmin.api.v1.batches.router import router as batches_router
from eduadmin.api.v1.students.router import router as students_router
from eduadmin.core.config import settings
from eduadmin.core.logging_config import configure_logging
from eduadmin.db.session import create_tables

logger = logging.getLogger(__name__)


def _error_body(message: str) -> dict:
    return {"message": message, "error": message}


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # Drop the "body"/"path"/"query"/"header" prefix, keep the field path
    loc = [str(part) for part in first.get("loc", ())[1:]]
    field = ".".join(loc)
    msg = first.get("msg", "Invalid value")
    return f"{field}: {msg}" if field else msg


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        logger.info("AUTO_CREATE_TABLES set, creating missing tables")
        await create_tables()
    yield


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="EduAdmin Backend", lifespan=lifespan)

    # CORS: allow the admin frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(students_router)
    app.include_router(batches_router)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Malformed ids and missing fields are client errors (400), not 422
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(_validation_message(exc)),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal server error"),
        )

    @app.get("/api/v1/health", tags=["health"])
    async def health_check() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
