import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from resume_service.config import Settings, get_settings
from resume_service.errors import AuthenticationError, ServiceError
from resume_service.logger import configure_logging, get_logger
from resume_service.routes import build_router
from resume_service.storage import LocalUploadStorage
from resume_service.tokens import TokenService
from resume_service.uploads import UploadHandler

logger = get_logger(__name__)


def error_response(
    status_code: int,
    message: str,
    details: str | None = None,
    headers: dict | None = None,
) -> JSONResponse:
    content = {"error": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    storage = LocalUploadStorage(settings.uploads_dir)
    tokens = TokenService(settings.jwt_secret, ttl_seconds=settings.token_ttl_seconds)
    uploads = UploadHandler(storage, max_size_bytes=settings.max_upload_size_bytes)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        storage.init()
        logger.info("Serving uploads from %s", storage.root.resolve())
        yield

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        logger.info("%s %s -> %d (%.3fs)", request.method, request.url.path, response.status_code, elapsed)
        return response

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.details or exc.message)
        elif not isinstance(exc, AuthenticationError):
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return error_response(exc.status_code, exc.message, exc.details, headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(_: Request, exc: RequestValidationError):
        errors = exc.errors()
        missing_fields = [
            ".".join(str(item) for item in error["loc"] if item != "body") or "body"
            for error in errors
            if error.get("type") == "missing"
        ]
        if missing_fields:
            message = f"missing parameters: {', '.join(missing_fields)}"
        else:
            message = "invalid request parameters"
        details = "; ".join(error.get("msg", "") for error in errors) or None
        return error_response(400, message, details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_: Request, exc: StarletteHTTPException):
        message = str(exc.detail) if exc.detail else "request failed"
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Server error", str(exc) or exc.__class__.__name__)

    app.include_router(build_router(tokens, uploads))
    return app
