"""FastAPI application exposing the HyPlanner admin API."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import AdminAuthService
from .config import AppConfig, load_app_config
from .errors import AdminError
from .repository import AdminRepository, build_repository, utcnow
from .routers import ROUTERS
from .service import AdminSettingsService, Clock

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong!"


def _error_body(message: str, **extra: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"success": False, "message": message}
    payload.update({key: value for key, value in extra.items() if value is not None})
    return payload


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI, config: AppConfig) -> None:
    def _detail(exc: Exception) -> Optional[str]:
        return str(exc) if config.is_development else None

    @app.exception_handler(AdminError)
    async def handle_admin_error(request: Request, exc: AdminError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, details=exc.details))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=_error_body(_describe_validation_errors(exc)))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            message = "API endpoint not found"
        else:
            message = str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content=_error_body(message))

    # Store failures (SQLAlchemyError) land here too.
    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=_error_body(GENERIC_ERROR_MESSAGE, error=_detail(exc)))


def create_app(
    config: Optional[AppConfig] = None,
    repository: Optional[AdminRepository] = None,
    clock: Clock = utcnow,
) -> FastAPI:
    cfg = config or load_app_config()
    if repository is None:
        repository = build_repository(cfg.database)

    app = FastAPI(title="HyPlanner Admin API", version="0.1.0")
    app.state.config = cfg
    app.state.repository = repository
    app.state.clock = clock
    app.state.started_at = time.monotonic()
    app.state.auth = AdminAuthService.from_config(cfg.auth)
    app.state.settings = AdminSettingsService()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors.allow_origins,
        allow_credentials=cfg.cors.allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app, cfg)
    for router in ROUTERS:
        app.include_router(router, prefix=cfg.api_prefix)
    return app


def main() -> None:
    cfg = load_app_config()
    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(cfg)
    logger.info("HyPlanner Admin Backend listening on port %s (%s)", cfg.port, cfg.environment)
    logger.info("Health check: http://localhost:%s%s/health", cfg.port, cfg.api_prefix)
    uvicorn.run(app, host="0.0.0.0", port=cfg.port, log_level=cfg.log_level.lower())


if __name__ == "__main__":  # pragma: no cover
    main()
