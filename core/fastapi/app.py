import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.middleware.cors import CORSMiddleware

from apps.settings import settings
from core.db.registry import discover_modules, load_models
from core.exceptions import AppException
from core.logging import configure_logging

logger = logging.getLogger(__name__)

LifecycleHook = Callable[[FastAPI], Awaitable[None]]


async def app_exception_handler(request: Request, exc: AppException):
    return ORJSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ORJSONResponse(
        status_code=400,
        content={
            "error": "Invalid request body",
            "errorCode": "INVALID_ARGUMENT",
            "details": jsonable_encoder(exc.errors()),
        },
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return ORJSONResponse(
        status_code=409,
        content={"error": "Conflicting write", "errorCode": "CONFLICT"},
    )


def create_app(
    apps_dir: str = "apps",
    on_startup: Optional[LifecycleHook] = None,
    on_shutdown: Optional[LifecycleHook] = None,
    state: Optional[Dict[str, Any]] = None,
    api_prefix: str = "/api",
) -> FastAPI:
    """
    Build the FastAPI application.

    Every ``<apps_dir>/api/<app>/router.py`` exposing ``router`` is mounted
    under ``api_prefix``. Objects passed in ``state`` are attached to
    ``app.state`` before the first request so dependencies can read them.
    """
    configure_logging(settings.LOG_LEVEL)
    load_models(apps_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if on_startup:
            await on_startup(app)
        yield
        if on_shutdown:
            await on_shutdown(app)

    app = FastAPI(
        title="Valet API",
        debug=settings.DEBUG,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )

    for key, value in (state or {}).items():
        setattr(app.state, key, value)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)

    for module in discover_modules(apps_dir, "router"):
        router = getattr(module, "router", None)
        if router is None:
            continue
        app.include_router(router, prefix=api_prefix)
        logger.debug(f"Mounted router from {module.__name__}")

    return app
