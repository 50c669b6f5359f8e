import logging

from fastapi import FastAPI

from apps.api.tenant.cache import TenantSlugCache
from apps.settings import settings
from core.fastapi.app import create_app

logger = logging.getLogger(__name__)


async def on_startup(app: FastAPI):
    logger.info("Application Starting Up ...")


async def on_shutdown(app: FastAPI):
    app.state.slug_cache.clear()
    logger.info("Application Shutting Down ...")


app = create_app(
    apps_dir="apps",
    on_startup=on_startup,
    on_shutdown=on_shutdown,
    state={"slug_cache": TenantSlugCache(ttl_seconds=settings.SLUG_CACHE_TTL_SECONDS)},
)


@app.get("/api/ping", summary="Ping the API", tags=["Health Check"])
def root():
    return {"status": "ok"}
