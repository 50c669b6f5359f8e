from typing import Annotated
from fastapi import Depends, Request

from apps.api.tenant.cache import TenantSlugCache


def get_slug_cache(request: Request) -> TenantSlugCache:
    return request.app.state.slug_cache


SlugCacheDependency = Annotated[TenantSlugCache, Depends(get_slug_cache)]
