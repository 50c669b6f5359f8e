from typing import Annotated

from fastapi import Depends, Query

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def clamp_limit(limit: int) -> int:
    return max(1, min(limit, MAX_PAGE_SIZE))


def get_limit(
    limit: int = Query(
        DEFAULT_PAGE_SIZE, ge=1, description="Maximum number of items to return"
    ),
) -> int:
    # Oversized pages are clamped rather than rejected.
    return clamp_limit(limit)


LimitParam = Annotated[int, Depends(get_limit)]
