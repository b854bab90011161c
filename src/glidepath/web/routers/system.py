"""System endpoints: health check."""

from fastapi import APIRouter, Depends

from glidepath import __version__
from glidepath.web.cache import CacheService
from glidepath.web.dependencies import get_cache
from glidepath.web.schemas import HealthResponse

router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse)
async def health(cache: CacheService = Depends(get_cache)):
    """API health check."""
    return HealthResponse(
        status="ok",
        version=__version__,
        cache_entries=len(cache),
    )
