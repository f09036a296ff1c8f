"""
Cache API routes.
"""

from fastapi import APIRouter

from funnel_analytics.api.dependencies import report_cache
from funnel_analytics.api.models import CacheInvalidationResponse

router = APIRouter()


@router.delete("/cache/{project_id}", response_model=CacheInvalidationResponse)
def invalidate_project_cache(project_id: str) -> CacheInvalidationResponse:
    """
    Drop every cached report for a project.

    Call this after the project's contacts or activities change.
    """
    removed = report_cache.invalidate(project_id)
    return CacheInvalidationResponse(project_id=project_id, removed=removed)
