"""
API request and response models.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from funnel_analytics.core.models import ReportConfig


# Request models
class ProjectPayload(BaseModel):
    """Raw records of one project in a multi-project request."""

    project_id: str = Field(..., description="Project identifier")
    contacts: list[dict[str, Any]] = Field(default_factory=list, description="Raw contact records")
    activities: list[dict[str, Any]] = Field(default_factory=list, description="Raw activity records")


class ReportRequest(BaseModel):
    """Request model for report, dashboard and export endpoints."""

    contacts: list[dict[str, Any]] = Field(default_factory=list, description="Raw contact records")
    activities: list[dict[str, Any]] = Field(default_factory=list, description="Raw activity records")
    config: ReportConfig | None = Field(None, description="Optional report configuration")
    activities_version: str | None = Field(
        None,
        description="Caller-supplied version of the activity set; replaces the activity fingerprint in cache keys"
    )
    projects: list[ProjectPayload] | None = Field(
        None,
        description="Several projects to report on together as project \"all\"; top-level contacts and activities are ignored when set"
    )


# Response models
class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(default="1.0.0", description="API version")


class CacheInvalidationResponse(BaseModel):
    """Response model for cache invalidation."""

    project_id: str = Field(..., description="Project whose cached reports were dropped")
    removed: int = Field(..., description="Number of cache entries removed")
