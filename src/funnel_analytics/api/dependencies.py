"""
Shared request handling for API routes.
"""

import logging
import os
from typing import List, Tuple

from fastapi import HTTPException

from funnel_analytics.api.models import ReportRequest
from funnel_analytics.core.analyzer import (
    analyze_project,
    combine_projects,
    compute_report,
    parse_activities,
    parse_contacts,
)
from funnel_analytics.core.cache import ReportCache
from funnel_analytics.core.models import (
    Activity,
    Channel,
    ChannelReport,
    Contact,
    DashboardReport,
    ProjectData,
    ReportConfig,
)
from funnel_analytics.core.report import ReportLayoutError

logger = logging.getLogger(__name__)

CACHE_ENV_VAR = "FUNNEL_CACHE_MAX_ENTRIES"
DEFAULT_CACHE_ENTRIES = 256


def cache_size_from_env() -> int:
    """Read the cache size from the environment, falling back to the default."""
    raw = os.environ.get(CACHE_ENV_VAR)
    if raw is None:
        return DEFAULT_CACHE_ENTRIES
    try:
        size = int(raw)
    except ValueError:
        size = 0
    if size < 1:
        logger.warning(
            f"Ignoring invalid {CACHE_ENV_VAR}={raw!r}, using {DEFAULT_CACHE_ENTRIES}"
        )
        return DEFAULT_CACHE_ENTRIES
    return size


# Process-wide report cache
report_cache = ReportCache(max_entries=cache_size_from_env())


def parse_request(request: ReportRequest) -> Tuple[List[Contact], List[Activity], ReportConfig]:
    """
    Validate the request's records.

    A multi-project request is combined into the "all" project.
    """
    config = request.config or ReportConfig()
    if request.projects is None:
        return parse_contacts(request.contacts), parse_activities(request.activities), config

    combined = combine_projects([
        ProjectData(
            project_id=project.project_id,
            contacts=parse_contacts(project.contacts),
            activities=parse_activities(project.activities)
        )
        for project in request.projects
    ])
    config = config.model_copy(update={"project_id": combined.project_id})
    return combined.contacts, combined.activities, config


def build_channel_report(channel: Channel, request: ReportRequest) -> ChannelReport:
    """Parse the request and compute (or fetch) the channel report."""
    contacts, activities, config = parse_request(request)

    key = report_cache.make_key(
        channel.value, contacts, activities, config, request.activities_version
    )
    try:
        return report_cache.get_or_compute(
            key, lambda: compute_report(contacts, activities, channel, config)
        )
    except ReportLayoutError as e:
        logger.error(f"Report layout error for {channel.value}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


def build_dashboard(request: ReportRequest) -> DashboardReport:
    """Parse the request and compute (or fetch) the dashboard."""
    contacts, activities, config = parse_request(request)

    key = report_cache.make_key(
        "dashboard", contacts, activities, config, request.activities_version
    )
    try:
        return report_cache.get_or_compute(
            key, lambda: analyze_project(contacts, activities, config)
        )
    except ReportLayoutError as e:
        logger.error(f"Report layout error for dashboard: {e}")
        raise HTTPException(status_code=500, detail=str(e))
