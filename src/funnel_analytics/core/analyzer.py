"""Main analysis orchestrator."""

import logging
from collections import Counter
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from funnel_analytics.core.aggregator import aggregate_channel
from funnel_analytics.core.metrics import (
    calculate_funnel_metrics,
    calculate_period_rates,
    calculate_pipeline_conversion,
    calculate_stage_distribution,
)
from funnel_analytics.core.models import (
    Activity,
    Channel,
    ChannelReport,
    Contact,
    DashboardReport,
    Overview,
    ProjectData,
    ReportConfig,
)
from funnel_analytics.core.report import assemble_report, load_report_layout

logger = logging.getLogger(__name__)


def parse_contacts(records: Iterable[Any]) -> List[Contact]:
    """
    Validate raw contact records.

    Records that fail validation are logged and skipped.
    """
    contacts = []
    for index, record in enumerate(records):
        if isinstance(record, Contact):
            contacts.append(record)
            continue
        try:
            contacts.append(Contact.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping malformed contact #{index}: {e.error_count()} error(s): {e.errors()[0]['msg']}")
    return contacts


def parse_activities(records: Iterable[Any]) -> List[Activity]:
    """
    Validate raw activity records.

    Records that fail validation (e.g. unknown type) are logged and skipped.
    """
    activities = []
    for index, record in enumerate(records):
        if isinstance(record, Activity):
            activities.append(record)
            continue
        try:
            activities.append(Activity.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping malformed activity #{index}: {e.error_count()} error(s): {e.errors()[0]['msg']}")
    return activities


def compute_report(
    contacts: List[Contact],
    activities: List[Activity],
    channel: Channel,
    config: Optional[ReportConfig] = None,
    layout: Optional[dict] = None
) -> ChannelReport:
    """
    Compute the funnel report for one channel.

    Args:
        contacts: Prospect contacts (the dataAllocated / prospectData baseline)
        activities: Activities of any channel; only `channel` is used
        channel: Channel to report on
        config: Report configuration (granularity, timezone, thresholds)
        layout: Parsed report layout; defaults to the configured layout file

    Returns:
        ChannelReport with periods, snapshots, metrics, charts and rows
    """
    config = config or ReportConfig()

    table = aggregate_channel(contacts, activities, channel, config)
    metrics = calculate_funnel_metrics(table)
    period_rates = calculate_period_rates(table)

    metadata = {
        "project_id": config.project_id,
        "timezone": config.timezone,
        "total_contacts": len(contacts),
        "total_activities": sum(1 for a in activities if a.type == channel),
    }

    report = assemble_report(table, metrics, period_rates, metadata, layout)

    logger.info(
        f"Computed {channel.value} report: granularity={config.granularity.value}, "
        f"periods={len(report.periods)}"
    )
    return report


def analyze_project(
    contacts: List[Contact],
    activities: List[Activity],
    config: Optional[ReportConfig] = None
) -> DashboardReport:
    """
    Build the cross-channel dashboard for one project (or a combined view).

    Returns:
        DashboardReport with overview counts, pipeline conversion, stage
        distribution and a ChannelReport per configured channel
    """
    config = config or ReportConfig()
    layout = load_report_layout()

    by_channel = Counter(activity.type.value for activity in activities)
    overview = Overview(
        total_prospects=len(contacts),
        total_activities=len(activities),
        activities_by_channel={channel.value: by_channel.get(channel.value, 0) for channel in Channel}
    )

    channels = {
        channel.value: compute_report(contacts, activities, channel, config, layout)
        for channel in config.channels
    }

    metadata = {
        "project_id": config.project_id,
        "timezone": config.timezone,
        "granularity": config.granularity.value,
        "channels": [channel.value for channel in config.channels],
    }

    logger.info(
        f"Computed dashboard for project {config.project_id or 'all'}: "
        f"{len(contacts)} contacts, {len(activities)} activities"
    )

    return DashboardReport(
        metadata=metadata,
        overview=overview,
        pipeline=calculate_pipeline_conversion(contacts, activities, config),
        stage_distribution=calculate_stage_distribution(contacts, activities, config),
        channels=channels
    )


def combine_projects(projects: List[ProjectData]) -> ProjectData:
    """
    Concatenate several projects into one "all projects" view.

    Records are not deduplicated across projects.
    """
    contacts = []
    activities = []
    for project in projects:
        contacts.extend(project.contacts)
        activities.extend(project.activities)

    return ProjectData(project_id="all", contacts=contacts, activities=activities)
