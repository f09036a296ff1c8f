"""Metrics calculation - conversion rates and pipeline outcomes."""

from collections import Counter
from typing import List, Optional

import pytz

from funnel_analytics.core.constants import (
    CALL_CONNECTED_COUNTERS,
    CALL_FUNNEL_STAGES,
    DEFAULT_STAGE,
    EMAIL_FUNNEL_STAGES,
    LINKEDIN_FUNNEL_STAGES,
)
from funnel_analytics.core.models import (
    Activity,
    Channel,
    Contact,
    FunnelTable,
    Granularity,
    PipelineConversion,
    ReportConfig,
)
from funnel_analytics.core.periods import date_activities

FUNNEL_STAGES = {
    Channel.CALL: CALL_FUNNEL_STAGES,
    Channel.EMAIL: EMAIL_FUNNEL_STAGES,
    Channel.LINKEDIN: LINKEDIN_FUNNEL_STAGES,
}


def percentage(value: float, baseline: float) -> float:
    """
    Percentage of value over baseline, rounded to one decimal.

    A zero baseline yields 0.0.
    """
    if not baseline:
        return 0.0
    return round((value / baseline) * 100, 1)


def _connected_calls(counters: dict) -> int:
    return sum(counters.get(key, 0) for key in CALL_CONNECTED_COUNTERS)


def calculate_funnel_metrics(table: FunnelTable) -> dict[str, float]:
    """
    Overall rates for one channel's funnel.

    Every funnel stage (and follow-ups, where tracked) is measured against
    prospectData as `<stage>Rate`. Channel-specific rates are added on top.
    """
    summary = table.summary
    baseline = summary.get("prospectData", 0)

    stages = list(FUNNEL_STAGES[table.channel])
    if "followups" in summary:
        stages.append("followups")

    metrics = {
        f"{stage}Rate": percentage(summary.get(stage, 0), baseline)
        for stage in stages
    }

    if table.channel == Channel.CALL:
        totals = Counter()
        for snapshot in table.snapshots.values():
            totals.update(snapshot)
        metrics["connectRate"] = percentage(_connected_calls(totals), totals["totalCalls"])
    elif table.channel == Channel.EMAIL:
        metrics["responseRate"] = percentage(
            summary.get("totalResponses", 0),
            summary.get("emailsSent", 0)
        )
    else:
        metrics["acceptanceRate"] = percentage(
            summary.get("connectionAccepted", 0),
            summary.get("connectionRequestSent", 0)
        )

    return metrics


def calculate_period_rates(table: FunnelTable) -> dict[str, dict[str, float]]:
    """Per-period percentages used by the percentage rows of a report."""
    rates = {}
    for period in table.periods:
        snapshot = table.snapshots.get(period, {})

        if table.channel == Channel.CALL:
            total_calls = snapshot.get("totalCalls", 0)
            rates[period] = {
                "connectRate": percentage(_connected_calls(snapshot), total_calls),
                "freshCallShare": percentage(snapshot.get("freshCalls", 0), total_calls),
            }
        elif table.channel == Channel.EMAIL:
            rates[period] = {
                "responseRate": percentage(
                    snapshot.get("totalResponses", 0),
                    snapshot.get("emailsSent", 0)
                ),
            }
        else:
            rates[period] = {
                "acceptanceRate": percentage(
                    snapshot.get("connectionAccepted", 0),
                    snapshot.get("connectionRequestSent", 0)
                ),
            }

    return rates


def _activity_status(activity: Activity) -> Optional[str]:
    status = activity.status if activity.type != Channel.CALL else activity.call_status
    if status and status.strip():
        return status
    return None


def effective_stages(
    contacts: List[Contact],
    activities: List[Activity],
    tz=pytz.UTC
) -> list[str]:
    """
    Effective pipeline stage for each contact, aligned with `contacts`.

    The status of the contact's latest dated activity wins, then the
    contact's stored stage, then "New".
    """
    latest = {}
    for item in date_activities(activities, Granularity.DAY, tz):
        if item.day is None or not item.activity.contact_id:
            continue
        status = _activity_status(item.activity)
        if status:
            latest[item.activity.contact_id] = status

    stages = []
    for contact in contacts:
        stage = latest.get(contact.id) if contact.id else None
        stages.append(stage or contact.stage or DEFAULT_STAGE)
    return stages


def calculate_pipeline_conversion(
    contacts: List[Contact],
    activities: List[Activity],
    config: Optional[ReportConfig] = None
) -> PipelineConversion:
    """Pipeline outcome counts over all prospects, by effective stage."""
    config = config or ReportConfig()
    stages = effective_stages(contacts, activities, config.tz)
    total = len(stages)

    won = sum(1 for stage in stages if stage in config.won_stages)
    lost = sum(1 for stage in stages if stage in config.lost_stages)
    meetings = sum(1 for stage in stages if stage in config.meeting_stages)
    sql = sum(1 for stage in stages if stage in config.sql_stages)
    cip = sum(1 for stage in stages if stage in config.cip_stages)

    return PipelineConversion(
        total=total,
        won=won,
        lost=lost,
        meetings=meetings,
        sql=sql,
        cip=cip,
        win_rate=percentage(won, total),
        meeting_rate=percentage(meetings, total),
        sql_rate=percentage(sql, total),
        cip_rate=percentage(cip, total)
    )


def calculate_stage_distribution(
    contacts: List[Contact],
    activities: List[Activity],
    config: Optional[ReportConfig] = None
) -> dict[str, int]:
    """Contacts per effective stage, most common first (ties by label)."""
    config = config or ReportConfig()
    counts = Counter(effective_stages(contacts, activities, config.tz))
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return dict(ordered)
