"""Funnel aggregation - fold classified activities into period counters."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from funnel_analytics.core.classifiers import (
    classify_call_status,
    classify_email_response,
    classify_linkedin_status,
    classify_linkedin_volume,
    classify_stages,
)
from funnel_analytics.core.constants import (
    CALL_COUNTERS,
    CALL_FUNNEL_STAGES,
    CALL_SUMMARY,
    EMAIL_COUNTERS,
    EMAIL_FUNNEL_STAGES,
    EMAIL_SUMMARY,
    LINKEDIN_COUNTERS,
    LINKEDIN_FUNNEL_STAGES,
    LINKEDIN_SUMMARY,
)
from funnel_analytics.core.models import (
    Activity,
    CallStatus,
    Channel,
    Contact,
    FunnelTable,
    ReportConfig,
)
from funnel_analytics.core.periods import (
    DatedActivity,
    build_period_list,
    date_activities,
    format_period_key,
    resolve_contact_date,
)
from funnel_analytics.core.touches import (
    find_followup_contacts,
    group_call_touches,
    group_linkedin_messages,
)

logger = logging.getLogger(__name__)

CHANNEL_COUNTERS = {
    Channel.CALL: CALL_COUNTERS,
    Channel.EMAIL: EMAIL_COUNTERS,
    Channel.LINKEDIN: LINKEDIN_COUNTERS,
}

CHANNEL_SUMMARIES = {
    Channel.CALL: CALL_SUMMARY,
    Channel.EMAIL: EMAIL_SUMMARY,
    Channel.LINKEDIN: LINKEDIN_SUMMARY,
}


@dataclass
class StageMembership:
    """
    Contacts that reached each funnel stage.

    Each contact is recorded once per stage, against the period of the
    first activity that qualified it.
    """
    stages: Dict[str, Dict[str, Optional[str]]] = field(default_factory=dict)

    def record(self, stage: str, contact_id: str, period: Optional[str]) -> None:
        self.stages.setdefault(stage, {}).setdefault(contact_id, period)

    def count(self, stage: str) -> int:
        return len(self.stages.get(stage, {}))

    def counts_by_period(self, stage: str) -> Counter:
        return Counter(
            period for period in self.stages.get(stage, {}).values()
            if period is not None
        )


def fold_memberships(
    dated: List[DatedActivity],
    classify: Callable[[Activity], set]
) -> StageMembership:
    """Fold chronologically ordered activities into stage memberships."""
    membership = StageMembership()
    for item in dated:
        contact_id = item.activity.contact_id
        if not contact_id:
            continue
        for stage in classify(item.activity):
            membership.record(stage, contact_id, item.period)
    return membership


@dataclass
class _Table:
    """Mutable working state for one channel's aggregation."""
    periods: List[str]
    snapshots: Dict[str, Dict[str, int]]
    status_breakdown: Dict[str, Dict[str, int]]

    @classmethod
    def empty(cls, periods: List[str], counters: List[str]) -> "_Table":
        return cls(
            periods=periods,
            snapshots={period: {counter: 0 for counter in counters} for period in periods},
            status_breakdown={period: {} for period in periods},
        )

    def bump(self, period: str, counter: str, amount: int = 1) -> None:
        self.snapshots[period][counter] += amount

    def bump_status(self, period: str, label: str) -> None:
        breakdown = self.status_breakdown[period]
        breakdown[label] = breakdown.get(label, 0) + 1

    def apply_memberships(self, membership: StageMembership, stages: List[str]) -> None:
        for stage in stages:
            for period, count in membership.counts_by_period(stage).items():
                self.bump(period, stage, count)

    def apply_tallies(self, tallies: Dict[str, Dict[str, int]]) -> None:
        for period, counts in tallies.items():
            for counter, count in counts.items():
                self.bump(period, counter, count)

    def total(self, counter: str) -> int:
        return sum(snapshot[counter] for snapshot in self.snapshots.values())


def aggregate_channel(
    contacts: List[Contact],
    activities: List[Activity],
    channel: Channel,
    config: Optional[ReportConfig] = None
) -> FunnelTable:
    """
    Build the period-indexed funnel table for one channel.

    Only activities of the requested channel are used. Periods are the
    union of contact creation dates and activity dates; every counter
    starts at zero for every period. Records without a resolvable date
    still count toward the overall summary.
    """
    config = config or ReportConfig()
    tz = config.tz
    granularity = config.granularity

    channel_activities = [a for a in activities if a.type == channel]
    dated = date_activities(channel_activities, granularity, tz)
    contact_days = [resolve_contact_date(contact, tz) for contact in contacts]

    periods = build_period_list(contact_days + [item.day for item in dated], granularity)
    table = _Table.empty(periods, CHANNEL_COUNTERS[channel])

    for day in contact_days:
        if day is not None:
            table.bump(format_period_key(day, granularity), "dataAllocated")

    undated = sum(1 for item in dated if item.period is None)
    if undated:
        logger.debug(f"{undated} {channel.value} activities have no resolvable date")

    if channel == Channel.CALL:
        totals = _aggregate_calls(table, dated, config)
    elif channel == Channel.EMAIL:
        totals = _aggregate_emails(table, dated, config)
    else:
        totals = _aggregate_linkedin(table, dated, config)

    totals["prospectData"] = len(contacts)
    summary = {key: totals.get(key, 0) for key in CHANNEL_SUMMARIES[channel]}

    return FunnelTable(
        channel=channel,
        granularity=granularity,
        periods=table.periods,
        snapshots=table.snapshots,
        status_breakdown=table.status_breakdown,
        summary=summary,
    )


def _stage_totals(membership: StageMembership, stages: List[str]) -> Dict[str, int]:
    return {stage: membership.count(stage) for stage in stages}


def _stage_classifier(config: ReportConfig) -> Callable[[Activity], set]:
    return lambda activity: classify_stages(activity, config.sql_notes_min_length)


def _aggregate_calls(
    table: _Table,
    dated: List[DatedActivity],
    config: ReportConfig
) -> Dict[str, int]:
    for item in dated:
        if item.period is None:
            continue
        table.bump(item.period, "totalCalls")

        counter = classify_call_status(item.activity)
        if counter:
            table.bump(item.period, counter)

        status = CallStatus.parse(item.activity.call_status)
        if status is not None:
            table.bump_status(item.period, status.value)

    table.apply_tallies(group_call_touches(dated))

    membership = fold_memberships(dated, _stage_classifier(config))
    table.apply_memberships(membership, CALL_FUNNEL_STAGES)

    totals = _stage_totals(membership, CALL_FUNNEL_STAGES)
    for counter in ("totalCalls", "freshCalls", "followUps"):
        totals[counter] = table.total(counter)
    return totals


def _aggregate_emails(
    table: _Table,
    dated: List[DatedActivity],
    config: ReportConfig
) -> Dict[str, int]:
    for item in dated:
        if item.period is None:
            continue
        table.bump(item.period, "emailsSent")

        label, is_response = classify_email_response(item.activity)
        if label is not None:
            table.bump_status(item.period, label)
        if is_response:
            table.bump(item.period, "totalResponses")

    membership = fold_memberships(dated, _stage_classifier(config))
    table.apply_memberships(membership, EMAIL_FUNNEL_STAGES)

    followups = find_followup_contacts(dated, Channel.EMAIL)
    _apply_followups(table, followups)

    totals = _stage_totals(membership, EMAIL_FUNNEL_STAGES)
    totals["followups"] = len(followups)
    totals["emailsSent"] = table.total("emailsSent")
    totals["totalResponses"] = table.total("totalResponses")
    return totals


def _aggregate_linkedin(
    table: _Table,
    dated: List[DatedActivity],
    config: ReportConfig
) -> Dict[str, int]:
    for item in dated:
        if item.period is None:
            continue
        for counter in classify_linkedin_volume(item.activity):
            table.bump(item.period, counter)

        label = classify_linkedin_status(item.activity)
        if label is not None:
            table.bump_status(item.period, label)

    table.apply_tallies(group_linkedin_messages(dated))

    membership = fold_memberships(dated, _stage_classifier(config))
    table.apply_memberships(membership, LINKEDIN_FUNNEL_STAGES)

    followups = find_followup_contacts(dated, Channel.LINKEDIN)
    _apply_followups(table, followups)

    totals = _stage_totals(membership, LINKEDIN_FUNNEL_STAGES)
    totals["followups"] = len(followups)
    totals["connectionRequestSent"] = table.total("connectionRequestSent")
    totals["connectionAccepted"] = table.total("connectionAccepted")
    return totals


def _apply_followups(table: _Table, followups: Dict[str, Optional[str]]) -> None:
    for period in followups.values():
        if period is not None:
            table.bump(period, "followups")


def aggregate_calls(contacts, activities, config=None) -> FunnelTable:
    return aggregate_channel(contacts, activities, Channel.CALL, config)


def aggregate_emails(contacts, activities, config=None) -> FunnelTable:
    return aggregate_channel(contacts, activities, Channel.EMAIL, config)


def aggregate_linkedin(contacts, activities, config=None) -> FunnelTable:
    return aggregate_channel(contacts, activities, Channel.LINKEDIN, config)
