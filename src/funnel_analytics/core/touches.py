"""
Touch grouping - fresh vs follow-up activity detection.

All functions expect activities already in chronological order
(see periods.date_activities).
"""

from collections import defaultdict
from typing import Optional

from funnel_analytics.core.constants import FIRST_CALL
from funnel_analytics.core.models import Channel
from funnel_analytics.core.periods import DatedActivity


def first_call_periods(dated_calls: list[DatedActivity]) -> dict[str, str]:
    """Period of each contact's first explicit "1st call"."""
    periods = {}
    for item in dated_calls:
        if item.period is None:
            continue
        if item.activity.call_number == FIRST_CALL:
            periods.setdefault(item.activity.owner, item.period)
    return periods


def is_fresh_call(item: DatedActivity, first_periods: dict[str, str]) -> bool:
    """
    A call is fresh when it is marked "1st call", or carries no call number
    and falls in the same period as its contact's first call.
    """
    call_number = item.activity.call_number
    if call_number == FIRST_CALL:
        return True
    if call_number:
        return False
    return first_periods.get(item.activity.owner) == item.period


def group_call_touches(dated_calls: list[DatedActivity]) -> dict[str, dict[str, int]]:
    """
    Split dated calls per period into freshCalls and followUps.

    Every dated call lands in exactly one of the two, so
    freshCalls + followUps == totalCalls for each period.
    """
    first_periods = first_call_periods(dated_calls)
    tallies = defaultdict(lambda: {"freshCalls": 0, "followUps": 0})

    for item in dated_calls:
        if item.period is None:
            continue
        if is_fresh_call(item, first_periods):
            tallies[item.period]["freshCalls"] += 1
        else:
            tallies[item.period]["followUps"] += 1

    return dict(tallies)


def find_followup_contacts(
    dated: list[DatedActivity],
    channel: Channel
) -> dict[str, Optional[str]]:
    """
    Contacts that received follow-up outreach.

    Email: more than one activity, or more than one note-bearing activity.
    LinkedIn: more than one note-bearing activity.

    Returns contact id -> period of the activity that crossed the threshold
    (None when that activity has no resolvable date). Activities without a
    contact are ignored.
    """
    counts = defaultdict(int)
    noted = defaultdict(int)
    followups = {}

    for item in dated:
        contact_id = item.activity.contact_id
        if not contact_id or contact_id in followups:
            continue

        counts[contact_id] += 1
        if item.activity.has_notes:
            noted[contact_id] += 1

        crossed = noted[contact_id] > 1
        if channel == Channel.EMAIL and counts[contact_id] > 1:
            crossed = True

        if crossed:
            followups[contact_id] = item.period

    return followups


def group_linkedin_messages(dated: list[DatedActivity]) -> dict[str, dict[str, int]]:
    """
    Count LinkedIn messages per period.

    A contact's first note-bearing activity is its first message; every
    later note-bearing activity is a follow-up message.
    """
    messaged = set()
    tallies = defaultdict(lambda: {"firstMessageSent": 0, "followupMessagesSent": 0})

    for item in dated:
        if item.period is None or not item.activity.has_notes:
            continue

        owner = item.activity.owner
        if owner in messaged:
            tallies[item.period]["followupMessagesSent"] += 1
        else:
            messaged.add(owner)
            tallies[item.period]["firstMessageSent"] += 1

    return dict(tallies)
