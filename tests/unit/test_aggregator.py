"""Unit tests for funnel aggregation."""

import pytest
import json
from pathlib import Path
from funnel_analytics.core.aggregator import (
    StageMembership,
    aggregate_calls,
    aggregate_channel,
    aggregate_emails,
    aggregate_linkedin,
    fold_memberships,
)
from funnel_analytics.core.analyzer import parse_activities, parse_contacts
from funnel_analytics.core.classifiers import classify_email_stages
from funnel_analytics.core.constants import CALL_COUNTERS, EMAIL_COUNTERS, LINKEDIN_COUNTERS
from funnel_analytics.core.models import Activity, Channel, Contact, Granularity, ReportConfig
from funnel_analytics.core.periods import date_activities


@pytest.fixture
def sample_project():
    """Load the sample project from fixture file."""
    fixture_path = Path(__file__).parent.parent / "fixtures" / "sample_project.json"
    with open(fixture_path, 'r') as f:
        data = json.load(f)
    return parse_contacts(data["contacts"]), parse_activities(data["activities"])


# ===== Scenarios =====

def test_single_first_call():
    """Test one contact with one fresh Interested call."""
    contacts = [Contact(id="1", createdAt="2024-01-05")]
    activities = [
        Activity(contactId="1", type="call", callStatus="Interested", callNumber="1st call", callDate="2024-01-05")
    ]

    table = aggregate_calls(contacts, activities)

    assert table.periods == ["5 Jan '24"]
    snapshot = table.snapshots["5 Jan '24"]
    assert snapshot["dataAllocated"] == 1
    assert snapshot["interested"] == 1
    assert snapshot["totalCalls"] == 1
    assert snapshot["freshCalls"] == 1
    assert snapshot["followUps"] == 0


def test_second_call_same_day():
    """Test that a 2nd call on the same day is a follow-up."""
    contacts = [Contact(id="1", createdAt="2024-01-05")]
    activities = [
        Activity(contactId="1", type="call", callStatus="Interested", callNumber="1st call", callDate="2024-01-05"),
        Activity(contactId="1", type="call", callStatus="Busy", callNumber="2nd call", callDate="2024-01-05"),
    ]

    snapshot = aggregate_calls(contacts, activities).snapshots["5 Jan '24"]

    assert snapshot["totalCalls"] == 2
    assert snapshot["busy"] == 1
    assert snapshot["interested"] == 1
    assert snapshot["freshCalls"] == 1
    assert snapshot["followUps"] == 1


def test_email_meeting_completed_non_exclusive():
    """Test that one Meeting Completed email hits accepted, completed and sql."""
    activities = [
        Activity(contactId="2", type="email", status="Meeting Completed", emailDate="2024-02-01")
    ]

    table = aggregate_emails([], activities)

    snapshot = table.snapshots["1 Feb '24"]
    assert snapshot["accepted"] == 1
    assert snapshot["completed"] == 1
    assert snapshot["sql"] == 1
    assert table.summary["accepted"] == 1
    assert table.summary["completed"] == 1
    assert table.summary["sql"] == 1


@pytest.mark.parametrize("channel", list(Channel))
def test_empty_inputs(channel):
    """Test that empty inputs give an empty table, not an error."""
    table = aggregate_channel([], [], channel)

    assert table.periods == []
    assert table.snapshots == {}
    assert table.status_breakdown == {}
    assert table.summary["prospectData"] == 0


def test_undated_activity_excluded():
    """Test that an activity with no dates is in no period."""
    contacts = [Contact(id="1", createdAt="2024-01-05")]
    activities = [
        Activity(contactId="1", type="call", callStatus="Ring", callNumber="1st call", callDate="2024-01-05"),
        Activity(contactId="1", type="call", callStatus="Busy"),
    ]

    table = aggregate_calls(contacts, activities)

    assert table.periods == ["5 Jan '24"]
    assert table.snapshots["5 Jan '24"]["totalCalls"] == 1
    assert table.snapshots["5 Jan '24"]["busy"] == 0


# ===== Properties =====

def test_every_counter_initialized(sample_project):
    """Test that every period carries the full counter set."""
    contacts, activities = sample_project
    for channel, counters in [
        (Channel.CALL, CALL_COUNTERS),
        (Channel.EMAIL, EMAIL_COUNTERS),
        (Channel.LINKEDIN, LINKEDIN_COUNTERS),
    ]:
        table = aggregate_channel(contacts, activities, channel)
        for period in table.periods:
            assert set(table.snapshots[period]) == set(counters)


def test_conservation_of_total_calls(sample_project):
    """Test sum of totalCalls equals the number of dated calls."""
    contacts, activities = sample_project
    table = aggregate_calls(contacts, activities)

    dated_calls = [
        item for item in date_activities([a for a in activities if a.type == Channel.CALL], Granularity.DAY)
        if item.day is not None
    ]
    assert sum(s["totalCalls"] for s in table.snapshots.values()) == len(dated_calls) == 5


def test_busy_is_mutually_exclusive():
    """Test a Busy call increments exactly one status counter."""
    from funnel_analytics.core.constants import CALL_STATUS_COUNTERS

    activities = [Activity(contactId="1", type="call", callStatus="Busy", callDate="2024-01-05")]
    snapshot = aggregate_calls([], activities).snapshots["5 Jan '24"]

    assert sum(snapshot[counter] for counter in CALL_STATUS_COUNTERS) == 1
    assert snapshot["busy"] == 1


def test_idempotent(sample_project):
    """Test that aggregating twice gives identical output."""
    contacts, activities = sample_project
    for channel in Channel:
        first = aggregate_channel(contacts, activities, channel).model_dump_json()
        second = aggregate_channel(contacts, activities, channel).model_dump_json()
        assert first == second


def test_inputs_not_mutated(sample_project):
    """Test that aggregation leaves its inputs untouched."""
    contacts, activities = sample_project
    before = [a.model_dump() for a in activities]

    aggregate_calls(contacts, activities)

    assert [a.model_dump() for a in activities] == before


# ===== Sample project =====

def test_sample_call_table(sample_project):
    """Test call counters for the sample project."""
    contacts, activities = sample_project
    table = aggregate_calls(contacts, activities)

    assert table.periods == ["5 Jan '24", "12 Feb '24", "3 Mar '24", "3 Mar '25"]

    jan = table.snapshots["5 Jan '24"]
    assert jan["dataAllocated"] == 2
    assert jan["totalCalls"] == 3
    assert jan["interested"] == 1
    assert jan["busy"] == 1
    assert jan["callBack"] == 1
    assert jan["freshCalls"] == 1
    assert jan["followUps"] == 2
    assert jan["callSent"] == 2
    assert jan["cip"] == 2
    assert jan["meetingProposed"] == 1
    assert jan["scheduled"] == 1

    feb = table.snapshots["12 Feb '24"]
    assert feb["completed"] == 1
    assert feb["sql"] == 1
    assert feb["freshCalls"] == 1

    march = table.snapshots["3 Mar '24"]
    assert march["unknownStatus"] == 1
    assert march["followUps"] == 1
    assert table.status_breakdown["3 Mar '24"] == {"unknown": 1}

    assert table.snapshots["3 Mar '25"]["dataAllocated"] == 1
    assert table.snapshots["3 Mar '25"]["totalCalls"] == 0


def test_sample_call_summary(sample_project):
    """Test the overall call funnel."""
    contacts, activities = sample_project
    summary = aggregate_calls(contacts, activities).summary

    assert summary == {
        "prospectData": 4,
        "callSent": 3,
        "accepted": 1,
        "cip": 2,
        "meetingProposed": 1,
        "scheduled": 1,
        "completed": 1,
        "sql": 1,
        "totalCalls": 5,
        "freshCalls": 2,
        "followUps": 3,
    }


def test_sample_email_table(sample_project):
    """Test email counters for the sample project."""
    contacts, activities = sample_project
    table = aggregate_emails(contacts, activities)

    assert table.periods == [
        "5 Jan '24", "6 Jan '24", "20 Jan '24", "12 Feb '24", "13 Feb '24", "3 Mar '25"
    ]
    assert table.snapshots["5 Jan '24"]["emailsSent"] == 1
    assert table.status_breakdown["5 Jan '24"] == {"Bounce": 1}
    assert table.snapshots["20 Jan '24"]["totalResponses"] == 1
    assert table.snapshots["20 Jan '24"]["followups"] == 1
    assert table.snapshots["13 Feb '24"]["accepted"] == 1
    assert table.snapshots["13 Feb '24"]["sql"] == 1

    assert table.summary == {
        "prospectData": 4,
        "emailSent": 3,
        "accepted": 2,
        "followups": 1,
        "cip": 1,
        "meetingProposed": 0,
        "scheduled": 0,
        "completed": 1,
        "sql": 1,
        "emailsSent": 4,
        "totalResponses": 2,
    }


def test_sample_linkedin_table(sample_project):
    """Test LinkedIn counters for the sample project."""
    contacts, activities = sample_project
    table = aggregate_linkedin(contacts, activities)

    assert table.periods == ["5 Jan '24", "8 Jan '24", "15 Jan '24", "12 Feb '24", "3 Mar '25"]
    assert table.snapshots["5 Jan '24"]["connectionRequestSent"] == 1
    assert table.snapshots["5 Jan '24"]["connectionSent"] == 1
    assert table.snapshots["8 Jan '24"]["connectionAccepted"] == 1
    assert table.snapshots["8 Jan '24"]["firstMessageSent"] == 1
    assert table.snapshots["15 Jan '24"]["followupMessagesSent"] == 1
    assert table.snapshots["15 Jan '24"]["followups"] == 1
    assert table.snapshots["15 Jan '24"]["scheduled"] == 1
    assert table.snapshots["3 Mar '25"]["existingConnection"] == 1
    assert table.snapshots["3 Mar '25"]["sql"] == 1

    assert table.summary["connectionSent"] == 1
    assert table.summary["accepted"] == 1
    assert table.summary["followups"] == 1
    assert table.summary["sql"] == 1


def test_month_granularity(sample_project):
    """Test monthly buckets for calls."""
    contacts, activities = sample_project
    table = aggregate_calls(contacts, activities, ReportConfig(granularity="month"))

    assert table.periods == ["Jan '24", "Feb '24", "Mar '24", "Mar '25"]
    assert table.snapshots["Jan '24"]["totalCalls"] == 3
    assert table.snapshots["Mar '24"]["dataAllocated"] == 0


def test_year_granularity(sample_project):
    """Test yearly buckets for email."""
    contacts, activities = sample_project
    table = aggregate_emails(contacts, activities, ReportConfig(granularity="year"))

    assert table.periods == ["2024", "2025"]
    assert table.snapshots["2024"]["emailsSent"] == 4
    assert table.snapshots["2024"]["dataAllocated"] == 3


def test_timezone_shifts_period():
    """Test that the report timezone decides the calendar day."""
    activities = [Activity(contactId="1", type="call", callDate="2024-01-05T20:00:00Z")]

    utc = aggregate_calls([], activities)
    kolkata = aggregate_calls([], activities, ReportConfig(timezone="Asia/Kolkata"))

    assert utc.periods == ["5 Jan '24"]
    assert kolkata.periods == ["6 Jan '24"]


def test_membership_attributed_to_first_qualifying_activity():
    """Test that a contact is counted once, in the period that qualified it."""
    activities = [
        Activity(contactId="1", type="email", status="Interested", emailDate="2024-01-20"),
        Activity(contactId="1", type="email", status="Interested", emailDate="2024-01-05"),
    ]

    table = aggregate_emails([], activities)

    assert table.snapshots["5 Jan '24"]["accepted"] == 1
    assert table.snapshots["20 Jan '24"]["accepted"] == 0
    assert table.summary["accepted"] == 1


def test_undated_activities_count_in_summary_only():
    """Test that undated qualifying activities still reach the overall funnel."""
    activities = [Activity(contactId="1", type="email", status="Interested")]

    table = aggregate_emails([], activities)

    assert table.periods == []
    assert table.summary["accepted"] == 1


def test_fold_memberships_records_first_period():
    """Test the explicit membership accumulator."""
    activities = date_activities([
        Activity(contactId="1", type="email", status="Meeting Proposed", emailDate="2024-01-05"),
        Activity(contactId="1", type="email", status="Meeting Proposed", emailDate="2024-01-07"),
        Activity(contactId="2", type="email", status="Meeting Proposed", emailDate="2024-01-07"),
    ], Granularity.DAY)

    membership = fold_memberships(activities, classify_email_stages)

    assert isinstance(membership, StageMembership)
    assert membership.count("meetingProposed") == 2
    assert membership.counts_by_period("meetingProposed") == {"5 Jan '24": 1, "7 Jan '24": 1}
    assert membership.count("sql") == 0
