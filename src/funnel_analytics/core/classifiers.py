"""
Channel classifiers - map one activity to the funnel stages it satisfies.

Call status counters are mutually exclusive (at most one per activity).
Email and LinkedIn stage memberships are independent: one status can
satisfy several stages at once. A completed meeting implies acceptance.
"""

from typing import Optional

from funnel_analytics.core.constants import (
    EXISTING_CONNECTION,
    MEETING_KEYWORDS,
)
from funnel_analytics.core.models import (
    Activity,
    CallStatus,
    Channel,
    EmailStatus,
    LinkedInStatus,
)

# Every CallStatus member is mapped; None means "no status counter"
CALL_STATUS_TABLE: dict[CallStatus, Optional[str]] = {
    CallStatus.INTERESTED: "interested",
    CallStatus.NOT_INTERESTED: "notInterested",
    CallStatus.RING: "ring",
    CallStatus.BUSY: "busy",
    CallStatus.HANG_UP: "hangUp",
    CallStatus.CALL_BACK: "callBack",
    CallStatus.SWITCH_OFF: "switchOff",
    CallStatus.DETAILS_SHARED: "detailsShared",
    CallStatus.FUTURE: "future",
    CallStatus.INVALID: "invalid",
    CallStatus.DEMO_BOOKED: "demoBooked",
    CallStatus.EXISTING: None,
    CallStatus.DEMO_COMPLETED: None,
    CallStatus.UNKNOWN: "unknownStatus",
}

# Email statuses that do not count as a reply
EMAIL_NON_RESPONSES = {EmailStatus.NO_REPLY, EmailStatus.BOUNCE, EmailStatus.UNKNOWN}


def is_truthy_flag(value) -> bool:
    """LinkedIn Yes/No flags arrive as "Yes" strings or booleans."""
    return value is True or value == "Yes"


def has_long_notes(activity: Activity, min_length: int = 50) -> bool:
    return bool(activity.conversation_notes) and len(activity.conversation_notes) > min_length


# ===== Calls =====

def classify_call_status(activity: Activity) -> Optional[str]:
    """
    Return the single status counter a call increments, if any.

    Absent status increments nothing; unrecognized strings land in
    "unknownStatus".
    """
    status = CallStatus.parse(activity.call_status)
    if status is None:
        return None
    return CALL_STATUS_TABLE[status]


def classify_call_stages(activity: Activity, sql_notes_min_length: int = 50) -> set[str]:
    """Funnel stages a single call satisfies for its contact."""
    stages = set()
    status = CallStatus.parse(activity.call_status)

    if activity.call_date:
        stages.add("callSent")

    if status in (CallStatus.INTERESTED, CallStatus.DETAILS_SHARED, CallStatus.DEMO_BOOKED):
        stages.add("accepted")

    if status in (CallStatus.INTERESTED, CallStatus.CALL_BACK, CallStatus.FUTURE):
        stages.add("cip")

    if activity.next_action:
        next_action = activity.next_action.lower()
        if any(word in next_action for word in MEETING_KEYWORDS):
            stages.add("meetingProposed")

    if status == CallStatus.DEMO_BOOKED or activity.next_action_date:
        stages.add("scheduled")

    if status == CallStatus.DEMO_COMPLETED:
        stages.add("completed")

    if status == CallStatus.DEMO_COMPLETED or (
        status == CallStatus.INTERESTED and has_long_notes(activity, sql_notes_min_length)
    ):
        stages.add("sql")

    return stages


# ===== Email =====

def classify_email_stages(activity: Activity, sql_notes_min_length: int = 50) -> set[str]:
    """Funnel stages a single email satisfies for its contact."""
    stages = set()
    status = EmailStatus.parse(activity.status)

    if activity.email_date:
        stages.add("emailSent")

    if status in (
        EmailStatus.INTERESTED,
        EmailStatus.MEETING_PROPOSED,
        EmailStatus.MEETING_SCHEDULED,
        EmailStatus.MEETING_COMPLETED
    ):
        stages.add("accepted")

    if status in (EmailStatus.INTERESTED, EmailStatus.OUT_OF_OFFICE):
        stages.add("cip")

    if status == EmailStatus.MEETING_PROPOSED:
        stages.add("meetingProposed")

    if status == EmailStatus.MEETING_SCHEDULED or activity.next_action_date:
        stages.add("scheduled")

    if status == EmailStatus.MEETING_COMPLETED:
        stages.add("completed")

    if status == EmailStatus.MEETING_COMPLETED or (
        status == EmailStatus.INTERESTED and has_long_notes(activity, sql_notes_min_length)
    ):
        stages.add("sql")

    return stages


def classify_email_response(activity: Activity) -> tuple[Optional[str], bool]:
    """
    Status label for the breakdown and whether the email counts as a reply.

    Returns (None, False) when the email has no status.
    """
    status = EmailStatus.parse(activity.status)
    if status is None:
        return None, False
    return status.value, status not in EMAIL_NON_RESPONSES


# ===== LinkedIn =====

def classify_linkedin_stages(activity: Activity) -> set[str]:
    """Funnel stages a single LinkedIn touch satisfies for its contact."""
    stages = set()
    status = LinkedInStatus.parse(activity.status)

    if is_truthy_flag(activity.ln_request_sent):
        stages.add("connectionSent")

    if is_truthy_flag(activity.connected) or status == LinkedInStatus.MEETING_COMPLETED:
        stages.add("accepted")

    if status == LinkedInStatus.CIP:
        stages.add("cip")

    if status == LinkedInStatus.MEETING_PROPOSED:
        stages.add("meetingProposed")

    if status == LinkedInStatus.MEETING_SCHEDULED:
        stages.add("scheduled")

    if status == LinkedInStatus.MEETING_COMPLETED:
        stages.add("completed")

    if status in (LinkedInStatus.MEETING_COMPLETED, LinkedInStatus.INTERESTED):
        stages.add("sql")

    return stages


def classify_linkedin_volume(activity: Activity) -> set[str]:
    """Per-activity LinkedIn volume counters."""
    counters = set()

    if is_truthy_flag(activity.ln_request_sent):
        counters.add("connectionRequestSent")
    elif activity.ln_request_sent == EXISTING_CONNECTION:
        counters.add("existingConnection")

    if is_truthy_flag(activity.connected):
        counters.add("connectionAccepted")

    return counters


def classify_linkedin_status(activity: Activity) -> Optional[str]:
    status = LinkedInStatus.parse(activity.status)
    return status.value if status is not None else None


# ===== Shared =====

def classify_stages(
    activity: Activity,
    sql_notes_min_length: int = 50
) -> set[str]:
    """Dispatch to the stage classifier for the activity's channel."""
    if activity.type == Channel.CALL:
        return classify_call_stages(activity, sql_notes_min_length)
    if activity.type == Channel.EMAIL:
        return classify_email_stages(activity, sql_notes_min_length)
    return classify_linkedin_stages(activity)
