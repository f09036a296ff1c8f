"""Constants for Funnel Analytics."""

# Month abbreviations used in period keys ("5 Jan '24", "Jan '24")
MONTH_ABBREVIATIONS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"
]

# Call numbering vocabulary
FIRST_CALL = "1st call"

# Activities without an owning contact are grouped under this id
UNKNOWN_CONTACT = "unknown"

# ===== Call channel =====

# Mutually exclusive status counters (one per call activity)
CALL_STATUS_COUNTERS = [
    "interested",
    "notInterested",
    "ring",
    "busy",
    "hangUp",
    "callBack",
    "switchOff",
    "detailsShared",
    "future",
    "invalid",
    "demoBooked",
    "unknownStatus"
]

CALL_FUNNEL_STAGES = [
    "callSent",
    "accepted",
    "cip",
    "meetingProposed",
    "scheduled",
    "completed",
    "sql"
]

CALL_COUNTERS = (
    ["dataAllocated"]
    + CALL_STATUS_COUNTERS
    + ["totalCalls", "freshCalls", "followUps"]
    + CALL_FUNNEL_STAGES
)

# Words in nextAction that indicate a proposed meeting
MEETING_KEYWORDS = ["meeting", "demo", "call"]

# ===== Email channel =====

EMAIL_FUNNEL_STAGES = [
    "emailSent",
    "accepted",
    "cip",
    "meetingProposed",
    "scheduled",
    "completed",
    "sql"
]

EMAIL_COUNTERS = (
    ["dataAllocated", "emailsSent", "totalResponses"]
    + EMAIL_FUNNEL_STAGES
    + ["followups"]
)

# ===== LinkedIn channel =====

LINKEDIN_FUNNEL_STAGES = [
    "connectionSent",
    "accepted",
    "cip",
    "meetingProposed",
    "scheduled",
    "completed",
    "sql"
]

LINKEDIN_VOLUME_COUNTERS = [
    "connectionRequestSent",
    "existingConnection",
    "connectionAccepted",
    "firstMessageSent",
    "followupMessagesSent"
]

LINKEDIN_COUNTERS = (
    ["dataAllocated"]
    + LINKEDIN_VOLUME_COUNTERS
    + LINKEDIN_FUNNEL_STAGES
    + ["followups"]
)

EXISTING_CONNECTION = "Existing Connect"

# ===== Pipeline =====

DEFAULT_STAGE = "New"

# Statuses a call counts as "connected" (someone picked up and talked)
CALL_CONNECTED_COUNTERS = [
    "interested",
    "notInterested",
    "callBack",
    "future",
    "detailsShared",
    "demoBooked"
]

# Overall funnel order per channel (first entry is always the prospect baseline)
CALL_SUMMARY = [
    "prospectData", "callSent", "accepted", "cip", "meetingProposed",
    "scheduled", "completed", "sql", "totalCalls", "freshCalls", "followUps"
]
EMAIL_SUMMARY = [
    "prospectData", "emailSent", "accepted", "followups", "cip", "meetingProposed",
    "scheduled", "completed", "sql", "emailsSent", "totalResponses"
]
LINKEDIN_SUMMARY = [
    "prospectData", "connectionSent", "accepted", "followups", "cip", "meetingProposed",
    "scheduled", "completed", "sql", "connectionRequestSent", "connectionAccepted"
]
