"""Pydantic models for Funnel Analytics."""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Optional, Union

import pytz
from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)

from funnel_analytics.core.constants import UNKNOWN_CONTACT

DateLike = Union[datetime, date, str]


# ===== Enumerations =====

class Channel(str, Enum):
    """Outreach channel of an activity."""

    CALL = "call"
    EMAIL = "email"
    LINKEDIN = "linkedin"


class Granularity(str, Enum):
    """Bucket size for period keys."""

    DAY = "day"
    MONTH = "month"
    YEAR = "year"


class StatusEnum(str, Enum):
    """Base for closed status vocabularies with an explicit unknown bucket."""

    @classmethod
    def parse(cls, value: Any):
        """
        Map a raw status string onto the vocabulary.

        Returns None for absent/blank values and UNKNOWN for any
        non-empty string outside the vocabulary. Matching is exact.
        """
        if not isinstance(value, str) or not value.strip():
            return None
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class CallStatus(StatusEnum):
    INTERESTED = "Interested"
    NOT_INTERESTED = "Not Interested"
    RING = "Ring"
    BUSY = "Busy"
    HANG_UP = "Hang Up"
    CALL_BACK = "Call Back"
    SWITCH_OFF = "Switch Off"
    DETAILS_SHARED = "Details Shared"
    FUTURE = "Future"
    INVALID = "Invalid"
    DEMO_BOOKED = "Demo Booked"
    EXISTING = "Existing"
    DEMO_COMPLETED = "Demo Completed"
    UNKNOWN = "unknown"


class EmailStatus(StatusEnum):
    NO_REPLY = "No Reply"
    NOT_INTERESTED = "Not Interested"
    OUT_OF_OFFICE = "Out of Office"
    MEETING_PROPOSED = "Meeting Proposed"
    MEETING_SCHEDULED = "Meeting Scheduled"
    INTERESTED = "Interested"
    WRONG_PERSON = "Wrong Person"
    BOUNCE = "Bounce"
    OPT_OUT = "Opt-Out"
    MEETING_COMPLETED = "Meeting Completed"
    UNKNOWN = "unknown"


class LinkedInStatus(StatusEnum):
    CIP = "CIP"
    NO_REPLY = "No Reply"
    NOT_INTERESTED = "Not Interested"
    MEETING_PROPOSED = "Meeting Proposed"
    MEETING_SCHEDULED = "Meeting Scheduled"
    IN_PERSON_MEETING = "In-Person Meeting"
    MEETING_COMPLETED = "Meeting Completed"
    SQL = "SQL"
    TECH_DISCUSSION = "Tech Discussion"
    WON = "WON"
    LOST = "Lost"
    LOW_POTENTIAL_OPEN = "Low Potential - Open"
    POTENTIAL_FUTURE = "Potential Future"
    INTERESTED = "Interested"
    UNKNOWN = "unknown"


# ===== Field coercion =====

def _coerce_id(value: Any) -> Optional[str]:
    if isinstance(value, dict) and "$oid" in value:
        value = value["$oid"]
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int)):
        return str(value) if str(value).strip() else None
    return None


def _coerce_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _coerce_date_like(value: Any) -> Optional[DateLike]:
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str) and value.strip():
        return value
    return None


def _coerce_flag(value: Any) -> Optional[Union[bool, str]]:
    return value if isinstance(value, (bool, str)) else None


# Malformed optional fields degrade to absent instead of failing the record
RecordId = Annotated[Optional[str], BeforeValidator(_coerce_id)]
Text = Annotated[Optional[str], BeforeValidator(_coerce_text)]
Timestamp = Annotated[Optional[DateLike], BeforeValidator(_coerce_date_like)]
Flag = Annotated[Optional[Union[bool, str]], BeforeValidator(_coerce_flag)]


# ===== Input Models =====

class Contact(BaseModel):
    """Prospect contact within a project."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: RecordId = Field(None, validation_alias=AliasChoices("id", "_id"))
    name: Text = None
    company: Text = None
    email: Text = None
    first_phone: Text = Field(None, alias="firstPhone")
    linkedin_url: Text = Field(None, alias="linkedinUrl")
    created_at: Timestamp = Field(None, alias="createdAt")
    stage: Text = None


class Activity(BaseModel):
    """Single logged outreach event (call, email or LinkedIn touch)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: RecordId = Field(None, validation_alias=AliasChoices("id", "_id"))
    contact_id: RecordId = Field(None, alias="contactId")
    project_id: RecordId = Field(None, alias="projectId")
    type: Channel
    created_at: Timestamp = Field(None, alias="createdAt")

    # Call fields
    call_status: Text = Field(None, alias="callStatus")
    call_number: Text = Field(None, alias="callNumber")
    call_date: Timestamp = Field(None, alias="callDate")

    # Email / LinkedIn fields
    status: Text = None
    email_date: Timestamp = Field(None, alias="emailDate")
    linkedin_date: Timestamp = Field(None, alias="linkedinDate")
    conversation_notes: Text = Field(None, alias="conversationNotes")
    ln_request_sent: Flag = Field(None, alias="lnRequestSent")
    connected: Flag = None

    # Follow-up planning
    next_action: Text = Field(None, alias="nextAction")
    next_action_date: Timestamp = Field(None, alias="nextActionDate")

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def channel_date(self) -> Optional[DateLike]:
        """Channel-specific date field (callDate / emailDate / linkedinDate)."""
        if self.type == Channel.CALL:
            return self.call_date
        if self.type == Channel.EMAIL:
            return self.email_date
        return self.linkedin_date

    @property
    def has_notes(self) -> bool:
        return bool(self.conversation_notes and self.conversation_notes.strip())

    @property
    def owner(self) -> str:
        """Contact id used for grouping; shared bucket when absent."""
        return self.contact_id or UNKNOWN_CONTACT


class ProjectData(BaseModel):
    """Contacts and activities of a single project."""

    project_id: str
    contacts: list[Contact] = Field(default_factory=list)
    activities: list[Activity] = Field(default_factory=list)


class ReportConfig(BaseModel):
    """Configuration for a report run."""

    granularity: Granularity = Granularity.DAY
    timezone: str = "UTC"
    channels: list[Channel] = Field(default_factory=lambda: list(Channel))
    project_id: Optional[str] = None
    sql_notes_min_length: int = 50

    # Pipeline stage vocabularies (matched against a contact's effective stage)
    won_stages: list[str] = Field(default_factory=lambda: ["WON"])
    lost_stages: list[str] = Field(default_factory=lambda: ["Lost"])
    meeting_stages: list[str] = Field(
        default_factory=lambda: ["Meeting Scheduled", "In-Person Meeting", "Meeting Completed"]
    )
    sql_stages: list[str] = Field(default_factory=lambda: ["SQL"])
    cip_stages: list[str] = Field(default_factory=lambda: ["CIP"])

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @property
    def tz(self):
        return pytz.timezone(self.timezone)


# ===== Output Models =====

class FunnelTable(BaseModel):
    """Period-indexed counters for one channel."""
    channel: Channel
    granularity: Granularity
    periods: list[str] = Field(default_factory=list)
    snapshots: dict[str, dict[str, int]] = Field(default_factory=dict)
    status_breakdown: dict[str, dict[str, int]] = Field(default_factory=dict)
    summary: dict[str, int] = Field(default_factory=dict)


class ChartSeries(BaseModel):
    """One dataset, aligned to the chart's labels."""
    key: str
    label: str
    data: list[Union[int, float]] = Field(default_factory=list)


class ChartGroup(BaseModel):
    """Chart-ready series for one chart."""
    id: str
    title: str
    kind: str = "line"  # line or bar
    labels: list[str] = Field(default_factory=list)
    series: list[ChartSeries] = Field(default_factory=list)


class ReportRow(BaseModel):
    """One row of the period table."""
    key: str
    label: str
    section: Optional[str] = None
    values: list[Union[int, float]] = Field(default_factory=list)
    formulas: Optional[list[str]] = None  # e.g. "(3 + 2)"
    is_percentage: bool = False
    bold: bool = False


class ChannelReport(BaseModel):
    """Complete funnel report for one channel."""
    metadata: dict = Field(default_factory=dict)
    channel: Channel
    granularity: Granularity
    periods: list[str] = Field(default_factory=list)
    snapshots: dict[str, dict[str, int]] = Field(default_factory=dict)
    status_breakdown: dict[str, dict[str, int]] = Field(default_factory=dict)
    period_rates: dict[str, dict[str, float]] = Field(default_factory=dict)
    summary: dict[str, int] = Field(default_factory=dict)
    metrics: dict[str, float] = Field(default_factory=dict)
    charts: list[ChartGroup] = Field(default_factory=list)
    rows: list[ReportRow] = Field(default_factory=list)


class PipelineConversion(BaseModel):
    """Pipeline outcome counts and rates over all prospects."""
    total: int = 0
    won: int = 0
    lost: int = 0
    meetings: int = 0
    sql: int = 0
    cip: int = 0
    win_rate: float = 0.0
    meeting_rate: float = 0.0
    sql_rate: float = 0.0
    cip_rate: float = 0.0


class Overview(BaseModel):
    """Raw volume overview."""
    total_prospects: int = 0
    total_activities: int = 0
    activities_by_channel: dict[str, int] = Field(default_factory=dict)


class DashboardReport(BaseModel):
    """Cross-channel dashboard output."""
    metadata: dict = Field(default_factory=dict)
    overview: Overview = Field(default_factory=Overview)
    pipeline: PipelineConversion = Field(default_factory=PipelineConversion)
    stage_distribution: dict[str, int] = Field(default_factory=dict)
    channels: dict[str, ChannelReport] = Field(default_factory=dict)
