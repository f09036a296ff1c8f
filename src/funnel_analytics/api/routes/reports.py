"""
Reports API routes.
"""

from fastapi import APIRouter

from funnel_analytics.api.dependencies import build_channel_report, build_dashboard
from funnel_analytics.api.models import ReportRequest
from funnel_analytics.core.models import Channel, ChannelReport, DashboardReport

router = APIRouter()


@router.post("/reports/{channel}", response_model=ChannelReport)
def create_channel_report(channel: Channel, request: ReportRequest) -> ChannelReport:
    """
    Compute the funnel report for one channel.

    Malformed records in the request are skipped, not rejected.
    """
    return build_channel_report(channel, request)


@router.post("/dashboard", response_model=DashboardReport)
def create_dashboard(request: ReportRequest) -> DashboardReport:
    """
    Compute the cross-channel dashboard (pipeline conversion, stage
    distribution and one report per configured channel).
    """
    return build_dashboard(request)
