"""
Exports API routes.
"""

from fastapi import APIRouter
from fastapi.responses import Response

from funnel_analytics.api.dependencies import build_channel_report
from funnel_analytics.api.models import ReportRequest
from funnel_analytics.core.models import Channel
from funnel_analytics.exporters import export_json, export_report_csv

router = APIRouter()


@router.post("/exports/{channel}/json")
def export_channel_json(channel: Channel, request: ReportRequest):
    """
    Export a channel report as JSON file.
    """
    report = build_channel_report(channel, request)
    json_content = export_json(report)

    return Response(
        content=json_content,
        media_type="application/json",
        headers={
            "Content-Disposition": f"attachment; filename={channel.value}_report.json"
        }
    )


@router.post("/exports/{channel}/csv")
def export_channel_csv(channel: Channel, request: ReportRequest):
    """
    Export a channel report's period table as CSV file.
    """
    report = build_channel_report(channel, request)
    csv_content = export_report_csv(report)

    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={channel.value}_report.csv"
        }
    )
