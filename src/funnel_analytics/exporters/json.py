"""
JSON export functionality.
"""

from typing import Union

from funnel_analytics.core.models import ChannelReport, DashboardReport

Report = Union[ChannelReport, DashboardReport]


def export_json(report: Report, indent: int = 2) -> str:
    """
    Export a report to JSON string.

    Args:
        report: Channel report or dashboard to export
        indent: Number of spaces for indentation (default: 2)

    Returns:
        JSON string
    """
    return report.model_dump_json(indent=indent)


def export_json_dict(report: Report) -> dict:
    """
    Export a report to a JSON-compatible dictionary.

    Args:
        report: Channel report or dashboard to export

    Returns:
        Dictionary representation (enums as their string values)
    """
    return report.model_dump(mode="json")
