"""
Export formatters for various output formats.
"""

from funnel_analytics.exporters.csv import export_report_csv
from funnel_analytics.exporters.json import export_json, export_json_dict

__all__ = [
    # JSON
    "export_json",
    "export_json_dict",
    # CSV (period table)
    "export_report_csv",
]
