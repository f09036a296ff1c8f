"""
CSV export of a report's period table.
"""

import csv
import io

from funnel_analytics.core.models import ChannelReport, ReportRow


def format_cell(row: ReportRow, index: int) -> str:
    """Render one period cell of a row."""
    if row.formulas:
        return row.formulas[index]

    value = row.values[index] if index < len(row.values) else 0
    if row.is_percentage:
        return f"{float(value):.1f}%"
    return str(value)


def export_report_csv(report: ChannelReport) -> str:
    """
    Export a channel report's rows as CSV.

    One line per row: metric label, section, then one cell per period.
    Formula rows render their "(a + b)" strings; percentage rows render "12.5%".

    Args:
        report: Channel report to export

    Returns:
        CSV string
    """
    output = io.StringIO()
    writer = csv.writer(output)

    # Write header
    writer.writerow(["Metric", "Section", *report.periods])

    for row in report.rows:
        writer.writerow([
            row.label,
            row.section or "",
            *[format_cell(row, i) for i in range(len(report.periods))]
        ])

    return output.getvalue()
