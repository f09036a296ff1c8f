"""
Report assembly - reshape an aggregated funnel table into chart series and rows.

Nothing is computed here beyond lookups and formatting. Row labels, sections,
formula rows and chart groupings come from a TOML layout file.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import tomli

from funnel_analytics.core.models import (
    Channel,
    ChannelReport,
    ChartGroup,
    ChartSeries,
    FunnelTable,
    ReportRow,
)

logger = logging.getLogger(__name__)

DEFAULT_LAYOUT_PATH = Path(__file__).parent.parent / "layouts" / "report_layout.toml"
LAYOUT_ENV_VAR = "FUNNEL_REPORT_LAYOUT"


class ReportLayoutError(Exception):
    """Raised when a report layout is missing or lacks a channel section."""
    pass


@lru_cache(maxsize=8)
def _read_layout(path: str) -> Dict:
    with open(path, "rb") as f:
        return tomli.load(f)


def load_report_layout(path: Optional[str] = None) -> Dict:
    """
    Load the report layout from TOML.

    Args:
        path: Layout file; defaults to $FUNNEL_REPORT_LAYOUT, then the
            packaged report_layout.toml

    Returns:
        Dict keyed by channel name, each with "rows" and "charts" lists

    Raises:
        ReportLayoutError: If the file cannot be read or parsed
    """
    layout_path = path or os.environ.get(LAYOUT_ENV_VAR) or str(DEFAULT_LAYOUT_PATH)
    logger.debug(f"Loading report layout from {layout_path}")
    try:
        return _read_layout(str(layout_path))
    except (OSError, tomli.TOMLDecodeError) as e:
        raise ReportLayoutError(f"Cannot load report layout {layout_path}: {e}")


def channel_layout(layout: Dict, channel: Channel) -> Dict:
    section = layout.get(channel.value)
    if not section:
        raise ReportLayoutError(f"Report layout has no section for channel '{channel.value}'")
    return section


class _Lookup:
    """Value lookup across snapshots, status breakdown and period rates."""

    def __init__(
        self,
        snapshots: Dict[str, Dict[str, int]],
        status_breakdown: Dict[str, Dict[str, int]],
        period_rates: Dict[str, Dict[str, float]]
    ):
        self.sources = {
            "snapshot": snapshots,
            "status": status_breakdown,
            "rate": period_rates,
        }

    def value(self, period: str, key: str, source: str = "snapshot"):
        table = self.sources.get(source, {})
        return table.get(period, {}).get(key, 0)


def _source_of(entry: Dict) -> str:
    if entry.get("percentage"):
        return "rate"
    return entry.get("source", "snapshot")


def build_chart_groups(
    periods: List[str],
    chart_configs: List[Dict],
    lookup: _Lookup
) -> List[ChartGroup]:
    """One ChartGroup per configured chart, each series aligned to `periods`."""
    groups = []
    for chart_config in chart_configs:
        series = []
        for series_config in chart_config.get("series", []):
            key = series_config["key"]
            source = _source_of(series_config)
            series.append(ChartSeries(
                key=key,
                label=series_config.get("label", key),
                data=[lookup.value(period, key, source) for period in periods]
            ))

        groups.append(ChartGroup(
            id=chart_config["id"],
            title=chart_config.get("title", chart_config["id"]),
            kind=chart_config.get("kind", "line"),
            labels=list(periods),
            series=series
        ))

    return groups


def format_formula(values: List) -> str:
    """Render counter values as "(3 + 2)"."""
    return "(" + " + ".join(str(value) for value in values) + ")"


def build_rows(
    periods: List[str],
    row_configs: List[Dict],
    lookup: _Lookup
) -> List[ReportRow]:
    rows = []
    for row_config in row_configs:
        key = row_config["key"]
        source = _source_of(row_config)
        values = [lookup.value(period, key, source) for period in periods]

        formulas = None
        formula_keys = row_config.get("formula")
        if formula_keys:
            formulas = [
                format_formula([lookup.value(period, part) for part in formula_keys])
                for period in periods
            ]

        rows.append(ReportRow(
            key=key,
            label=row_config.get("label", key),
            section=row_config.get("section"),
            values=values,
            formulas=formulas,
            is_percentage=bool(row_config.get("percentage", False)),
            bold=bool(row_config.get("bold", False))
        ))

    return rows


def assemble_report(
    table: FunnelTable,
    metrics: Dict[str, float],
    period_rates: Dict[str, Dict[str, float]],
    metadata: Optional[Dict] = None,
    layout: Optional[Dict] = None
) -> ChannelReport:
    """
    Combine an aggregated table, its metrics and the layout into a ChannelReport.

    Raises:
        ReportLayoutError: If the layout lacks the table's channel
    """
    layout = layout if layout is not None else load_report_layout()
    section = channel_layout(layout, table.channel)
    lookup = _Lookup(table.snapshots, table.status_breakdown, period_rates)

    metadata = dict(metadata or {})
    metadata.setdefault("title", section.get("title", table.channel.value))

    return ChannelReport(
        metadata=metadata,
        channel=table.channel,
        granularity=table.granularity,
        periods=list(table.periods),
        snapshots=table.snapshots,
        status_breakdown=table.status_breakdown,
        period_rates=period_rates,
        summary=table.summary,
        metrics=metrics,
        charts=build_chart_groups(table.periods, section.get("charts", []), lookup),
        rows=build_rows(table.periods, section.get("rows", []), lookup)
    )
