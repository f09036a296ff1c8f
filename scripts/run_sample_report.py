#!/usr/bin/env python3
"""Run the funnel dashboard on a CRM project export."""

import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from funnel_analytics.core.analyzer import analyze_project, parse_activities, parse_contacts
from funnel_analytics.core.models import ReportConfig


def load_export(data_path: Path) -> dict:
    """
    Load a project export.

    Accepted formats:
    - {"project_id": ..., "contacts": [...], "activities": [...]}
    - {"contacts": [...], "activities": [...]} (project_id taken from the file name)
    """
    with open(data_path, 'r') as f:
        export_data = json.load(f)

    export_data.setdefault("project_id", data_path.stem)
    return export_data


def main():
    """Run the dashboard on an export file."""
    default_path = Path(__file__).parent.parent / "tests" / "fixtures" / "sample_project.json"
    data_path = Path(sys.argv[1]) if len(sys.argv) > 1 else default_path
    granularity = sys.argv[2] if len(sys.argv) > 2 else "month"

    print(f"Loading data from: {data_path}")
    export_data = load_export(data_path)

    contacts = parse_contacts(export_data.get("contacts", []))
    activities = parse_activities(export_data.get("activities", []))
    print(f"Loaded {len(contacts)} contacts and {len(activities)} activities")

    config = ReportConfig(project_id=export_data["project_id"], granularity=granularity)

    print("\n" + "="*60)
    print("Running Funnel Analysis...")
    print("="*60)

    dashboard = analyze_project(contacts, activities, config)

    print("\n📊 OVERVIEW")
    print("-" * 60)
    print(f"Total Prospects:              {dashboard.overview.total_prospects}")
    print(f"Total Activities:             {dashboard.overview.total_activities}")
    for channel, count in dashboard.overview.activities_by_channel.items():
        print(f"  {channel:26s} {count:>5d}")

    print("\n🏁 PIPELINE")
    print("-" * 60)
    pipeline = dashboard.pipeline
    print(f"Won / Lost:                   {pipeline.won} / {pipeline.lost}")
    print(f"Win Rate:                     {pipeline.win_rate:.1f}%")
    print(f"Meeting Rate:                 {pipeline.meeting_rate:.1f}%")

    print("\n📈 STAGE DISTRIBUTION")
    print("-" * 60)
    for stage, count in dashboard.stage_distribution.items():
        print(f"{stage:20s} {count:>5d}")

    for channel, report in dashboard.channels.items():
        print(f"\n🔻 {channel.upper()} FUNNEL")
        print("-" * 60)
        for key, value in report.summary.items():
            rate = report.metrics.get(f"{key}Rate")
            rate_text = f"  ({rate:.1f}%)" if rate is not None else ""
            print(f"  {key:24s} {value:>5d}{rate_text}")
        print(f"  Periods: {', '.join(report.periods) or '-'}")

    # Save results
    output_path = Path(__file__).parent.parent / "sample_dashboard_output.json"
    with open(output_path, 'w') as f:
        f.write(dashboard.model_dump_json(indent=2))

    print(f"\n✅ Full results saved to: {output_path}")


if __name__ == "__main__":
    main()
