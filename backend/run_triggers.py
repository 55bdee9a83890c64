#!/usr/bin/env python3
"""
Run one trigger evaluation pass and display results.

Meant to be invoked by cron or a job scheduler.

Usage:
    # With the default fixture (settings.fixture_path):
    python run_triggers.py

    # With a custom fixture:
    python run_triggers.py --fixture my_campaigns.json

    # Also generate insights and an executive summary:
    python run_triggers.py --insights

    # Output to JSON file:
    python run_triggers.py --output results.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from config.logging_config import setup_logging
from config.settings import settings
from controllers.trigger_controller import TriggerRunResult, build_controller


def print_pass(result: TriggerRunResult):
    """Pretty print a trigger pass."""
    print("\n" + "=" * 70)
    print(f"TRIGGER PASS {result.run_id}")
    print("=" * 70)
    print(f"Started: {result.started_at.isoformat()}")
    print(f"Counts: {result.counts}")
    print("-" * 70)

    for campaign in result.campaigns:
        if campaign.error:
            print(f"\n✗ {campaign.campaign_id}: {campaign.error}")
            continue
        print(f"\n{campaign.campaign_id}")
        for outcome in campaign.rules:
            line = f"   [{outcome.status}] {outcome.rule_id}"
            if outcome.event:
                line += f" -> {outcome.event.status}: {outcome.event.action_result}"
            elif outcome.error:
                line += f" ({outcome.error})"
            print(line)


def print_insights(insights, report: str):
    """Pretty print insights and the summary report."""
    print("\n" + "=" * 70)
    print("INSIGHTS")
    print("=" * 70)
    for insight in insights:
        icon = "✗" if insight.severity == "critical" else "⚠" if insight.severity == "warning" else "✓"
        print(f"\n{icon} {insight.title}")
        print(f"   {insight.description}")
        print(f"   Recommendation: {insight.recommendation}")
        print(f"   Action: {insight.action_label}")
    print("\n" + "-" * 70)
    print(report)


async def run(fixture: str = None, insights: bool = False, output_file: str = None) -> dict:
    controller = build_controller(fixture_path=fixture)

    result = await controller.run_pass()
    print_pass(result)
    output = {"pass": result.to_dict()}

    if insights:
        items = await controller.generate_insights()
        report = await controller.performance_report(items)
        print_insights(items, report)
        output["insights"] = [i.model_dump(mode="json") for i in items]
        output["report"] = report

    if output_file:
        with open(output_file, 'w') as f:
            json.dump(output, f, indent=2, default=str)
        print(f"\n✓ Results saved to {output_file}")

    return output


def main():
    parser = argparse.ArgumentParser(description='Run one campaign trigger evaluation pass')
    parser.add_argument('--fixture', '-f', help='Campaign fixture JSON (default: settings.fixture_path)')
    parser.add_argument('--insights', action='store_true', help='Also generate insights and a summary report')
    parser.add_argument('--output', '-o', help='Output JSON file for results')
    args = parser.parse_args()

    setup_logging(level=settings.log_level, json_output=False)
    asyncio.run(run(fixture=args.fixture, insights=args.insights, output_file=args.output))


if __name__ == "__main__":
    main()
