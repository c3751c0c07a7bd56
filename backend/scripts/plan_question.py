#!/usr/bin/env python3
"""
Plan a question against a metadata snapshot.

Usage:
    python scripts/plan_question.py "count items by location"
    python scripts/plan_question.py --snapshot org.json --json "show me accounts created last month"
    python scripts/plan_question.py "search everywhere for \"Acme\""
"""

import argparse
import asyncio
import json
import logging
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sfplanner.errors import create_error_response
from sfplanner.logging_config import configure_logging
from sfplanner.planning import QueryPlanner
from sfplanner.schema import InMemoryDescribeCache, StaticMetadataProvider

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "tests", "fixtures", "sample_org.json"
)


def print_outcome(outcome):
    print(f"Intent:  {outcome.intent.value}")
    
    if outcome.resolution is not None:
        print(f"Confidence: {outcome.resolution.confidence:.2f}")
        for i, match in enumerate(outcome.resolution.suggestions, 1):
            print(f"  {i}. {match.canonical_name} ({match.display_label}) "
                  f"confidence={match.confidence:.2f} via {match.match_type}")
    
    if outcome.needs_clarification:
        print(f"\n{outcome.clarification_message}")
        if outcome.date_clarification is not None:
            for option in outcome.date_clarification.options:
                print(f"  - {option['label']}: {option['value']}")
        return
    
    if outcome.search_plan is not None:
        print(f"Search:  {', '.join(outcome.search_plan.target_objects)}")
        print(f"\n{outcome.search_plan.to_sosl()}")
        return
    
    print(f"Target:  {outcome.target_object}")
    if outcome.plan.group_by:
        print(f"Group by: {outcome.plan.group_by} ({outcome.plan.group_display_field})")
    print(f"\n{outcome.plan.to_soql()}")


async def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Plan a query for a free-text question")
    parser.add_argument("question", help="Question to plan")
    parser.add_argument("--snapshot", default=DEFAULT_SNAPSHOT, help="Metadata snapshot JSON file")
    parser.add_argument("--profile", help="Org profile JSON file")
    parser.add_argument("--date-range", help="Date range literal, e.g. LAST_N_DAYS:30")
    parser.add_argument("--json", action="store_true", help="Print the outcome as JSON")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    args = parser.parse_args()
    
    configure_logging(args.log_level)
    
    with open(args.snapshot) as f:
        provider = StaticMetadataProvider(json.load(f))
    
    profile = None
    if args.profile:
        with open(args.profile) as f:
            profile = json.load(f)
    
    planner = QueryPlanner(provider, provider, cache=InMemoryDescribeCache())
    
    try:
        outcome = await planner.plan(args.question, profile, date_range=args.date_range)
    except Exception as e:
        logger.error(f"Planning failed: {e}", exc_info=True)
        print(json.dumps(create_error_response(e), indent=2))
        return 1
    
    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2, default=str))
    else:
        print_outcome(outcome)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
