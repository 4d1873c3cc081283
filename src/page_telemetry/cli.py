"""CLI for analytics reports and local identity."""

import argparse
import asyncio
import json
import sys
from typing import Any

import aiohttp
from pydantic import BaseModel

from page_telemetry.adapters.config import AppConfig
from page_telemetry.adapters.sink import PostgrestDataSink
from page_telemetry.adapters.storage import JsonFileKeyValueStore
from page_telemetry.application import AnalyticsQueries, IdentityStore


def _to_jsonable(result: Any) -> Any:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    if isinstance(result, list):
        return [_to_jsonable(item) for item in result]
    return result


def print_result(command: str, result: Any, format_json: bool = False) -> None:
    """Print a query result as JSON or as a short human-readable listing."""
    if format_json:
        print(json.dumps(_to_jsonable(result), indent=2, ensure_ascii=False))
        return

    if command == "live":
        print(f"Live users: {result}")
    elif command == "popular":
        if not result:
            print("No interactions recorded.")
        for rank, business in enumerate(result, 1):
            print(
                f"  {rank:>2}. {business.business_id}: {business.total} total "
                f"({business.views} views, {business.calls} calls, "
                f"{business.whatsapp} whatsapp, {business.shares} shares)"
            )
    elif command == "hourly":
        for entry in result:
            print(f"  {entry.hour:02d}:00  {entry.visits}")
    elif command == "daily":
        if not result:
            print("No visits recorded.")
        for entry in result:
            print(f"  {entry.date}  {entry.visits}")
    elif command == "summary":
        if result is None:
            print("No summary available.")
        else:
            print(f"Unique users: {result.total_unique_users}")
            print(f"Total visits: {result.total_visits}")
            print(f"Last updated: {result.last_updated.isoformat()}")
    elif command == "users":
        print(f"\nFound {len(result)} user(s):\n")
        for user in result:
            last_visit = user.last_visit_at.isoformat() if user.last_visit_at else "never"
            print(f"  {user.user_name} ({user.device_id})")
            print(f"    Visits: {user.total_visits or 0}, last visit: {last_visit}")
    elif command == "visits":
        for visit in result:
            visited_at = visit.visited_at.isoformat() if visit.visited_at else "unknown"
            print(f"  {visited_at}  {visit.user_name or '-'}  {visit.page_path or '-'}")


async def run_query(queries: AnalyticsQueries, args: argparse.Namespace) -> Any:
    """Run the aggregation query selected by the parsed arguments."""
    if args.command == "live":
        return await queries.get_live_users_count()
    if args.command == "popular":
        return await queries.get_popular_businesses(limit=args.limit)
    if args.command == "hourly":
        return await queries.get_hourly_stats(args.date)
    if args.command == "daily":
        return await queries.get_daily_stats(days=args.days)
    if args.command == "summary":
        return await queries.get_analytics_summary()
    if args.command == "users":
        return await queries.get_all_users()
    if args.command == "visits":
        return await queries.get_recent_visits(limit=args.limit)
    raise ValueError(f"Unknown command: {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Page telemetry reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # How many devices are live right now
  page-telemetry live

  # Top 5 businesses by interactions, as JSON
  page-telemetry popular --limit 5 --json

  # Visits per hour on a given day
  page-telemetry hourly --date 2024-05-01

  # Store a display name for this device
  page-telemetry set-name "Asha"
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    live_parser = subparsers.add_parser("live", help="Count live users")
    live_parser.add_argument("--json", action="store_true", help="Output as JSON")

    popular_parser = subparsers.add_parser("popular", help="Rank businesses by interactions")
    popular_parser.add_argument("--limit", type=int, default=10, help="Number of businesses")
    popular_parser.add_argument("--json", action="store_true", help="Output as JSON")

    hourly_parser = subparsers.add_parser("hourly", help="Visits per hour for one day")
    hourly_parser.add_argument("--date", default=None, help="Day as YYYY-MM-DD (default: today)")
    hourly_parser.add_argument("--json", action="store_true", help="Output as JSON")

    daily_parser = subparsers.add_parser("daily", help="Visits per day")
    daily_parser.add_argument("--days", type=int, default=7, help="Number of days to include")
    daily_parser.add_argument("--json", action="store_true", help="Output as JSON")

    summary_parser = subparsers.add_parser("summary", help="Show the analytics summary row")
    summary_parser.add_argument("--json", action="store_true", help="Output as JSON")

    users_parser = subparsers.add_parser("users", help="List tracked users")
    users_parser.add_argument("--json", action="store_true", help="Output as JSON")

    visits_parser = subparsers.add_parser("visits", help="List recent visits")
    visits_parser.add_argument("--limit", type=int, default=50, help="Number of visits")
    visits_parser.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers.add_parser("whoami", help="Show this device's id and name")

    set_name_parser = subparsers.add_parser("set-name", help="Store a display name locally")
    set_name_parser.add_argument("name", help="Display name")

    return parser


async def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = AppConfig()
    try:
        config.load_config_file()
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "whoami":
        identity = IdentityStore(JsonFileKeyValueStore(config.identity_file))
        print(f"Device id: {identity.get_device_id()}")
        print(f"User name: {identity.get_user_name() or '(not set)'}")
        return

    if args.command == "set-name":
        identity = IdentityStore(JsonFileKeyValueStore(config.identity_file))
        identity.set_user_name(args.name)
        print(f"Saved user name '{args.name}'")
        return

    if not config.sink_url:
        print("Error: SINK_URL is not configured", file=sys.stderr)
        sys.exit(1)

    try:
        async with aiohttp.ClientSession() as session:
            sink = PostgrestDataSink(
                config.sink_url,
                session,
                api_key=config.sink_api_key,
                timeout_seconds=config.sink_timeout_seconds,
            )
            queries = AnalyticsQueries(
                sink, active_threshold_seconds=config.active_threshold_seconds
            )
            result = await run_query(queries, args)
        print_result(args.command, result, format_json=args.json)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def run() -> None:
    """Synchronous entry point for the CLI command."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
