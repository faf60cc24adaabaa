#!/usr/bin/env python3
# Copyright 2026 DivTrack
# SPDX-License-Identifier: MIT
"""
DivTrack quotes CLI.

Usage:
    python run_quotes.py quote AAPL MSFT
    python run_quotes.py refresh AAPL
    python run_quotes.py cleanup --max-age-days 7
    python run_quotes.py rate-limits
    python run_quotes.py project --present-value 10000 --annual-return 8 --years 10 --deposit 100 --frequency monthly
    python run_quotes.py serve --port 8000
    python run_quotes.py --help

Environment variables:
    ALPHAVANTAGE_KEY          - Alpha Vantage API key
    FINNHUB_KEY               - Finnhub API key
    DIVTRACK_ENV              - production uses a 1 hour cache window (default: 24 hours)
    CACHE_FRESHNESS_SECONDS   - Override the cache window
    DIVTRACK_DB_PATH          - SQLite database path
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="DivTrack quotes CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_quote = sub.add_parser("quote", help="Show cached quotes (fetch when stale)")
    p_quote.add_argument("symbols", nargs="+")

    p_refresh = sub.add_parser("refresh", help="Drop the cached quote and refetch")
    p_refresh.add_argument("symbol")

    p_cleanup = sub.add_parser("cleanup", help="Delete cache entries older than N days")
    p_cleanup.add_argument(
        "--max-age-days",
        type=float,
        default=None,
        help="Default: CACHE_RETENTION_DAYS (7)",
    )

    sub.add_parser("rate-limits", help="Show provider quota usage")

    p_serve = sub.add_parser("serve", help="Run the API server")
    p_serve.add_argument("--host", default="0.0.0.0", help="Bind host")
    p_serve.add_argument("--port", type=int, default=8000, help="Port")

    p_project = sub.add_parser("project", help="Compound-growth projection")
    p_project.add_argument("--present-value", type=float, required=True)
    p_project.add_argument("--annual-return", type=float, required=True, help="Percent, e.g. 8")
    p_project.add_argument("--years", type=float, required=True)
    p_project.add_argument("--deposit", type=float, default=0.0)
    p_project.add_argument("--frequency", choices=["monthly", "weekly"], default="monthly")
    p_project.add_argument("--yield-pct", type=float, default=None, help="Show monthly income at this yield")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    load_dotenv()

    try:
        if args.command == "quote":
            return run_quote(args)
        elif args.command == "refresh":
            return run_refresh(args)
        elif args.command == "cleanup":
            return run_cleanup(args)
        elif args.command == "rate-limits":
            return run_rate_limits(args)
        elif args.command == "project":
            return run_project(args)
        elif args.command == "serve":
            return run_serve(args)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        logger.exception("Command failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run_quote(args: argparse.Namespace) -> int:
    from divtrack.core.models import normalize_symbol
    from divtrack.core.services import get_services

    symbols = [normalize_symbol(s) for s in args.symbols]
    quotes = get_services().cache.get_quotes(symbols)
    found = {q.symbol for q in quotes}
    for cached in quotes:
        q = cached.quote
        yld = f"{q.dividend_yield_pct:.2f}%" if q.dividend_yield_pct is not None else "n/a"
        print(
            f"{q.symbol:<8} {q.price:>10.2f} {q.change:>+8.2f} ({q.change_percent:+.2f}%)"
            f"  yield {yld:>7}  [{q.source.value}, updated {cached.updated_at.isoformat()}]"
        )
    for sym in symbols:
        if sym not in found:
            print(f"{sym:<8} no data available")
    return 0 if len(found) == len(set(symbols)) else 1


def run_refresh(args: argparse.Namespace) -> int:
    from divtrack.core.services import get_services

    cached = get_services().cache.force_refresh(args.symbol)
    if cached is None:
        print(f"{args.symbol.upper()}: no data available")
        return 1
    print(json.dumps(cached.to_dict(), indent=2))
    return 0


def run_cleanup(args: argparse.Namespace) -> int:
    from divtrack.core.services import get_services

    services = get_services()
    days = services.config.cache.retention_days if args.max_age_days is None else args.max_age_days
    result = services.cache.cleanup_older_than(days * 24 * 60 * 60)
    print(f"Removed {result['deleted_quotes']} quotes and {result['deleted_dividends']} dividends older than {days} days")
    return 0


def run_rate_limits(args: argparse.Namespace) -> int:
    from divtrack.core.services import get_services

    services = get_services()
    print(json.dumps(
        {"limits": services.rate_limiter.status(), "providers": services.quote_service.stats()},
        indent=2,
    ))
    return 0


def run_project(args: argparse.Namespace) -> int:
    from divtrack.core.planning.projection import DepositFrequency, project_growth, projected_monthly_income

    result = project_growth(
        present_value=args.present_value,
        annual_return_pct=args.annual_return,
        horizon_years=args.years,
        recurring_deposit=args.deposit,
        frequency=DepositFrequency(args.frequency),
    )
    print(f"Future value:   {result.future_value:,.2f}")
    print(f"Total invested: {result.total_invested:,.2f}")
    print(f"Total gains:    {result.total_gains:,.2f}")
    print(f"Months:         {result.total_months}")
    if args.yield_pct is not None:
        income = projected_monthly_income(result.future_value, args.yield_pct)
        print(f"Monthly income at {args.yield_pct:.2f}%: {income:,.2f}")
    print()
    for point in result.breakdown:
        if point.month % 12 == 0 or point.month == result.total_months:
            print(f"  month {point.month:>4}: value {point.value:>14,.2f}  invested {point.invested:>14,.2f}")
    return 0


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from divtrack.api.server import app

    uvicorn.run(app, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
