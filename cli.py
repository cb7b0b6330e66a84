#!/usr/bin/env python3
"""
Command-line interface for the Laroza storefront console.

Usage:
    uv run python cli.py [command] [options]

Commands:
    demo        Run cross-tab sync demos
    overview    Print the admin dashboard figures for the fixture data
    test        Run the test suite
    serve       Start the console API

Examples:
    uv run python cli.py demo cross-tab
    uv run python cli.py demo cross-tab --storage-only
    uv run python cli.py demo last-writer-wins
    uv run python cli.py overview
    uv run python cli.py serve --port 8080
"""

import argparse
import subprocess
import sys


DEMO_SCENARIOS = ["cross-tab", "last-writer-wins", "all"]


def run_demo(scenario: str, storage_only: bool) -> None:
    """Run one demo scenario, or all of them."""
    from data_sync.demo import run_cross_tab_demo, run_last_writer_wins_demo

    if scenario not in DEMO_SCENARIOS:
        print(f"Unknown scenario: {scenario}")
        sys.exit(1)

    if scenario in ("cross-tab", "all"):
        run_cross_tab_demo(supports_broadcast_channel=not storage_only)
    if scenario in ("last-writer-wins", "all"):
        run_last_writer_wins_demo()


def show_overview() -> None:
    """Open a single tab on a fresh origin and print the dashboard figures."""
    from data_sync.browser import Origin
    from data_sync.config import SyncSettings
    from data_sync.services import build_overview

    origin = Origin(settings=SyncSettings.from_env())
    tab = origin.open_tab("cli")
    try:
        overview = build_overview(tab.data_store)
    finally:
        origin.close()

    print(f"Products:          {overview.total_products} ({overview.total_stock} units)")
    print(f"Pending orders:    {overview.pending_orders}")
    print(f"Revenue:           {overview.total_revenue:,.2f}")
    print(f"Reviews:           {overview.total_reviews}")
    print(f"Active promotions: {overview.active_promotions}")
    if overview.low_stock_products:
        print("Low stock:")
        for product in overview.low_stock_products:
            print(f"  {product.id:<4} {product.name} ({product.stock} left)")


def run_tests(pytest_args: list[str]) -> int:
    """Run pytest through uv and return its exit code."""
    return subprocess.run(["uv", "run", "pytest", *pytest_args]).returncode


def run_server(host: str, port: int, reload: bool) -> int:
    """Serve api.main:app with uvicorn."""
    cmd = ["uv", "run", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Console API on http://{host}:{port} (docs at /docs)")
    return subprocess.run(cmd).returncode


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="laroza",
        description="Laroza storefront console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo cross-tab
  %(prog)s demo all --storage-only
  %(prog)s overview
  %(prog)s test -k cross_tab
  %(prog)s serve --reload
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    demo_parser = subparsers.add_parser("demo", help="Run cross-tab sync demos")
    demo_parser.add_argument("scenario", choices=DEMO_SCENARIOS, help="Scenario to run")
    demo_parser.add_argument(
        "--storage-only",
        action="store_true",
        help="Pretend broadcast channels are unsupported (storage envelope transport)",
    )

    subparsers.add_parser("overview", help="Print dashboard figures for the fixture data")

    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument("pytest_args", nargs="*", default=[], help="Passed through to pytest")

    serve_parser = subparsers.add_parser("serve", help="Start the console API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true", help="Restart on code changes")

    return parser


def main() -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if args.command == "demo":
        run_demo(args.scenario, args.storage_only)
    elif args.command == "overview":
        show_overview()
    elif args.command == "test":
        sys.exit(run_tests(args.pytest_args))
    elif args.command == "serve":
        sys.exit(run_server(args.host, args.port, args.reload))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
