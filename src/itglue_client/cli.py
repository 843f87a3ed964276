#!/usr/bin/env python3
"""
IT Glue command line tool.

Usage:
    itglue test                           # Test your connection
    itglue resources                      # Show known resources
    itglue list organizations --max-items 20
    itglue list contacts --parent-id 123 --filter name=Jane
    itglue get organizations 12345

Configuration comes from the environment:
    ITGLUE_API_KEY, ITGLUE_REGION (us/eu/au), ITGLUE_BASE_URL, ITGLUE_TIMEOUT
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

import structlog
from colorama import Fore, Style, init
from pydantic import ValidationError

from itglue_client.client import ITGlueClient
from itglue_client.config import ClientConfig
from itglue_client.errors import ErrorKind, ITGlueError, UnsupportedOperationError
from itglue_client.resources import RESOURCE_SPECS, Capability

init()
GREEN = Fore.GREEN
RED = Fore.RED
BLUE = Fore.CYAN
RESET = Style.RESET_ALL
BOLD = Style.BRIGHT


def print_success(msg: str):
    print(f"{GREEN}✓ {msg}{RESET}")


def print_error(msg: str):
    print(f"{RED}✗ {msg}{RESET}", file=sys.stderr)


def print_info(msg: str):
    print(f"{BLUE}ℹ {msg}{RESET}", file=sys.stderr)


def configure_logging(verbose: bool = False) -> None:
    """Route structlog output to stderr; DEBUG when verbose."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def load_config(args: argparse.Namespace) -> ClientConfig | None:
    """Build config from the environment; print guidance on failure."""
    try:
        return ClientConfig.from_env(region=args.region, base_url=args.base_url)
    except ValidationError as e:
        print_error("Not configured.")
        for error in e.errors():
            field = ".".join(str(p) for p in error["loc"]) or "config"
            print(f"    {field}: {error['msg']}", file=sys.stderr)
        print_info("Set environment variables:")
        print("    export ITGLUE_API_KEY=ITG.your-api-key", file=sys.stderr)
        print("    export ITGLUE_REGION=us", file=sys.stderr)
        return None


def parse_filters(values: list[str] | None) -> dict[str, Any]:
    """``["name=Acme", "id=1,2"]`` -> ``{"name": "Acme", "id": ["1", "2"]}``"""
    filters: dict[str, Any] = {}
    for value in values or []:
        key, sep, raw = value.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid filter {value!r}, expected key=value")
        filters[key] = raw.split(",") if "," in raw else raw
    return filters


def _exit_code(error: ITGlueError) -> int:
    if error.kind is ErrorKind.AUTHENTICATION:
        print_info("Check ITGLUE_API_KEY and ITGLUE_REGION")
    return 1


async def cmd_test(args, config: ClientConfig) -> int:
    """Test the IT Glue connection."""
    print_info(f"Connecting to {config.base_url}...")

    async with ITGlueClient(config) as client:
        result = await client.check_connection()

    if result["status"] == "healthy":
        print_success("Connected successfully!")
        print_success(f"Organizations visible: {result['organizations']}")
        return 0

    print_error(f"Connection failed: {result.get('message', 'Unknown error')}")
    return 1


async def cmd_resources(args, config: ClientConfig | None = None) -> int:
    """Show every known resource and what it supports."""
    operations = [
        Capability.LIST, Capability.GET, Capability.CREATE,
        Capability.UPDATE, Capability.DELETE, Capability.PUBLISH,
        Capability.BULK_UPDATE,
    ]
    print(f"{BOLD}{'Resource':<28}{'Operations':<44}Parent{RESET}")
    for name, spec in sorted(RESOURCE_SPECS.items()):
        ops = ",".join(c.name.lower() for c in operations if spec.supports(c))
        parent = "any" if spec.parent_types else ("yes" if spec.parent_path else "")
        print(f"{name:<28}{ops:<44}{parent}")
    return 0


async def cmd_list(args, config: ClientConfig) -> int:
    """Print matching resources as JSON lines."""
    filters = parse_filters(args.filter)

    async with ITGlueClient(config) as client:
        resource = client.resource(args.resource)
        count = 0
        async for item in resource.iter_all(
            filter=filters or None,
            sort=args.sort,
            include=args.include,
            parent_id=args.parent_id,
            parent_type=args.parent_type,
            page_size=args.page_size,
            max_items=args.max_items,
        ):
            print(json.dumps(item, default=str))
            count += 1

        if args.stats:
            stats = client.get_stats()
            print_info(
                f"{count} items, {stats['request_count']} requests, "
                f"{stats['rate_limiter']['remaining']} remaining in window"
            )
    return 0


async def cmd_get(args, config: ClientConfig) -> int:
    """Print a single resource as JSON."""
    async with ITGlueClient(config) as client:
        item = await client.resource(args.resource).get(
            args.id, include=args.include, parent_id=args.parent_id
        )
    print(json.dumps(item, indent=2, default=str))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="itglue",
        description="IT Glue API command line tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  itglue test                              Test your connection
  itglue resources                         Show known resources
  itglue list organizations --max-items 5  First five organizations
  itglue get organizations 12345           One organization
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--region", choices=["us", "eu", "au"], help="API region")
    parser.add_argument("--base-url", help="Override the API base URL")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("test", help="Test your connection")
    subparsers.add_parser("resources", help="Show known resources")

    list_parser = subparsers.add_parser("list", help="List resources")
    list_parser.add_argument("resource", choices=sorted(RESOURCE_SPECS))
    list_parser.add_argument("--filter", action="append", metavar="KEY=VALUE")
    list_parser.add_argument("--sort")
    list_parser.add_argument("--include")
    list_parser.add_argument("--parent-id")
    list_parser.add_argument("--parent-type", help="Parent kind, for attachments")
    list_parser.add_argument("--page-size", type=int)
    list_parser.add_argument("--max-items", type=int)
    list_parser.add_argument("--stats", action="store_true", help="Print request stats")

    get_parser = subparsers.add_parser("get", help="Get a single resource")
    get_parser.add_argument("resource", choices=sorted(RESOURCE_SPECS))
    get_parser.add_argument("id")
    get_parser.add_argument("--include")
    get_parser.add_argument("--parent-id")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 2

    configure_logging(args.verbose)

    commands = {
        "test": cmd_test,
        "list": cmd_list,
        "get": cmd_get,
    }

    if args.command == "resources":
        return asyncio.run(cmd_resources(args))

    config = load_config(args)
    if config is None:
        return 1

    try:
        return asyncio.run(commands[args.command](args, config))
    except ITGlueError as e:
        print_error(str(e))
        return _exit_code(e)
    except (UnsupportedOperationError, ValueError) as e:
        print_error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
