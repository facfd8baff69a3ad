"""Command line entry point.

Runs one topology aggregation or enrichment and prints the result as
JSON on stdout. Logs go to stderr.
"""

import argparse
import asyncio
import json
import sys
from typing import Any, NoReturn

from flowmap.app import FlowMap
from flowmap.common.config import get_settings
from flowmap.common.exceptions import FlowMapError
from flowmap.common.logging import bind_context, clear_context, get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="flowmap",
        description="Flow-pair topology and IP enrichment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    flowmap topology 3 --since 1717000000
    flowmap enrich 8.8.8.8 192.168.1.10
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    topology = subparsers.add_parser("topology", help="Aggregate an exporter's flows into map lines")
    topology.add_argument("exporter", type=int, help="Exporter identifier")
    topology.add_argument(
        "--since",
        type=int,
        default=0,
        help="Only flows last seen at or after this epoch second",
    )

    enrich = subparsers.add_parser("enrich", help="Enrich one or more IP addresses")
    enrich.add_argument("ips", nargs="+", help="IP addresses")

    return parser


async def main(args: argparse.Namespace) -> dict[str, Any]:
    """Run the requested command and return its JSON payload."""
    settings = get_settings()
    bind_context(command=args.command)

    try:
        async with FlowMap(settings) as app:
            if args.command == "topology":
                bind_context(exporter=args.exporter)
                result = await app.aggregate_flows(args.exporter, args.since)
                return result.to_dict()

            if len(args.ips) == 1:
                record = await app.enrich_ip(args.ips[0])
                return record.to_dict()

            records = await app.enrich_ips(args.ips)
            return {ip: record.to_dict() for ip, record in records.items()}
    finally:
        clear_context()


def run() -> NoReturn:
    """Console script entry point."""
    args = build_parser().parse_args()
    setup_logging(get_settings().logging)

    try:
        payload = asyncio.run(main(args))
    except KeyboardInterrupt:
        sys.exit(130)
    except FlowMapError as e:
        logger.error("Command failed", error_code=e.error_code, error=e.message)
        print(json.dumps(e.to_dict()), file=sys.stderr)
        sys.exit(1 if e.status_code >= 500 else 2)

    print(json.dumps(payload, indent=2))
    sys.exit(0)


if __name__ == "__main__":
    run()
