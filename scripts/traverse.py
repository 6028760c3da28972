"""Walk CMDB relationships from one CI and print the result as JSON.

Usage:
  # Everything within 3 levels of a CI, both directions
  python scripts/traverse.py --name "SAP ERP Production"

  # Impact analysis: what sits upstream of a server, 5 levels deep
  python scripts/traverse.py --sys-id 3a70f789c0a8ce0100bc7a0c2d8fa0ea --depth 5 --impact

  # Only "Runs on" relationships, only report Linux servers
  python scripts/traverse.py --name web01 --type "runs on" --class linux

Reads SN_INSTANCE, SN_USER and SN_PASSWORD from the environment or .env.
Ctrl-C stops the walk before its next ServiceNow call.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys

from cmdbwalk.config import get_settings
from cmdbwalk.models.schemas import TraversalRequest
from cmdbwalk.servicenow.connection import ServiceNowClient
from cmdbwalk.services.traversal_service import TraversalService
from cmdbwalk.utils.exceptions import CMDBWalkError
from cmdbwalk.utils.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Traverse CMDB CI relationships")
    root = parser.add_mutually_exclusive_group(required=True)
    root.add_argument("--name", dest="ci_name", help="Name of the CI to start from")
    root.add_argument("--sys-id", dest="sys_id", help="sys_id of the CI to start from")
    parser.add_argument("--depth", type=int, default=None, help="Levels to traverse (1-5)")
    parser.add_argument(
        "--direction",
        choices=("upstream", "downstream", "both"),
        default="both",
        help="Traversal direction (default: both)",
    )
    parser.add_argument("--type", dest="type_filter", help="Relationship type substring")
    parser.add_argument("--class", dest="class_filter", help="Reported CI class substring")
    parser.add_argument(
        "--impact",
        action="store_true",
        help="Impact analysis mode; walks upstream only",
    )
    return parser


def request_from_args(args: argparse.Namespace) -> TraversalRequest:
    return TraversalRequest(
        sys_id=args.sys_id,
        ci_name=args.ci_name,
        max_depth=args.depth,
        direction=args.direction,
        type_filter=args.type_filter,
        class_filter=args.class_filter,
        impact=args.impact,
    )


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(log_level=settings.LOG_LEVEL, log_format="console", instance=settings.SN_INSTANCE)

    loop = asyncio.get_running_loop()
    cancel = asyncio.Event()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
        handles_sigint = True
    except (NotImplementedError, RuntimeError):
        handles_sigint = False  # no signal handlers on Windows loops or off the main thread

    try:
        async with ServiceNowClient(settings) as client:
            service = TraversalService(client, default_depth=settings.SN_REL_DEPTH)
            result = await service.traverse(request_from_args(args), cancel_event=cancel)
    except CMDBWalkError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)

    print(json.dumps(result.to_record(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
