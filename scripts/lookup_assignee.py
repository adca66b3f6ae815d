"""Look up merged IP activity counts for an assignee from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from app.core.config import get_settings
from app.core.logging_config import configure_logging
from app.schemas import IPDataResponse
from app.services import AssigneeValidationError, IPDataAggregator

LOGGER = logging.getLogger("lookup_assignee")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Count patents, trademarks and pending applications for an assignee")
    parser.add_argument("assignee", help="Organization name to look up")
    parser.add_argument("--no-variants", action="store_true", help="Only query the exact name, no suffix variants")
    parser.add_argument("--deadline", type=float, help="Overall deadline in seconds for all upstream calls")
    parser.add_argument("--concurrency", type=int, help="Maximum simultaneous upstream requests")
    parser.add_argument("--output", type=Path, help="Optional path to write the JSON result")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def decode_argument(value: str) -> str:
    """Replace lone surrogates left by argv decoding of non-UTF-8 bytes with "?"."""

    return value.encode("utf-8", errors="replace").decode("utf-8")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    overrides = {}
    if args.deadline:
        overrides["aggregate_deadline_seconds"] = args.deadline
    if args.concurrency:
        overrides["max_concurrency"] = args.concurrency
    settings = get_settings().model_copy(update=overrides)

    aggregator = IPDataAggregator(settings=settings)
    try:
        result = asyncio.run(aggregator.aggregate(decode_argument(args.assignee), not args.no_variants))
    except AssigneeValidationError as exc:
        LOGGER.error("%s", exc)
        return 2

    document = IPDataResponse.from_result(result).model_dump(mode="json", by_alias=True)
    rendered = json.dumps(document, indent=2)
    if args.output:
        args.output.write_text(rendered, encoding="utf-8")
        LOGGER.info("Wrote result to %s", args.output)
    else:
        print(rendered)
    return 0


if __name__ == "__main__":
    sys.exit(main())
