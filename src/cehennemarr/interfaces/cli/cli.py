from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog

from cehennemarr.application.use_cases.resolve_stream import parse_stream_id
from cehennemarr.domain.errors import PipelineError, ValidationError, user_message
from cehennemarr.infrastructure.config import load_config
from cehennemarr.infrastructure.config.schema import AppConfig
from cehennemarr.infrastructure.logging.setup import configure_logging
from cehennemarr.interfaces.composition import pipeline_lifespan

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="cehennemarr")

    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )
    parser.add_argument(
        "--relay-base-url",
        default=None,
        help="Route stream URLs through this HLS relay.",
    )
    parser.add_argument(
        "--proxy-mode",
        default=None,
        choices=["auto", "always", "never"],
        help="Override proxy usage policy.",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    resolve = sub.add_parser("resolve", help="Resolve a Stremio id to streams.")
    resolve.add_argument("type", choices=["movie", "series"])
    resolve.add_argument("id", help="tt1234567 or tt1234567:<season>:<episode>")
    resolve.add_argument(
        "--explain",
        action="store_true",
        help="Print the user-facing error message instead of an empty list.",
    )

    return parser.parse_args(argv)


async def _resolve(config: AppConfig, args: argparse.Namespace) -> int:
    async with pipeline_lifespan(config) as ctx:
        if not args.explain:
            response = await ctx.use_case.execute(args.type, args.id)
            print(json.dumps(response, ensure_ascii=False, indent=2))
            return 0

        request = parse_stream_id(args.type, args.id)
        if request is None:
            error = ValidationError("id", args.id, "Unparseable stream id")
            print(user_message(error), file=sys.stderr)
            return 2
        try:
            match, result = await ctx.use_case.resolve(request)
        except PipelineError as exc:
            print(user_message(exc), file=sys.stderr)
            return 1
        print(json.dumps(ctx.use_case.format(match, result), ensure_ascii=False, indent=2))
        return 0


def start(argv: Iterable[str] | None = None) -> int:
    """Process entrypoint: load config once, configure logging, run the command."""
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = {}
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format
    if args.relay_base_url:
        cli_overrides["relay_base_url"] = args.relay_base_url
    if args.proxy_mode:
        cli_overrides["proxy_mode"] = args.proxy_mode

    config = load_config(
        config_path=config_path,
        dotenv_path=dotenv_path,
        cli_overrides=cli_overrides,
    )

    configure_logging(config)

    return asyncio.run(_resolve(config, args))


if __name__ == "__main__":
    raise SystemExit(start())
