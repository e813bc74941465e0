from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import orjson

from .api import api_state, call_api, get_api_functions, has_api
from .bootstrap import configure_logging
from .domain import PlannerError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tidy Tortoise command line interface.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    api_parser = subparsers.add_parser("api", help="Start the FastAPI server exposing the planner functions.")
    api_parser.add_argument("--host", default="127.0.0.1")
    api_parser.add_argument("--port", type=int, default=8000)

    subparsers.add_parser("functions", help="List the registered API functions.")

    call_parser = subparsers.add_parser("call", help="Invoke one API function and print its JSON result.")
    call_parser.add_argument("name")
    call_parser.add_argument("arguments", nargs="?", default="{}", help="JSON object of keyword arguments.")

    return parser


async def _call(name: str, arguments: dict) -> object:
    await api_state.auth.restore_from_settings()
    return await call_api(name, **arguments)


def _print_json(payload: object) -> None:
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode() + "\n")


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    logger = logging.getLogger(__name__)
    logger.info("Tidy Tortoise CLI starting")
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "api":
        from .services.http import run_local_server

        run_local_server(host=args.host, port=args.port)
    elif args.command == "functions":
        for api_function in get_api_functions():
            print(f"{api_function.name:24} {api_function.description}")
    elif args.command == "call":
        if not has_api(args.name):
            parser.error(f"unknown API function: {args.name}")
        try:
            arguments = orjson.loads(args.arguments)
        except orjson.JSONDecodeError as exc:
            parser.error(f"arguments must be a JSON object: {exc}")
        if not isinstance(arguments, dict):
            parser.error("arguments must be a JSON object")
        try:
            result = asyncio.run(_call(args.name, arguments))
        except PlannerError as exc:
            _print_json(exc.to_dict())
            return 1
        _print_json(result)
    else:  # pragma: no cover - argparse enforces choices
        parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
