"""
Outlook Calendar MCP CLI entry point.

Usage:
    python -m outlook_calendar serve                      # Run MCP server (TRANSPORT_MODE)
    python -m outlook_calendar serve --transport http     # Run HTTP transport
    python -m outlook_calendar serve --port 8080          # Override PORT
    python -m outlook_calendar tools                      # Print tool names and schemas
"""

import argparse
import json
import logging
import sys


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    """Log to stderr; stdout is reserved for the stdio protocol."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def run_tools(as_json: bool) -> int:
    from outlook_calendar.server import build_registry

    tools = build_registry().list_tools()
    if as_json:
        print(json.dumps([tool.to_dict() for tool in tools], indent=2))
        return 0

    for tool in tools:
        print(f"{tool.name}: {tool.description}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="outlook-calendar-mcp",
        description="Outlook Calendar MCP server (Microsoft Graph)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run MCP server")
    serve_parser.add_argument(
        "--transport", "-t",
        choices=["stdio", "http"],
        help="Transport mode (default: TRANSPORT_MODE or stdio)"
    )
    serve_parser.add_argument(
        "--host",
        help="HTTP bind address (default: HOST or 0.0.0.0)"
    )
    serve_parser.add_argument(
        "--port", "-p",
        type=int,
        help="HTTP port (default: PORT or 3000)"
    )

    # tools command
    tools_parser = subparsers.add_parser("tools", help="List registered tools")
    tools_parser.add_argument(
        "--json",
        action="store_true",
        dest="as_json",
        help="Print full tool definitions with input schemas"
    )

    args = parser.parse_args()

    from outlook_calendar.settings import get_settings

    settings = get_settings()
    configure_logging(settings.log_level)

    if args.command == "tools":
        sys.exit(run_tools(args.as_json))

    elif args.command == "serve" or args.command is None:
        from outlook_calendar.server import serve

        overrides = {}
        if getattr(args, "transport", None):
            overrides["transport_mode"] = args.transport
        if getattr(args, "host", None):
            overrides["host"] = args.host
        if getattr(args, "port", None):
            overrides["port"] = args.port
        if overrides:
            settings = settings.model_copy(update=overrides)

        serve(settings)


if __name__ == "__main__":
    main()
