"""
Outlook Calendar MCP Server.

FastMCP server exposing Microsoft Graph calendar tools.
Supports both stdio (local) and HTTP (cloud) transport modes.

Tools (2 total):
- get-calendar-events: List events in a date range (recurring series expanded)
- create-calendar-event: Create an event, optionally recurring, with attendees
"""

import asyncio
import logging
from typing import Optional

from fastmcp import FastMCP

from outlook_calendar.api.auth import AzureCredentialProvider, TokenProvider
from outlook_calendar.api.client import GraphClient
from outlook_calendar.settings import Settings, get_settings
from outlook_calendar.tools import register_calendar_tools
from outlook_calendar.tools.registry import ToolContext, ToolRegistry
from outlook_calendar.transport.mcp_server import create_mcp_server


logger = logging.getLogger(__name__)


def build_registry() -> ToolRegistry:
    return register_calendar_tools(ToolRegistry())


def create_context(
    settings: Settings,
    token_provider: Optional[TokenProvider] = None,
    graph: Optional[GraphClient] = None,
) -> ToolContext:
    """Wire settings, credentials and the Graph client together."""
    if graph is None:
        graph = GraphClient(
            token_provider or AzureCredentialProvider(settings),
            base_url=settings.graph_base_url,
        )
    return ToolContext(settings=settings, graph=graph)


async def run_stdio(mcp: FastMCP, context: ToolContext) -> None:
    try:
        await mcp.run_async(transport="stdio", show_banner=False)
    finally:
        await context.graph.aclose()


def serve(settings: Optional[Settings] = None):
    """Run MCP server with configured transport."""
    settings = settings or get_settings()

    missing = settings.missing_credentials()
    if missing:
        # Tools report this per call; the server still starts
        logger.warning(f"Missing Graph credentials: {', '.join(missing)}")
    if not settings.user_id:
        logger.warning("USER_ID is not set; calls with user_id='me' will fail")

    registry = build_registry()
    context = create_context(settings)

    if settings.is_http_mode():
        import uvicorn

        from outlook_calendar.transport.http import create_http_app

        if not settings.auth_token:
            logger.warning("AUTH_TOKEN is not set; HTTP transport accepts unauthenticated calls")

        app = create_http_app(registry, context, auth_token=settings.auth_token)
        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
    else:
        asyncio.run(run_stdio(create_mcp_server(registry, context), context))


if __name__ == "__main__":
    serve()
