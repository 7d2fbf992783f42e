"""
MCP protocol surface.

Registry tools are exposed on a FastMCP server. FastMCP owns framing,
the initialize handshake and tools/list; every tools/call goes through
ToolRegistry.call so validation errors, "me" resolution and upstream
failures come back as tool results rather than protocol errors.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from fastmcp import FastMCP
from fastmcp.server.dependencies import get_http_headers
from fastmcp.server.middleware import Middleware
from fastmcp.tools import Tool, ToolResult as McpToolResult
from mcp.shared.exceptions import MCPError
from mcp_types import INVALID_REQUEST, EmbeddedResource, TextContent, TextResourceContents
from pydantic.json_schema import SkipJsonSchema

from outlook_calendar.tools.registry import (
    JSON_MIME_TYPE,
    ToolContext,
    ToolRegistry,
    ToolResult,
    encode_data_uri,
)


logger = logging.getLogger(__name__)


SERVER_NAME = "outlook-calendar"
INSTRUCTIONS = """
Outlook calendar tools backed by Microsoft Graph.

- get-calendar-events: events between two dates (inclusive), recurring series expanded
- create-calendar-event: create an event, optionally recurring, with attendees

Dates and times are interpreted in the `timezone` argument (IANA name).
Use user_id="me" for the mailbox configured in USER_ID.
"""


def to_mcp_result(result: ToolResult) -> McpToolResult:
    """Text items first, then each payload as an embedded JSON resource."""
    content: list = [TextContent(type="text", text=text) for text in result.text]
    for resource in result.resources:
        content.append(EmbeddedResource(
            type="resource",
            resource=TextResourceContents(
                uri=encode_data_uri(resource.payload),
                mime_type=JSON_MIME_TYPE,
                text=resource.label,
            ),
        ))
    return McpToolResult(content=content, meta=result.meta, is_error=result.is_error)


class RegistryTool(Tool):
    """FastMCP tool delegating to a registry entry."""

    call: SkipJsonSchema[Callable[[dict[str, Any]], Awaitable[ToolResult]]]

    async def run(self, arguments: dict[str, Any]) -> McpToolResult:
        return to_mcp_result(await self.call(arguments))


class BearerAuthMiddleware(Middleware):
    """
    Require `Authorization: Bearer <token>` on tools/call.

    Lifecycle and listing requests stay open so clients can discover the
    server before authenticating. A rejected call is a -32600 protocol
    error carrying remediation text, not a tool result.
    """

    def __init__(self, token: str):
        self.token = token

    async def on_call_tool(self, context, call_next):
        header = get_http_headers(include={"authorization"}).get("authorization", "")
        if not header:
            raise unauthorized("Missing access token")
        if not header.startswith("Bearer ") or header[7:].strip() != self.token:
            raise unauthorized("Invalid access token")
        return await call_next(context)


def unauthorized(reason: str) -> MCPError:
    return MCPError(
        code=INVALID_REQUEST,
        message="Unauthorized",
        data={
            "error": reason,
            "details": "Send the AUTH_TOKEN value in an 'Authorization: Bearer <token>' header.",
        },
    )


class SseRelayMiddleware(Middleware):
    """Announce every tools/call outcome to the SSE clients."""

    def __init__(self, broadcast: Callable[[str, dict], None]):
        self.broadcast = broadcast

    async def on_call_tool(self, context, call_next):
        name = context.message.name
        try:
            result = await call_next(context)
        except Exception:
            self.broadcast("message", {"type": "mcp-message", "tool": name, "ok": False})
            raise
        self.broadcast("message", {"type": "mcp-message", "tool": name, "ok": not result.is_error})
        return result


def create_mcp_server(
    registry: ToolRegistry,
    context: ToolContext,
    middleware: Optional[list[Middleware]] = None,
) -> FastMCP:
    """Build the FastMCP server with one tool per registry entry."""
    from outlook_calendar import __version__

    mcp = FastMCP(
        name=SERVER_NAME,
        instructions=INSTRUCTIONS,
        version=__version__,
        middleware=middleware or [],
    )

    for entry in registry.list_tools():
        async def call(arguments: dict[str, Any], name: str = entry.name) -> ToolResult:
            return await registry.call(name, arguments, context)

        mcp.add_tool(RegistryTool(
            name=entry.name,
            description=entry.description,
            parameters=entry.input_schema(),
            call=call,
        ))

    logger.debug(f"FastMCP server exposes {len(registry.list_tools())} tool(s)")
    return mcp
