"""
HTTP transport.

FastAPI app exposing:
- POST /mcp                   MCP streamable HTTP endpoint (FastMCP, stateless, JSON responses)
- GET  /events                Server-Sent Events liveness stream
- GET  /api/calendar/events   REST wrapper around get-calendar-events
- POST /api/calendar/events   REST wrapper around create-calendar-event
- GET  /health
"""

import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from outlook_calendar.tools.registry import ToolContext, ToolRegistry, ToolResult
from outlook_calendar.transport.mcp_server import BearerAuthMiddleware, SseRelayMiddleware, create_mcp_server


logger = logging.getLogger(__name__)


SSE_PING_INTERVAL = 30.0
SERVICE_NAME = "outlook-calendar-mcp"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def format_sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


class SseBroker:
    """Registry of connected SSE clients."""

    def __init__(self, ping_interval: float = SSE_PING_INTERVAL):
        self.ping_interval = ping_interval
        self.clients: dict[str, asyncio.Queue] = {}

    def connect(self) -> tuple[str, asyncio.Queue]:
        client_id = uuid.uuid4().hex
        queue: asyncio.Queue = asyncio.Queue()
        self.clients[client_id] = queue
        logger.info(f"SSE client {client_id} connected ({len(self.clients)} total)")
        return client_id, queue

    def disconnect(self, client_id: str) -> None:
        if self.clients.pop(client_id, None) is not None:
            logger.info(f"SSE client {client_id} disconnected ({len(self.clients)} remaining)")

    def broadcast(self, event: str, data: dict) -> None:
        for queue in self.clients.values():
            queue.put_nowait((event, {**data, "timestamp": _timestamp()}))

    async def stream(self) -> AsyncIterator[str]:
        """
        Event stream for one client.

        Starts with a `connected` event, then relays broadcasts and sends a
        `ping` whenever the stream has been idle for ping_interval seconds.
        The client is removed when the consumer stops iterating.
        """
        client_id, queue = self.connect()
        try:
            yield format_sse("connected", {
                "clientId": client_id,
                "message": "Connected to SSE server",
                "timestamp": _timestamp(),
            })
            while True:
                try:
                    event, data = await asyncio.wait_for(queue.get(), timeout=self.ping_interval)
                except asyncio.TimeoutError:
                    yield format_sse("ping", {"timestamp": _timestamp()})
                    continue
                yield format_sse(event, data)
        finally:
            self.disconnect(client_id)


def _rest_error_status(result: ToolResult) -> int:
    """Upstream/handler failures carry _meta.error; everything else is the caller's fault."""
    if result.meta and result.meta.get("error"):
        return 502
    return 400


def create_http_app(
    registry: ToolRegistry,
    context: ToolContext,
    auth_token: Optional[str] = None,
    broker: Optional[SseBroker] = None,
):
    """
    Create FastAPI app for HTTP transport mode.

    Includes:
    - FastMCP streamable HTTP app mounted at /mcp (tools/call gated by AUTH_TOKEN)
    - Bearer token check for the REST endpoints (when AUTH_TOKEN is set)
    - SSE stream and health endpoints
    """
    from fastapi import FastAPI, Request
    from fastapi.responses import JSONResponse, StreamingResponse

    from outlook_calendar import __version__

    broker = broker or SseBroker()

    middleware = [SseRelayMiddleware(broker.broadcast)]
    if auth_token:
        middleware.insert(0, BearerAuthMiddleware(auth_token))
    mcp = create_mcp_server(registry, context, middleware=middleware)

    # Get MCP app first to access its lifespan
    mcp_app = mcp.http_app(
        path="/mcp",
        json_response=True,
        stateless_http=True,
        host_origin_protection=False,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Required for FastMCP session management
        async with mcp_app.lifespan(app):
            yield
        await context.graph.aclose()

    app = FastAPI(
        title="Outlook Calendar MCP",
        description="MCP server for Microsoft Graph calendar integration",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.broker = broker

    # Authentication middleware
    @app.middleware("http")
    async def check_auth(request: Request, call_next):
        # Only the REST API is gated here; /mcp gates tools/call itself
        if not auth_token or not request.url.path.startswith("/api/"):
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer ") and auth_header[7:].strip() == auth_token:
            return await call_next(request)

        return JSONResponse(
            {"error": "Unauthorized", "message": "Invalid or missing access token"},
            status_code=401,
        )

    @app.get("/events")
    async def events_stream():
        return StreamingResponse(
            broker.stream(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.get("/api/calendar/events")
    async def list_events(
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        timezone: Optional[str] = None,
        user_id: str = "me",
    ):
        arguments = {"user_id": user_id, "start_date": start_date, "end_date": end_date}
        if timezone:
            arguments["timezone"] = timezone
        arguments = {k: v for k, v in arguments.items() if v is not None}

        result = await registry.call("get-calendar-events", arguments, context)
        if result.is_error:
            return JSONResponse(
                {"error": "Failed to fetch calendar events", "details": result.text[0]},
                status_code=_rest_error_status(result),
            )

        detailed = result.payload("Detailed Calendar Events")
        return {
            "success": True,
            "count": detailed["count"],
            "data": result.payload("Formatted Events"),
        }

    @app.post("/api/calendar/events", status_code=201)
    async def create_event(request: Request):
        try:
            arguments = await request.json()
        except ValueError:
            return JSONResponse({"error": "Request body must be a JSON object"}, status_code=400)
        if not isinstance(arguments, dict):
            return JSONResponse({"error": "Request body must be a JSON object"}, status_code=400)

        result = await registry.call("create-calendar-event", arguments, context)
        if result.is_error:
            return JSONResponse(
                {"error": "Failed to create calendar event", "details": result.text[0]},
                status_code=_rest_error_status(result),
            )
        return {"success": True, "data": result.payload("Created Event")}

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        return {
            "status": "ok",
            "transport": "http",
            "service": SERVICE_NAME,
            "sseClients": len(broker.clients),
        }

    # MCP endpoint last: the mount matches every path the routes above don't
    app.mount("/", mcp_app)

    return app
