"""
Tool registry and dispatcher.

Tools are registered with a name, a description, a pydantic input model and
an async handler. Dispatch validates arguments, resolves user_id="me" and
converts every failure into an error result: nothing raised by a tool
crosses the transport boundary.

Handlers return a ToolResult (text summary + structured payloads). Payloads
are only encoded as data: URIs when the MCP layer converts the result.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote, unquote

from pydantic import BaseModel, ValidationError

from outlook_calendar.api.auth import MissingConfigurationError
from outlook_calendar.api.client import GraphAPIError, GraphClient
from outlook_calendar.settings import Settings


logger = logging.getLogger(__name__)


ERROR_MARKER = "❌ Error"
JSON_MIME_TYPE = "application/json"
DATA_URI_PREFIX = f"data:{JSON_MIME_TYPE},"

# Characters encodeURIComponent leaves as-is
_URI_SAFE = "-_.!~*'()"


def encode_data_uri(payload: Any) -> str:
    return DATA_URI_PREFIX + quote(json.dumps(payload, default=str, ensure_ascii=False), safe=_URI_SAFE)


def decode_data_uri(uri: str) -> Any:
    if not uri.startswith(DATA_URI_PREFIX):
        raise ValueError("Invalid data URI format")
    return json.loads(unquote(uri[len(DATA_URI_PREFIX):]))


# ============================================================================
# Results
# ============================================================================

@dataclass
class StructuredResource:
    """JSON payload carried alongside the text summary."""
    label: str
    payload: Any


@dataclass
class ToolResult:
    """Dual-format tool response: human-readable text plus structured data."""
    text: list[str] = field(default_factory=list)
    resources: list[StructuredResource] = field(default_factory=list)
    meta: Optional[dict] = None
    is_error: bool = False

    @classmethod
    def error(cls, message: str, meta: Optional[dict] = None) -> "ToolResult":
        text = message if message.startswith(ERROR_MARKER) else f"{ERROR_MARKER}: {message}"
        return cls(text=[text], meta=meta, is_error=True)

    @classmethod
    def failure(cls, exc: Exception) -> "ToolResult":
        """Handler error: one text item plus _meta marking the failure."""
        message = str(exc) or exc.__class__.__name__
        return cls.error(message, meta={"error": True, "errorMessage": message})

    def payload(self, label: str) -> Any:
        for resource in self.resources:
            if resource.label == label:
                return resource.payload
        raise KeyError(label)


# ============================================================================
# Registry
# ============================================================================

@dataclass
class ToolContext:
    """Per-process collaborators handed to every handler."""
    settings: Settings
    graph: GraphClient


Handler = Callable[[Any, ToolContext], Awaitable[ToolResult]]


@dataclass
class Tool:
    name: str
    description: str
    input_model: type
    handler: Handler

    def input_schema(self) -> dict:
        return self.input_model.model_json_schema()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


class ToolNotFoundError(LookupError):
    """No tool registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


def format_validation_error(tool_name: str, error: ValidationError) -> str:
    lines = [f"Invalid arguments for {tool_name}:"]
    for issue in error.errors():
        path = ".".join(str(p) for p in issue["loc"]) or "arguments"
        lines.append(f"- {path}: {issue['msg']}")
    return "\n".join(lines)


class ToolRegistry:
    """Named, schema-validated tools."""

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, name: str, description: str, input_model: type, handler: Handler) -> Tool:
        if not issubclass(input_model, BaseModel):
            raise TypeError(f"Input model for '{name}' must be a pydantic model")
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered")
        tool = Tool(name=name, description=description, input_model=input_model, handler=handler)
        self._tools[name] = tool
        logger.debug(f"Registered tool '{name}'")
        return tool

    def tool(self, name: str, description: str, input_model: type) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""
        def decorator(handler: Handler) -> Handler:
            self.register(name, description, input_model, handler)
            return handler
        return decorator

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name)

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    async def call(self, name: str, arguments: Optional[dict], context: ToolContext) -> ToolResult:
        """
        Validate arguments and run the tool.

        Raises:
            ToolNotFoundError: Unknown tool name (the only error that escapes).
        """
        tool = self.get(name)

        try:
            params = tool.input_model.model_validate(arguments or {})
        except ValidationError as e:
            logger.info(f"Rejected arguments for '{name}': {e.error_count()} issue(s)")
            return ToolResult.error(format_validation_error(name, e))

        if getattr(params, "user_id", None) == "me":
            if not context.settings.user_id:
                return ToolResult.error("USER_ID is not set in the environment (required for user_id='me')")
            params = params.model_copy(update={"user_id": context.settings.user_id})

        try:
            return await tool.handler(params, context)
        except MissingConfigurationError as e:
            logger.error(f"Configuration error in '{name}': {e}")
            return ToolResult.error(str(e))
        except GraphAPIError as e:
            logger.warning(f"Tool '{name}' failed upstream: {e}")
            return ToolResult.failure(e)
        except Exception as e:
            logger.exception(f"Tool '{name}' failed")
            return ToolResult.failure(e)
