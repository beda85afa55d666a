"""MCP application exposing the LENS tools.

This module defines the MCP server and its tool handlers, intended to be
reused by both stdio and HTTP transport entrypoints.
"""

import json
import logging
from typing import Any

from mcp.server import Server
from mcp.shared.exceptions import McpError
from mcp.types import (
    INTERNAL_ERROR,
    CallToolRequest,
    CallToolResult,
    ErrorData,
    ServerResult,
    TextContent,
    Tool,
)

from lens_mcp.client import LensClient, LensClientError
from lens_mcp.config import Settings
from lens_mcp.tools import ToolError, ToolRegistry, build_registry

logger = logging.getLogger(__name__)

SERVER_NAME = "mcp-streamable-http"
SERVER_VERSION = "1.0.0"


class InternalError(McpError):
    """Failure that is not the caller's fault, reported as JSON-RPC -32603."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorData(code=INTERNAL_ERROR, message=message))


def create_mcp_server(name: str = SERVER_NAME, version: str = SERVER_VERSION) -> Server:
    """Create the MCP server.

    Args:
        name: Server name advertised during the handshake.
        version: Server version advertised during the handshake.

    Returns:
        MCP Server instance.
    """
    return Server(name, version=version)


def to_envelope(result: Any) -> list[TextContent]:
    """Wrap an upstream result as a single MCP text block.

    Strings are passed through, None becomes empty text and any other JSON
    value is serialized.

    Args:
        result: The value found under the upstream ``result`` key.

    Returns:
        List containing exactly one TextContent.
    """
    if result is None:
        text = ""
    elif isinstance(result, str):
        text = result
    else:
        text = json.dumps(result, indent=2, default=str)
    return [TextContent(type="text", text=text)]


def to_error_envelope(code: int, message: str) -> dict[str, Any]:
    """Build a JSON-RPC error response with a null id.

    Args:
        code: JSON-RPC error code.
        message: Human readable message.

    Returns:
        Error envelope ready to serialize.
    """
    return {
        "jsonrpc": "2.0",
        "error": {"code": code, "message": message},
        "id": None,
    }


def to_mcp_error(exc: Exception) -> McpError:
    """Map a failure raised while serving a tool call to a protocol error.

    Args:
        exc: The exception raised by dispatch.

    Returns:
        McpError carrying the JSON-RPC code for the failure.
    """
    if isinstance(exc, McpError):
        return exc
    if isinstance(exc, ToolError):
        return McpError(ErrorData(code=exc.code, message=str(exc)))
    if isinstance(exc, LensClientError):
        message = str(exc)
        if exc.request_id:
            message += f" (request_id: {exc.request_id})"
        return InternalError(message)
    return InternalError(f"Internal error: {exc}")


def register_tools(server: Server, registry: ToolRegistry) -> None:
    """Register the tool handlers on the server.

    Args:
        server: The MCP server to register tools on.
        registry: Registry holding the tool definitions.
    """

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return registry.list_tools()

    async def call_tool(req: CallToolRequest) -> ServerResult:
        name = req.params.name
        logger.info("Tool called: %s", name)
        try:
            result = await registry.dispatch(name, req.params.arguments)
        except (ToolError, LensClientError) as e:
            logger.error("Tool %s failed: %s", name, e)
            raise to_mcp_error(e) from e
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            raise to_mcp_error(e) from e
        return ServerResult(CallToolResult(content=to_envelope(result), isError=False))

    # Registered directly so failures reach the caller as JSON-RPC errors
    # instead of an isError tool result.
    server.request_handlers[CallToolRequest] = call_tool


def setup_mcp_app(server: Server, settings: Settings, client: LensClient) -> ToolRegistry:
    """Set up the complete MCP application.

    Args:
        server: The MCP server to configure.
        settings: Application settings.
        client: The LENS client for API calls.

    Returns:
        The registry backing the server's tools.
    """
    registry = build_registry(client)
    register_tools(server, registry)
    logger.info("MCP server configured for %s", settings.base_url)
    return registry
