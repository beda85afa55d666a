"""Tests for the MCP envelope adapter and call_tool handler."""

import json
from importlib.metadata import version

import httpx
import pytest
import respx
from mcp.server import Server
from mcp.shared.exceptions import McpError
from mcp.types import CallToolRequest, CallToolRequestParams, CallToolResult, TextContent

from lens_mcp.client import LensClient, UpstreamParseError, UpstreamUnavailableError
from lens_mcp.config import Settings
from lens_mcp.mcp_app import (
    SERVER_NAME,
    SERVER_VERSION,
    InternalError,
    create_mcp_server,
    setup_mcp_app,
    to_envelope,
    to_error_envelope,
    to_mcp_error,
)
from lens_mcp.tools import InvalidParameterError, UnknownToolError


@pytest.fixture
def server(settings: Settings, client: LensClient) -> Server:
    server = create_mcp_server()
    setup_mcp_app(server, settings, client)
    return server


async def call(server: Server, name: str, arguments: dict | None = None) -> CallToolResult:
    handler = server.request_handlers[CallToolRequest]
    request = CallToolRequest(
        method="tools/call",
        params=CallToolRequestParams(name=name, arguments=arguments),
    )
    result = await handler(request)
    return result.root


class TestToEnvelope:
    """Tests for success envelopes."""

    def test_string_passes_through(self) -> None:
        content = to_envelope("three open announcements")

        assert len(content) == 1
        assert isinstance(content[0], TextContent)
        assert content[0].type == "text"
        assert content[0].text == "three open announcements"

    def test_object_is_serialized(self) -> None:
        data = {"forecast": 1200.5, "currency": "USD"}
        content = to_envelope(data)

        assert len(content) == 1
        assert json.loads(content[0].text) == data

    def test_list_is_serialized(self) -> None:
        content = to_envelope([{"uduns": "1"}, {"uduns": "2"}])
        assert json.loads(content[0].text) == [{"uduns": "1"}, {"uduns": "2"}]

    def test_number_is_serialized(self) -> None:
        assert to_envelope(42)[0].text == "42"

    def test_none_is_empty_text(self) -> None:
        content = to_envelope(None)
        assert len(content) == 1
        assert content[0].text == ""


class TestErrorEnvelope:
    """Tests for error envelopes and error mapping."""

    def test_error_envelope_shape(self) -> None:
        assert to_error_envelope(-32000, "Method not allowed.") == {
            "jsonrpc": "2.0",
            "error": {"code": -32000, "message": "Method not allowed."},
            "id": None,
        }

    def test_tool_errors_are_invalid_params(self) -> None:
        assert to_mcp_error(UnknownToolError("nope")).error.code == -32602
        assert to_mcp_error(InvalidParameterError("t", "uduns: Field required")).error.code == -32602

    def test_upstream_errors_are_internal(self) -> None:
        error = to_mcp_error(UpstreamUnavailableError("Request failed", request_id="req-9"))

        assert isinstance(error, InternalError)
        assert error.error.code == -32603
        assert "req-9" in error.error.message

        assert to_mcp_error(UpstreamParseError("Invalid JSON")).error.code == -32603

    def test_unexpected_errors_are_internal(self) -> None:
        error = to_mcp_error(KeyError("boom"))
        assert error.error.code == -32603
        assert error.error.message.startswith("Internal error")

    def test_mcp_error_passes_through(self) -> None:
        original = InternalError("already mapped")
        assert to_mcp_error(original) is original


class TestCallTool:
    """Tests for the registered tools/call handler."""

    def test_supported_sdk_major_version(self) -> None:
        assert int(version("mcp").split(".")[0]) == 1

    def test_server_identity(self) -> None:
        server = create_mcp_server()
        assert server.name == SERVER_NAME == "mcp-streamable-http"
        assert server.version == SERVER_VERSION == "1.0.0"

    @respx.mock
    async def test_success(self, server: Server, client: LensClient) -> None:
        respx.get("http://test-lens:3001/api/pipelineDetails/123456789").mock(
            return_value=httpx.Response(200, json={"result": {"stage": "proposal"}})
        )

        result = await call(server, "get-pipeline-details-by-account", {"uduns": "123456789"})

        assert result.isError is False
        assert len(result.content) == 1
        assert json.loads(result.content[0].text) == {"stage": "proposal"}
        await client.close()

    async def test_missing_parameter(self, server: Server) -> None:
        with pytest.raises(McpError) as exc_info:
            await call(server, "get-announcements-by-account", {})
        assert exc_info.value.error.code == -32602

    async def test_unknown_tool(self, server: Server) -> None:
        with pytest.raises(McpError) as exc_info:
            await call(server, "nonexistent-tool")
        assert exc_info.value.error.code == -32602
        assert "nonexistent-tool" in exc_info.value.error.message

    @respx.mock
    async def test_upstream_failure(self, server: Server, client: LensClient) -> None:
        respx.get("http://test-lens:3001/api/client").mock(
            side_effect=httpx.ConnectError("Connection refused")
        )

        with pytest.raises(McpError) as exc_info:
            await call(server, "get-client-list")

        assert exc_info.value.error.code == -32603
        await client.close()
