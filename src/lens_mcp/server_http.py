"""Streamable HTTP transport entrypoint for the LENS MCP server.

This module provides the main entrypoint for running the MCP server
using streamable HTTP transport via uvicorn.
"""

import argparse
import contextlib
import json
import logging
import sys
from collections.abc import AsyncIterator

import uvicorn
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from mcp.types import INTERNAL_ERROR
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.types import Message, Receive, Scope, Send

from lens_mcp.client import LensClient
from lens_mcp.config import Settings, get_settings
from lens_mcp.mcp_app import create_mcp_server, setup_mcp_app, to_error_envelope

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

METHOD_NOT_ALLOWED = -32000


def _is_internal_error(start: Message, body: bytes) -> bool:
    """Check whether a JSON-RPC response body reports an internal error."""
    if start.get("status") != 200:
        return False
    headers = dict(start.get("headers", []))
    if not headers.get(b"content-type", b"").startswith(b"application/json"):
        return False
    try:
        payload = json.loads(body)
    except ValueError:
        return False
    if not isinstance(payload, dict) or not isinstance(payload.get("error"), dict):
        return False
    return payload["error"].get("code") == INTERNAL_ERROR


class McpEndpoint:
    """ASGI endpoint for ``/mcp``.

    POST requests go to the stateless session manager, which builds a fresh
    transport for every request. All other methods get a 405 error envelope.
    """

    def __init__(self, session_manager: StreamableHTTPSessionManager) -> None:
        self._session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        method = scope["method"]
        if method != "POST":
            logger.info("Received %s MCP request", method)
            response = JSONResponse(
                to_error_envelope(METHOD_NOT_ALLOWED, "Method not allowed."),
                status_code=405,
            )
            await response(scope, receive, send)
            return

        logger.info("Received MCP request")
        started = False
        pending_start: Message | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal started, pending_start
            if message["type"] == "http.response.start":
                pending_start = message
                return
            if message["type"] == "http.response.body" and pending_start is not None:
                start, pending_start = pending_start, None
                if not message.get("more_body", False) and _is_internal_error(
                    start, message.get("body", b"")
                ):
                    start = {**start, "status": 500}
                started = True
                await send(start)
            await send(message)

        try:
            await self._session_manager.handle_request(scope, receive, send_wrapper)
        except Exception:
            logger.exception("Error handling MCP request")
            if not started:
                response = JSONResponse(
                    to_error_envelope(INTERNAL_ERROR, "Internal server error"),
                    status_code=500,
                )
                await response(scope, receive, send)


def create_app(settings: Settings | None = None, client: LensClient | None = None) -> Starlette:
    """Create the Starlette ASGI application with MCP endpoints.

    Args:
        settings: Application settings; read from the environment when omitted.
        client: LENS client; built from ``settings`` when omitted.

    Returns:
        Configured Starlette application.
    """
    settings = settings or get_settings()
    client = client or LensClient(settings)
    mcp_server = create_mcp_server()
    setup_mcp_app(mcp_server, settings, client)

    session_manager = StreamableHTTPSessionManager(
        app=mcp_server,
        json_response=True,
        stateless=True,
    )

    async def health_check(_request: Request) -> JSONResponse:
        """Health check endpoint.

        Returns:
            JSON response with status.
        """
        return JSONResponse(
            {
                "status": "healthy",
                "service": "lens_mcp",
                "lens_url": settings.base_url,
            }
        )

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        logger.info("LENS MCP server starting (HTTP transport)")
        logger.info("Connecting to LENS API at %s", settings.base_url)
        try:
            async with session_manager.run():
                yield
        finally:
            await client.close()
            logger.info("Server shutdown complete")

    return Starlette(
        debug=False,
        routes=[
            Route("/health", health_check, methods=["GET"]),
            Route("/mcp", McpEndpoint(session_manager)),
        ],
        lifespan=lifespan,
    )


def parse_args(settings: Settings) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        settings: Settings supplying the default port.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(description="LENS MCP server with HTTP transport")
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port to bind to (default: PORT or 3000, currently {settings.port})",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    return parser.parse_args()


def main() -> None:
    """Main entrypoint for HTTP transport."""
    args = parse_args(get_settings())

    logger.info("MCP Streamable HTTP Server listening on %s:%d", args.host, args.port)

    try:
        uvicorn.run(
            "lens_mcp.server_http:create_app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            factory=True,
            log_level="info",
        )
    except KeyboardInterrupt:
        logger.info("Server interrupted by user")
    except Exception as e:
        logger.exception("Server failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
