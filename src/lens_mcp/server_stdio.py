"""stdio transport entrypoint for the LENS MCP server.

Runs the same tools as the HTTP entrypoint over stdin/stdout, suitable for
desktop MCP hosts that spawn the server as a subprocess.
"""

import asyncio
import logging
import sys

from mcp.server.stdio import stdio_server

from lens_mcp.client import LensClient
from lens_mcp.config import get_settings
from lens_mcp.mcp_app import create_mcp_server, setup_mcp_app

# Configure logging to stderr to avoid interfering with stdio transport
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


async def run_server() -> None:
    """Run the MCP server with stdio transport."""
    settings = get_settings()
    logger.info("Starting LENS MCP server (stdio transport)")
    logger.info("Connecting to LENS API at %s", settings.base_url)

    server = create_mcp_server()
    client = LensClient(settings)

    try:
        setup_mcp_app(server, settings, client)

        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:
        await client.close()
        logger.info("Server shutdown complete")


def main() -> None:
    """Main entrypoint for stdio transport."""
    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        logger.info("Server interrupted by user")
    except Exception as e:
        logger.exception("Server failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
