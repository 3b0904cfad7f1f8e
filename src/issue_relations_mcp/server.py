"""GitHub Issue Relationships MCP Server - process bootstrap.

Reads configuration, builds the relations client and tool registry, and runs
a JSON-RPC session on stdin/stdout.

Configuration via environment variables:
    GITHUB_TOKEN         GitHub token with issue read/write access (required)
    GITHUB_API_BASE_URL  API base URL override (default: https://api.github.com)
    LOG_LEVEL            Logging level (default: INFO)
"""
import asyncio
import logging
import sys

from mcp.types import Implementation

from . import __version__
from .client import RelationClient
from .config import Config, ConfigError, load_config
from .registry import build_registry
from .session import STREAM_LIMIT, JsonRpcSession

SERVER_NAME = "github-issues-mcp-server"

logger = logging.getLogger("github-relations-mcp")


def configure_logging(level: str = "INFO") -> None:
    """Send all logging to stderr; stdout carries protocol frames only."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
        force=True
    )
    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def open_stdio() -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Wrap the process's stdin/stdout as asyncio streams."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=STREAM_LIMIT)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    transport, protocol = await loop.connect_write_pipe(asyncio.streams.FlowControlMixin, sys.stdout)
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    return reader, writer


async def main(config: Config) -> None:
    """Run the MCP server until stdin closes."""
    logger.info(f"MCP Server starting with GITHUB_API_BASE_URL: {config.github_api_base_url}")

    async with RelationClient(config.github_token, config.github_api_base_url) as client:
        registry = build_registry(client)
        reader, writer = await open_stdio()
        session = JsonRpcSession(
            reader,
            writer,
            registry=registry,
            server_info=Implementation(name=SERVER_NAME, version=__version__),
        )
        logger.info("GitHub Issue Relationships MCP server started")
        await session.run()


def run() -> None:
    """Console entry point."""
    configure_logging()
    try:
        config = load_config()
    except ConfigError as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
    configure_logging(config.log_level)

    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        logger.info("Server stopped")


if __name__ == "__main__":
    run()
