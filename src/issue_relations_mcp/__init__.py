"""GitHub Issue Relationships MCP Server.

This package exposes GitHub issue dependencies ("blocked by" / "blocking")
and sub-issue hierarchies to AI assistants over the Model Context Protocol.

Modules:
- server: process bootstrap, stdio wiring
- session: line-delimited JSON-RPC session
- registry: tool table and call contract
- tools: MCP tool definitions
- handlers: tool implementation handlers
- formatters: response formatting utilities
- client: GitHub relations API client
"""

__version__ = "1.0.0"

from . import formatters
from . import tools
from . import handlers

__all__ = ["formatters", "tools", "handlers", "__version__"]
