"""Tool registry: the immutable name -> {contract, handler} table.

Built once at startup and handed to the session. call_tool is the single
entry point for tool execution and guarantees that nothing a tool does can
escape as an exception: validation problems, GitHub rejections and
unexpected failures all come back as CallToolResult(isError=True).
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional
import logging

from mcp.types import CallToolResult, Tool
from pydantic import BaseModel, ValidationError

from . import formatters
from . import handlers
from . import tools
from .client import RelationClient, RelationClientError

logger = logging.getLogger("github-relations-mcp.registry")

Handler = Callable[[Any, RelationClient], Awaitable[CallToolResult]]

HANDLERS: Mapping[str, Handler] = MappingProxyType({
    # Dependency handlers
    "github_get_blocked_by": handlers.handle_get_blocked_by,
    "github_get_blocking": handlers.handle_get_blocking,
    "github_add_blocking_dependency": handlers.handle_add_blocking_dependency,
    "github_remove_blocking_dependency": handlers.handle_remove_blocking_dependency,
    # Sub-issue handlers
    "github_get_parent_issue": handlers.handle_get_parent_issue,
    "github_list_sub_issues": handlers.handle_list_sub_issues,
    "github_add_sub_issue": handlers.handle_add_sub_issue,
    "github_remove_sub_issue": handlers.handle_remove_sub_issue,
    "github_reprioritize_sub_issue": handlers.handle_reprioritize_sub_issue,
})


@dataclass(frozen=True)
class ToolEntry:
    """One callable tool: its published definition, input contract and handler."""

    tool: Tool
    input_model: type[BaseModel]
    handler: Handler


class ToolRegistry:
    """Validates arguments, dispatches to handlers and surfaces errors as tool results."""

    def __init__(self, client: RelationClient, entries: Mapping[str, ToolEntry]):
        self._client = client
        self._entries = MappingProxyType(dict(entries))

    @property
    def names(self) -> list[str]:
        return list(self._entries)

    def list_tools(self) -> list[Tool]:
        return [entry.tool for entry in self._entries.values()]

    async def call_tool(self, name: str, arguments: Optional[dict]) -> CallToolResult:
        """Run one tool invocation end to end."""
        logger.info(f"Tool call: {name} with arguments: {arguments}")

        entry = self._entries.get(name)
        if entry is None:
            logger.warning(f"Unknown tool requested: {name}")
            return handlers.error_result(f"Error: Tool not found: {name}")

        try:
            params = entry.input_model.model_validate(arguments or {})
        except ValidationError as e:
            logger.warning(f"Invalid arguments for {name}: {e.error_count()} error(s)")
            return handlers.error_result(formatters.format_validation_error(name, e))

        try:
            return await entry.handler(params, self._client)

        except RelationClientError as e:
            logger.error(f"GitHub API error during {name} call:")
            logger.error(f"  Kind: {e.kind.value}")
            logger.error(f"  Status: {e.status_code}")
            logger.error(f"  Message: {e.message}")
            return handlers.error_result(formatters.format_client_error(e))

        except Exception as e:
            logger.exception(f"Unexpected error during {name} call: {type(e).__name__}: {e}")
            return handlers.error_result(formatters.format_unexpected_error(e))


def build_registry(client: RelationClient) -> ToolRegistry:
    """Assemble the tool table from the tool definitions and handler map."""
    entries = {
        tool.name: ToolEntry(
            tool=tool,
            input_model=tools.TOOL_INPUTS[tool.name],
            handler=HANDLERS[tool.name],
        )
        for tool in tools.get_tools()
    }
    logger.info(f"Registered {len(entries)} tools")
    return ToolRegistry(client, entries)
