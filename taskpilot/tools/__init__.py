"""Tools package for taskpilot."""

from taskpilot.config import get_config
from taskpilot.tools.registry import (
    Tool,
    ToolInvocation,
    ToolRegistry,
    ToolResult,
    get_tool_registry,
    parse_tool_invocation,
    set_tool_registry,
)
from taskpilot.tools.list_files import ListFilesTool
from taskpilot.tools.read import ReadFileTool
from taskpilot.tools.write import CreateFileTool
from taskpilot.tools.edit import EditFileTool
from taskpilot.tools.shell import RunBashTool

DEFAULT_TOOLS: tuple[type[Tool], ...] = (
    ListFilesTool,
    ReadFileTool,
    CreateFileTool,
    EditFileTool,
    RunBashTool,
)


def build_default_registry(enabled: list[str] | None = None) -> ToolRegistry:
    """Create a registry holding the enabled built-in tools."""
    if enabled is None:
        enabled = get_config().tools.enabled
    wanted = set(enabled)
    registry = ToolRegistry()
    for tool_cls in DEFAULT_TOOLS:
        if tool_cls.name in wanted:
            registry.register(tool_cls())
    return registry


__all__ = [
    "Tool",
    "ToolInvocation",
    "ToolRegistry",
    "ToolResult",
    "get_tool_registry",
    "set_tool_registry",
    "parse_tool_invocation",
    "build_default_registry",
    "ListFilesTool",
    "ReadFileTool",
    "CreateFileTool",
    "EditFileTool",
    "RunBashTool",
]
