"""Tool registry and base tool class."""

import asyncio
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import BaseModel, model_validator

from taskpilot.config import get_config
from taskpilot.exceptions import (
    ArgumentParseError,
    MissingArgumentError,
    ToolError,
    ToolExecutionError,
    UnknownToolError,
)
from taskpilot.logging import get_logger

log = get_logger(__name__)


class ToolResult(BaseModel):
    """Result from tool execution."""

    success: bool = True
    content: str = ""
    error: str | None = None
    error_type: str | None = None

    @model_validator(mode="after")
    def _normalize_failure_error(self) -> "ToolResult":
        """Ensure failed results always provide an error message."""
        if not self.success and not (self.error or "").strip():
            fallback = (self.content or "").strip()
            self.error = fallback or "Tool execution failed"
        return self

    @classmethod
    def ok(cls, content: str) -> "ToolResult":
        return cls(success=True, content=content)

    @classmethod
    def fail(cls, error: ToolError, content: str = "") -> "ToolResult":
        """Build a failed result carrying the error's type and message."""
        return cls(
            success=False,
            content=content,
            error=str(error),
            error_type=type(error).__name__,
        )

    def to_output(self) -> str:
        """Text sent back to the model as the tool-call result."""
        if self.success:
            return self.content
        label = f"Error ({self.error_type})" if self.error_type else "Error"
        text = f"{label}: {self.error}"
        if self.content:
            text += f"\n{self.content}"
        return text


@dataclass(frozen=True)
class ToolInvocation:
    """Tool name plus parsed argument mapping."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


def parse_tool_invocation(name: str, raw_arguments: str | dict[str, Any] | None) -> ToolInvocation:
    """Parse raw argument text from a tool-call request.

    Empty text means no arguments. Anything that does not decode to a JSON
    object raises ArgumentParseError.
    """
    if isinstance(raw_arguments, dict):
        return ToolInvocation(name=name, arguments=dict(raw_arguments))
    text = str(raw_arguments or "").strip()
    if not text:
        return ToolInvocation(name=name)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ArgumentParseError(
            name,
            f"Could not parse arguments for '{name}' as JSON: {e.msg} "
            f"(line {e.lineno}, column {e.colno})",
        ) from e
    if not isinstance(parsed, dict):
        raise ArgumentParseError(
            name,
            f"Arguments for '{name}' must be a JSON object, got {type(parsed).__name__}",
        )
    return ToolInvocation(name=name, arguments=parsed)


class Tool(ABC):
    """Base class for all tools."""

    name: str = ""
    description: str = ""
    parameters: dict[str, Any] = {}
    irreversible: bool = False

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolResult:
        """Execute the tool.

        Args:
            **kwargs: Tool-specific arguments

        Returns:
            ToolResult with success status and content
        """
        pass

    def get_definition(self) -> dict[str, Any]:
        """Get the tool definition for LLM.

        Returns:
            OpenAI function-style definition
        """
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    def validate_arguments(self, arguments: dict[str, Any]) -> MissingArgumentError | None:
        """Return the first missing required argument as an error, if any."""
        for required in self.parameters.get("required", []):
            if arguments.get(required) is None:
                return MissingArgumentError(self.name, required)
        return None

    def prepare_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Keep declared parameters only, coercing scalar values to strings."""
        properties = self.parameters.get("properties", {})
        prepared: dict[str, Any] = {}
        for key, value in arguments.items():
            if key not in properties or value is None:
                continue
            if properties[key].get("type") == "string" and not isinstance(value, str):
                value = json.dumps(value) if isinstance(value, (dict, list)) else str(value)
            prepared[key] = value
        return prepared

    def confirmation_question(self, arguments: dict[str, Any]) -> str:
        """Question put to the operator before an irreversible run."""
        return f"Allow tool '{self.name}' with arguments {json.dumps(arguments)}?"


class ToolRegistry:
    """Registry for managing available tools."""

    def __init__(self, approval_callback: Callable[[str], bool] | None = None):
        self._tools: dict[str, Tool] = {}
        self._approval_callback = approval_callback

    def set_approval_callback(self, callback: Callable[[str], bool] | None) -> None:
        """Set approval callback used before irreversible tools run."""
        self._approval_callback = callback

    def register(self, tool: Tool) -> None:
        """Register a tool.

        Args:
            tool: Tool instance to register
        """
        if not tool.name:
            raise ValueError("Tool must have a name")
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")

        log.debug("Registering tool", tool=tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        """Get a tool by name.

        Raises:
            UnknownToolError if not found
        """
        if name not in self._tools:
            raise UnknownToolError(name)
        return self._tools[name]

    def list_tools(self) -> list[str]:
        """List all registered tool names."""
        return list(self._tools)

    def get_definitions(self) -> list[dict[str, Any]]:
        """Get all tool definitions for LLM."""
        return [tool.get_definition() for tool in self._tools.values()]

    def requires_confirmation(self, tool: Tool) -> bool:
        """Whether a tool must pass the operator gate before running."""
        return tool.irreversible or tool.name in get_config().tools.require_confirmation

    def _approve(self, tool: Tool, arguments: dict[str, Any]) -> bool:
        if not callable(self._approval_callback):
            log.warning(
                "Tool requires operator approval but no callback is configured; declining",
                tool=tool.name,
            )
            return False
        try:
            return bool(self._approval_callback(tool.confirmation_question(arguments)))
        except EOFError:
            log.warning("Operator input closed during confirmation; declining", tool=tool.name)
            return False

    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolResult:
        """Execute a tool by name.

        Every failure is returned as a failed ToolResult; nothing raises
        except task cancellation.
        """
        try:
            tool = self.get(name)
        except UnknownToolError as e:
            log.warning("Unknown tool requested", tool=name)
            return ToolResult.fail(e)

        if not isinstance(arguments, dict):
            return ToolResult.fail(
                ArgumentParseError(name, f"Arguments for '{name}' must be an object")
            )
        prepared = tool.prepare_arguments(arguments)
        missing = tool.validate_arguments(prepared)
        if missing is not None:
            return ToolResult.fail(missing)

        if self.requires_confirmation(tool) and not self._approve(tool, prepared):
            log.info("Tool call cancelled by operator", tool=name)
            return ToolResult.ok(
                f"Cancelled: the operator declined to run '{name}'. Nothing was executed."
            )

        timeout_seconds = get_config().tools.timeout_seconds
        try:
            log.info("Executing tool", tool=name, args=prepared)
            if timeout_seconds:
                result = await asyncio.wait_for(tool.execute(**prepared), timeout=timeout_seconds)
            else:
                result = await tool.execute(**prepared)
        except asyncio.TimeoutError:
            return ToolResult.fail(
                ToolExecutionError(name, f"Execution timed out after {timeout_seconds}s")
            )
        except ToolError as e:
            return ToolResult.fail(e)
        except Exception as e:
            log.error("Tool execution failed", tool=name, error=str(e))
            return ToolResult.fail(ToolExecutionError(name, str(e)))

        if not isinstance(result, ToolResult):
            return ToolResult.fail(ToolExecutionError(name, "Tool returned invalid result payload"))
        log.info("Tool executed", tool=name, success=result.success)
        return result


# Global registry
_registry: ToolRegistry | None = None


def get_tool_registry() -> ToolRegistry:
    """Get the global tool registry with the configured default tools."""
    global _registry
    if _registry is None:
        from taskpilot.tools import build_default_registry

        _registry = build_default_registry()
    return _registry


def set_tool_registry(registry: ToolRegistry | None) -> None:
    """Set the global tool registry."""
    global _registry
    _registry = registry
