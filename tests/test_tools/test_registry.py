import asyncio
from typing import Any

import pytest

from taskpilot.config import get_config
from taskpilot.exceptions import ArgumentParseError, PathNotFoundError
from taskpilot.tools import (
    ToolRegistry,
    ToolResult,
    build_default_registry,
    parse_tool_invocation,
)
from taskpilot.tools.registry import Tool


class EchoTool(Tool):
    name = "echo"
    description = "Echo text back"
    parameters = {
        "type": "object",
        "properties": {"text": {"type": "string"}},
        "required": ["text"],
        "additionalProperties": False,
    }

    def __init__(self):
        self.calls: list[dict[str, Any]] = []

    async def execute(self, **kwargs: Any) -> ToolResult:
        self.calls.append(kwargs)
        return ToolResult.ok(kwargs["text"])


class DangerTool(EchoTool):
    name = "danger"
    irreversible = True


class RaisingTool(EchoTool):
    name = "raising"

    async def execute(self, **kwargs: Any) -> ToolResult:
        raise RuntimeError("kaboom")


class SlowTool(EchoTool):
    name = "slow"

    async def execute(self, **kwargs: Any) -> ToolResult:
        await asyncio.sleep(5)
        return ToolResult.ok("late")


def test_parse_tool_invocation_accepts_object():
    invocation = parse_tool_invocation("read_file", '{"path": "a.txt"}')

    assert invocation.name == "read_file"
    assert invocation.arguments == {"path": "a.txt"}


def test_parse_tool_invocation_empty_text_means_no_arguments():
    assert parse_tool_invocation("list_files", "").arguments == {}
    assert parse_tool_invocation("list_files", None).arguments == {}


def test_parse_tool_invocation_rejects_malformed_json():
    with pytest.raises(ArgumentParseError) as exc_info:
        parse_tool_invocation("edit_file", '{"path": "a.txt", ')

    assert exc_info.value.tool_name == "edit_file"
    assert "edit_file" in str(exc_info.value)


def test_parse_tool_invocation_rejects_non_object_json():
    with pytest.raises(ArgumentParseError):
        parse_tool_invocation("read_file", '["a.txt"]')


def test_tool_result_fail_records_error_type():
    result = ToolResult.fail(PathNotFoundError("read_file", "x.txt"))

    assert result.success is False
    assert result.error_type == "PathNotFoundError"
    assert result.to_output() == "Error (PathNotFoundError): Path does not exist: x.txt"


def test_tool_result_populates_error_from_content_on_failure() -> None:
    result = ToolResult(success=False, content="command failed with exit code 1")

    assert result.error == "command failed with exit code 1"


def test_register_rejects_duplicate_names():
    registry = ToolRegistry()
    registry.register(EchoTool())

    with pytest.raises(ValueError):
        registry.register(EchoTool())


def test_default_registry_exposes_five_tools_with_closed_schemas():
    registry = build_default_registry()

    assert registry.list_tools() == ["list_files", "read_file", "create_file", "edit_file", "run_bash"]
    for definition in registry.get_definitions():
        assert definition["parameters"]["type"] == "object"
        assert definition["parameters"]["additionalProperties"] is False


def test_default_registry_honours_enabled_list():
    registry = build_default_registry(["read_file"])

    assert registry.list_tools() == ["read_file"]


@pytest.mark.asyncio
async def test_execute_unknown_tool_returns_failure():
    result = await ToolRegistry().execute("teleport", {})

    assert result.success is False
    assert result.error_type == "UnknownToolError"


@pytest.mark.asyncio
async def test_execute_missing_required_argument():
    registry = ToolRegistry()
    tool = EchoTool()
    registry.register(tool)

    result = await registry.execute("echo", {})

    assert result.success is False
    assert result.error_type == "MissingArgumentError"
    assert "text" in (result.error or "")
    assert tool.calls == []


@pytest.mark.asyncio
async def test_execute_drops_undeclared_arguments_and_coerces_strings():
    registry = ToolRegistry()
    tool = EchoTool()
    registry.register(tool)

    result = await registry.execute("echo", {"text": 42, "extra": "ignored"})

    assert result.success is True
    assert tool.calls == [{"text": "42"}]


@pytest.mark.asyncio
async def test_irreversible_tool_runs_when_approved():
    questions: list[str] = []

    def approve(question: str) -> bool:
        questions.append(question)
        return True

    registry = ToolRegistry(approval_callback=approve)
    tool = DangerTool()
    registry.register(tool)

    result = await registry.execute("danger", {"text": "go"})

    assert result.success is True
    assert result.content == "go"
    assert len(questions) == 1


@pytest.mark.asyncio
async def test_irreversible_tool_declined_is_cancelled_success():
    registry = ToolRegistry(approval_callback=lambda question: False)
    tool = DangerTool()
    registry.register(tool)

    result = await registry.execute("danger", {"text": "go"})

    assert result.success is True
    assert result.content.startswith("Cancelled")
    assert tool.calls == []


@pytest.mark.asyncio
async def test_irreversible_tool_without_callback_is_declined():
    registry = ToolRegistry()
    tool = DangerTool()
    registry.register(tool)

    result = await registry.execute("danger", {"text": "go"})

    assert result.content.startswith("Cancelled")
    assert tool.calls == []


@pytest.mark.asyncio
async def test_require_confirmation_config_gates_reversible_tool():
    get_config().tools.require_confirmation = ["echo"]
    registry = ToolRegistry(approval_callback=lambda question: False)
    tool = EchoTool()
    registry.register(tool)

    result = await registry.execute("echo", {"text": "hi"})

    assert result.content.startswith("Cancelled")
    assert tool.calls == []


@pytest.mark.asyncio
async def test_unexpected_tool_exception_becomes_execution_error():
    registry = ToolRegistry()
    registry.register(RaisingTool())

    result = await registry.execute("raising", {"text": "x"})

    assert result.success is False
    assert result.error_type == "ToolExecutionError"
    assert "kaboom" in (result.error or "")


@pytest.mark.asyncio
async def test_execution_timeout_from_config():
    get_config().tools.timeout_seconds = 0.05
    registry = ToolRegistry()
    registry.register(SlowTool())

    result = await registry.execute("slow", {"text": "x"})

    assert result.success is False
    assert "timed out" in (result.error or "")


@pytest.mark.asyncio
async def test_closed_input_during_confirmation_declines():
    def closed_input(question: str) -> bool:
        raise EOFError

    registry = ToolRegistry(approval_callback=closed_input)
    tool = DangerTool()
    registry.register(tool)

    result = await registry.execute("danger", {"text": "go"})

    assert result.success is True
    assert result.content.startswith("Cancelled")
    assert tool.calls == []
