import io

from rich.console import Console

from taskpilot.agent import LoopState, TaskResult
from taskpilot.cli import TerminalUI
from taskpilot.exceptions import PathNotFoundError
from taskpilot.ledger import ResourceLedger
from taskpilot.tools import ToolResult


def _ui() -> tuple[TerminalUI, io.StringIO]:
    buffer = io.StringIO()
    console = Console(file=buffer, force_terminal=False, width=120, highlight=False)
    return TerminalUI(console=console), buffer


def test_classify_input_recognises_control_tokens():
    ui, _ = _ui()

    assert ui.classify_input("quit") == "quit"
    assert ui.classify_input("  EXIT ") == "quit"
    assert ui.classify_input("reset") == "reset"
    assert ui.classify_input("   ") == "empty"
    assert ui.classify_input("list the files") == "task"


def test_tool_call_and_failure_are_printed():
    ui, buffer = _ui()

    ui.print_tool_call("read_file", '{"path": "[bold]x"}')
    ui.print_tool_output("read_file", ToolResult.fail(PathNotFoundError("read_file", "[x].txt")))
    ui.print_tool_output("read_file", ToolResult.ok("contents stay quiet"))

    text = buffer.getvalue()
    assert "Using tool: read_file" in text
    assert "Path does not exist: [x].txt" in text
    assert "contents stay quiet" not in text


def test_finished_and_aborted_results_render_differently():
    ui, buffer = _ui()

    ui.print_result(TaskResult(state=LoopState.FINISHED, output="All good [ok]", iterations=1))
    ui.print_result(
        TaskResult(state=LoopState.ABORTED, output="Maximum iterations reached (20); task aborted", iterations=20)
    )

    text = buffer.getvalue()
    assert "Done:" in text
    assert "All good [ok]" in text
    assert "Task aborted" in text
    assert "Maximum iterations reached (20)" in text


def test_usage_panel_shows_totals():
    ui, buffer = _ui()
    ledger = ResourceLedger(budget_tokens=1000)
    ledger.record({"prompt_tokens": 150, "completion_tokens": 100, "total_tokens": 250})

    ui.print_usage(ledger)

    text = buffer.getvalue()
    assert "250" in text
    assert "25.0%" in text


def test_usage_panel_can_be_disabled():
    ui, buffer = _ui()
    ui.config.ui.show_usage = False

    ui.print_usage(ResourceLedger())

    assert buffer.getvalue() == ""


def test_ask_shows_bracketed_command_verbatim(monkeypatch):
    ui, buffer = _ui()
    monkeypatch.setattr("builtins.input", lambda *args: "n")

    answer = ui.ask("Run this shell command?\n  $ rm -rf data[backup] /srv/[important]\nProceed? (y/n) ")

    assert answer == "n"
    assert "$ rm -rf data[backup] /srv/[important]" in buffer.getvalue()


def test_ask_and_reject_accept_closing_tag_text(monkeypatch):
    ui, buffer = _ui()
    monkeypatch.setattr("builtins.input", lambda *args: "y")

    ui.ask("Run this shell command?\n  $ echo '[/]'\nProceed? (y/n) ")
    ui.reject_answer("[/]")

    text = buffer.getvalue()
    assert "echo '[/]'" in text
    assert "[/]" in text.splitlines()[-1]
