"""Terminal UI for taskpilot."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from taskpilot.agent import TaskResult
from taskpilot.config import Config, get_config
from taskpilot.ledger import ResourceLedger
from taskpilot.logging import get_logger
from taskpilot.tools import ToolResult

log = get_logger(__name__)

TASK_PROMPT = "\n💬 What would you like me to do? (or 'quit' to exit, 'reset' to start over)\n> "


class TerminalUI:
    """Console front end: task prompt, tool activity, answers and usage."""

    def __init__(self, console: Console | None = None, config: Config | None = None):
        self.config = config or get_config()
        self.console = console or Console(highlight=False)

    def classify_input(self, text: str) -> str:
        """Return "quit", "reset", "empty" or "task" for a line of operator input."""
        token = text.strip().lower()
        if not token:
            return "empty"
        if token in {item.lower() for item in self.config.ui.quit_tokens}:
            return "quit"
        if token in {item.lower() for item in self.config.ui.reset_tokens}:
            return "reset"
        return "task"

    def prompt_task(self) -> str:
        return self.console.input(TASK_PROMPT)

    def ask(self, prompt: str) -> str:
        """Raw answer for the confirmation gate."""
        return self.console.input(Text(prompt, style="bold yellow"))

    def reject_answer(self, answer: str) -> None:
        self.console.print(f"[red]Please answer 'y' or 'n' (got {escape(repr(answer))}).[/]")

    def print_working(self, task: str) -> None:
        self.console.print(f"🤖 Working on... {task}\n", markup=False)

    def print_tool_call(self, name: str, raw_arguments: str) -> None:
        self.console.print(f"🔧 Using tool: [bold]{escape(name)}[/]")
        log.debug("Tool call arguments", tool=name, arguments=raw_arguments)

    def print_tool_output(self, name: str, result: ToolResult) -> None:
        if not result.success:
            self.console.print(f"   [red]{escape(name)} failed:[/] {escape(result.error or '')}")

    def print_result(self, result: TaskResult) -> None:
        if result.finished:
            self.console.print("\n✅ Done:", style="bold green")
            self.console.print(result.output or "[no answer]", markup=False)
        else:
            self.console.print(
                Panel(Text(result.output), title="Task aborted", border_style="red"),
            )

    def print_usage(self, ledger: ResourceLedger) -> None:
        if not self.config.ui.show_usage:
            return
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_row("Tokens used", f"{ledger.total_tokens:,}")
        table.add_row("Prompt / completion", f"{ledger.prompt_tokens:,} / {ledger.completion_tokens:,}")
        table.add_row("Context budget", f"{ledger.percent_used:.1f}% of {ledger.budget_tokens:,}")
        self.console.print(Panel(table, title="Usage", border_style="cyan", expand=False))

    def print_reset(self) -> None:
        self.console.print("🧹 Conversation and token usage cleared.", style="cyan")

    def print_goodbye(self) -> None:
        self.console.print("\n👋 Goodbye!")
