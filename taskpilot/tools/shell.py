"""Shell tool for executing commands."""

import asyncio
import os
from typing import Any

from taskpilot.config import get_config
from taskpilot.exceptions import ToolExecutionError
from taskpilot.logging import get_logger
from taskpilot.tools.registry import Tool, ToolResult

log = get_logger(__name__)


class RunBashTool(Tool):
    """Execute shell commands after operator approval."""

    name = "run_bash"
    description = "Run a bash command and return its output (stdout followed by stderr)."
    irreversible = True
    parameters = {
        "type": "object",
        "properties": {
            "command": {
                "type": "string",
                "description": "The bash command to run",
            },
        },
        "required": ["command"],
        "additionalProperties": False,
    }

    def __init__(self, max_output_chars: int | None = None):
        if max_output_chars is None:
            max_output_chars = get_config().tools.shell.max_output_chars
        self.max_output_chars = max_output_chars

    def confirmation_question(self, arguments: dict[str, Any]) -> str:
        command = str(arguments.get("command", ""))
        return f"Run this shell command?\n  $ {command}\nProceed?"

    def _format_output(self, stdout_text: str, stderr_text: str) -> str:
        output = stdout_text
        if stderr_text:
            output += f"\n[stderr] {stderr_text}" if output else f"[stderr] {stderr_text}"

        if len(output) > self.max_output_chars:
            output = output[: self.max_output_chars] + f"\n... [truncated, {len(output)} total chars]"
        return output or "[no output]"

    async def execute(self, command: str, **kwargs: Any) -> ToolResult:
        """Execute a shell command.

        Args:
            command: Shell command to execute

        Returns:
            ToolResult with combined command output
        """
        env = os.environ.copy()
        env["PATH"] = os.environ.get("PATH", "/usr/local/bin:/usr/bin:/bin")

        try:
            log.info("Executing shell command", command=command)
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                executable="/bin/bash" if os.path.exists("/bin/bash") else None,
            )
        except OSError as e:
            log.error("Shell command failed to start", command=command, error=str(e))
            return ToolResult.fail(
                ToolExecutionError(self.name, f"Failed to start command: {e}", stderr=str(e))
            )

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        stdout_text = stdout.decode("utf-8", errors="replace").strip()
        stderr_text = stderr.decode("utf-8", errors="replace").strip()
        output = self._format_output(stdout_text, stderr_text)

        if process.returncode != 0:
            log.warning("Shell command exited non-zero", command=command, returncode=process.returncode)
            return ToolResult.fail(
                ToolExecutionError(
                    self.name,
                    f"Command exited with status {process.returncode}",
                    stderr=stderr_text,
                ),
                content=output,
            )

        return ToolResult.ok(output)
