"""Create tool for writing new files."""

import asyncio
from pathlib import Path
from typing import Any

from taskpilot.exceptions import PathExistsError, ToolIOError
from taskpilot.logging import get_logger
from taskpilot.tools.registry import Tool, ToolResult

log = get_logger(__name__)


def _write_new_file(file_path: Path, content: str) -> None:
    """Create parents and write, failing if the file already exists."""
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "x", encoding="utf-8", newline="") as f:
        f.write(content)


def _replace_file_text(file_path: Path, content: str) -> None:
    """Overwrite an existing file, writing line endings exactly as given."""
    with open(file_path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


class CreateFileTool(Tool):
    """Write content to a new file."""

    name = "create_file"
    description = "Create a new file with the given content. Fails if the file already exists."
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path of the file to create",
            },
            "content": {
                "type": "string",
                "description": "Content to write to the file",
            },
        },
        "required": ["path", "content"],
        "additionalProperties": False,
    }

    async def execute(self, path: str, content: str, **kwargs: Any) -> ToolResult:
        """Write content to a new file.

        Args:
            path: Path to file
            content: Content to write

        Returns:
            ToolResult with status
        """
        file_path = Path(path).expanduser()
        if file_path.exists():
            return ToolResult.fail(PathExistsError(self.name, path))

        try:
            await asyncio.to_thread(_write_new_file, file_path, content)
        except FileExistsError:
            return ToolResult.fail(PathExistsError(self.name, path))
        except OSError as e:
            log.error("Create failed", path=path, error=str(e))
            return ToolResult.fail(ToolIOError(self.name, f"Cannot create {path}: {e.strerror or e}"))

        return ToolResult.ok(f"File created: {path} ({len(content)} chars)")
