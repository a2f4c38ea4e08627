"""Read tool for reading file contents."""

import asyncio
from pathlib import Path
from typing import Any

from taskpilot.config import get_config
from taskpilot.exceptions import PathNotFoundError, ToolIOError
from taskpilot.logging import get_logger
from taskpilot.tools.registry import Tool, ToolResult

log = get_logger(__name__)


def _read_text(file_path: Path) -> str:
    """Read UTF-8 text with line endings left untranslated."""
    with open(file_path, encoding="utf-8", newline="") as f:
        return f.read()


class ReadFileTool(Tool):
    """Read file contents."""

    name = "read_file"
    description = "Read the content of a file at a given path."
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path to the file to read",
            },
        },
        "required": ["path"],
        "additionalProperties": False,
    }

    def __init__(self, max_bytes: int | None = None):
        self.max_bytes = max_bytes if max_bytes is not None else get_config().tools.read.max_bytes

    async def execute(self, path: str, **kwargs: Any) -> ToolResult:
        """Read a file.

        Args:
            path: Path to file

        Returns:
            ToolResult with the full file text
        """
        file_path = Path(path).expanduser()

        if not file_path.exists():
            return ToolResult.fail(PathNotFoundError(self.name, path))
        if not file_path.is_file():
            return ToolResult.fail(ToolIOError(self.name, f"Not a file: {path}"))

        try:
            file_size = file_path.stat().st_size
            if self.max_bytes and file_size > self.max_bytes:
                return ToolResult.fail(
                    ToolIOError(self.name, f"File too large: {file_size} bytes (max {self.max_bytes})")
                )
            content = await asyncio.to_thread(_read_text, file_path)
        except UnicodeDecodeError:
            return ToolResult.fail(ToolIOError(self.name, f"Not a UTF-8 text file: {path}"))
        except OSError as e:
            log.error("Read failed", path=path, error=str(e))
            return ToolResult.fail(ToolIOError(self.name, f"Cannot read {path}: {e.strerror or e}"))

        return ToolResult.ok(content)
