"""Edit tool for single literal text replacement."""

import asyncio
from pathlib import Path
from typing import Any

from taskpilot.exceptions import (
    PathExistsError,
    PathNotFoundError,
    TextNotFoundError,
    ToolIOError,
)
from taskpilot.logging import get_logger
from taskpilot.tools.registry import Tool, ToolResult
from taskpilot.tools.read import _read_text
from taskpilot.tools.write import _replace_file_text, _write_new_file

log = get_logger(__name__)


class EditFileTool(Tool):
    """Replace the first occurrence of a text snippet in a file."""

    name = "edit_file"
    description = (
        "Edit a file by replacing the first occurrence of old_text with new_text. "
        "An empty old_text creates a new file containing new_text."
    )
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path to the file to edit",
            },
            "old_text": {
                "type": "string",
                "description": "Exact text to search for and replace",
            },
            "new_text": {
                "type": "string",
                "description": "Text to replace with",
            },
        },
        "required": ["path", "old_text", "new_text"],
        "additionalProperties": False,
    }

    async def execute(self, path: str, old_text: str, new_text: str, **kwargs: Any) -> ToolResult:
        file_path = Path(path).expanduser()

        if old_text == "":
            if file_path.exists():
                return ToolResult.fail(PathExistsError(self.name, path))
            try:
                await asyncio.to_thread(_write_new_file, file_path, new_text)
            except OSError as e:
                return ToolResult.fail(ToolIOError(self.name, f"Cannot create {path}: {e.strerror or e}"))
            return ToolResult.ok(f"File created: {path}")

        if not file_path.exists():
            return ToolResult.fail(PathNotFoundError(self.name, path))
        if not file_path.is_file():
            return ToolResult.fail(ToolIOError(self.name, f"Not a file: {path}"))

        try:
            original = await asyncio.to_thread(_read_text, file_path)
            if old_text not in original:
                return ToolResult.fail(TextNotFoundError(self.name, path))
            updated = original.replace(old_text, new_text, 1)
            await asyncio.to_thread(_replace_file_text, file_path, updated)
        except UnicodeDecodeError:
            return ToolResult.fail(ToolIOError(self.name, f"Not a UTF-8 text file: {path}"))
        except OSError as e:
            log.error("Edit failed", path=path, error=str(e))
            return ToolResult.fail(ToolIOError(self.name, f"Cannot edit {path}: {e.strerror or e}"))

        return ToolResult.ok(f"File edited: {path}")
