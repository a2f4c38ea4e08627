"""List tool for directory contents."""

import asyncio
import json
from pathlib import Path
from typing import Any

from taskpilot.exceptions import PathNotFoundError, ToolIOError
from taskpilot.logging import get_logger
from taskpilot.tools.registry import Tool, ToolResult

log = get_logger(__name__)


class ListFilesTool(Tool):
    """List entries of a directory."""

    name = "list_files"
    description = "List files and directories at a given path."
    parameters = {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Directory to list (defaults to the current directory)",
            },
        },
        "required": [],
        "additionalProperties": False,
    }

    async def execute(self, path: str | None = None, **kwargs: Any) -> ToolResult:
        """List a directory.

        Returns:
            ToolResult whose content is a JSON array of sorted entry names
        """
        target = path or "."
        dir_path = Path(target).expanduser()

        if not dir_path.exists():
            return ToolResult.fail(PathNotFoundError(self.name, target))
        if not dir_path.is_dir():
            return ToolResult.fail(ToolIOError(self.name, f"Not a directory: {target}"))

        try:
            names = await asyncio.to_thread(lambda: sorted(entry.name for entry in dir_path.iterdir()))
        except OSError as e:
            log.error("List failed", path=target, error=str(e))
            return ToolResult.fail(ToolIOError(self.name, f"Cannot list {target}: {e.strerror or e}"))

        return ToolResult.ok(json.dumps(names))
