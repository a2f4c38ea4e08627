"""Custom exceptions for taskpilot."""


class TaskPilotError(Exception):
    """Base exception for taskpilot."""

    pass


class ConfigurationError(TaskPilotError):
    """Configuration-related errors (missing credentials, bad config files)."""

    pass


class ModelServiceError(TaskPilotError):
    """Model service call failed.

    The base class is recoverable: the agent loop notes the failure in the
    conversation and tries again on its next iteration.
    """

    fatal: bool = False


class ModelAPIError(ModelServiceError):
    """Model API returned an error response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ModelAuthError(ModelAPIError):
    """Credentials were rejected by the model service."""

    fatal = True


class ModelQuotaError(ModelAPIError):
    """Account quota or billing limit exhausted."""

    fatal = True


class ModelRateLimitError(ModelAPIError):
    """Model service rate limit hit."""

    fatal = True


class ToolError(TaskPilotError):
    """Tool-level failure, reported back to the model as a tool result."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(message)
        self.tool_name = tool_name


class MissingArgumentError(ToolError):
    """A required tool parameter was not supplied."""

    def __init__(self, tool_name: str, argument: str):
        super().__init__(tool_name, f"Missing required argument: {argument}")
        self.argument = argument


class PathNotFoundError(ToolError):
    """File or directory does not exist."""

    def __init__(self, tool_name: str, path: str):
        super().__init__(tool_name, f"Path does not exist: {path}")
        self.path = path


class ToolIOError(ToolError):
    """Filesystem operation failed for a reason other than a missing path."""

    pass


class PathExistsError(ToolIOError):
    """Refused to create a file over an existing path."""

    def __init__(self, tool_name: str, path: str):
        super().__init__(tool_name, f"Path already exists: {path}")
        self.path = path


class TextNotFoundError(ToolError):
    """Text to replace was not found; the file is unchanged."""

    def __init__(self, tool_name: str, path: str):
        super().__init__(tool_name, f"old_text not found in {path}; file unchanged")
        self.path = path


class ToolExecutionError(ToolError):
    """Shell command failed to spawn or exited non-zero."""

    def __init__(self, tool_name: str, message: str, stderr: str = ""):
        super().__init__(tool_name, message)
        self.stderr = stderr


class ArgumentParseError(ToolError):
    """Tool-call argument text is not a well-formed JSON object."""

    pass


class UnknownToolError(ToolError):
    """Tool not found in registry."""

    def __init__(self, tool_name: str):
        super().__init__(tool_name, f"Unknown tool: {tool_name}")


class IterationLimitExceeded(TaskPilotError):
    """Agent loop reached its iteration cap without a final answer."""

    def __init__(self, max_iterations: int):
        super().__init__(
            f"Maximum iterations reached ({max_iterations}); task aborted"
        )
        self.max_iterations = max_iterations
