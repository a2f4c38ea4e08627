"""Conversation context replayed to the model on every turn."""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class UserMessage:
    """Task or follow-up text from the operator."""

    text: str


@dataclass(frozen=True)
class AssistantMessage:
    """Model text, or a synthetic note the loop writes on the model's behalf."""

    text: str
    synthetic: bool = False


@dataclass(frozen=True)
class ToolCallRequest:
    """A model-issued tool call, arguments kept as the raw JSON text."""

    id: str
    name: str
    raw_arguments: str


@dataclass(frozen=True)
class ToolCallResult:
    """Output paired with exactly one ToolCallRequest by id."""

    id: str
    output: str
    name: str = ""
    is_error: bool = False


Turn = Union[UserMessage, AssistantMessage, ToolCallRequest, ToolCallResult]


class ConversationContext:
    """Ordered, append-only transcript of turns.

    The only removal is ``clear()``, used when a session is reset.
    """

    def __init__(self, turns: list[Turn] | None = None):
        self._turns: list[Turn] = list(turns or [])

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self._turns)

    def __getitem__(self, index: int) -> Turn:
        return self._turns[index]

    @property
    def turns(self) -> list[Turn]:
        """Snapshot of the transcript."""
        return list(self._turns)

    def append(self, turn: Turn) -> None:
        """Append one turn."""
        if not isinstance(turn, (UserMessage, AssistantMessage, ToolCallRequest, ToolCallResult)):
            raise TypeError(f"Unsupported turn type: {type(turn)!r}")
        self._turns.append(turn)

    def extend(self, turns: list[Turn]) -> None:
        """Append several turns in order."""
        for turn in turns:
            self.append(turn)

    def clear(self) -> None:
        """Truncate to empty."""
        self._turns.clear()

    def pending_tool_calls(self) -> list[ToolCallRequest]:
        """Tool-call requests that have no result yet, in request order."""
        answered = {turn.id for turn in self._turns if isinstance(turn, ToolCallResult)}
        return [
            turn
            for turn in self._turns
            if isinstance(turn, ToolCallRequest) and turn.id not in answered
        ]

    def to_chat_messages(self, system_prompt: str | None = None) -> list[dict[str, Any]]:
        """Convert turns to OpenAI-style chat messages.

        Consecutive tool-call requests are folded into a single assistant
        message, together with the model text of the same response. Synthetic
        notes never carry tool calls.
        """
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        # Assistant message that tool calls may still join.
        open_assistant: dict[str, Any] | None = None
        for turn in self._turns:
            if isinstance(turn, UserMessage):
                messages.append({"role": "user", "content": turn.text})
                open_assistant = None
            elif isinstance(turn, AssistantMessage):
                message = {"role": "assistant", "content": turn.text}
                messages.append(message)
                open_assistant = None if turn.synthetic else message
            elif isinstance(turn, ToolCallRequest):
                call = {
                    "id": turn.id,
                    "type": "function",
                    "function": {"name": turn.name, "arguments": turn.raw_arguments},
                }
                if open_assistant is None:
                    open_assistant = {"role": "assistant", "content": None}
                    messages.append(open_assistant)
                open_assistant.setdefault("tool_calls", []).append(call)
            elif isinstance(turn, ToolCallResult):
                open_assistant = None
                messages.append({
                    "role": "tool",
                    "tool_call_id": turn.id,
                    "name": turn.name,
                    "content": turn.output,
                })
        return messages
