"""Agent orchestration for taskpilot."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from taskpilot.config import get_config
from taskpilot.context import AssistantMessage, ToolCallRequest, ToolCallResult, UserMessage
from taskpilot.exceptions import (
    ArgumentParseError,
    IterationLimitExceeded,
    ModelServiceError,
)
from taskpilot.llm import LLMProvider, LLMResponse, get_provider
from taskpilot.logging import get_logger
from taskpilot.session import Session
from taskpilot.tools import ToolRegistry, ToolResult, get_tool_registry, parse_tool_invocation

log = get_logger(__name__)


class LoopState(str, Enum):
    """Per-task control state of the agent loop."""

    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOLS = "dispatching_tools"
    FINISHED = "finished"
    ABORTED = "aborted"


_TRANSITIONS: dict[LoopState, frozenset[LoopState]] = {
    LoopState.AWAITING_MODEL: frozenset({
        LoopState.AWAITING_MODEL,
        LoopState.DISPATCHING_TOOLS,
        LoopState.FINISHED,
        LoopState.ABORTED,
    }),
    LoopState.DISPATCHING_TOOLS: frozenset({LoopState.AWAITING_MODEL, LoopState.ABORTED}),
    LoopState.FINISHED: frozenset(),
    LoopState.ABORTED: frozenset(),
}


def _transition(current: LoopState, target: LoopState) -> LoopState:
    if target not in _TRANSITIONS[current]:
        raise RuntimeError(f"Illegal loop transition: {current.value} -> {target.value}")
    return target


@dataclass
class TaskResult:
    """Outcome of one task."""

    state: LoopState
    output: str
    iterations: int
    error: Exception | None = None

    @property
    def finished(self) -> bool:
        return self.state is LoopState.FINISHED

    @property
    def aborted(self) -> bool:
        return self.state is LoopState.ABORTED


class Agent:
    """Runs tasks against a session: model turns interleaved with tool dispatch."""

    def __init__(
        self,
        provider: LLMProvider | None = None,
        tools: ToolRegistry | None = None,
        max_iterations: int | None = None,
        system_prompt: str | None = None,
        status_callback: Callable[[str], None] | None = None,
        tool_call_callback: Callable[[str, str], None] | None = None,
        tool_output_callback: Callable[[str, ToolResult], None] | None = None,
    ):
        """Initialize the agent.

        Args:
            provider: LLM provider; defaults to the configured global provider
            tools: Tool registry; defaults to the global registry
            max_iterations: Model invocations allowed per task
            system_prompt: Instructions prepended to every request
            status_callback: Optional runtime status callback
            tool_call_callback: Called with (tool name, raw arguments) before dispatch
            tool_output_callback: Called with (tool name, result) after dispatch
        """
        cfg = get_config()
        self.provider = provider or get_provider()
        self.tools = tools or get_tool_registry()
        self.max_iterations = max_iterations or cfg.agent.max_iterations
        self.system_prompt = system_prompt if system_prompt is not None else cfg.agent.system_prompt
        self.status_callback = status_callback
        self.tool_call_callback = tool_call_callback
        self.tool_output_callback = tool_output_callback

    def _set_runtime_status(self, status: str) -> None:
        """Forward runtime status updates when callback is configured."""
        if self.status_callback:
            self.status_callback(status)

    async def _invoke_model(self, session: Session) -> LLMResponse:
        try:
            response = await self.provider.complete(
                session.context,
                tools=self.tools.get_definitions(),
                tool_choice="auto",
                system_prompt=self.system_prompt or None,
            )
        except ModelServiceError:
            raise
        except Exception as e:
            raise ModelServiceError(f"Model call failed: {type(e).__name__}: {e}") from e
        session.ledger.record(response.usage)
        if response.content:
            session.context.append(AssistantMessage(response.content))
        session.context.extend(list(response.tool_calls))
        return response

    async def _dispatch(self, session: Session, call: ToolCallRequest) -> None:
        """Run one tool call and append exactly one result for it."""
        if self.tool_call_callback:
            self.tool_call_callback(call.name, call.raw_arguments)
        log.info("Dispatching tool call", tool=call.name, call_id=call.id)

        try:
            invocation = parse_tool_invocation(call.name, call.raw_arguments)
        except ArgumentParseError as e:
            log.warning("Tool arguments unparseable", tool=call.name, call_id=call.id, error=str(e))
            result = ToolResult.fail(e)
        else:
            result = await self.tools.execute(invocation.name, invocation.arguments)

        session.context.append(ToolCallResult(
            id=call.id,
            output=result.to_output(),
            name=call.name,
            is_error=not result.success,
        ))
        if self.tool_output_callback:
            self.tool_output_callback(call.name, result)

    @staticmethod
    def _close_pending_calls(session: Session, reason: str) -> None:
        """Answer any unanswered tool calls so the transcript stays well-formed."""
        for call in session.context.pending_tool_calls():
            session.context.append(ToolCallResult(id=call.id, output=reason, name=call.name, is_error=True))

    async def run_task(self, session: Session, task: str) -> TaskResult:
        """Run one task to completion or abort.

        Args:
            session: Session whose context and ledger are extended in place
            task: Natural-language task from the operator

        Returns:
            TaskResult with the terminal state and final or diagnostic text
        """
        session.context.append(UserMessage(task))
        session.tasks_run += 1
        state = LoopState.AWAITING_MODEL
        iterations = 0
        pending: list[ToolCallRequest] = []
        output = ""
        error: Exception | None = None

        try:
            while state not in (LoopState.FINISHED, LoopState.ABORTED):
                if state is LoopState.AWAITING_MODEL:
                    if iterations >= self.max_iterations:
                        error = IterationLimitExceeded(self.max_iterations)
                        output = str(error)
                        log.warning("Iteration cap reached", max_iterations=self.max_iterations)
                        state = _transition(state, LoopState.ABORTED)
                        continue

                    iterations += 1
                    self._set_runtime_status("thinking")
                    log.info("Calling model", iteration=iterations, turns=len(session.context))
                    try:
                        response = await self._invoke_model(session)
                    except ModelServiceError as e:
                        if e.fatal:
                            log.error("Model service failure, aborting task", error=str(e), kind=type(e).__name__)
                            error = e
                            output = f"Model service error ({type(e).__name__}): {e}"
                            state = _transition(state, LoopState.ABORTED)
                        else:
                            log.warning("Model service failure, retrying", error=str(e), iteration=iterations)
                            session.context.append(
                                AssistantMessage(f"[model service error: {e}. Retrying.]", synthetic=True)
                            )
                            state = _transition(state, LoopState.AWAITING_MODEL)
                        continue

                    if response.tool_calls:
                        log.info("Tool calls requested", count=len(response.tool_calls))
                        pending = list(response.tool_calls)
                        state = _transition(state, LoopState.DISPATCHING_TOOLS)
                    else:
                        output = response.content
                        state = _transition(state, LoopState.FINISHED)

                elif state is LoopState.DISPATCHING_TOOLS:
                    self._set_runtime_status("running tools")
                    for call in pending:
                        await self._dispatch(session, call)
                    pending = []
                    state = _transition(state, LoopState.AWAITING_MODEL)
        except asyncio.CancelledError:
            self._close_pending_calls(session, "Error: cancelled by operator before execution")
            raise
        finally:
            self._set_runtime_status("waiting")

        log.info("Task ended", state=state.value, iterations=iterations, usage=session.ledger.as_dict())
        return TaskResult(state=state, output=output, iterations=iterations, error=error)
