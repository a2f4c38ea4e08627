"""Operator approval for irreversible tool actions."""

from typing import Callable

from taskpilot.logging import get_logger

log = get_logger(__name__)

AFFIRMATIVE_TOKENS = frozenset({"y", "yes"})
NEGATIVE_TOKENS = frozenset({"n", "no"})


class ConfirmationGate:
    """Blocking yes/no prompt.

    ``ask`` receives the prompt text and returns whatever the operator typed.
    Anything other than a yes/no token is rejected and asked again.
    """

    def __init__(
        self,
        ask: Callable[[str], str],
        reject: Callable[[str], None] | None = None,
    ):
        self._ask = ask
        self._reject = reject

    def confirm(self, question: str) -> bool:
        prompt = f"{question} (y/n) "
        while True:
            answer = str(self._ask(prompt) or "").strip().lower()
            if answer in AFFIRMATIVE_TOKENS:
                log.info("Operator approved action", question=question)
                return True
            if answer in NEGATIVE_TOKENS:
                log.info("Operator declined action", question=question)
                return False
            if self._reject is not None:
                self._reject(answer)

    __call__ = confirm
