"""In-memory session state: conversation context plus token ledger."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from taskpilot.config import get_config
from taskpilot.context import ConversationContext
from taskpilot.ledger import ResourceLedger
from taskpilot.logging import get_logger

log = get_logger(__name__)


def _utcnow_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(UTC).isoformat()


@dataclass
class Session:
    """State carried across tasks until the operator resets.

    Sessions live only for the lifetime of the process. Reset means
    building a new Session, see ``Session.fresh``.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    context: ConversationContext = field(default_factory=ConversationContext)
    ledger: ResourceLedger = field(default_factory=ResourceLedger)
    created_at: str = field(default_factory=_utcnow_iso)
    tasks_run: int = 0

    @classmethod
    def fresh(cls, budget_tokens: int | None = None) -> "Session":
        """Create an empty session sized to the configured context budget."""
        if budget_tokens is None:
            budget_tokens = get_config().context.max_tokens
        session = cls(ledger=ResourceLedger(budget_tokens=budget_tokens))
        log.info("Created new session", session_id=session.id, budget_tokens=budget_tokens)
        return session

    @property
    def is_empty(self) -> bool:
        return len(self.context) == 0 and self.ledger.total_tokens == 0
