import pytest

from taskpilot.config import get_config
from taskpilot.context import UserMessage
from taskpilot.ledger import ResourceLedger
from taskpilot.session import Session


def test_ledger_accumulates_usage():
    ledger = ResourceLedger(budget_tokens=1000)
    ledger.record({"prompt_tokens": 100, "completion_tokens": 50, "total_tokens": 150})
    ledger.record({"prompt_tokens": 40, "completion_tokens": 10})

    assert ledger.prompt_tokens == 140
    assert ledger.completion_tokens == 60
    assert ledger.total_tokens == 200
    assert ledger.calls == 2
    assert ledger.percent_used == pytest.approx(20.0)


def test_ledger_counts_calls_without_usage():
    ledger = ResourceLedger()
    ledger.record({})
    ledger.record(None)

    assert ledger.calls == 2
    assert ledger.total_tokens == 0


def test_ledger_reset_zeroes_counters_but_keeps_budget():
    ledger = ResourceLedger(budget_tokens=500)
    ledger.record({"total_tokens": 250})
    ledger.reset()

    assert ledger.total_tokens == 0
    assert ledger.calls == 0
    assert ledger.budget_tokens == 500


def test_zero_budget_reports_zero_percent():
    ledger = ResourceLedger(budget_tokens=0)
    ledger.record({"total_tokens": 10})

    assert ledger.percent_used == 0.0


def test_fresh_session_uses_configured_budget():
    get_config().context.max_tokens = 64000

    session = Session.fresh()

    assert session.ledger.budget_tokens == 64000
    assert session.is_empty


def test_fresh_session_shares_nothing_with_previous():
    first = Session.fresh()
    first.context.append(UserMessage("hello"))
    first.ledger.record({"total_tokens": 5})

    second = Session.fresh()

    assert second.id != first.id
    assert second.is_empty
    assert len(first.context) == 1


def test_ledger_as_dict_reports_rounded_percentage():
    ledger = ResourceLedger(budget_tokens=3000)
    ledger.record({"prompt_tokens": 600, "completion_tokens": 400})

    assert ledger.as_dict() == {
        "prompt_tokens": 600,
        "completion_tokens": 400,
        "total_tokens": 1000,
        "budget_tokens": 3000,
        "percent_used": 33.33,
    }
