import pytest

from taskpilot.config import Config, set_config
from taskpilot.llm import set_provider
from taskpilot.tools import set_tool_registry


@pytest.fixture(autouse=True)
def default_config(monkeypatch: pytest.MonkeyPatch):
    """Isolate every test from local config files and global singletons."""
    monkeypatch.delenv("TASKPILOT_MODEL__API_KEY", raising=False)
    cfg = Config()
    set_config(cfg)
    set_tool_registry(None)
    set_provider(None)
    yield cfg
    set_config(Config())
    set_tool_registry(None)
    set_provider(None)
