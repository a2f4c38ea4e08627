"""taskpilot - a tool-using LLM agent for the terminal."""

__version__ = "0.1.0"

from taskpilot.agent import Agent, LoopState, TaskResult
from taskpilot.config import Config
from taskpilot.session import Session

__all__ = ["Agent", "Config", "LoopState", "Session", "TaskResult", "__version__"]
