"""Token usage accounting."""

from dataclasses import dataclass


@dataclass
class ResourceLedger:
    """Cumulative token consumption for one session."""

    budget_tokens: int = 128000
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    calls: int = 0

    def record(self, usage: dict[str, int] | None) -> None:
        """Add usage reported by one model call."""
        self.calls += 1
        if not usage:
            return
        prompt = int(usage.get("prompt_tokens", 0) or 0)
        completion = int(usage.get("completion_tokens", 0) or 0)
        total = int(usage.get("total_tokens", 0) or (prompt + completion))
        self.prompt_tokens += max(prompt, 0)
        self.completion_tokens += max(completion, 0)
        self.total_tokens += max(total, 0)

    @property
    def percent_used(self) -> float:
        """Total tokens as a percentage of the context budget."""
        if self.budget_tokens <= 0:
            return 0.0
        return self.total_tokens / self.budget_tokens * 100.0

    def reset(self) -> None:
        """Zero all counters."""
        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.total_tokens = 0
        self.calls = 0

    def as_dict(self) -> dict[str, int | float]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "budget_tokens": self.budget_tokens,
            "percent_used": round(self.percent_used, 2),
        }
