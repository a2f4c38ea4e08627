"""Model service providers: LiteLLM for hosted APIs, direct HTTP for Ollama."""

import json
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from taskpilot.context import ConversationContext, ToolCallRequest
from taskpilot.exceptions import (
    ModelAPIError,
    ModelAuthError,
    ModelQuotaError,
    ModelRateLimitError,
    ModelServiceError,
)
from taskpilot.logging import get_logger

log = get_logger(__name__)


OLLAMA_NATIVE_BASE_URL = "http://127.0.0.1:11434"

_PROVIDER_ALIASES = {
    "chatgpt": "openai",
    "claude": "anthropic",
    "google": "gemini",
}
_API_KEY_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


@dataclass
class LLMResponse:
    """Response from the LLM."""

    content: str
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    model: str = ""
    usage: dict[str, int] = field(default_factory=dict)


def normalize_provider(provider: str) -> str:
    """Lower-case a provider name and resolve aliases."""
    key = str(provider or "").strip().lower()
    return _PROVIDER_ALIASES.get(key, key)


def requires_api_key(provider: str) -> bool:
    """Whether the provider needs credentials before any call."""
    return normalize_provider(provider) != "ollama"


def api_key_env_var(provider: str) -> str | None:
    """Environment variable conventionally holding the provider's key."""
    return _API_KEY_ENV_VARS.get(normalize_provider(provider))


def resolve_api_key(provider: str, api_key: str | None = None) -> str:
    """Configured key, else the provider's conventional environment variable."""
    if api_key:
        return api_key
    env_var = api_key_env_var(provider)
    return os.environ.get(env_var, "") if env_var else ""


def _tool_payload(tools: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Wrap registry definitions in the function-tool envelope."""
    result = []
    for tool in tools or []:
        name = tool.get("name")
        if not name:
            continue
        result.append({
            "type": "function",
            "function": {
                "name": name,
                "description": tool.get("description", "") or "",
                "parameters": tool.get("parameters", {}) or {},
            },
        })
    return result


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def complete(
        self,
        context: ConversationContext,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str = "auto",
        system_prompt: str | None = None,
    ) -> LLMResponse:
        pass

    async def close(self) -> None:
        return None


class LiteLLMProvider(LLMProvider):
    """Hosted model APIs through LiteLLM."""

    def __init__(
        self,
        provider: str = "openai",
        model: str = "gpt-4o",
        api_key: str | None = None,
        base_url: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ):
        self.provider = normalize_provider(provider)
        if self.provider not in _API_KEY_ENV_VARS:
            raise ValueError(f"Provider '{provider}' not supported by LiteLLM backend")
        model = str(model).strip()
        prefix = f"{self.provider}/"
        self.model = model if model.startswith(prefix) else f"{prefix}{model}"
        self.api_key = resolve_api_key(self.provider, api_key)
        self.base_url = base_url or ""
        # GPT-5 family only accepts the default temperature.
        self.temperature = 1.0 if self._is_gpt5_family(self.model) else temperature
        self.max_tokens = max_tokens

    @staticmethod
    def _is_gpt5_family(model: str) -> bool:
        return model.split("/")[-1].lower().startswith("gpt-5")

    def _request_kwargs(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str = "auto",
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        payload = _tool_payload(tools)
        if payload:
            kwargs["tools"] = payload
            kwargs["tool_choice"] = tool_choice
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.base_url:
            kwargs["api_base"] = self.base_url
        return kwargs

    @staticmethod
    def _parse_response(response: Any, model: str) -> LLMResponse:
        message = response.choices[0].message
        tool_calls = [
            ToolCallRequest(
                id=str(tc.id),
                name=str(tc.function.name or ""),
                raw_arguments=tc.function.arguments or "",
            )
            for tc in (getattr(message, "tool_calls", None) or [])
        ]
        usage_obj = getattr(response, "usage", None)
        usage = {
            key: int(getattr(usage_obj, key, 0) or 0)
            for key in ("prompt_tokens", "completion_tokens", "total_tokens")
        }
        return LLMResponse(
            content=message.content or "",
            tool_calls=tool_calls,
            model=str(getattr(response, "model", "") or model),
            usage=usage,
        )

    async def complete(
        self,
        context: ConversationContext,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str = "auto",
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Generate a completion."""
        import litellm

        litellm.suppress_debug_info = True
        kwargs = self._request_kwargs(context.to_chat_messages(system_prompt), tools, tool_choice)

        log.debug("Calling LiteLLM", model=self.model, msg_count=len(kwargs["messages"]))
        try:
            response = await litellm.acompletion(**kwargs)
        except (litellm.AuthenticationError, litellm.PermissionDeniedError) as e:
            raise ModelAuthError(f"Authentication failed: {e}", status_code=getattr(e, "status_code", None)) from e
        except litellm.RateLimitError as e:
            text = str(e)
            if "quota" in text.lower():
                raise ModelQuotaError(f"Quota exhausted: {text}", status_code=429) from e
            raise ModelRateLimitError(f"Rate limited: {text}", status_code=429) from e
        except litellm.APIError as e:
            raise ModelAPIError(f"Model API error: {e}", status_code=getattr(e, "status_code", None)) from e
        except Exception as e:
            raise ModelServiceError(f"Model call failed: {e}") from e

        try:
            return self._parse_response(response, self.model)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            raise ModelServiceError(f"Malformed model response: {e}") from e


class OllamaProvider(LLMProvider):
    """Direct Ollama API provider."""

    def __init__(
        self,
        model: str = "llama3.2",
        base_url: str = OLLAMA_NATIVE_BASE_URL,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        api_key: str | None = None,
    ):
        """Initialize Ollama provider.

        Args:
            model: Ollama model name (e.g., 'llama3.2', 'qwen3:32b')
            base_url: Ollama API base URL
            temperature: Sampling temperature
            max_tokens: Max tokens to generate
            api_key: Optional API key (Ollama usually doesn't need one locally)
        """
        self.provider = "ollama"
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.api_key = api_key

        self.client = httpx.AsyncClient(
            timeout=120.0,
            follow_redirects=True,
        )

    @staticmethod
    def _convert_messages(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Ollama wants tool arguments as objects and tool results tagged by name."""
        result = []
        for msg in messages:
            entry: dict[str, Any] = {"role": msg["role"], "content": msg.get("content") or ""}
            if msg.get("tool_calls"):
                calls = []
                for call in msg["tool_calls"]:
                    raw = call["function"]["arguments"]
                    try:
                        arguments = json.loads(raw) if raw else {}
                    except json.JSONDecodeError:
                        arguments = {}
                    calls.append({"function": {"name": call["function"]["name"], "arguments": arguments}})
                entry["tool_calls"] = calls
            if msg["role"] == "tool" and msg.get("name"):
                entry["tool_name"] = msg["name"]
            result.append(entry)
        return result

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        status = response.status_code
        message = f"Ollama API error {status}: {response.text}"
        if status in (401, 403):
            raise ModelAuthError(message, status_code=status)
        if status == 429:
            raise ModelRateLimitError(message, status_code=status)
        raise ModelAPIError(message, status_code=status)

    async def complete(
        self,
        context: ConversationContext,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str = "auto",
        system_prompt: str | None = None,
    ) -> LLMResponse:
        """Generate a completion."""
        url = f"{self.base_url}/api/chat"

        body: dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_messages(context.to_chat_messages(system_prompt)),
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        payload = _tool_payload(tools)
        if payload:
            body["tools"] = payload

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            log.debug("Calling Ollama", model=self.model, url=url, msg_count=len(body["messages"]))
            response = await self.client.post(url, json=body, headers=headers)
            self._raise_for_status(response)
            data = response.json()
        except ModelServiceError:
            raise
        except httpx.HTTPError as e:
            raise ModelAPIError(f"Ollama HTTP error: {e}") from e
        except json.JSONDecodeError as e:
            raise ModelServiceError(f"Ollama response decode error: {e}") from e

        try:
            return self._parse_response(data, self.model)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ModelServiceError(f"Malformed Ollama response: {e}") from e

    @staticmethod
    def _parse_response(data: Any, model: str) -> LLMResponse:
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        message = data.get("message", {}) or {}
        tool_calls = []
        for tc in message.get("tool_calls") or []:
            function = tc.get("function") or {}
            if not function.get("name"):
                raise ValueError("tool call without a function name")
            tool_calls.append(ToolCallRequest(
                id=str(tc.get("id") or f"ollama_call_{uuid.uuid4().hex[:12]}"),
                name=function["name"],
                raw_arguments=json.dumps(function.get("arguments", {}) or {}),
            ))
        prompt_tokens = int(data.get("prompt_eval_count", 0) or 0)
        completion_tokens = int(data.get("eval_count", 0) or 0)
        return LLMResponse(
            content=message.get("content", "") or "",
            tool_calls=tool_calls,
            model=model,
            usage={
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


def create_provider(
    provider: str = "openai",
    model: str = "gpt-4o",
    api_key: str | None = None,
    base_url: str | None = None,
    temperature: float = 0.7,
    max_tokens: int = 4096,
) -> LLMProvider:
    """Create an LLM provider.

    Args:
        provider: Provider name or alias (openai/chatgpt, anthropic/claude,
            gemini/google, ollama)
        model: Model name
        api_key: Optional API key
        base_url: Optional base URL
        temperature: Default temperature
        max_tokens: Default max tokens

    Returns:
        Configured LLMProvider instance
    """
    name = normalize_provider(provider)
    if name == "ollama":
        return OllamaProvider(
            model=model,
            base_url=base_url or OLLAMA_NATIVE_BASE_URL,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=api_key,
        )
    if name in _API_KEY_ENV_VARS:
        return LiteLLMProvider(
            provider=name,
            model=model,
            api_key=api_key,
            base_url=base_url,
            temperature=temperature,
            max_tokens=max_tokens,
        )
    raise ValueError(f"Provider '{provider}' not supported. Use openai, anthropic, gemini or ollama.")


# Global provider instance
_provider: LLMProvider | None = None


def get_provider() -> LLMProvider:
    """Get the global LLM provider instance."""
    global _provider
    if _provider is None:
        from taskpilot.config import get_config

        cfg = get_config()
        _provider = create_provider(
            provider=cfg.model.provider,
            model=cfg.model.model,
            api_key=cfg.model.api_key or None,
            base_url=cfg.model.base_url or None,
            temperature=cfg.model.temperature,
            max_tokens=cfg.model.max_tokens,
        )
    return _provider


def set_provider(provider: LLMProvider | None) -> None:
    """Set the global LLM provider instance."""
    global _provider
    _provider = provider
