"""
LLM client for the Ollama API.

Handles chat completions for analysis, entity extraction, correlation and
credibility checks. Supports two message shapes:

- system + user messages with a JSON response format (standard models)
- a single merged user message without a response format (reasoning models)
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ollama import Client, ResponseError

from osint_enrich.core.config import (
    EnrichmentConfig,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
    OLLAMA_API_KEY,
    OLLAMA_HOST,
    OLLAMA_MODEL,
    RATE_LIMIT_MARKERS,
    REASONING_MODEL_MARKERS,
)
from osint_enrich.core.errors import ProviderCallFailed
from osint_enrich.pipeline.enrichment.inference import InferenceRecorder, UsageStats

logger = logging.getLogger(__name__)

CLOUD_HOST = "https://ollama.com"


@dataclass
class Completion:
    """Text returned by one chat completion plus its usage."""

    text: str
    usage: UsageStats = field(default_factory=UsageStats)
    model: str = ""
    finish_reason: Optional[str] = None


class LLMClient(Protocol):
    """Completion provider consumed by the pipeline."""

    model: str

    def complete(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        *,
        json_mode: bool = True,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        operation: str = "completion",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Completion:
        ...


def is_reasoning_model(model: str, markers: Sequence[str] = REASONING_MODEL_MARKERS) -> bool:
    name = model.lower()
    return any(marker in name for marker in markers)


def is_rate_limit_error(
    error: BaseException,
    markers: Sequence[str] = RATE_LIMIT_MARKERS,
) -> bool:
    """
    True when a provider failure is rate-limit shaped.

    Prefers the structured HTTP status on the error and falls back to matching
    the provider's message text.
    """
    status = getattr(error, "status_code", None)
    if status == 429:
        return True
    if getattr(error, "rate_limited", False):
        return True
    message = str(error)
    return any(marker in message for marker in markers)


def build_messages(
    user_prompt: str,
    system_prompt: Optional[str],
    merge_system: bool,
) -> List[Dict[str, str]]:
    if merge_system:
        content = f"{system_prompt}\n\n{user_prompt}" if system_prompt else user_prompt
        return [{"role": "user", "content": content}]

    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})
    return messages


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_int(value: Any) -> int:
    return value if isinstance(value, int) else 0


def extract_content(response: Any) -> str:
    """Message content from a chat response (ChatResponse object or plain dict)."""
    message = _field(response, "message")
    if message is None:
        return ""
    if isinstance(message, str):
        return message
    content = _field(message, "content")
    return content if isinstance(content, str) else ""


def extract_usage(response: Any) -> UsageStats:
    prompt_tokens = _as_int(_field(response, "prompt_eval_count"))
    completion_tokens = _as_int(_field(response, "eval_count"))
    return UsageStats(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
    )


class OllamaLLMClient:
    """
    Client for interacting with the Ollama API.

    Handles:
    - JSON-mode chat completions with a system prompt
    - Merged single-message requests for reasoning models
    - Per-call timeouts (one underlying HTTP client per timeout value)
    - Translating provider failures into ProviderCallFailed
    - Usage reporting to an InferenceRecorder
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        host: str = OLLAMA_HOST,
        model: str = OLLAMA_MODEL,
        timeout: float = LLM_TIMEOUT_SECONDS,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: int = LLM_MAX_TOKENS,
        recorder: Optional[InferenceRecorder] = None,
        reasoning_markers: Sequence[str] = REASONING_MODEL_MARKERS,
    ):
        """
        Initialize Ollama LLM client.

        Args:
            api_key: Ollama API key (defaults to OLLAMA_API_KEY env var; required for the cloud host)
            host: Ollama API host
            model: Model name to use
            timeout: Default per-call timeout in seconds
            temperature: Sampling temperature (ignored for reasoning models)
            max_tokens: Default completion token cap
            recorder: Receives usage stats for every call
            reasoning_markers: Model-name substrings identifying reasoning models
        """
        self.api_key = api_key or OLLAMA_API_KEY
        if host.rstrip("/") == CLOUD_HOST and not self.api_key:
            raise ValueError(
                "OLLAMA_API_KEY not provided. Set environment variable or pass api_key parameter."
            )

        self.host = host
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.recorder = recorder or InferenceRecorder()
        self.reasoning_markers = tuple(reasoning_markers)

        self._clients: Dict[float, Client] = {}
        self._clients_lock = threading.Lock()
        self.client = self._client_for(timeout)

    @classmethod
    def from_config(
        cls,
        config: EnrichmentConfig,
        api_key: Optional[str] = None,
        host: str = OLLAMA_HOST,
        recorder: Optional[InferenceRecorder] = None,
    ) -> "OllamaLLMClient":
        return cls(
            api_key=api_key,
            host=host,
            model=config.model,
            timeout=config.timeout,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            recorder=recorder,
        )

    @property
    def is_reasoning_model(self) -> bool:
        return is_reasoning_model(self.model, self.reasoning_markers)

    def _client_for(self, timeout: float) -> Client:
        with self._clients_lock:
            client = self._clients.get(timeout)
            if client is None:
                headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None
                client = Client(host=self.host, headers=headers, timeout=timeout)
                self._clients[timeout] = client
            return client

    def complete(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        *,
        json_mode: bool = True,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        operation: str = "completion",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Completion:
        """
        Send one chat request.

        Args:
            user_prompt: User message content
            system_prompt: Optional system instructions (merged into the user message for reasoning models)
            json_mode: Request a JSON response format (skipped for reasoning models)
            timeout: Per-call timeout override in seconds
            max_tokens: Completion token cap override
            operation: Label for usage recording (e.g. "event_creation")
            metadata: Extra context for usage recording

        Returns:
            Completion with the response text and token usage

        Raises:
            ProviderCallFailed: Network, API or timeout failure
        """
        reasoning = self.is_reasoning_model
        messages = build_messages(user_prompt, system_prompt, merge_system=reasoning)

        options: Dict[str, Any] = {"num_predict": max_tokens or self.max_tokens}
        if not reasoning:
            options["temperature"] = self.temperature

        request: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": options,
        }
        if json_mode and not reasoning:
            request["format"] = "json"

        logger.debug(
            f"LLM call: operation={operation} model={self.model} reasoning={reasoning} "
            f"messages={len(messages)} prompt_chars={len(user_prompt)}"
        )

        client = self._client_for(timeout or self.timeout)
        started = time.monotonic()
        try:
            response = client.chat(**request)
        except ResponseError as e:
            failure = ProviderCallFailed(
                f"ollama API error ({e.status_code}): {e.error}",
                status_code=e.status_code,
            )
            failure.rate_limited = is_rate_limit_error(failure)
            self.recorder.record(self.model, operation, UsageStats(), time.monotonic() - started, failure, metadata)
            raise failure from e
        except Exception as e:
            failure = ProviderCallFailed(f"ollama call failed: {type(e).__name__}: {e}")
            failure.rate_limited = is_rate_limit_error(failure)
            self.recorder.record(self.model, operation, UsageStats(), time.monotonic() - started, failure, metadata)
            raise failure from e

        latency = time.monotonic() - started
        usage = extract_usage(response)
        self.recorder.record(self.model, operation, usage, latency, None, metadata)

        finish_reason = _field(response, "done_reason")
        return Completion(
            text=extract_content(response),
            usage=usage,
            model=self.model,
            finish_reason=finish_reason if isinstance(finish_reason, str) else None,
        )
