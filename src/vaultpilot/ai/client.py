"""Async provider client speaking both completion-style and message-style APIs.

Completion-style endpoints (OpenAI and compatible servers such as OpenRouter
or Ollama) are reached through the ``openai`` SDK. Message-style endpoints
(Anthropic) are called directly over ``httpx``. Either way a response is
normalized into a :class:`TextReply` or a :class:`ToolCallReply`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..chat.message_model import ConversationTurn
from ..services.settings import DEFAULT_BASE_URL, DEFAULT_MODEL, ProviderSettings, Settings
from .tools.tool_registry import ToolSchema

LOGGER = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
NO_RESPONSE = "No response"


class ProviderProtocol(str, Enum):
    COMPLETION = "completion"
    MESSAGE = "message"


class ProviderError(RuntimeError):
    """Raised when the provider rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None, transient: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.transient = transient

    @property
    def retryable(self) -> bool:
        if self.status_code is None:
            return self.transient
        return self.status_code == 429 or self.status_code >= 500


@dataclass(slots=True, frozen=True)
class ProviderConfig:
    """Credentials and endpoint for one provider."""

    name: str
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL

    @classmethod
    def from_settings(cls, provider: ProviderSettings) -> "ProviderConfig":
        return cls(
            name=provider.name,
            api_key=provider.api_key,
            base_url=provider.base_url or DEFAULT_BASE_URL,
            model=provider.model or DEFAULT_MODEL,
        )

    @property
    def protocol(self) -> ProviderProtocol:
        if self.name.lower() == "anthropic" or "anthropic" in self.base_url:
            return ProviderProtocol.MESSAGE
        return ProviderProtocol.COMPLETION


@dataclass(slots=True, frozen=True)
class ToolCall:
    name: str
    arguments: Dict[str, str] = field(default_factory=dict)
    call_id: str | None = None


@dataclass(slots=True, frozen=True)
class TextReply:
    text: str
    kind: str = "text"


@dataclass(slots=True, frozen=True)
class ToolCallReply:
    """One or more tool calls, in the order the provider listed them."""

    calls: tuple[ToolCall, ...]
    kind: str = "tool_call"

    @property
    def name(self) -> str:
        return self.calls[0].name

    @property
    def arguments(self) -> Dict[str, str]:
        return self.calls[0].arguments


ProviderReply = TextReply | ToolCallReply


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the AI client."""

    max_tokens: int = 4096
    request_timeout: float | None = 90.0
    max_retries: int = 1
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    debug_logging: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClientSettings":
        return cls(
            max_tokens=settings.max_tokens,
            request_timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            retry_min_seconds=settings.retry_min_seconds,
            retry_max_seconds=settings.retry_max_seconds,
            debug_logging=settings.debug_logging,
        )


class AIClient:
    """Sends one conversation step to a provider and normalizes the reply."""

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or ClientSettings()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._settings.request_timeout)
        self._openai_clients: Dict[tuple[str, str], AsyncOpenAI] = {}

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    async def complete(
        self,
        provider: ProviderConfig,
        system_prompt: str,
        turns: Sequence[ConversationTurn],
        tools: Iterable[ToolSchema],
    ) -> ProviderReply:
        """Request the next step of the conversation.

        Raises:
            ProviderError: the provider answered with an error status, the
                network failed, or the reply could not be interpreted.
        """

        tool_list = list(tools)
        protocol = provider.protocol
        LOGGER.debug(
            "Requesting %s completion from %s (%s) with %d turn(s)",
            protocol.value,
            provider.name,
            provider.model,
            len(turns),
        )
        async for attempt in self._retrying():
            with attempt:
                if protocol is ProviderProtocol.MESSAGE:
                    return await self._complete_messages(provider, system_prompt, turns, tool_list)
                return await self._complete_chat(provider, system_prompt, turns, tool_list)
        raise ProviderError("Provider request was not attempted")  # pragma: no cover

    # ------------------------------------------------------------------
    # Completion-style
    # ------------------------------------------------------------------

    async def _complete_chat(
        self,
        provider: ProviderConfig,
        system_prompt: str,
        turns: Sequence[ConversationTurn],
        tools: List[ToolSchema],
    ) -> ProviderReply:
        payload: Dict[str, Any] = {
            "model": provider.model,
            "messages": [{"role": "system", "content": system_prompt}, *(turn.to_payload() for turn in turns)],
            "max_tokens": self._settings.max_tokens,
        }
        if tools:
            payload["tools"] = [schema.to_completion_tool() for schema in tools]
        self._log_prompt_payload(payload)

        client = self._openai_client(provider)
        try:
            response = await client.chat.completions.create(**payload)
        except APIStatusError as exc:
            raise ProviderError(
                _error_message(exc.response, "API error"), status_code=exc.status_code
            ) from exc
        except (APIConnectionError, APITimeoutError) as exc:
            raise ProviderError(f"Could not reach {provider.name}: {exc}", transient=True) from exc

        if not response.choices:
            return TextReply(NO_RESPONSE)
        message = response.choices[0].message
        if message.tool_calls:
            calls = tuple(
                ToolCall(
                    name=call.function.name,
                    arguments=_decode_arguments(call.function.name, call.function.arguments),
                    call_id=call.id,
                )
                for call in message.tool_calls
                if getattr(call, "function", None) is not None
            )
            if calls:
                return ToolCallReply(calls)
        return TextReply(message.content or NO_RESPONSE)

    def _openai_client(self, provider: ProviderConfig) -> AsyncOpenAI:
        key = (provider.base_url, provider.api_key)
        client = self._openai_clients.get(key)
        if client is None:
            client = AsyncOpenAI(
                api_key=provider.api_key,
                base_url=provider.base_url,
                timeout=self._settings.request_timeout,
                max_retries=0,
                http_client=self._http,
            )
            self._openai_clients[key] = client
        return client

    # ------------------------------------------------------------------
    # Message-style
    # ------------------------------------------------------------------

    async def _complete_messages(
        self,
        provider: ProviderConfig,
        system_prompt: str,
        turns: Sequence[ConversationTurn],
        tools: List[ToolSchema],
    ) -> ProviderReply:
        payload: Dict[str, Any] = {
            "model": provider.model,
            "max_tokens": self._settings.max_tokens,
            "system": system_prompt,
            "tools": [schema.to_message_tool() for schema in tools],
            "messages": [
                {"role": "user" if turn.role == "user" else "assistant", "content": turn.content}
                for turn in turns
            ],
        }
        self._log_prompt_payload(payload)
        headers = {
            "Content-Type": "application/json",
            "x-api-key": provider.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "anthropic-dangerous-direct-browser-access": "true",
        }
        url = f"{provider.base_url.rstrip('/')}/messages"
        try:
            response = await self._http.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Could not reach {provider.name}: {exc}", transient=True) from exc

        if not response.is_success:
            raise ProviderError(
                _error_message(response, "Anthropic API error"), status_code=response.status_code
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(f"{provider.name} returned a non-JSON response") from exc

        blocks = [block for block in data.get("content") or [] if isinstance(block, Mapping)]
        if data.get("stop_reason") == "tool_use":
            calls = tuple(
                ToolCall(
                    name=str(block.get("name", "")),
                    arguments=_normalize_arguments(str(block.get("name", "")), block.get("input")),
                    call_id=block.get("id"),
                )
                for block in blocks
                if block.get("type") == "tool_use"
            )
            if calls:
                return ToolCallReply(calls)
        for block in blocks:
            if block.get("type") == "text":
                return TextReply(block.get("text") or NO_RESPONSE)
        return TextReply(NO_RESPONSE)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception(lambda exc: isinstance(exc, ProviderError) and exc.retryable),
        )

    def _log_prompt_payload(self, payload: Mapping[str, Any]) -> None:
        if not self._settings.debug_logging:
            return
        try:
            serialized = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("AI prompt payload (unserializable): %s", payload)
        else:
            LOGGER.debug("AI prompt payload:\n%s", serialized)

    async def aclose(self) -> None:
        """Release the HTTP client when this instance created it."""

        self._openai_clients.clear()
        if self._owns_http:
            await self._http.aclose()


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return fallback
    error = body.get("error") if isinstance(body, Mapping) else None
    if isinstance(error, Mapping) and error.get("message"):
        return str(error["message"])
    return fallback


def _decode_arguments(tool_name: str, raw: str | None) -> Dict[str, str]:
    if not raw:
        return {}
    try:
        decoded = json.loads(raw)
    except ValueError as exc:
        raise ProviderError(f"Malformed arguments for tool {tool_name}: {exc}") from exc
    return _normalize_arguments(tool_name, decoded)


def _normalize_arguments(tool_name: str, arguments: Any) -> Dict[str, str]:
    if arguments is None:
        return {}
    if not isinstance(arguments, Mapping):
        raise ProviderError(f"Malformed arguments for tool {tool_name}: expected an object")
    normalized: Dict[str, str] = {}
    for key, value in arguments.items():
        if value is None:
            continue
        if isinstance(value, str):
            normalized[str(key)] = value
        elif isinstance(value, (Mapping, list, tuple)):
            normalized[str(key)] = json.dumps(value, ensure_ascii=False)
        else:
            normalized[str(key)] = str(value)
    return normalized


__all__ = [
    "AIClient",
    "ClientSettings",
    "ProviderConfig",
    "ProviderError",
    "ProviderProtocol",
    "ProviderReply",
    "TextReply",
    "ToolCall",
    "ToolCallReply",
]
