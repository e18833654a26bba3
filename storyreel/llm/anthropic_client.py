"""
Storyreel LLM Client

Async client for the Anthropic Messages API. Every pipeline stage talks to the
model through the LLMCaller protocol so tests can inject fakes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import httpx

from storyreel.core.constants import (
    ANTHROPIC_BASE_URL,
    ANTHROPIC_VERSION,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
)
from storyreel.core.env_loader import get_api_key
from storyreel.core.exceptions import LLMRequestError, MissingAPIKeyError
from storyreel.core.logging_config import get_logger

logger = get_logger("llm.anthropic")


# ============================================================================
#  RESPONSE TYPES
# ============================================================================

@dataclass
class LLMResponse:
    """Response from a messages call."""
    content: List[Dict[str, Any]] = field(default_factory=list)
    model: str = DEFAULT_MODEL
    usage: Optional[Dict[str, int]] = None
    raw_response: Optional[Dict[str, Any]] = None

    @property
    def text(self) -> str:
        """Text of the first content block."""
        if not self.content:
            return ""
        return self.content[0].get("text", "") or ""

    @property
    def tokens_used(self) -> Optional[int]:
        if not self.usage:
            return None
        return (self.usage.get("input_tokens") or 0) + (self.usage.get("output_tokens") or 0)

    @classmethod
    def from_text(cls, text: str, usage: Optional[Dict[str, int]] = None) -> "LLMResponse":
        """Build a response holding one text block."""
        return cls(content=[{"type": "text", "text": text}], usage=usage)


# ============================================================================
#  PROTOCOLS
# ============================================================================

class HistoryRecorder(Protocol):
    """Anything that can store a generation history entry."""

    def record(self, entry: Dict[str, Any]) -> Any:
        ...


class LLMCaller(Protocol):
    """The call signature every stage generator depends on."""

    async def call(
        self,
        *,
        system: Optional[str] = None,
        messages: List[Dict[str, str]],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        stage: Optional[str] = None,
        project_id: Optional[str] = None,
        model: Optional[str] = None,
    ) -> LLMResponse:
        ...


# ============================================================================
#  ANTHROPIC CLIENT
# ============================================================================

class AnthropicClient:
    """
    Client for the Anthropic Messages API.

    One request per call. There is no retry: a non-2xx answer is raised as
    LLMRequestError with the upstream message so the caller can surface it.
    """

    MESSAGES_PATH = "/v1/messages"

    def __init__(
        self,
        api_key: str = None,
        base_url: str = ANTHROPIC_BASE_URL,
        version: str = ANTHROPIC_VERSION,
        model: str = DEFAULT_MODEL,
        timeout: Optional[float] = None,
        history: Optional[HistoryRecorder] = None,
        user_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Anthropic key; falls back to ANTHROPIC_API_KEY / CLAUDE_API_KEY
            base_url: API root
            version: Value of the anthropic-version header
            model: Default model for calls that do not name one
            timeout: Request timeout in seconds, None to wait indefinitely
            history: Optional recorder for stage-tagged calls
            user_id: Owner recorded with each history entry
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.api_key = api_key or get_api_key("ANTHROPIC_API_KEY", ["CLAUDE_API_KEY"])
        self.base_url = base_url.rstrip("/")
        self.version = version
        self.model = model
        self.timeout = timeout
        self.history = history
        self.user_id = user_id
        self._transport = transport

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.version,
        }

    async def call(
        self,
        *,
        system: Optional[str] = None,
        messages: List[Dict[str, str]],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        stage: Optional[str] = None,
        project_id: Optional[str] = None,
        model: Optional[str] = None,
    ) -> LLMResponse:
        """
        Send one messages request.

        Raises:
            MissingAPIKeyError: No key is configured
            LLMRequestError: Upstream answered non-2xx or could not be reached
        """
        if not self.api_key:
            raise MissingAPIKeyError()

        model = model or self.model
        body: Dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system:
            body["system"] = system

        logger.debug(f"LLM call stage={stage or '-'} max_tokens={max_tokens}")

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.MESSAGES_PATH,
                    headers=self._get_headers(),
                    json=body,
                )
        except httpx.HTTPError as e:
            logger.error(f"LLM transport error ({stage or '-'}): {e}")
            raise LLMRequestError(f"Anthropic API error: {e}") from e

        data = self._decode(response)

        if response.is_error:
            message = "Anthropic API error"
            error_body = data.get("error") if isinstance(data, dict) else None
            if isinstance(error_body, dict) and error_body.get("message"):
                message = error_body["message"]
            logger.error(f"LLM call failed ({response.status_code}): {message}")
            raise LLMRequestError(message, status_code=response.status_code)

        result = LLMResponse(
            content=data.get("content") or [],
            model=data.get("model", model),
            usage=data.get("usage"),
            raw_response=data,
        )

        if stage and self.history is not None:
            self._record(stage, project_id, messages, result)

        return result

    def _decode(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _record(
        self,
        stage: str,
        project_id: Optional[str],
        messages: List[Dict[str, str]],
        result: LLMResponse,
    ) -> None:
        self.history.record({
            "user_id": self.user_id,
            "project_id": project_id,
            "stage": stage,
            "prompt": json.dumps(messages),
            "response": result.text,
            "tokens_used": result.tokens_used,
        })
