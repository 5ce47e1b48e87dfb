"""Text-completion backend used by the codegen pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

import anthropic

from athena.errors import CompletionTimeout, UpstreamError
from athena.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class ChatMessage:
    role: Literal["user", "assistant"]
    content: str


@dataclass(slots=True)
class CompletionRequest:
    """Single- or multi-turn chat call; the reply is treated as opaque text."""

    system: str
    messages: list[ChatMessage]
    model: str
    temperature: float = 0.7
    max_tokens: int = 4000
    top_p: float | None = None


class TextCompletion(Protocol):
    async def complete(self, request: CompletionRequest) -> str: ...


class AnthropicCompletionClient:
    """``TextCompletion`` over the Anthropic Messages API."""

    def __init__(self, api_key: str, *, timeout_seconds: float = 120.0) -> None:
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout_seconds,
            max_retries=0,
        )

    async def complete(self, request: CompletionRequest) -> str:
        kwargs: dict[str, object] = {
            "model": request.model,
            "system": request.system,
            "messages": [
                {"role": message.role, "content": message.content}
                for message in request.messages
            ],
            "max_tokens": request.max_tokens,
        }
        # Sampling knobs go in the raw body; not every SDK release types them.
        sampling: dict[str, float] = {"temperature": request.temperature}
        if request.top_p is not None:
            sampling["top_p"] = request.top_p
        kwargs["extra_body"] = sampling

        try:
            response = await self._client.messages.create(**kwargs)  # type: ignore[arg-type]
        except anthropic.APITimeoutError as exc:
            msg = f"Completion timed out: {exc}"
            raise CompletionTimeout(msg) from exc
        except anthropic.APIStatusError as exc:
            msg = f"Completion API failed: {exc.status_code} {exc.message}"
            raise UpstreamError(msg, status=exc.status_code, body=str(exc.body)) from exc
        except anthropic.APIConnectionError as exc:
            msg = f"Completion API unreachable: {exc}"
            raise UpstreamError(msg) from exc

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        logger.info(
            "completion_received",
            model=request.model,
            stop_reason=response.stop_reason,
            chars=len(text),
        )
        return text
