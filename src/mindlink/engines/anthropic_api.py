"""Anthropic API engine — text, images and PDFs, no tool use."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mindlink.engines.base import AgentResponse

if TYPE_CHECKING:
    from mindlink.models import Attachment, ChatMessage

logger = logging.getLogger(__name__)


def _attachment_block(attachment: Attachment) -> dict:
    """Messages API content block for an inlined attachment."""
    source = {"type": "base64", "media_type": attachment.mime_type, "data": attachment.data}
    if attachment.type == "pdf":
        return {"type": "document", "source": source}
    return {"type": "image", "source": source}


def _history_messages(history: Sequence[ChatMessage]) -> list[dict]:
    """Map chat turns onto alternating user/assistant messages.

    The API requires the first message to come from the user and roles to
    alternate, so consecutive turns from one side are merged.
    """
    messages: list[dict] = []
    for turn in history:
        if turn.role == "system" or not turn.text:
            continue
        role = "assistant" if turn.role == "model" else "user"
        if not messages and role == "assistant":
            continue
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] += "\n\n" + turn.text
        else:
            messages.append({"role": role, "content": turn.text})
    return messages


@dataclass
class AnthropicAPIEngine:
    """Direct Anthropic API via the `anthropic` SDK. Pure conversation, no tools."""

    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 4096
    timeout: int = 120

    def __post_init__(self) -> None:
        import anthropic

        self._client = anthropic.Anthropic(timeout=self.timeout, max_retries=0)

    @property
    def name(self) -> str:
        return "anthropic_api"

    def _build_messages(
        self,
        message: str,
        context: str | None,
        history: Sequence[ChatMessage] | None,
        attachment: Attachment | None,
    ) -> list[dict]:
        full_prompt = f"<context>\n{context}\n</context>\n\n{message}" if context else message

        content: list[dict] = []
        if attachment is not None:
            content.append(_attachment_block(attachment))
        content.append({"type": "text", "text": full_prompt})

        messages = _history_messages(history or [])
        if messages and messages[-1]["role"] == "user":
            # Last turn was never answered; fold it into the new message.
            content.insert(0, {"type": "text", "text": messages.pop()["content"]})
        messages.append({"role": "user", "content": content})
        return messages

    async def send(
        self,
        message: str,
        *,
        system_prompt: str | None = None,
        context: str | None = None,
        history: Sequence[ChatMessage] | None = None,
        attachment: Attachment | None = None,
        temperature: float | None = None,
        model: str | None = None,
    ) -> AgentResponse:
        kwargs: dict = {
            "model": model or self.model,
            "max_tokens": self.max_tokens,
            "messages": self._build_messages(message, context, history, attachment),
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            response = await asyncio.to_thread(self._client.messages.create, **kwargs)
        except Exception as e:
            logger.error("Anthropic API error: %s", e)
            return AgentResponse(text="", error=f"Anthropic API error: {e}")

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        cost = None
        if response.usage:
            # Approximate cost (Sonnet pricing)
            cost = (response.usage.input_tokens * 3 + response.usage.output_tokens * 15) / 1e6

        return AgentResponse(text=text, cost_usd=cost, model=response.model)

    async def health_check(self) -> bool:
        try:
            response = await asyncio.to_thread(
                self._client.messages.create,
                model=self.model,
                max_tokens=10,
                messages=[{"role": "user", "content": "ping"}],
            )
            return bool(response.content)
        except Exception:
            return False
