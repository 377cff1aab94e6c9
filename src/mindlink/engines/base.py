"""Engine protocol and shared types."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from mindlink.models import Attachment, ChatMessage


class EngineError(RuntimeError):
    """The conversation service could not be reached or refused the request."""


@dataclass
class AgentResponse:
    """Response from an AI engine."""

    text: str
    model: str | None = None
    cost_usd: float | None = None
    error: str | None = None
    metadata: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


@runtime_checkable
class Engine(Protocol):
    """Protocol that all engine backends must implement."""

    @property
    def name(self) -> str: ...

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
        """Send a message to the engine and return the response."""
        ...

    async def health_check(self) -> bool:
        """Check if the engine is available. Returns True if healthy."""
        ...
