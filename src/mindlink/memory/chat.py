"""Chat history — append-only conversation turns, persisted as one snapshot."""

from __future__ import annotations

import logging
from pathlib import Path

from mindlink.memory.snapshot import load_snapshot, save_snapshot
from mindlink.models import ChatMessage

logger = logging.getLogger(__name__)


class ChatHistory:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._messages: list[ChatMessage] = []
        for record in load_snapshot(path):
            try:
                self._messages.append(ChatMessage.from_dict(record))
            except (ValueError, TypeError) as e:
                logger.warning("Skipping unreadable chat record: %s", e)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def turns(self, limit: int) -> list[ChatMessage]:
        """The last `limit` turns, oldest first."""
        return self._messages[-limit:] if limit > 0 else []

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        save_snapshot(self.path, [m.to_dict() for m in self._messages])

    def clear(self) -> None:
        self._messages = []
        save_snapshot(self.path, [])
        logger.info("Chat history cleared")
