"""Memory store — the canonical, most-recent-first list of memories.

The whole list is one JSON snapshot, loaded once at startup and rewritten
on every mutation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

from mindlink.memory.snapshot import load_snapshot, save_snapshot
from mindlink.models import Memory

logger = logging.getLogger(__name__)


class MemoryStore:
    """Read/write access to the journal's memories."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._memories: list[Memory] = self._load()

    def _load(self) -> list[Memory]:
        memories: list[Memory] = []
        for record in load_snapshot(self.path):
            try:
                memories.append(Memory.from_dict(record))
            except (ValueError, TypeError) as e:
                logger.warning("Skipping unreadable memory record: %s", e)
        logger.info("Loaded %d memories from %s", len(memories), self.path)
        return memories

    def _commit(self, memories: list[Memory]) -> None:
        """Persist memories, then make them current. A failed write leaves the store as it was."""
        save_snapshot(self.path, [m.to_dict() for m in memories])
        self._memories = memories

    # ── Read access ──────────────────────────────────────────

    @property
    def memories(self) -> tuple[Memory, ...]:
        return tuple(self._memories)

    def __len__(self) -> int:
        return len(self._memories)

    def __iter__(self) -> Iterator[Memory]:
        return iter(tuple(self._memories))

    def get(self, memory_id: str) -> Memory | None:
        for memory in self._memories:
            if memory.id == memory_id:
                return memory
        return None

    def filter(self, term: str) -> list[Memory]:
        """Memories whose content contains term, case-insensitive."""
        q = term.lower()
        return [m for m in self._memories if q in m.content.lower()]

    def recent(self, n: int) -> list[Memory]:
        """The n most recently added memories, newest first."""
        return self._memories[:n] if n > 0 else []

    # ── Mutation ─────────────────────────────────────────────

    def append(self, memory: Memory) -> None:
        """Add a memory to the front of the timeline."""
        self._commit([memory, *self._memories])
        logger.info("Added memory %s (%d concepts)", memory.id, len(memory.concepts))

    def remove(self, memory_id: str) -> bool:
        """Delete a memory by id. Returns False if there was nothing to delete."""
        kept = [m for m in self._memories if m.id != memory_id]
        if len(kept) == len(self._memories):
            return False
        self._commit(kept)
        logger.info("Deleted memory %s", memory_id)
        return True
