"""Journal records: memories, their attachments, and chat turns.

All records serialise to plain dicts with the snapshot key names
(``mimeType`` stays camelCase so existing snapshots keep loading).
"""

from __future__ import annotations

import base64
import mimetypes
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

AttachmentKind = Literal["image", "pdf"]
Role = Literal["user", "model", "system"]


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def _string_list(value: Any) -> list[str]:
    """Coerce a decoded JSON value to a list of strings, dropping anything else."""
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str)]


def attachment_kind(mime_type: str) -> AttachmentKind:
    """Declared media type containing 'pdf' means a document, anything else an image."""
    return "pdf" if "pdf" in mime_type.lower() else "image"


@dataclass(frozen=True)
class Attachment:
    """One inlined binary payload (base64) attached to a memory."""

    type: AttachmentKind
    data: str
    mime_type: str
    name: str

    @classmethod
    def from_bytes(cls, raw: bytes, name: str, mime_type: str | None = None) -> Attachment:
        mime = mime_type or mimetypes.guess_type(name)[0] or "application/octet-stream"
        return cls(
            type=attachment_kind(mime),
            data=base64.b64encode(raw).decode("ascii"),
            mime_type=mime,
            name=name,
        )

    @classmethod
    def from_path(cls, path: Path) -> Attachment:
        """Read a file from disk and inline it."""
        return cls.from_bytes(path.read_bytes(), path.name)

    def to_dict(self) -> dict:
        return {"type": self.type, "data": self.data, "mimeType": self.mime_type, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> Attachment:
        mime = str(data.get("mimeType", "") or "application/octet-stream")
        kind = data.get("type")
        return cls(
            type=kind if kind in ("image", "pdf") else attachment_kind(mime),
            data=str(data.get("data", "")),
            mime_type=mime,
            name=str(data.get("name", "")),
        )


@dataclass(frozen=True)
class Memory:
    """A single journaled thought. Immutable once created."""

    content: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: int = field(default_factory=now_ms)
    type: str = "note"
    concepts: tuple[str, ...] = ()
    links: tuple[str, ...] = ()
    attachment: Attachment | None = None
    sentiment: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "content": self.content,
            "timestamp": self.timestamp,
            "type": self.type,
            "concepts": list(self.concepts),
            "links": list(self.links),
        }
        if self.attachment is not None:
            data["attachment"] = self.attachment.to_dict()
        if self.sentiment is not None:
            data["sentiment"] = self.sentiment
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Memory:
        """Decode a snapshot record. Raises ValueError when the record has no id."""
        if not isinstance(data, dict) or not data.get("id"):
            raise ValueError(f"memory record without id: {data!r}")
        attachment = data.get("attachment")
        sentiment = data.get("sentiment")
        timestamp = data.get("timestamp")
        return cls(
            id=str(data["id"]),
            content=str(data.get("content") or ""),
            timestamp=int(timestamp) if isinstance(timestamp, (int, float)) else 0,
            type=str(data.get("type") or "note"),
            concepts=tuple(_string_list(data.get("concepts"))),
            links=tuple(_string_list(data.get("links"))),
            attachment=Attachment.from_dict(attachment) if isinstance(attachment, dict) else None,
            sentiment=sentiment if isinstance(sentiment, str) else None,
        )


@dataclass(frozen=True)
class ChatMessage:
    """One role-tagged turn of the conversation."""

    role: Role
    text: str
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> dict:
        return {"role": self.role, "text": self.text, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> ChatMessage:
        if not isinstance(data, dict) or data.get("role") not in ("user", "model", "system"):
            raise ValueError(f"chat record without a valid role: {data!r}")
        timestamp = data.get("timestamp")
        return cls(
            role=data["role"],
            text=str(data.get("text") or ""),
            timestamp=int(timestamp) if isinstance(timestamp, (int, float)) else 0,
        )
