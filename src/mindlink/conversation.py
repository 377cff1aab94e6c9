"""Conversation engine contracts: prompt building and response parsing.

Four requests go to the engine:
- concept analysis of a new memory (JSON reply)
- chat with the user's "digital twin" (free text)
- cognitive insights over all memories (free text)
- an evidence-based study plan (free text)

JSON replies are never trusted structurally: the first well-formed JSON
value is extracted from the text and every field gets a default.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mindlink.engines.base import EngineError

if TYPE_CHECKING:
    from mindlink.engines.base import AgentResponse, Engine
    from mindlink.models import Attachment, ChatMessage, Memory

logger = logging.getLogger(__name__)

ANALYSIS_CONTEXT_SIZE = 5

ANALYSIS_PROMPT = """\
Analyse this new thought from a student. Extract its key concepts and any
connections to the earlier notes listed in the context (refer to them by ID).
RETURN ONLY PLAIN JSON, no commentary.
Structure: {"concepts": string[], "suggestedLinks": string[], "summary": string, "cognitiveType": string}
"""

TWIN_SYSTEM_PROMPT = """\
You are Mindlink, the user's digital memory twin. You talk casually, student to
student ("Listen", "We'll sort it out", "No stress"). Your study advice is ALWAYS
grounded in research on cognitive effectiveness (Active Recall, Spaced
Repetition). Do not use asterisks.
The user's knowledge base:
{context}
"""

INSIGHTS_SYSTEM_PROMPT = (
    "You are a laid-back cognitive analyst. Do not use asterisks. Look for patterns "
    "and give proactive advice grounded in cognitive psychology."
)

PLAN_SYSTEM_PROMPT = (
    "You are Mindlink, a relaxed study buddy. Your advice rests on hard scientific "
    "evidence (Dunlosky et al., 2013). Do not use asterisks. Write plain text split "
    "into paragraphs."
)

PLAN_PROMPT = """\
Based on my notes:
{context}

Create a study plan. Use Active Recall, Spaced Repetition and Interleaving.
Briefly explain why each works, based on neuroscience. Talk to me like a fellow
student who has read every cognitive science textbook.
"""

INSIGHTS_PROMPT = "Analyse my notes and find logical gaps or interesting connections:\n{context}"

NOT_ENOUGH_NOTES = (
    "Add a few more notes and I'll find hidden connections in the way you think."
)
CHAT_FALLBACK = "No idea what to say to that, mate. Try asking another way."
PLAN_FALLBACK = "Sorry, something got stuck in my neurons. Try again!"

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?|\n?```")


class ResponseParseError(ValueError):
    """The engine replied, but not with the JSON shape we asked for."""


# ── JSON extraction ──────────────────────────────────────────


def extract_json(text: str) -> Any:
    """Return the first well-formed JSON object or array found in text.

    Tolerates Markdown code fences and prose around the payload.
    """
    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    for idx, char in enumerate(cleaned):
        if char not in "{[":
            continue
        try:
            value, _ = decoder.raw_decode(cleaned, idx)
            return value
        except json.JSONDecodeError:
            continue

    logger.error("Failed to parse AI response as JSON: %s", text[:200])
    raise ResponseParseError("Invalid AI response format")


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v]


@dataclass
class ConceptAnalysis:
    """Concept extraction result for one memory."""

    concepts: list[str] = field(default_factory=list)
    suggested_links: list[str] = field(default_factory=list)
    summary: str = ""
    cognitive_type: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> ConceptAnalysis:
        if not isinstance(data, dict):
            raise ResponseParseError(f"Expected a JSON object, got {type(data).__name__}")
        summary = data.get("summary")
        cognitive_type = data.get("cognitiveType")
        return cls(
            concepts=_strings(data.get("concepts")),
            suggested_links=_strings(data.get("suggestedLinks")),
            summary=summary if isinstance(summary, str) else "",
            cognitive_type=cognitive_type if isinstance(cognitive_type, str) else "",
        )


# ── Requests ─────────────────────────────────────────────────


def _require_ok(response: AgentResponse) -> str:
    if not response.ok:
        raise EngineError(response.error)
    return response.text


def memory_context(memories: Sequence[Memory], *, with_ids: bool = False) -> str:
    if with_ids:
        return "\n".join(f"[ID:{m.id}] {m.content}" for m in memories)
    return "\n".join(f"- {m.content}" for m in memories)


def clean_text(text: str) -> str:
    """Strip the asterisks models like to sprinkle in despite instructions."""
    return text.replace("*", "")


async def analyze_memory(
    engine: Engine,
    content: str,
    recent: Sequence[Memory],
    attachment: Attachment | None = None,
) -> ConceptAnalysis:
    """Ask the engine for the concepts and links of a new memory."""
    context = memory_context(recent[:ANALYSIS_CONTEXT_SIZE], with_ids=True)
    response = await engine.send(
        f"{ANALYSIS_PROMPT}\nThought: {content}",
        context=context or None,
        attachment=attachment,
    )
    analysis = ConceptAnalysis.from_dict(extract_json(_require_ok(response) or "{}"))
    logger.debug("Extracted concepts %s", analysis.concepts)
    return analysis


async def chat_reply(
    engine: Engine,
    query: str,
    memories: Sequence[Memory],
    history: Sequence[ChatMessage] = (),
    temperature: float | None = None,
) -> str:
    response = await engine.send(
        query,
        system_prompt=TWIN_SYSTEM_PROMPT.format(context=memory_context(memories)),
        history=history,
        temperature=temperature,
    )
    return _require_ok(response) or CHAT_FALLBACK


async def generate_insights(engine: Engine, memories: Sequence[Memory]) -> str:
    """Patterns and gaps across all memories. Needs at least two to say anything."""
    if len(memories) < 2:
        return NOT_ENOUGH_NOTES
    context = "\n---\n".join(m.content for m in memories)
    response = await engine.send(
        INSIGHTS_PROMPT.format(context=context),
        system_prompt=INSIGHTS_SYSTEM_PROMPT,
    )
    return _require_ok(response)


async def generate_study_plan(
    engine: Engine,
    memories: Sequence[Memory],
    *,
    model: str | None = None,
    temperature: float | None = None,
) -> str:
    response = await engine.send(
        PLAN_PROMPT.format(context=memory_context(memories)),
        system_prompt=PLAN_SYSTEM_PROMPT,
        temperature=temperature,
        model=model,
    )
    return _require_ok(response) or PLAN_FALLBACK
