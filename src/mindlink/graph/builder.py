"""Knowledge graph projection of the memory store.

The graph is never stored. It is rebuilt from the current memories on
every read: one node per memory, one node per distinct concept label,
and one link per (memory, concept) occurrence. Output order follows the
input order, so identical input yields an identical graph.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from mindlink.models import Memory

logger = logging.getLogger(__name__)

LABEL_LENGTH = 20
CONCEPT_PREFIX = "concept-"
LINK_STRENGTH = 1

MEMORY_GROUP = 1
CONCEPT_GROUP = 2


@dataclass(frozen=True)
class Node:
    id: str
    label: str
    type: Literal["memory", "concept"]
    group: int


@dataclass(frozen=True)
class Link:
    source: str
    target: str
    strength: int = LINK_STRENGTH


@dataclass
class GraphData:
    nodes: list[Node] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Node-link form, as consumed by d3-force style renderers."""
        return {
            "nodes": [asdict(n) for n in self.nodes],
            "links": [asdict(link) for link in self.links],
        }


def concept_id(label: str) -> str:
    """Stable node id for a concept label (exact, case-sensitive)."""
    return CONCEPT_PREFIX + label


def memory_label(content: Any) -> str:
    return str(content or "")[:LABEL_LENGTH]


def _concepts_of(memory: Any) -> list[str]:
    """Concept labels of a memory; anything that isn't a sequence of strings counts as none."""
    concepts = getattr(memory, "concepts", None)
    if isinstance(concepts, (str, bytes)) or not isinstance(concepts, (list, tuple)):
        return []
    return [c for c in concepts if isinstance(c, str)]


def build_graph(memories: Iterable[Memory]) -> GraphData:
    """Project memories into nodes and links. Pure; never raises for well-formed input.

    Concept ids win over memory ids: a memory whose id equals the id derived
    from any concept label in the input is left out, together with its links.
    A repeated memory id keeps only its first occurrence.
    """
    memories = list(memories)
    reserved = {concept_id(label) for m in memories for label in _concepts_of(m)}

    graph = GraphData()
    memory_ids: set[str] = set()
    concepts: dict[str, str] = {}

    for memory in memories:
        if memory.id in reserved:
            logger.warning("Skipping memory %s: id clashes with a concept node", memory.id)
            continue
        if memory.id in memory_ids:
            continue
        memory_ids.add(memory.id)
        graph.nodes.append(
            Node(id=memory.id, label=memory_label(memory.content), type="memory", group=MEMORY_GROUP)
        )

        for label in _concepts_of(memory):
            if label not in concepts:
                concepts[label] = concept_id(label)
                graph.nodes.append(
                    Node(id=concepts[label], label=label, type="concept", group=CONCEPT_GROUP)
                )
            graph.links.append(Link(source=memory.id, target=concepts[label]))

    return graph
