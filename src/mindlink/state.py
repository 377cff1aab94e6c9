"""Application state and its reducer.

Everything the shell shows besides the stored records lives in one frozen
``AppState``. It only changes through ``reduce(state, action)``, which is
pure. The knowledge graph is deliberately absent: it is built on read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Literal, Union

logger = logging.getLogger(__name__)

View = Literal["timeline", "graph", "chat", "insights"]
ActionKind = Literal["add_memory", "chat", "insights", "study_plan"]

VIEWS: tuple[str, ...] = ("timeline", "graph", "chat", "insights")


@dataclass(frozen=True)
class AppState:
    view: View = "timeline"
    search_term: str = ""
    insights: str = ""
    study_plan: str | None = None
    pending: frozenset[str] = frozenset()
    last_error: str | None = None

    def is_pending(self, kind: str) -> bool:
        return kind in self.pending


# ── Actions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class ChangeView:
    view: View


@dataclass(frozen=True)
class SetSearch:
    term: str


@dataclass(frozen=True)
class ActionStarted:
    kind: ActionKind


@dataclass(frozen=True)
class ActionFinished:
    kind: ActionKind
    error: str | None = None


@dataclass(frozen=True)
class ErrorRaised:
    message: str


@dataclass(frozen=True)
class InsightsReady:
    text: str


@dataclass(frozen=True)
class StudyPlanReady:
    text: str


Action = Union[
    ChangeView, SetSearch, ActionStarted, ActionFinished, ErrorRaised, InsightsReady, StudyPlanReady
]


def reduce(state: AppState, action: Action) -> AppState:
    """Return the state that results from applying action."""
    if isinstance(action, ChangeView):
        if action.view not in VIEWS:
            logger.warning("Ignoring unknown view: %s", action.view)
            return state
        return replace(state, view=action.view)
    if isinstance(action, SetSearch):
        return replace(state, search_term=action.term)
    if isinstance(action, ActionStarted):
        return replace(state, pending=state.pending | {action.kind}, last_error=None)
    if isinstance(action, ActionFinished):
        return replace(
            state,
            pending=state.pending - {action.kind},
            last_error=action.error if action.error is not None else state.last_error,
        )
    if isinstance(action, ErrorRaised):
        return replace(state, last_error=action.message)
    if isinstance(action, InsightsReady):
        return replace(state, insights=action.text)
    if isinstance(action, StudyPlanReady):
        return replace(state, study_plan=action.text)
    return state
