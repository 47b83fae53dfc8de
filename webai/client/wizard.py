"""
State machine for the bot creation flow.

    describing -> generating -> editing -> refining -> editing
                                        -> deploying -> published -> editing

Each generation or refinement gets a token. Events carrying any other token
are stale: they belong to a request that was cancelled or superseded and
never touch the session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from webai.generation.events import ChunkEvent, DoneEvent, ErrorEvent, StreamEvent

logger = logging.getLogger(__name__)


class WizardState(Enum):
    DESCRIBING = "describing"
    GENERATING = "generating"
    EDITING = "editing"
    REFINING = "refining"
    DEPLOYING = "deploying"
    PUBLISHED = "published"


TRANSITIONS: dict[WizardState, frozenset[WizardState]] = {
    WizardState.DESCRIBING: frozenset({WizardState.GENERATING}),
    WizardState.GENERATING: frozenset({WizardState.EDITING, WizardState.DESCRIBING}),
    WizardState.EDITING: frozenset({
        WizardState.GENERATING, WizardState.REFINING, WizardState.DEPLOYING,
    }),
    WizardState.REFINING: frozenset({WizardState.EDITING}),
    WizardState.DEPLOYING: frozenset({WizardState.PUBLISHED, WizardState.EDITING}),
    WizardState.PUBLISHED: frozenset({WizardState.EDITING}),
}

STREAMING_STATES = (WizardState.GENERATING, WizardState.REFINING)


class InvalidTransition(Exception):
    def __init__(self, current: WizardState, target: WizardState):
        super().__init__(f"Cannot go from {current.value} to {target.value}")
        self.current = current
        self.target = target


@dataclass(frozen=True)
class RefineRecord:
    instruction: str
    summary: str


@dataclass
class BotDraft:
    name: str = ""
    description: str = ""
    system_prompt: str = ""
    suggested_slug: str = ""


@dataclass
class WizardSession:
    state: WizardState = WizardState.DESCRIBING
    files: list[dict[str, Any]] = field(default_factory=list)
    draft: BotDraft = field(default_factory=BotDraft)
    refine_history: list[RefineRecord] = field(default_factory=list)
    stream_text: str = ""
    error: str | None = None
    published_url: str | None = None

    _token: int = field(default=0, init=False, repr=False)
    _active: int | None = field(default=None, init=False, repr=False)
    _resume_state: WizardState | None = field(default=None, init=False, repr=False)
    _instruction: str | None = field(default=None, init=False, repr=False)

    # ------------------------------------------------------------------ #
    # Transitions                                                        #
    # ------------------------------------------------------------------ #

    def can_transition(self, target: WizardState) -> bool:
        return target in TRANSITIONS[self.state]

    def transition(self, target: WizardState) -> None:
        if not self.can_transition(target):
            raise InvalidTransition(self.state, target)
        logger.debug(f"Wizard {self.state.value} -> {target.value}")
        self.state = target

    def _start(self, target: WizardState, instruction: str | None = None) -> int:
        # A new request supersedes the running one
        self.cancel()
        resume = self.state
        self.transition(target)
        self._token += 1
        self._active = self._token
        self._resume_state = resume
        self._instruction = instruction
        self.stream_text = ""
        self.error = None
        return self._token

    def begin_generation(self) -> int:
        """Start a (re)generation; returns the token its events must carry."""
        return self._start(WizardState.GENERATING)

    def begin_refinement(self, instruction: str) -> int:
        return self._start(WizardState.REFINING, instruction)

    def cancel(self) -> None:
        """Abandon the running request; its later events become stale."""
        if self._active is None:
            return
        self._active = None
        if self.state in STREAMING_STATES and self._resume_state is not None:
            self.transition(self._resume_state)

    def begin_deploy(self) -> None:
        self.transition(WizardState.DEPLOYING)

    def finish_deploy(self, url: str | None = None, error: str | None = None) -> None:
        if error is None:
            self.published_url = url
            self.transition(WizardState.PUBLISHED)
        else:
            self.error = error
            self.transition(WizardState.EDITING)

    def edit(self) -> None:
        """Go back to editing after publishing."""
        self.transition(WizardState.EDITING)

    # ------------------------------------------------------------------ #
    # Events                                                             #
    # ------------------------------------------------------------------ #

    def is_current(self, token: int) -> bool:
        return self._active is not None and token == self._active

    def apply_event(self, token: int, event: StreamEvent) -> bool:
        """
        Apply one stream event. Returns False when the event was ignored
        because its request is no longer current (including replays after
        the request already finished).
        """
        if not self.is_current(token):
            return False

        if isinstance(event, ChunkEvent):
            self.stream_text += event.chunk
            return True
        if isinstance(event, DoneEvent):
            self._finish_done(event.payload)
            return True
        if isinstance(event, ErrorEvent):
            self.fail(token, event.error)
            return True
        return False

    def fail(self, token: int, message: str) -> bool:
        """Surface an error and return to the state before the request."""
        if not self.is_current(token):
            return False
        self.error = message
        self._active = None
        if self._resume_state is not None:
            self.transition(self._resume_state)
        return True

    def _finish_done(self, payload: dict[str, Any]) -> None:
        files = payload.get("files")
        if not isinstance(files, list) or not files or not all(
            isinstance(file, dict)
            and isinstance(file.get("path"), str)
            and isinstance(file.get("content"), str)
            for file in files
        ):
            self.fail(self._active or 0, "AI did not return valid file structure")
            return

        refining = self.state is WizardState.REFINING
        self.files = [dict(file) for file in files]
        self._update_draft(payload, keep_existing=refining)
        if refining:
            self.refine_history.append(RefineRecord(
                instruction=self._instruction or "",
                summary=str(payload.get("change_summary") or ""),
            ))
        self._active = None
        self.transition(WizardState.EDITING)

    def _update_draft(self, payload: dict[str, Any], keep_existing: bool) -> None:
        for attr in ("name", "description", "system_prompt", "suggested_slug"):
            value = payload.get(attr)
            if isinstance(value, str) and value:
                setattr(self.draft, attr, value)
            elif not keep_existing:
                setattr(self.draft, attr, "")

    def file_paths(self) -> list[str]:
        return [file["path"] for file in self.files]
