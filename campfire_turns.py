"""Turn log model and the pure helpers that shape it.

Raw turn records arrive from the storytelling API with optional fields and,
occasionally, entries that are not records at all. ``normalize_turns`` is the
only place that assumes defaults for them; everything downstream works with
fully populated :class:`Turn` objects.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from app_constants import (
    DEFAULT_PROMPT_FOR_USER,
    DEFAULT_TURN_TEXT,
    START_NEW_STORY_PROMPT_INPUT,
    UNTITLED_STORY_TITLE,
)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def split_paragraphs(text: str) -> list[str]:
    return [part.strip() for part in _PARAGRAPH_BREAK.split(text or "") if part.strip()]


class Sender(str, Enum):
    USER = "User"
    STORYTELLER = "Storyteller"

    @classmethod
    def coerce(cls, value: Any) -> "Sender":
        """Map a wire sender onto the enum; anything unrecognised is the user."""

        if isinstance(value, Sender):
            return value
        normalized = str(value or "").strip().lower()
        if normalized == cls.STORYTELLER.value.lower():
            return cls.STORYTELLER
        return cls.USER


@dataclass(frozen=True, slots=True)
class Turn:
    """A single exchange in the story log."""

    sender: Sender
    text: str
    image_url: str | None = None
    prompt_for_user: str | None = None

    @property
    def is_storyteller(self) -> bool:
        return self.sender is Sender.STORYTELLER

    @property
    def paragraphs(self) -> list[str]:
        return split_paragraphs(self.text)

    def to_wire(self) -> dict[str, str]:
        payload = {"sender": self.sender.value, "text": self.text}
        if self.image_url:
            payload["imageUrl"] = self.image_url
        if self.prompt_for_user:
            payload["promptForUser"] = self.prompt_for_user
        return payload


def _optional_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _turn_text(value: Any) -> str:
    if value is None or isinstance(value, (Mapping, list, tuple)):
        return DEFAULT_TURN_TEXT
    text = value if isinstance(value, str) else str(value)
    return text if text.strip() else DEFAULT_TURN_TEXT


def _normalize_turn(raw: Any) -> Turn:
    if not isinstance(raw, Mapping):
        return Turn(sender=Sender.USER, text=DEFAULT_TURN_TEXT)
    return Turn(
        sender=Sender.coerce(raw.get("sender")),
        text=_turn_text(raw.get("text")),
        image_url=_optional_text(raw.get("imageUrl")),
        prompt_for_user=_optional_text(raw.get("promptForUser")),
    )


def normalize_turns(raw_turns: Any) -> list[Turn]:
    """Return a canonical turn list for ``raw_turns``.

    ``None`` and non-list inputs yield an empty list. Malformed entries are
    kept as degraded user turns carrying placeholder text so the log keeps its
    length and order.
    """

    if isinstance(raw_turns, Turn):
        return [raw_turns]
    if not isinstance(raw_turns, (list, tuple)):
        return []
    return [raw if isinstance(raw, Turn) else _normalize_turn(raw) for raw in raw_turns]


def storyteller_turns(turns: Iterable[Turn]) -> list[Turn]:
    """Return the storyteller turns (the story pages) in log order."""

    return [turn for turn in turns if turn.sender is Sender.STORYTELLER]


def latest_storyteller_prompt(turns: Sequence[Turn]) -> str | None:
    for turn in reversed(turns):
        if turn.sender is Sender.STORYTELLER and turn.prompt_for_user:
            return turn.prompt_for_user
    return None


def select_chat_prompt(turns: Sequence[Turn], is_new_session: bool) -> str:
    """Pick the guidance text shown above the chat input box."""

    if is_new_session:
        return START_NEW_STORY_PROMPT_INPUT
    return latest_storyteller_prompt(turns) or DEFAULT_PROMPT_FOR_USER


def prompt_for_page(page: Turn | None, turns: Sequence[Turn]) -> str:
    """Prompt used when leaving a story page for the chat view."""

    if page is not None and page.prompt_for_user:
        return page.prompt_for_user
    return latest_storyteller_prompt(turns) or DEFAULT_PROMPT_FOR_USER


def is_untitled(title: str | None) -> bool:
    normalized = (title or "").strip()
    return not normalized or normalized == UNTITLED_STORY_TITLE


@dataclass(frozen=True, slots=True)
class TurnLog:
    """Immutable pairing of the full log with its storyteller projection."""

    turns: tuple[Turn, ...] = ()
    storyteller_turns: tuple[Turn, ...] = field(default=())

    @classmethod
    def from_turns(cls, turns: Iterable[Turn]) -> "TurnLog":
        materialized = tuple(turns)
        return cls(turns=materialized, storyteller_turns=tuple(storyteller_turns(materialized)))

    @classmethod
    def from_raw(cls, raw_turns: Any) -> "TurnLog":
        return cls.from_turns(normalize_turns(raw_turns))

    def __len__(self) -> int:
        return len(self.turns)

    def to_wire(self) -> list[dict[str, str]]:
        return [turn.to_wire() for turn in self.turns]


EMPTY_LOG = TurnLog()


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Typed view of a fetch-session or submit-turn response body."""

    id: str | None
    story_title: str | None
    share_publicly: bool | None
    log: TurnLog
    has_active_session_today: bool = False

    @classmethod
    def from_response(cls, data: Any) -> "SessionSnapshot":
        body: Mapping[str, Any] = data if isinstance(data, Mapping) else {}
        raw_id = body.get("id")
        story_id = str(raw_id).strip() if raw_id not in (None, "") else None
        share = body.get("share_publicly")
        return cls(
            id=story_id or None,
            story_title=_optional_text(body.get("storyTitle")),
            share_publicly=share if isinstance(share, bool) else None,
            log=TurnLog.from_raw(body.get("chatTurns")),
            has_active_session_today=bool(body.get("hasActiveSessionToday")),
        )


def build_submit_payload(
    *,
    user_input: str,
    log: TurnLog,
    story_title: str,
    story_id: str | None,
) -> dict[str, Any]:
    """Assemble the ``POST /turns`` request body."""

    payload: dict[str, Any] = {
        "userInput": user_input.strip(),
        "priorTurns": log.to_wire(),
        "storyTitle": story_title,
    }
    if story_id:
        payload["storyId"] = story_id
    return payload


__all__ = [
    "EMPTY_LOG",
    "Sender",
    "SessionSnapshot",
    "Turn",
    "TurnLog",
    "build_submit_payload",
    "is_untitled",
    "latest_storyteller_prompt",
    "normalize_turns",
    "prompt_for_page",
    "select_chat_prompt",
    "split_paragraphs",
    "storyteller_turns",
]
