"""Pagination over the storyteller pages of a story."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from app_constants import (
    DEFAULT_IMAGE_URL,
    DEFAULT_PROMPT_FOR_USER,
    DEFAULT_TURN_TEXT,
    WAITING_FOR_TALE_TEXT,
)
from campfire_turns import Turn, split_paragraphs


@dataclass(frozen=True, slots=True)
class PageView:
    """What the story display shows for the current cursor position."""

    text: str
    image_url: str
    prompt_for_next_turn: str
    is_placeholder: bool = False

    @property
    def paragraphs(self) -> list[str]:
        return split_paragraphs(self.text)


class PaginationCursor:
    """Index into a page sequence, clamped to its bounds.

    ``index`` is ``None`` while there are no pages; navigation is then a no-op
    and :meth:`page_view` returns sentinel content.
    """

    def __init__(self, pages: Sequence[Turn] = ()) -> None:
        self._pages: tuple[Turn, ...] = tuple(pages)
        self._index: int | None = len(self._pages) - 1 if self._pages else None

    @property
    def pages(self) -> tuple[Turn, ...]:
        return self._pages

    @property
    def index(self) -> int | None:
        return self._index

    @property
    def length(self) -> int:
        return len(self._pages)

    @property
    def current(self) -> Turn | None:
        if self._index is None:
            return None
        return self._pages[self._index]

    @property
    def has_prev(self) -> bool:
        return self._index is not None and self._index > 0

    @property
    def has_next(self) -> bool:
        return self._index is not None and self._index < len(self._pages) - 1

    def go_prev(self) -> int | None:
        if self._index is not None:
            self._index = max(0, self._index - 1)
        return self._index

    def go_next(self) -> int | None:
        if self._index is not None:
            self._index = min(len(self._pages) - 1, self._index + 1)
        return self._index

    def reset(self, pages: Sequence[Turn]) -> int | None:
        """Swap in a freshly loaded page sequence and show its latest page."""

        self._pages = tuple(pages)
        self._index = len(self._pages) - 1 if self._pages else None
        return self._index

    def rewind(self, pages: Sequence[Turn] | None = None) -> int | None:
        """Show the first page, optionally swapping in a new page sequence."""

        if pages is not None:
            self._pages = tuple(pages)
        self._index = 0 if self._pages else None
        return self._index

    def position_label(self) -> str:
        if self._index is None:
            return "0 / 0"
        return f"{self._index + 1} / {len(self._pages)}"

    def page_view(self, *, empty_text: str = WAITING_FOR_TALE_TEXT) -> PageView:
        turn = self.current
        if turn is None:
            return PageView(
                text=empty_text,
                image_url=DEFAULT_IMAGE_URL,
                prompt_for_next_turn=DEFAULT_PROMPT_FOR_USER,
                is_placeholder=True,
            )
        return PageView(
            text=turn.text or DEFAULT_TURN_TEXT,
            image_url=turn.image_url or DEFAULT_IMAGE_URL,
            prompt_for_next_turn=turn.prompt_for_user or DEFAULT_PROMPT_FOR_USER,
        )


__all__ = ["PageView", "PaginationCursor"]
