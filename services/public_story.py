"""Read-only access to stories that were made public."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app_constants import NO_PUBLIC_CONTENT_TEXT
from campfire_turns import TurnLog
from services import campfire_api
from services.campfire_api import CampfireApiError
from story_pager import PageView, PaginationCursor

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PublicStory:
    story_id: str
    title: str
    log: TurnLog
    cursor: PaginationCursor = field(default_factory=PaginationCursor)

    def __post_init__(self) -> None:
        self.cursor.rewind(self.log.storyteller_turns)

    @property
    def cover_image_url(self) -> str | None:
        for turn in self.log.turns:
            if turn.image_url:
                return turn.image_url
        return None

    def page_view(self) -> PageView:
        return self.cursor.page_view(empty_text=NO_PUBLIC_CONTENT_TEXT)


@dataclass(slots=True)
class PublicStoryLookup:
    story: PublicStory | None = None
    error: str | None = None

    @property
    def not_found(self) -> bool:
        return self.story is None and self.error is None


def load_public_story(title: str) -> PublicStoryLookup:
    """Fetch a public story by title; never raises."""

    cleaned = (title or "").strip()
    if not cleaned:
        return PublicStoryLookup()

    try:
        data = campfire_api.fetch_public_story(cleaned)
    except CampfireApiError as exc:
        logger.warning("Public story %r failed to load: %s", cleaned, exc)
        status = f" Status: {exc.status_code}" if exc.status_code else ""
        return PublicStoryLookup(error=f"Failed to load story.{status}")

    if data is None:
        return PublicStoryLookup()

    story = PublicStory(
        story_id=str(data.get("storyId")),
        title=str(data.get("storyTitle") or cleaned),
        log=TurnLog.from_raw(data.get("chatTurns")),
    )
    return PublicStoryLookup(story=story)


__all__ = ["PublicStory", "PublicStoryLookup", "load_public_story"]
