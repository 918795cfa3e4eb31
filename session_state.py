"""Session state helpers for the Streamlit app."""
from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any

from services.turn_service import StorySession
from session_proxy import CampfireSessionProxy
from view_transition import ViewModeController

NEW_SESSION_KEY = "<live>"

_STATE_DEFAULTS: dict[str, Any] = {
    # Routing
    "mode": None,

    # Live campfire session
    "campfire_session": None,
    "campfire_view": None,
    "campfire_session_key": None,
    "campfire_loaded": False,

    # Home screen
    "new_story_title_input": "",
    "my_stories": None,
    "my_stories_error": None,
    "pending_delete_title": None,

    # Characters
    "characters": None,
    "characters_error": None,
    "character_draft": None,
    "character_draft_id": None,
    "character_notice": None,

    # Public reader
    "public_story": None,
    "public_story_title": None,

    # Authentication state
    "auth_user": None,
    "auth_error": None,
    "auth_form_mode": "signin",
    "auth_next_action": None,
    "session_expired": False,
}


def _proxy(state: MutableMapping[str, Any]) -> CampfireSessionProxy:
    return CampfireSessionProxy(state)


def ensure_state(state: MutableMapping[str, Any]) -> CampfireSessionProxy:
    proxy = _proxy(state)
    for key, default in _STATE_DEFAULTS.items():
        proxy.setdefault(key, default)
    return proxy


def session_key_for(title_query: str | None) -> str:
    cleaned = (title_query or "").strip()
    return f"title:{cleaned}" if cleaned else NEW_SESSION_KEY


def open_campfire_session(
    state: MutableMapping[str, Any],
    title_query: str | None,
) -> tuple[StorySession, ViewModeController, bool]:
    """Return the session for ``title_query``, replacing a session opened for another story.

    The third element is ``True`` when a fresh session was created and still
    needs its initial fetch.
    """

    proxy = _proxy(state)
    key = session_key_for(title_query)
    session = proxy.story_session
    controller = proxy.view_controller
    if session is not None and controller is not None and session.is_active:
        if proxy.session_key == key or _converged(session, key):
            proxy.session_key = session_key_for(session.title_query)
            return session, controller, False

    close_campfire_session(state)
    session = StorySession.open(title_query)
    controller = ViewModeController()
    proxy.story_session = session
    proxy.view_controller = controller
    proxy.session_key = key
    proxy["campfire_loaded"] = False
    return session, controller, True


def _converged(session: StorySession, key: str) -> bool:
    # A session opened by title that dropped its title reference keeps running
    # as the live session.
    return key == NEW_SESSION_KEY and session.title_query is None and session.current_story_id is not None


def close_campfire_session(state: MutableMapping[str, Any]) -> None:
    proxy = _proxy(state)
    session = proxy.story_session
    controller = proxy.view_controller
    if session is not None:
        session.close()
    if controller is not None:
        controller.dispose()
    proxy.reset_keys("campfire_session", "campfire_view", "campfire_session_key")
    proxy["campfire_loaded"] = False


def reset_all_state(state: MutableMapping[str, Any]) -> None:
    close_campfire_session(state)
    proxy = _proxy(state)
    for key in (
        "my_stories",
        "my_stories_error",
        "pending_delete_title",
        "public_story",
        "public_story_title",
        "characters",
        "characters_error",
        "character_draft",
        "character_draft_id",
        "character_notice",
    ):
        proxy.pop(key, None)
    proxy["new_story_title_input"] = ""
    proxy.mode = None
    ensure_state(state)


__all__ = [
    "CampfireSessionProxy",
    "close_campfire_session",
    "ensure_state",
    "open_campfire_session",
    "reset_all_state",
    "session_key_for",
]
