"""Home screen: start a new story or reopen one of the user's stories."""
from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Mapping

import streamlit as st

from app_constants import CAMPFIRE_PAGE, CHARACTERS_PAGE, PUBLIC_PAGE
from services.turn_service import delete_story, list_my_stories
from session_state import close_campfire_session
from telemetry import emit_log_event
from ui.navigation import StreamlitNavigator, go_to
from utils.auth import StreamlitAuth


def _refresh_story_titles(state: MutableMapping[str, Any]) -> None:
    result = list_my_stories(StreamlitAuth(), StreamlitNavigator(), return_to="/")
    if result.ok:
        state["my_stories"] = list(result.data or [])
        state["my_stories_error"] = None
    elif result.outcome != "auth_expired":
        state["my_stories"] = []
        state["my_stories_error"] = str(result.error)


def _render_story_row(state: MutableMapping[str, Any], title: str) -> None:
    open_col, share_col, delete_col = st.columns([5, 1, 1])
    with open_col:
        if st.button(f"📖 {title}", key=f"open_story_{title}", width='stretch'):
            close_campfire_session(state)
            go_to(CAMPFIRE_PAGE, title=title)
            st.rerun()
    with share_col:
        if st.button("🔗", key=f"public_story_{title}", help="Open the public reader"):
            go_to(PUBLIC_PAGE, title=title)
            st.rerun()
    with delete_col:
        if st.button("🗑️", key=f"delete_story_{title}", help="Delete this story"):
            state["pending_delete_title"] = title
            st.rerun()

    if state.get("pending_delete_title") != title:
        return

    st.warning(f"Delete “{title}”? This cannot be undone.")
    confirm_col, cancel_col = st.columns(2)
    with confirm_col:
        if st.button("Delete", type="primary", key=f"confirm_delete_{title}", width='stretch'):
            result = delete_story(title, StreamlitAuth(), StreamlitNavigator(), return_to="/")
            emit_log_event(
                type="story",
                action="story delete",
                result="success" if result.ok else "fail",
                params=[None, title, result.outcome, str(result.error) if result.error else None],
            )
            state["pending_delete_title"] = None
            state["my_stories"] = None
            if not result.ok and result.outcome != "auth_expired":
                state["my_stories_error"] = str(result.error)
            st.rerun()
    with cancel_col:
        if st.button("Keep it", key=f"cancel_delete_{title}", width='stretch'):
            state["pending_delete_title"] = None
            st.rerun()


def render_home_screen(
    state: MutableMapping[str, Any],
    *,
    auth_user: Mapping[str, Any] | None,
) -> None:
    st.title("🔥 Ki Storygen")
    st.caption("Sit by the fire and build a story together with the storyteller, one turn at a time.")

    if not auth_user:
        if st.button("Sign in to start a story", type="primary", width='stretch'):
            StreamlitNavigator().to_login("/?page=" + CAMPFIRE_PAGE)
            st.rerun()
        return

    if st.button("🔥 Join today's campfire", type="primary", width='stretch'):
        close_campfire_session(state)
        go_to(CAMPFIRE_PAGE)
        st.rerun()
    if st.button("🧙 Your characters", width='stretch'):
        go_to(CHARACTERS_PAGE)
        st.rerun()

    with st.form("new_story_form", clear_on_submit=True):
        title = st.text_input(
            "Start a story with its own title",
            key="new_story_title_input",
            placeholder="e.g. The Lantern Under the Lake",
            max_chars=120,
        )
        started = st.form_submit_button("Begin", width='stretch')
    if started:
        cleaned = (title or "").strip()
        if cleaned:
            close_campfire_session(state)
            go_to(CAMPFIRE_PAGE, title=cleaned)
        else:
            st.warning("Give your story a title first.")
        st.rerun()

    st.subheader("Your stories")
    if state.get("my_stories") is None:
        with st.spinner("Gathering your stories..."):
            _refresh_story_titles(state)

    if state.get("my_stories_error"):
        st.error(state["my_stories_error"])
        if st.button("Try again", key="retry_story_titles"):
            state["my_stories"] = None
            state["my_stories_error"] = None
            st.rerun()

    titles = state.get("my_stories") or []
    if not titles and not state.get("my_stories_error"):
        st.caption("No stories yet. Your first one is a campfire away.")
    for story_title in titles:
        _render_story_row(state, story_title)


__all__ = ["render_home_screen"]
