"""Campfire storytelling page: load, pump the view transition, render the active view."""
from __future__ import annotations

import time
from collections.abc import MutableMapping
from typing import Any, Mapping

import streamlit as st

from services.turn_service import Notification, load_session
from session_state import open_campfire_session
from telemetry import emit_story_event
from ui.navigation import StreamlitNavigator
from ui.styles import render_app_styles
from utils.auth import StreamlitAuth
from view_transition import ViewMode

from .chat_view import render_chat_view
from .context import CampfirePageContext
from .story_display import render_story_display

_TOAST_ICONS = {"success": "✅", "warning": "⚠️", "error": "❌", "info": "ℹ️"}

_VIEW_RENDERERS = {
    ViewMode.CHAT_INPUT: render_chat_view,
    ViewMode.STORY_DISPLAY: render_story_display,
}


def _show_notification(notification: Notification | None) -> None:
    if notification is None:
        return
    st.toast(notification.message, icon=_TOAST_ICONS.get(notification.severity, "ℹ️"))


def render_campfire_page(
    state: MutableMapping[str, Any],
    *,
    title_query: str | None,
    auth_user: Mapping[str, Any] | None,
) -> None:
    auth = StreamlitAuth()
    navigator = StreamlitNavigator()
    session, controller, fresh = open_campfire_session(state, title_query)

    if fresh or not state.get("campfire_loaded"):
        with st.spinner("Loading Ki Storygen..."):
            result = load_session(session, auth, navigator, controller)
        emit_story_event("story load", result, title=session.story_title, story_id=session.current_story_id)
        if result.outcome == "auth_expired":
            st.rerun()
        state["campfire_loaded"] = True

    controller.tick()
    render_app_styles(animating_out=controller.animating_out)

    if session.error:
        st.error(session.error)
        if st.button("Dismiss", key="campfire_dismiss_error"):
            session.error = None
            st.rerun()

    _show_notification(session.take_notification())

    context = CampfirePageContext(
        session=session,
        controller=controller,
        auth=auth,
        navigator=navigator,
        auth_user=auth_user,
    )
    _VIEW_RENDERERS[controller.view_mode](context)

    if controller.animating_out:
        time.sleep(controller.scheduler.time_until_next() or 0.0)
        controller.tick()
        st.rerun()


__all__ = ["CampfirePageContext", "render_campfire_page"]
