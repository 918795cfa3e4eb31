# app.py
from __future__ import annotations

from typing import Mapping

import streamlit as st

from activity_log import init_activity_log
from app_constants import CAMPFIRE_PAGE, CHARACTERS_PAGE, PUBLIC_PAGE
from services.character_service import characters_page_path
from services.turn_service import campfire_page_path
from session_state import ensure_state, reset_all_state
from telemetry import emit_log_event
from ui.auth import render_auth_gate
from ui.campfire import render_campfire_page
from ui.characters import render_characters_page
from ui.home import render_home_screen
from ui.navigation import StreamlitNavigator, current_character_id, current_route, go_to
from ui.public_story import render_public_story_page
from ui.styles import render_app_styles
from utils.auth import (
    auth_display_name,
    auth_email,
    clear_auth_session,
    ensure_active_auth_session,
)
from utils.network import get_client_ip

st.set_page_config(page_title="Ki Storygen", page_icon="🔥", layout="centered")

init_activity_log()
ensure_state(st.session_state)


def logout_user() -> None:
    previous_user = st.session_state.get("auth_user")
    display_name = None
    user_email = None
    if isinstance(previous_user, Mapping):
        display_name = auth_display_name(previous_user)
        user_email = auth_email(previous_user)
    clear_auth_session()
    reset_all_state(st.session_state)
    st.session_state["auth_next_action"] = None
    go_to(None)
    emit_log_event(
        type="user",
        action="logout",
        result="success",
        params=[get_client_ip(), display_name, None, None],
        user_email=user_email,
    )


# ─────────────────────────────────────────────────────────────────────
# Header / auth / routing
# ─────────────────────────────────────────────────────────────────────
auth_user = ensure_active_auth_session()
page, title_query = current_route()

if st.session_state.get("mode") == "auth":
    render_auth_gate()
    st.stop()

if page == PUBLIC_PAGE:
    render_public_story_page(st.session_state, title=title_query)
    st.stop()

header_cols = st.columns([6, 1])
with header_cols[0]:
    if auth_user:
        st.caption(f"👋 Welcome back, **{auth_display_name(auth_user)}**.")
    else:
        st.caption("Sign in to light a campfire and tell stories together.")

with header_cols[1]:
    menu = st.popover("⚙️", width='stretch')
    with menu:
        if auth_user:
            st.write(f"Signed in as **{auth_display_name(auth_user)}**")
            if page in {CAMPFIRE_PAGE, CHARACTERS_PAGE} and st.button("🏠 Home", width='stretch'):
                go_to(None)
                st.rerun()
            if page != CHARACTERS_PAGE and st.button("🧙 Characters", width='stretch'):
                go_to(CHARACTERS_PAGE)
                st.rerun()
            if st.button("Sign out", width='stretch'):
                logout_user()
                st.rerun()
        elif st.button("Sign in / Sign up", width='stretch'):
            st.session_state["auth_form_mode"] = "signin"
            st.session_state["auth_error"] = None
            StreamlitNavigator().to_login(None)
            st.rerun()

if page == CAMPFIRE_PAGE:
    if not auth_user:
        StreamlitNavigator().to_login(campfire_page_path(title_query))
        st.rerun()
    render_campfire_page(st.session_state, title_query=title_query, auth_user=auth_user)
    st.stop()

if page == CHARACTERS_PAGE:
    character_id = current_character_id()
    if not auth_user:
        StreamlitNavigator().to_login(characters_page_path(character_id))
        st.rerun()
    render_characters_page(st.session_state, character_id=character_id)
    st.stop()

render_app_styles()
render_home_screen(st.session_state, auth_user=auth_user)
