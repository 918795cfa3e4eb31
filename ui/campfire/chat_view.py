"""Chat view: the running conversation plus the turn input."""
from __future__ import annotations

import html

import streamlit as st
import streamlit.components.v1 as components

from campfire_turns import Turn
from services.turn_service import show_story, submit_turn
from telemetry import emit_story_event
from utils.auth import auth_display_name

from .context import CampfirePageContext

_FOCUS_SCRIPT = """
<script>
const area = window.parent.document.querySelector('textarea[aria-label="Your turn"]');
if (area) { area.focus(); }
</script>
"""


def _render_turn(turn: Turn, user_label: str) -> None:
    role = "assistant" if turn.is_storyteller else "user"
    avatar = "🔥" if turn.is_storyteller else "🧑"
    with st.chat_message(role, avatar=avatar):
        st.caption("Ki Storyteller" if turn.is_storyteller else user_label)
        if turn.image_url:
            st.image(turn.image_url, width='stretch')
        for paragraph in turn.paragraphs:
            st.markdown(paragraph)


def render_chat_view(context: CampfirePageContext) -> None:
    session = context.session
    controller = context.controller
    user_label = auth_display_name(context.auth_user) if context.auth_user else "You"

    st.markdown(f"<h2 class='campfire-title'>{html.escape(session.story_title)}</h2>", unsafe_allow_html=True)

    history = st.container(height=420)
    with history:
        if not session.log.turns:
            st.caption("No turns yet. The fire is lit and waiting.")
        for turn in session.log.turns:
            _render_turn(turn, user_label)

    st.markdown(f"<p class='campfire-prompt'>{html.escape(session.chat_prompt)}</p>", unsafe_allow_html=True)

    with st.form("campfire_turn_form", clear_on_submit=False):
        user_input = st.text_area(
            "Your turn",
            value=session.user_input,
            height=120,
            placeholder=session.chat_prompt,
            disabled=session.is_submitting,
        )
        submitted = st.form_submit_button(
            "Send to the storyteller",
            type="primary",
            width='stretch',
            disabled=session.is_submitting,
        )

    if controller.consume_focus_request():
        components.html(_FOCUS_SCRIPT, height=0)

    if session.log.storyteller_turns:
        if st.button("📖 Back to the story", width='stretch', disabled=controller.animating_out):
            show_story(session, controller)
            st.rerun()

    if submitted:
        session.user_input = user_input
        with st.spinner("The storyteller is thinking..."):
            result = submit_turn(session, context.auth, context.navigator, controller)
        emit_story_event(
            "turn submit",
            result,
            title=session.story_title,
            story_id=session.current_story_id,
        )
        st.rerun()


__all__ = ["render_chat_view"]
