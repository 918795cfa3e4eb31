"""Story display view: one illustrated page at a time."""
from __future__ import annotations

import html

import streamlit as st

from services.turn_service import (
    close_publish_dialog,
    open_publish_dialog,
    publish_story,
    show_chat,
)
from telemetry import emit_log_event, emit_story_event

from .context import CampfirePageContext


def _render_title(context: CampfirePageContext) -> None:
    session = context.session

    if session.is_editing_title and not session.is_public:
        session.editable_story_title = st.text_input(
            "Story title",
            value=session.editable_story_title,
            max_chars=120,
        )
        save_col, cancel_col = st.columns(2)
        with save_col:
            if st.button("Save title", type="primary", width='stretch'):
                previous = session.story_title
                if session.commit_title_edit():
                    emit_log_event(
                        type="story",
                        action="title edit",
                        result="success",
                        params=[session.current_story_id, session.story_title, previous, None],
                    )
                st.rerun()
        with cancel_col:
            if st.button("Cancel", width='stretch'):
                session.cancel_title_edit()
                st.rerun()
        return

    title_col, edit_col = st.columns([6, 1])
    with title_col:
        st.markdown(f"<h2 class='campfire-title'>{html.escape(session.story_title)}</h2>", unsafe_allow_html=True)
        if session.is_public:
            st.markdown("<span class='campfire-badge'>Public</span>", unsafe_allow_html=True)
    with edit_col:
        if not session.is_public and st.button("✏️", help="Rename this story"):
            session.begin_title_edit()
            st.rerun()


def _render_publish_controls(context: CampfirePageContext) -> None:
    session = context.session
    if session.is_public:
        return

    if not session.publish_dialog_open:
        if st.button("🌍 Make story public", width='stretch', disabled=session.is_publishing):
            open_publish_dialog(session)
            st.rerun()
        return

    with st.container(border=True):
        st.markdown(f"Share **{html.escape(session.story_title)}** with everyone? Its title can no longer be changed afterwards.")
        confirm_col, cancel_col = st.columns(2)
        with confirm_col:
            if st.button("Publish", type="primary", width='stretch', disabled=session.is_publishing):
                with st.spinner("Publishing..."):
                    result = publish_story(session, context.auth, context.navigator)
                emit_story_event(
                    "story publish",
                    result,
                    title=session.story_title,
                    story_id=session.current_story_id,
                )
                st.rerun()
        with cancel_col:
            if st.button("Not yet", width='stretch', disabled=session.is_publishing):
                close_publish_dialog(session)
                st.rerun()


def render_story_display(context: CampfirePageContext) -> None:
    session = context.session
    controller = context.controller
    cursor = session.cursor
    view = cursor.page_view()

    _render_title(context)

    st.image(view.image_url, width='stretch')

    text_box = st.container(height=320)
    with text_box:
        st.markdown("<div class='campfire-page-text'>", unsafe_allow_html=True)
        for paragraph in view.paragraphs:
            st.markdown(paragraph)
        st.markdown("</div>", unsafe_allow_html=True)

    prev_col, label_col, next_col = st.columns([1, 2, 1])
    with prev_col:
        if st.button("◀", width='stretch', disabled=not cursor.has_prev, key="campfire_prev_page"):
            cursor.go_prev()
            st.rerun()
    with label_col:
        st.markdown(f"<p style='text-align:center'>{cursor.position_label()}</p>", unsafe_allow_html=True)
    with next_col:
        if st.button("▶", width='stretch', disabled=not cursor.has_next, key="campfire_next_page"):
            cursor.go_next()
            st.rerun()

    if st.button(
        view.prompt_for_next_turn,
        type="primary",
        width='stretch',
        disabled=controller.animating_out or session.is_submitting,
        key="campfire_continue",
    ):
        show_chat(session, controller)
        st.rerun()

    _render_publish_controls(context)


__all__ = ["render_story_display"]
