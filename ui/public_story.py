"""Read-only reader for stories shared publicly."""
from __future__ import annotations

import html
from collections.abc import MutableMapping
from typing import Any

import streamlit as st

from services.public_story import PublicStoryLookup, load_public_story
from ui.navigation import go_to
from ui.styles import render_app_styles


def _lookup_for(state: MutableMapping[str, Any], title: str) -> PublicStoryLookup:
    cached = state.get("public_story")
    if state.get("public_story_title") == title and isinstance(cached, PublicStoryLookup):
        return cached
    with st.spinner("Opening the story..."):
        lookup = load_public_story(title)
    state["public_story"] = lookup
    state["public_story_title"] = title
    return lookup


def render_public_story_page(state: MutableMapping[str, Any], *, title: str | None) -> None:
    render_app_styles()

    if st.button("← Home", type="secondary"):
        state["public_story"] = None
        state["public_story_title"] = None
        go_to(None)
        st.rerun()

    if not title:
        st.info("Pick a story to read from the home screen.")
        return

    lookup = _lookup_for(state, title)
    if lookup.error:
        st.error(lookup.error)
        return
    if lookup.story is None:
        st.warning("Story not found or not public.")
        return

    story = lookup.story
    cursor = story.cursor
    view = story.page_view()

    st.markdown(f"<h2 class='campfire-title'>{html.escape(story.title)}</h2>", unsafe_allow_html=True)
    st.image(view.image_url, width='stretch')
    with st.container(height=320):
        for paragraph in view.paragraphs:
            st.markdown(paragraph)

    prev_col, label_col, next_col = st.columns([1, 2, 1])
    with prev_col:
        if st.button("◀", width='stretch', disabled=not cursor.has_prev, key="public_prev_page"):
            cursor.go_prev()
            st.rerun()
    with label_col:
        st.markdown(f"<p style='text-align:center'>{cursor.position_label()}</p>", unsafe_allow_html=True)
    with next_col:
        if st.button("▶", width='stretch', disabled=not cursor.has_next, key="public_next_page"):
            cursor.go_next()
            st.rerun()


__all__ = ["render_public_story_page"]
