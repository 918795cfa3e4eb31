"""Query-parameter routing for the Streamlit pages."""
from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlsplit

import streamlit as st

from app_constants import CAMPFIRE_PAGE, CHARACTERS_PAGE, PUBLIC_PAGE

logger = logging.getLogger(__name__)

_RETURN_PAGES = {CAMPFIRE_PAGE, PUBLIC_PAGE, CHARACTERS_PAGE}


def current_route() -> tuple[str | None, str | None]:
    """Return ``(page, title)`` from the address bar."""

    page = (st.query_params.get("page") or "").strip() or None
    title = (st.query_params.get("title") or "").strip() or None
    return page, title


def current_character_id() -> str | None:
    return (st.query_params.get("character") or "").strip() or None


def go_to(page: str | None, *, title: str | None = None, character: str | None = None) -> None:
    params: dict[str, str] = {}
    if page:
        params["page"] = page
    if title:
        params["title"] = title
    if character:
        params["character"] = character
    st.query_params.from_dict(params)
    st.session_state["mode"] = page


def go_to_path(path: str | None) -> None:
    """Follow a stored return target such as ``/?page=campfire&title=...``."""

    params = dict(parse_qsl(urlsplit(path or "").query))
    page = params.get("page")
    if page not in _RETURN_PAGES:
        go_to(None)
        return
    go_to(page, title=params.get("title"), character=params.get("character"))


class StreamlitNavigator:
    """Navigation seam used by the story coordinators."""

    def to_login(self, return_to: str | None) -> None:
        logger.debug("Redirecting to login; return target %s", return_to)
        st.session_state["auth_next_action"] = return_to
        st.session_state["mode"] = "auth"

    def drop_title_reference(self) -> None:
        if "title" in st.query_params:
            del st.query_params["title"]


__all__ = ["StreamlitNavigator", "current_character_id", "current_route", "go_to", "go_to_path"]
