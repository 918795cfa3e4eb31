"""Character pages: the user's character list and the create/edit form."""
from __future__ import annotations

import html
from collections.abc import MutableMapping
from typing import Any, Mapping

import streamlit as st

from app_constants import CHARACTERS_PAGE
from services.character_service import (
    ALIGNMENT_UNSPECIFIED,
    CHARACTER_ROLES,
    MORAL_ALIGNMENTS,
    NEW_CHARACTER_KEY,
    ROLE_UNSPECIFIED,
    character_display_name,
    character_id_of,
    list_characters,
    load_character,
    new_character,
    save_character,
    set_field,
)
from telemetry import emit_log_event
from ui.navigation import StreamlitNavigator, go_to
from ui.styles import render_app_styles
from utils.auth import StreamlitAuth

_ROLE_OPTIONS = (ROLE_UNSPECIFIED, *CHARACTER_ROLES)
_ALIGNMENT_OPTIONS = (ALIGNMENT_UNSPECIFIED, *MORAL_ALIGNMENTS)


def _label(value: str) -> str:
    if value in (ROLE_UNSPECIFIED, ALIGNMENT_UNSPECIFIED):
        return "Unspecified"
    return value.replace("_", " ").title()


def _whole_number(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _index_of(options: tuple[str, ...], value: Any) -> int:
    return options.index(value) if value in options else 0


def _with_optional(character: Mapping[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Set ``path`` when a number was entered, otherwise drop it from the section."""

    if value is not None:
        return set_field(character, path, value)
    section, _, key = path.partition(".")
    updated = dict(character)
    nested = dict(updated.get(section) or {})
    nested.pop(key, None)
    updated[section] = nested
    return updated


def _open_form(state: MutableMapping[str, Any], character_id: str) -> None:
    state["character_draft"] = None
    state["character_draft_id"] = None
    go_to(CHARACTERS_PAGE, character=character_id)
    st.rerun()


def _back_to_list(state: MutableMapping[str, Any]) -> None:
    state["character_draft"] = None
    state["character_draft_id"] = None
    go_to(CHARACTERS_PAGE)
    st.rerun()


def _render_character_list(state: MutableMapping[str, Any]) -> None:
    st.title("🧙 Your characters")

    notice = state.get("character_notice")
    if notice:
        st.success(notice)
        state["character_notice"] = None

    if st.button("➕ Create New Character", type="primary", width='stretch'):
        _open_form(state, NEW_CHARACTER_KEY)

    if state.get("characters") is None:
        with st.spinner("Gathering your characters..."):
            result = list_characters(StreamlitAuth(), StreamlitNavigator())
        if result.outcome == "auth_expired":
            st.rerun()
        if result.ok:
            state["characters"] = list(result.data or [])
            state["characters_error"] = None
        else:
            state["characters"] = []
            state["characters_error"] = str(result.error)

    if state.get("characters_error"):
        st.error(state["characters_error"])
        if st.button("Try again", key="retry_characters"):
            state["characters"] = None
            state["characters_error"] = None
            st.rerun()
        return

    characters = state.get("characters") or []
    if not characters:
        st.caption("You haven't created any characters yet.")
        return

    for position, character in enumerate(characters):
        character_id = character_id_of(character)
        with st.container(border=True):
            name_col, edit_col = st.columns([5, 1])
            with name_col:
                st.markdown(f"**{html.escape(character_display_name(character))}**")
                st.caption(character.get("description") or "No description available.")
            with edit_col:
                if character_id and st.button("✏️", key=f"edit_character_{position}", help="Edit this character"):
                    _open_form(state, character_id)


def _draft_for(state: MutableMapping[str, Any], character_id: str) -> dict[str, Any] | None:
    if state.get("character_draft_id") == character_id and isinstance(state.get("character_draft"), dict):
        return state["character_draft"]

    if character_id == NEW_CHARACTER_KEY:
        draft = new_character()
    else:
        with st.spinner("Loading the character..."):
            result = load_character(character_id, StreamlitAuth(), StreamlitNavigator())
        if result.outcome == "auth_expired":
            st.rerun()
        if not result.ok:
            st.error(f"Character not found or error fetching: {result.error}")
            return None
        draft = result.data

    state["character_draft"] = draft
    state["character_draft_id"] = character_id
    return draft


def _render_character_form(state: MutableMapping[str, Any], character_id: str) -> None:
    creating = character_id == NEW_CHARACTER_KEY
    st.title("Create a character" if creating else "Edit character")

    if st.button("← All characters", type="secondary"):
        _back_to_list(state)

    draft = _draft_for(state, character_id)
    if draft is None:
        return

    physical = draft.get("physical_attributes") or {}
    mental = draft.get("mental_attributes") or {}
    motivations = draft.get("motivations") or {}

    with st.form(f"character_form_{character_id}"):
        given_name = st.text_input("Given name *", value=draft.get("given_name") or "")
        family_name = st.text_input("Family name", value=draft.get("family_name") or "")
        species = st.text_input("Species", value=draft.get("species") or "")
        role = st.selectbox(
            "Role",
            _ROLE_OPTIONS,
            index=_index_of(_ROLE_OPTIONS, draft.get("role")),
            format_func=_label,
        )
        description = st.text_area("Description", value=draft.get("description") or "", height=120)

        with st.expander("Physical attributes"):
            age_col, apparent_col = st.columns(2)
            actual_age = age_col.number_input(
                "Actual age", min_value=0, step=1, value=_whole_number(physical.get("actual_age"))
            )
            apparent_age = apparent_col.number_input(
                "Apparent age", min_value=0, step=1, value=_whole_number(physical.get("apparent_age"))
            )
            height_col, weight_col = st.columns(2)
            height_cm = height_col.number_input(
                "Height (cm)", min_value=0, step=1, value=_whole_number(physical.get("height_cm"))
            )
            weight_kg = weight_col.number_input(
                "Weight (kg)", min_value=0, step=1, value=_whole_number(physical.get("weight_kg"))
            )

        with st.expander("Mental attributes"):
            personality = st.text_area("Personality summary", value=mental.get("personality_summary") or "")
            iq_col, eq_col = st.columns(2)
            iq = iq_col.number_input("IQ", min_value=0, step=1, value=_whole_number(mental.get("iq")))
            eq = eq_col.number_input("EQ", min_value=0, step=1, value=_whole_number(mental.get("eq")))

        with st.expander("Motivations"):
            alignment = st.selectbox(
                "Alignment",
                _ALIGNMENT_OPTIONS,
                index=_index_of(_ALIGNMENT_OPTIONS, motivations.get("alignment")),
                format_func=_label,
            )
            primary_goal = st.text_input("Primary goal", value=motivations.get("primary_goal") or "")

        submitted = st.form_submit_button(
            "Create Character" if creating else "Update Character",
            type="primary",
            width='stretch',
        )

    if not submitted:
        return

    character = dict(draft)
    for path, value in (
        ("given_name", given_name.strip()),
        ("family_name", family_name.strip()),
        ("species", species.strip()),
        ("role", role),
        ("description", description),
        ("mental_attributes.personality_summary", personality),
        ("motivations.alignment", alignment),
        ("motivations.primary_goal", primary_goal),
    ):
        character = set_field(character, path, value)
    for path, value in (
        ("physical_attributes.actual_age", actual_age),
        ("physical_attributes.apparent_age", apparent_age),
        ("physical_attributes.height_cm", height_cm),
        ("physical_attributes.weight_kg", weight_kg),
        ("mental_attributes.iq", iq),
        ("mental_attributes.eq", eq),
    ):
        character = _with_optional(character, path, value)
    state["character_draft"] = character

    with st.spinner("Saving the character..."):
        result = save_character(
            character,
            StreamlitAuth(),
            StreamlitNavigator(),
            character_id=None if creating else character_id,
        )
    emit_log_event(
        type="character",
        action="character create" if creating else "character update",
        result="success" if result.ok else "fail",
        params=[
            None if creating else character_id,
            given_name.strip(),
            result.outcome,
            str(result.error) if result.error else None,
        ],
    )

    if result.outcome == "auth_expired":
        st.rerun()
    if not result.ok:
        st.error(str(result.error))
        return

    state["character_notice"] = result.notification.message if result.notification else None
    state["characters"] = None
    _back_to_list(state)


def render_characters_page(state: MutableMapping[str, Any], *, character_id: str | None) -> None:
    render_app_styles()

    if not character_id:
        if st.button("← Home", type="secondary"):
            go_to(None)
            st.rerun()
        _render_character_list(state)
        return

    _render_character_form(state, character_id)


__all__ = ["render_characters_page"]
