"""Telemetry helpers around the activity log module."""
from __future__ import annotations

from typing import Any, Sequence

import streamlit as st

from activity_log import log_event
from services.turn_service import ActionResult
from utils.auth import auth_email


def emit_log_event(
    *,
    type: str,
    action: str,
    result: str,
    params: Sequence[str | None] | None = None,
    user_email: str | None = None,
) -> Any:
    """Wrapper around ``log_event`` that defaults user_id to the current email."""

    derived_email = user_email if user_email is not None else auth_email(st.session_state.get("auth_user"))
    return log_event(
        type=type,
        action=action,
        result=result,
        user_id=derived_email,
        params=params,
    )


def emit_story_event(action: str, outcome: ActionResult, *, title: str | None, story_id: str | None = None) -> Any:
    """Record a story action from its coordinator result."""

    if outcome.outcome == "discarded":
        return None
    detail = str(outcome.error) if outcome.error else None
    return emit_log_event(
        type="story",
        action=action,
        result="success" if outcome.ok else "fail",
        params=[story_id, title, outcome.outcome, detail],
    )


__all__ = ["emit_log_event", "emit_story_event"]
