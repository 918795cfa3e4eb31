"""Authentication state helpers and the token capability handed to coordinators."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

import streamlit as st

from firebase_auth import AuthSession, FirebaseAuthError, refresh_id_token

logger = logging.getLogger(__name__)

_TOKEN_REFRESH_LEEWAY = timedelta(minutes=2)

_FIREBASE_MESSAGES = {
    "EMAIL_EXISTS": "That email is already registered. Try signing in instead.",
    "EMAIL_NOT_FOUND": "No account uses that email address.",
    "INVALID_PASSWORD": "The password is incorrect.",
    "INVALID_LOGIN_CREDENTIALS": "The email or password is incorrect.",
    "USER_NOT_FOUND": "No account uses that email address.",
    "INVALID_EMAIL": "Please check the email address format.",
    "WEAK_PASSWORD": "Passwords need at least 6 characters.",
    "MISSING_PASSWORD": "Please enter your password.",
}


def parse_iso_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def store_auth_session(session: AuthSession, *, previous: Mapping[str, Any] | None = None) -> None:
    prev = dict(previous) if previous else {}
    st.session_state["auth_user"] = {
        "uid": session.uid or prev.get("uid", ""),
        "email": session.email or prev.get("email", ""),
        "display_name": session.display_name or prev.get("display_name", ""),
        "id_token": session.id_token or prev.get("id_token", ""),
        "refresh_token": session.refresh_token or prev.get("refresh_token", ""),
        "expires_at": session.expires_at.isoformat(),
    }
    st.session_state["auth_error"] = None
    st.session_state["session_expired"] = False


def clear_auth_session() -> None:
    st.session_state["auth_user"] = None
    st.session_state["auth_form_mode"] = "signin"


def auth_user_from_state() -> dict[str, Any] | None:
    raw = st.session_state.get("auth_user")
    if not isinstance(raw, Mapping):
        return None

    data = dict(raw)
    expires_at = parse_iso_datetime(data.get("expires_at"))
    if not expires_at or not data.get("refresh_token") or not data.get("id_token"):
        clear_auth_session()
        return None

    data["expires_at"] = expires_at
    return data


def format_auth_error(error: Exception) -> str:
    if isinstance(error, FirebaseAuthError):
        code = (error.code or "").upper().split(" ", 1)[0]
        return _FIREBASE_MESSAGES.get(code, "Sign-in failed. Please try again in a moment.")
    if isinstance(error, RuntimeError):
        return str(error)
    return "Something went wrong while signing you in."


def ensure_active_auth_session() -> dict[str, Any] | None:
    """Return the signed-in user, refreshing the ID token when it is about to expire."""

    user = auth_user_from_state()
    if not user:
        return None

    expires_at: datetime = user["expires_at"]
    if expires_at - datetime.now(timezone.utc) > _TOKEN_REFRESH_LEEWAY:
        return user

    try:
        refreshed = refresh_id_token(user["refresh_token"])
    except FirebaseAuthError as exc:
        st.session_state["auth_error"] = format_auth_error(exc)
        clear_auth_session()
        return None
    store_auth_session(refreshed, previous=user)
    return auth_user_from_state()


def auth_display_name(user: Mapping[str, Any]) -> str:
    display = str(user.get("display_name") or "").strip()
    email = str(user.get("email") or "").strip()
    return display or email or "Storyteller guest"


def auth_email(user: Mapping[str, Any] | None) -> str | None:
    if not user:
        return None
    email = str(user.get("email") or "").strip()
    return email or None


class StreamlitAuth:
    """Token capability backed by the Streamlit session's Firebase login."""

    def get_token(self) -> str | None:
        user = ensure_active_auth_session()
        if not user:
            return None
        token = str(user.get("id_token") or "").strip()
        return token or None

    def on_unauthorized(self) -> None:
        logger.info("Campfire API rejected the credential; signing out")
        clear_auth_session()
        st.session_state["session_expired"] = True


__all__ = [
    "StreamlitAuth",
    "auth_display_name",
    "auth_email",
    "auth_user_from_state",
    "clear_auth_session",
    "ensure_active_auth_session",
    "format_auth_error",
    "parse_iso_datetime",
    "store_auth_session",
]
