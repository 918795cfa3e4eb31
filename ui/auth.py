"""Sign-in and sign-up views for the storyteller."""
from __future__ import annotations

import streamlit as st

from firebase_auth import AuthSession, sign_in, sign_up
from telemetry import emit_log_event
from ui.navigation import go_to, go_to_path
from ui.styles import render_app_styles
from utils.auth import auth_display_name, format_auth_error, store_auth_session
from utils.network import get_client_ip


def _handle_post_auth_redirect() -> None:
    next_action = st.session_state.pop("auth_next_action", None)
    st.session_state["auth_error"] = None
    go_to_path(next_action)
    st.rerun()


def _record_auth(action: str, *, email: str, session: AuthSession | None, error: str | None) -> None:
    client_ip = get_client_ip()
    if session is None:
        emit_log_event(
            type="user",
            action=action,
            result="fail",
            user_email=email,
            params=[client_ip, email, None, error],
        )
        return
    emit_log_event(
        type="user",
        action=action,
        result="success",
        params=[client_ip, auth_display_name(st.session_state.get("auth_user") or {}), None, None],
    )


def _attempt(action: str, email: str, password: str, display_name: str | None = None) -> None:
    email_norm = email.strip()
    if not email_norm or not password:
        st.session_state["auth_error"] = "Please enter both your email and password."
        return

    try:
        if action == "signup":
            session = sign_up(email_norm, password, display_name=display_name or None)
        else:
            session = sign_in(email_norm, password)
    except RuntimeError as exc:
        message = format_auth_error(exc)
        st.session_state["auth_error"] = message
        _record_auth(action, email=email_norm, session=None, error=message)
        return

    store_auth_session(session)
    _record_auth(action, email=email_norm, session=session, error=None)
    _handle_post_auth_redirect()


def render_auth_gate() -> None:
    render_app_styles()
    st.title("🔥 Ki Storygen")
    st.subheader("Sign in to join the campfire")

    if st.session_state.get("session_expired"):
        st.warning("Your session has expired. Please sign in again to continue your story.")
    if st.session_state.get("auth_error"):
        st.error(st.session_state["auth_error"])

    if st.button("← Back", type="secondary"):
        st.session_state["auth_error"] = None
        st.session_state["auth_next_action"] = None
        go_to(None)
        st.rerun()

    mode = st.radio(
        "Do you have an account?",
        options=("signin", "signup"),
        format_func=lambda value: "Sign in" if value == "signin" else "Create account",
        horizontal=True,
        key="auth_form_mode",
    )

    if mode == "signin":
        with st.form("auth_signin_form", clear_on_submit=True):
            email = st.text_input("Email", key="auth_signin_email", max_chars=120)
            password = st.text_input("Password", type="password", key="auth_signin_password")
            submitted = st.form_submit_button("Sign in", type="primary", width='stretch')
        if submitted:
            _attempt("login", email, password)
            st.rerun()
    else:
        with st.form("auth_signup_form", clear_on_submit=True):
            display_name = st.text_input(
                "Display name",
                key="auth_signup_display_name",
                placeholder="How the storyteller greets you",
                max_chars=40,
            )
            email = st.text_input("Email", key="auth_signup_email", max_chars=120)
            password = st.text_input("Password (6+ characters)", type="password", key="auth_signup_password")
            submitted = st.form_submit_button("Create account", type="primary", width='stretch')
        if submitted:
            _attempt("signup", email, password, display_name.strip())
            st.rerun()


__all__ = ["render_auth_gate"]
