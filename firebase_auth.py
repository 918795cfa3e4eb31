"""Firebase Identity Toolkit client used to obtain campfire bearer tokens."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, MutableMapping

import requests

logger = logging.getLogger(__name__)

FIREBASE_WEB_API_KEY = (os.getenv("FIREBASE_WEB_API_KEY") or "").strip()

_IDENTITY_BASE_URL = "https://identitytoolkit.googleapis.com/v1"
_SECURETOKEN_URL = "https://securetoken.googleapis.com/v1/token"
_DEFAULT_EXPIRY_SECONDS = 3600


class FirebaseAuthError(RuntimeError):
    """Raised when Firebase rejects a sign-in, sign-up or refresh call."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(slots=True)
class AuthSession:
    uid: str
    email: str
    id_token: str
    refresh_token: str
    expires_at: datetime
    display_name: str | None = None

    @property
    def expires_in(self) -> timedelta:
        return max(self.expires_at - datetime.now(timezone.utc), timedelta(0))


def _api_key() -> str:
    if not FIREBASE_WEB_API_KEY:
        raise RuntimeError("FIREBASE_WEB_API_KEY is not configured; cannot sign in to the storyteller.")
    return FIREBASE_WEB_API_KEY


def _request_json(url: str, *, service: str, **kwargs: Any) -> MutableMapping[str, Any]:
    try:
        response = requests.post(url, timeout=10, **kwargs)
    except requests.RequestException as exc:
        raise FirebaseAuthError(f"Network error contacting {service}: {exc}") from exc

    try:
        data = response.json()
    except json.JSONDecodeError as exc:
        raise FirebaseAuthError(f"Invalid response from {service} (non-JSON body)") from exc

    if not isinstance(data, MutableMapping):
        raise FirebaseAuthError(f"Unexpected response shape from {service}")

    if response.status_code >= 400:
        error = data.get("error")
        if isinstance(error, Mapping):
            code = str(error.get("message") or "") or None
            raise FirebaseAuthError(code or f"{service} request failed", code=code)
        description = data.get("error_description")
        raise FirebaseAuthError(str(description or f"{service} request failed"), code=str(error or "") or None)
    return data


def _session_from(data: Mapping[str, Any]) -> AuthSession:
    try:
        expires_seconds = int(str(data.get("expiresIn") or data.get("expires_in") or _DEFAULT_EXPIRY_SECONDS))
    except ValueError:
        expires_seconds = _DEFAULT_EXPIRY_SECONDS

    return AuthSession(
        uid=str(data.get("localId") or data.get("user_id") or ""),
        email=str(data.get("email") or ""),
        id_token=str(data.get("idToken") or data.get("id_token") or ""),
        refresh_token=str(data.get("refreshToken") or data.get("refresh_token") or ""),
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_seconds),
        display_name=data.get("displayName") or None,
    )


def sign_in(email: str, password: str) -> AuthSession:
    payload = {"email": email, "password": password, "returnSecureToken": True}
    data = _request_json(
        f"{_IDENTITY_BASE_URL}/accounts:signInWithPassword?key={_api_key()}",
        service="Firebase Identity Toolkit",
        json=payload,
    )
    return _session_from(data)


def sign_up(email: str, password: str, *, display_name: str | None = None) -> AuthSession:
    payload: dict[str, Any] = {"email": email, "password": password, "returnSecureToken": True}
    if display_name:
        payload["displayName"] = display_name
    data = _request_json(
        f"{_IDENTITY_BASE_URL}/accounts:signUp?key={_api_key()}",
        service="Firebase Identity Toolkit",
        json=payload,
    )
    return _session_from(data)


def refresh_id_token(refresh_token: str) -> AuthSession:
    """Exchange a refresh token for a fresh ID token."""

    data = _request_json(
        _SECURETOKEN_URL,
        service="Secure Token API",
        params={"key": _api_key()},
        data={"grant_type": "refresh_token", "refresh_token": refresh_token},
    )
    logger.debug("Refreshed Firebase ID token for %s", data.get("user_id"))
    return _session_from(data)


__all__ = [
    "AuthSession",
    "FirebaseAuthError",
    "refresh_id_token",
    "sign_in",
    "sign_up",
]
