"""Service-account credential discovery for the Firestore activity log."""
from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from google.auth.credentials import Credentials
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = {"type", "project_id", "private_key", "client_email"}
_DEFAULT_CREDENTIAL_FILE = Path("google-credential.json")
_JSON_ENV_KEYS = ("GOOGLE_CREDENTIALS_JSON", "GOOGLE_APPLICATION_CREDENTIALS_JSON")
_SECRET_KEYS = ("gcp_service_account", "google_credentials")


def _as_service_account_info(candidate: Any) -> dict[str, Any] | None:
    if isinstance(candidate, str):
        try:
            candidate = json.loads(candidate)
        except ValueError:
            return None
    if not isinstance(candidate, Mapping):
        return None
    info = {str(key): value for key, value in candidate.items()}
    return info if _REQUIRED_FIELDS.issubset(info) else None


def _info_from_env() -> dict[str, Any] | None:
    for key in _JSON_ENV_KEYS:
        info = _as_service_account_info(os.getenv(key))
        if info:
            return info
    return None


def _info_from_streamlit_secrets() -> dict[str, Any] | None:
    import streamlit as st

    try:
        secrets = dict(st.secrets)
    except Exception:  # pragma: no cover - no secrets.toml configured
        return None
    for key in _SECRET_KEYS:
        info = _as_service_account_info(secrets.get(key))
        if info:
            return info
    return None


def _credential_paths() -> list[Path]:
    paths = []
    env_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    if env_path:
        paths.append(Path(env_path).expanduser())
    paths.append(_DEFAULT_CREDENTIAL_FILE)
    return paths


@lru_cache(maxsize=1)
def get_service_account_credentials() -> Credentials | None:
    """Return credentials from a key file, an env JSON blob, or Streamlit secrets."""

    for path in _credential_paths():
        if path.is_file():
            try:
                return service_account.Credentials.from_service_account_file(str(path))
            except ValueError as exc:
                logger.warning("Ignoring unreadable Google credentials at %s: %s", path, exc)

    info = _info_from_env() or _info_from_streamlit_secrets()
    if info is None:
        return None
    try:
        return service_account.Credentials.from_service_account_info(info)
    except ValueError as exc:
        logger.warning("Ignoring malformed Google service-account info: %s", exc)
        return None


__all__ = ["get_service_account_credentials"]
