"""HTTP transport for the campfire storytelling and character endpoints."""
from __future__ import annotations

import json
import logging
from typing import Any, Mapping, MutableMapping
from urllib.parse import quote

import requests

from app_constants import CAMPFIRE_API_TIMEOUT, CAMPFIRE_API_URL, CHARACTER_API_URL

logger = logging.getLogger(__name__)

API_URL = CAMPFIRE_API_URL
CHARACTERS_URL = CHARACTER_API_URL
TIMEOUT = CAMPFIRE_API_TIMEOUT

_AUTH_STATUSES = {401, 403}


class CampfireApiError(RuntimeError):
    """Raised when a campfire endpoint answers with a failure status."""

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class CampfireAuthError(CampfireApiError):
    """401/403 from the API: the bearer credential is missing or expired."""


class CampfireNetworkError(CampfireApiError):
    """The request never produced a usable response."""


def _endpoint(path: str = "") -> str:
    return f"{API_URL}{path}"


def _headers(token: str | None, *, json_body: bool = False) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if json_body:
        headers["Content-Type"] = "application/json"
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _title_query(title: str | None) -> str:
    return f"?title={quote(title, safe='')}" if title else ""


def _error_detail(response: Any) -> str | None:
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        return None
    if isinstance(data, Mapping):
        detail = data.get("detail")
        if isinstance(detail, str) and detail.strip():
            return detail.strip()
    return None


def _send(method: str, url: str, *, action: str, **kwargs: Any) -> Any:
    sender = getattr(requests, method)
    try:
        response = sender(url, timeout=TIMEOUT, **kwargs)
    except requests.RequestException as exc:
        raise CampfireNetworkError(f"Network error while trying to {action}: {exc}") from exc

    status = response.status_code
    if status in _AUTH_STATUSES:
        raise CampfireAuthError(f"Not authorized to {action}.", status_code=status)
    if status >= 400:
        detail = _error_detail(response)
        raise CampfireApiError(
            detail or f"Failed to {action}: {status}",
            status_code=status,
            detail=detail,
        )
    return response


def _json_body(response: Any, *, action: str) -> MutableMapping[str, Any]:
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError) as exc:
        raise CampfireNetworkError(f"Invalid response while trying to {action} (non-JSON body)") from exc
    if data is None:
        return {}
    if not isinstance(data, MutableMapping):
        raise CampfireNetworkError(f"Unexpected response shape while trying to {action}")
    return data


def fetch_session(token: str, *, title: str | None = None) -> MutableMapping[str, Any]:
    """``GET /turns``; without ``title`` the server returns the live session."""

    action = "fetch the story"
    response = _send("get", _endpoint() + _title_query(title), action=action, headers=_headers(token))
    return _json_body(response, action=action)


def submit_turn(token: str, payload: Mapping[str, Any]) -> MutableMapping[str, Any]:
    action = "submit your turn"
    response = _send(
        "post",
        _endpoint(),
        action=action,
        headers=_headers(token, json_body=True),
        json=dict(payload),
    )
    return _json_body(response, action=action)


def make_public(token: str, title: str) -> MutableMapping[str, Any]:
    action = "make the story public"
    response = _send(
        "post",
        _endpoint("/make_public"),
        action=action,
        headers=_headers(token, json_body=True),
        json={"title": title},
    )
    return _json_body(response, action=action)


def delete_story(token: str, title: str) -> None:
    _send("delete", _endpoint() + _title_query(title), action="delete the story", headers=_headers(token))
    logger.info("Deleted campfire story %r", title)


def list_story_titles(token: str) -> list[str]:
    action = "fetch your stories"
    response = _send("get", _endpoint("/list"), action=action, headers=_headers(token))
    data = _json_body(response, action=action)
    titles = data.get("titles")
    if not isinstance(titles, list):
        return []
    return [str(title).strip() for title in titles if isinstance(title, str) and title.strip()]


def fetch_public_story(title: str) -> MutableMapping[str, Any] | None:
    """Read-only public story; ``None`` when no public story has that title."""

    action = "load the story"
    try:
        response = _send("get", _endpoint("/public") + _title_query(title), action=action, headers=_headers(None))
    except CampfireApiError as exc:
        if exc.status_code == 404:
            return None
        raise
    data = _json_body(response, action=action)
    if not data.get("storyId"):
        return None
    return data


def _character_endpoint(character_id: str | None = None) -> str:
    if character_id:
        return f"{CHARACTERS_URL}/{quote(str(character_id), safe='')}"
    # The character collection route is slash-terminated.
    return f"{CHARACTERS_URL}/"


def list_characters(token: str) -> list[MutableMapping[str, Any]]:
    action = "fetch your characters"
    response = _send("get", _character_endpoint(), action=action, headers=_headers(token))
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError) as exc:
        raise CampfireNetworkError(f"Invalid response while trying to {action} (non-JSON body)") from exc
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, MutableMapping)]


def fetch_character(token: str, character_id: str) -> MutableMapping[str, Any]:
    action = "fetch the character"
    response = _send("get", _character_endpoint(character_id), action=action, headers=_headers(token))
    return _json_body(response, action=action)


def create_character(token: str, payload: Mapping[str, Any]) -> MutableMapping[str, Any]:
    action = "create the character"
    response = _send(
        "post",
        _character_endpoint(),
        action=action,
        headers=_headers(token, json_body=True),
        json=dict(payload),
    )
    return _json_body(response, action=action)


def update_character(token: str, character_id: str, payload: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Updates go to ``POST /character/{id}`` with the full character body."""

    action = "update the character"
    response = _send(
        "post",
        _character_endpoint(character_id),
        action=action,
        headers=_headers(token, json_body=True),
        json=dict(payload),
    )
    return _json_body(response, action=action)


__all__ = [
    "API_URL",
    "CHARACTERS_URL",
    "CampfireApiError",
    "CampfireAuthError",
    "CampfireNetworkError",
    "create_character",
    "delete_story",
    "fetch_character",
    "list_characters",
    "update_character",
    "fetch_public_story",
    "fetch_session",
    "list_story_titles",
    "make_public",
    "submit_turn",
]
