"""Character records and the list/load/save coordinators for the character pages.

Characters are free-form nested documents owned by the server. The client only
guarantees the handful of nested sections the forms write into, fills them with
defaults when a stored character lacks them, and sends the whole document back
on save.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Mapping, MutableMapping
from urllib.parse import urlencode

from app_constants import CHARACTERS_PAGE
from services import campfire_api
from services.campfire_api import CampfireApiError, CampfireAuthError, CampfireNetworkError
from services.turn_service import (
    ActionResult,
    AuthCapability,
    AuthExpired,
    Navigator,
    NetworkFailure,
    Notification,
    ServerRejected,
    SessionActionError,
    ValidationError,
    expire_auth,
)

logger = logging.getLogger(__name__)

ROLE_UNSPECIFIED = "ROLE_UNSPECIFIED"
CHARACTER_ROLES = (
    "PROTAGONIST",
    "ANTAGONIST",
    "DEUTERAGONIST",
    "SUPPORTING_CHARACTER",
    "MENTOR",
    "FOIL",
)

ALIGNMENT_UNSPECIFIED = "ALIGNMENT_UNSPECIFIED"
MORAL_ALIGNMENTS = (
    "LAWFUL_GOOD",
    "NEUTRAL_GOOD",
    "CHAOTIC_GOOD",
    "LAWFUL_NEUTRAL",
    "TRUE_NEUTRAL",
    "CHAOTIC_NEUTRAL",
    "LAWFUL_EVIL",
    "NEUTRAL_EVIL",
    "CHAOTIC_EVIL",
)

NEW_CHARACTER_KEY = "new"

_CHARACTER_DEFAULTS: dict[str, Any] = {
    "given_name": "",
    "family_name": "",
    "species": "Human",
    "aliases": [],
    "role": ROLE_UNSPECIFIED,
    "description": "",
    "physical_attributes": {},
    "mental_attributes": {},
    "skills": {"known_skills": []},
    "relationships": {"connection": []},
    "background": {},
    "motivations": {
        "alignment": ALIGNMENT_UNSPECIFIED,
        "secondary_goals": [],
        "core_values": [],
        "desires": [],
    },
    "clothing": {"current_outfit": []},
    "possessions": {"inventory": [], "currency": {}},
}

_FORM_SECTIONS = ("physical_attributes", "mental_attributes", "motivations")


def new_character() -> dict[str, Any]:
    return copy.deepcopy(_CHARACTER_DEFAULTS)


def merge_character(data: Any) -> dict[str, Any]:
    """Overlay a stored character on the defaults so every form section exists."""

    merged = new_character()
    if not isinstance(data, Mapping):
        return merged
    merged.update(copy.deepcopy(dict(data)))
    for section in _FORM_SECTIONS:
        if not isinstance(merged.get(section), Mapping):
            merged[section] = copy.deepcopy(_CHARACTER_DEFAULTS[section])
    merged["motivations"].setdefault("alignment", ALIGNMENT_UNSPECIFIED)
    return merged


def set_field(character: Mapping[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``character`` with the dotted ``path`` set to ``value``.

    Missing or non-mapping intermediate sections are replaced by empty ones.
    """

    updated = copy.deepcopy(dict(character))
    keys = path.split(".")
    current: MutableMapping[str, Any] = updated
    for key in keys[:-1]:
        child = current.get(key)
        if not isinstance(child, MutableMapping):
            child = {}
            current[key] = child
        current = child
    current[keys[-1]] = value
    return updated


def character_id_of(character: Mapping[str, Any]) -> str | None:
    raw = character.get("character_id")
    return str(raw) if raw not in (None, "") else None


def character_display_name(character: Mapping[str, Any]) -> str:
    given = str(character.get("given_name") or "").strip()
    family = str(character.get("family_name") or "").strip()
    return f"{given} {family}".strip() or "Unnamed character"


def characters_page_path(character_id: str | None = None) -> str:
    query = {"page": CHARACTERS_PAGE}
    if character_id:
        query["character"] = character_id
    return "/?" + urlencode(query)


def _failure_from(exc: CampfireApiError, *, network_message: str, fallback: str | None = None) -> ActionResult:
    if isinstance(exc, CampfireNetworkError):
        logger.warning("Character request failed in transport: %s", exc)
        error: SessionActionError = NetworkFailure(network_message)
    else:
        error = ServerRejected(exc.detail or fallback or str(exc), status_code=exc.status_code)
    return ActionResult.failure(error)


def list_characters(auth: AuthCapability, navigator: Navigator) -> ActionResult:
    token = auth.get_token()
    if not token:
        navigator.to_login(characters_page_path())
        return ActionResult.failure(AuthExpired("You must be logged in to see your characters."))
    try:
        characters = campfire_api.list_characters(token)
    except CampfireAuthError:
        expire_auth(auth, navigator, characters_page_path())
        return ActionResult.failure(AuthExpired("Session expired. Please log in again."))
    except CampfireApiError as exc:
        return _failure_from(exc, network_message="Could not load your characters.")
    return ActionResult.success(data=[merge_character(item) for item in characters])


def load_character(character_id: str, auth: AuthCapability, navigator: Navigator) -> ActionResult:
    address = characters_page_path(character_id)
    token = auth.get_token()
    if not token:
        navigator.to_login(address)
        return ActionResult.failure(AuthExpired("You must be logged in to edit a character."))
    try:
        data = campfire_api.fetch_character(token, character_id)
    except CampfireAuthError:
        expire_auth(auth, navigator, address)
        return ActionResult.failure(AuthExpired("Session expired."))
    except CampfireApiError as exc:
        return _failure_from(exc, network_message="Could not load the character.")
    return ActionResult.success(data=merge_character(data))


def save_character(
    character: Mapping[str, Any],
    auth: AuthCapability,
    navigator: Navigator,
    *,
    character_id: str | None = None,
) -> ActionResult:
    """Create the character, or update it when ``character_id`` is given."""

    verb = "update" if character_id else "create"
    token = auth.get_token()
    if not token:
        return ActionResult.failure(ValidationError(f"You must be logged in to {verb} a character."))
    if not str(character.get("given_name") or "").strip():
        return ActionResult.failure(ValidationError("A character needs a given name."))

    try:
        if character_id:
            data = campfire_api.update_character(token, character_id, character)
        else:
            data = campfire_api.create_character(token, character)
    except CampfireAuthError:
        expire_auth(auth, navigator, characters_page_path(character_id or NEW_CHARACTER_KEY))
        return ActionResult.failure(AuthExpired("Session expired."))
    except CampfireApiError as exc:
        return _failure_from(
            exc,
            network_message=f"Could not {verb} the character.",
            fallback=f"Failed to {verb} character.",
        )

    saved = merge_character(data)
    past = "updated" if character_id else "created"
    message = f"Successfully {past} character: {saved['given_name'] or character.get('given_name')}"
    logger.info("Character %s %s", character_id_of(saved) or "(new)", past)
    return ActionResult.success(notification=Notification("success", message), data=saved)


__all__ = [
    "ALIGNMENT_UNSPECIFIED",
    "CHARACTER_ROLES",
    "MORAL_ALIGNMENTS",
    "NEW_CHARACTER_KEY",
    "ROLE_UNSPECIFIED",
    "character_display_name",
    "character_id_of",
    "characters_page_path",
    "list_characters",
    "load_character",
    "merge_character",
    "new_character",
    "save_character",
    "set_field",
]
