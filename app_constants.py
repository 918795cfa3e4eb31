"""Shared constants and environment-driven settings for the campfire client."""
from __future__ import annotations

import os

from dotenv import find_dotenv, load_dotenv

# Project-level .env never overrides variables already set in the environment.
ROOT_ENV = find_dotenv(usecwd=True)
if ROOT_ENV:
    load_dotenv(ROOT_ENV, override=False)

UNTITLED_STORY_TITLE = "New Ki Story"

DEFAULT_PROMPT_FOR_USER = "What happens next?"
START_NEW_STORY_PROMPT_INPUT = "Tell the storyteller how your new story should begin."
WAITING_FOR_TALE_TEXT = "The storyteller is waiting by the fire for your tale to begin..."
DEFAULT_TURN_TEXT = "The storyteller pauses, gathering the threads of the tale."
NO_PUBLIC_CONTENT_TEXT = "No story content available."

_DEFAULT_IMAGE_URL_ENV = (os.getenv("CAMPFIRE_DEFAULT_IMAGE_URL") or "").strip()
DEFAULT_IMAGE_URL = _DEFAULT_IMAGE_URL_ENV or "https://placehold.co/768x512/2b1d0e/f5d7a1?text=Ki+Storygen"

_API_URL_ENV = (os.getenv("CAMPFIRE_API_URL") or "").strip()
CAMPFIRE_API_URL = (_API_URL_ENV or "http://localhost:8000/api/experiments/campfire").rstrip("/")

_CHARACTER_API_URL_ENV = (os.getenv("CHARACTER_API_URL") or "").strip()
CHARACTER_API_URL = (_CHARACTER_API_URL_ENV or "http://localhost:8000/api/character").rstrip("/")


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


CAMPFIRE_API_TIMEOUT = _float_env("CAMPFIRE_API_TIMEOUT", 30.0)
TRANSITION_DELAY_SECONDS = max(_float_env("CAMPFIRE_TRANSITION_MS", 300.0), 0.0) / 1000.0

CAMPFIRE_PAGE = "campfire"
PUBLIC_PAGE = "public"
CHARACTERS_PAGE = "characters"


__all__ = [
    "CAMPFIRE_API_TIMEOUT",
    "CAMPFIRE_API_URL",
    "CAMPFIRE_PAGE",
    "CHARACTERS_PAGE",
    "CHARACTER_API_URL",
    "DEFAULT_IMAGE_URL",
    "DEFAULT_PROMPT_FOR_USER",
    "DEFAULT_TURN_TEXT",
    "NO_PUBLIC_CONTENT_TEXT",
    "PUBLIC_PAGE",
    "START_NEW_STORY_PROMPT_INPUT",
    "TRANSITION_DELAY_SECONDS",
    "UNTITLED_STORY_TITLE",
    "WAITING_FOR_TALE_TEXT",
]
