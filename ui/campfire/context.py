"""Shared context objects for the campfire page."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from services.turn_service import AuthCapability, Navigator, StorySession
from view_transition import ViewModeController


@dataclass(slots=True)
class CampfirePageContext:
    session: StorySession
    controller: ViewModeController
    auth: AuthCapability
    navigator: Navigator
    auth_user: Mapping[str, Any] | None


__all__ = ["CampfirePageContext"]
