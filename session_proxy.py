"""Session proxy for wrapping Streamlit's session state mapping."""
from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any

from services.turn_service import StorySession
from view_transition import ViewModeController


class CampfireSessionProxy:
    """Typed view over a Streamlit ``session_state`` mapping."""

    def __init__(self, backing: MutableMapping[str, Any]):
        self._backing = backing

    # Basic mapping compatibility -------------------------------------------------
    def __getitem__(self, key: str) -> Any:
        return self._backing[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._backing[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._backing

    def get(self, key: str, default: Any = None) -> Any:
        return self._backing.get(key, default)

    def setdefault(self, key: str, default: Any) -> Any:
        return self._backing.setdefault(key, default)

    def pop(self, key: str, default: Any | None = None) -> Any:
        return self._backing.pop(key, default)

    def reset_keys(self, *keys: str) -> None:
        for key in keys:
            self._backing[key] = None

    # Convenience accessors -------------------------------------------------------
    @property
    def mode(self) -> str | None:
        mode = self._backing.get("mode")
        return str(mode) if mode is not None else None

    @mode.setter
    def mode(self, value: str | None) -> None:
        self._backing["mode"] = value

    @property
    def story_session(self) -> StorySession | None:
        session = self._backing.get("campfire_session")
        return session if isinstance(session, StorySession) else None

    @story_session.setter
    def story_session(self, value: StorySession | None) -> None:
        self._backing["campfire_session"] = value

    @property
    def view_controller(self) -> ViewModeController | None:
        controller = self._backing.get("campfire_view")
        return controller if isinstance(controller, ViewModeController) else None

    @view_controller.setter
    def view_controller(self, value: ViewModeController | None) -> None:
        self._backing["campfire_view"] = value

    @property
    def session_key(self) -> str | None:
        return self._backing.get("campfire_session_key")

    @session_key.setter
    def session_key(self, value: str | None) -> None:
        self._backing["campfire_session_key"] = value


__all__ = ["CampfireSessionProxy"]
