"""Session record and the coordinators that move it between server states.

Every coordinator catches failures at its own boundary and reports them on an
:class:`ActionResult`; none of them raises into the UI. Each action produces at
most one user-visible signal: the inline ``session.error`` for loading and
submitting, the transient ``session.notification`` for publishing, or a login
redirect when the credential has expired.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol
from urllib.parse import urlencode

from app_constants import CAMPFIRE_PAGE, START_NEW_STORY_PROMPT_INPUT, UNTITLED_STORY_TITLE
from campfire_turns import (
    EMPTY_LOG,
    SessionSnapshot,
    TurnLog,
    build_submit_payload,
    is_untitled,
    prompt_for_page,
    select_chat_prompt,
)
from services import campfire_api
from services.campfire_api import CampfireApiError, CampfireAuthError, CampfireNetworkError
from story_pager import PaginationCursor
from view_transition import ViewMode, ViewModeController

logger = logging.getLogger(__name__)

NO_PAGES_ERROR = "There are no story parts to display yet."
UNTITLED_PUBLISH_WARNING = "Please set a valid story title before making it public."
MISSING_PUBLISH_CREDENTIALS = "Missing story title or authentication token."
PUBLISH_AUTH_FAILED = "Authorization failed. Please log in again."
PUBLISH_DEFAULT_SUCCESS = "Story successfully made public!"


class AuthCapability(Protocol):
    def get_token(self) -> str | None: ...

    def on_unauthorized(self) -> None: ...


class Navigator(Protocol):
    def to_login(self, return_to: str | None) -> None: ...

    def drop_title_reference(self) -> None: ...


class SessionActionError(Exception):
    kind = "error"


class ValidationError(SessionActionError):
    """Precondition failed locally; no request was sent."""

    kind = "validation_error"


class AuthExpired(SessionActionError):
    kind = "auth_expired"


class ServerRejected(SessionActionError):
    kind = "server_rejected"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkFailure(SessionActionError):
    kind = "network_failure"


@dataclass(slots=True)
class Notification:
    severity: str
    message: str


@dataclass(slots=True)
class ActionResult:
    outcome: str
    error: SessionActionError | None = None
    notification: Notification | None = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome == "success"

    @classmethod
    def success(cls, *, notification: Notification | None = None, data: Any = None) -> "ActionResult":
        return cls("success", notification=notification, data=data)

    @classmethod
    def failure(cls, error: SessionActionError, *, notification: Notification | None = None) -> "ActionResult":
        return cls(error.kind, error=error, notification=notification)

    @classmethod
    def discarded(cls) -> "ActionResult":
        return cls("discarded")


def campfire_page_path(title: str | None = None) -> str:
    query = {"page": CAMPFIRE_PAGE}
    if title:
        query["title"] = title
    return "/?" + urlencode(query)


@dataclass(slots=True)
class StorySession:
    """Working state for one story, owned by the page that opened it."""

    title_query: str | None = None
    story_title: str = UNTITLED_STORY_TITLE
    editable_story_title: str = UNTITLED_STORY_TITLE
    is_editing_title: bool = False
    is_public: bool = False
    current_story_id: str | None = None
    log: TurnLog = EMPTY_LOG
    cursor: PaginationCursor = field(default_factory=PaginationCursor)
    chat_prompt: str = START_NEW_STORY_PROMPT_INPUT
    user_input: str = ""
    is_loading: bool = False
    is_submitting: bool = False
    is_publishing: bool = False
    publish_dialog_open: bool = False
    error: str | None = None
    notification: Notification | None = None
    is_active: bool = True

    @classmethod
    def open(cls, title_query: str | None = None) -> "StorySession":
        cleaned = (title_query or "").strip() or None
        title = cleaned or UNTITLED_STORY_TITLE
        return cls(title_query=cleaned, story_title=title, editable_story_title=title)

    @property
    def is_new_session(self) -> bool:
        return not self.title_query and not self.current_story_id

    @property
    def page_address(self) -> str:
        return campfire_page_path(self.title_query)

    def close(self) -> None:
        self.is_active = False

    def replace_log(self, log: TurnLog) -> None:
        self.log = log
        self.cursor.reset(log.storyteller_turns)

    def begin_title_edit(self) -> bool:
        if self.is_public:
            return False
        self.editable_story_title = self.story_title
        self.is_editing_title = True
        return True

    def commit_title_edit(self) -> bool:
        if self.is_public:
            self.cancel_title_edit()
            return False
        trimmed = self.editable_story_title.strip()
        changed = bool(trimmed) and trimmed != self.story_title
        if trimmed:
            self.story_title = trimmed
            self.editable_story_title = trimmed
        self.is_editing_title = False
        return changed

    def cancel_title_edit(self) -> None:
        self.is_editing_title = False
        self.editable_story_title = self.story_title

    def take_notification(self) -> Notification | None:
        notification, self.notification = self.notification, None
        return notification


def expire_auth(auth: AuthCapability, navigator: Navigator, return_to: str | None) -> None:
    auth.on_unauthorized()
    navigator.to_login(return_to)


def _show_empty_state(session: StorySession) -> None:
    session.replace_log(EMPTY_LOG)
    session.chat_prompt = START_NEW_STORY_PROMPT_INPUT


def load_session(
    session: StorySession,
    auth: AuthCapability,
    navigator: Navigator,
    controller: ViewModeController,
) -> ActionResult:
    """Populate ``session`` from ``GET /turns`` and choose the first view."""

    token = auth.get_token()
    if not token:
        _show_empty_state(session)
        navigator.to_login(session.page_address)
        return ActionResult.failure(AuthExpired("You must be logged in to view the story."))

    session.is_loading = True
    session.error = None
    session.current_story_id = None
    session.is_public = False

    try:
        data = campfire_api.fetch_session(token, title=session.title_query)
    except CampfireAuthError:
        session.is_loading = False
        if not session.is_active:
            return ActionResult.discarded()
        _show_empty_state(session)
        expire_auth(auth, navigator, session.page_address)
        return ActionResult.failure(AuthExpired("Unauthorized access to story data."))
    except CampfireApiError as exc:
        session.is_loading = False
        if not session.is_active:
            return ActionResult.discarded()
        if isinstance(exc, CampfireNetworkError):
            logger.warning("Story fetch failed in transport: %s", exc)
            error: SessionActionError = NetworkFailure("Could not load the story.")
        else:
            error = ServerRejected(exc.detail or str(exc), status_code=exc.status_code)
        _show_empty_state(session)
        session.error = str(error)
        return ActionResult.failure(error)

    session.is_loading = False
    if not session.is_active:
        logger.debug("Discarding story fetch for a closed session")
        return ActionResult.discarded()

    snapshot = SessionSnapshot.from_response(data)
    session.current_story_id = snapshot.id
    session.is_public = bool(snapshot.share_publicly)
    title = snapshot.story_title or session.title_query or UNTITLED_STORY_TITLE
    session.story_title = title
    session.editable_story_title = title
    session.replace_log(snapshot.log)
    session.chat_prompt = select_chat_prompt(
        snapshot.log.turns,
        not session.title_query and not snapshot.id,
    )

    has_pages = bool(snapshot.log.storyteller_turns)
    if session.title_query or (has_pages and (snapshot.id or snapshot.has_active_session_today)):
        controller.show_immediately(ViewMode.STORY_DISPLAY)
    else:
        controller.show_immediately(ViewMode.CHAT_INPUT)

    logger.info(
        "Loaded story %r with %d turns (%d pages)",
        title,
        len(snapshot.log.turns),
        len(snapshot.log.storyteller_turns),
    )
    return ActionResult.success(data=snapshot)


def submit_turn(
    session: StorySession,
    auth: AuthCapability,
    navigator: Navigator,
    controller: ViewModeController,
    user_input: str | None = None,
) -> ActionResult:
    """Send the user's turn and reconcile the server's canonical story state."""

    text = session.user_input if user_input is None else user_input
    if session.is_submitting:
        return ActionResult.failure(ValidationError("A turn is already being submitted."))

    token = auth.get_token()
    if not token or not text.strip():
        message = "You must be logged in to continue the story." if not token else "Input cannot be empty."
        session.error = message
        return ActionResult.failure(ValidationError(message))

    session.is_submitting = True
    session.error = None
    payload = build_submit_payload(
        user_input=text,
        log=session.log,
        story_title=session.story_title,
        story_id=session.current_story_id,
    )

    try:
        data = campfire_api.submit_turn(token, payload)
    except CampfireAuthError:
        session.is_submitting = False
        if not session.is_active:
            return ActionResult.discarded()
        expire_auth(auth, navigator, session.page_address)
        return ActionResult.failure(AuthExpired("Authorization failed."))
    except CampfireApiError as exc:
        session.is_submitting = False
        if not session.is_active:
            return ActionResult.discarded()
        if isinstance(exc, CampfireNetworkError):
            logger.warning("Turn submission failed in transport: %s", exc)
            error: SessionActionError = NetworkFailure("Could not submit your turn.")
        else:
            error = ServerRejected(exc.detail or str(exc), status_code=exc.status_code)
        session.error = str(error)
        return ActionResult.failure(error)

    if not session.is_active:
        session.is_submitting = False
        logger.debug("Discarding turn response for a closed session")
        return ActionResult.discarded()

    snapshot = SessionSnapshot.from_response(data)
    if snapshot.id and not session.current_story_id:
        session.current_story_id = snapshot.id
    if snapshot.story_title:
        session.story_title = snapshot.story_title
        session.editable_story_title = snapshot.story_title
    if snapshot.share_publicly is not None:
        session.is_public = snapshot.share_publicly
    session.replace_log(snapshot.log)

    if session.title_query and snapshot.id and snapshot.story_title == session.title_query:
        navigator.drop_title_reference()
        session.title_query = None

    session.chat_prompt = select_chat_prompt(snapshot.log.turns, False)

    def _settled() -> None:
        session.user_input = ""
        session.is_submitting = False

    if not controller.request(ViewMode.STORY_DISPLAY, on_settled=_settled):
        _settled()

    logger.info("Turn accepted for story %r; %d pages", session.story_title, session.cursor.length)
    return ActionResult.success(data=snapshot)


def open_publish_dialog(session: StorySession) -> bool:
    if is_untitled(session.story_title):
        session.notification = Notification("warning", UNTITLED_PUBLISH_WARNING)
        return False
    session.publish_dialog_open = True
    return True


def close_publish_dialog(session: StorySession) -> None:
    session.publish_dialog_open = False


def publish_story(
    session: StorySession,
    auth: AuthCapability,
    navigator: Navigator,
) -> ActionResult:
    """Make the current story public; always closes the dialog and notifies once."""

    title = session.story_title
    if is_untitled(title):
        notification = Notification("warning", UNTITLED_PUBLISH_WARNING)
        session.publish_dialog_open = False
        session.notification = notification
        return ActionResult.failure(ValidationError(UNTITLED_PUBLISH_WARNING), notification=notification)

    token = auth.get_token()
    if not token:
        notification = Notification("error", MISSING_PUBLISH_CREDENTIALS)
        session.publish_dialog_open = False
        session.notification = notification
        return ActionResult.failure(ValidationError(MISSING_PUBLISH_CREDENTIALS), notification=notification)

    session.is_publishing = True
    result: ActionResult
    try:
        data = campfire_api.make_public(token, title)
    except CampfireAuthError:
        expire_auth(auth, navigator, session.page_address)
        result = ActionResult.failure(
            AuthExpired(PUBLISH_AUTH_FAILED),
            notification=Notification("error", PUBLISH_AUTH_FAILED),
        )
    except CampfireApiError as exc:
        if isinstance(exc, CampfireNetworkError):
            logger.warning("Publishing failed in transport: %s", exc)
            error: SessionActionError = NetworkFailure("Could not make the story public.")
        else:
            error = ServerRejected(exc.detail or str(exc), status_code=exc.status_code)
        result = ActionResult.failure(error, notification=Notification("error", str(error)))
    else:
        message = data.get("message") if isinstance(data.get("message"), str) else None
        result = ActionResult.success(notification=Notification("success", message or PUBLISH_DEFAULT_SUCCESS))
    finally:
        session.is_publishing = False
        session.publish_dialog_open = False

    if not session.is_active:
        return ActionResult.discarded()
    if result.ok:
        session.is_public = True
        session.is_editing_title = False
    session.notification = result.notification
    return result


def show_chat(session: StorySession, controller: ViewModeController) -> bool:
    session.chat_prompt = prompt_for_page(session.cursor.current, session.log.turns)
    return controller.request(ViewMode.CHAT_INPUT)


def show_story(session: StorySession, controller: ViewModeController) -> bool:
    pages = session.log.storyteller_turns
    if not pages:
        session.error = NO_PAGES_ERROR
        return False
    if not session.title_query and session.current_story_id:
        session.cursor.reset(pages)
    return controller.request(ViewMode.STORY_DISPLAY)


def list_my_stories(auth: AuthCapability, navigator: Navigator, *, return_to: str | None = None) -> ActionResult:
    token = auth.get_token()
    if not token:
        return ActionResult.failure(ValidationError("You must be logged in to see your stories."))
    try:
        titles = campfire_api.list_story_titles(token)
    except CampfireAuthError:
        expire_auth(auth, navigator, return_to)
        return ActionResult.failure(AuthExpired("Authorization failed."))
    except CampfireNetworkError as exc:
        logger.warning("Listing stories failed in transport: %s", exc)
        return ActionResult.failure(NetworkFailure("Could not load your stories."))
    except CampfireApiError as exc:
        return ActionResult.failure(ServerRejected(exc.detail or str(exc), status_code=exc.status_code))
    return ActionResult.success(data=titles)


def delete_story(
    title: str,
    auth: AuthCapability,
    navigator: Navigator,
    *,
    return_to: str | None = None,
) -> ActionResult:
    token = auth.get_token()
    if not token or not title.strip():
        return ActionResult.failure(ValidationError("A story title and login are required to delete a story."))
    try:
        campfire_api.delete_story(token, title)
    except CampfireAuthError:
        expire_auth(auth, navigator, return_to)
        return ActionResult.failure(AuthExpired("Authorization failed."))
    except CampfireNetworkError as exc:
        logger.warning("Deleting story failed in transport: %s", exc)
        return ActionResult.failure(NetworkFailure("Could not delete the story."))
    except CampfireApiError as exc:
        return ActionResult.failure(ServerRejected(exc.detail or str(exc), status_code=exc.status_code))
    return ActionResult.success(data=title)


__all__ = [
    "ActionResult",
    "AuthCapability",
    "AuthExpired",
    "Navigator",
    "NetworkFailure",
    "Notification",
    "ServerRejected",
    "SessionActionError",
    "StorySession",
    "ValidationError",
    "campfire_page_path",
    "close_publish_dialog",
    "delete_story",
    "expire_auth",
    "list_my_stories",
    "load_session",
    "open_publish_dialog",
    "publish_story",
    "show_chat",
    "show_story",
    "submit_turn",
]
