from __future__ import annotations

import pytest

from app_constants import DEFAULT_PROMPT_FOR_USER, START_NEW_STORY_PROMPT_INPUT, UNTITLED_STORY_TITLE
from campfire_turns import TurnLog
from services import turn_service
from services.campfire_api import CampfireApiError, CampfireAuthError, CampfireNetworkError
from view_transition import DeferredScheduler, ViewMode, ViewModeController


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeAuth:
    def __init__(self, token: str | None = "token-123") -> None:
        self.token = token
        self.unauthorized_calls = 0

    def get_token(self) -> str | None:
        return self.token

    def on_unauthorized(self) -> None:
        self.unauthorized_calls += 1
        self.token = None


class FakeNavigator:
    def __init__(self) -> None:
        self.login_redirects: list[str | None] = []
        self.title_drops = 0

    def to_login(self, return_to: str | None) -> None:
        self.login_redirects.append(return_to)

    def drop_title_reference(self) -> None:
        self.title_drops += 1


def _controller(initial=ViewMode.CHAT_INPUT):
    clock = FakeClock()
    return ViewModeController(initial, scheduler=DeferredScheduler(clock), delay=0.3), clock


def _record_calls(monkeypatch, name: str, *, result=None, error: Exception | None = None):
    calls: list[tuple] = []

    def fake(*args, **kwargs):
        calls.append((args, kwargs))
        if error is not None:
            raise error
        return result

    monkeypatch.setattr(turn_service.campfire_api, name, fake)
    return calls


def _story_response(pages: int, **extra):
    turns = []
    for index in range(1, pages + 1):
        turns.append({"sender": "User", "text": f"user {index}"})
        turns.append(
            {
                "sender": "Storyteller",
                "text": f"page {index}",
                "imageUrl": f"img{index}",
                "promptForUser": f"prompt {index}",
            }
        )
    body = {"chatTurns": turns}
    body.update(extra)
    return body


# ─── submit_turn ─────────────────────────────────────────────────────


def test_submit_blank_input_is_validation_error_without_network(monkeypatch):
    calls = _record_calls(monkeypatch, "submit_turn", result={})
    session = turn_service.StorySession.open()
    controller, _ = _controller()
    session.user_input = "   "

    result = turn_service.submit_turn(session, FakeAuth(), FakeNavigator(), controller)

    assert result.outcome == "validation_error"
    assert isinstance(result.error, turn_service.ValidationError)
    assert session.error == "Input cannot be empty."
    assert calls == []


def test_submit_without_token_is_validation_error(monkeypatch):
    calls = _record_calls(monkeypatch, "submit_turn", result={})
    session = turn_service.StorySession.open()
    controller, _ = _controller()

    result = turn_service.submit_turn(session, FakeAuth(token=None), FakeNavigator(), controller, "A fox")

    assert result.outcome == "validation_error"
    assert calls == []


def test_submit_while_submitting_is_rejected_silently(monkeypatch):
    calls = _record_calls(monkeypatch, "submit_turn", result={})
    session = turn_service.StorySession.open()
    session.is_submitting = True
    controller, _ = _controller()

    result = turn_service.submit_turn(session, FakeAuth(), FakeNavigator(), controller, "A fox")

    assert result.outcome == "validation_error"
    assert session.error is None
    assert calls == []


def test_submit_unauthorized_redirects_once_without_inline_error(monkeypatch):
    _record_calls(monkeypatch, "submit_turn", error=CampfireAuthError("Not authorized", status_code=401))
    session = turn_service.StorySession.open("Fox")
    controller, _ = _controller()
    auth = FakeAuth()
    navigator = FakeNavigator()

    result = turn_service.submit_turn(session, auth, navigator, controller, "A fox")

    assert result.outcome == "auth_expired"
    assert auth.unauthorized_calls == 1
    assert navigator.login_redirects == ["/?page=campfire&title=Fox"]
    assert session.error is None
    assert session.notification is None
    assert session.is_submitting is False


def test_submit_success_resets_cursor_and_switches_to_story_after_delay(monkeypatch):
    calls = _record_calls(monkeypatch, "submit_turn", result=_story_response(3, id="story-1", storyTitle="Fox"))
    session = turn_service.StorySession.open()
    controller, clock = _controller()
    session.user_input = "And then?"

    result = turn_service.submit_turn(session, FakeAuth(), FakeNavigator(), controller)

    assert result.ok
    assert calls[0][0][0] == "token-123"
    payload = calls[0][0][1]
    assert payload["userInput"] == "And then?"
    assert payload["priorTurns"] == []
    assert "storyId" not in payload

    assert session.cursor.index == 2
    assert session.current_story_id == "story-1"
    assert session.story_title == "Fox"
    assert session.chat_prompt == "prompt 3"

    assert controller.animating_out is True
    assert controller.view_mode is ViewMode.CHAT_INPUT
    assert session.is_submitting is True

    clock.now = 1.0
    controller.tick()

    assert controller.view_mode is ViewMode.STORY_DISPLAY
    assert controller.animating_out is False
    assert session.is_submitting is False
    assert session.user_input == ""


def test_submit_keeps_existing_story_id(monkeypatch):
    calls = _record_calls(monkeypatch, "submit_turn", result=_story_response(1, id="other-id"))
    session = turn_service.StorySession.open()
    session.current_story_id = "story-1"
    controller, _ = _controller()

    turn_service.submit_turn(session, FakeAuth(), FakeNavigator(), controller, "More")
    controller.settle()

    assert calls[0][0][1]["storyId"] == "story-1"
    assert session.current_story_id == "story-1"


def test_submit_drops_title_reference_once_server_confirms(monkeypatch):
    _record_calls(monkeypatch, "submit_turn", result=_story_response(1, id="story-1", storyTitle="Fox"))
    session = turn_service.StorySession.open("Fox")
    controller, _ = _controller()
    navigator = FakeNavigator()

    turn_service.submit_turn(session, FakeAuth(), navigator, controller, "More")

    assert navigator.title_drops == 1
    assert session.title_query is None
    assert session.page_address == "/?page=campfire"


@pytest.mark.parametrize(
    ("error", "outcome"),
    [
        (CampfireApiError("Story limit reached", status_code=429, detail="Story limit reached"), "server_rejected"),
        (CampfireNetworkError("connection reset"), "network_failure"),
    ],
)
def test_submit_failure_leaves_log_unchanged(monkeypatch, error, outcome):
    _record_calls(monkeypatch, "submit_turn", error=error)
    session = turn_service.StorySession.open()
    session.replace_log(TurnLog.from_raw(_story_response(1)["chatTurns"]))
    before = session.log
    controller, _ = _controller()

    result = turn_service.submit_turn(session, FakeAuth(), FakeNavigator(), controller, "More")

    assert result.outcome == outcome
    assert session.log is before
    assert session.error
    assert session.is_submitting is False
    assert controller.animating_out is False


def test_submit_server_detail_is_shown(monkeypatch):
    _record_calls(monkeypatch, "submit_turn", error=CampfireApiError("x", status_code=400, detail="Too long"))
    session = turn_service.StorySession.open()
    controller, _ = _controller()

    result = turn_service.submit_turn(session, FakeAuth(), FakeNavigator(), controller, "More")

    assert result.error.status_code == 400
    assert session.error == "Too long"


def test_submit_response_for_closed_session_is_discarded(monkeypatch):
    session = turn_service.StorySession.open()
    controller, _ = _controller()

    def fake_submit(token, payload):
        session.close()
        return _story_response(2, id="story-1")

    monkeypatch.setattr(turn_service.campfire_api, "submit_turn", fake_submit)

    result = turn_service.submit_turn(session, FakeAuth(), FakeNavigator(), controller, "More")

    assert result.outcome == "discarded"
    assert len(session.log) == 0
    assert session.current_story_id is None
    assert controller.animating_out is False


# ─── load_session ────────────────────────────────────────────────────


def test_load_live_session_without_pages_opens_chat(monkeypatch):
    calls = _record_calls(monkeypatch, "fetch_session", result={"chatTurns": []})
    session = turn_service.StorySession.open()
    controller, _ = _controller(ViewMode.STORY_DISPLAY)

    result = turn_service.load_session(session, FakeAuth(), FakeNavigator(), controller)

    assert result.ok
    assert calls[0][1] == {"title": None}
    assert controller.view_mode is ViewMode.CHAT_INPUT
    assert session.chat_prompt == START_NEW_STORY_PROMPT_INPUT
    assert session.cursor.index is None
    assert session.story_title == UNTITLED_STORY_TITLE


def test_load_titled_story_opens_display_on_latest_page(monkeypatch):
    _record_calls(
        monkeypatch,
        "fetch_session",
        result=_story_response(2, id="story-1", storyTitle="Fox", share_publicly=True),
    )
    session = turn_service.StorySession.open("Fox")
    controller, _ = _controller()

    turn_service.load_session(session, FakeAuth(), FakeNavigator(), controller)

    assert controller.view_mode is ViewMode.STORY_DISPLAY
    assert session.cursor.index == 1
    assert session.is_public is True
    assert session.current_story_id == "story-1"
    assert session.chat_prompt == "prompt 2"


def test_load_without_token_redirects_to_login(monkeypatch):
    calls = _record_calls(monkeypatch, "fetch_session", result={})
    session = turn_service.StorySession.open()
    controller, _ = _controller()
    navigator = FakeNavigator()

    result = turn_service.load_session(session, FakeAuth(token=None), navigator, controller)

    assert result.outcome == "auth_expired"
    assert calls == []
    assert navigator.login_redirects == ["/?page=campfire"]


def test_load_failure_shows_empty_state_with_one_error(monkeypatch):
    _record_calls(monkeypatch, "fetch_session", error=CampfireNetworkError("timeout"))
    session = turn_service.StorySession.open()
    controller, _ = _controller()

    result = turn_service.load_session(session, FakeAuth(), FakeNavigator(), controller)

    assert result.outcome == "network_failure"
    assert session.error == "Could not load the story."
    assert len(session.log) == 0
    assert session.chat_prompt == START_NEW_STORY_PROMPT_INPUT
    assert session.is_loading is False


def test_load_unauthorized_expires_credential(monkeypatch):
    _record_calls(monkeypatch, "fetch_session", error=CampfireAuthError("nope", status_code=403))
    session = turn_service.StorySession.open()
    controller, _ = _controller()
    auth = FakeAuth()
    navigator = FakeNavigator()

    result = turn_service.load_session(session, auth, navigator, controller)

    assert result.outcome == "auth_expired"
    assert auth.unauthorized_calls == 1
    assert len(navigator.login_redirects) == 1
    assert session.error is None


# ─── publish ─────────────────────────────────────────────────────────


def test_publish_untitled_story_warns_without_network(monkeypatch):
    calls = _record_calls(monkeypatch, "make_public", result={})
    session = turn_service.StorySession.open()
    session.publish_dialog_open = True

    result = turn_service.publish_story(session, FakeAuth(), FakeNavigator())

    assert result.outcome == "validation_error"
    assert calls == []
    assert session.publish_dialog_open is False
    assert session.take_notification() == turn_service.Notification("warning", turn_service.UNTITLED_PUBLISH_WARNING)
    assert session.take_notification() is None


def test_open_publish_dialog_blocks_untitled_story():
    session = turn_service.StorySession.open()
    assert turn_service.open_publish_dialog(session) is False
    assert session.publish_dialog_open is False
    assert session.notification.severity == "warning"

    session = turn_service.StorySession.open("Fox")
    assert turn_service.open_publish_dialog(session) is True
    assert session.publish_dialog_open is True


def test_publish_success_marks_story_public(monkeypatch):
    calls = _record_calls(monkeypatch, "make_public", result={"message": "Shared!"})
    session = turn_service.StorySession.open("Fox")
    session.publish_dialog_open = True

    result = turn_service.publish_story(session, FakeAuth(), FakeNavigator())

    assert result.ok
    assert calls[0][0] == ("token-123", "Fox")
    assert session.is_public is True
    assert session.publish_dialog_open is False
    assert session.is_publishing is False
    assert session.take_notification() == turn_service.Notification("success", "Shared!")


def test_publish_success_without_message_uses_default(monkeypatch):
    _record_calls(monkeypatch, "make_public", result={})
    session = turn_service.StorySession.open("Fox")

    turn_service.publish_story(session, FakeAuth(), FakeNavigator())

    assert session.notification.message == turn_service.PUBLISH_DEFAULT_SUCCESS


def test_publish_unauthorized_notifies_once_and_redirects(monkeypatch):
    _record_calls(monkeypatch, "make_public", error=CampfireAuthError("nope", status_code=401))
    session = turn_service.StorySession.open("Fox")
    auth = FakeAuth()
    navigator = FakeNavigator()

    result = turn_service.publish_story(session, auth, navigator)

    assert result.outcome == "auth_expired"
    assert auth.unauthorized_calls == 1
    assert len(navigator.login_redirects) == 1
    assert session.is_public is False
    assert session.error is None
    assert session.take_notification() == turn_service.Notification("error", turn_service.PUBLISH_AUTH_FAILED)


def test_publish_rejected_closes_dialog_with_error(monkeypatch):
    _record_calls(monkeypatch, "make_public", error=CampfireApiError("x", status_code=404, detail="Story not found"))
    session = turn_service.StorySession.open("Fox")
    session.publish_dialog_open = True

    result = turn_service.publish_story(session, FakeAuth(), FakeNavigator())

    assert result.outcome == "server_rejected"
    assert session.publish_dialog_open is False
    assert session.is_public is False
    assert session.take_notification() == turn_service.Notification("error", "Story not found")


def test_public_story_title_cannot_be_edited():
    session = turn_service.StorySession.open("Fox")
    session.is_public = True

    assert session.begin_title_edit() is False
    session.editable_story_title = "Wolf"
    assert session.commit_title_edit() is False
    assert session.story_title == "Fox"


def test_title_edit_trims_and_ignores_blank():
    session = turn_service.StorySession.open("Fox")
    session.begin_title_edit()
    session.editable_story_title = "  The Clever Fox  "
    assert session.commit_title_edit() is True
    assert session.story_title == "The Clever Fox"

    session.begin_title_edit()
    session.editable_story_title = "   "
    assert session.commit_title_edit() is False
    assert session.story_title == "The Clever Fox"


# ─── view switching ──────────────────────────────────────────────────


def test_show_story_without_pages_sets_error():
    session = turn_service.StorySession.open()
    controller, _ = _controller()

    assert turn_service.show_story(session, controller) is False
    assert session.error == turn_service.NO_PAGES_ERROR
    assert controller.animating_out is False


def test_show_chat_uses_current_page_prompt():
    session = turn_service.StorySession.open("Fox")
    session.replace_log(TurnLog.from_raw(_story_response(3)["chatTurns"]))
    session.cursor.go_prev()
    controller, _ = _controller(ViewMode.STORY_DISPLAY)

    assert turn_service.show_chat(session, controller) is True
    assert session.chat_prompt == "prompt 2"
    controller.settle()
    assert controller.view_mode is ViewMode.CHAT_INPUT


def test_show_story_for_live_session_jumps_to_latest_page():
    session = turn_service.StorySession.open()
    session.current_story_id = "story-1"
    session.replace_log(TurnLog.from_raw(_story_response(3)["chatTurns"]))
    session.cursor.rewind()
    controller, _ = _controller()

    turn_service.show_story(session, controller)

    assert session.cursor.index == 2


def test_show_chat_defaults_prompt_without_pages():
    session = turn_service.StorySession.open()
    controller, _ = _controller(ViewMode.STORY_DISPLAY)
    turn_service.show_chat(session, controller)
    assert session.chat_prompt == DEFAULT_PROMPT_FOR_USER


# ─── story list ──────────────────────────────────────────────────────


def test_list_my_stories_returns_titles(monkeypatch):
    _record_calls(monkeypatch, "list_story_titles", result=["Fox", "Owl"])
    result = turn_service.list_my_stories(FakeAuth(), FakeNavigator())
    assert result.ok
    assert result.data == ["Fox", "Owl"]


def test_delete_story_unauthorized_redirects(monkeypatch):
    _record_calls(monkeypatch, "delete_story", error=CampfireAuthError("nope", status_code=401))
    navigator = FakeNavigator()

    result = turn_service.delete_story("Fox", FakeAuth(), navigator, return_to="/")

    assert result.outcome == "auth_expired"
    assert navigator.login_redirects == ["/"]


def test_delete_story_requires_title(monkeypatch):
    calls = _record_calls(monkeypatch, "delete_story", result=None)
    result = turn_service.delete_story("  ", FakeAuth(), FakeNavigator())
    assert result.outcome == "validation_error"
    assert calls == []


def test_campfire_page_path_encodes_title():
    assert turn_service.campfire_page_path("Fox & Owl") == "/?page=campfire&title=Fox+%26+Owl"
    assert turn_service.campfire_page_path() == "/?page=campfire"
