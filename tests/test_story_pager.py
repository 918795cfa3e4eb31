from __future__ import annotations

import random

import pytest

from app_constants import DEFAULT_IMAGE_URL, DEFAULT_PROMPT_FOR_USER, WAITING_FOR_TALE_TEXT
from campfire_turns import Sender, Turn
from story_pager import PaginationCursor


def _pages(count: int) -> list[Turn]:
    return [Turn(Sender.STORYTELLER, f"Page {index}", image_url=f"img{index}") for index in range(1, count + 1)]


def test_empty_cursor_has_undefined_index_and_sentinel_view():
    cursor = PaginationCursor()

    assert cursor.index is None
    assert cursor.current is None
    assert cursor.go_next() is None
    assert cursor.go_prev() is None
    assert cursor.position_label() == "0 / 0"

    view = cursor.page_view()
    assert view.is_placeholder is True
    assert view.text == WAITING_FOR_TALE_TEXT
    assert view.image_url == DEFAULT_IMAGE_URL
    assert view.prompt_for_next_turn == DEFAULT_PROMPT_FOR_USER


def test_cursor_starts_on_latest_page_and_clamps():
    cursor = PaginationCursor(_pages(3))

    assert cursor.index == 2
    assert cursor.has_next is False
    assert cursor.go_next() == 2

    assert cursor.go_prev() == 1
    assert cursor.go_prev() == 0
    assert cursor.go_prev() == 0
    assert cursor.has_prev is False
    assert cursor.position_label() == "1 / 3"


def test_reset_jumps_to_latest_and_rewind_to_first():
    cursor = PaginationCursor(_pages(2))
    cursor.go_prev()

    assert cursor.reset(_pages(4)) == 3
    assert cursor.current.text == "Page 4"

    assert cursor.rewind() == 0
    assert cursor.current.text == "Page 1"

    assert cursor.reset([]) is None
    assert cursor.rewind() is None


def test_page_view_fills_missing_page_fields():
    cursor = PaginationCursor([Turn(Sender.STORYTELLER, "First.\n\nSecond.", prompt_for_user="Then?")])

    view = cursor.page_view()

    assert view.is_placeholder is False
    assert view.image_url == DEFAULT_IMAGE_URL
    assert view.prompt_for_next_turn == "Then?"
    assert view.paragraphs == ["First.", "Second."]


def test_page_view_uses_custom_empty_text():
    view = PaginationCursor().page_view(empty_text="Nothing here.")
    assert view.text == "Nothing here."


@pytest.mark.parametrize("length", range(6))
@pytest.mark.parametrize("seed", [0, 1, 7, 42])
def test_random_walk_keeps_index_in_bounds(length, seed):
    rng = random.Random(seed)
    cursor = PaginationCursor(_pages(length))

    for _ in range(50):
        step = rng.choice([cursor.go_prev, cursor.go_next])
        index = step()
        assert index == cursor.index
        if length == 0:
            assert index is None
        else:
            assert 0 <= index < length
        assert cursor.has_prev == (index is not None and index > 0)
        assert cursor.has_next == (index is not None and index < length - 1)
