from __future__ import annotations

from view_transition import DeferredScheduler, ViewMode, ViewModeController


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _controller(initial=ViewMode.STORY_DISPLAY, delay=0.3):
    clock = FakeClock()
    scheduler = DeferredScheduler(clock)
    return ViewModeController(initial, scheduler=scheduler, delay=delay), scheduler, clock


def test_scheduler_runs_due_callbacks_in_deadline_order():
    clock = FakeClock()
    scheduler = DeferredScheduler(clock)
    calls: list[str] = []

    scheduler.call_later(0.5, lambda: calls.append("late"))
    scheduler.call_later(0.1, lambda: calls.append("early"))
    cancelled = scheduler.call_later(0.2, lambda: calls.append("cancelled"))
    assert scheduler.cancel(cancelled) is True

    assert scheduler.run_due() == 0
    assert scheduler.time_until_next() == 0.1

    clock.advance(1.0)
    assert scheduler.run_due() == 2
    assert calls == ["early", "late"]
    assert len(scheduler) == 0
    assert scheduler.time_until_next() is None


def test_request_animates_out_then_flips_after_delay():
    controller, _, clock = _controller()

    assert controller.request(ViewMode.CHAT_INPUT) is True
    assert controller.animating_out is True
    assert controller.view_mode is ViewMode.STORY_DISPLAY

    clock.advance(0.1)
    assert controller.tick() is False
    assert controller.animating_out is True

    clock.advance(0.3)
    assert controller.tick() is True
    assert controller.view_mode is ViewMode.CHAT_INPUT
    assert controller.animating_out is False
    assert controller.consume_focus_request() is True
    assert controller.consume_focus_request() is False


def test_overlapping_request_is_dropped():
    controller, scheduler, _ = _controller()

    assert controller.request(ViewMode.CHAT_INPUT) is True
    assert controller.request(ViewMode.STORY_DISPLAY) is False
    assert controller.pending_target is ViewMode.CHAT_INPUT
    assert len(scheduler) == 1

    assert controller.settle() is True
    assert controller.view_mode is ViewMode.CHAT_INPUT
    assert controller.animating_out is False
    assert len(scheduler) == 0


def test_settle_runs_callbacks_and_returns_false_when_idle():
    controller, _, _ = _controller(ViewMode.CHAT_INPUT)
    settled: list[bool] = []

    assert controller.settle() is False
    controller.request(ViewMode.STORY_DISPLAY, on_settled=lambda: settled.append(True))
    controller.settle()

    assert settled == [True]
    assert controller.view_mode is ViewMode.STORY_DISPLAY


def test_dispose_cancels_pending_flip():
    controller, scheduler, clock = _controller()
    controller.request(ViewMode.CHAT_INPUT)

    controller.dispose()
    clock.advance(5)
    controller.tick()

    assert controller.view_mode is ViewMode.STORY_DISPLAY
    assert controller.animating_out is False
    assert len(scheduler) == 0


def test_show_immediately_sets_view_and_focus():
    controller, _, _ = _controller()
    controller.consume_focus_request()

    controller.show_immediately(ViewMode.CHAT_INPUT)

    assert controller.view_mode is ViewMode.CHAT_INPUT
    assert controller.animating_out is False
    assert controller.focus_requested is True


def test_zero_delay_flips_on_next_tick():
    controller, _, _ = _controller(delay=0.0)
    controller.request(ViewMode.CHAT_INPUT)
    assert controller.tick() is True
    assert controller.view_mode is ViewMode.CHAT_INPUT


def test_injected_empty_scheduler_is_kept():
    clock = FakeClock()
    scheduler = DeferredScheduler(clock)
    assert len(scheduler) == 0

    controller = ViewModeController(ViewMode.STORY_DISPLAY, scheduler=scheduler, delay=0.3)

    assert controller.scheduler is scheduler
    controller.request(ViewMode.CHAT_INPUT)
    assert len(scheduler) == 1
    clock.advance(0.3)
    assert controller.tick() is True
    assert controller.view_mode is ViewMode.CHAT_INPUT
