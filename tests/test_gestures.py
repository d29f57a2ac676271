from types import SimpleNamespace

import pytest

from schedgrid.gestures import Glow, LongPressGesture, PressPhase


@pytest.fixture
def events():
    return []


@pytest.fixture
def gesture(loop, events):
    def _gesture(privileged=True, move_capable=True):
        return LongPressGesture(
            on_menu=lambda x, y: events.append(("menu", x, y)),
            on_move_armed=lambda: events.append(("move",)),
            move_capable=move_capable,
            privileged=privileged,
            haptics=lambda ms: events.append(("haptic", ms)),
            loop=loop,
            clock=loop.clock,
        )
    return _gesture


def test_short_press_is_a_plain_tap(gesture, loop, events):
    g = gesture()
    g.press(10, 20)
    loop.advance(0.3)
    g.release()
    loop.advance(2)

    assert events == []
    assert g.phase == PressPhase.IDLE
    assert not g.should_suppress_click()
    assert loop.pending() == []


def test_press_to_600ms_opens_menu_only(gesture, loop, events):
    g = gesture()
    g.press(10, 20)
    loop.advance(0.6)

    assert g.phase == PressPhase.MENU_ARMED
    assert g.glow == Glow.LIGHT
    g.release()
    loop.advance(2)

    assert events == [("menu", 10, 20)]
    assert not g.should_suppress_click()


def test_press_to_1100ms_arms_move_and_swallows_click(gesture, loop, events):
    g = gesture()
    g.press(5, 5)
    loop.advance(1.1)

    assert events == [("menu", 5, 5), ("move",), ("haptic", 50)]
    assert g.phase == PressPhase.MOVE_ARMED
    assert g.glow == Glow.INTENSE
    assert g.held_ms() == pytest.approx(1100)

    g.release()
    assert g.should_suppress_click()
    assert g.phase == PressPhase.MOVE_ARMED
    loop.advance(0.05)
    assert g.should_suppress_click()
    loop.advance(0.06)
    assert not g.should_suppress_click()
    assert loop.pending() == []


def test_unprivileged_press_never_arms_move(gesture, loop, events):
    g = gesture(privileged=False)
    g.press(0, 0)
    assert len(loop.pending()) == 1
    loop.advance(1.5)
    g.release()

    assert events == [("menu", 0, 0)]


def test_movement_before_menu_cancels_both_timers(gesture, loop, events):
    g = gesture()
    g.press(0, 0)
    loop.advance(0.2)
    g.pointer_move(3, 4)  # 5px, within threshold
    assert g.phase == PressPhase.PRESS_STARTED
    g.pointer_move(30, 0)

    assert g.phase == PressPhase.IDLE
    assert loop.pending() == []
    loop.advance(2)
    assert events == []


def test_movement_after_menu_stops_move_timer(gesture, loop, events):
    g = gesture()
    g.press(0, 0)
    loop.advance(0.7)
    g.pointer_move(0, 50)
    loop.advance(1)

    assert events == [("menu", 0, 0)]
    assert g.phase == PressPhase.IDLE


def test_dragging_while_armed(gesture, loop):
    g = gesture()
    g.press(0, 0)
    loop.advance(1.0)
    g.pointer_move(40, 0)
    assert g.phase == PressPhase.DRAGGING


def test_commit_success_and_rejection(gesture, loop):
    g = gesture()
    g.press(0, 0)
    loop.advance(1.0)
    g.release()

    calls = []

    def ok(row, col):
        calls.append((row, col))
        return SimpleNamespace(ok=True)

    result = g.commit_move(2, 1, ok)
    assert result.ok
    assert calls == [(2, 1)]
    assert g.phase == PressPhase.COMMITTED

    g.press(0, 0)
    loop.advance(1.0)
    rejected = g.commit_move(0, 0, lambda row, col: SimpleNamespace(ok=False))
    assert not rejected.ok
    assert g.phase == PressPhase.IDLE


def test_commit_ignored_unless_armed(gesture):
    g = gesture()
    assert g.commit_move(0, 0, lambda row, col: pytest.fail("should not be called")) is None


def test_cancel_clears_everything(gesture, loop, events):
    g = gesture()
    g.press(0, 0)
    loop.advance(1.0)
    g.release()
    g.cancel()

    assert g.phase == PressPhase.CANCELLED
    assert not g.should_suppress_click()
    assert not g.timers_pending
    assert loop.pending() == []


def test_repeated_gestures_leak_no_timers(gesture, loop):
    g = gesture()
    for _ in range(5):
        g.press(0, 0)
        loop.advance(0.1)
        g.release()
    assert loop.pending() == []
    assert not g.timers_pending


def test_refused_move_arm_falls_back_to_idle(loop, events):
    g = LongPressGesture(
        on_menu=lambda x, y: events.append(("menu", x, y)),
        on_move_armed=lambda: SimpleNamespace(ok=False, message="booking gone"),
        move_capable=True,
        privileged=True,
        haptics=lambda ms: events.append(("haptic", ms)),
        loop=loop,
        clock=loop.clock,
    )
    g.press(0, 0)
    loop.advance(1.1)

    assert events == [("menu", 0, 0)]
    assert g.phase == PressPhase.IDLE
    assert g.glow == Glow.NONE
    g.release()
    assert not g.should_suppress_click()


def test_cancel_reports_end_of_move_mode_only_when_armed(loop):
    ended = []
    g = LongPressGesture(
        on_menu=lambda x, y: None,
        on_move_armed=lambda: None,
        move_capable=True,
        privileged=True,
        loop=loop,
        clock=loop.clock,
        on_move_ended=lambda: ended.append(True),
    )
    g.press(0, 0)
    loop.advance(0.6)
    g.cancel()
    assert ended == []

    g.press(0, 0)
    loop.advance(1.0)
    g.pointer_move(50, 0)
    assert g.phase == PressPhase.DRAGGING
    g.cancel()
    assert ended == [True]
