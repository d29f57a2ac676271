"""
Long-press state machine for grid cells.

A press arms the context menu after MENU_ARM_MS and, for privileged users
on move-capable items, arms move mode after MOVE_ARM_MS. Moving the pointer
past MOVE_CANCEL_PX before either fires cancels the gesture. Once move mode
is armed, picking a target cell commits the move through a caller-supplied
attempt function.

Timers come from an injected loop exposing asyncio's `call_later`, and time
from an injected clock, so the whole thing can be driven deterministically.
"""
import asyncio
import logging
import math
import time
from enum import Enum

from schedgrid.config import Config

logger = logging.getLogger(__name__)


class PressPhase(str, Enum):
    IDLE = "idle"
    PRESS_STARTED = "press_started"
    MENU_ARMED = "menu_armed"
    MOVE_ARMED = "move_armed"
    DRAGGING = "dragging"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class Glow(str, Enum):
    NONE = "none"
    LIGHT = "light"
    INTENSE = "intense"


class LongPressGesture:
    def __init__(self, on_menu, on_move_armed=None, move_capable=False, privileged=False,
                 haptics=None, loop=None, clock=time.monotonic, config=Config,
                 on_move_ended=None):
        self.on_menu = on_menu
        self.on_move_armed = on_move_armed
        self.on_move_ended = on_move_ended
        self.move_capable = move_capable
        self.privileged = privileged
        self.haptics = haptics
        self.clock = clock
        self.config = config
        self._loop = loop

        self.phase = PressPhase.IDLE
        self.glow = Glow.NONE
        self.pressed_at = None
        self.origin = None
        self.pointer = None
        self._menu_timer = None
        self._move_timer = None
        self._debounce_timer = None
        self._suppress_click = False

    @property
    def loop(self):
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def supports_move(self):
        return self.move_capable and self.privileged and self.on_move_armed is not None

    @property
    def timers_pending(self):
        return any(t is not None for t in (self._menu_timer, self._move_timer, self._debounce_timer))

    def press(self, x, y):
        if self.phase in (PressPhase.MOVE_ARMED, PressPhase.DRAGGING):
            # a second press while armed is a target pick, not a new gesture
            return
        self._clear_press_timers()
        self._clear_debounce()
        self._suppress_click = False
        self.phase = PressPhase.PRESS_STARTED
        self.glow = Glow.NONE
        self.pressed_at = self.clock()
        self.origin = (x, y)
        self.pointer = (x, y)

        self._menu_timer = self.loop.call_later(self.config.MENU_ARM_MS / 1000, self._fire_menu)
        if self.supports_move:
            self._move_timer = self.loop.call_later(self.config.MOVE_ARM_MS / 1000, self._fire_move)

    def _fire_menu(self):
        self._menu_timer = None
        if self.phase != PressPhase.PRESS_STARTED:
            return
        self.phase = PressPhase.MENU_ARMED
        self.glow = Glow.LIGHT
        x, y = self.pointer
        self.on_menu(x, y)

    def _fire_move(self):
        self._move_timer = None
        if self.phase not in (PressPhase.PRESS_STARTED, PressPhase.MENU_ARMED):
            return
        result = self.on_move_armed()
        if getattr(result, "ok", True) is False:
            logger.info("move mode refused: %s", getattr(result, "message", None))
            self._reset(PressPhase.IDLE)
            return
        self.phase = PressPhase.MOVE_ARMED
        self.glow = Glow.INTENSE
        if self.haptics is not None:
            self.haptics(self.config.HAPTIC_PULSE_MS)
        self._suppress_click = True
        logger.debug("move mode armed after %.0f ms", self.held_ms())

    def held_ms(self):
        if self.pressed_at is None:
            return 0.0
        return (self.clock() - self.pressed_at) * 1000

    def pointer_move(self, x, y):
        self.pointer = (x, y)
        if self.origin is None:
            return
        travelled = math.hypot(x - self.origin[0], y - self.origin[1])
        if travelled <= self.config.MOVE_CANCEL_PX:
            return
        if self.phase in (PressPhase.PRESS_STARTED, PressPhase.MENU_ARMED):
            self._clear_press_timers()
            self._reset(PressPhase.IDLE)
        elif self.phase == PressPhase.MOVE_ARMED:
            self.phase = PressPhase.DRAGGING

    def release(self):
        """Pointer up. Move mode survives the release; everything else goes idle."""
        self._clear_press_timers()
        self._clear_debounce()
        if self._suppress_click:
            self._debounce_timer = self.loop.call_later(
                self.config.CLICK_SUPPRESS_MS / 1000, self._end_debounce
            )
        if self.phase in (PressPhase.MOVE_ARMED, PressPhase.DRAGGING):
            self.glow = Glow.NONE
            return
        self._reset(PressPhase.IDLE)

    def cancel(self):
        """Pointer cancel, or the user backs out of move mode."""
        was_armed = self.phase in (PressPhase.MOVE_ARMED, PressPhase.DRAGGING)
        self._clear_press_timers()
        self._clear_debounce()
        self._suppress_click = False
        self._reset(PressPhase.CANCELLED)
        if was_armed and self.on_move_ended is not None:
            self.on_move_ended()

    def should_suppress_click(self):
        """True while the click synthesized after a long press must be swallowed."""
        return self._suppress_click

    def _end_debounce(self):
        self._debounce_timer = None
        self._suppress_click = False

    def commit_move(self, time_index, column, attempt):
        """
        Drop an armed item on a target cell.

        attempt(time_index, column) performs the placement and returns an
        object with an `ok` attribute. Success ends in COMMITTED; a rejected
        move leaves the origin untouched and returns to IDLE.
        """
        if self.phase not in (PressPhase.MOVE_ARMED, PressPhase.DRAGGING):
            return None
        result = attempt(time_index, column)
        if getattr(result, "ok", False):
            self._reset(PressPhase.COMMITTED)
        else:
            logger.info("move to row %s col %s rejected", time_index, column)
            self._reset(PressPhase.IDLE)
        return result

    def _clear_press_timers(self):
        for handle in (self._menu_timer, self._move_timer):
            if handle is not None:
                handle.cancel()
        self._menu_timer = None
        self._move_timer = None

    def _clear_debounce(self):
        if self._debounce_timer is not None:
            self._debounce_timer.cancel()
            self._debounce_timer = None

    def _reset(self, phase):
        self.phase = phase
        self.glow = Glow.NONE
        self.pressed_at = None
        self.origin = None
