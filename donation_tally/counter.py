"""Stepwise count-up animation for the dashboard figures."""

from __future__ import annotations

from enum import Enum

from .store import format_currency, format_number

DEFAULT_DURATION_SECONDS = 2.0
DEFAULT_STEPS = 60
DEFAULT_VISIBILITY_THRESHOLD = 0.5


class CounterState(str, Enum):
    IDLE = "idle"
    ANIMATING = "animating"
    SETTLED = "settled"


class AnimatedCounter:
    """Counts from 0 up to ``target`` once the counter scrolls into view.

    The animation plays once per target value. Retargeting puts the counter
    back to idle at 0 so it can play again.
    """

    def __init__(
        self,
        label: str,
        *,
        is_currency: bool = False,
        show_plus: bool = False,
        duration: float = DEFAULT_DURATION_SECONDS,
        steps: int = DEFAULT_STEPS,
        threshold: float = DEFAULT_VISIBILITY_THRESHOLD,
    ) -> None:
        if steps <= 0:
            raise ValueError("Animation steps must be positive.")
        if duration <= 0:
            raise ValueError("Animation duration must be positive.")
        self.label = label
        self.is_currency = is_currency
        self.show_plus = show_plus
        self.duration = duration
        self.steps = steps
        self.threshold = threshold
        self.target = 0
        self.display_value = 0
        self.state = CounterState.IDLE
        self.has_animated = False
        self._step = 0

    @property
    def step_interval(self) -> float:
        return self.duration / self.steps

    def set_target(self, value: int) -> None:
        if value == self.target:
            return
        self.target = value
        self.display_value = 0
        self.state = CounterState.IDLE
        self.has_animated = False
        self._step = 0

    def observe(self, intersection_ratio: float) -> bool:
        """Report how much of the counter is on screen; returns True if that started it."""
        if intersection_ratio < self.threshold or self.has_animated:
            return False
        if self.target == 0:
            return False
        self.has_animated = True
        self.state = CounterState.ANIMATING
        self._step = 0
        return True

    def tick(self) -> int:
        if self.state is not CounterState.ANIMATING:
            return self.display_value
        self._step += 1
        if self._step >= self.steps:
            self.display_value = self.target
            self.state = CounterState.SETTLED
        else:
            self.display_value = self.target * self._step // self.steps
        return self.display_value

    def advance(self, elapsed: float) -> int:
        """Catch up to where the animation should be ``elapsed`` seconds after it started."""
        due = min(self.steps, int(elapsed / self.step_interval + 1e-9))
        while self.state is CounterState.ANIMATING and self._step < due:
            self.tick()
        return self.display_value

    def formatted(self) -> str:
        text = format_currency(self.display_value) if self.is_currency else format_number(self.display_value)
        if self.show_plus and self.display_value > 0:
            text += "+"
        return text
