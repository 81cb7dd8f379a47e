"""
Push-based scalar control driving the blend factor.
"""

from typing import Callable, List

import structlog

logger = structlog.get_logger()


class BlendSlider:
    """
    Minimal slider: a clamped scalar that notifies listeners on change.

    Stands in for a UI widget; anything exposing `value` and
    `add_listener(callback)` can be bound to the engine the same way.
    """

    def __init__(self, value: float = 0.0, min_value: float = 0.0, max_value: float = 1.0):
        if min_value > max_value:
            raise ValueError(f"min_value {min_value} exceeds max_value {max_value}")
        self.min_value = float(min_value)
        self.max_value = float(max_value)
        self._value = self._clamp(value)
        self.on_value_changed: List[Callable[[float], None]] = []

    def _clamp(self, value: float) -> float:
        return min(self.max_value, max(self.min_value, float(value)))

    @property
    def value(self) -> float:
        return self._value

    def set_value(self, value: float) -> None:
        """Move the slider; listeners fire only if the value changed."""
        value = self._clamp(value)
        if value == self._value:
            return
        self._value = value
        for listener in list(self.on_value_changed):
            listener(value)

    def add_listener(self, listener: Callable[[float], None]) -> None:
        self.on_value_changed.append(listener)

    def remove_listener(self, listener: Callable[[float], None]) -> None:
        if listener in self.on_value_changed:
            self.on_value_changed.remove(listener)
        else:
            logger.debug("Listener not registered", listener=repr(listener))
