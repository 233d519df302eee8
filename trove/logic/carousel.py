"""Scroll bounds for horizontally scrolling recommendation rails."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

SCROLL_FRACTION = 0.8
INITIAL_MEASURE_DELAY = 0.1


class Direction(str, Enum):
    LEFT = "left"
    RIGHT = "right"


@dataclass(slots=True)
class CarouselBounds:
    container_width: float = 0.0
    content_width: float = 0.0
    offset: float = 0.0
    target: float | None = None

    @property
    def max_offset(self) -> float:
        return max(0.0, self.content_width - self.container_width)

    @property
    def can_scroll_left(self) -> bool:
        return self.offset > 0

    @property
    def can_scroll_right(self) -> bool:
        return self.offset < self.max_offset

    def measure(self, container_width: float, content_width: float) -> None:
        self.container_width = max(0.0, float(container_width))
        self.content_width = max(0.0, float(content_width))
        # A shrinking rail clamps the native scroll position too.
        self.offset = min(self.offset, self.max_offset)

    def scroll(self, direction: Direction | str) -> float:
        """Return the smooth-scroll target; ``offset`` follows via ``on_scroll``."""
        direction = Direction(direction)
        amount = self.container_width * SCROLL_FRACTION
        if direction is Direction.LEFT:
            target = max(0.0, self.offset - amount)
        else:
            target = min(self.max_offset, self.offset + amount)
        self.target = target
        return target

    def on_scroll(self, offset: float) -> None:
        self.offset = min(max(0.0, float(offset)), self.max_offset)
        if self.target is not None and abs(self.offset - self.target) < 0.5:
            self.target = None
