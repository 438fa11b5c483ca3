"""
Geometry helpers for placing occupants inside the tank.

Two coordinate spaces exist: screen (page) coordinates reported by the
caller's gesture layer, and tank-local coordinates stored on TankItem.
Helpers here are small, stateless and safe to call on every drag event.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


def clamp(n: float, lo: float, hi: float) -> float:
    """Keep n inside [lo, hi]"""
    return float(np.clip(n, lo, hi))


@dataclass(frozen=True)
class Bounds:
    """Admissible tank-local positions: x in [0, width], y in [0, height]"""
    width: float
    height: float

    def contains(self, x: float, y: float) -> bool:
        return 0.0 <= x <= self.width and 0.0 <= y <= self.height

    def clamp_point(self, x: float, y: float) -> Tuple[float, float]:
        """
        Project (x, y) onto the bounds.

        Returns a new point with both coordinates inside the bounds; points
        already inside are returned unchanged.
        """
        p = np.clip(
            np.array([x, y], dtype=np.float64),
            [0.0, 0.0],
            [max(0.0, self.width), max(0.0, self.height)],
        )
        return float(p[0]), float(p[1])


@dataclass(frozen=True)
class TankRect:
    """Tank view rectangle in screen coordinates, as measured by the caller"""
    x: float
    y: float
    w: float
    h: float

    def contains(self, page_x: float, page_y: float) -> bool:
        return (self.x <= page_x <= self.x + self.w
                and self.y <= page_y <= self.y + self.h)

    def item_bounds(self, sprite_w: float, sprite_h: float) -> Bounds:
        """Bounds for a sprite's top-left corner so the sprite stays fully inside"""
        return Bounds(max(0.0, self.w - sprite_w), max(0.0, self.h - sprite_h))

    def drop_point(self, page_x: float, page_y: float,
                   sprite_w: float, sprite_h: float) -> Optional[Tuple[float, float]]:
        """
        Convert a screen drop point into a tank-local sprite position.

        The sprite is centred on the drop point and clamped so it stays inside.
        Returns None when the drop point lies outside the tank rectangle.
        """
        if not self.contains(page_x, page_y):
            return None
        local_x = page_x - self.x - sprite_w / 2.0
        local_y = page_y - self.y - sprite_h / 2.0
        return self.item_bounds(sprite_w, sprite_h).clamp_point(local_x, local_y)
