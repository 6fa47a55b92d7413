"""Default positions for items that have never been placed."""

import math
from typing import Iterable, List, Optional

from mindcanvas.items import Position
from mindcanvas.settings import CanvasSettings

# Ring offsets tried around the slot below a parent, in order
_RING_OFFSETS = ((0, 1), (1, 1), (-1, 1), (1, 0), (-1, 0), (1, -1), (-1, -1))


def is_free(point: Position, occupied: Iterable[Position], min_distance: float) -> bool:
    """True when no occupied point lies within min_distance of point."""
    for other in occupied:
        if math.hypot(other.x - point.x, other.y - point.y) < min_distance:
            return False
    return True


def root_candidates(settings: CanvasSettings) -> List[Position]:
    """Grid of slots spreading sideways and down from the root origin."""
    candidates = []
    for ring in range(settings.spiral_rings):
        for dx in range(-ring, ring + 1):
            candidates.append(Position(dx * settings.spacing_x,
                                       settings.root_origin_y + ring * settings.spacing_y))
    return candidates


def child_candidates(base: Position, settings: CanvasSettings) -> List[Position]:
    """Slots spiralling out from directly below base."""
    candidates = []
    for ring in range(settings.spiral_rings + 1):
        for ox, oy in _RING_OFFSETS:
            candidates.append(Position(base.x + ox * ring * settings.spacing_x,
                                       base.y + settings.spacing_y + oy * ring * settings.spacing_y))
    return candidates


def default_position(parent_id: Optional[str],
                     base: Optional[Position],
                     occupied: Iterable[Position],
                     settings: Optional[CanvasSettings] = None) -> Position:
    """Find a free slot for a new item.

    Children search around the slot below their parent; roots search a grid
    near the origin. The search is bounded by the ring count and falls back
    to a fixed slot when every candidate is taken.
    """
    settings = settings or CanvasSettings()
    occupied = list(occupied)

    if parent_id is None:
        candidates = root_candidates(settings)
        for point in candidates:
            if is_free(point, occupied, settings.min_distance):
                return point
        return candidates[-1] if candidates else Position(0.0, settings.root_origin_y)

    base = base or Position(0.0, 0.0)
    for point in child_candidates(base, settings):
        if is_free(point, occupied, settings.min_distance):
            return point
    return Position(base.x, base.y + settings.spacing_y)
