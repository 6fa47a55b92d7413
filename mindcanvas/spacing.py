"""Spacing model: grid snapping and the gaps used by the layout engine."""

import json
import math
from typing import List, Optional, Sequence, TypeVar
from dataclasses import dataclass, asdict

T = TypeVar("T")

# Layout constants
GRID_SIZE = 20
DEFAULT_NODE_WIDTH = 200
DEFAULT_NODE_HEIGHT = 40
LEVEL_CLEARANCE = 40
ROW_CLEARANCE = 20
STACK_THRESHOLD = 4


@dataclass
class LayoutOptions:
    """Tunable spacing for an auto-layout pass."""
    node_spacing: float = 20
    subtree_spacing: float = 60
    level_spacing: float = 120
    children_per_row: int = 3
    min_row_spacing: float = 60
    grid_size: float = GRID_SIZE

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, data: Optional[str]) -> "LayoutOptions":
        if not data:
            return cls()
        try:
            d = json.loads(data)
            # Filter to only known fields to handle schema evolution
            known = {f.name for f in cls.__dataclass_fields__.values()}
            return cls(**{k: v for k, v in d.items() if k in known})
        except (json.JSONDecodeError, TypeError, AttributeError):
            return cls()


def snap_to_grid(value: float, grid: float = GRID_SIZE) -> float:
    """Round half up to the nearest grid line."""
    if grid <= 0:
        return value
    return math.floor(value / grid + 0.5) * grid


def level_offset(parent_height: float, options: LayoutOptions) -> float:
    """Vertical distance from a parent's top to its children's top."""
    return max(options.level_spacing, parent_height + LEVEL_CLEARANCE)


def row_advance(row_max_height: float, options: LayoutOptions) -> float:
    """Vertical distance between two stacked rows."""
    return max(options.min_row_spacing, row_max_height + ROW_CLEARANCE)


def sibling_gap(left_has_children: bool, right_has_children: bool,
                options: LayoutOptions) -> float:
    """Gap between two adjacent siblings in a single row.

    Leaf pairs sit tight; a pair where either side has children gets the
    wider subtree spacing so grandchildren have room.
    """
    if left_has_children or right_has_children:
        return options.subtree_spacing
    return options.node_spacing


def balanced_row_size(count: int, children_per_row: int) -> int:
    """Children per stacked row, balanced so rows are roughly even."""
    if count <= 0:
        return 1
    per_row = max(1, int(children_per_row))
    rows = math.ceil(count / per_row)
    return min(per_row, math.ceil(count / rows))


def chunk(seq: Sequence[T], size: int) -> List[List[T]]:
    """Split a sequence into consecutive rows of at most size items."""
    size = max(1, size)
    return [list(seq[i:i + size]) for i in range(0, len(seq), size)]
