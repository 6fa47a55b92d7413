"""Data model: hierarchical items and the render graph derived from them."""

from enum import Enum
from typing import Optional, Dict, Any
from dataclasses import dataclass, field

from mindcanvas.spacing import DEFAULT_NODE_WIDTH, DEFAULT_NODE_HEIGHT


class ItemKind(Enum):
    """What an item is; decides rendering and connection rules."""
    FOLDER = "folder"
    NOTE = "note"
    MINDMAP = "mindmap"

    @property
    def can_contain(self) -> bool:
        """Only folders hold children."""
        return self is ItemKind.FOLDER


class PositionAuthority(Enum):
    """Who owns a render node's position."""
    SEEDED = "seeded"  # from the store or default placement
    LIVE = "live"      # moved during this session, not yet persisted


@dataclass(frozen=True)
class Position:
    """A point in canvas space."""
    x: float
    y: float

    def translated(self, dx: float, dy: float) -> "Position":
        return Position(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Size:
    """Rendered dimensions of a node."""
    width: float = DEFAULT_NODE_WIDTH
    height: float = DEFAULT_NODE_HEIGHT


@dataclass
class HierarchicalItem:
    """A folder, note or mind-map owned by the item store."""
    id: str
    kind: ItemKind = ItemKind.NOTE
    parent_id: Optional[str] = None
    label: str = ""
    color: Optional[str] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    collapsed: bool = False
    sort_order: int = 0

    @property
    def position(self) -> Optional[Position]:
        if self.position_x is None or self.position_y is None:
            return None
        return Position(self.position_x, self.position_y)

    @position.setter
    def position(self, value: Optional[Position]):
        if value is None:
            self.position_x = None
            self.position_y = None
        else:
            self.position_x = float(value.x)
            self.position_y = float(value.y)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "parent_id": self.parent_id,
            "label": self.label,
            "color": self.color,
            "position_x": self.position_x,
            "position_y": self.position_y,
            "collapsed": self.collapsed,
            "sort_order": self.sort_order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HierarchicalItem":
        return cls(
            id=str(data["id"]),
            kind=ItemKind(data.get("kind", ItemKind.NOTE.value)),
            parent_id=data.get("parent_id"),
            label=data.get("label") or "",
            color=data.get("color"),
            position_x=data.get("position_x"),
            position_y=data.get("position_y"),
            collapsed=bool(data.get("collapsed", False)),
            sort_order=int(data.get("sort_order") or 0),
        )


@dataclass
class RenderNode:
    """A node as handed to the render surface."""
    id: str
    kind: ItemKind
    x: float
    y: float
    width: float = DEFAULT_NODE_WIDTH
    height: float = DEFAULT_NODE_HEIGHT
    hidden: bool = False
    label: str = ""
    color: Optional[str] = None
    child_count: int = 0
    collapsed: bool = False
    authority: PositionAuthority = PositionAuthority.SEEDED

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def move_to(self, position: Position):
        """Set a live position; the first move hands ownership to the session."""
        self.x = position.x
        self.y = position.y
        self.authority = PositionAuthority.LIVE

    def contains_point(self, px: float, py: float) -> bool:
        """Check if a point is inside this node."""
        return (self.x <= px <= self.x + self.width and
                self.y <= py <= self.y + self.height)


@dataclass(frozen=True)
class RenderEdge:
    """A parent -> child connector."""
    source_id: str
    target_id: str
    color: Optional[str] = None
    id: str = field(default="")

    def __post_init__(self):
        if not self.id:
            object.__setattr__(self, "id", f"e-{self.source_id}-{self.target_id}")
