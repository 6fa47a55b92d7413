"""Exceptions raised by the mindcanvas core."""


class MindCanvasError(Exception):
    """Base class for mindcanvas errors."""


class LayoutError(MindCanvasError):
    """Auto-layout could not run."""


class NodeNotFoundError(LayoutError, KeyError):
    """Layout was requested for a node that is not in the graph."""

    def __init__(self, node_id: str):
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"Node {self.node_id!r} not found"
