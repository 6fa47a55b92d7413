"""mindcanvas: auto-layout and graph sync core for a canvas outliner."""

import logging

from mindcanvas.items import (
    ItemKind,
    HierarchicalItem,
    Position,
    Size,
    PositionAuthority,
    RenderNode,
    RenderEdge,
)
from mindcanvas.errors import MindCanvasError, LayoutError, NodeNotFoundError
from mindcanvas.spacing import LayoutOptions
from mindcanvas.layout import AutoLayoutEngine, LayoutResult, layout
from mindcanvas.projector import ProjectedGraph, RenderState, project
from mindcanvas.drag import DragPropagationController, PositionChange
from mindcanvas.reparent import ReparentValidator, connect
from mindcanvas.settings import CanvasSettings, configure_logging
from mindcanvas.session import CanvasSession, Viewport

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ItemKind",
    "HierarchicalItem",
    "Position",
    "Size",
    "PositionAuthority",
    "RenderNode",
    "RenderEdge",
    "MindCanvasError",
    "LayoutError",
    "NodeNotFoundError",
    "LayoutOptions",
    "AutoLayoutEngine",
    "LayoutResult",
    "layout",
    "ProjectedGraph",
    "RenderState",
    "project",
    "DragPropagationController",
    "PositionChange",
    "ReparentValidator",
    "connect",
    "CanvasSettings",
    "configure_logging",
    "CanvasSession",
    "Viewport",
]
