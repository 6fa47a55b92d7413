"""Export functionality for mindcanvas graphs."""

import math
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union
from datetime import datetime

import cairo

from mindcanvas.items import HierarchicalItem, ItemKind, RenderNode
from mindcanvas.projector import ProjectedGraph
from mindcanvas.settings import get_data_dir
from mindcanvas.visibility import valid_parent_id

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def parse_hex_color(value: Optional[str]) -> Optional[Tuple[float, float, float]]:
    """'#rrggbb' or '#rgb' to an RGB triple in 0..1, None if unparsable."""
    if not value or not value.startswith("#"):
        return None
    digits = value[1:]
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    if len(digits) != 6:
        return None
    try:
        return tuple(int(digits[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
    except ValueError:
        return None


class GraphExporter:
    """Draws the visible part of a projected graph to image formats."""

    COLORS = {
        'bg_primary': (0.039, 0.039, 0.039),
        'surface': (0.118, 0.118, 0.118),
        'folder_surface': (0.16, 0.12, 0.12),
        'border_subtle': (0.165, 0.165, 0.165),
        'text_primary': (0.878, 0.878, 0.878),
        'accent_primary': (1.0, 0.176, 0.176),
    }

    NODE_PADDING = 16
    PAGE_PADDING = 50

    def _visible(self, graph: ProjectedGraph) -> Tuple[List[RenderNode], Dict[str, RenderNode]]:
        nodes = graph.visible_nodes
        return nodes, {n.id: n for n in nodes}

    @staticmethod
    def _bounds(nodes: List[RenderNode]) -> Tuple[float, float, float, float]:
        min_x = min(n.x for n in nodes)
        max_x = max(n.x + n.width for n in nodes)
        min_y = min(n.y for n in nodes)
        max_y = max(n.y + n.height for n in nodes)
        return min_x, min_y, max_x, max_y

    def export_png(self, graph: ProjectedGraph, filepath: PathLike,
                   scale: float = 2.0, transparent: bool = False) -> bool:
        """Export the graph to a PNG image."""
        nodes, by_id = self._visible(graph)
        if not nodes:
            logger.warning("Nothing to export to %s", filepath)
            return False

        min_x, min_y, max_x, max_y = self._bounds(nodes)
        padding = self.PAGE_PADDING
        width = max(1, int((max_x - min_x + padding * 2) * scale))
        height = max(1, int((max_y - min_y + padding * 2) * scale))

        surface = cairo.ImageSurface(cairo.FORMAT_ARGB32, width, height)
        cr = cairo.Context(surface)
        cr.scale(scale, scale)
        cr.translate(-min_x + padding, -min_y + padding)

        if not transparent:
            cr.set_source_rgb(*self.COLORS['bg_primary'])
            cr.paint()

        self._draw(cr, graph, nodes, by_id)
        surface.write_to_png(str(filepath))
        return True

    def export_pdf(self, graph: ProjectedGraph, filepath: PathLike,
                   title: Optional[str] = None) -> bool:
        """Export the graph to a single-page PDF sized to fit."""
        nodes, by_id = self._visible(graph)
        if not nodes:
            logger.warning("Nothing to export to %s", filepath)
            return False

        min_x, min_y, max_x, max_y = self._bounds(nodes)
        padding = self.PAGE_PADDING
        width = max_x - min_x + padding * 2
        height = max_y - min_y + padding * 2

        surface = cairo.PDFSurface(str(filepath), width, height)
        cr = cairo.Context(surface)

        if title:
            surface.set_metadata(cairo.PDF_METADATA_TITLE, title)
        surface.set_metadata(cairo.PDF_METADATA_CREATE_DATE,
                             datetime.now().isoformat())

        cr.set_source_rgb(*self.COLORS['bg_primary'])
        cr.paint()
        cr.translate(-min_x + padding, -min_y + padding)

        self._draw(cr, graph, nodes, by_id)
        surface.finish()
        return True

    def export_svg(self, graph: ProjectedGraph, filepath: PathLike) -> bool:
        """Export the graph to SVG."""
        nodes, by_id = self._visible(graph)
        if not nodes:
            logger.warning("Nothing to export to %s", filepath)
            return False

        min_x, min_y, max_x, max_y = self._bounds(nodes)
        padding = self.PAGE_PADDING
        surface = cairo.SVGSurface(str(filepath),
                                   max_x - min_x + padding * 2,
                                   max_y - min_y + padding * 2)
        cr = cairo.Context(surface)
        cr.set_source_rgb(*self.COLORS['bg_primary'])
        cr.paint()
        cr.translate(-min_x + padding, -min_y + padding)

        self._draw(cr, graph, nodes, by_id)
        surface.finish()
        return True

    def _draw(self, cr, graph: ProjectedGraph, nodes: List[RenderNode],
              by_id: Dict[str, RenderNode]):
        for edge in graph.edges:
            parent = by_id.get(edge.source_id)
            child = by_id.get(edge.target_id)
            if parent is not None and child is not None:
                self._draw_connection(cr, parent, child, parse_hex_color(edge.color))
        for node in nodes:
            self._draw_node(cr, node)

    def _draw_connection(self, cr, parent: RenderNode, child: RenderNode,
                         color: Optional[Tuple[float, float, float]]):
        """Bezier from the parent's bottom center to the child's top center."""
        start_x = parent.x + parent.width / 2
        start_y = parent.y + parent.height
        end_x = child.x + child.width / 2
        end_y = child.y

        ctrl_dist = max(abs(end_y - start_y) * 0.5, 20)

        cr.set_source_rgba(*(color or self.COLORS['accent_primary']), 0.8)
        cr.set_line_width(2)
        cr.set_line_cap(cairo.LINE_CAP_ROUND)

        cr.move_to(start_x, start_y)
        cr.curve_to(start_x, start_y + ctrl_dist, end_x, end_y - ctrl_dist, end_x, end_y)
        cr.stroke()

    def _draw_node(self, cr, node: RenderNode):
        """Draw a single node."""
        x, y, w, h = node.x, node.y, node.width, node.height
        is_folder = node.kind is ItemKind.FOLDER

        self._draw_rounded_rect(cr, x, y, w, h, 8 if is_folder else 6)

        cr.set_source_rgb(*self.COLORS['folder_surface' if is_folder else 'surface'])
        cr.fill_preserve()

        cr.set_source_rgb(*(parse_hex_color(node.color) or self.COLORS['border_subtle']))
        cr.set_line_width(2 if node.color else 1)
        cr.stroke()

        label = node.label
        if is_folder and node.collapsed and node.child_count:
            label = f"{label} (+{node.child_count})"

        cr.set_source_rgb(*self.COLORS['text_primary'])
        cr.select_font_face("Sans", cairo.FONT_SLANT_NORMAL,
                            cairo.FONT_WEIGHT_BOLD if is_folder else cairo.FONT_WEIGHT_NORMAL)
        cr.set_font_size(13)

        extents = cr.text_extents(label)
        cr.move_to(x + self.NODE_PADDING, y + h / 2 + extents.height / 2 - 2)
        cr.show_text(label)

    def _draw_rounded_rect(self, cr, x, y, w, h, radius):
        """Draw a rounded rectangle path."""
        cr.new_path()
        cr.arc(x + w - radius, y + radius, radius, -math.pi / 2, 0)
        cr.arc(x + w - radius, y + h - radius, radius, 0, math.pi / 2)
        cr.arc(x + radius, y + h - radius, radius, math.pi / 2, math.pi)
        cr.arc(x + radius, y + radius, radius, math.pi, 3 * math.pi / 2)
        cr.close_path()


def export_markdown(items: Iterable[HierarchicalItem], filepath: PathLike,
                    title: Optional[str] = None) -> bool:
    """Export items to a nested Markdown outline.

    Top-level items become level-two headings, their children level-three
    headings, and anything deeper an indented bullet. Siblings are ordered
    by sort order, then label.
    """
    items_by_id = {item.id: item for item in items}
    if not items_by_id:
        return False

    children: Dict[Optional[str], List[HierarchicalItem]] = {}
    for item in items_by_id.values():
        children.setdefault(valid_parent_id(item, items_by_id), []).append(item)
    for siblings in children.values():
        siblings.sort(key=lambda i: (i.sort_order, i.label))

    lines = [f"# {title}", ""] if title else []
    seen = set()

    def add_item(item: HierarchicalItem, depth: int):
        if item.id in seen:
            return
        seen.add(item.id)

        label = item.label or "Untitled"
        if depth == 0:
            lines.extend([f"## {label}", ""])
        elif depth == 1:
            lines.extend([f"### {label}", ""])
        else:
            lines.append(f"{'  ' * (depth - 2)}- {label}")

        for child in children.get(item.id, []):
            add_item(child, depth + 1)

    for root in children.get(None, []):
        add_item(root, 0)

    with open(filepath, 'w', encoding='utf-8') as f:
        f.write("\n".join(lines).rstrip() + "\n")

    return True


def get_export_dir() -> Path:
    """Get the default export directory."""
    export_dir = get_data_dir() / "exports"
    export_dir.mkdir(exist_ok=True)
    return export_dir
