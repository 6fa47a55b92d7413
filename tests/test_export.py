"""Tests for graph export."""

import pytest

from conftest import folder, note

from mindcanvas.projector import ProjectedGraph, RenderState, project

cairo = pytest.importorskip("cairo")

from mindcanvas.export import GraphExporter, export_markdown, parse_hex_color  # noqa: E402


@pytest.fixture
def graph(items):
    return project(items, RenderState())


def test_png_export(graph, tmp_path):
    path = tmp_path / "map.png"

    assert GraphExporter().export_png(graph, path, scale=1.0)

    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
    surface = cairo.ImageSurface.create_from_png(str(path))
    # Nodes span 800 x 400 plus 50px padding on each side
    assert (surface.get_width(), surface.get_height()) == (900, 500)


def test_pdf_and_svg_export(graph, tmp_path):
    exporter = GraphExporter()

    assert exporter.export_pdf(graph, tmp_path / "map.pdf", title="Map")
    assert exporter.export_svg(graph, tmp_path / "map.svg")

    assert (tmp_path / "map.pdf").read_bytes().startswith(b"%PDF")
    assert "<svg" in (tmp_path / "map.svg").read_text()


def test_hidden_nodes_are_not_exported(items, tmp_path):
    items[0].collapsed = True
    graph = project(items, RenderState())
    path = tmp_path / "collapsed.png"

    assert GraphExporter().export_png(graph, path, scale=1.0)

    surface = cairo.ImageSurface.create_from_png(str(path))
    # Only the folder and the loose note remain
    assert (surface.get_width(), surface.get_height()) == (900, 140)


def test_empty_graph_is_not_exported(tmp_path):
    empty = ProjectedGraph(nodes=[], edges=())
    exporter = GraphExporter()

    assert not exporter.export_png(empty, tmp_path / "empty.png")
    assert not exporter.export_pdf(empty, tmp_path / "empty.pdf")
    assert not exporter.export_svg(empty, tmp_path / "empty.svg")
    assert not (tmp_path / "empty.png").exists()


def test_markdown_outline(tmp_path):
    items = [
        folder("p", sort_order=0),
        folder("q", parent_id="p"),
        note("z", parent_id="q", label="Zeta"),
        note("a", parent_id="q", label="Alpha"),
        note("deep", parent_id="q"),
        note("solo", sort_order=1),
    ]
    items[4].parent_id = "z"
    path = tmp_path / "map.md"

    assert export_markdown(items, path, title="Map")

    assert path.read_text(encoding="utf-8").splitlines() == [
        "# Map",
        "",
        "## P",
        "",
        "### Q",
        "",
        "- Alpha",
        "- Zeta",
        "  - DEEP",
        "## SOLO",
    ]


def test_markdown_without_items(tmp_path):
    assert not export_markdown([], tmp_path / "empty.md")


def test_parse_hex_color():
    assert parse_hex_color("#ff0000") == (1.0, 0.0, 0.0)
    assert parse_hex_color("#fff") == (1.0, 1.0, 1.0)
    assert parse_hex_color("red") is None
    assert parse_hex_color("#zzzzzz") is None
    assert parse_hex_color(None) is None
