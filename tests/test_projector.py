"""Tests for projecting items into the render graph."""

import logging

from conftest import folder, note

from mindcanvas.items import ItemKind, Position, PositionAuthority, Size
from mindcanvas.projector import RenderState, project


def test_projection_builds_nodes_and_edges(items):
    state = RenderState()
    graph = project(items, state)

    # Stable sort by sort_order
    assert [n.id for n in graph.nodes] == ["f", "n1", "loose", "n2"]
    assert [(e.source_id, e.target_id) for e in graph.edges] == [("f", "n1"), ("f", "n2")]
    assert all(e.color == "#ff2d2d" for e in graph.edges)
    assert graph.node("f").child_count == 2
    assert graph.node("f").kind is ItemKind.FOLDER
    assert graph.node("n1").label == "N1"


def test_stored_positions_seed_and_unplaced_items_get_free_slots(items):
    graph = project(items, RenderState())

    assert graph.node("f").position == Position(0, 0)
    assert graph.node("loose").position == Position(600, 0)
    assert graph.node("n1").position == Position(0, 180)
    assert graph.node("n2").position == Position(0, 360)
    assert all(n.authority is PositionAuthority.SEEDED for n in graph.nodes)


def test_live_positions_survive_reprojection(items):
    state = RenderState()
    project(items, state)
    state.get("f").move_to(Position(40, 40))

    items[0].position_x = 999
    items[0].label = "Renamed"
    graph = project(items, state)

    node = graph.node("f")
    assert node.position == Position(40, 40)
    assert node.authority is PositionAuthority.LIVE
    assert node.label == "Renamed"


def test_node_identity_is_kept(items):
    state = RenderState()
    project(items, state)
    before = state.get("n1")

    project(items, state)

    assert state.get("n1") is before


def test_collapsed_folder_hides_children_and_their_edges(items):
    items[0].collapsed = True
    state = RenderState()
    graph = project(items, state)

    assert [n.id for n in graph.visible_nodes] == ["f", "loose"]
    assert graph.node("n1").hidden
    assert graph.edges == ()
    assert len(state.links) == 2
    assert state.index.descendants("f") == ["n1", "n2"]


def test_unknown_parent_becomes_root(caplog):
    with caplog.at_level(logging.WARNING, logger="mindcanvas"):
        graph = project([note("orphan", parent_id="gone", x=0, y=0)], RenderState())

    assert graph.edges == ()
    assert graph.node("orphan").hidden is False
    assert "unknown parent" in caplog.text


def test_removed_items_are_dropped(items):
    state = RenderState()
    project(items, state)

    graph = project(items[:1], state)

    assert [n.id for n in graph.nodes] == ["f"]
    assert graph.node("f").child_count == 0


def test_sizes_come_from_lookup(items):
    sizes = {"f": Size(320, 64)}
    graph = project(items, RenderState(), size_lookup=sizes.get)

    assert graph.node("f").size == Size(320, 64)
    assert graph.node("n1").size == Size(200, 40)


def test_sort_order_controls_sibling_order():
    items = [
        folder("f", x=0, y=0),
        note("b", parent_id="f", sort_order=2),
        note("a", parent_id="f", sort_order=1),
    ]
    graph = project(items, RenderState())

    assert [e.target_id for e in graph.edges] == ["a", "b"]


def test_edges_revision_changes_on_every_projection(items):
    state = RenderState()
    project(items, state)
    revision = state.edges_revision

    project(items, state)
    assert state.edges_revision > revision

    state.refresh_edges()
    assert state.edges_revision == revision + 2


def test_node_at(items):
    state = RenderState()
    project(items, state)

    assert state.node_at(10, 10).id == "f"
    assert state.node_at(10, 10, exclude="f") is None
    assert state.node_at(5000, 5000) is None
