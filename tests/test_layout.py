"""Tests for the auto-layout engine."""

import itertools

import pytest

from mindcanvas.errors import LayoutError, NodeNotFoundError
from mindcanvas.graph import GraphIndex
from mindcanvas.items import Position, RenderEdge, Size
from mindcanvas.layout import AutoLayoutEngine, layout
from mindcanvas.spacing import LayoutOptions


def edges_for(tree):
    """{parent: [children]} -> list of edges."""
    return [RenderEdge(parent, child) for parent, kids in tree.items() for child in kids]


def overlaps(a, b, size=Size()):
    return (a.x < b.x + size.width and b.x < a.x + size.width and
            a.y < b.y + size.height and b.y < a.y + size.height)


def test_chain_stacks_vertically_under_root():
    """A -> B -> C from the origin puts every node in one column."""
    positions = layout("a", None, edges_for({"a": ["b"], "b": ["c"]}),
                       positions={"a": Position(0, 0)})

    assert positions["a"] == Position(0, 0)
    assert positions["b"] == Position(0, 120)
    assert positions["c"] == Position(0, 240)


def test_leaf_children_in_single_row():
    """Three leaves share one row centered under the root."""
    positions = layout("r", None, edges_for({"r": ["a", "b", "c"]}),
                       positions={"r": Position(0, 0)})

    assert positions["r"] == Position(0, 0)
    assert [positions[k] for k in "abc"] == [
        Position(-220, 120), Position(0, 120), Position(220, 120)
    ]


def test_many_leaves_wrap_into_balanced_rows():
    """Five leaves wrap into a row of three and a row of two."""
    kids = ["k1", "k2", "k3", "k4", "k5"]
    positions = layout("r", None, edges_for({"r": kids}), positions={"r": Position(0, 0)})

    assert [positions[k].y for k in kids] == [120, 120, 120, 180, 180]
    assert [positions[k].x for k in kids[:3]] == [-220, 0, 220]
    assert [positions[k].x for k in kids[3:]] == [-100, 120]


def test_four_leaves_make_two_rows_of_two():
    kids = ["k1", "k2", "k3", "k4"]
    positions = layout("r", None, edges_for({"r": kids}), positions={"r": Position(0, 0)})

    assert [positions[k].y for k in kids] == [120, 120, 180, 180]
    assert positions["k1"].x == positions["k3"].x
    assert positions["k2"].x == positions["k4"].x


def test_children_with_grandchildren_stay_in_one_row():
    """A single child with its own children disables row stacking."""
    tree = {"r": ["a", "b", "c", "d"], "a": ["a1"]}
    positions = layout("r", None, edges_for(tree), positions={"r": Position(0, 0)})

    assert {positions[k].y for k in "abcd"} == {120}
    assert positions["a1"].y == 240
    assert positions["a1"].x == positions["a"].x


def test_subtree_widths_reserve_space():
    engine = AutoLayoutEngine(edges_for({"r": ["a", "b"], "a": ["a1", "a2"]}))
    engine.run("r")

    # a: two leaves with a leaf gap; r: a's subtree, a subtree gap, b
    assert engine.subtree_width("a") == 420
    assert engine.subtree_width("r") == 420 + 60 + 200


def test_tall_parent_pushes_children_down():
    sizes = {"r": Size(300, 100)}
    positions = layout("r", sizes.get, edges_for({"r": ["a"]}), positions={"r": Position(0, 0)})

    assert positions["a"].y == 140


def test_zero_size_falls_back_to_defaults():
    positions = layout("r", lambda _id: Size(0, 0), edges_for({"r": ["a"]}),
                       positions={"r": Position(0, 0)})

    assert positions["a"] == Position(0, 120)


def test_root_position_is_kept():
    positions = layout("r", None, edges_for({"r": ["a"]}), positions={"r": Position(500, 300)})

    assert positions["r"] == Position(500, 300)
    assert positions["a"] == Position(500, 420)


def test_root_without_children():
    positions = layout("r", None, [], positions={"r": Position(40, 60)})
    assert positions == {"r": Position(40, 60)}


def test_layout_is_idempotent():
    tree = {"r": ["a", "b", "c"], "a": ["a1", "a2", "a3", "a4", "a5"], "b": ["b1"]}
    first = layout("r", None, edges_for(tree), positions={"r": Position(0, 0)})
    second = layout("r", None, edges_for(tree), positions={"r": Position(0, 0)})

    assert first == second


def test_laid_out_positions_are_a_fixed_point():
    """Feeding a layout back in with the root pinned changes no descendant."""
    tree = {"r": ["a", "b", "c"], "a": ["a1", "a2", "a3", "a4", "a5"], "b": ["b1"]}
    engine_input = edges_for(tree)
    first = AutoLayoutEngine(engine_input, positions={"r": Position(0, 0)}).run("r")

    again = AutoLayoutEngine(
        engine_input, positions={**first.positions, "r": Position(0, 0)}
    ).run("r")

    assert again.descendant_positions() == first.descendant_positions()


def test_no_overlap_and_parents_above_children():
    tree = {
        "r": ["a", "b", "c"],
        "a": ["a1", "a2", "a3", "a4", "a5"],
        "b": ["b1"],
        "b1": ["b11", "b12"],
    }
    positions = layout("r", None, edges_for(tree), positions={"r": Position(0, 0)})

    assert len(positions) == 12
    for first, second in itertools.combinations(positions, 2):
        assert not overlaps(positions[first], positions[second]), (first, second)
    for parent, kids in tree.items():
        for kid in kids:
            assert positions[kid].y > positions[parent].y


def test_positions_are_on_grid():
    tree = {"r": ["a", "b"], "a": ["a1", "a2", "a3", "a4"]}
    positions = layout("r", None, edges_for(tree), positions={"r": Position(0, 0)})

    for pos in positions.values():
        assert pos.x % 20 == 0
        assert pos.y % 20 == 0


def test_only_reachable_subtree_is_positioned():
    tree = {"r": ["a"], "other": ["x"]}
    positions = layout("a", None, edges_for(tree), positions={"a": Position(0, 0)})
    assert set(positions) == {"a"}


def test_cycle_in_edges_visits_each_node_once():
    edges = [("r", "a"), ("a", "b"), ("b", "r")]
    positions = layout("r", None, edges, positions={"r": Position(0, 0)})
    assert set(positions) == {"r", "a", "b"}


def test_custom_options():
    options = LayoutOptions(level_spacing=200, grid_size=10)
    positions = layout("r", None, edges_for({"r": ["a"]}), options=options,
                       positions={"r": Position(0, 0)})
    assert positions["a"].y == 200


def test_unknown_root_raises():
    with pytest.raises(NodeNotFoundError) as exc_info:
        layout("missing", None, edges_for({"r": ["a"]}))

    assert exc_info.value.node_id == "missing"
    assert isinstance(exc_info.value, LayoutError)
    assert isinstance(exc_info.value, KeyError)


def test_engine_accepts_prebuilt_index():
    index = GraphIndex.from_edges(edges_for({"r": ["a"]}))
    result = AutoLayoutEngine(index).run("r")

    assert result.root_id == "r"
    assert set(result.descendant_positions()) == {"a"}
