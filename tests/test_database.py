"""Tests for the SQLite item store."""

import pytest

from conftest import folder, note

from mindcanvas.database import Database, get_db_path
from mindcanvas.items import ItemKind, Position
from mindcanvas.projector import RenderState, project
from mindcanvas.session import CanvasSession


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "items.db")
    yield database
    database.close()


@pytest.fixture
def stored(db, items):
    for item in items:
        db.save_item(item)
    return db


def test_save_and_load_items(stored):
    loaded = {item.id: item for item in stored.get_items()}

    assert set(loaded) == {"f", "n1", "n2", "loose"}
    assert loaded["f"].kind is ItemKind.FOLDER
    assert loaded["f"].color == "#ff2d2d"
    assert loaded["n1"].parent_id == "f"
    assert loaded["n1"].position is None
    assert loaded["loose"].position == Position(600, 0)


def test_save_item_upserts(stored):
    item = stored.get_item("n1")
    item.label = "Changed"
    stored.save_item(item)

    assert stored.get_item("n1").label == "Changed"
    assert len(stored.get_items()) == 4


def test_field_updates(stored):
    assert stored.save_position("n1", Position(12.5, 40))
    assert stored.save_parent("n1", None)
    assert stored.save_collapsed("f", True)
    assert stored.save_label("f", "Projects")

    n1 = stored.get_item("n1")
    assert n1.position == Position(12.5, 40)
    assert n1.parent_id is None
    assert stored.get_item("f").collapsed is True
    assert stored.get_item("f").label == "Projects"


def test_null_sort_order_still_projects(stored):
    """A row with a NULL sort order loads with the default and renders."""
    stored.conn.execute("UPDATE items SET sort_order = NULL")
    stored.conn.commit()

    loaded = stored.get_items()
    graph = project(loaded, RenderState())

    assert {item.sort_order for item in loaded} == {0}
    assert {n.id for n in graph.nodes} == {"f", "n1", "n2", "loose"}


def test_update_of_unknown_item(stored):
    assert not stored.save_position("ghost", Position(0, 0))
    assert stored.get_item("ghost") is None


def test_delete_orphans_children(stored):
    stored.delete_item("f")

    assert stored.get_item("f") is None
    assert stored.get_item("n1").parent_id is None


def test_delete_cascade(stored):
    stored.save_item(note("deep", parent_id="n1"))

    stored.delete_item("f", cascade=True)

    assert {i.id for i in stored.get_items()} == {"loose"}


def test_settings(db):
    assert db.get_setting("missing", 7) == 7

    db.set_setting("move_with_children", True)
    db.set_setting("layout", {"node_spacing": 30})

    assert db.get_setting("move_with_children") is True
    assert db.get_setting("layout") == {"node_spacing": 30}


def test_attached_session_persists_changes(stored):
    session = stored.attach(CanvasSession(stored.get_items()))

    session.drag_to("loose", Position(700, 40), dragging=False)
    session.connect("f", "loose")
    session.toggle_collapse("f")
    session.rename("n2", "Second")
    session.add_item(folder("g", x=0, y=800))
    session.remove_item("n1")

    assert stored.get_item("loose").position == Position(700, 40)
    assert stored.get_item("loose").parent_id == "f"
    assert stored.get_item("f").collapsed is True
    assert stored.get_item("n2").label == "Second"
    assert stored.get_item("g").kind is ItemKind.FOLDER
    assert stored.get_item("n1") is None


def test_reopen_keeps_data(tmp_path):
    path = tmp_path / "items.db"
    first = Database(path)
    first.save_item(note("a", x=1, y=2))
    first.close()

    second = Database(path)
    assert second.get_item("a").position == Position(1, 2)
    second.close()


def test_default_path_uses_data_dir(tmp_data_dir):
    assert get_db_path() == tmp_data_dir / "mindcanvas.db"
