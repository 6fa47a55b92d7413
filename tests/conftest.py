"""Shared fixtures for mindcanvas tests."""

import pytest

from mindcanvas.items import HierarchicalItem, ItemKind
from mindcanvas.session import CanvasSession


def folder(item_id, parent_id=None, x=None, y=None, collapsed=False, **kwargs):
    kwargs.setdefault("label", item_id.upper())
    return HierarchicalItem(id=item_id, kind=ItemKind.FOLDER, parent_id=parent_id,
                            position_x=x, position_y=y, collapsed=collapsed, **kwargs)


def note(item_id, parent_id=None, x=None, y=None, **kwargs):
    kwargs.setdefault("label", item_id.upper())
    return HierarchicalItem(id=item_id, kind=ItemKind.NOTE, parent_id=parent_id,
                            position_x=x, position_y=y, **kwargs)


@pytest.fixture
def items():
    """A folder F at the origin holding two unplaced notes, plus a loose note."""
    return [
        folder("f", x=0, y=0, color="#ff2d2d"),
        note("n1", parent_id="f", sort_order=0),
        note("n2", parent_id="f", sort_order=1),
        note("loose", x=600, y=0),
    ]


@pytest.fixture
def session(items):
    return CanvasSession(items)


@pytest.fixture
def tmp_data_dir(tmp_path, monkeypatch):
    """Point the data directory at a temporary path."""
    data_dir = tmp_path / "data"
    monkeypatch.setenv("MINDCANVAS_DATA_DIR", str(data_dir))
    return data_dir
