"""SQLite item store for mindcanvas."""

import sqlite3
import json
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional, List, Any, TYPE_CHECKING

from mindcanvas.items import HierarchicalItem, ItemKind, Position
from mindcanvas.settings import get_data_dir

if TYPE_CHECKING:
    from mindcanvas.session import CanvasSession

logger = logging.getLogger(__name__)


def get_db_path() -> Path:
    """Get the database file path."""
    return get_data_dir() / "mindcanvas.db"


class Database:
    """Persistent store for hierarchical items."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or get_db_path()
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def _init_db(self):
        """Initialize the database schema."""
        cursor = self.conn.cursor()

        cursor.executescript("""
            -- Items table; parent_id is not a foreign key so orphans survive
            CREATE TABLE IF NOT EXISTS items (
                id TEXT PRIMARY KEY,
                kind TEXT NOT NULL DEFAULT 'note',
                parent_id TEXT,
                label TEXT NOT NULL DEFAULT '',
                color TEXT,
                position_x REAL,
                position_y REAL,
                collapsed BOOLEAN DEFAULT 0,
                sort_order INTEGER DEFAULT 0,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                modified_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );

            -- App settings table
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value JSON
            );

            CREATE INDEX IF NOT EXISTS idx_items_parent_id ON items(parent_id);
        """)

        self.conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> HierarchicalItem:
        try:
            kind = ItemKind(row["kind"])
        except ValueError:
            logger.warning("Item %s has unknown kind %r, loading it as a note", row["id"], row["kind"])
            kind = ItemKind.NOTE
        return HierarchicalItem(
            id=row["id"],
            kind=kind,
            parent_id=row["parent_id"],
            label=row["label"] or "",
            color=row["color"],
            position_x=row["position_x"],
            position_y=row["position_y"],
            collapsed=bool(row["collapsed"]),
            sort_order=row["sort_order"] or 0,
        )

    # ==================== Item Operations ====================

    def get_items(self) -> List[HierarchicalItem]:
        """Get all items, in sibling order."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM items ORDER BY sort_order, rowid")
        return [self._row_to_item(row) for row in cursor.fetchall()]

    def get_item(self, item_id: str) -> Optional[HierarchicalItem]:
        """Get an item by ID."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM items WHERE id = ?", (item_id,))
        row = cursor.fetchone()

        if not row:
            return None
        return self._row_to_item(row)

    def save_item(self, item: HierarchicalItem):
        """Insert or update an item."""
        cursor = self.conn.cursor()
        now = datetime.now().isoformat()

        cursor.execute(
            """INSERT INTO items (id, kind, parent_id, label, color, position_x, position_y,
                   collapsed, sort_order, created_at, modified_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   kind = excluded.kind, parent_id = excluded.parent_id,
                   label = excluded.label, color = excluded.color,
                   position_x = excluded.position_x, position_y = excluded.position_y,
                   collapsed = excluded.collapsed, sort_order = excluded.sort_order,
                   modified_at = excluded.modified_at""",
            (item.id, item.kind.value, item.parent_id, item.label, item.color,
             item.position_x, item.position_y, item.collapsed, item.sort_order, now, now)
        )
        self.conn.commit()

    def _update(self, item_id: str, column_sql: str, values: tuple) -> bool:
        cursor = self.conn.cursor()
        now = datetime.now().isoformat()
        cursor.execute(
            f"UPDATE items SET {column_sql}, modified_at = ? WHERE id = ?",
            values + (now, item_id)
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            logger.warning("Store update skipped: unknown item %s", item_id)
            return False
        return True

    def save_position(self, item_id: str, position: Position, kind: Optional[ItemKind] = None) -> bool:
        """Persist a node position."""
        return self._update(item_id, "position_x = ?, position_y = ?",
                            (float(position.x), float(position.y)))

    def save_parent(self, item_id: str, parent_id: Optional[str]) -> bool:
        """Persist a parent change; None moves the item to the top level."""
        return self._update(item_id, "parent_id = ?", (parent_id,))

    def save_collapsed(self, item_id: str, collapsed: bool) -> bool:
        return self._update(item_id, "collapsed = ?", (bool(collapsed),))

    def save_label(self, item_id: str, label: str) -> bool:
        return self._update(item_id, "label = ?", (label,))

    def delete_item(self, item_id: str, cascade: bool = False):
        """Delete an item.

        Without cascade its children move to the top level; with cascade the
        whole subtree is removed.
        """
        cursor = self.conn.cursor()
        now = datetime.now().isoformat()

        if cascade:
            cursor.execute(
                """WITH RECURSIVE subtree(id) AS (
                       SELECT ?
                       UNION SELECT items.id FROM items JOIN subtree ON items.parent_id = subtree.id
                   )
                   DELETE FROM items WHERE id IN (SELECT id FROM subtree)""",
                (item_id,)
            )
        else:
            cursor.execute(
                "UPDATE items SET parent_id = NULL, modified_at = ? WHERE parent_id = ?",
                (now, item_id)
            )
            cursor.execute("DELETE FROM items WHERE id = ?", (item_id,))

        self.conn.commit()

    # ==================== Settings Operations ====================

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get an application setting."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cursor.fetchone()

        if not row:
            return default

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            return default

    def set_setting(self, key: str, value: Any):
        """Set an application setting."""
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
            (key, json.dumps(value))
        )
        self.conn.commit()

    # ==================== Session Wiring ====================

    def attach(self, session: "CanvasSession") -> "CanvasSession":
        """Persist a session's changes through its callbacks."""
        session.on_position_change = self.save_position
        session.on_parent_change = self.save_parent
        session.on_collapse_change = self.save_collapsed
        session.on_label_change = self.save_label
        session.on_item_added = self.save_item
        # Children were already reparented through on_parent_change
        session.on_item_removed = self.delete_item
        return session
