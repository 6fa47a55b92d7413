"""Settings, data directory and logging setup for mindcanvas."""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union
from dataclasses import dataclass, field, asdict

from mindcanvas.spacing import DEFAULT_NODE_WIDTH, DEFAULT_NODE_HEIGHT, LayoutOptions

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_data_dir() -> Path:
    """Get the application data directory."""
    override = os.environ.get("MINDCANVAS_DATA_DIR")
    if override:
        data_dir = Path(override).expanduser()
    else:
        data_dir = Path.home() / ".local" / "share" / "mindcanvas"
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "exports").mkdir(exist_ok=True)
    return data_dir


@dataclass
class CanvasSettings:
    """Session-wide behavior of the canvas core."""
    move_with_children: bool = False
    min_distance: float = 140.0
    spacing_x: float = 260.0
    spacing_y: float = 180.0
    spiral_rings: int = 6
    root_origin_y: float = 50.0
    default_node_width: float = DEFAULT_NODE_WIDTH
    default_node_height: float = DEFAULT_NODE_HEIGHT
    max_undo: int = 50
    max_redo: int = 50
    layout: LayoutOptions = field(default_factory=LayoutOptions)

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, data: Optional[str]) -> "CanvasSettings":
        if not data:
            return cls()
        try:
            d = json.loads(data)
            known = {f.name for f in cls.__dataclass_fields__.values()}
            values = {k: v for k, v in d.items() if k in known}
            if "layout" in values:
                values["layout"] = LayoutOptions.from_json(json.dumps(values["layout"]))
            return cls(**values)
        except (json.JSONDecodeError, TypeError, AttributeError):
            return cls()


def load_settings(path: Optional[Path] = None) -> CanvasSettings:
    """Read settings from disk, falling back to defaults."""
    path = path or get_data_dir() / SETTINGS_FILE
    try:
        return CanvasSettings.from_json(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return CanvasSettings()
    except OSError as exc:
        logger.warning("Could not read settings from %s: %s", path, exc)
        return CanvasSettings()


def save_settings(settings: CanvasSettings, path: Optional[Path] = None) -> Path:
    """Write settings to disk and return the file path."""
    path = path or get_data_dir() / SETTINGS_FILE
    path.write_text(settings.to_json(), encoding="utf-8")
    return path


def configure_logging(level: Union[int, str, None] = None) -> None:
    """Send mindcanvas logs to stderr.

    The level defaults to $MINDCANVAS_LOG_LEVEL, then WARNING.
    """
    if level is None:
        level = os.environ.get("MINDCANVAS_LOG_LEVEL", "WARNING")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    package_logger = logging.getLogger("mindcanvas")
    package_logger.setLevel(level)
    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.NullHandler)
               for h in package_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)
