"""
Named monitor presets, e.g. "coding" -> "1,2".
"""
import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from .metadata import write_atomic

logger = logging.getLogger(__name__)


@dataclass
class MonitorPreset:
    """A saved monitor configuration."""
    monitors: str
    description: str = ""
    created: str = ""


class PresetStore:
    """Presets kept in a single JSON file keyed by preset name."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def list_presets(self) -> Dict[str, MonitorPreset]:
        """All presets; an unreadable file is treated as empty."""
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable presets file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring presets file %s: expected an object", self.path)
            return {}

        presets = {}
        for name, entry in data.items():
            if isinstance(entry, dict) and 'monitors' in entry:
                presets[name] = MonitorPreset(
                    monitors=str(entry['monitors']),
                    description=str(entry.get('description', "")),
                    created=str(entry.get('created', "")),
                )
        return presets

    def save(self, name: str, monitors: str, description: str = "",
             now: Optional[datetime] = None) -> MonitorPreset:
        """
        Add or replace a preset.

        Raises:
            ValueError: if name or monitors is empty
            PersistenceError: if the presets file cannot be written
        """
        name = name.strip()
        monitors = monitors.strip()
        if not name:
            raise ValueError("Preset name cannot be empty")
        if not monitors:
            raise ValueError("Preset monitors cannot be empty")

        presets = self.list_presets()
        preset = MonitorPreset(
            monitors=monitors,
            description=description,
            created=(now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S"),
        )
        presets[name] = preset

        write_atomic(self.path, json.dumps({k: asdict(v) for k, v in presets.items()}, indent=2))
        return preset

    def get(self, name: str, default: str = "all") -> str:
        """Monitors string for a preset, or default if it doesn't exist."""
        preset = self.list_presets().get(name)
        return preset.monitors if preset else default
