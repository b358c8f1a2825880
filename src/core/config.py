"""
Runtime configuration for capture sessions.

Values come from dataclass defaults, optionally overridden by
TASK_TRACKER_* environment variables, then by command-line flags.
"""
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError


ENV_PREFIX = "TASK_TRACKER_"


@dataclass
class TrackerConfig:
    """Configuration for a capture session."""
    # Root directory; each session gets a subdirectory named by its id
    output_dir: Path = Path("task_captures")

    # Seconds between capture ticks
    capture_interval: int = 30

    # Monitor spec: "all", "primary", or a comma-separated list like "1,2"
    monitors: str = "all"

    # Number of screenshots picked for the review
    sample_count: int = 5

    presets_file: Path = Path("monitor_presets.json")
    log_level: str = "INFO"

    def validate(self) -> "TrackerConfig":
        """Raise ConfigurationError if any value is out of range."""
        if self.capture_interval < 1:
            raise ConfigurationError(
                f"Capture interval must be a positive number of seconds, got {self.capture_interval}"
            )
        if self.sample_count < 1:
            raise ConfigurationError(
                f"Sample count must be at least 1, got {self.sample_count}"
            )
        return self

    def with_overrides(self, **overrides) -> "TrackerConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "output_dir" in changes:
            changes["output_dir"] = Path(changes["output_dir"])
        if "presets_file" in changes:
            changes["presets_file"] = Path(changes["presets_file"])
        return replace(self, **changes).validate()

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "TrackerConfig":
        """Build a config from defaults plus TASK_TRACKER_* variables."""
        env = os.environ if environ is None else environ
        config = cls()

        def _get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value.strip() if value is not None and value.strip() else None

        def _int(name: str) -> Optional[int]:
            value = _get(name)
            if value is None:
                return None
            try:
                return int(value)
            except ValueError:
                raise ConfigurationError(
                    f"{ENV_PREFIX}{name} must be an integer, got {value!r}"
                )

        return config.with_overrides(
            output_dir=_get("OUTPUT_DIR"),
            capture_interval=_int("INTERVAL"),
            monitors=_get("MONITORS"),
            sample_count=_int("SAMPLE_COUNT"),
            presets_file=_get("PRESETS_FILE"),
            log_level=(_get("LOG_LEVEL") or "").upper() or None,
        )


DEFAULT_CONFIG = TrackerConfig()
