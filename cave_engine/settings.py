"""Engine settings persistence for the cave engine."""

from __future__ import annotations

import json
import os
import sys
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from cave_engine.state import LOG_LIMIT
from cave_engine.timekeeping import COOLDOWN_FRACTION, TICK_INTERVAL_MS

_BASE_DIR = Path(__file__).resolve().parent.parent
SETTINGS_PATH = _BASE_DIR / "engine_settings.json"


def _clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


@dataclass
class Settings:
    """Tunables for the tick loop that persist between sessions."""

    tick_interval_ms: int = TICK_INTERVAL_MS
    log_limit: int = LOG_LIMIT
    cooldown_fraction: float = COOLDOWN_FRACTION
    decision_time_scale: float = 1.0
    rng_seed: Optional[int] = None

    def clamp(self) -> "Settings":
        self.tick_interval_ms = int(_clamp(int(self.tick_interval_ms), 50, 5000))
        self.log_limit = int(_clamp(int(self.log_limit), 10, 1000))
        self.cooldown_fraction = _clamp(float(self.cooldown_fraction), 0.0, 1.0)
        self.decision_time_scale = _clamp(float(self.decision_time_scale), 0.25, 4.0)
        if self.rng_seed is not None:
            self.rng_seed = int(self.rng_seed)
        return self

    def copy(self) -> "Settings":
        return Settings.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None) -> "Settings":
        if not isinstance(data, dict):
            return cls()

        def _as_float(key: str, default: float) -> float:
            try:
                return float(data.get(key, default))
            except (TypeError, ValueError):
                return default

        def _as_int(key: str, default: int) -> int:
            value = data.get(key, default)
            if isinstance(value, bool):
                return default
            try:
                return int(value)
            except (TypeError, ValueError):
                return default

        seed = data.get("rng_seed")
        if isinstance(seed, bool):
            seed = None
        elif seed is not None:
            try:
                seed = int(seed)
            except (TypeError, ValueError):
                seed = None

        settings = cls(
            tick_interval_ms=_as_int("tick_interval_ms", TICK_INTERVAL_MS),
            log_limit=_as_int("log_limit", LOG_LIMIT),
            cooldown_fraction=_as_float("cooldown_fraction", COOLDOWN_FRACTION),
            decision_time_scale=_as_float("decision_time_scale", 1.0),
            rng_seed=seed,
        )
        return settings.clamp()


def load_settings(path: Path | str = SETTINGS_PATH) -> Settings:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        return Settings()
    except (OSError, json.JSONDecodeError, TypeError):
        return Settings()
    return Settings.from_dict(data)


def save_settings(settings: Settings, path: Path | str = SETTINGS_PATH) -> Settings:
    path = Path(path)
    sanitized = settings.copy().clamp()
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", delete=False, dir=path.parent, prefix=path.name, suffix=".tmp", encoding="utf-8"
        ) as tmp_file:
            json.dump(sanitized.to_dict(), tmp_file, indent=2)
            tmp_file.write("\n")
            tmp_path = Path(tmp_file.name)
        os.replace(str(tmp_path), str(path))
    except OSError as exc:
        print(f"[Settings] Failed to save settings: {exc}", file=sys.stderr)
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except OSError:
                pass
    return sanitized
