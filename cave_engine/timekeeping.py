"""Tick rate and trigger probability helpers for the cave engine."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from cave_engine.models import NumberOrFn, resolve_number

TICK_INTERVAL_MS = 200
MS_PER_MINUTE = 60_000
COOLDOWN_FRACTION = 0.25


def normalize_interval(value: object, default: int = TICK_INTERVAL_MS) -> int:
    try:
        interval = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return interval if interval > 0 else default


def ticks_per_minute(tick_interval_ms: int = TICK_INTERVAL_MS) -> float:
    return MS_PER_MINUTE / normalize_interval(tick_interval_ms)


def per_tick_probability(minutes: float, tick_interval_ms: int = TICK_INTERVAL_MS) -> float:
    """Chance per tick for an event expected every ``minutes`` minutes.

    At the reference 200 ms cadence there are 300 ticks per minute, so an
    event expected every 30 minutes fires with probability 1/9000.
    """
    if minutes <= 0:
        return 1.0
    return min(1.0, 1.0 / (minutes * ticks_per_minute(tick_interval_ms)))


def resolve_time_probability(value: Optional[NumberOrFn], state: Mapping[str, Any]) -> Optional[float]:
    if value is None:
        return None
    return resolve_number(value, state)


def cooldown_ms(minutes: float, fraction: float = COOLDOWN_FRACTION) -> float:
    return max(minutes, 0.0) * max(fraction, 0.0) * MS_PER_MINUTE


def cooling_down(
    last_trigger_ms: object,
    now_ms: int,
    minutes: float,
    *,
    fraction: float = COOLDOWN_FRACTION,
) -> bool:
    """True while less than ``fraction`` of the average interval has passed."""
    if last_trigger_ms is None or isinstance(last_trigger_ms, bool):
        return False
    try:
        last = float(last_trigger_ms)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return False
    return now_ms - last < cooldown_ms(minutes, fraction)
