"""Stat and chance helpers shared by event content."""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Optional, Tuple

# Bonuses granted by owned items, keyed by (section, item).
ITEM_STAT_BONUSES: Mapping[Tuple[str, str], Mapping[str, int]] = {
    ("clothing", "ravenfeather_mantle"): {"luck": 5, "strength": 2},
    ("clothing", "tarnished_amulet"): {"luck": 2},
    ("clothing", "bloodstained_belt"): {"strength": 5},
    ("relics", "muttering_amulet"): {"knowledge": 5, "madness": 3},
    ("relics", "blackened_mirror"): {"knowledge": 10, "madness": 5},
    ("relics", "elder_scroll"): {"knowledge": 5},
    ("relics", "coin_of_drowned"): {"luck": 3, "madness": 2},
    ("relics", "shadow_flute"): {"madness": 4},
}


def _stat_bonus(state: Mapping[str, Any], stat: str) -> int:
    bonus = 0
    for (section, item), bonuses in ITEM_STAT_BONUSES.items():
        if (state.get(section) or {}).get(item):
            bonus += bonuses.get(stat, 0)
    return bonus


def total_stat(state: Mapping[str, Any], stat: str) -> int:
    base = (state.get("stats") or {}).get(stat) or 0
    total = base + _stat_bonus(state, stat)
    if stat == "madness":
        return max(total, 0)
    return total


def calculate_success_chance(
    state: Mapping[str, Any],
    base_chance: float,
    first: Optional[Tuple[str, float]] = None,
    second: Optional[Tuple[str, float]] = None,
    cm_multiplier: float = -0.05,
) -> float:
    """Base chance adjusted by up to two ``(stat, multiplier)`` pairs and cruel mode.

    The result is not clamped; callers compare it against a uniform draw.
    """
    chance = base_chance
    for pair in (first, second):
        if pair is None:
            continue
        stat, multiplier = pair
        chance += total_stat(state, stat) * multiplier
    chance += (state.get("CM") or 0) * cm_multiplier
    return chance


def discounted_cost(state: Mapping[str, Any], cost: int) -> int:
    """Trade price after the knowledge discount (1 % per point, 99 % at most)."""
    knowledge = total_stat(state, "knowledge")
    return math.ceil(cost * max(0.01, 1 - knowledge * 0.01))


def resource(state: Mapping[str, Any], name: str) -> int:
    return (state.get("resources") or {}).get(name) or 0


def building(state: Mapping[str, Any], name: str) -> int:
    return (state.get("buildings") or {}).get(name) or 0


def adjust_resources(state: Mapping[str, Any], **changes: int) -> Dict[str, Any]:
    """Build a ``resources`` delta adding ``changes`` to the current amounts."""
    return {"resources": {name: resource(state, name) + amount for name, amount in changes.items()}}


def owns(state: Mapping[str, Any], item: str) -> Optional[str]:
    """Section (``clothing`` or ``relics``) holding ``item``, if owned."""
    for section in ("clothing", "relics"):
        if (state.get(section) or {}).get(item):
            return section
    return None
