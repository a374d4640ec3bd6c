"""Game state defaults and helpers for the cave engine."""

from __future__ import annotations

import copy
import random
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

LOG_LIMIT = 100

RESOURCE_NAMES: Sequence[str] = (
    "wood",
    "stone",
    "food",
    "bones",
    "fur",
    "leather",
    "iron",
    "coal",
    "sulfur",
    "steel",
    "silver",
    "gold",
    "obsidian",
    "adamant",
    "moonstone",
    "black_powder",
    "torch",
)

VILLAGER_TYPES: Sequence[str] = (
    "free",
    "gatherer",
    "hunter",
    "iron_miner",
    "coal_miner",
    "sulfur_miner",
    "silver_miner",
    "gold_miner",
    "obsidian_miner",
    "adamant_miner",
    "moonstone_miner",
    "steel_forger",
)

STAT_NAMES: Sequence[str] = ("strength", "knowledge", "luck", "madness")

# Plain mapping sections that default to an empty record.
RECORD_SECTIONS: Sequence[str] = (
    "buildings",
    "tools",
    "weapons",
    "clothing",
    "relics",
    "blessings",
    "books",
    "schematics",
    "fellowship",
    "events",
    "flags",
    "buttonUpgrades",
    "triggeredEvents",
    "eventCooldowns",
)


def new_game_state() -> Dict[str, Any]:
    """Return a fresh, fully defaulted state tree."""
    state: Dict[str, Any] = {
        "resources": {name: 0 for name in RESOURCE_NAMES},
        "villagers": {name: 0 for name in VILLAGER_TYPES},
        "stats": {name: 0 for name in STAT_NAMES},
        "story": {"seen": {}},
        "tradeEstablishState": {"remainingOptions": []},
        "CM": 0,
        "log": [],
    }
    for section in RECORD_SECTIONS:
        state[section] = {}
    return state


def _numeric_record(value: Any, names: Iterable[str]) -> Dict[str, Any]:
    record = dict(value) if isinstance(value, Mapping) else {}
    for name in names:
        amount = record.get(name, 0)
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            amount = 0
        record[name] = amount
    return record


def ensure_consistency(state: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Return a copy of ``state`` with every section present and well typed.

    Unknown sections are carried over untouched so hosts can keep their own
    data next to the engine's.
    """
    source: Mapping[str, Any] = state if isinstance(state, Mapping) else {}
    fixed = copy.deepcopy(dict(source))

    fixed["resources"] = _numeric_record(fixed.get("resources"), RESOURCE_NAMES)
    fixed["villagers"] = _numeric_record(fixed.get("villagers"), VILLAGER_TYPES)
    fixed["stats"] = _numeric_record(fixed.get("stats"), STAT_NAMES)

    for section in RECORD_SECTIONS:
        if not isinstance(fixed.get(section), Mapping):
            fixed[section] = {}

    story = fixed.get("story")
    if not isinstance(story, Mapping):
        story = {}
    story = dict(story)
    if not isinstance(story.get("seen"), Mapping):
        story["seen"] = {}
    fixed["story"] = story

    trade_state = fixed.get("tradeEstablishState")
    if not isinstance(trade_state, Mapping) or not isinstance(
        trade_state.get("remainingOptions"), list
    ):
        fixed["tradeEstablishState"] = {"remainingOptions": []}

    cruel_mode = fixed.get("CM", 0)
    if isinstance(cruel_mode, bool) or not isinstance(cruel_mode, (int, float)):
        cruel_mode = 0
    fixed["CM"] = cruel_mode

    log = fixed.get("log")
    fixed["log"] = [entry for entry in log if isinstance(entry, Mapping)] if isinstance(log, list) else []
    return fixed


def log_record(entry: Any, state: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    if isinstance(entry, Mapping):
        return dict(entry)
    return entry.to_dict(state)


def append_log(
    log: Sequence[Any],
    entries: Iterable[Any],
    *,
    state: Optional[Mapping[str, Any]] = None,
    limit: int = LOG_LIMIT,
) -> List[Dict[str, Any]]:
    """Append ``entries`` to ``log`` keeping only the newest ``limit`` records."""
    combined = [log_record(entry) for entry in log]
    combined.extend(log_record(entry, state) for entry in entries)
    limit = max(int(limit), 0)
    if len(combined) > limit:
        combined = combined[len(combined) - limit :]
    return combined


def log_ids(state: Mapping[str, Any]) -> set:
    ids = set()
    for entry in state.get("log") or ():
        if isinstance(entry, Mapping) and "id" in entry:
            ids.add(entry["id"])
    return ids


def total_population(state: Mapping[str, Any]) -> int:
    villagers = state.get("villagers") or {}
    return sum(
        int(count)
        for count in villagers.values()
        if isinstance(count, (int, float)) and not isinstance(count, bool) and count > 0
    )


def kill_villagers(
    state: Mapping[str, Any], amount: int, rng: Optional[random.Random] = None
) -> Dict[str, Any]:
    """Return a ``villagers`` delta removing ``amount`` villagers.

    Deaths are taken type by type. With ``rng`` the type order is shuffled
    first so losses spread across professions.
    """
    villagers = dict(state.get("villagers") or {})
    order = [name for name in VILLAGER_TYPES if name in villagers]
    order.extend(name for name in villagers if name not in order)
    if rng is not None:
        rng.shuffle(order)

    remaining = max(int(amount), 0)
    for name in order:
        if remaining <= 0:
            break
        current = villagers.get(name) or 0
        if current > 0:
            deaths = min(remaining, current)
            villagers[name] = current - deaths
            remaining -= deaths
    return {"villagers": villagers}


def seen(state: Mapping[str, Any], marker: str) -> Any:
    return ((state.get("story") or {}).get("seen") or {}).get(marker)


def seen_markers(**markers: Any) -> Dict[str, Any]:
    """Build a ``story.seen`` delta for the given markers."""
    return {"story": {"seen": dict(markers)}}
