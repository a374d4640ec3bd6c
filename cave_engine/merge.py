"""Partial state update reducer for the cave engine."""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Mapping, Optional

# Sections whose sub-records merge one extra level. ``None`` means every
# sub-record of the section; otherwise only the listed sub-keys.
DEEP_MERGE_SECTIONS: Mapping[str, Optional[FrozenSet[str]]] = {
    "buttonUpgrades": None,
    "story": frozenset({"seen"}),
}

# Sections whose numeric values may never drop below zero.
CLAMPED_SECTIONS = ("resources",)


def is_record(value: Any) -> bool:
    return isinstance(value, Mapping)


def clamp_non_negative(values: Mapping[str, Any]) -> Dict[str, Any]:
    clamped: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value < 0:
            clamped[key] = 0
        else:
            clamped[key] = value
    return clamped


def _merges_deeper(section: str, sub_key: str) -> bool:
    if section not in DEEP_MERGE_SECTIONS:
        return False
    sub_keys = DEEP_MERGE_SECTIONS[section]
    return sub_keys is None or sub_key in sub_keys


def _merge_section(section: str, previous: Mapping[str, Any], update: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(previous)
    for sub_key, value in update.items():
        existing = merged.get(sub_key)
        if _merges_deeper(section, sub_key) and is_record(value) and is_record(existing):
            merged[sub_key] = {**existing, **value}
        else:
            merged[sub_key] = value
    return merged


def merge_updates(prev_state: Mapping[str, Any], delta: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the merged value of every top-level section named in ``delta``.

    Records merge one level into the previous record; lists, primitives and
    ``None`` replace the previous value outright. Neither argument is
    modified. Untouched subtrees are shared with ``prev_state``.
    """
    merged: Dict[str, Any] = {}
    for key, value in delta.items():
        previous = prev_state.get(key)
        if is_record(value) and is_record(previous):
            merged[key] = _merge_section(key, previous, value)
        elif is_record(value):
            merged[key] = dict(value)
        else:
            merged[key] = value

    for section in CLAMPED_SECTIONS:
        if is_record(merged.get(section)):
            merged[section] = clamp_non_negative(merged[section])
    return merged


def merge_state(prev_state: Mapping[str, Any], delta: Mapping[str, Any]) -> Dict[str, Any]:
    """Apply ``delta`` to ``prev_state`` and return the new state."""
    new_state = dict(prev_state)
    new_state.update(merge_updates(prev_state, delta))
    return new_state
