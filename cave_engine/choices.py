"""Resolution of player (and timer) choices against logged prompts."""

from __future__ import annotations

import random
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from cave_engine.catalog import EventCatalog
from cave_engine.errors import guarded
from cave_engine.models import ChoiceRestorer, EventChoice, EventDefinition, LogEntry, State, StateDelta


def entry_id(entry: Any) -> Optional[str]:
    if entry is None:
        return None
    if isinstance(entry, Mapping):
        return entry.get("id")
    return getattr(entry, "id", None)


def record_choices(entry: Any) -> List[Mapping[str, Any]]:
    """Choice summaries stored on a serialised log record."""
    if not isinstance(entry, Mapping):
        return []
    return [choice for choice in entry.get("choices") or () if isinstance(choice, Mapping)]


def prune_log(log: Sequence[Any], removed_id: Optional[str]) -> List[Any]:
    if removed_id is None:
        return list(log)
    return [entry for entry in log if entry_id(entry) != removed_id]


class ChoiceResolver:
    """Turns a chosen option into a state delta.

    Misses (unknown event, unknown choice) resolve to an empty delta so a
    stale prompt or a late timer never raises. A prompt may be passed as
    the live :class:`LogEntry` or as its record from ``state["log"]``; a
    record's generated choices are rebuilt through the event's restorer.
    """

    def __init__(
        self,
        catalog: EventCatalog,
        rng: Optional[random.Random] = None,
        restorers: Optional[Mapping[str, ChoiceRestorer]] = None,
    ) -> None:
        self.catalog = catalog
        self.rng = rng if rng is not None else random.Random()
        self.restorers: Dict[str, ChoiceRestorer] = dict(restorers or {})

    def restore_choices(
        self, definition: EventDefinition, records: Sequence[Mapping[str, Any]]
    ) -> Tuple[EventChoice, ...]:
        if not records:
            return ()
        restorer = self.restorers.get(definition.id)
        if restorer is None and definition.choices is not None:
            restorer = definition.choices.restorer
        if restorer is not None:
            return tuple(guarded(definition.id, "choice restore", restorer, records))
        presented = {record.get("id") for record in records}
        return tuple(choice for choice in definition.static_choices if choice.id in presented)

    def entry_choices(self, definition: EventDefinition, entry: Any) -> Tuple[EventChoice, ...]:
        if isinstance(entry, LogEntry):
            return tuple(entry.choices)
        return self.restore_choices(definition, record_choices(entry))

    def find_choice(
        self,
        definition: EventDefinition,
        choice_id: str,
        current_log_entry: Any = None,
    ) -> Optional[EventChoice]:
        choices = self.entry_choices(definition, current_log_entry) or definition.static_choices
        for choice in choices:
            if choice.id == choice_id:
                return choice
        fallback = definition.fallback_choice
        if fallback is not None and fallback.id == choice_id:
            return fallback
        return None

    def find_fallback(self, definition: EventDefinition, current_log_entry: Any = None) -> Optional[EventChoice]:
        if isinstance(current_log_entry, LogEntry) and current_log_entry.fallback_choice is not None:
            return current_log_entry.fallback_choice
        return definition.fallback_choice

    def apply_event_choice(
        self,
        state: State,
        choice_id: str,
        event_id: str,
        current_log_entry: Any = None,
    ) -> StateDelta:
        definition = self.catalog.get(event_id)
        if definition is None:
            return {}
        choice = self.find_choice(definition, choice_id, current_log_entry)
        if choice is None:
            return {}
        return self._run(state, definition, choice, current_log_entry)

    def apply_fallback(self, state: State, event_id: str, current_log_entry: Any = None) -> StateDelta:
        """Resolve a prompt whose countdown ran out.

        The fallback effect always runs here, even when a presented choice
        shares its id.
        """
        definition = self.catalog.get(event_id)
        if definition is None:
            return {}
        fallback = self.find_fallback(definition, current_log_entry)
        if fallback is None:
            return {}
        return self._run(state, definition, fallback, current_log_entry)

    def _run(
        self,
        state: State,
        definition: EventDefinition,
        choice: EventChoice,
        current_log_entry: Any,
    ) -> StateDelta:
        result = guarded(definition.id, f"choice '{choice.id}'", choice.effect, state, self.rng)
        delta: Dict[str, Any] = dict(result or {})
        delta["log"] = prune_log(state.get("log") or (), entry_id(current_log_entry))
        return delta
