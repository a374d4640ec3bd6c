"""Read-only event catalog."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from cave_engine.errors import CatalogError
from cave_engine.models import EventDefinition
from cave_engine.schema import validate_events


class EventCatalog:
    """Validated mapping of event id to definition.

    Definitions are checked once on construction; a catalog that exists is
    known to be well formed. Evaluation order (priority descending, then
    declaration order) is computed here as well.
    """

    def __init__(self, events: Iterable[EventDefinition]) -> None:
        definitions = list(events)
        errors = validate_events(definitions)
        if errors:
            raise CatalogError(errors)
        self._events: Dict[str, EventDefinition] = {event.id: event for event in definitions}
        # sorted() is stable, so equal priorities keep declaration order.
        self._ordered: Tuple[EventDefinition, ...] = tuple(
            sorted(definitions, key=lambda event: -event.priority)
        )

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    def __iter__(self) -> Iterator[EventDefinition]:
        return iter(self._events.values())

    def __len__(self) -> int:
        return len(self._events)

    def get(self, event_id: str) -> Optional[EventDefinition]:
        return self._events.get(event_id)

    def ids(self) -> List[str]:
        return list(self._events)

    def by_priority(self) -> Tuple[EventDefinition, ...]:
        return self._ordered


def merge_catalogs(*groups: Tuple[str, Sequence[EventDefinition]]) -> EventCatalog:
    """Combine named groups of events into one catalog.

    Each group is a ``(name, events)`` pair; ids defined by more than one
    group are reported with the group that redefined them.
    """
    combined: List[EventDefinition] = []
    owners: Dict[str, str] = {}
    errors: List[str] = []
    for name, events in groups:
        overlap = sorted(
            {event.id for event in events if isinstance(event, EventDefinition) and event.id in owners}
        )
        if overlap:
            errors.append(f"{name}: event IDs already defined: {', '.join(overlap)}.")
        for event in events:
            if isinstance(event, EventDefinition):
                owners.setdefault(event.id, name)
        combined.extend(events)
    if errors:
        raise CatalogError(errors)
    return EventCatalog(combined)
