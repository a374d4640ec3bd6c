"""Tick-driven event evaluation for the cave engine."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from cave_engine.catalog import EventCatalog
from cave_engine.choices import ChoiceResolver, record_choices
from cave_engine.errors import guarded
from cave_engine.models import ChoiceGenerator, ChoiceRestorer, EventChoice, EventDefinition, LogEntry, State, StateDelta
from cave_engine.state import log_ids
from cave_engine.timekeeping import (
    COOLDOWN_FRACTION,
    TICK_INTERVAL_MS,
    cooling_down,
    normalize_interval,
    per_tick_probability,
    resolve_time_probability,
)

MERCHANT_EVENT_ID = "merchant"

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TickResult:
    """Outcome of one evaluation pass: at most one fired event."""

    new_log_entries: Tuple[LogEntry, ...] = ()
    state_changes: Dict[str, Any] = field(default_factory=dict)
    event_id: Optional[str] = None

    @property
    def fired(self) -> bool:
        return self.event_id is not None


class EventManager:
    """Evaluates the catalog once per tick.

    Events are scanned by descending priority and the scan stops at the
    first event that fires. Probabilistic events draw exactly one sample
    from ``rng`` per evaluation. Failures in authored code surface as
    :class:`~cave_engine.errors.EventFault` and no partial result is
    returned.
    """

    def __init__(
        self,
        catalog: EventCatalog,
        *,
        rng: Optional[random.Random] = None,
        clock: Optional[Clock] = None,
        choice_generators: Optional[Mapping[str, ChoiceGenerator]] = None,
        choice_restorers: Optional[Mapping[str, ChoiceRestorer]] = None,
        tick_interval_ms: int = TICK_INTERVAL_MS,
        cooldown_fraction: float = COOLDOWN_FRACTION,
    ) -> None:
        self.catalog = catalog
        self.rng = rng if rng is not None else random.Random()
        self.clock: Clock = clock if clock is not None else wall_clock_ms
        self.choice_generators: Dict[str, ChoiceGenerator] = dict(choice_generators or {})
        self.tick_interval_ms = normalize_interval(tick_interval_ms)
        self.cooldown_fraction = max(float(cooldown_fraction), 0.0)
        self.resolver = ChoiceResolver(catalog, rng=self.rng, restorers=choice_restorers)

    # ---------- Public API ----------

    def check_events(self, state: State) -> TickResult:
        now = int(self.clock())
        triggered = state.get("triggeredEvents") or {}
        cooldowns = state.get("eventCooldowns") or {}

        for event in self.catalog.by_priority():
            if not event.repeatable and triggered.get(event.id):
                continue
            if not guarded(event.id, "condition", event.condition, state):
                continue
            minutes = guarded(
                event.id, "time_probability", resolve_time_probability, event.time_probability, state
            )
            if minutes is not None:
                if cooling_down(cooldowns.get(event.id), now, minutes, fraction=self.cooldown_fraction):
                    continue
                if self.rng.random() >= per_tick_probability(minutes, self.tick_interval_ms):
                    continue
            return self._fire(event, state, now)
        return TickResult()

    def trigger_event(self, state: State, event_id: str) -> TickResult:
        """Fire ``event_id`` now, skipping its condition and probability.

        Used for action-triggered events such as discoveries during
        exploration. Non-repeatable events that already fired stay quiet.
        """
        event = self.catalog.get(event_id)
        if event is None:
            return TickResult()
        triggered = state.get("triggeredEvents") or {}
        if not event.repeatable and triggered.get(event.id):
            return TickResult()
        return self._fire(event, state, int(self.clock()))

    def apply_event_choice(
        self,
        state: State,
        choice_id: str,
        event_id: str,
        current_log_entry: Any = None,
    ) -> StateDelta:
        return self.resolver.apply_event_choice(state, choice_id, event_id, current_log_entry)

    def apply_fallback(self, state: State, event_id: str, current_log_entry: Any = None) -> StateDelta:
        return self.resolver.apply_fallback(state, event_id, current_log_entry)

    def restore_entry(self, record: Mapping[str, Any]) -> Optional[LogEntry]:
        """Rebuild the live entry for a prompt read back from ``state["log"]``.

        Returns ``None`` for records that do not belong to a catalog event.
        """
        event_id = record.get("eventId")
        definition = self.catalog.get(event_id) if isinstance(event_id, str) else None
        if definition is None or not isinstance(record.get("id"), str):
            return None
        choices = self.resolver.restore_choices(definition, record_choices(record))
        base_decision_time = record.get("baseDecisionTime", definition.base_decision_time)
        return LogEntry(
            id=record["id"],
            message=str(record.get("message") or ""),
            timestamp=int(record.get("timestamp") or 0),
            type=str(record.get("type") or "event"),
            event_id=definition.id,
            title=record.get("title", definition.title),
            choices=choices,
            is_timed_choice=bool(record.get("isTimedChoice", definition.is_timed_choice)),
            base_decision_time=base_decision_time,
            fallback_choice=definition.fallback_choice,
            relevant_stats=tuple(record.get("relevantStats") or definition.relevant_stats),
            visual_effect=definition.visual_effect,
            skip_sound=bool(record.get("skipSound", definition.skip_sound)),
        )

    # ---------- Internals ----------

    def _choices_for(self, event: EventDefinition, state: State) -> Tuple[EventChoice, ...]:
        generator = self.choice_generators.get(event.id)
        if generator is not None:
            return tuple(guarded(event.id, "choice generation", generator, state, self.rng))
        if event.choices is None:
            return ()
        return guarded(event.id, "choice generation", event.choices.resolve, state, self.rng)

    def _entry_id(self, event_id: str, now: int, state: State) -> str:
        existing = log_ids(state)
        stamp = now
        candidate = f"{event_id}-{stamp}"
        while candidate in existing:
            stamp += 1
            candidate = f"{event_id}-{stamp}"
        return candidate

    def _fire(self, event: EventDefinition, state: State, now: int) -> TickResult:
        choices = self._choices_for(event, state)
        message = guarded(event.id, "message", event.message_for, state, self.rng)
        entry = LogEntry(
            id=self._entry_id(event.id, now, state),
            message=message,
            timestamp=now,
            type="event",
            event_id=event.id,
            title=event.title,
            choices=choices,
            is_timed_choice=event.is_timed_choice,
            base_decision_time=event.base_decision_time,
            fallback_choice=event.fallback_choice,
            relevant_stats=event.relevant_stats,
            visual_effect=event.visual_effect,
            skip_sound=event.skip_sound,
        )

        changes: Dict[str, Any] = {}
        if not choices and event.effect is not None:
            changes.update(guarded(event.id, "effect", event.effect, state, self.rng) or {})

        if not event.repeatable:
            changes["triggeredEvents"] = {**(changes.get("triggeredEvents") or {}), event.id: True}
        if event.time_probability is not None:
            changes["eventCooldowns"] = {**(changes.get("eventCooldowns") or {}), event.id: now}

        return TickResult(new_log_entries=(entry,), state_changes=changes, event_id=event.id)
