"""Event, choice and log entry types for the cave engine."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

State = Mapping[str, Any]
StateDelta = Dict[str, Any]
Condition = Callable[[State], bool]
Effect = Callable[[State, random.Random], StateDelta]
ChoiceGenerator = Callable[[State, random.Random], Sequence["EventChoice"]]
# Rebuilds generated choices from the summaries stored in a serialised log record.
ChoiceRestorer = Callable[[Sequence[Mapping[str, Any]]], Sequence["EventChoice"]]
Text = Union[str, Callable[[State], str]]
Number = Union[int, float]
NumberOrFn = Union[Number, Callable[[State], Number]]
Message = Union[str, Sequence[str], Callable[[State], str]]

TRIGGER_TYPES = ("time", "resource", "random", "action")
LOG_TYPES = ("event", "action", "system", "production")
VISUAL_EFFECT_TYPES = ("glow", "pulse")


def resolve_text(value: Text, state: State) -> str:
    if callable(value):
        return str(value(state))
    return value


def resolve_number(value: NumberOrFn, state: State) -> float:
    if callable(value):
        return float(value(state))
    return float(value)


@dataclass(frozen=True)
class VisualEffect:
    """Presentation hint attached to an event's log entry."""

    type: str = "glow"
    duration: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "duration": self.duration}


@dataclass(frozen=True)
class TradeOffer:
    """Machine-readable terms of a trade choice."""

    give_resource: str
    give_amount: int
    cost_resource: str
    cost_amount: int

    def affordable(self, state: State) -> bool:
        resources = state.get("resources") or {}
        return (resources.get(self.cost_resource) or 0) >= self.cost_amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "giveResource": self.give_resource,
            "giveAmount": self.give_amount,
            "costResource": self.cost_resource,
            "costAmount": self.cost_amount,
        }


@dataclass(frozen=True)
class EventChoice:
    id: str
    label: Text
    effect: Effect
    cost: Optional[Text] = None
    relevant_stats: Tuple[str, ...] = ()
    success_chance: Optional[NumberOrFn] = None
    trade: Optional[TradeOffer] = None
    cooldown: Optional[float] = None

    def label_for(self, state: State) -> str:
        return resolve_text(self.label, state)

    def cost_for(self, state: State) -> Optional[str]:
        if self.cost is None:
            return None
        return resolve_text(self.cost, state)

    def success_chance_for(self, state: State) -> Optional[float]:
        if self.success_chance is None:
            return None
        return resolve_number(self.success_chance, state)

    def summary(self, state: Optional[State] = None) -> Dict[str, Any]:
        """Serialisable view of the choice as shown to the player."""
        if state is None:
            label = self.label if isinstance(self.label, str) else self.id
            cost = self.cost if isinstance(self.cost, str) else None
        else:
            label = self.label_for(state)
            cost = self.cost_for(state)
        record: Dict[str, Any] = {"id": self.id, "label": label}
        if cost is not None:
            record["cost"] = cost
        if self.trade is not None:
            record["trade"] = self.trade.to_dict()
        if self.relevant_stats:
            record["relevantStats"] = list(self.relevant_stats)
        if self.cooldown is not None:
            record["cooldown"] = self.cooldown
        return record


@dataclass(frozen=True)
class ChoiceSet:
    """Either a fixed list of choices or a generator resolved at trigger time.

    Generated sets may carry a ``restorer`` so a prompt read back from a
    saved log can still be answered.
    """

    choices: Tuple[EventChoice, ...] = ()
    generator: Optional[ChoiceGenerator] = None
    restorer: Optional[ChoiceRestorer] = None

    @classmethod
    def static(cls, choices: Sequence[EventChoice]) -> "ChoiceSet":
        return cls(choices=tuple(choices))

    @classmethod
    def generated(cls, generator: ChoiceGenerator, restorer: Optional[ChoiceRestorer] = None) -> "ChoiceSet":
        return cls(generator=generator, restorer=restorer)

    @property
    def is_generated(self) -> bool:
        return self.generator is not None

    def resolve(self, state: State, rng: random.Random) -> Tuple[EventChoice, ...]:
        if self.generator is None:
            return self.choices
        return tuple(self.generator(state, rng))


@dataclass(frozen=True)
class EventDefinition:
    """Declarative description of one catalog event.

    ``time_probability`` is the average number of minutes between triggers
    while the condition holds. Events without one fire as soon as their
    condition is true. ``choices`` may be given as a plain sequence and is
    wrapped into a static :class:`ChoiceSet`.
    """

    id: str
    condition: Condition
    trigger_type: str = "random"
    priority: int = 0
    time_probability: Optional[NumberOrFn] = None
    repeatable: bool = False
    choices: Optional[ChoiceSet] = None
    effect: Optional[Effect] = None
    title: Optional[str] = None
    message: Message = ""
    is_timed_choice: bool = False
    base_decision_time: Optional[float] = None
    fallback_choice: Optional[EventChoice] = None
    relevant_stats: Tuple[str, ...] = ()
    visual_effect: Optional[VisualEffect] = None
    skip_sound: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.choices, (list, tuple)):
            object.__setattr__(self, "choices", ChoiceSet.static(self.choices))

    @property
    def static_choices(self) -> Tuple[EventChoice, ...]:
        if self.choices is None:
            return ()
        return self.choices.choices

    def message_for(self, state: State, rng: random.Random) -> str:
        message = self.message
        if callable(message):
            return str(message(state))
        if isinstance(message, str):
            return message
        variants = list(message)
        if not variants:
            return ""
        return rng.choice(variants)


@dataclass(frozen=True)
class LogEntry:
    """One line of the visible game log, optionally carrying a prompt."""

    id: str
    message: str
    timestamp: int
    type: str = "event"
    event_id: Optional[str] = None
    title: Optional[str] = None
    choices: Tuple[EventChoice, ...] = ()
    is_timed_choice: bool = False
    base_decision_time: Optional[float] = None
    fallback_choice: Optional[EventChoice] = None
    relevant_stats: Tuple[str, ...] = ()
    visual_effect: Optional[VisualEffect] = None
    skip_sound: bool = False

    @property
    def has_choices(self) -> bool:
        return bool(self.choices)

    def choice(self, choice_id: str) -> Optional[EventChoice]:
        for choice in self.choices:
            if choice.id == choice_id:
                return choice
        return None

    def to_dict(self, state: Optional[State] = None) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "message": self.message,
            "timestamp": self.timestamp,
            "type": self.type,
        }
        if self.event_id is not None:
            record["eventId"] = self.event_id
        if self.title is not None:
            record["title"] = self.title
        if self.choices:
            record["choices"] = [choice.summary(state) for choice in self.choices]
        if self.is_timed_choice:
            record["isTimedChoice"] = True
            record["baseDecisionTime"] = self.base_decision_time
        if self.fallback_choice is not None:
            record["fallbackChoice"] = {"id": self.fallback_choice.id}
        if self.relevant_stats:
            record["relevantStats"] = list(self.relevant_stats)
        if self.visual_effect is not None:
            record["visualEffect"] = self.visual_effect.to_dict()
        if self.skip_sound:
            record["skipSound"] = True
        return record


def choice_ids(choices: Sequence[EventChoice]) -> List[str]:
    return [choice.id for choice in choices]
