"""Authoring checks for event definitions."""

from __future__ import annotations

import json
from collections import Counter
from typing import Any, Iterable, List, Sequence

from cave_engine.models import (
    TRIGGER_TYPES,
    VISUAL_EFFECT_TYPES,
    ChoiceSet,
    EventChoice,
    EventDefinition,
    TradeOffer,
    VisualEffect,
)


def path(*parts: object) -> str:
    path_str = ""
    for part in parts:
        if isinstance(part, int):
            path_str = f"{path_str}[{part}]"
            continue
        if not isinstance(part, str):
            part = str(part)
        if part.isidentifier():
            path_str = f"{path_str}.{part}" if path_str else part
        else:
            path_str = f"{path_str}[{json.dumps(part)}]"
    return path_str


def format_validation_message(path_str: str, context: str, message: str) -> str:
    if context:
        return f"{path_str}: {context}: {message}"
    return f"{path_str}: {message}"


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_text(value: Any) -> bool:
    return is_non_empty_str(value) or callable(value)


class ValidationContext:
    """Utility container for accumulating validation errors."""

    def __init__(self) -> None:
        self.errors: List[str] = []

    def add(self, context: str, path_str: str, message: str) -> None:
        self.errors.append(format_validation_message(path_str, context, message))

    def extend(self, messages: Iterable[str]) -> None:
        self.errors.extend(messages)

    def ok(self) -> bool:
        return not self.errors


def require(condition: bool, context: str, path_str: str, message: str, ctx: ValidationContext) -> None:
    if not condition:
        ctx.add(context, path_str, message)


def validate_choice(
    choice: Any, context: str, path_parts: Sequence[object], ctx: ValidationContext
) -> None:
    if not isinstance(choice, EventChoice):
        ctx.add(context, path(*path_parts), "must be an EventChoice.")
        return
    require(is_non_empty_str(choice.id), context, path(*path_parts, "id"), "requires a non-empty 'id'.", ctx)
    require(
        is_text(choice.label),
        context,
        path(*path_parts, "label"),
        "'label' must be a non-empty string or a function of state.",
        ctx,
    )
    require(
        callable(choice.effect),
        context,
        path(*path_parts, "effect"),
        "'effect' must be callable.",
        ctx,
    )
    if choice.cost is not None:
        require(
            is_text(choice.cost),
            context,
            path(*path_parts, "cost"),
            "'cost' must be a string or a function of state.",
            ctx,
        )
    if choice.success_chance is not None and not callable(choice.success_chance):
        require(
            is_number(choice.success_chance) and 0 <= choice.success_chance <= 1,
            context,
            path(*path_parts, "success_chance"),
            "'success_chance' must be between 0 and 1.",
            ctx,
        )
    if choice.trade is not None:
        validate_trade(choice.trade, context, (*path_parts, "trade"), ctx)


def validate_trade(
    trade: Any, context: str, path_parts: Sequence[object], ctx: ValidationContext
) -> None:
    if not isinstance(trade, TradeOffer):
        ctx.add(context, path(*path_parts), "must be a TradeOffer.")
        return
    for field_name in ("give_resource", "cost_resource"):
        require(
            is_non_empty_str(getattr(trade, field_name)),
            context,
            path(*path_parts, field_name),
            f"'{field_name}' must name a resource.",
            ctx,
        )
    for field_name in ("give_amount", "cost_amount"):
        value = getattr(trade, field_name)
        require(
            is_number(value) and value > 0,
            context,
            path(*path_parts, field_name),
            f"'{field_name}' must be a positive number.",
            ctx,
        )


def validate_choice_list(
    choices: Sequence[Any], context: str, path_parts: Sequence[object], ctx: ValidationContext
) -> None:
    for index, choice in enumerate(choices, start=1):
        validate_choice(choice, f"{context}, choice {index}", (*path_parts, index - 1), ctx)
    ids = [choice.id for choice in choices if isinstance(choice, EventChoice)]
    duplicates = [choice_id for choice_id, count in Counter(ids).items() if count > 1]
    if duplicates:
        ctx.add(
            context,
            path(*path_parts),
            f"duplicate choice IDs detected: {', '.join(sorted(duplicates))}.",
        )


def validate_event(event: Any, index: int, ctx: ValidationContext) -> None:
    if not isinstance(event, EventDefinition):
        ctx.add(f"Event entry {index}", path("events", index - 1), "must be an EventDefinition.")
        return

    if not is_non_empty_str(event.id):
        ctx.add(f"Event entry {index}", path("events", index - 1, "id"), "requires a non-empty 'id'.")
        return

    context = f"Event '{event.id}'"
    parts = ("events", event.id)

    require(callable(event.condition), context, path(*parts, "condition"), "'condition' must be callable.", ctx)
    require(
        event.trigger_type in TRIGGER_TYPES,
        context,
        path(*parts, "trigger_type"),
        f"unsupported trigger type '{event.trigger_type}'.",
        ctx,
    )
    require(
        isinstance(event.priority, int) and not isinstance(event.priority, bool),
        context,
        path(*parts, "priority"),
        "'priority' must be an integer.",
        ctx,
    )
    probability = event.time_probability
    if probability is not None and not callable(probability):
        require(
            is_number(probability) and probability > 0,
            context,
            path(*parts, "time_probability"),
            "'time_probability' must be a positive number of minutes or a function of state.",
            ctx,
        )

    message = event.message
    if not (isinstance(message, str) or callable(message)):
        if not isinstance(message, Sequence) or not all(isinstance(item, str) for item in message):
            ctx.add(
                context,
                path(*parts, "message"),
                "'message' must be a string, a list of strings or a function of state.",
            )

    choices = event.choices
    if choices is not None:
        if not isinstance(choices, ChoiceSet):
            ctx.add(context, path(*parts, "choices"), "'choices' must be a ChoiceSet or a list of choices.")
        elif choices.is_generated:
            require(
                callable(choices.generator),
                context,
                path(*parts, "choices"),
                "choice generator must be callable.",
                ctx,
            )
            if choices.restorer is not None:
                require(
                    callable(choices.restorer),
                    context,
                    path(*parts, "choices"),
                    "choice restorer must be callable.",
                    ctx,
                )
        else:
            validate_choice_list(choices.choices, context, (*parts, "choices"), ctx)

    if event.effect is not None:
        require(callable(event.effect), context, path(*parts, "effect"), "'effect' must be callable.", ctx)

    if event.is_timed_choice:
        if event.fallback_choice is None:
            ctx.add(
                context,
                path(*parts, "fallback_choice"),
                "timed choices must declare a 'fallback_choice'.",
            )
        if event.base_decision_time is not None:
            require(
                is_number(event.base_decision_time) and event.base_decision_time > 0,
                context,
                path(*parts, "base_decision_time"),
                "'base_decision_time' must be a positive number of seconds.",
                ctx,
            )
    if event.fallback_choice is not None:
        validate_choice(
            event.fallback_choice,
            f"{context} fallback",
            (*parts, "fallback_choice"),
            ctx,
        )

    visual = event.visual_effect
    if visual is not None:
        if not isinstance(visual, VisualEffect):
            ctx.add(context, path(*parts, "visual_effect"), "must be a VisualEffect.")
        else:
            require(
                visual.type in VISUAL_EFFECT_TYPES,
                context,
                path(*parts, "visual_effect", "type"),
                f"unsupported visual effect '{visual.type}'.",
                ctx,
            )


def validate_events(events: Sequence[Any]) -> List[str]:
    ctx = ValidationContext()

    ids = [event.id for event in events if isinstance(event, EventDefinition)]
    duplicates = [event_id for event_id, count in Counter(ids).items() if count > 1]
    if duplicates:
        ctx.add(
            "Events",
            path("events"),
            f"duplicate event IDs detected: {', '.join(sorted(map(str, duplicates)))}.",
        )

    for index, event in enumerate(events, start=1):
        validate_event(event, index, ctx)

    return ctx.errors
