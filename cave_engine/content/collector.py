"""The wandering collector, who buys curiosities the village has found."""

from __future__ import annotations

import random
from typing import Any, Dict, List, Mapping, Sequence

from cave_engine.content.helpers import adjust_resources, owns
from cave_engine.models import ChoiceSet, EventChoice, EventDefinition, State

COLLECTOR_ITEMS = (
    "bloodstained_belt",
    "tarnished_amulet",
    "muttering_amulet",
    "cracked_crown",
    "coin_of_drowned",
    "red_mask",
    "wooden_figure",
    "shadow_flute",
)
MAX_OFFERS = 4
SALE_PRICE = 100

FAREWELL = (
    "'I found out that there has not always been magic in this world, "
    "but it only appeared after the mysterious explosion,'"
)


def owned_items(state: Mapping[str, Any]) -> List[str]:
    return [item for item in COLLECTOR_ITEMS if owns(state, item)]


def _sell(item: str):
    def effect(state: State, rng: random.Random) -> Dict[str, Any]:
        section = owns(state, item)
        if section is None:
            return {"_logMessage": "The collector frowns. You no longer have what you offered."}
        return {
            **adjust_resources(state, gold=SALE_PRICE),
            section: {item: False},
            "timedEventTab": {"isActive": False},
            "_logMessage": f"The collector takes the item with a bony hand. {FAREWELL} they whisper before vanishing.",
        }

    return effect


def _keep_items(state: State, rng: random.Random) -> Dict[str, Any]:
    return {
        "timedEventTab": {"isActive": False},
        "_logMessage": f"The collector sighs and turns away. {FAREWELL} they murmur as they fade into the shadows.",
    }


def collector_choices(state: Mapping[str, Any], rng: random.Random) -> List[EventChoice]:
    items = owned_items(state)
    rng.shuffle(items)
    choices = [
        EventChoice(
            id=f"sell_{item}",
            label=f"Sell {item.replace('_', ' ')} ({SALE_PRICE} Gold)",
            effect=_sell(item),
        )
        for item in items[:MAX_OFFERS]
    ]
    choices.append(EventChoice(id="sell_nothing", label="Keep your items", effect=_keep_items))
    return choices


def restore_collector_choices(records: Sequence[Mapping[str, Any]]) -> List[EventChoice]:
    choices: List[EventChoice] = []
    for record in records:
        choice_id = record.get("id")
        label = str(record.get("label") or choice_id)
        if choice_id == "sell_nothing":
            choices.append(EventChoice(id=choice_id, label=label, effect=_keep_items))
        elif isinstance(choice_id, str) and choice_id[len("sell_"):] in COLLECTOR_ITEMS:
            choices.append(EventChoice(id=choice_id, label=label, effect=_sell(choice_id[len("sell_"):])))
    return choices


EVENTS = (
    EventDefinition(
        id="wandering_collector",
        condition=lambda state: bool(owned_items(state)),
        trigger_type="random",
        time_probability=0.05,
        priority=2,
        repeatable=True,
        title="The Wandering Collector",
        message="A mysterious figure wrapped in tattered robes approaches. "
        "They seem interested in the curiosities you've found.",
        choices=ChoiceSet.generated(collector_choices, restore_collector_choices),
    ),
)
