"""Village survival events: newcomers, hunger and cold."""

from __future__ import annotations

import random
from typing import Any, Dict, Mapping

from cave_engine.content.helpers import building, resource
from cave_engine.models import EventChoice, EventDefinition
from cave_engine.state import kill_villagers, seen_markers, total_population

HUT_CAPACITY = {"woodenHut": 2, "stoneHut": 4, "longhouse": 8}


def housing_capacity(state: Mapping[str, Any]) -> int:
    return sum(building(state, name) * size for name, size in HUT_CAPACITY.items())


def _deaths(rng: random.Random, population: int, rate: float) -> int:
    return sum(1 for _ in range(max(population, 0)) if rng.random() < rate)


def _stranger_effect(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    villagers = state.get("villagers") or {}
    delta: Dict[str, Any] = {"villagers": {"free": (villagers.get("free") or 0) + 1}}
    delta.update(seen_markers(hasVillagers=True))
    return delta


def _starving(state: Mapping[str, Any]) -> bool:
    if not (state.get("flags") or {}).get("starvationActive"):
        return False
    population = total_population(state)
    return population > 0 and resource(state, "food") < population


def _starvation_outcome(state: Mapping[str, Any], deaths: int, survived: str) -> Dict[str, Any]:
    if deaths <= 0:
        return {"_logMessage": survived}
    delta = kill_villagers(state, deaths)
    if deaths == 1:
        delta["_logMessage"] = "One villager succumbs to starvation. The remaining villagers grow desperate."
    else:
        delta["_logMessage"] = f"{deaths} villagers starve to death. The survivors look gaunt and hollow-eyed."
    return delta


def _ration_food(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    # Spreading what is left across everyone cuts the death rate but empties the stores.
    unfed = total_population(state) - resource(state, "food")
    delta = _starvation_outcome(
        state,
        _deaths(rng, unfed, 0.05),
        "Thin rations stretch the last of the food. Everyone lives to see another day.",
    )
    delta["resources"] = {"food": 0}
    return delta


def _do_nothing(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    unfed = total_population(state) - resource(state, "food")
    return _starvation_outcome(
        state,
        _deaths(rng, unfed, 0.15),
        "Despite the lack of food, everyone survives another day, though they grow weaker and more desperate.",
    )


def _freezing_effect(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    deaths = _deaths(rng, total_population(state), 0.1)
    if deaths <= 0:
        return {
            "_logMessage": "The villagers endure another freezing night without wood. "
            "They huddle together for warmth, growing weaker but surviving."
        }
    delta = kill_villagers(state, deaths)
    if deaths == 1:
        delta["_logMessage"] = "The bitter cold claims one villager's life. The others huddle together, shivering and afraid."
    else:
        delta["_logMessage"] = f"{deaths} villagers freeze to death in the night. The survivors are weak and traumatized by the loss."
    return delta


EVENTS = (
    EventDefinition(
        id="strangerApproaches",
        condition=lambda state: total_population(state) < housing_capacity(state),
        trigger_type="resource",
        time_probability=lambda state: 0.9 ** building(state, "woodenHut"),
        priority=1,
        repeatable=True,
        message=(
            "A stranger approaches through the woods and joins your village.",
            "A traveler arrives and decides to stay.",
            "A wanderer appears from the woods and becomes part of your community.",
            "Someone approaches the village and settles in.",
            "A stranger joins your community, bringing skills and hope.",
            "A newcomer arrives and makes themselves at home.",
        ),
        effect=_stranger_effect,
    ),
    EventDefinition(
        id="starvation",
        condition=_starving,
        trigger_type="resource",
        time_probability=0.5,
        priority=10,
        repeatable=True,
        title="Starvation",
        message="The village food stores have run empty. Without food, the harsh reality of survival takes its toll on the community.",
        choices=(
            EventChoice(id="rationFood", label="Ration what is left", effect=_ration_food),
            EventChoice(id="doNothing", label="Do nothing", effect=_do_nothing),
        ),
    ),
    EventDefinition(
        id="freezing",
        condition=lambda state: total_population(state) > 0 and resource(state, "wood") == 0,
        trigger_type="resource",
        time_probability=0.1,
        priority=9,
        repeatable=True,
        message="With no wood left for fires, the bitter cold creeps into every hut. "
        "Frost forms on the walls and the villagers struggle to survive the freezing night.",
        effect=_freezing_effect,
    ),
)
