"""Ambient omens around the village, each asking the player to decide."""

from __future__ import annotations

import random
from typing import Any, Dict, Mapping

from cave_engine.content.helpers import building, calculate_success_chance, resource, total_stat
from cave_engine.models import EventChoice, EventDefinition, VisualEffect
from cave_engine.state import kill_villagers, seen, seen_markers, total_population


def _pale_figure_chance(state: Mapping[str, Any]) -> float:
    return calculate_success_chance(state, 0.1, ("strength", 0.01), ("luck", 0.005))


def _investigate_figure(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    roll = rng.random()
    if roll < _pale_figure_chance(state):
        return {
            "clothing": {"ravenfeather_mantle": True},
            "_logMessage": "As your men near, the pale figure vanishes. In its place lies a raven-feather mantle, "
            "shimmering with otherworldly power.",
        }
    if roll < 0.6:
        delta = kill_villagers(state, 1, rng)
        delta["_logMessage"] = (
            "The investigation goes wrong. One man screams in the mist and is never seen again. The others flee in terror."
        )
        return delta
    deaths = min(4, 2 + rng.randrange(max(building(state, "woodenHut"), 1)))
    delta = kill_villagers(state, deaths, rng)
    delta["_logMessage"] = (
        f"The pale figure moves with inhuman speed. {deaths} men vanish into the mist, "
        "their screams echoing through the trees."
    )
    return delta


def _ignore_figure(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    if rng.random() < 0.6:
        return {"_logMessage": "The men stay close to the village. By evening, the figure is gone."}
    delta = kill_villagers(state, 1, rng)
    delta["_logMessage"] = (
        "At dawn, one of the men who claimed to have seen the figure is found dead in his bed, "
        "his face frozen in terror."
    )
    return delta


def _buy_mirror(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    return {
        "resources": {"iron": resource(state, "iron") - 500},
        "relics": {"blackened_mirror": True},
        "_logMessage": "You purchase the mirror. Its dark surface gives glimpses of your own future, "
        "nudging your sanity toward the edge.",
    }


def _wolf_victory_chance(state: Mapping[str, Any]) -> float:
    return calculate_success_chance(state, 0.15, ("strength", 0.01))


def _defend_village(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    population = total_population(state)
    if population == 0:
        return {"_logMessage": "The wolves find an empty village and move on, disappointed by the lack of prey."}
    if rng.random() < _wolf_victory_chance(state):
        return {
            "clothing": {"alphas_hide": True},
            "_logMessage": "The village defeats the wolf pack! You slay the alpha wolf and claim its hide as a trophy.",
        }

    strength = total_stat(state, "strength")
    casualty_chance = max(0.2, 0.6 - strength * 0.02)
    huts = building(state, "woodenHut")
    exposed = min(6 + huts, population)
    deaths = sum(1 for _ in range(exposed) if rng.random() < casualty_chance)
    food_loss = min(resource(state, "food"), (huts + rng.randrange(8)) * 25)

    delta = kill_villagers(state, deaths, rng)
    delta["resources"] = {"food": resource(state, "food") - food_loss}
    message = "The village fights desperately against the wolves. "
    if deaths == 0:
        message += "The villagers survive the attack."
    elif deaths == 1:
        message += "One villager falls to the wolves' supernatural fury."
    else:
        message += f"{deaths} villagers are claimed by the wolves' unnatural hunger."
    if food_loss > 0:
        message += f" The wolves also devour {food_loss} units of food from your stores."
    delta["_logMessage"] = message
    return delta


def _hide_from_wolves(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    food_loss = min(resource(state, "food"), (building(state, "woodenHut") + rng.randrange(4)) * 25)
    return {
        "resources": {"food": resource(state, "food") - food_loss},
        "_logMessage": f"The villagers bar their doors. By dawn the wolves are gone, along with {food_loss} food.",
    }


EVENTS = (
    EventDefinition(
        id="paleFigure",
        condition=lambda state: building(state, "woodenHut") >= 2
        and not (state.get("clothing") or {}).get("ravenfeather_mantle")
        and total_population(state) >= 4,
        trigger_type="resource",
        time_probability=35,
        priority=3,
        repeatable=True,
        title="The Pale Figure",
        message=(
            "At dawn, men glimpse a tall, pale, slender figure at the woods' edge. What do you do?",
            "In the grey morning, a tall, pale, slender figure stands at the treeline. What do you do?",
            "Villagers report of a tall, pale, slender figure in the mist near the forest's edge. What do you do?",
        ),
        choices=(
            EventChoice(
                id="investigate",
                label="Investigate",
                effect=_investigate_figure,
                relevant_stats=("luck", "strength"),
                success_chance=_pale_figure_chance,
            ),
            EventChoice(id="ignore", label="Ignore it", effect=_ignore_figure),
        ),
    ),
    EventDefinition(
        id="whispersBeneathHut",
        condition=lambda state: building(state, "woodenHut") >= 4
        and not (state.get("relics") or {}).get("muttering_amulet"),
        trigger_type="resource",
        time_probability=25,
        priority=3,
        repeatable=True,
        title="Whispers Beneath the Hut",
        message="At night, faint whispers seem to rise from under the floor of one of the huts. "
        "The villagers are uneasy. Do you investigate?",
        choices=(
            EventChoice(
                id="investigateHut",
                label="Investigate",
                effect=lambda state, rng: {
                    "relics": {"muttering_amulet": True},
                    "_logMessage": "You lift the floorboards and find a strange amulet, faintly whispering.",
                },
            ),
            EventChoice(
                id="ignoreHut",
                label="Ignore",
                effect=lambda state, rng: {
                    "_logMessage": "You choose to leave the hut alone. The whispers fade by morning, "
                    "but a chill remains in the air."
                },
            ),
        ),
    ),
    EventDefinition(
        id="blackenedMirror",
        condition=lambda state: building(state, "woodenHut") >= 5
        and resource(state, "iron") >= 500
        and not (state.get("relics") or {}).get("blackened_mirror"),
        trigger_type="resource",
        time_probability=35,
        priority=3,
        repeatable=True,
        title="The Blackened Mirror",
        message="A wandering tradesman offers a tall, cracked mirror framed in black iron. It radiates a cold, "
        "unnatural aura. He claims it can give glimpses of the future.",
        choices=(
            EventChoice(id="buyMirror", label="Buy the mirror", cost="500 iron", effect=_buy_mirror),
            EventChoice(
                id="refuseMirror",
                label="Refuse",
                effect=lambda state, rng: {
                    "_logMessage": "You decline the trader's offer. The mirror disappears into the night with him."
                },
            ),
        ),
    ),
    EventDefinition(
        id="cthulhuFigure",
        condition=lambda state: building(state, "woodenHut") >= 4
        and not (state.get("relics") or {}).get("wooden_figure")
        and not seen(state, "cthulhuFigureChoice"),
        trigger_type="resource",
        time_probability=45,
        priority=3,
        title="A Strange Wooden Figure",
        message="At the forest's edge a small wooden figure is found, carved with tentacled features. "
        "It emanates a strange aura. Do you keep it?",
        choices=(
            EventChoice(
                id="keepFigure",
                label="Keep it",
                effect=lambda state, rng: {
                    "relics": {"wooden_figure": True},
                    **seen_markers(cthulhuFigureChoice=True),
                    "_logMessage": "You decide to keep the figure. Its strange aura makes the villagers uneasy.",
                },
            ),
            EventChoice(
                id="discardFigure",
                label="Discard it",
                effect=lambda state, rng: {
                    **seen_markers(cthulhuFigureChoice=True),
                    "_logMessage": "You discard the figure. The forest seems to watch silently as it disappears.",
                },
            ),
        ),
    ),
    EventDefinition(
        id="wolfAttack",
        condition=lambda state: building(state, "woodenHut") >= 3
        and not (state.get("clothing") or {}).get("alphas_hide"),
        trigger_type="resource",
        time_probability=35,
        priority=4,
        repeatable=True,
        title="Wolf Attack",
        message="Close to midnight, wolves emerge from the darkness, their eyes glowing with unnatural hunger.",
        visual_effect=VisualEffect(type="pulse", duration=3),
        choices=(
            EventChoice(
                id="defendVillage",
                label="Defend village",
                effect=_defend_village,
                relevant_stats=("strength",),
                success_chance=_wolf_victory_chance,
            ),
            EventChoice(id="hideFromWolves", label="Hide in the huts", effect=_hide_from_wolves),
        ),
    ),
)
