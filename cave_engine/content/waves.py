"""Attacks from the depths, settled by the host's combat screen."""

from __future__ import annotations

import random
from typing import Any, Dict, Mapping

from cave_engine.content.helpers import building
from cave_engine.models import EventDefinition, VisualEffect
from cave_engine.state import kill_villagers, seen, seen_markers, total_population

FIRST_WAVE_MESSAGE = (
    "Pale creatures pour out of the blasted portal and charge toward the village. "
    "Your defenders take their positions."
)


def _first_wave_victory(state: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        **seen_markers(firstWaveVictory=True),
        "_logMessage": "Your defenses hold strong! The pale creatures crash against your fortifications "
        "but cannot penetrate them.",
    }


def _first_wave_defeat(state: Mapping[str, Any]) -> Dict[str, Any]:
    casualties = min(5, total_population(state))
    delta = kill_villagers(state, casualties)
    message = (
        f"The pale creatures overwhelm your defenses. {casualties} villagers fall before "
        "the remaining creatures retreat to the depths."
    )
    if building(state, "watchtower") > 0:
        delta.update(seen_markers(watchtowerDamaged=True))
        message += " Your watchtower is damaged in the assault."
    delta["_logMessage"] = message
    return delta


def _first_wave(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    return {
        **seen_markers(firstWave=True),
        "_combatData": {
            "eventId": "firstWave",
            "enemy": {
                "name": "Pale Creatures",
                "attack": rng.choice((120, 150, 180)),
                "maxHealth": 100,
                "currentHealth": 100,
            },
            "eventTitle": "The First Wave",
            "eventMessage": FIRST_WAVE_MESSAGE,
            "onVictory": _first_wave_victory,
            "onDefeat": _first_wave_defeat,
        },
    }


EVENTS = (
    EventDefinition(
        id="firstWave",
        condition=lambda state: bool((state.get("flags") or {}).get("portalBlasted")) and bool(seen(state, "hasBastion")),
        trigger_type="resource",
        time_probability=0.05,
        priority=5,
        title="The First Wave",
        message=FIRST_WAVE_MESSAGE,
        visual_effect=VisualEffect(type="pulse", duration=3),
        effect=_first_wave,
    ),
)
