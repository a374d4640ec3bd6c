"""Dreams that fire once and leave only a marker behind."""

from __future__ import annotations

from cave_engine.content.helpers import building
from cave_engine.models import EventDefinition, VisualEffect

GLOW = VisualEffect(type="glow", duration=2)


def _dream(event_id: str, marker: str, huts: int, minutes: float, message: str) -> EventDefinition:
    return EventDefinition(
        id=event_id,
        condition=lambda state: building(state, "woodenHut") >= huts,
        trigger_type="time",
        time_probability=minutes,
        priority=1,
        message=message,
        visual_effect=GLOW,
        effect=lambda state, rng: {"events": {marker: True}},
    )


def _all_dreams_seen(state) -> bool:
    events = state.get("events") or {}
    return bool(
        events.get("dream_morrowind")
        and events.get("dream_oblivion")
        and events.get("dream_skyrim")
        and not (state.get("relics") or {}).get("elder_scroll")
    )


EVENTS = (
    _dream(
        "dreamMorrowind",
        "dream_morrowind",
        3,
        80,
        "Sleep drags you into a wasteland of ash and jagged stone. A red sky bleeds across the horizon, "
        "and enormous, insect-like shapes crawl in the distance. You wake with dust in your mouth.",
    ),
    _dream(
        "dreamOblivion",
        "dream_oblivion",
        5,
        70,
        "You dream of a towering gate of brass and bone, weeping molten fire. A voice calls from beyond "
        "the flames, hungry and silent. You wake in cold sweat.",
    ),
    _dream(
        "dreamSkyrim",
        "dream_skyrim",
        7,
        60,
        "In sleep, cold winds lash your face. A colossal shadow passes overhead, scales glinting like iron "
        "in moonlight. You wake shivering, the chill lingering long after.",
    ),
    EventDefinition(
        id="findElderScroll",
        condition=_all_dreams_seen,
        trigger_type="time",
        time_probability=1,
        priority=5,
        message="During the night as you pass a narrow path, something moves at the edge of your vision. "
        "You follow it, and there, upon the cold stones, lies an ancient scroll...",
        visual_effect=GLOW,
        effect=lambda state, rng: {
            "relics": {"elder_scroll": True},
            "events": {"elder_scroll_found": True},
        },
    ),
)
