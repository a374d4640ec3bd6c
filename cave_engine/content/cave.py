"""Relics found while exploring the cave.

These fire only through exploration actions and give the player a short
time to decide. Waiting too long resolves the prompt with its fallback.
"""

from __future__ import annotations

import random
from typing import Any, Dict, Mapping

from cave_engine.models import EventChoice, EventDefinition
from cave_engine.state import kill_villagers, seen_markers

DECISION_SECONDS = 15


def _never(state: Mapping[str, Any]) -> bool:
    return False


def _keep_coin(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    return {
        "relics": {"coin_of_drowned": True},
        **seen_markers(coinOfDrownedChoice=True),
        "_logMessage": "You slip the coin into your pouch. Water continues to drip from it, never stopping.",
    }


def _leave_coin(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    return {
        **seen_markers(coinOfDrownedChoice=True),
        "_logMessage": "You decide the risk is too great. As you turn away, you hear a faint splash behind you, "
        "though no water is nearby.",
    }


def _coin_claims_a_life(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    delta = kill_villagers(state, 1)
    delta.update(seen_markers(coinOfDrownedChoice=True))
    delta["_logMessage"] = (
        "Your hesitation proves fatal. One of your men picks up the coin despite your indecision. "
        "Water pours from his mouth in an endless torrent and he drowns on dry land."
    )
    return delta


def _keep_flute(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    return {
        "relics": {"shadow_flute": True},
        **seen_markers(shadowFluteChoice=True),
        "_logMessage": "You keep the bone flute. Its tunes are beautiful, yet a subtle dissonance gnaws at your mind.",
    }


def _leave_flute(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    return {
        **seen_markers(shadowFluteChoice=True),
        "_logMessage": "You set the flute back down carefully. The shadows return to their natural stillness.",
    }


def _shadows_feed(state: Mapping[str, Any], rng: random.Random) -> Dict[str, Any]:
    delta = kill_villagers(state, 2)
    delta.update(seen_markers(shadowFluteChoice=True))
    delta["_logMessage"] = (
        "Your hesitation proves costly. The shadows surge forward and drag two of your people "
        "into the darkness between worlds."
    )
    return delta


EVENTS = (
    EventDefinition(
        id="coinOfDrownedChoice",
        condition=_never,
        trigger_type="action",
        priority=5,
        title="The Coin of Drowned",
        message="Among the rubble of the forgotten city, you find a peculiar coin that drips constantly with water, "
        "despite there being no source. Do you dare to keep it?",
        is_timed_choice=True,
        base_decision_time=DECISION_SECONDS,
        choices=(
            EventChoice(id="keepCoin", label="Keep the coin", effect=_keep_coin),
            EventChoice(id="leaveCoin", label="Leave it behind", effect=_leave_coin),
        ),
        fallback_choice=EventChoice(id="leaveCoin", label="Leave it behind", effect=_coin_claims_a_life),
    ),
    EventDefinition(
        id="shadowFluteChoice",
        condition=_never,
        trigger_type="action",
        priority=5,
        title="The Shadow Flute",
        message="You discover a bone flute of disturbing craftsmanship. When you play it, the shadows around you "
        "begin to move as if dancing to a melody. Do you keep the instrument?",
        is_timed_choice=True,
        base_decision_time=DECISION_SECONDS,
        choices=(
            EventChoice(id="keepFlute", label="Keep the flute", effect=_keep_flute),
            EventChoice(id="leaveFlute", label="Leave it", effect=_leave_flute),
        ),
        fallback_choice=EventChoice(id="leaveFlute", label="Leave it", effect=_shadows_feed),
    ),
)
