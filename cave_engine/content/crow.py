"""The one-eyed crow: messages to distant settlements and their replies.

Sending the crow sets a ``crowSentTo*`` marker; the matching reply clears it
again so the elder can propose the next destination.
"""

from __future__ import annotations

import random
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from cave_engine.content.helpers import adjust_resources, resource
from cave_engine.models import ChoiceSet, EventChoice, EventDefinition, State
from cave_engine.state import seen, seen_markers

# (choice id, trade option, marker, display name)
DESTINATIONS: Sequence[Tuple[str, str, str, str]] = (
    ("mountainMonastery", "mountain_monastery", "crowSentToMonastery", "Mountain Monastery"),
    ("swampTribe", "swamp_tribe", "crowSentToSwamp", "Swamp Tribe"),
    ("shoreFishermen", "shore_fishermen", "crowSentToShore", "Shore Fishermen"),
)

ALL_OPTIONS = tuple(option for _, option, _, _ in DESTINATIONS)


def _remaining(state: Mapping[str, Any]) -> List[str]:
    return list((state.get("tradeEstablishState") or {}).get("remainingOptions") or [])


def _crow_away(state: Mapping[str, Any]) -> bool:
    return any(seen(state, marker) for _, _, marker, _ in DESTINATIONS)


def _proposal_ready(state: Mapping[str, Any]) -> bool:
    has_crow = bool((state.get("fellowship") or {}).get("one_eyed_crow"))
    return has_crow and bool(_remaining(state)) and not _crow_away(state)


def _proposal_message(state: Mapping[str, Any]) -> str:
    if len(_remaining(state)) < len(ALL_OPTIONS):
        return "The village elder approaches you once more. 'The crow has proven useful. Shall we send another message?'"
    return (
        "A village elder approaches you and recommends sending the crow out with a message to establish trade. "
        "Where to send a message first?"
    )


def _send_crow(option: str, marker: str, name: str):
    def effect(state: State, rng: random.Random) -> Dict[str, Any]:
        return {
            "tradeEstablishState": {"remainingOptions": [o for o in _remaining(state) if o != option]},
            **seen_markers(villageElderFirstTime=True, **{marker: True}),
            "_logMessage": f"You send the one-eyed crow with a message to the {name}. You wait for it to return.",
        }

    return effect


def _not_now(state: State, rng: random.Random) -> Dict[str, Any]:
    return {
        **seen_markers(villageElderFirstTime=True),
        "_logMessage": "You tell the elder that you are not ready to send the crow yet. "
        "He nods and says he will return later.",
    }


def destination_choices(state: Mapping[str, Any], rng: random.Random) -> List[EventChoice]:
    remaining = _remaining(state)
    choices = [
        EventChoice(id=choice_id, label=name, effect=_send_crow(option, marker, name))
        for choice_id, option, marker, name in DESTINATIONS
        if option in remaining and not seen(state, marker)
    ]
    choices.append(EventChoice(id="notNow", label="Not Now", effect=_not_now))
    return choices


def restore_destination_choices(records: Sequence[Mapping[str, Any]]) -> List[EventChoice]:
    by_id = {choice_id: (option, marker, name) for choice_id, option, marker, name in DESTINATIONS}
    choices: List[EventChoice] = []
    for record in records:
        choice_id = record.get("id")
        if choice_id == "notNow":
            choices.append(EventChoice(id="notNow", label="Not Now", effect=_not_now))
        elif isinstance(choice_id, str) and choice_id in by_id:
            option, marker, name = by_id[choice_id]
            choices.append(EventChoice(id=choice_id, label=name, effect=_send_crow(option, marker, name)))
    return choices


def _reply_closed(marker: str, message: str):
    """Effect that only re-arms the proposal by clearing ``marker``."""

    def effect(state: State, rng: random.Random) -> Dict[str, Any]:
        return {**seen_markers(**{marker: False}), "_logMessage": message}

    return effect


def _buy_library_map(state: State, rng: random.Random) -> Dict[str, Any]:
    if resource(state, "gold") < 250:
        return {"_logMessage": "You don't have enough gold."}
    return {
        **adjust_resources(state, gold=-250),
        **seen_markers(crowSentToMonastery=False, hiddenLibraryUnlocked=True),
        "_logMessage": "You pay the monks for their map. It reveals the location of a Hidden Library deep in your cave.",
    }


def _buy_chitin(state: State, rng: random.Random) -> Dict[str, Any]:
    if resource(state, "steel") < 1000:
        return {"_logMessage": "You don't have enough steel."}
    return {
        **adjust_resources(state, steel=-1000),
        "clothing": {"chitin_plates": True},
        **seen_markers(crowSentToSwamp=False),
        "_logMessage": "Your steel reaches the swamp. Weeks later, a bundle of Chitin Plates arrives at your gate.",
    }


def _shore_supplies(state: State, rng: random.Random) -> Dict[str, Any]:
    return {
        **adjust_resources(state, food=500),
        **seen_markers(crowSentToShore=False, shoreTradeEstablished=True),
        "_logMessage": "The fishermen agree to send dried fish each season. The first barrels arrive within days.",
    }


def _reply(event_id: str, marker: str, title: str, message: str, choices, fallback: EventChoice) -> EventDefinition:
    return EventDefinition(
        id=event_id,
        condition=lambda state: seen(state, marker) is True,
        trigger_type="resource",
        time_probability=15,
        priority=5,
        repeatable=True,
        title=title,
        message=message,
        is_timed_choice=True,
        base_decision_time=300,
        choices=choices,
        fallback_choice=fallback,
    )


EVENTS = (
    EventDefinition(
        id="establishTradeProposal",
        condition=_proposal_ready,
        trigger_type="resource",
        time_probability=lambda state: 0.02 if seen(state, "villageElderFirstTime") else 10,
        priority=4,
        repeatable=True,
        title="Establishing Trade",
        message=_proposal_message,
        choices=ChoiceSet.generated(destination_choices, restore_destination_choices),
    ),
    _reply(
        "monasteryResponse",
        "crowSentToMonastery",
        "Message from the Mountain Monastery",
        "The one-eyed crow returns from the Mountain Monastery with a sealed scroll. The monks offer to sell you "
        "a map to a hidden library deep within your cave. They ask for 250 Gold.",
        (
            EventChoice(id="accept", label="Pay 250 Gold", cost="250 gold", effect=_buy_library_map),
            EventChoice(
                id="decline",
                label="Decline",
                effect=_reply_closed("crowSentToMonastery", "You decline the monks' offer. The opportunity is lost."),
            ),
        ),
        EventChoice(
            id="decline",
            label="Time Expired",
            effect=_reply_closed("crowSentToMonastery", "You took too long to decide. The monks' offer expires."),
        ),
    ),
    _reply(
        "swampTribeResponse",
        "crowSentToSwamp",
        "Message from the Swamp Tribe",
        "The one-eyed crow returns from the Swamp Tribe with a crumbling letter. The tribe offers powerful "
        "Chitin Plates in exchange for 1000 Steel delivered to their village.",
        (
            EventChoice(id="accept", label="Send 1000 Steel", cost="1000 steel", effect=_buy_chitin),
            EventChoice(
                id="decline",
                label="Decline",
                effect=_reply_closed("crowSentToSwamp", "You refuse the tribe's terms. The crow sulks on its perch."),
            ),
        ),
        EventChoice(
            id="timeout",
            label="Time Expired",
            effect=_reply_closed("crowSentToSwamp", "The tribe's messenger grows tired of waiting and leaves."),
        ),
    ),
    _reply(
        "shoreFishermenResponse",
        "crowSentToShore",
        "Message from the Shore Fishermen",
        "The one-eyed crow returns smelling of salt. The shore fishermen offer to trade their catch with your village.",
        (
            EventChoice(id="accept", label="Accept", effect=_shore_supplies),
            EventChoice(
                id="decline",
                label="Decline",
                effect=_reply_closed("crowSentToShore", "You send the crow back with polite refusal."),
            ),
        ),
        EventChoice(
            id="timeout",
            label="Time Expired",
            effect=_reply_closed("crowSentToShore", "The fishermen take your silence as a refusal."),
        ),
    ),
)
