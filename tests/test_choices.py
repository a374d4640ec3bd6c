import random

import pytest

from cave_engine.catalog import EventCatalog
from cave_engine.choices import ChoiceResolver
from cave_engine.errors import EventFault
from cave_engine.models import ChoiceSet, EventChoice, EventDefinition, LogEntry
from cave_engine.state import new_game_state


def effect_returning(delta: dict):
    return lambda state, rng: dict(delta)


def build_resolver() -> ChoiceResolver:
    mirror = EventDefinition(
        id="mirror",
        condition=lambda state: True,
        choices=[
            EventChoice(id="buy", label="Buy", effect=effect_returning({"relics": {"mirror": True}})),
            EventChoice(id="refuse", label="Refuse", effect=effect_returning({"_logMessage": "Refused."})),
        ],
    )
    relic = EventDefinition(
        id="relic",
        condition=lambda state: False,
        trigger_type="action",
        is_timed_choice=True,
        base_decision_time=15,
        choices=[
            EventChoice(id="keep", label="Keep", effect=effect_returning({"relics": {"coin": True}})),
            EventChoice(id="leave", label="Leave", effect=effect_returning({"_logMessage": "Left."})),
        ],
        fallback_choice=EventChoice(
            id="leave", label="Leave", effect=effect_returning({"villagers": {"free": 0}})
        ),
    )
    expiring = EventDefinition(
        id="offer",
        condition=lambda state: True,
        is_timed_choice=True,
        choices=[EventChoice(id="accept", label="Accept", effect=effect_returning({"flags": {"accepted": True}}))],
        fallback_choice=EventChoice(id="timeout", label="Time Expired", effect=effect_returning({"flags": {"expired": True}})),
    )
    broken = EventDefinition(
        id="broken",
        condition=lambda state: True,
        choices=[EventChoice(id="go", label="Go", effect=lambda state, rng: 1 / 0)],
    )
    return ChoiceResolver(EventCatalog([mirror, relic, expiring, broken]), rng=random.Random(0))


def state_with_log(*ids: str) -> dict:
    state = new_game_state()
    state["log"] = [{"id": entry_id, "message": entry_id} for entry_id in ids]
    return state


def entry_for(resolver: ChoiceResolver, event_id: str, entry_id: str) -> LogEntry:
    definition = resolver.catalog.get(event_id)
    return LogEntry(
        id=entry_id,
        message="",
        timestamp=0,
        event_id=event_id,
        choices=definition.static_choices,
        is_timed_choice=definition.is_timed_choice,
        fallback_choice=definition.fallback_choice,
    )


def test_unknown_event_resolves_to_empty_delta() -> None:
    resolver = build_resolver()
    assert resolver.apply_event_choice(new_game_state(), "buy", "missing") == {}


def test_unknown_choice_resolves_to_empty_delta() -> None:
    resolver = build_resolver()
    assert resolver.apply_event_choice(new_game_state(), "steal", "mirror") == {}


def test_resolving_a_choice_removes_its_prompt_from_the_log() -> None:
    resolver = build_resolver()
    state = state_with_log("W", "X", "Y")
    delta = resolver.apply_event_choice(state, "buy", "mirror", entry_for(resolver, "mirror", "X"))
    assert delta["relics"] == {"mirror": True}
    assert [entry["id"] for entry in delta["log"]] == ["W", "Y"]


def test_serialised_entries_are_accepted_for_log_cleanup() -> None:
    resolver = build_resolver()
    state = state_with_log("X", "Y")
    delta = resolver.apply_event_choice(state, "refuse", "mirror", {"id": "X"})
    assert delta["_logMessage"] == "Refused."
    assert [entry["id"] for entry in delta["log"]] == ["Y"]


def test_without_an_entry_the_log_is_left_as_is() -> None:
    resolver = build_resolver()
    state = state_with_log("X")
    delta = resolver.apply_event_choice(state, "buy", "mirror")
    assert delta["log"] == state["log"]


def test_entry_choices_take_precedence_over_the_catalog() -> None:
    resolver = build_resolver()
    snapshot = EventChoice(id="buy", label="Buy (discounted)", effect=effect_returning({"flags": {"discount": True}}))
    entry = LogEntry(id="X", message="", timestamp=0, event_id="mirror", choices=(snapshot,))
    delta = resolver.apply_event_choice(state_with_log("X"), "buy", "mirror", entry)
    assert delta["flags"] == {"discount": True}
    assert "relics" not in delta


def test_choices_missing_from_the_snapshot_do_not_resolve() -> None:
    resolver = build_resolver()
    snapshot = EventChoice(id="trade_1", label="Trade", effect=effect_returning({}))
    entry = LogEntry(id="X", message="", timestamp=0, event_id="mirror", choices=(snapshot,))
    assert resolver.apply_event_choice(state_with_log("X"), "buy", "mirror", entry) == {}


def test_fallback_id_resolves_even_when_not_presented() -> None:
    resolver = build_resolver()
    entry = entry_for(resolver, "offer", "X")
    delta = resolver.apply_event_choice(state_with_log("X"), "timeout", "offer", entry)
    assert delta["flags"] == {"expired": True}
    assert delta["log"] == []


def test_presented_choice_wins_when_it_shares_the_fallback_id() -> None:
    resolver = build_resolver()
    entry = entry_for(resolver, "relic", "X")
    delta = resolver.apply_event_choice(state_with_log("X"), "leave", "relic", entry)
    assert delta["_logMessage"] == "Left."
    assert "villagers" not in delta


def test_apply_fallback_always_runs_the_fallback_effect() -> None:
    resolver = build_resolver()
    entry = entry_for(resolver, "relic", "X")
    delta = resolver.apply_fallback(state_with_log("X"), "relic", entry)
    assert delta["villagers"] == {"free": 0}
    assert delta["log"] == []


def test_apply_fallback_without_fallback_is_a_miss() -> None:
    resolver = build_resolver()
    assert resolver.apply_fallback(new_game_state(), "mirror") == {}
    assert resolver.apply_fallback(new_game_state(), "missing") == {}


def test_effect_fault_names_the_event_and_choice() -> None:
    resolver = build_resolver()
    with pytest.raises(EventFault) as info:
        resolver.apply_event_choice(new_game_state(), "go", "broken")
    assert info.value.event_id == "broken"
    assert "go" in info.value.phase
    assert isinstance(info.value.__cause__, ZeroDivisionError)


def test_logged_record_resolves_static_choices_by_id() -> None:
    resolver = build_resolver()
    record = {"id": "X", "eventId": "mirror", "choices": [{"id": "buy", "label": "Buy"}]}
    delta = resolver.apply_event_choice(state_with_log("X", "Y"), "buy", "mirror", record)
    assert delta["relics"] == {"mirror": True}
    assert [entry["id"] for entry in delta["log"]] == ["Y"]


def test_logged_record_only_offers_what_it_presented() -> None:
    resolver = build_resolver()
    record = {"id": "X", "eventId": "mirror", "choices": [{"id": "buy", "label": "Buy"}]}
    assert resolver.apply_event_choice(state_with_log("X"), "refuse", "mirror", record) == {}


def test_generated_choices_are_rebuilt_from_a_logged_record() -> None:
    def generate(state, rng):
        return [EventChoice(id="offer_a", label="A", effect=effect_returning({"flags": {"a": True}}))]

    def restore(records):
        return [
            EventChoice(id=record["id"], label=record["label"], effect=effect_returning({"flags": {"restored": True}}))
            for record in records
        ]

    stall = EventDefinition(id="stall", condition=lambda state: True, choices=ChoiceSet.generated(generate, restore))
    resolver = ChoiceResolver(EventCatalog([stall]), rng=random.Random(0))
    record = {"id": "X", "eventId": "stall", "choices": [{"id": "offer_a", "label": "A"}]}

    delta = resolver.apply_event_choice(state_with_log("X"), "offer_a", "stall", record)
    assert delta["flags"] == {"restored": True}
    assert delta["log"] == []


def test_registered_restorer_wins_over_the_choice_set() -> None:
    stall = EventDefinition(id="stall", condition=lambda state: True)
    resolver = ChoiceResolver(
        EventCatalog([stall]),
        restorers={"stall": lambda records: [EventChoice(id="deal", label="Deal", effect=effect_returning({"CM": 1}))]},
    )
    record = {"id": "X", "eventId": "stall", "choices": [{"id": "deal", "label": "Deal"}]}
    assert resolver.apply_event_choice(state_with_log("X"), "deal", "stall", record)["CM"] == 1
