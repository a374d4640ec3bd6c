from typing import List

from cave_engine.catalog import EventCatalog
from cave_engine.events import EventManager
from cave_engine.models import EventChoice, EventDefinition
from cave_engine.session import GameSession, split_directives
from cave_engine.settings import Settings
from cave_engine.state import new_game_state


def always(state) -> bool:
    return True


def build_session(*events: EventDefinition, settings: Settings | None = None, state=None):
    messages: List[str] = []
    manager = EventManager(EventCatalog(events), clock=lambda: 0)
    session = GameSession(manager, state, settings=settings, print_func=messages.append)
    return session, messages


def prompt_event(event_id: str = "mirror", **kwargs) -> EventDefinition:
    kwargs.setdefault("condition", always)
    kwargs.setdefault(
        "choices",
        [
            EventChoice(
                id="buy",
                label="Buy",
                effect=lambda state, rng: {
                    "relics": {"mirror": True},
                    "resources": {"iron": state["resources"]["iron"] - 500},
                    "_logMessage": "You buy the mirror.",
                },
            ),
            EventChoice(id="refuse", label="Refuse", effect=lambda state, rng: {"_logMessage": "You refuse."}),
        ],
    )
    return EventDefinition(id=event_id, message="A mirror is offered.", **kwargs)


def log_ids(session: GameSession) -> List[str]:
    return [entry["id"] for entry in session.state["log"]]


def test_split_directives_separates_underscore_keys() -> None:
    changes, directives = split_directives({"resources": {"wood": 1}, "_logMessage": "hi", "_combatData": {}})
    assert changes == {"resources": {"wood": 1}}
    assert set(directives) == {"_logMessage", "_combatData"}


def test_session_normalises_the_initial_state() -> None:
    session, _ = build_session(prompt_event(), state={"resources": {"wood": 5}})
    assert session.state["resources"]["wood"] == 5
    assert session.state["resources"]["food"] == 0
    assert session.state["story"] == {"seen": {}}
    assert session.state["log"] == []


def test_tick_logs_entry_and_opens_prompt() -> None:
    session, _ = build_session(prompt_event())
    entries = session.tick(now_ms=0)
    assert [entry.id for entry in entries] == ["mirror-0"]
    record = session.state["log"][-1]
    assert record["eventId"] == "mirror"
    assert [choice["id"] for choice in record["choices"]] == ["buy", "refuse"]
    assert [entry.id for entry in session.pending_prompts()] == ["mirror-0"]
    assert session.state["triggeredEvents"] == {"mirror": True}


def test_choiceless_entries_do_not_open_prompts() -> None:
    session, _ = build_session(
        EventDefinition(id="gift", condition=always, effect=lambda state, rng: {"resources": {"wood": 5}})
    )
    session.tick(now_ms=0)
    assert session.pending_prompts() == []
    assert session.state["resources"]["wood"] == 5


def test_choose_applies_the_choice_and_logs_the_result() -> None:
    state = new_game_state()
    state["resources"]["iron"] = 200
    session, _ = build_session(prompt_event(), state=state)
    session.tick(now_ms=0)

    assert session.choose("buy", "mirror-0", now_ms=50) is True
    assert session.state["relics"] == {"mirror": True}
    # Spending more than is held clamps at zero.
    assert session.state["resources"]["iron"] == 0
    assert log_ids(session) == ["choice-result-50"]
    system = session.state["log"][-1]
    assert system["type"] == "system"
    assert system["message"] == "You buy the mirror."
    assert "_logMessage" not in session.state
    assert session.pending_prompts() == []


def test_choose_twice_is_a_miss() -> None:
    session, _ = build_session(prompt_event())
    session.tick(now_ms=0)
    assert session.choose("refuse", "mirror-0", now_ms=1) is True
    assert session.choose("refuse", "mirror-0", now_ms=2) is False


def test_choose_with_unknown_ids_is_a_miss() -> None:
    session, _ = build_session(prompt_event())
    session.tick(now_ms=0)
    before = session.state
    assert session.choose("steal", "mirror-0") is False
    assert session.choose("buy", "nope-0") is False
    assert session.state is before


def test_log_is_capped_to_the_newest_entries() -> None:
    session, _ = build_session(
        EventDefinition(id="evt", condition=always, repeatable=True, message="tick"),
        settings=Settings(log_limit=10),
    )
    for now in range(15):
        session.manager.clock = lambda now=now: now
        session.tick(now_ms=now)
    assert len(session.state["log"]) == 10
    assert log_ids(session)[0] == "evt-5"
    assert log_ids(session)[-1] == "evt-14"


def test_condition_fault_is_reported_and_state_is_kept() -> None:
    def broken(state):
        raise ValueError("missing section")

    session, messages = build_session(EventDefinition(id="broken", condition=broken))
    before = session.state
    assert session.tick(now_ms=0) == []
    assert messages == ["[Events] Fault in 'broken' during condition: missing section"]
    assert session.state is before


def test_choice_fault_is_reported_and_prompt_stays_open() -> None:
    def explode(state, rng):
        raise RuntimeError("boom")

    session, messages = build_session(
        prompt_event("trap", choices=[EventChoice(id="spring", label="Spring it", effect=explode)])
    )
    session.tick(now_ms=0)
    assert session.choose("spring", "trap-0") is False
    assert messages == ["[Choice] Fault in 'trap' during choice 'spring': boom"]
    assert [entry.id for entry in session.pending_prompts()] == ["trap-0"]


def timed_event() -> EventDefinition:
    return prompt_event(
        "relic",
        is_timed_choice=True,
        base_decision_time=15,
        fallback_choice=EventChoice(
            id="timeout",
            label="Time Expired",
            effect=lambda state, rng: {"flags": {"expired": True}, "_logMessage": "Too slow."},
        ),
    )


def test_expired_timer_resolves_with_the_fallback() -> None:
    session, _ = build_session(timed_event())
    session.tick(now_ms=0)

    assert session.expire_timers(14_999) == 0
    assert session.expire_timers(15_000) == 1
    assert session.state["flags"] == {"expired": True}
    assert log_ids(session) == ["choice-result-15000"]
    assert session.pending_prompts() == []
    assert session.expire_timers(60_000) == 0


def test_answered_prompt_never_expires() -> None:
    session, _ = build_session(timed_event())
    session.tick(now_ms=0)
    assert session.choose("refuse", "relic-0", now_ms=1_000) is True
    assert session.expire_timers(60_000) == 0
    assert "expired" not in session.state["flags"]


def test_trigger_fires_action_events() -> None:
    session, _ = build_session(prompt_event("found", condition=lambda state: False, trigger_type="action"))
    assert session.tick(now_ms=0) == []
    assert [entry.id for entry in session.trigger("found", now_ms=0)] == ["found-0"]
    assert session.trigger("found", now_ms=1) == []


def combat_event(on_defeat=None) -> EventDefinition:
    def start(state, rng):
        return {
            "_combatData": {
                "eventId": "raid",
                "enemy": {"name": "Raiders", "attack": 10},
                "onVictory": lambda state: {"flags": {"won": True}, "_logMessage": "Victory."},
                "onDefeat": on_defeat or (lambda state: {"villagers": {"free": 0}}),
            }
        }

    return EventDefinition(id="raid", condition=always, effect=start)


def test_combat_payload_is_queued_not_merged() -> None:
    session, _ = build_session(combat_event())
    session.tick(now_ms=0)
    assert "_combatData" not in session.state
    queued = session.drain_combat()
    assert [encounter["eventId"] for encounter in queued] == ["raid"]
    assert session.drain_combat() == []


def test_settle_combat_applies_the_outcome_callback() -> None:
    state = new_game_state()
    state["villagers"]["free"] = 3
    session, _ = build_session(combat_event(), state=state)
    session.tick(now_ms=0)
    encounter = session.drain_combat()[0]

    assert session.settle_combat(encounter, victory=True, now_ms=10) is True
    assert session.state["flags"] == {"won": True}
    assert session.state["log"][-1]["message"] == "Victory."

    assert session.settle_combat(encounter, victory=False, now_ms=11) is True
    assert session.state["villagers"]["free"] == 0


def test_settle_combat_reports_faults() -> None:
    def broken(state):
        raise KeyError("villagers")

    session, messages = build_session(combat_event(on_defeat=broken))
    session.tick(now_ms=0)
    encounter = session.drain_combat()[0]
    assert session.settle_combat(encounter, victory=False) is False
    assert len(messages) == 1
    assert messages[0].startswith("[Combat] Fault in 'raid' during combat outcome")
    assert session.settle_combat({"eventId": "raid"}, victory=True) is False


def restored(session: GameSession, **kwargs):
    messages: List[str] = []
    return GameSession(session.manager, session.state, print_func=messages.append, **kwargs), messages


def test_restored_session_reopens_logged_prompts() -> None:
    first, _ = build_session(prompt_event())
    first.tick(now_ms=0)

    session, messages = restored(first)
    assert [entry.id for entry in session.pending_prompts()] == ["mirror-0"]
    assert session.choose("buy", "mirror-0", now_ms=5) is True
    assert session.state["relics"] == {"mirror": True}
    assert log_ids(session) == ["choice-result-5"]
    assert messages == []


def test_restored_timed_prompt_keeps_its_deadline() -> None:
    first, _ = build_session(timed_event())
    first.tick(now_ms=0)

    session, _ = restored(first)
    assert session.supervisor.is_open("relic-0")
    assert session.expire_timers(14_999) == 0
    assert session.expire_timers(15_000) == 1
    assert session.state["flags"] == {"expired": True}
    assert session.pending_prompts() == []


def test_restored_session_ignores_records_for_unknown_events() -> None:
    state = new_game_state()
    state["log"] = [{"id": "ghost-0", "eventId": "ghost", "choices": [{"id": "boo"}], "isTimedChoice": True}]
    session, _ = build_session(prompt_event(), state=state)
    assert session.pending_prompts() == []
    assert session.supervisor.open_prompts() == []


def test_prompts_aged_out_of_the_log_are_dropped() -> None:
    session, _ = build_session(prompt_event("omen", repeatable=True), settings=Settings(log_limit=10))
    for now in range(15):
        session.manager.clock = lambda now=now: now
        session.tick(now_ms=now)

    pending = [entry.id for entry in session.pending_prompts()]
    assert len(pending) == 10
    assert "omen-0" not in pending
    assert pending[-1] == "omen-14"
    assert session.choose("refuse", "omen-0", now_ms=20) is False
    assert session.choose("refuse", "omen-14", now_ms=20) is True


def test_aged_out_timed_prompts_stop_counting_down() -> None:
    session, _ = build_session(
        prompt_event(
            "omen",
            repeatable=True,
            is_timed_choice=True,
            base_decision_time=600,
            fallback_choice=EventChoice(id="wait", label="Wait", effect=lambda state, rng: {"CM": 1}),
        ),
        settings=Settings(log_limit=10),
    )
    for now in range(15):
        session.manager.clock = lambda now=now: now
        session.tick(now_ms=now)

    assert len(session.supervisor.open_prompts()) == 10
    assert not session.supervisor.is_open("omen-4")
    assert session.supervisor.is_open("omen-5")
