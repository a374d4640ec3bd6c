"""Host tick loop tying the engine, the log and timed prompts together."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from cave_engine.errors import EventFault, guarded
from cave_engine.events import EventManager, TickResult
from cave_engine.merge import merge_state
from cave_engine.models import LogEntry, StateDelta
from cave_engine.settings import Settings
from cave_engine.state import append_log, ensure_consistency, log_ids, new_game_state
from cave_engine.timers import TimedChoiceSupervisor

LOG_MESSAGE_KEY = "_logMessage"
COMBAT_KEY = "_combatData"


def split_directives(delta: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Separate presentation directives (``_``-prefixed keys) from state changes."""
    changes: Dict[str, Any] = {}
    directives: Dict[str, Any] = {}
    for key, value in delta.items():
        if isinstance(key, str) and key.startswith("_"):
            directives[key] = value
        else:
            changes[key] = value
    return changes, directives


class GameSession:
    """Owns the canonical state and applies engine output to it.

    The session is the only place state is replaced. A fault raised by
    authored event code is reported through ``print_func`` and the tick (or
    choice) that raised it leaves the state untouched.
    """

    def __init__(
        self,
        manager: EventManager,
        state: Optional[Mapping[str, Any]] = None,
        *,
        settings: Optional[Settings] = None,
        supervisor: Optional[TimedChoiceSupervisor] = None,
        print_func: Callable[[str], None] = print,
    ) -> None:
        self.manager = manager
        self.settings = settings.copy() if settings is not None else Settings()
        self.state: Dict[str, Any] = ensure_consistency(state if state is not None else new_game_state())
        self.supervisor = (
            supervisor
            if supervisor is not None
            else TimedChoiceSupervisor(self.settings.decision_time_scale)
        )
        self.print = print_func
        self._open_entries: Dict[str, LogEntry] = {}
        self._combat_queue: List[Dict[str, Any]] = []
        self._restore_open_prompts()

    # ---------- Public API ----------
    def tick(self, now_ms: Optional[int] = None) -> List[LogEntry]:
        try:
            result = self.manager.check_events(self.state)
        except EventFault as exc:
            self._report("Events", exc)
            return []
        return self._apply_result(result, now_ms)

    def trigger(self, event_id: str, now_ms: Optional[int] = None) -> List[LogEntry]:
        try:
            result = self.manager.trigger_event(self.state, event_id)
        except EventFault as exc:
            self._report("Events", exc)
            return []
        return self._apply_result(result, now_ms)

    def choose(self, choice_id: str, entry_id: str, now_ms: Optional[int] = None) -> bool:
        entry = self._open_entries.get(entry_id)
        if entry is None or entry.event_id is None:
            return False
        try:
            delta = self.manager.apply_event_choice(self.state, choice_id, entry.event_id, entry)
        except EventFault as exc:
            self._report("Choice", exc)
            return False
        if not delta:
            return False
        del self._open_entries[entry_id]
        self.supervisor.resolve(entry_id)
        self._apply(delta, (), self._now(now_ms))
        return True

    def expire_timers(self, now_ms: Optional[int] = None) -> int:
        """Resolve every timed prompt whose countdown ran out with its fallback."""
        now = self._now(now_ms)
        resolved = 0
        for prompt in self.supervisor.expire_due(now):
            entry = self._open_entries.pop(prompt.entry.id, None)
            if entry is None or entry.event_id is None:
                continue
            try:
                delta = self.manager.apply_fallback(self.state, entry.event_id, entry)
            except EventFault as exc:
                self._report("Timer", exc)
                continue
            if delta:
                self._apply(delta, (), now)
                resolved += 1
        return resolved

    def pending_prompts(self) -> List[LogEntry]:
        return list(self._open_entries.values())

    def drain_combat(self) -> List[Dict[str, Any]]:
        queued, self._combat_queue = self._combat_queue, []
        return queued

    def settle_combat(self, encounter: Mapping[str, Any], victory: bool, now_ms: Optional[int] = None) -> bool:
        """Apply the outcome callback of a combat payload produced by an effect."""
        callback = encounter.get("onVictory" if victory else "onDefeat")
        if not callable(callback):
            return False
        source = str(encounter.get("eventId") or "combat")
        try:
            delta = guarded(source, "combat outcome", callback, self.state)
        except EventFault as exc:
            self._report("Combat", exc)
            return False
        self._apply(delta or {}, (), self._now(now_ms))
        return True

    # ---------- Internals ----------
    def _restore_open_prompts(self) -> None:
        # Prompts still in a restored log stay answerable, and timed ones
        # keep counting down from when they were logged.
        for record in self.state["log"]:
            if not (record.get("choices") or record.get("isTimedChoice")):
                continue
            try:
                entry = self.manager.restore_entry(record)
            except EventFault as exc:
                self._report("Events", exc)
                continue
            if entry is None:
                continue
            self._open_entries[entry.id] = entry
            self.supervisor.offer(entry, entry.timestamp)

    def _drop_aged_out(self, state: Mapping[str, Any]) -> None:
        live = log_ids(state)
        for entry_id in [key for key in self._open_entries if key not in live]:
            del self._open_entries[entry_id]
            self.supervisor.withdraw(entry_id)

    def _now(self, now_ms: Optional[int]) -> int:
        return int(now_ms) if now_ms is not None else int(self.manager.clock())

    def _report(self, tag: str, fault: EventFault) -> None:
        self.print(f"[{tag}] Fault in '{fault.event_id}' during {fault.phase}: {fault.cause}")

    def _apply_result(self, result: TickResult, now_ms: Optional[int]) -> List[LogEntry]:
        if not result.fired:
            return []
        now = self._now(now_ms)
        self._apply(result.state_changes, result.new_log_entries, now)
        for entry in result.new_log_entries:
            if entry.has_choices or entry.is_timed_choice:
                self._open_entries[entry.id] = entry
            self.supervisor.offer(entry, now)
        return list(result.new_log_entries)

    def _apply(self, delta: StateDelta, entries: Sequence[LogEntry], now: int) -> None:
        changes, directives = split_directives(delta)
        previous = self.state
        new_state = merge_state(previous, changes)

        extra: List[LogEntry] = list(entries)
        message = directives.get(LOG_MESSAGE_KEY)
        if message:
            extra.append(self._system_entry(str(message), now, new_state))
        combat = directives.get(COMBAT_KEY)
        if isinstance(combat, Mapping):
            self._combat_queue.append(dict(combat))

        if extra:
            new_state["log"] = append_log(
                new_state.get("log") or [],
                extra,
                state=previous,
                limit=self.settings.log_limit,
            )
        self.state = new_state
        self._drop_aged_out(new_state)

    def _system_entry(self, message: str, now: int, state: Mapping[str, Any]) -> LogEntry:
        existing = log_ids(state)
        stamp = now
        while f"choice-result-{stamp}" in existing:
            stamp += 1
        return LogEntry(id=f"choice-result-{stamp}", message=message, timestamp=now, type="system")

