"""Host-side countdowns for timed choice prompts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from cave_engine.models import LogEntry

OFFERED = "offered"
RESOLVED = "resolved"
EXPIRED = "expired"
WITHDRAWN = "withdrawn"

DEFAULT_DECISION_TIME = 15.0


@dataclass
class TimedPrompt:
    entry: LogEntry
    deadline_ms: float
    state: str = OFFERED

    @property
    def event_id(self) -> Optional[str]:
        return self.entry.event_id

    @property
    def fallback_choice_id(self) -> Optional[str]:
        fallback = self.entry.fallback_choice
        return fallback.id if fallback is not None else None


class TimedChoiceSupervisor:
    """Tracks open timed prompts and reports the ones whose time ran out.

    Every prompt leaves the ``offered`` state exactly once, through
    :meth:`resolve`, :meth:`expire_due` or :meth:`withdraw`.
    """

    def __init__(self, decision_time_scale: float = 1.0) -> None:
        self.decision_time_scale = max(float(decision_time_scale), 0.0)
        self._prompts: Dict[str, TimedPrompt] = {}

    def offer(self, entry: LogEntry, now_ms: float) -> Optional[TimedPrompt]:
        if not entry.is_timed_choice:
            return None
        seconds = entry.base_decision_time or DEFAULT_DECISION_TIME
        prompt = TimedPrompt(entry=entry, deadline_ms=now_ms + seconds * self.decision_time_scale * 1000)
        self._prompts[entry.id] = prompt
        return prompt

    def resolve(self, entry_id: str) -> bool:
        prompt = self._prompts.pop(entry_id, None)
        if prompt is None:
            return False
        prompt.state = RESOLVED
        return True

    def withdraw(self, entry_id: str) -> bool:
        """Stop tracking a prompt whose log entry is gone, without resolving it."""
        prompt = self._prompts.pop(entry_id, None)
        if prompt is None:
            return False
        prompt.state = WITHDRAWN
        return True

    def expire_due(self, now_ms: float) -> List[TimedPrompt]:
        expired = [prompt for prompt in self._prompts.values() if prompt.deadline_ms <= now_ms]
        for prompt in expired:
            del self._prompts[prompt.entry.id]
            prompt.state = EXPIRED
        return expired

    def remaining(self, entry_id: str, now_ms: float) -> Optional[float]:
        """Seconds left on a prompt, or ``None`` when it is not open."""
        prompt = self._prompts.get(entry_id)
        if prompt is None:
            return None
        return max(prompt.deadline_ms - now_ms, 0.0) / 1000

    def is_open(self, entry_id: str) -> bool:
        return entry_id in self._prompts

    def open_prompts(self) -> List[TimedPrompt]:
        return list(self._prompts.values())
