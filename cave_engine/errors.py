"""Error types raised by the cave engine."""

from __future__ import annotations

from typing import Any, Callable, Sequence, TypeVar

T = TypeVar("T")


class CatalogError(ValueError):
    """Raised when event definitions fail validation at load time."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid event catalog:\n- " + "\n- ".join(self.errors))


class EventFault(RuntimeError):
    """Raised when authored event code fails while being evaluated."""

    def __init__(self, event_id: str, phase: str, cause: BaseException) -> None:
        self.event_id = event_id
        self.phase = phase
        self.cause = cause
        super().__init__(f"event '{event_id}' failed during {phase}: {cause}")


def guarded(event_id: str, phase: str, func: Callable[..., T], *args: Any) -> T:
    """Call authored code, re-raising any failure as :class:`EventFault`."""
    try:
        return func(*args)
    except EventFault:
        raise
    except Exception as exc:
        raise EventFault(event_id, phase, exc) from exc
