"""Update the README block that lists the bundled events."""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from cave_engine.catalog import EventCatalog
from cave_engine.content.merchant import CHOICE_GENERATORS
from cave_engine.content.registry import build_default_catalog
from cave_engine.models import EventDefinition

MARKER_START = "<!-- event-docs:start -->"
MARKER_END = "<!-- event-docs:end -->"


def _format_probability(event: EventDefinition) -> str:
    value = event.time_probability
    if value is None:
        return "immediate"
    if callable(value):
        return "state-dependent"
    return f"{value:g} min"


def _format_choices(event: EventDefinition) -> str:
    if event.id in CHOICE_GENERATORS:
        return "generated"
    if event.choices is None:
        return "effect" if event.effect is not None else "none"
    if event.choices.is_generated:
        return "generated"
    return ", ".join(f"`{choice.id}`" for choice in event.choices.choices)


def render_block(catalog: EventCatalog) -> str:
    lines = [
        "| Event | Priority | Trigger | Every | Repeats | Choices |",
        "| --- | ---: | --- | --- | --- | --- |",
    ]
    for event in catalog.by_priority():
        timed = " (timed)" if event.is_timed_choice else ""
        lines.append(
            f"| `{event.id}` | {event.priority} | {event.trigger_type} | {_format_probability(event)} | "
            f"{'yes' if event.repeatable else 'no'} | {_format_choices(event)}{timed} |"
        )
    lines.append("")
    lines.append("_Regenerate with `python tools/generate_event_docs.py` when events change._")
    return "\n".join(lines)


def replace_block(path: Path, new_block: str) -> None:
    content = path.read_text()
    if MARKER_START not in content or MARKER_END not in content:
        raise RuntimeError(f"Markers not found in {path}.")
    before, rest = content.split(MARKER_START, 1)
    _, after = rest.split(MARKER_END, 1)
    updated = f"{before}{MARKER_START}\n{new_block}\n{MARKER_END}{after}"
    path.write_text(updated)


def main() -> None:
    replace_block(REPO_ROOT / "README.md", render_block(build_default_catalog()))
    print("Updated event docs. Regenerate docs with: python tools/generate_event_docs.py")


if __name__ == "__main__":
    main()
