#!/usr/bin/env python3
"""Simulate the bundled events against a sample village and report trigger rates."""

from __future__ import annotations

import argparse
import json
import random
import sys
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from cave_engine.content.registry import build_default_manager
from cave_engine.merge import merge_state
from cave_engine.session import GameSession
from cave_engine.settings import Settings, load_settings
from cave_engine.state import new_game_state
from cave_engine.timekeeping import ticks_per_minute


def sample_state() -> Dict[str, Any]:
    """A mid-game village where most ambient events are eligible."""
    return merge_state(
        new_game_state(),
        {
            "resources": {"wood": 800, "stone": 400, "food": 300, "iron": 600, "gold": 300, "silver": 200},
            "buildings": {"woodenHut": 5},
            "villagers": {"free": 4, "gatherer": 3, "hunter": 2},
            "fellowship": {"one_eyed_crow": True},
            "tradeEstablishState": {"remainingOptions": ["mountain_monastery", "swamp_tribe", "shore_fishermen"]},
        },
    )


def load_state(path: Path | None) -> Dict[str, Any]:
    if path is None:
        return sample_state()
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def simulate(state: Dict[str, Any], ticks: int, seed: int, settings: Settings) -> Dict[str, Any]:
    clock = {"now": 0}
    manager = build_default_manager(settings, rng=random.Random(seed), clock=lambda: clock["now"])
    messages: List[str] = []
    session = GameSession(manager, state, settings=settings, print_func=messages.append)
    picker = random.Random(seed + 1)

    fired: Counter = Counter()
    answered = 0
    for index in range(ticks):
        clock["now"] = index * settings.tick_interval_ms
        session.expire_timers(clock["now"])
        for entry in session.tick(clock["now"]):
            fired[entry.event_id] += 1
        for entry in session.pending_prompts():
            # Timed prompts are left to expire half of the time.
            if not entry.choices or (entry.is_timed_choice and picker.random() < 0.5):
                continue
            if session.choose(picker.choice(entry.choices).id, entry.id, clock["now"]):
                answered += 1
        session.drain_combat()

    minutes = ticks / ticks_per_minute(settings.tick_interval_ms)
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "ticks": ticks,
        "simulated_minutes": minutes,
        "seed": seed,
        "fired": dict(sorted(fired.items())),
        "per_minute": {event_id: count / minutes for event_id, count in sorted(fired.items())} if minutes else {},
        "answered_prompts": answered,
        "faults": messages,
        "final_population": sum((session.state.get("villagers") or {}).values()),
    }


def build_markdown(report: Dict[str, Any]) -> str:
    lines = [
        "# Event Report",
        "",
        f"- Ticks: {report['ticks']} ({report['simulated_minutes']:.1f} minutes)",
        f"- Seed: {report['seed']}",
        f"- Prompts answered: {report['answered_prompts']}",
        f"- Final population: {report['final_population']}",
        "",
        "| Event | Fired | Per minute |",
        "| --- | ---: | ---: |",
    ]
    for event_id, count in report["fired"].items():
        lines.append(f"| `{event_id}` | {count} | {report['per_minute'].get(event_id, 0.0):.3f} |")
    if report["faults"]:
        lines.extend(["", "## Faults", ""])
        lines.extend(f"- {fault}" for fault in report["faults"])
    return "\n".join(lines) + "\n"


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate event triggers and summarise them.")
    parser.add_argument("--ticks", type=int, default=18_000, help="Number of ticks to simulate.")
    parser.add_argument("--seed", type=int, default=7, help="Seed for the event RNG.")
    parser.add_argument("--state", default=None, help="Optional JSON game state to start from.")
    parser.add_argument("--settings", default=None, help="Optional engine settings JSON file.")
    parser.add_argument("--json-out", default=None, help="Path to write the JSON report.")
    parser.add_argument("--markdown-out", default=None, help="Path to write the Markdown report.")
    return parser.parse_args(argv)


def main(argv: Sequence[str]) -> int:
    args = parse_args(argv[1:])
    settings = load_settings(args.settings) if args.settings else Settings()
    try:
        state = load_state(Path(args.state).resolve() if args.state else None)
    except json.JSONDecodeError as exc:
        print(f"Failed to parse JSON from {args.state}: {exc}")
        return 1

    report = simulate(state, max(args.ticks, 0), args.seed, settings)

    if args.json_out:
        Path(args.json_out).write_text(json.dumps(report, indent=2, sort_keys=True), encoding="utf-8")
        print(f"JSON report written to {args.json_out}")
    if args.markdown_out:
        Path(args.markdown_out).write_text(build_markdown(report), encoding="utf-8")
        print(f"Markdown report written to {args.markdown_out}")
    if not args.json_out and not args.markdown_out:
        print(build_markdown(report), end="")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
