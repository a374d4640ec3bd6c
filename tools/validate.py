#!/usr/bin/env python3
"""Validate event definitions for common authoring mistakes."""

from __future__ import annotations

import argparse
import importlib.util
import sys
from pathlib import Path
from typing import Any, List, Sequence, Tuple

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from cave_engine.catalog import CatalogError, merge_catalogs
from cave_engine.content.registry import EVENT_GROUPS
from cave_engine.models import EventDefinition


def load_events_file(path: Path) -> Sequence[Any]:
    spec = importlib.util.spec_from_file_location(f"_events_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot load {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    events = getattr(module, "EVENTS", None)
    if events is None:
        raise ImportError(f"{path} does not define EVENTS")
    return list(events)


def analyze_prompts(events: Sequence[Any]) -> List[str]:
    """Soft warnings that do not stop a catalog from loading."""
    warnings: List[str] = []
    for event in events:
        if not isinstance(event, EventDefinition):
            continue
        presented = {choice.id for choice in event.static_choices}
        fallback = event.fallback_choice
        if fallback is not None and fallback.id in presented:
            warnings.append(
                f"events.{event.id}.fallback_choice: shares id '{fallback.id}' with a presented choice; "
                "picking it by hand runs the presented effect, expiry runs the fallback."
            )
        if fallback is not None and not event.is_timed_choice:
            warnings.append(
                f"events.{event.id}.fallback_choice: declared on an event without a countdown."
            )
        if (
            not event.repeatable
            and event.time_probability is None
            and event.trigger_type != "action"
        ):
            warnings.append(
                f"events.{event.id}: fires on the first tick its condition holds (no time_probability)."
            )
    return warnings


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate cave engine event definitions.")
    parser.add_argument(
        "event_files",
        nargs="*",
        help="Python files defining an EVENTS sequence. Defaults to the bundled content.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str]) -> None:
    args = parse_args(argv[1:])
    groups: List[Tuple[str, Sequence[Any]]] = []
    if args.event_files:
        for raw_path in args.event_files:
            path = Path(raw_path).resolve()
            try:
                groups.append((str(path), load_events_file(path)))
            except (ImportError, OSError, SyntaxError) as exc:
                print(f"Failed to load events from {path}: {exc}")
                sys.exit(1)
    else:
        groups = list(EVENT_GROUPS)

    try:
        catalog = merge_catalogs(*groups)
    except CatalogError as exc:
        print("Validation failed (path: message):")
        for err in exc.errors:
            print(f" - {err}")
        sys.exit(1)

    warnings = analyze_prompts(list(catalog))
    if warnings:
        print("Prompt warnings (path: message):")
        for warning in warnings:
            print(f" - {warning}")

    print(f"Validation passed for {len(catalog)} events.")


if __name__ == "__main__":
    main(sys.argv)
