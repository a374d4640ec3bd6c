"""Assembles the bundled event groups into a ready-to-run engine."""

from __future__ import annotations

import random
from typing import Optional, Sequence, Tuple

from cave_engine.catalog import EventCatalog, merge_catalogs
from cave_engine.content import base, cave, collector, crow, dreams, merchant, omens, waves
from cave_engine.events import Clock, EventManager
from cave_engine.models import EventDefinition
from cave_engine.settings import Settings

EVENT_GROUPS: Sequence[Tuple[str, Sequence[EventDefinition]]] = (
    ("base", base.EVENTS),
    ("omens", omens.EVENTS),
    ("merchant", merchant.EVENTS),
    ("dreams", dreams.EVENTS),
    ("cave", cave.EVENTS),
    ("crow", crow.EVENTS),
    ("collector", collector.EVENTS),
    ("waves", waves.EVENTS),
)


def build_default_catalog() -> EventCatalog:
    return merge_catalogs(*EVENT_GROUPS)


def build_default_manager(
    settings: Optional[Settings] = None,
    *,
    rng: Optional[random.Random] = None,
    clock: Optional[Clock] = None,
    catalog: Optional[EventCatalog] = None,
) -> EventManager:
    settings = settings if settings is not None else Settings()
    if rng is None:
        rng = random.Random(settings.rng_seed)
    return EventManager(
        catalog if catalog is not None else build_default_catalog(),
        rng=rng,
        clock=clock,
        choice_generators=merchant.CHOICE_GENERATORS,
        choice_restorers=merchant.CHOICE_RESTORERS,
        tick_interval_ms=settings.tick_interval_ms,
        cooldown_fraction=settings.cooldown_fraction,
    )
