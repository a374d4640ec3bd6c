"""The travelling merchant and its per-visit trade offers.

Offers are generated when the merchant arrives. Each choice carries a
:class:`~cave_engine.models.TradeOffer` so affordability and the trade itself
work from structured data, never from the label text.
"""

from __future__ import annotations

import random
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from cave_engine.content.helpers import building, discounted_cost, resource
from cave_engine.models import EventChoice, EventDefinition, State, TradeOffer

RESOURCE_OFFER_COUNT = 4
ITEM_OFFER_COUNT = 2

# (resource bought, amount, resource paid, possible base prices)
RESOURCE_TRADES: Sequence[Tuple[str, int, str, Tuple[int, ...]]] = (
    ("steel", 100, "wood", (750, 1000, 1250)),
    ("steel", 50, "bones", (400, 500, 600)),
    ("steel", 50, "wood", (400, 500, 600)),
    ("iron", 100, "stone", (300, 400, 500)),
    ("food", 500, "fur", (150, 200, 250)),
    ("obsidian", 50, "gold", (40, 50, 60)),
    ("gold", 50, "silver", (80, 100, 120)),
    ("silver", 100, "obsidian", (100,)),
)

# (item, state section, possible (currency, base price), purchase message)
ITEM_TRADES: Sequence[Tuple[str, str, Tuple[Tuple[str, int], ...], str]] = (
    (
        "reinforced_rope",
        "tools",
        (("silver", 50), ("gold", 25)),
        "The merchant explains that this rope can withstand tremendous strain and reach places "
        "previously inaccessible in the deepest cave chambers.",
    ),
    (
        "alchemist_map",
        "tools",
        (("silver", 100), ("gold", 50)),
        "The merchant whispers: 'An old alchemist, close to death, hid his secrets within a part of the cave. "
        "This map will guide you there.'",
    ),
    (
        "murmuring_cube",
        "relics",
        (("silver", 150), ("gold", 75)),
        "The strange geometric object hums with an otherworldly energy, its purpose mysterious "
        "but its power unmistakable.",
    ),
    (
        "giant_trap",
        "tools",
        (("silver", 20), ("gold", 10)),
        "The merchant grins: 'This can trap something gigantic in the woods. Use it wisely.'",
    ),
)


def _title(name: str) -> str:
    return name.replace("_", " ").title()


def _resource_trade_effect(offer: TradeOffer):
    def effect(state: State, rng: random.Random) -> Dict[str, Any]:
        if not offer.affordable(state):
            return {"_logMessage": f"You cannot afford {offer.cost_amount} {offer.cost_resource}."}
        return {
            "resources": {
                offer.cost_resource: resource(state, offer.cost_resource) - offer.cost_amount,
                offer.give_resource: resource(state, offer.give_resource) + offer.give_amount,
            }
        }

    return effect


def _item_trade_effect(offer: TradeOffer, section: str, message: str):
    def effect(state: State, rng: random.Random) -> Dict[str, Any]:
        if not offer.affordable(state):
            return {"_logMessage": f"You cannot afford {offer.cost_amount} {offer.cost_resource}."}
        return {
            "resources": {offer.cost_resource: resource(state, offer.cost_resource) - offer.cost_amount},
            section: {offer.give_resource: True},
            "_logMessage": f"You purchase the {_title(offer.give_resource).lower()} for "
            f"{offer.cost_amount} {offer.cost_resource}. {message}",
        }

    return effect


def _decline(state: State, rng: random.Random) -> Dict[str, Any]:
    return {
        "_logMessage": "You politely decline the merchant's offers. He shrugs and continues on his way, "
        "muttering about missed opportunities."
    }


def generate_merchant_choices(state: Mapping[str, Any], rng: random.Random) -> List[EventChoice]:
    """Pick and price this visit's offers, ending with a decline option."""
    choices: List[EventChoice] = []

    for give, amount, pay, prices in rng.sample(list(RESOURCE_TRADES), RESOURCE_OFFER_COUNT):
        offer = TradeOffer(
            give_resource=give,
            give_amount=amount,
            cost_resource=pay,
            cost_amount=discounted_cost(state, rng.choice(prices)),
        )
        choices.append(
            EventChoice(
                id=f"trade_{give}_{amount}_{pay}",
                label=f"Buy {amount} {_title(give)}",
                cost=f"{offer.cost_amount} {_title(pay)}",
                effect=_resource_trade_effect(offer),
                trade=offer,
            )
        )

    available = [trade for trade in ITEM_TRADES if not (state.get(trade[1]) or {}).get(trade[0])]
    for item, section, costs, message in rng.sample(available, min(ITEM_OFFER_COUNT, len(available))):
        currency, base = rng.choice(costs)
        offer = TradeOffer(
            give_resource=item,
            give_amount=1,
            cost_resource=currency,
            cost_amount=discounted_cost(state, base),
        )
        choices.append(
            EventChoice(
                id=f"trade_{item}",
                label=f"Buy {_title(item)}",
                cost=f"{offer.cost_amount} {_title(currency)}",
                effect=_item_trade_effect(offer, section, message),
                trade=offer,
            )
        )

    choices.append(EventChoice(id="decline_trade", label="Decline all trades", effect=_decline))
    return choices


def _restored_offer(record: Mapping[str, Any]) -> Optional[TradeOffer]:
    terms = record.get("trade")
    if not isinstance(terms, Mapping):
        return None
    try:
        return TradeOffer(
            give_resource=str(terms["giveResource"]),
            give_amount=int(terms["giveAmount"]),
            cost_resource=str(terms["costResource"]),
            cost_amount=int(terms["costAmount"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


def restore_merchant_choices(records: Sequence[Mapping[str, Any]]) -> List[EventChoice]:
    """Rebuild a visit's offers from the trade terms kept in the log record."""
    items = {item: (section, message) for item, section, _, message in ITEM_TRADES}
    choices: List[EventChoice] = []
    for record in records:
        choice_id = record.get("id")
        label = str(record.get("label") or choice_id)
        if choice_id == "decline_trade":
            choices.append(EventChoice(id=choice_id, label=label, effect=_decline))
            continue
        offer = _restored_offer(record)
        if not isinstance(choice_id, str) or offer is None:
            continue
        if offer.give_resource in items:
            section, message = items[offer.give_resource]
            effect = _item_trade_effect(offer, section, message)
        else:
            effect = _resource_trade_effect(offer)
        choices.append(EventChoice(id=choice_id, label=label, cost=record.get("cost"), effect=effect, trade=offer))
    return choices


EVENTS = (
    EventDefinition(
        id="merchant",
        condition=lambda state: building(state, "woodenHut") >= 3,
        trigger_type="resource",
        time_probability=120,
        priority=3,
        repeatable=True,
        title="The Traveling Merchant",
        message="A weathered merchant approaches your village, his pack filled with exotic goods and strange "
        "contraptions. 'I have rare items for trade,' he says with a crooked smile.",
    ),
)

CHOICE_GENERATORS = {"merchant": generate_merchant_choices}
CHOICE_RESTORERS = {"merchant": restore_merchant_choices}
