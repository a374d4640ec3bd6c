import subprocess
import sys
from pathlib import Path

import pytest

from cave_engine.catalog import EventCatalog, merge_catalogs
from cave_engine.content.registry import EVENT_GROUPS, build_default_catalog
from cave_engine.errors import CatalogError
from cave_engine.models import ChoiceSet, EventChoice, EventDefinition, TradeOffer
from tools import validate


REPO_ROOT = Path(__file__).resolve().parents[1]


def noop(state, rng) -> dict:
    return {}


def event(event_id: str = "evt", **kwargs) -> EventDefinition:
    kwargs.setdefault("condition", lambda state: True)
    return EventDefinition(id=event_id, **kwargs)


def errors_for(*events) -> str:
    with pytest.raises(CatalogError) as info:
        EventCatalog(events)
    return "\n".join(info.value.errors)


@pytest.mark.parametrize(
    ("definition", "match"),
    [
        (event(is_timed_choice=True, choices=[EventChoice(id="a", label="A", effect=noop)]), "timed choices must declare"),
        (event(effect="not callable"), "'effect' must be callable"),
        (event(condition=None), "'condition' must be callable"),
        (event(time_probability=0), "'time_probability' must be a positive number"),
        (event(time_probability=-5), "'time_probability' must be a positive number"),
        (event(priority=1.5), "'priority' must be an integer"),
        (event(trigger_type="weather"), "unsupported trigger type"),
        (
            event(
                choices=[
                    EventChoice(id="same", label="One", effect=noop),
                    EventChoice(id="same", label="Two", effect=noop),
                ]
            ),
            "duplicate choice IDs detected: same",
        ),
        (event(choices=[EventChoice(id="x", label="X", effect=None)]), "'effect' must be callable"),
        (
            event(
                choices=[
                    EventChoice(
                        id="x",
                        label="X",
                        effect=noop,
                        trade=TradeOffer(give_resource="iron", give_amount=0, cost_resource="gold", cost_amount=5),
                    )
                ]
            ),
            "'give_amount' must be a positive number",
        ),
    ],
)
def test_catalog_rejects_malformed_definitions(definition: EventDefinition, match: str) -> None:
    assert match in errors_for(definition)


def test_error_paths_name_the_event() -> None:
    message = errors_for(event("brokenTimer", is_timed_choice=True))
    assert "events.brokenTimer.fallback_choice" in message
    assert "Event 'brokenTimer'" in message


def test_non_definitions_are_rejected() -> None:
    assert "must be an EventDefinition" in errors_for({"id": "dict_event"})


def test_duplicate_event_ids_are_rejected() -> None:
    assert "duplicate event IDs detected: twice" in errors_for(event("twice"), event("twice"))


def test_all_errors_are_reported_together() -> None:
    with pytest.raises(CatalogError) as info:
        EventCatalog([event("a", priority="high"), event("b", effect=3)])
    assert len(info.value.errors) == 2
    assert str(info.value).startswith("Invalid event catalog:")


def test_generated_choices_pass_validation() -> None:
    catalog = EventCatalog([event("gen", choices=ChoiceSet.generated(lambda state, rng: []))])
    assert "gen" in catalog


def test_merge_catalogs_reports_redefinitions_by_group() -> None:
    with pytest.raises(CatalogError, match="extra: event IDs already defined: shared"):
        merge_catalogs(("core", [event("shared")]), ("extra", [event("shared"), event("fresh")]))


def test_by_priority_orders_descending_and_keeps_declaration_order() -> None:
    catalog = EventCatalog(
        [event("low", priority=1), event("high", priority=9), event("mid_a", priority=5), event("mid_b", priority=5)]
    )
    assert [definition.id for definition in catalog.by_priority()] == ["high", "mid_a", "mid_b", "low"]
    assert catalog.ids() == ["low", "high", "mid_a", "mid_b"]
    assert len(catalog) == 4
    assert catalog.get("missing") is None


def test_bundled_content_builds_a_valid_catalog() -> None:
    catalog = build_default_catalog()
    assert len(catalog) == sum(len(events) for _, events in EVENT_GROUPS)
    assert catalog.by_priority()[0].id == "starvation"


def test_prompt_analysis_flags_shared_fallback_ids() -> None:
    warnings = validate.analyze_prompts(list(build_default_catalog()))
    assert any("coinOfDrownedChoice" in warning and "leaveCoin" in warning for warning in warnings)
    assert any("monasteryResponse" in warning for warning in warnings)
    assert not any("swampTribeResponse" in warning for warning in warnings)


def run_validate(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, str(REPO_ROOT / "tools" / "validate.py"), *args],
        capture_output=True,
        text=True,
        check=False,
    )


def test_validate_tool_passes_bundled_content() -> None:
    result = run_validate()
    assert result.returncode == 0, result.stdout
    assert "Validation passed for 21 events." in result.stdout


def test_validate_tool_flags_timed_event_without_fallback(tmp_path: Path) -> None:
    path = tmp_path / "events.py"
    path.write_text(
        "from cave_engine.models import EventChoice, EventDefinition\n"
        "\n"
        "EVENTS = [\n"
        "    EventDefinition(\n"
        "        id='hurry',\n"
        "        condition=lambda state: True,\n"
        "        is_timed_choice=True,\n"
        "        choices=[EventChoice(id='go', label='Go', effect=lambda state, rng: {})],\n"
        "    ),\n"
        "]\n"
    )
    result = run_validate(str(path))
    assert result.returncode == 1
    assert "Validation failed" in result.stdout
    assert "timed choices must declare" in result.stdout


def test_validate_tool_reports_missing_events_list(tmp_path: Path) -> None:
    path = tmp_path / "empty.py"
    path.write_text("NOTHING = []\n")
    result = run_validate(str(path))
    assert result.returncode == 1
    assert "does not define EVENTS" in result.stdout


def test_choice_restorer_must_be_callable() -> None:
    definition = event("gen", choices=ChoiceSet.generated(lambda state, rng: [], "not callable"))
    assert "choice restorer must be callable" in errors_for(definition)
