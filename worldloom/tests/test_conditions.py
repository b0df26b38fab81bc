"""
Tests for condition evaluation.
"""

import pytest

from ..engine_core.conditions import evaluate_condition
from ..engine_core.persistence import create_new_game
from ..engine_core.runtime import OptionalFeatures
from ..engine_core.state import InventoryEntry
from ..spec_schema.effect_dsl import (
    CustomCondition,
    ExpressionCondition,
    FlagCondition,
    InventoryCondition,
    LoreCondition,
    Item,
    StatCondition,
)


class TestBuiltinConditions:
    """Flag, stat and inventory conditions."""

    def test_missing_condition_holds(self, runtime, state):
        assert evaluate_condition(runtime, state, None) is True

    def test_flag_defaults_to_equals_true(self, runtime, state):
        condition = FlagCondition(key="door.open")
        assert not evaluate_condition(runtime, state, condition)
        state.flags["door.open"] = True
        assert evaluate_condition(runtime, state, condition)

    def test_flag_operators(self, runtime, state):
        state.flags["seen"] = False
        assert evaluate_condition(runtime, state, FlagCondition(key="seen", operator="exists"))
        assert evaluate_condition(runtime, state, FlagCondition(key="other", operator="notExists"))
        assert evaluate_condition(runtime, state, FlagCondition(key="seen", value=False))
        assert evaluate_condition(runtime, state, FlagCondition(key="seen", operator="notEquals"))

    @pytest.mark.parametrize("operator,value,expected", [
        ("gt", 4, True),
        ("gte", 5, True),
        ("lt", 5, False),
        ("lte", 5, True),
        ("eq", 5, True),
        ("neq", 5, False),
        ("between", 5, False),
    ])
    def test_stat_operators(self, runtime, state, operator, value, expected):
        state.character.stats["str"] = 5
        condition = StatCondition(key="str", operator=operator, value=value)
        assert evaluate_condition(runtime, state, condition) is expected

    def test_missing_stat_reads_zero(self, runtime, state):
        condition = StatCondition(key="luck", operator="eq", value=0)
        assert evaluate_condition(runtime, state, condition)

    def test_inventory(self, runtime, state):
        state.character.inventory.append(InventoryEntry(item=Item(id="coin", name="Coin"), count=3))
        assert evaluate_condition(runtime, state, InventoryCondition(key="coin"))
        assert evaluate_condition(runtime, state, InventoryCondition(key="gem", operator="notHas"))
        assert evaluate_condition(runtime, state, InventoryCondition(key="coin", operator="countGte", value=3))
        assert not evaluate_condition(runtime, state, InventoryCondition(key="coin", operator="countLte", value=2))


class TestExpressionConditions:
    """Expression conditions and their failure handling."""

    def test_expression(self, runtime, state):
        state.flags["a"] = True
        assert evaluate_condition(runtime, state, ExpressionCondition(expr="flag.a && !flag.b"))

    def test_invalid_expression_warns_and_records(self, runtime, state):
        """A broken expression is false, leaves a warning and a rule history entry."""
        assert not evaluate_condition(runtime, state, ExpressionCondition(expr="flag.a &&"))
        assert runtime.warnings[-1].path == "/runtime/conditions/expression"
        entry = state.history[-1]
        assert entry.type == "rule"
        assert entry.data["kind"] == "expression"
        assert entry.data["expr"] == "flag.a &&"

    def test_invalid_expression_falls_back_to_modules(self, make_runtime, test_module):
        runtime = make_runtime(condition_evaluation="engine+modules")
        state = create_new_game(runtime)
        # the test module only answers `oracle`, so nobody answers here
        assert not evaluate_condition(runtime, state, ExpressionCondition(expr="(("))
        assert len(runtime.warnings) == 1


class TestLoreConditions:
    """Lore conditions: prefixed keys and generic lookups."""

    def test_race_and_faction(self, runtime, state):
        state.character.race_id = "elf"
        state.character.faction_ids = ["wardens"]
        assert evaluate_condition(runtime, state, LoreCondition(key="race:elf"))
        assert not evaluate_condition(runtime, state, LoreCondition(key="race:human"))
        assert evaluate_condition(runtime, state, LoreCondition(key="faction:wardens"))

    def test_knows_reads_flags_or_vars(self, runtime, state):
        condition = LoreCondition(key="knows:lamplighter")
        assert not evaluate_condition(runtime, state, condition)
        state.vars["knows.lamplighter"] = True
        assert evaluate_condition(runtime, state, condition)
        state.vars.clear()
        state.flags["knows.lamplighter"] = True
        assert evaluate_condition(runtime, state, condition)

    def test_generic_key_prefers_vars_over_flags(self, runtime, state):
        state.flags["omen"] = True
        assert evaluate_condition(runtime, state, LoreCondition(key="omen", value=True))
        state.vars["omen"] = "eclipse"
        assert evaluate_condition(runtime, state, LoreCondition(key="omen", value="eclipse"))
        assert evaluate_condition(runtime, state, LoreCondition(key="omen", operator="has"))
        assert not evaluate_condition(runtime, state, LoreCondition(key="nothing", operator="has"))

    def test_reveal_states(self, make_runtime):
        runtime = make_runtime(optional_features=OptionalFeatures(lore_reveal_states=True))
        state = create_new_game(runtime)
        state.lore_knowledge["race:elf"] = "known"
        assert evaluate_condition(runtime, state, LoreCondition(key="lore:race:elf", operator="has"))
        assert evaluate_condition(
            runtime, state, LoreCondition(key="lore:race:elf", value="known")
        )
        assert evaluate_condition(runtime, state, LoreCondition(key="lore:deity:sun", operator="notHas"))


class TestModuleConditions:
    """Unknown condition types are delegated to rule modules."""

    def test_engine_mode_ignores_modules(self, runtime, state):
        assert not evaluate_condition(runtime, state, CustomCondition(type="oracle"))

    def test_engine_and_modules_mode(self, make_runtime, test_module):
        runtime = make_runtime(condition_evaluation="engine+modules")
        state = create_new_game(runtime)
        assert evaluate_condition(runtime, state, CustomCondition(type="oracle"))
        test_module.answer = False
        assert not evaluate_condition(runtime, state, CustomCondition(type="oracle"))

    def test_nobody_answers(self, make_runtime):
        runtime = make_runtime(condition_evaluation="engine+modules")
        state = create_new_game(runtime)
        assert not evaluate_condition(runtime, state, CustomCondition(type="weather"))

    def test_custom_condition_parsed_from_bundle(self, make_runtime, story_dict):
        """Unknown types survive bundle loading as CustomCondition."""
        story_dict["story"]["scenes"][0]["exits"][0]["condition"] = {"type": "oracle", "level": 3}
        runtime = make_runtime(story=story_dict, condition_evaluation="engine+modules")
        condition = runtime.get_scene("s.start").exits[0].condition
        assert isinstance(condition, CustomCondition)
        assert evaluate_condition(runtime, create_new_game(runtime), condition)
