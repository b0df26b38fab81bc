"""
Condition Evaluator - decides whether exits, actions and variants are available.

Dispatch by condition type:
- flag: equals | notEquals | exists | notExists (default equals true)
- stat: gt | gte | lt | lte | eq | neq against character stats (default 0)
- inventory: has | notHas | countGte | countLte (default has, threshold 1)
- expression: the expression evaluator; errors degrade to False
- lore: race:, faction:, knows:, lore: (reveal states) and plain keys
- anything else: asked of the rule modules in engine+modules mode

Unknown operators evaluate to False.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any
import logging

from ..spec_schema.effect_dsl import (
    ExpressionCondition,
    FlagCondition,
    InventoryCondition,
    LoreCondition,
    StatCondition,
)
from ..spec_schema.validation import ValidationIssue
from .expression import evaluate_expression, strict_equals, truthy
from .rule_modules import EvaluationContext
from .state import GameState

if TYPE_CHECKING:
    from ..spec_schema.effect_dsl import Condition
    from .runtime import RuntimeContext

logger = logging.getLogger(__name__)

_MISSING = object()


class ConditionEvaluator:
    """Evaluates conditions against one runtime's features and modules."""

    def __init__(self, runtime: RuntimeContext):
        self.runtime = runtime

    def evaluate(self, condition: Condition | None, state: GameState) -> bool:
        """A missing condition always holds."""
        if condition is None:
            return True
        if isinstance(condition, FlagCondition):
            return self._eval_flag(condition, state)
        if isinstance(condition, StatCondition):
            return self._eval_stat(condition, state)
        if isinstance(condition, InventoryCondition):
            return self._eval_inventory(condition, state)
        if isinstance(condition, ExpressionCondition):
            return self._eval_expression(condition, state)
        if isinstance(condition, LoreCondition):
            return self._eval_lore(condition, state)
        answer = self._ask_modules(condition, state)
        if answer is None:
            logger.debug("Condition type %s unanswered, evaluating to False", condition.type)
        return bool(answer)

    def _eval_flag(self, condition: FlagCondition, state: GameState) -> bool:
        operator = condition.operator or "equals"
        expected = True if condition.value is None else condition.value
        value = state.flags.get(condition.key)
        if operator == "exists":
            return condition.key in state.flags
        if operator == "notExists":
            return condition.key not in state.flags
        if operator == "notEquals":
            return not strict_equals(value, expected)
        return strict_equals(value, expected)

    def _eval_stat(self, condition: StatCondition, state: GameState) -> bool:
        value = state.character.stats.get(condition.key, 0)
        target = condition.value
        operator = condition.operator
        if operator == "gt":
            return value > target
        if operator == "gte":
            return value >= target
        if operator == "lt":
            return value < target
        if operator == "lte":
            return value <= target
        if operator == "eq":
            return value == target
        if operator == "neq":
            return value != target
        return False

    def _eval_inventory(self, condition: InventoryCondition, state: GameState) -> bool:
        count = state.character.item_count(condition.key)
        threshold = 1 if condition.value is None else condition.value
        operator = condition.operator or "has"
        if operator == "has":
            return count > 0
        if operator == "notHas":
            return count == 0
        if operator == "countGte":
            return count >= threshold
        if operator == "countLte":
            return count <= threshold
        return False

    def _eval_expression(self, condition: ExpressionCondition, state: GameState) -> bool:
        result = evaluate_expression(condition.expr, state)
        if result.ok:
            return result.value

        self.runtime.record_warning(
            ValidationIssue.warning(
                "/runtime/conditions/expression", f"Expression parse warning: {result.error}"
            )
        )
        state.record("rule", data={"kind": "expression", "error": result.error, "expr": condition.expr})
        if self.runtime.modules_fallback:
            return bool(self._ask_modules(condition, state))
        return result.value

    def _eval_lore(self, condition: LoreCondition, state: GameState) -> bool:
        key = condition.key
        operator = condition.operator or "equals"

        if self.runtime.optional_features.lore_reveal_states and key.startswith("lore:"):
            reveal = (state.lore_knowledge or {}).get(key[len("lore:"):])
            if operator == "has":
                return reveal == "known"
            if operator == "notHas":
                return reveal != "known"
            if operator == "notEquals":
                return not strict_equals(reveal, condition.value)
            return strict_equals(reveal, condition.value)

        if key.startswith("race:"):
            return state.character.race_id == key[len("race:"):]
        if key.startswith("faction:"):
            return key[len("faction:"):] in (state.character.faction_ids or [])
        if key.startswith("knows:"):
            knowledge_key = "knows." + key[len("knows:"):]
            return bool(state.flags.get(knowledge_key)) or state.vars.get(knowledge_key) is True

        value = _lookup(state, key)
        if operator == "has":
            return truthy(value)
        if operator == "notHas":
            return not truthy(value)
        if operator == "notEquals":
            return not strict_equals(value, condition.value)
        return strict_equals(value, condition.value)

    def _ask_modules(self, condition: Condition, state: GameState) -> bool | None:
        if not self.runtime.modules_fallback:
            return None
        context = EvaluationContext(
            scene_id=state.current_scene_id,
            location_id=state.current_location_id,
        )
        return self.runtime.modules.evaluate_condition(condition, state, context)


def _lookup(state: GameState, key: str) -> Any:
    """vars[key], falling back to flags[key] when the var is unset or null."""
    value = state.vars.get(key, _MISSING)
    if value is _MISSING or value is None:
        return state.flags.get(key)
    return value


def evaluate_condition(runtime: RuntimeContext, state: GameState, condition: Condition | None) -> bool:
    """Convenience function to evaluate one condition."""
    return ConditionEvaluator(runtime).evaluate(condition, state)
