"""Core rules stub - accepts every condition and handles no hooks."""

from __future__ import annotations

from ..engine_core.rule_modules import RuleModule, RuleResult


class RulesCoreModule(RuleModule):
    """Placeholder for stories that declare rules.core but need no mechanics."""

    id = "rules.core"
    system = "Custom"

    def evaluate_condition(self, condition, state, context=None) -> bool:
        return True

    def resolve(self, context) -> RuleResult:
        return RuleResult()
