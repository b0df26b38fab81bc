"""Sample rule module showing hook narrative and hook effects."""

from __future__ import annotations

from ..engine_core.rule_modules import RuleContext, RuleModule, RuleResult


class SampleRuleModule(RuleModule):
    """
    Hooks:
    - sampleNarrative: adds a line of narrative
    - sampleEffect: sets flag sample.effect
    """

    id = "rules.sample"
    system = "Custom"

    def evaluate_condition(self, condition, state, context=None) -> bool:
        return True

    def resolve(self, context: RuleContext) -> RuleResult:
        hook = context.hook
        if hook is None:
            return RuleResult()
        if hook.type == "sampleNarrative":
            return RuleResult(narrative="Sample rule narrative.")
        if hook.type == "sampleEffect":
            return RuleResult(effects=[{"type": "setFlag", "key": "sample.effect", "value": True}])
        return RuleResult()
