"""
Dice rule module - d20-style skill checks.

Hook `skillCheck` payload:
    stat            character stat added to the roll (optional)
    dc              difficulty; success when roll + stat >= dc (default 10)
    dice            dice notation (default: module defaultDice, "1d20")
    successEffects  effects applied on success
    failureEffects  effects applied on failure
    successText     narrative on success
    failureText     narrative on failure

All rolls use the runtime RNG, so seeded games replay identically.
"""

from __future__ import annotations
from typing import Any
import logging

from ..engine_core.rng import create_default_rng
from ..engine_core.rule_modules import RuleContext, RuleModule, RuleResult

logger = logging.getLogger(__name__)

DEFAULT_DICE = "1d20"
DEFAULT_DC = 10


class DiceRuleModule(RuleModule):
    id = "rules.dice"
    system = "Custom"
    compatible_systems = ("d20",)

    def __init__(self, default_dice: str = DEFAULT_DICE):
        self.default_dice = default_dice

    def init(self, config: dict[str, Any]):
        dice = config.get("defaultDice", self.default_dice)
        if not isinstance(dice, str):
            raise ValueError("defaultDice must be a dice notation string")
        self.default_dice = dice

    def evaluate_condition(self, condition, state, context=None) -> bool | None:
        return None

    def resolve(self, context: RuleContext) -> RuleResult:
        hook = context.hook
        if hook is None or hook.type != "skillCheck":
            return RuleResult()

        payload = hook.payload or {}
        rng = context.rng or create_default_rng()
        dice = payload.get("dice") or self.default_dice
        dc = payload.get("dc", DEFAULT_DC)
        stat = payload.get("stat")

        roll = rng.roll(dice)
        modifier = context.state.character.stats.get(stat, 0) if stat else 0
        total = roll + modifier
        success = total >= dc
        logger.debug("skillCheck %s: %s + %s = %s vs %s", stat, roll, modifier, total, dc)

        prefix = "success" if success else "failure"
        return RuleResult(
            narrative=payload.get(f"{prefix}Text"),
            effects=payload.get(f"{prefix}Effects") or [],
            outcome=prefix,
            data={"roll": roll, "modifier": modifier, "total": total, "dc": dc},
        )
