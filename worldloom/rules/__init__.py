"""Bundled rule modules."""

from .core import RulesCoreModule
from .dice import DiceRuleModule
from .sample import SampleRuleModule

__all__ = [
    "RulesCoreModule",
    "DiceRuleModule",
    "SampleRuleModule",
]
