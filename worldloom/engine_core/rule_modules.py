"""
Rule Modules - pluggable rule systems (dice mechanics, skill checks, ...).

A RuleModule answers two questions for the engine:
- evaluate_condition: does this condition hold? (None = not my business)
- resolve: what happens when this rule hook fires?

Modules are matched to the story's rule module references at runtime
construction and then shared read-only by every game on that runtime.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, Optional
import logging

from pydantic import TypeAdapter

from ..spec_schema.effect_dsl import Effect

if TYPE_CHECKING:
    from ..spec_schema.effect_dsl import Condition, RuleHook
    from ..spec_schema.scene import Action, NarrativeText, Scene
    from .rng import RNG
    from .state import GameState

logger = logging.getLogger(__name__)

_effect_list = TypeAdapter(list[Effect])


@dataclass
class EvaluationContext:
    """Where a condition is being evaluated."""
    scene_id: str | None = None
    location_id: str | None = None
    scope: dict[str, Any] = field(default_factory=dict)


@dataclass
class RuleContext:
    """Everything a module sees when a hook fires."""
    state: GameState
    scene: Scene
    action: Action | None = None
    hook: RuleHook | None = None
    rng: RNG | None = None


@dataclass
class RuleResult:
    """
    What a module produced for a hook.

    Effects may be given as Effect models or as plain dicts in bundle
    (camelCase) form; they are validated into Effect models.
    An empty result means "not handled".
    """
    narrative: Optional[NarrativeText] = None
    effects: list = field(default_factory=list)
    outcome: str | None = None  # success | failure | neutral
    data: dict[str, Any] | None = None

    def __post_init__(self):
        self.effects = _effect_list.validate_python(list(self.effects or []))

    @property
    def handled(self) -> bool:
        return bool(self.effects or self.narrative or self.outcome or self.data)


class RuleModule(ABC):
    """
    Abstract base class for rule modules.

    Identity is (id, system). A module also accepts a story reference whose
    system is listed in compatible_systems or passes supports_system().
    """

    id: str = ""
    system: str = "Custom"
    compatible_systems: tuple[str, ...] = ()

    def supports_system(self, system: str) -> bool:
        return system == self.system or system in self.compatible_systems

    def init(self, config: dict[str, Any]):
        """
        Receive the story's config payload for this module.

        Raise ValueError to reject it; construction then fails.
        """

    @abstractmethod
    def evaluate_condition(
        self,
        condition: Condition,
        state: GameState,
        context: EvaluationContext | None = None,
    ) -> bool | None:
        """Answer a condition, or return None to let other modules answer."""
        pass

    @abstractmethod
    def resolve(self, context: RuleContext) -> RuleResult:
        """Resolve a rule hook. Return an empty RuleResult when not handled."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, system={self.system!r})"


class ModuleRegistry:
    """
    Registered modules in story declaration order.

    Broadcasts (conditions and hooks without a module id) follow that order.
    """

    def __init__(self, modules: list[RuleModule] | None = None):
        self._modules: dict[str, RuleModule] = {}
        for module in modules or []:
            self.register(module)

    def register(self, module: RuleModule):
        self._modules[module.id] = module

    def get(self, module_id: str) -> RuleModule | None:
        return self._modules.get(module_id)

    def __contains__(self, module_id: str) -> bool:
        return module_id in self._modules

    def __iter__(self) -> Iterator[RuleModule]:
        return iter(self._modules.values())

    def __len__(self) -> int:
        return len(self._modules)

    def evaluate_condition(
        self,
        condition: Condition,
        state: GameState,
        context: EvaluationContext | None = None,
    ) -> bool | None:
        """First module giving a definite answer wins; None if nobody answers."""
        for module in self:
            answer = module.evaluate_condition(condition, state, context)
            if answer is not None:
                logger.debug("Module %s answered %s condition: %s", module.id, condition.type, answer)
                return bool(answer)
        return None

    def resolve_hook(self, context: RuleContext) -> RuleResult | None:
        """
        Dispatch a hook.

        With hook.module_id only that module is asked (a missing module is a
        silent no-op). Otherwise the first module with a non-empty result wins.
        """
        hook = context.hook
        if hook is not None and hook.module_id:
            module = self.get(hook.module_id)
            if module is None:
                logger.debug("Rule hook %s names unknown module %s", hook.type, hook.module_id)
                return None
            return module.resolve(context)

        for module in self:
            result = module.resolve(context)
            if result is not None and result.handled:
                return result
        return None
