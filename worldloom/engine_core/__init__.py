"""
Engine Core - Deterministic scene transitions over declarative story bundles.

The engine is the runtime that:
1. Builds a RuntimeContext from a story, lore bundles and rule modules
2. Creates, saves and loads GameState
3. Evaluates conditions and applies effects
4. Dispatches rule hooks to rule modules
5. Moves the player between scenes and renders the result
"""

from .expression import ExpressionEvaluator, ExpressionResult, evaluate_expression, validate_expression
from .rng import RNG, LcgRng, create_default_rng
from .state import Character, GameState, HistoryEvent, InventoryEntry
from .rule_modules import EvaluationContext, ModuleRegistry, RuleContext, RuleModule, RuleResult
from .runtime import (
    OptionalFeatures,
    RuntimeConfig,
    RuntimeContext,
    RuntimeInitResult,
    create_runtime,
    ensure_defaults,
)
from .conditions import ConditionEvaluator, evaluate_condition
from .effect_resolver import EffectOutcome, EffectResolver, apply_effects
from .render import EngineResult, RenderModel
from .transitions import (
    SceneMachine,
    enter_scene,
    get_render_model,
    resolve_narrative_text,
    select_action,
    select_exit,
)
from .persistence import LoadResult, create_new_game, load_game, save_game

__all__ = [
    "ExpressionEvaluator",
    "ExpressionResult",
    "evaluate_expression",
    "validate_expression",
    "RNG",
    "LcgRng",
    "create_default_rng",
    "Character",
    "GameState",
    "HistoryEvent",
    "InventoryEntry",
    "EvaluationContext",
    "ModuleRegistry",
    "RuleContext",
    "RuleModule",
    "RuleResult",
    "OptionalFeatures",
    "RuntimeConfig",
    "RuntimeContext",
    "RuntimeInitResult",
    "create_runtime",
    "ensure_defaults",
    "ConditionEvaluator",
    "evaluate_condition",
    "EffectOutcome",
    "EffectResolver",
    "apply_effects",
    "EngineResult",
    "RenderModel",
    "SceneMachine",
    "enter_scene",
    "get_render_model",
    "resolve_narrative_text",
    "select_action",
    "select_exit",
    "LoadResult",
    "create_new_game",
    "load_game",
    "save_game",
]
