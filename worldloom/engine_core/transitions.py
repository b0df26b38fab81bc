"""
Scene Transition Machine - enter_scene, select_exit, select_action.

The player is always "at" state.current_scene_id. Every transition:
1. Validates the requested exit/action (lookup and condition)
2. Records history
3. Runs rule hooks and applies their effects
4. Follows teleports until a scene produces none
5. Builds the RenderModel of the scene the player ended in

Teleport chains are followed in a loop bounded by the runtime's
max_teleport_hops; a longer chain raises TeleportLoopError.

Lookup failures and failed conditions raise LookupFatalError subclasses:
they mean a malformed bundle or a stale choice offered by the UI.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Sequence
import logging

from pydantic import TypeAdapter

from ..errors import (
    ActionNotFoundError,
    ConditionFailedError,
    ExitNotFoundError,
    SceneNotFoundError,
    TeleportLoopError,
)
from ..spec_schema.base import LocalizedText
from ..spec_schema.scene import Exit, NarrativeText, TextVariant
from .conditions import ConditionEvaluator
from .effect_resolver import EffectResolver
from .render import EngineResult, RenderModel
from .rng import RNG, fork_rng
from .rule_modules import RuleContext

if TYPE_CHECKING:
    from ..spec_schema.effect_dsl import RuleHook
    from ..spec_schema.scene import Action, Scene
    from .rule_modules import RuleResult
    from .runtime import RuntimeContext
    from .state import GameState

logger = logging.getLogger(__name__)

_narrative_adapter = TypeAdapter(NarrativeText)


class SceneMachine:
    """
    Drives transitions for one runtime.

    Holds no game state of its own: all mutation happens on the GameState
    passed in, so one machine may serve many games sequentially.
    """

    def __init__(self, runtime: RuntimeContext):
        self.runtime = runtime
        self.conditions = ConditionEvaluator(runtime)
        self.effects = EffectResolver(runtime)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def enter_scene(self, state: GameState, scene_id: str) -> EngineResult:
        """
        Move the player into scene_id and run its entry rules.

        If an entry rule teleports, the scene is exited and the target is
        entered instead; only the final scene is rendered.
        """
        chain = [scene_id]
        while True:
            scene = self._require_scene(scene_id)
            state.current_scene_id = scene.id
            if scene.location_id:
                state.current_location_id = scene.location_id
            state.record("sceneEnter", scene_id=scene.id)
            logger.debug("Entered scene %s", scene.id)

            overlays: list[str] = []
            teleport_target = None
            for hook in scene.entry_rules:
                result = self.resolve_rule_hook(state, scene, hook)
                if result is None:
                    continue
                if result.effects:
                    outcome = self.effects.apply(state, result.effects)
                    teleport_target = outcome.teleport_target or teleport_target
                if result.narrative:
                    overlays.append(self.resolve_narrative_text(result.narrative, state))

            if teleport_target is None:
                return EngineResult(state=state, render_model=self.build_render_model(state, scene, overlays))

            state.record("sceneExit", scene_id=scene.id)
            if len(chain) > self.runtime.max_teleport_hops:
                raise TeleportLoopError(chain + [teleport_target], self.runtime.max_teleport_hops)
            logger.debug("Scene %s teleports to %s", scene.id, teleport_target)
            chain.append(teleport_target)
            scene_id = teleport_target

    def select_exit(self, state: GameState, exit_ref: Exit | int | str) -> EngineResult:
        """
        Leave the current scene through an exit.

        exit_ref is an Exit of the current scene, its index in scene.exits,
        or its label. Exit rules may teleport, overriding the exit's target.
        """
        scene = self._require_scene(state.current_scene_id)
        exit_ = self._find_exit(scene, exit_ref)
        if not self.conditions.evaluate(exit_.condition, state):
            raise ConditionFailedError(f"Exit condition failed: {exit_.label}")

        state.record("action", scene_id=scene.id, data={"kind": "exit", "label": exit_.label})

        teleport_target = None
        for hook in scene.exit_rules:
            result = self.resolve_rule_hook(state, scene, hook)
            if result is not None and result.effects:
                outcome = self.effects.apply(state, result.effects)
                teleport_target = outcome.teleport_target or teleport_target

        state.record("sceneExit", scene_id=scene.id)
        return self.enter_scene(state, teleport_target or exit_.target_scene)

    def select_action(self, state: GameState, action_id: str) -> EngineResult:
        """
        Take an in-scene action: its effects, then its rule hooks.

        Hook narrative is returned as RenderModel.recent_narrative unless the
        action teleports, in which case the target scene is rendered instead.
        """
        scene = self._require_scene(state.current_scene_id)
        action = scene.get_action(action_id)
        if action is None:
            raise ActionNotFoundError(scene.id, action_id)
        if not self.conditions.evaluate(action.condition, state):
            raise ConditionFailedError(f"Action condition failed: {action_id}")

        state.record("action", scene_id=scene.id, action_id=action_id)

        teleport_target = None
        if action.effects:
            teleport_target = self.effects.apply(state, action.effects).teleport_target

        recent: list[str] = []
        for hook in action.rule_hooks or []:
            result = self.resolve_rule_hook(state, scene, hook, action)
            if result is None:
                continue
            if result.effects:
                outcome = self.effects.apply(state, result.effects)
                teleport_target = outcome.teleport_target or teleport_target
            if result.narrative:
                recent.append(self.resolve_narrative_text(result.narrative, state))

        if teleport_target:
            state.record("sceneExit", scene_id=scene.id)
            return self.enter_scene(state, teleport_target)

        return EngineResult(
            state=state,
            render_model=self.build_render_model(state, scene, recent_narrative=recent),
        )

    def get_render_model(self, state: GameState) -> RenderModel:
        """
        Render the current scene without running any rules.

        Variant selection draws from a copy of the runtime RNG, so repeated
        calls return equal models and leave the shared RNG untouched.
        """
        scene = self._require_scene(state.current_scene_id)
        return self.build_render_model(state, scene, rng=fork_rng(self.runtime.rng))

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def resolve_rule_hook(
        self,
        state: GameState,
        scene: Scene,
        hook: RuleHook,
        action: Action | None = None,
    ) -> RuleResult | None:
        context = RuleContext(state=state, scene=scene, action=action, hook=hook, rng=self.runtime.rng)
        return self.runtime.modules.resolve_hook(context)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def build_render_model(
        self,
        state: GameState,
        scene: Scene,
        overlays: Sequence[str] = (),
        recent_narrative: Sequence[str] = (),
        rng: RNG | None = None,
    ) -> RenderModel:
        base = self.resolve_narrative_text(scene.narrative.text, state, rng)
        narrative = "\n\n".join(part for part in [base, *overlays] if part)
        return RenderModel(
            scene_id=scene.id,
            location_id=scene.location_id,
            narrative_text=narrative,
            ambience=scene.ambience,
            available_exits=[e for e in scene.exits if self.conditions.evaluate(e.condition, state)],
            available_actions=[a for a in scene.actions if self.conditions.evaluate(a.condition, state)],
            recent_narrative=list(recent_narrative) or None,
        )

    def resolve_narrative_text(self, text: Any, state: GameState, rng: RNG | None = None) -> str:
        """
        Resolve a NarrativeText to a string.

        - plain string: returned as-is
        - localized list: the runtime locale, else the first entry
        - variant list: conditions filter, then a weighted draw (default weight 1);
          if every variant is filtered out, the first variant's text
        """
        if isinstance(text, str):
            return text
        if not text:
            return ""
        if any(isinstance(entry, dict) for entry in text):
            text = _narrative_adapter.validate_python(text)

        if isinstance(text[0], LocalizedText):
            locale = self.runtime.locale
            for entry in text:
                if locale and entry.locale == locale:
                    return entry.text
            return text[0].text

        variants: list[TextVariant] = list(text)
        candidates = [v for v in variants if self.conditions.evaluate(v.condition, state)]
        if not candidates:
            return variants[0].text

        rng = rng or self.runtime.rng
        pick = rng.next() * sum(_weight(v) for v in candidates)
        for variant in candidates:
            pick -= _weight(variant)
            if pick <= 0:
                return variant.text
        return candidates[-1].text

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _require_scene(self, scene_id: str) -> Scene:
        scene = self.runtime.get_scene(scene_id)
        if scene is None:
            raise SceneNotFoundError(scene_id)
        return scene

    def _find_exit(self, scene: Scene, exit_ref: Exit | int | str) -> Exit:
        if isinstance(exit_ref, bool):
            raise ExitNotFoundError(scene.id, exit_ref)
        if isinstance(exit_ref, int):
            if 0 <= exit_ref < len(scene.exits):
                return scene.exits[exit_ref]
        elif isinstance(exit_ref, str):
            for exit_ in scene.exits:
                if exit_.label == exit_ref:
                    return exit_
        elif isinstance(exit_ref, Exit) and exit_ref in scene.exits:
            return exit_ref
        raise ExitNotFoundError(scene.id, exit_ref)


def _weight(variant: TextVariant):
    return 1 if variant.weight is None else variant.weight


# ============================================================================
# Convenience functions
# ============================================================================

def enter_scene(runtime: RuntimeContext, state: GameState, scene_id: str) -> EngineResult:
    return SceneMachine(runtime).enter_scene(state, scene_id)


def select_exit(runtime: RuntimeContext, state: GameState, exit_ref: Exit | int | str) -> EngineResult:
    return SceneMachine(runtime).select_exit(state, exit_ref)


def select_action(runtime: RuntimeContext, state: GameState, action_id: str) -> EngineResult:
    return SceneMachine(runtime).select_action(state, action_id)


def get_render_model(runtime: RuntimeContext, state: GameState) -> RenderModel:
    return SceneMachine(runtime).get_render_model(state)


def resolve_narrative_text(runtime: RuntimeContext, state: GameState, text: Any) -> str:
    return SceneMachine(runtime).resolve_narrative_text(text, state)
