"""
Game lifecycle - new games, saves and loads.

A save is the JSON form of GameState (camelCase keys, unset fields omitted).
load_game also accepts a minimal save: just a scene id (currentSceneId or
currentScene) plus any fields to overlay on a fresh game.

Loading fails on undecodable input, schema errors, a save for another story,
or a scene the story does not have. Soft lore mismatches are warnings.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union
import json
import logging

from pydantic import ValidationError

from ..spec_schema.base import LoreRevealState, MutableModel, Number
from ..spec_schema.lore import LORE_CATEGORIES
from ..spec_schema.validation import ValidationIssue, issues_from_pydantic, validate_game_state
from .render import RenderModel
from .runtime import RuntimeContext, ensure_defaults
from .state import Character, GameState, HistoryEvent
from .transitions import SceneMachine

logger = logging.getLogger(__name__)

_REVEAL_STATES = {state.value for state in LoreRevealState}


class SaveGameInput(MutableModel):
    """A partial save. Only a scene id is required."""
    current_scene: Optional[str] = None
    current_scene_id: Optional[str] = None
    current_location_id: Optional[str] = None
    story_bundle_id: Optional[str] = None
    version: Optional[str] = None
    schema_version: Optional[str] = None
    lore_bundle_ids: Optional[list[str]] = None
    character: Optional[dict[str, Any]] = None
    flags: Optional[dict[str, bool]] = None
    vars: Optional[dict[str, Any]] = None
    reputation: Optional[dict[str, Number]] = None
    history: Optional[list[HistoryEvent]] = None


@dataclass
class LoadResult:
    ok: bool
    issues: list[ValidationIssue] = field(default_factory=list)
    state: GameState | None = None
    render_model: RenderModel | None = None

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_error]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if not issue.is_error]


def _build_character(seed: Character | Mapping[str, Any] | None) -> Character:
    if isinstance(seed, Character):
        return seed.model_copy(deep=True)
    return Character.model_validate(dict(seed or {}))


def _fresh_state(runtime: RuntimeContext, character_seed: Character | Mapping[str, Any] | None) -> GameState:
    story = runtime.story
    start = runtime.get_scene(story.story.start_scene)
    state = GameState(
        version=story.version,
        schema_version=story.schema_version,
        story_bundle_id=story.id,
        lore_bundle_ids=[bundle.id for bundle in runtime.lore_bundles] or None,
        current_scene_id=story.story.start_scene,
        current_location_id=start.location_id if start else None,
        character=_build_character(character_seed),
    )
    ensure_defaults(runtime, state)
    return state


def create_new_game(
    runtime: RuntimeContext,
    character_seed: Character | Mapping[str, Any] | None = None,
) -> GameState:
    """
    Create a game at the story's start scene.

    Entry rules of the start scene are not run; call enter_scene for that.
    Unknown race/faction ids on the character are reported as warnings.
    """
    state = _fresh_state(runtime, character_seed)
    for issue in _character_lore_warnings(runtime, state):
        runtime.record_warning(issue)
    logger.debug("New game for story %s at %s", state.story_bundle_id, state.current_scene_id)
    return state


def save_game(state: GameState) -> str:
    return state.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def load_game(
    runtime: RuntimeContext,
    data: Union[str, bytes, Mapping[str, Any], GameState],
    replay_entry_rules_on_load: bool = False,
) -> LoadResult:
    """
    Load a save against the live story.

    With replay_entry_rules_on_load the current scene is re-entered, which
    re-runs its entry rules and returns a fresh render model.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as e:
            return LoadResult(ok=False, issues=[ValidationIssue.error("/", f"Invalid JSON: {e}")])
    if not isinstance(data, (Mapping, GameState)):
        return LoadResult(ok=False, issues=[ValidationIssue.error("/", "Save must be a JSON object")])

    try:
        state, issues = _normalize(runtime, data)
    except ValidationError as e:
        return LoadResult(ok=False, issues=issues_from_pydantic(e))
    if state is None:
        return LoadResult(ok=False, issues=issues)

    ensure_defaults(runtime, state)
    if state.story_bundle_id != runtime.story.id:
        return LoadResult(
            ok=False,
            issues=[
                ValidationIssue.error(
                    "/storyBundleId",
                    f"Save storyBundleId {state.story_bundle_id} does not match {runtime.story.id}",
                )
            ],
        )

    validation = validate_game_state(state.current_scene_id, runtime.index.scene_by_id)
    issues = (
        validation.issues
        + _inventory_warnings(runtime, state)
        + _character_lore_warnings(runtime, state)
        + _lore_knowledge_warnings(runtime, state)
    )
    if not validation.ok:
        return LoadResult(ok=False, issues=issues)

    for issue in issues:
        logger.info("Load warning %s: %s", issue.path, issue.message)

    if replay_entry_rules_on_load:
        result = SceneMachine(runtime).enter_scene(state, state.current_scene_id)
        return LoadResult(ok=True, issues=issues, state=result.state, render_model=result.render_model)
    return LoadResult(ok=True, issues=issues, state=state)


def _is_full_state(data: Mapping[str, Any]) -> bool:
    def pick(camel: str, snake: str):
        return data.get(camel, data.get(snake))

    return (
        isinstance(pick("storyBundleId", "story_bundle_id"), str)
        and isinstance(pick("currentSceneId", "current_scene_id"), str)
        and pick("character", "character") is not None
        and pick("flags", "flags") is not None
        and pick("vars", "vars") is not None
    )


def _normalize(
    runtime: RuntimeContext,
    data: Mapping[str, Any] | GameState,
) -> tuple[GameState | None, list[ValidationIssue]]:
    """Turn a full or minimal save into a GameState. Raises ValidationError."""
    if isinstance(data, GameState):
        return data.model_copy(deep=True), []
    if _is_full_state(data):
        return GameState.model_validate(dict(data)), []

    save = SaveGameInput.model_validate(dict(data))
    scene_id = save.current_scene_id or save.current_scene
    if not scene_id:
        return None, [ValidationIssue.error("/currentSceneId", "Missing currentSceneId")]

    state = _fresh_state(runtime, save.character)
    state.current_scene_id = scene_id
    scene = runtime.get_scene(scene_id)
    if scene and scene.location_id:
        state.current_location_id = scene.location_id
    overlay = save.model_dump(
        exclude_none=True,
        include={
            "current_location_id",
            "story_bundle_id",
            "version",
            "schema_version",
            "lore_bundle_ids",
            "flags",
            "vars",
            "reputation",
        },
    )
    for name, value in overlay.items():
        setattr(state, name, value)
    if save.history is not None:
        state.history = list(save.history)
    return state, []


def _inventory_warnings(runtime: RuntimeContext, state: GameState) -> list[ValidationIssue]:
    lore_items = runtime.index.lore("item")
    if not lore_items:
        return []
    return [
        ValidationIssue.warning(
            f"/character/inventory/{index}/item/id", f"Item {entry.item.id} not found in lore items"
        )
        for index, entry in enumerate(state.character.inventory)
        if entry.item.id not in lore_items
    ]


def _character_lore_warnings(runtime: RuntimeContext, state: GameState) -> list[ValidationIssue]:
    issues = []
    race_id = state.character.race_id
    if race_id and race_id not in runtime.index.lore("race"):
        issues.append(ValidationIssue.warning("/character/raceId", f"Race {race_id} not found in lore"))
    factions = runtime.index.lore("faction")
    for index, faction_id in enumerate(state.character.faction_ids or []):
        if faction_id not in factions:
            issues.append(
                ValidationIssue.warning(
                    f"/character/factionIds/{index}", f"Faction {faction_id} not found in lore"
                )
            )
    return issues


def _lore_knowledge_warnings(runtime: RuntimeContext, state: GameState) -> list[ValidationIssue]:
    if not runtime.optional_features.lore_reveal_states or not state.lore_knowledge:
        return []

    issues = []
    for key, reveal in state.lore_knowledge.items():
        path = f"/loreKnowledge/{key}"
        if reveal not in _REVEAL_STATES:
            issues.append(
                ValidationIssue.warning(path, "Lore reveal state must be known, discoverable, or hidden")
            )
        prefix, _, entry_id = key.partition(":")
        if not entry_id:
            issues.append(
                ValidationIssue.warning(path, "Lore key should include a category prefix (e.g. race:elf)")
            )
            continue
        if prefix == "other":
            continue
        if prefix not in LORE_CATEGORIES:
            issues.append(ValidationIssue.warning(path, f"Unknown lore category prefix {prefix}"))
        elif entry_id not in runtime.index.lore(prefix):
            issues.append(ValidationIssue.warning(path, f"{prefix.capitalize()} {entry_id} not found in lore"))
    return issues
