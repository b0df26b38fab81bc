"""
Bundle Validation - structural and cross-reference checks for story bundles.

Validates that:
1. Required identity fields are present
2. Ids are unique (scenes, locations, assets, layout nodes, actions per scene)
3. Scene references resolve (start scene, exits, entry scenes, teleports)
4. Soft references resolve (lore refs, asset refs, scene locations)
5. Expression conditions parse

Structural problems are errors and block runtime construction. Soft
cross-reference problems are warnings and never block play.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional

from pydantic import ValidationError

from .effect_dsl import ExpressionCondition, TeleportEffect
from .lore import LORE_CATEGORIES

if TYPE_CHECKING:
    from .bundle import LoreBundle, StoryBundle
    from .effect_dsl import Condition
    from .scene import NarrativeText, Scene


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """One finding, addressed by a JSON-pointer style path into the bundle."""
    path: str
    message: str
    severity: Severity = Severity.ERROR

    @classmethod
    def error(cls, path: str, message: str) -> ValidationIssue:
        return cls(path=path, message=message, severity=Severity.ERROR)

    @classmethod
    def warning(cls, path: str, message: str) -> ValidationIssue:
        return cls(path=path, message=message, severity=Severity.WARNING)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message, "severity": self.severity.value}


@dataclass
class ValidationResult:
    """Result of validation. ok is False when any error-severity issue exists."""
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(issue.is_error for issue in self.issues)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_error]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if not issue.is_error]


def issues_from_pydantic(error: ValidationError) -> list[ValidationIssue]:
    """Convert pydantic errors into issues with slash-separated paths."""
    issues = []
    for detail in error.errors():
        path = "/" + "/".join(str(part) for part in detail.get("loc", ()))
        issues.append(ValidationIssue.error(path, detail.get("msg", "invalid value")))
    return issues


def validate_bundles(
    story: StoryBundle,
    lore_bundles: Iterable[LoreBundle] = (),
) -> ValidationResult:
    """
    Validate a story bundle against itself and the given lore bundles.

    Returns a ValidationResult; callers decide whether errors are fatal.
    """
    issues: list[ValidationIssue] = []

    for attr in ("id", "version", "name"):
        if not str(getattr(story, attr, "") or "").strip():
            issues.append(ValidationIssue.error(f"/{attr}", "Expected non-empty string"))

    # Collect valid ids for reference checking
    scene_ids: set[str] = set()
    for index, scene in enumerate(story.story.scenes):
        if not scene.id.strip():
            issues.append(ValidationIssue.error(f"/story/scenes/{index}/id", "Expected non-empty string"))
        if scene.id in scene_ids:
            issues.append(
                ValidationIssue.error(f"/story/scenes/{index}/id", f"Duplicate scene id {scene.id}")
            )
        scene_ids.add(scene.id)

    location_ids: set[str] = set()
    for index, location in enumerate(story.world.locations):
        path = f"/world/locations/{index}"
        if location.id in location_ids:
            issues.append(ValidationIssue.error(f"{path}/id", f"Duplicate location id {location.id}"))
        location_ids.add(location.id)
        if location.entry_scene not in scene_ids:
            issues.append(
                ValidationIssue.error(
                    f"{path}/entryScene", f"Location entryScene {location.entry_scene} not found"
                )
            )
        issues.extend(_validate_layout(location.layout, scene_ids, path))

    if story.story.start_scene not in scene_ids:
        issues.append(
            ValidationIssue.error(
                "/story/startScene", f"Start scene {story.story.start_scene} not found"
            )
        )

    asset_ids: set[str] = set()
    for index, asset in enumerate(story.assets or []):
        if asset.id in asset_ids:
            issues.append(ValidationIssue.error(f"/assets/{index}/id", f"Duplicate asset id {asset.id}"))
        asset_ids.add(asset.id)

    lore_index = _build_lore_index(lore_bundles)
    for index, scene in enumerate(story.story.scenes):
        issues.extend(
            _validate_scene(scene, f"/story/scenes/{index}", scene_ids, location_ids, asset_ids, lore_index)
        )

    for index, edge in enumerate(story.world.spatial_graph.edges if story.world.spatial_graph else []):
        issues.extend(_expression_warnings(edge.condition, f"/world/spatialGraph/edges/{index}/condition"))

    return ValidationResult(issues=issues)


def validate_game_state(current_scene_id: str, scene_ids: Iterable[str]) -> ValidationResult:
    """Check that a loaded game points at a scene of the live story."""
    issues = []
    if current_scene_id not in set(scene_ids):
        issues.append(ValidationIssue.error("/currentSceneId", f"Scene {current_scene_id} not found"))
    return ValidationResult(issues=issues)


def _build_lore_index(lore_bundles: Iterable[LoreBundle]) -> dict[str, set[str]]:
    index: dict[str, set[str]] = {category: set() for category in LORE_CATEGORIES}
    for bundle in lore_bundles:
        for category, attr in LORE_CATEGORIES.items():
            for entry in getattr(bundle, attr) or []:
                index[category].add(entry.id)
    return index


def _validate_layout(layout, scene_ids: set[str], path: str) -> list[ValidationIssue]:
    """Validate layout nodes and connections of one location."""
    issues: list[ValidationIssue] = []
    if not layout or not layout.nodes:
        return issues

    node_ids: set[str] = set()
    for index, node in enumerate(layout.nodes):
        node_path = f"{path}/layout/nodes/{index}"
        if node.id in node_ids:
            issues.append(ValidationIssue.error(f"{node_path}/id", f"Duplicate layout node id {node.id}"))
        node_ids.add(node.id)
        if node.scene_id not in scene_ids:
            issues.append(
                ValidationIssue.error(f"{node_path}/sceneId", f"Layout node sceneId {node.scene_id} not found")
            )

    for index, connection in enumerate(layout.connections or []):
        conn_path = f"{path}/layout/connections/{index}"
        if connection.from_ not in node_ids:
            issues.append(
                ValidationIssue.error(f"{conn_path}/from", f"Layout connection from {connection.from_} not found")
            )
        if connection.to not in node_ids:
            issues.append(
                ValidationIssue.error(f"{conn_path}/to", f"Layout connection to {connection.to} not found")
            )
        issues.extend(_expression_warnings(connection.locked_by, f"{conn_path}/lockedBy"))

    return issues


def _validate_scene(
    scene: Scene,
    path: str,
    scene_ids: set[str],
    location_ids: set[str],
    asset_ids: set[str],
    lore_index: dict[str, set[str]],
) -> list[ValidationIssue]:
    """Validate the references made by a single scene."""
    issues: list[ValidationIssue] = []

    if scene.location_id and scene.location_id not in location_ids:
        issues.append(
            ValidationIssue.warning(f"{path}/locationId", f"Scene locationId {scene.location_id} not found")
        )

    issues.extend(_narrative_warnings(scene.narrative.text, f"{path}/narrative/text"))

    for index, ref in enumerate(scene.narrative.lore_refs or []):
        if ref.type != "other" and ref.id not in lore_index.get(ref.type, set()):
            issues.append(
                ValidationIssue.warning(
                    f"{path}/narrative/loreRefs/{index}", f"LoreRef {ref.type}:{ref.id} does not resolve"
                )
            )

    if scene.ambience:
        for index, asset_ref in enumerate(scene.ambience.asset_refs()):
            if asset_ref.id not in asset_ids:
                issues.append(
                    ValidationIssue.warning(
                        f"{path}/ambience/{index}", f"AssetRef {asset_ref.id} not found in story assets"
                    )
                )

    for index, exit_ in enumerate(scene.exits):
        exit_path = f"{path}/exits/{index}"
        if exit_.target_scene not in scene_ids:
            issues.append(
                ValidationIssue.error(
                    f"{exit_path}/targetScene", f"Exit targetScene {exit_.target_scene} not found"
                )
            )
        issues.extend(_expression_warnings(exit_.condition, f"{exit_path}/condition"))

    action_ids: set[str] = set()
    for index, action in enumerate(scene.actions):
        action_path = f"{path}/actions/{index}"
        if action.id in action_ids:
            issues.append(ValidationIssue.error(f"{action_path}/id", f"Duplicate action id {action.id}"))
        action_ids.add(action.id)
        issues.extend(_expression_warnings(action.condition, f"{action_path}/condition"))
        for effect_index, effect in enumerate(action.effects or []):
            if isinstance(effect, TeleportEffect) and effect.target_scene not in scene_ids:
                issues.append(
                    ValidationIssue.error(
                        f"{action_path}/effects/{effect_index}/targetScene",
                        f"Teleport targetScene {effect.target_scene} not found",
                    )
                )

    return issues


def _narrative_warnings(text: NarrativeText, path: str) -> list[ValidationIssue]:
    if isinstance(text, str):
        return []
    issues = []
    for index, variant in enumerate(text):
        issues.extend(_expression_warnings(getattr(variant, "condition", None), f"{path}/{index}/condition"))
    return issues


def _expression_warnings(condition: Optional[Condition], path: str) -> list[ValidationIssue]:
    """Warn when an expression condition does not parse."""
    if not isinstance(condition, ExpressionCondition):
        return []
    from ..engine_core.expression import validate_expression

    error = validate_expression(condition.expr)
    if error:
        return [ValidationIssue.warning(path, f"Expression parse warning: {error}")]
    return []
