"""
Runtime - the read-only context shared by every game on one story.

create_runtime() validates the bundles, matches the story's rule module
references against the injected modules and precomputes lookup indices.
The resulting RuntimeContext never changes afterwards except for its
warning log, so many GameStates may be driven against it concurrently.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Sequence
import logging
import threading

from ..errors import RuntimeInitError
from ..spec_schema.bundle import LoreBundle, StoryBundle
from ..spec_schema.lore import LORE_CATEGORIES
from ..spec_schema.scene import Scene
from ..spec_schema.validation import ValidationIssue, validate_bundles
from ..spec_schema.world import CompanionDefinition, Location
from .rng import RNG, create_default_rng
from .rule_modules import ModuleRegistry, RuleModule
from .state import CompanionState, GameState, RelationshipState, SessionState

logger = logging.getLogger(__name__)

ConditionEvaluationMode = Literal["engine", "engine+modules"]

DEFAULT_SESSION_ID = "session.local"


@dataclass(frozen=True)
class OptionalFeatures:
    """Opt-in state sections. Disabled features leave their maps as None."""
    lore_reveal_states: bool = False
    companions: bool = False
    relationships: bool = False
    sessions: bool = False


@dataclass
class RuntimeConfig:
    story: StoryBundle
    lore_bundles: Sequence[LoreBundle] = ()
    modules: Sequence[RuleModule] = ()
    rng: RNG | None = None
    locale: str | None = None
    condition_evaluation: ConditionEvaluationMode = "engine"
    on_warning: Callable[[ValidationIssue], Any] | None = None
    optional_features: OptionalFeatures = field(default_factory=OptionalFeatures)
    max_teleport_hops: int = 64


@dataclass(frozen=True)
class RuntimeIndex:
    """Lookups built once at construction and never rebuilt."""
    scene_by_id: dict[str, Scene]
    location_by_id: dict[str, Location]
    asset_by_id: dict[str, Any]
    lore_by_category: dict[str, dict[str, Any]]

    @classmethod
    def build(cls, story: StoryBundle, lore_bundles: Sequence[LoreBundle]) -> RuntimeIndex:
        lore_by_category: dict[str, dict[str, Any]] = {category: {} for category in LORE_CATEGORIES}
        for bundle in lore_bundles:
            for category, attr in LORE_CATEGORIES.items():
                for entry in getattr(bundle, attr) or []:
                    lore_by_category[category][entry.id] = entry
        return cls(
            scene_by_id={scene.id: scene for scene in story.story.scenes},
            location_by_id={location.id: location for location in story.world.locations},
            asset_by_id={asset.id: asset for asset in story.assets or []},
            lore_by_category=lore_by_category,
        )

    def lore(self, category: str) -> dict[str, Any]:
        return self.lore_by_category.get(category, {})


class RuntimeContext:
    """
    Story, lore, modules, RNG and indices for a running story.

    Only the warning log is mutable; it is guarded by a lock.
    """

    def __init__(
        self,
        story: StoryBundle,
        lore_bundles: Sequence[LoreBundle],
        modules: ModuleRegistry,
        rng: RNG,
        index: RuntimeIndex,
        locale: str | None = None,
        condition_evaluation: ConditionEvaluationMode = "engine",
        on_warning: Callable[[ValidationIssue], Any] | None = None,
        optional_features: OptionalFeatures | None = None,
        max_teleport_hops: int = 64,
    ):
        self.story = story
        self.lore_bundles = list(lore_bundles)
        self.modules = modules
        self.rng = rng
        self.index = index
        self.locale = locale
        self.condition_evaluation = condition_evaluation
        self.on_warning = on_warning
        self.optional_features = optional_features or OptionalFeatures()
        self.max_teleport_hops = max_teleport_hops
        self._warnings: list[ValidationIssue] = []
        self._warnings_lock = threading.Lock()

    @property
    def modules_fallback(self) -> bool:
        return self.condition_evaluation == "engine+modules"

    @property
    def warnings(self) -> list[ValidationIssue]:
        with self._warnings_lock:
            return list(self._warnings)

    def record_warning(self, issue: ValidationIssue):
        logger.warning("%s: %s", issue.path, issue.message)
        with self._warnings_lock:
            self._warnings.append(issue)
        if self.on_warning:
            self.on_warning(issue)

    def get_scene(self, scene_id: str) -> Scene | None:
        return self.index.scene_by_id.get(scene_id)

    def get_location(self, location_id: str) -> Location | None:
        return self.index.location_by_id.get(location_id)

    def __repr__(self) -> str:
        return f"RuntimeContext(story={self.story.id!r}, modules={[m.id for m in self.modules]})"


@dataclass
class RuntimeInitResult:
    ok: bool
    issues: list[ValidationIssue] = field(default_factory=list)
    runtime: RuntimeContext | None = None

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_error]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if not issue.is_error]

    def unwrap(self) -> RuntimeContext:
        """Return the runtime or raise RuntimeInitError with the issues."""
        if not self.ok or self.runtime is None:
            raise RuntimeInitError("Runtime construction failed", self.issues)
        return self.runtime


def _init_modules(
    story: StoryBundle,
    modules: Sequence[RuleModule],
) -> tuple[ModuleRegistry, list[ValidationIssue]]:
    """Match every story rule module reference to an injected module."""
    issues: list[ValidationIssue] = []
    registry = ModuleRegistry()
    by_id = {module.id: module for module in modules}

    for index, ref in enumerate(story.rule_modules):
        module = by_id.get(ref.id)
        if module is None:
            issues.append(
                ValidationIssue.error(
                    f"/ruleModules/{index}", f"Missing rule module implementation for {ref.id}"
                )
            )
            continue

        if not module.supports_system(ref.system):
            issues.append(
                ValidationIssue.error(
                    f"/ruleModules/{index}/system",
                    f"Rule module {ref.id} system mismatch (expected {ref.system}, got {module.system})",
                )
            )
            continue

        if ref.config is not None:
            try:
                accepted = module.init(dict(ref.config))
            except Exception as e:
                logger.debug("Rule module %s rejected config", ref.id, exc_info=True)
                issues.append(
                    ValidationIssue.error(
                        f"/ruleModules/{index}/config", f"Rule module {ref.id} rejected config: {e}"
                    )
                )
                continue
            if accepted is False:
                issues.append(
                    ValidationIssue.error(
                        f"/ruleModules/{index}/config",
                        f"Rule module {ref.id} rejected config: invalid config",
                    )
                )
                continue

        registry.register(module)

    return registry, issues


def create_runtime(config: RuntimeConfig) -> RuntimeInitResult:
    """
    Build a RuntimeContext.

    Returns a RuntimeInitResult; ok is False (and runtime None) when bundle
    validation or module initialization produced any error.
    """
    lore_bundles = list(config.lore_bundles)
    validation = validate_bundles(config.story, lore_bundles)
    registry, module_issues = _init_modules(config.story, config.modules)
    issues = validation.issues + module_issues

    if any(issue.is_error for issue in issues):
        logger.info("Runtime for %s failed with %d issue(s)", config.story.id, len(issues))
        return RuntimeInitResult(ok=False, issues=issues)

    runtime = RuntimeContext(
        story=config.story,
        lore_bundles=lore_bundles,
        modules=registry,
        rng=config.rng or create_default_rng(),
        index=RuntimeIndex.build(config.story, lore_bundles),
        locale=config.locale,
        condition_evaluation=config.condition_evaluation,
        on_warning=config.on_warning,
        optional_features=config.optional_features,
        max_teleport_hops=config.max_teleport_hops,
    )
    logger.debug("Runtime ready: %r", runtime)
    return RuntimeInitResult(ok=True, issues=issues, runtime=runtime)


def build_companion_state(definition: CompanionDefinition) -> CompanionState:
    relationship = None
    if definition.default_relationship:
        seed = definition.default_relationship
        relationship = RelationshipState(
            value=seed.value,
            stage=seed.stage,
            flags=dict(seed.flags) if seed.flags else None,
        )
    return CompanionState(
        id=definition.id,
        name=definition.name,
        role=definition.role,
        relationship=relationship,
    )


def ensure_defaults(runtime: RuntimeContext, state: GameState):
    """Create the state sections of enabled optional features, if missing."""
    features = runtime.optional_features
    if features.lore_reveal_states and state.lore_knowledge is None:
        state.lore_knowledge = {}
    if features.relationships and state.relationships is None:
        state.relationships = {}
    if features.companions and state.companions is None:
        state.companions = [
            build_companion_state(definition) for definition in runtime.story.world.companions or []
        ]
    if features.sessions and state.session is None:
        state.session = SessionState(id=DEFAULT_SESSION_ID)
