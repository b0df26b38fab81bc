"""
Error taxonomy.

- Construction errors: the runtime cannot be built (RuntimeInitError)
- Load errors: a bundle could not be parsed (BundleLoadError)
- Lookup-fatal errors: a transition referenced something that does not exist,
  or a choice whose condition is false. These mean a malformed bundle or a UI
  offering a stale choice; the transition is aborted.

Expression errors are not exceptions: they degrade to false and are logged.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .spec_schema.validation import ValidationIssue


class WorldloomError(Exception):
    """Base class for all engine errors."""


class IssueListError(WorldloomError):
    """An error carrying the validation issues that caused it."""

    def __init__(self, message: str, issues: Sequence[ValidationIssue] = ()):
        self.issues = list(issues)
        details = "; ".join(f"{i.path}: {i.message}" for i in self.issues if i.is_error)
        super().__init__(f"{message}: {details}" if details else message)


class BundleLoadError(IssueListError):
    """A story or lore bundle could not be decoded or failed its schema."""


class RuntimeInitError(IssueListError):
    """Raised when a runtime cannot be constructed from its bundles and modules."""


class LookupFatalError(WorldloomError):
    """A transition referenced a scene, exit or action that cannot be used."""


class SceneNotFoundError(LookupFatalError):
    def __init__(self, scene_id: str):
        self.scene_id = scene_id
        super().__init__(f"Scene {scene_id} not found")


class ExitNotFoundError(LookupFatalError):
    def __init__(self, scene_id: str, exit_ref: object):
        self.scene_id = scene_id
        self.exit_ref = exit_ref
        super().__init__(f"Exit {exit_ref!r} not found in scene {scene_id}")


class ActionNotFoundError(LookupFatalError):
    def __init__(self, scene_id: str, action_id: str):
        self.scene_id = scene_id
        self.action_id = action_id
        super().__init__(f"Action {action_id} not found in scene {scene_id}")


class ConditionFailedError(LookupFatalError):
    """The player picked an exit or action whose condition is false."""


class TeleportLoopError(WorldloomError):
    """A teleport chain exceeded the runtime's hop limit."""

    def __init__(self, chain: Sequence[str], max_hops: int):
        self.chain = list(chain)
        self.max_hops = max_hops
        tail = " -> ".join(self.chain[-5:])
        super().__init__(f"Teleport chain exceeded {max_hops} hops (... {tail})")


class FeatureDisabledError(WorldloomError):
    """An optional feature was used without being enabled on the runtime."""


class SessionError(WorldloomError):
    """Invalid session orchestration request."""
