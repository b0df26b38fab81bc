"""
Render Model - what a presentation layer needs after each transition.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from ..spec_schema.assets import AmbienceBlock
    from ..spec_schema.scene import Action, Exit
    from .state import GameState


@dataclass
class RenderModel:
    scene_id: str
    narrative_text: str
    location_id: str | None = None
    ambience: AmbienceBlock | None = None
    available_exits: list[Exit] = field(default_factory=list)
    available_actions: list[Action] = field(default_factory=list)
    recent_narrative: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys; unset optionals omitted."""
        data: dict[str, Any] = {
            "sceneId": self.scene_id,
            "narrativeText": self.narrative_text,
            "availableExits": [exit_.to_json_dict() for exit_ in self.available_exits],
            "availableActions": [action.to_json_dict() for action in self.available_actions],
        }
        if self.location_id is not None:
            data["locationId"] = self.location_id
        if self.ambience is not None:
            data["ambience"] = self.ambience.to_json_dict()
        if self.recent_narrative:
            data["recentNarrative"] = list(self.recent_narrative)
        return data


@dataclass
class EngineResult:
    """State after a transition plus the render model of the scene the player ended in."""
    state: GameState
    render_model: RenderModel
