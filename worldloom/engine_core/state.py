"""
Game State - the single mutable entity of a game.

GameState is owned by the caller: the engine mutates it in place during a
transition and never keeps a reference after the call returns. It is the
unit of persistence (save_game / load_game).

Design principles:
- Only the effect resolver, the transition machine and the session helpers
  mutate a GameState
- History is append-only; each entry carries a logical sequence number
- Optional maps (loreKnowledge, relationships, companions, session) stay None
  until the matching feature is enabled
"""

from __future__ import annotations
from typing import Any, Literal, Optional

from pydantic import Field

from ..spec_schema.base import MutableModel, Number, SchemaModel
from ..spec_schema.effect_dsl import Item

ENGINE_VERSION = "0.1.0"
SCHEMA_VERSION = "1.0"

# Logical, wall-clock independent timestamp so replays stay byte-identical
DEFAULT_TIMESTAMP = "1970-01-01T00:00:00.000Z"

HistoryType = Literal["sceneEnter", "sceneExit", "action", "effect", "rule"]


class InventoryEntry(MutableModel):
    item: Item
    count: int


class Character(MutableModel):
    id: Optional[str] = None
    name: str = "Player"
    stats: dict[str, Number] = Field(default_factory=dict)
    inventory: list[InventoryEntry] = Field(default_factory=list)
    race_id: Optional[str] = None
    faction_ids: Optional[list[str]] = None
    flags: Optional[dict[str, bool]] = None

    def get_entry(self, item_id: str) -> InventoryEntry | None:
        for entry in self.inventory:
            if entry.item.id == item_id:
                return entry
        return None

    def item_count(self, item_id: str) -> int:
        entry = self.get_entry(item_id)
        return entry.count if entry else 0


class RelationshipState(MutableModel):
    value: Number = 0
    stage: Optional[str] = None
    flags: Optional[dict[str, bool]] = None


class CompanionState(MutableModel):
    id: str
    name: str
    role: Optional[str] = None
    relationship: Optional[RelationshipState] = None
    flags: Optional[dict[str, bool]] = None


class SessionPlayer(MutableModel):
    id: str
    name: Optional[str] = None
    role: Optional[str] = None


class SessionAction(MutableModel):
    """A queued vote: exactly one of action_id / exit_label is expected."""
    player_id: str
    action_id: Optional[str] = None
    exit_label: Optional[str] = None
    at: str = DEFAULT_TIMESTAMP
    seq: int = 0


class SessionState(MutableModel):
    id: str
    players: list[SessionPlayer] = Field(default_factory=list)
    current_turn: Optional[int] = None
    pending_actions: Optional[list[SessionAction]] = None

    def get_player(self, player_id: str) -> SessionPlayer | None:
        for player in self.players:
            if player.id == player_id:
                return player
        return None


class HistoryEvent(SchemaModel):
    """One append-only log entry. Frozen once recorded."""
    at: str = DEFAULT_TIMESTAMP
    seq: int = 0
    type: HistoryType
    scene_id: Optional[str] = None
    action_id: Optional[str] = None
    data: Optional[dict[str, Any]] = None


class GameState(MutableModel):
    version: str = ENGINE_VERSION
    schema_version: Optional[str] = SCHEMA_VERSION
    story_bundle_id: str
    lore_bundle_ids: Optional[list[str]] = None
    current_scene_id: str
    current_location_id: Optional[str] = None
    character: Character = Field(default_factory=Character)
    flags: dict[str, bool] = Field(default_factory=dict)
    vars: dict[str, Any] = Field(default_factory=dict)
    lore_knowledge: Optional[dict[str, str]] = None
    reputation: Optional[dict[str, Number]] = None
    companions: Optional[list[CompanionState]] = None
    relationships: Optional[dict[str, RelationshipState]] = None
    session: Optional[SessionState] = None
    history: list[HistoryEvent] = Field(default_factory=list)

    def record(
        self,
        type: HistoryType,
        scene_id: str | None = None,
        action_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> HistoryEvent:
        """Append a history entry stamped with the next sequence number."""
        event = HistoryEvent(
            seq=len(self.history),
            type=type,
            scene_id=scene_id,
            action_id=action_id,
            data=data,
        )
        self.history.append(event)
        return event

    def get_companion(self, companion_id: str) -> CompanionState | None:
        for companion in self.companions or []:
            if companion.id == companion_id:
                return companion
        return None
