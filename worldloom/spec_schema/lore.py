"""Lore entity schemas - read-only world canon."""

from __future__ import annotations
from typing import Optional

from .base import Number, SchemaModel


class Trait(SchemaModel):
    id: str
    name: str
    description: str


class Race(SchemaModel):
    id: str
    name: str
    description: str
    culture: Optional[str] = None
    physiology: Optional[str] = None
    playable: bool = False
    trait_ids: Optional[list[str]] = None
    stat_modifiers: Optional[dict[str, Number]] = None
    tags: Optional[list[str]] = None


class FactionRelationship(SchemaModel):
    faction_id: str
    stance: str  # ally | enemy | neutral | unknown
    note: Optional[str] = None


class Faction(SchemaModel):
    id: str
    name: str
    description: str
    ideology: Optional[str] = None
    alignment: Optional[str] = None
    goals: Optional[list[str]] = None
    relationships: Optional[list[FactionRelationship]] = None
    tags: Optional[list[str]] = None


class Deity(SchemaModel):
    id: str
    name: str
    domains: list[str]
    alignment: Optional[str] = None
    worshipper_faction_ids: Optional[list[str]] = None
    tags: Optional[list[str]] = None


class LoreLocation(SchemaModel):
    """Abstract canon location. Not used for runtime navigation."""
    id: str
    name: str
    description: str
    region: Optional[str] = None
    tags: Optional[list[str]] = None


class LoreItem(SchemaModel):
    id: str
    name: str
    description: str
    rarity: Optional[str] = None
    myth: Optional[str] = None
    tags: Optional[list[str]] = None


class LoreEvent(SchemaModel):
    id: str
    name: str
    description: str
    era: Optional[str] = None
    related_faction_ids: Optional[list[str]] = None
    tags: Optional[list[str]] = None


# Lore key prefix -> LoreBundle attribute holding that category
LORE_CATEGORIES: dict[str, str] = {
    "race": "races",
    "faction": "factions",
    "deity": "deities",
    "trait": "traits",
    "location": "locations",
    "item": "items",
    "event": "history",
}
