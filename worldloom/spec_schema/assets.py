"""Asset and ambience schemas."""

from __future__ import annotations
from typing import Optional

from .base import SchemaModel


class Asset(SchemaModel):
    id: str
    type: str  # image | audio | voice | other
    path: str
    mime_type: Optional[str] = None
    duration_ms: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    tags: Optional[list[str]] = None


class AssetRef(SchemaModel):
    id: str
    uri: Optional[str] = None


class VoiceSpec(SchemaModel):
    mode: str  # none | partial | full
    narration_asset: Optional[AssetRef] = None
    voice_id: Optional[str] = None
    scope: Optional[str] = None  # scene | narrativeOnly | keyLines


class AmbienceBlock(SchemaModel):
    """Presentation hints passed through to the render model untouched."""
    soundscape: Optional[AssetRef] = None
    music: Optional[AssetRef] = None
    imagery: Optional[list[AssetRef]] = None
    voice: Optional[VoiceSpec] = None
    lighting: Optional[str] = None
    mood: Optional[str] = None

    def asset_refs(self) -> list[AssetRef]:
        refs: list[AssetRef] = []
        if self.soundscape:
            refs.append(self.soundscape)
        if self.music:
            refs.append(self.music)
        if self.imagery:
            refs.extend(self.imagery)
        if self.voice and self.voice.narration_asset:
            refs.append(self.voice.narration_asset)
        return refs
