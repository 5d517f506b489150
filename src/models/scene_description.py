"""Structured scene descriptions produced by the segmenter."""

from typing import List, Optional
from pydantic import field_validator

from models.analysis import CamelModel


class SceneCharacter(CamelModel):
    name: str
    action: str = ""
    expression: str = ""
    posture: str = ""
    position: str = ""


class SceneEnvironment(CamelModel):
    location: str
    time_of_day: str = ""
    lighting: str = ""
    weather: Optional[str] = None
    atmosphere: str = ""


class SceneObject(CamelModel):
    item: str
    description: str = ""
    importance: str = ""


class SceneMood(CamelModel):
    emotional_tone: str = ""
    tension_level: str = ""
    key_feeling: str = ""


class SceneInteraction(CamelModel):
    characters: List[str]
    type: str = ""  # "confrontation" / "conversation" / "support"
    description: str = ""
    physical_distance: str = ""


class StructuredSceneDescription(CamelModel):
    """Richer breakdown of a scene: cast, setting, objects, mood."""

    summary: str
    source_excerpt: str = ""  # Verbatim novel excerpt the scene is based on
    characters: List[SceneCharacter] = []
    environment: Optional[SceneEnvironment] = None
    important_objects: List[SceneObject] = []
    mood: Optional[SceneMood] = None
    interactions: Optional[List[SceneInteraction]] = None

    @field_validator('summary')
    @classmethod
    def validate_summary_not_empty(cls, v: str) -> str:
        """Ensure summary is not empty."""
        if not v or not v.strip():
            raise ValueError("Scene summary cannot be empty")
        return v

    @property
    def character_names(self) -> List[str]:
        return [c.name for c in self.characters if c.name and c.name.strip()]

    @property
    def location(self) -> Optional[str]:
        if self.environment and self.environment.location:
            return self.environment.location
        return None
