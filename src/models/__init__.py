"""Models for stories, reference analyses and structured scene descriptions."""

from models.analysis import (
    StructuredAnalysis,
    StructuredArtStyleAnalysis,
    StructuredBackgroundAnalysis,
    StructuredCharacterAnalysis,
)

from models.scene_description import (
    SceneCharacter,
    SceneEnvironment,
    SceneInteraction,
    SceneMood,
    SceneObject,
    StructuredSceneDescription,
)

from models.story import (
    DEFAULT_STORY_TITLE,
    PLACEHOLDER_TITLES,
    UNTITLED_STORY_TITLE,
    ArtStyleReference,
    AspectRatio,
    Background,
    Character,
    ImageFile,
    Scene,
    SceneStatus,
    ShotType,
    Story,
    new_id,
)

__all__ = [
    # Analysis models
    "StructuredAnalysis",
    "StructuredArtStyleAnalysis",
    "StructuredBackgroundAnalysis",
    "StructuredCharacterAnalysis",
    # Scene description models
    "SceneCharacter",
    "SceneEnvironment",
    "SceneInteraction",
    "SceneMood",
    "SceneObject",
    "StructuredSceneDescription",
    # Story models
    "DEFAULT_STORY_TITLE",
    "PLACEHOLDER_TITLES",
    "UNTITLED_STORY_TITLE",
    "ArtStyleReference",
    "AspectRatio",
    "Background",
    "Character",
    "ImageFile",
    "Scene",
    "SceneStatus",
    "ShotType",
    "Story",
    "new_id",
]
