"""Story aggregate: characters, backgrounds, art style and scenes.

All models are frozen. Updates go through ``model_copy(update=...)`` so a
story is always replaced as a whole (see ``stories.state``).
"""

import base64
import binascii
import re
import uuid
from enum import Enum
from typing import List, Optional

from pydantic import Field, computed_field

from exceptions import DataIntegrityError
from models.analysis import (
    CamelModel,
    StructuredArtStyleAnalysis,
    StructuredBackgroundAnalysis,
    StructuredCharacterAnalysis,
)
from models.scene_description import StructuredSceneDescription

DATA_URL_PATTERN = re.compile(r"^data:(image/[\w.+-]+);base64,(.+)$", re.DOTALL)

DEFAULT_STORY_TITLE = "New Story"
UNTITLED_STORY_TITLE = "Untitled Story"
# Titles that get replaced by a generated title when the novel is analyzed
PLACEHOLDER_TITLES = frozenset({DEFAULT_STORY_TITLE, UNTITLED_STORY_TITLE, ""})


def new_id() -> str:
    """Opaque stable identifier for stories and their entities."""
    return str(uuid.uuid4())


class ShotType(str, Enum):
    AUTOMATIC = "automatic"
    WIDE_SHOT = "wide_shot"
    MEDIUM_SHOT = "medium_shot"
    CLOSE_UP = "close_up"
    EXTREME_CLOSE_UP = "extreme_close_up"
    OVER_THE_SHOULDER = "over_the_shoulder"
    BIRDS_EYE_VIEW = "birds_eye_view"
    LOW_ANGLE = "low_angle"

    @property
    def label(self) -> str:
        """Human phrasing, e.g. "wide shot"."""
        return self.value.replace("_", " ")


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"
    STANDARD = "4:3"
    STANDARD_PORTRAIT = "3:4"


class SceneStatus(str, Enum):
    """Generation lifecycle of a scene."""

    NO_PROMPT = "no_prompt"
    PROMPT_READY = "prompt_ready"
    GENERATING = "generating"
    GENERATED = "generated"
    EDIT_GENERATING = "edit_generating"


class ImageFile(CamelModel):
    """Base64 image payload as exchanged with the browser and the model."""

    mime_type: str
    base64: str
    name: str = "image.png"

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"

    @property
    def data(self) -> bytes:
        return base64.b64decode(self.base64)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str = "image/png", name: str = "image.png") -> "ImageFile":
        return cls(mime_type=mime_type, base64=base64.b64encode(data).decode("ascii"), name=name)

    @classmethod
    def from_data_url(cls, data_url: str, name: str = "image.png") -> "ImageFile":
        """
        Parse ``data:<mimeType>;base64,<data>`` into an ImageFile.

        Raises:
            DataIntegrityError: If the URL is malformed or the payload is not base64
        """
        match = DATA_URL_PATTERN.match(data_url or "")
        if not match:
            raise DataIntegrityError("Invalid data URL format")
        mime_type, payload = match.group(1), match.group(2).strip()
        try:
            base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DataIntegrityError(f"Data URL payload is not valid base64: {e}") from e
        return cls(mime_type=mime_type, base64=payload, name=name)


class Character(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str
    image: Optional[ImageFile] = None
    description: Optional[str] = None  # Legacy description
    structured_analysis: Optional[StructuredCharacterAnalysis] = None


class Background(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str
    image: ImageFile
    description: Optional[str] = None  # Legacy description
    structured_analysis: Optional[StructuredBackgroundAnalysis] = None


class ArtStyleReference(CamelModel):
    image: ImageFile
    description: Optional[str] = None
    structured_analysis: Optional[StructuredArtStyleAnalysis] = None


class Scene(CamelModel):
    id: str = Field(default_factory=new_id)
    description: str
    structured_description: Optional[StructuredSceneDescription] = None
    image_url: Optional[str] = None
    custom_prompt: Optional[str] = None  # Exact text reviewed before generation
    generated_prompt: Optional[str] = None  # Full text of the last successful request
    status: SceneStatus = SceneStatus.NO_PROMPT
    shot_type: ShotType = ShotType.AUTOMATIC
    aspect_ratio: AspectRatio = AspectRatio.SQUARE

    @computed_field
    @property
    def is_generating(self) -> bool:
        return self.status in (SceneStatus.GENERATING, SceneStatus.EDIT_GENERATING)

    @property
    def has_prompt(self) -> bool:
        return bool(self.custom_prompt and self.custom_prompt.strip())

    def resting_status(self, has_image: Optional[bool] = None) -> SceneStatus:
        """Status this scene settles into when no generation is in flight."""
        if has_image is None:
            has_image = bool(self.image_url)
        if has_image:
            return SceneStatus.GENERATED
        if self.has_prompt:
            return SceneStatus.PROMPT_READY
        return SceneStatus.NO_PROMPT


class Story(CamelModel):
    id: str = Field(default_factory=new_id)
    title: str = DEFAULT_STORY_TITLE
    novel_text: str = ""
    characters: List[Character] = []
    backgrounds: List[Background] = []
    art_style: Optional[ArtStyleReference] = None
    scenes: List[Scene] = []

    def find_scene(self, scene_id: str) -> Optional[Scene]:
        return next((s for s in self.scenes if s.id == scene_id), None)

    def previous_scene(self, scene_id: str) -> Optional[Scene]:
        """Scene immediately before ``scene_id`` in story order."""
        for index, scene in enumerate(self.scenes):
            if scene.id == scene_id:
                return self.scenes[index - 1] if index > 0 else None
        return None

    def find_character(self, character_id: str) -> Optional[Character]:
        return next((c for c in self.characters if c.id == character_id), None)

    def find_background(self, background_id: str) -> Optional[Background]:
        return next((b for b in self.backgrounds if b.id == background_id), None)

    @property
    def art_style_description(self) -> Optional[str]:
        return self.art_style.description if self.art_style else None
