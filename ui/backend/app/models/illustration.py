"""Request bodies for the illustration endpoints.

Field names are camelCase on the wire, matching the frontend payloads.
"""

from typing import List, Optional

from app.config import settings  # noqa: F401  (puts src on sys.path)

from models.analysis import CamelModel, StructuredArtStyleAnalysis  # noqa: E402
from models.scene_description import StructuredSceneDescription  # noqa: E402
from models.story import AspectRatio, Background, Character, ImageFile, ShotType  # noqa: E402


class AnalyzeImageRequest(CamelModel):
    image: Optional[ImageFile] = None


class NovelTextRequest(CamelModel):
    novel_text: Optional[str] = None
    structured: bool = False


class PromptRequest(CamelModel):
    """Scene plus the story's references; relevance is decided server-side."""
    scene_description: str = ""
    structured_description: Optional[StructuredSceneDescription] = None
    previous_scene_description: Optional[StructuredSceneDescription] = None
    characters: List[Character] = []
    backgrounds: List[Background] = []
    art_style_description: Optional[str] = None
    art_style_structured_analysis: Optional[StructuredArtStyleAnalysis] = None
    shot_type: ShotType = ShotType.AUTOMATIC


class IllustrationRequest(PromptRequest):
    prompt: Optional[str] = None  # Reviewed prompt; composed on the fly if absent
    art_style: Optional[ImageFile] = None
    aspect_ratio: AspectRatio = AspectRatio.SQUARE


class EditIllustrationRequest(CamelModel):
    original_image: Optional[ImageFile] = None
    edit_prompt: str = ""


class ReferenceRequest(CamelModel):
    prompt: str = ""
    art_style: Optional[ImageFile] = None
