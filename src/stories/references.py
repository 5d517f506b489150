"""Manage a story's reference assets: characters, backgrounds and art style.

Setting an image triggers analysis. A failed analysis leaves the previous
description and structured analysis in place and re-raises AnalysisError.
A hand-edited analysis replaces the stored one and re-renders the description.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Type, Union

from google import genai
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from analysis import AnalysisResult, ReferenceKind, analyze_reference, render_legacy_description
from exceptions import ValidationError
from models.analysis import (
    StructuredArtStyleAnalysis,
    StructuredBackgroundAnalysis,
    StructuredCharacterAnalysis,
)
from models.story import ArtStyleReference, Background, Character, ImageFile, Story
from .state import StoryState

logger = logging.getLogger(__name__)

Analyzer = Callable[..., Awaitable[AnalysisResult]]

class ReferenceManager:
    """Reference asset operations on stories held in a StoryState."""

    def __init__(
        self,
        state: StoryState,
        client: Optional[genai.Client] = None,
        analyzer: Analyzer = analyze_reference,
    ):
        self.state = state
        self.client = client
        self.analyzer = analyzer
        self._analyzing: Set[str] = set()

    def is_analyzing(self, entity_id: str) -> bool:
        """True while an analysis is in flight for this character or background id,
        or for a story id while its art style is being analyzed."""
        return entity_id in self._analyzing

    async def _analyze(self, kind: ReferenceKind, key: str, image: Optional[ImageFile]) -> AnalysisResult:
        self._analyzing.add(key)
        try:
            return await self.analyzer(kind, image, client=self.client)
        finally:
            self._analyzing.discard(key)

    # -------------------------------------------------------------------------
    # Generic list-entity helpers
    # -------------------------------------------------------------------------

    def _find(self, story: Story, field: str, entity_id: str) -> Any:
        for entity in getattr(story, field):
            if entity.id == entity_id:
                return entity
        raise ValidationError(f"Unknown {field[:-1]}: {entity_id}")

    def _replace(self, story_id: str, field: str, entity_id: str, update: Dict[str, Any]) -> Any:
        story = self.state.get(story_id)
        self._find(story, field, entity_id)
        items = [
            e.model_copy(update=update) if e.id == entity_id else e
            for e in getattr(story, field)
        ]
        updated = self.state.update(story_id, {field: items})
        return self._find(updated, field, entity_id)

    def _remove(self, story_id: str, field: str, entity_id: str, confirm: bool) -> None:
        if not confirm:
            raise ValidationError(
                f"Deleting a {field[:-1]} is irreversible and loses its analysis; pass confirm=True"
            )
        story = self.state.get(story_id)
        self._find(story, field, entity_id)
        self.state.update(story_id, {field: [e for e in getattr(story, field) if e.id != entity_id]})
        logger.info(f"Removed {field[:-1]} {entity_id} from story {story_id}")

    async def _analyze_into(self, story_id: str, field: str, kind: ReferenceKind, entity_id: str) -> Any:
        entity = self._find(self.state.get(story_id), field, entity_id)
        result = await self._analyze(kind, entity_id, entity.image)
        # Re-read: the entity may have been edited while the analysis ran
        return self._replace(story_id, field, entity_id, {
            "description": result.description,
            "structured_analysis": result.structured_analysis,
        })

    def _validated(self, model: Type[BaseModel], analysis: Union[BaseModel, Dict[str, Any]]) -> BaseModel:
        if isinstance(analysis, model):
            return analysis
        try:
            return model.model_validate(analysis)
        except SchemaError as e:
            raise ValidationError(f"Invalid {model.__name__}: {e}") from e

    def _edit_analysis(
        self,
        story_id: str,
        field: str,
        entity_id: str,
        model: Type[BaseModel],
        analysis: Union[BaseModel, Dict[str, Any]],
    ) -> Any:
        analysis = self._validated(model, analysis)
        return self._replace(story_id, field, entity_id, {
            "structured_analysis": analysis,
            "description": render_legacy_description(analysis),
        })

    def _set_description(self, story_id: str, field: str, entity_id: str, description: Optional[str]) -> Any:
        text = description.strip() if description else ""
        return self._replace(story_id, field, entity_id, {"description": text or None})

    # -------------------------------------------------------------------------
    # Characters
    # -------------------------------------------------------------------------

    async def add_character(self, story_id: str, name: str, image: Optional[ImageFile] = None) -> Character:
        character = Character(name=name.strip(), image=image)
        story = self.state.get(story_id)
        self.state.update(story_id, {"characters": [*story.characters, character]})
        if image is None:
            return character
        return await self._analyze_into(story_id, "characters", ReferenceKind.CHARACTER, character.id)

    def rename_character(self, story_id: str, character_id: str, name: str) -> Character:
        return self._replace(story_id, "characters", character_id, {"name": name.strip()})

    async def set_character_image(self, story_id: str, character_id: str, image: ImageFile) -> Character:
        self._replace(story_id, "characters", character_id, {"image": image})
        return await self._analyze_into(story_id, "characters", ReferenceKind.CHARACTER, character_id)

    async def reanalyze_character(self, story_id: str, character_id: str) -> Character:
        return await self._analyze_into(story_id, "characters", ReferenceKind.CHARACTER, character_id)

    def update_character_analysis(
        self,
        story_id: str,
        character_id: str,
        analysis: Union[StructuredCharacterAnalysis, Dict[str, Any]],
    ) -> Character:
        """
        Replace a character's structured analysis with a hand-edited one.

        The legacy description is re-rendered from the new analysis, so the
        locked prompt blocks follow the edit.

        Raises:
            ValidationError: If the analysis does not match the character schema
        """
        return self._edit_analysis(
            story_id, "characters", character_id, StructuredCharacterAnalysis, analysis
        )

    def set_character_description(self, story_id: str, character_id: str, description: Optional[str]) -> Character:
        """Overwrite the legacy description; the structured analysis is kept."""
        return self._set_description(story_id, "characters", character_id, description)

    def remove_character(self, story_id: str, character_id: str, confirm: bool = False) -> None:
        self._remove(story_id, "characters", character_id, confirm)

    # -------------------------------------------------------------------------
    # Backgrounds
    # -------------------------------------------------------------------------

    async def add_background(self, story_id: str, name: str, image: Optional[ImageFile]) -> Background:
        if image is None:
            raise ValidationError("Background image is required")
        background = Background(name=name.strip(), image=image)
        story = self.state.get(story_id)
        self.state.update(story_id, {"backgrounds": [*story.backgrounds, background]})
        return await self._analyze_into(story_id, "backgrounds", ReferenceKind.BACKGROUND, background.id)

    def rename_background(self, story_id: str, background_id: str, name: str) -> Background:
        return self._replace(story_id, "backgrounds", background_id, {"name": name.strip()})

    async def set_background_image(self, story_id: str, background_id: str, image: ImageFile) -> Background:
        self._replace(story_id, "backgrounds", background_id, {"image": image})
        return await self._analyze_into(story_id, "backgrounds", ReferenceKind.BACKGROUND, background_id)

    async def reanalyze_background(self, story_id: str, background_id: str) -> Background:
        return await self._analyze_into(story_id, "backgrounds", ReferenceKind.BACKGROUND, background_id)

    def update_background_analysis(
        self,
        story_id: str,
        background_id: str,
        analysis: Union[StructuredBackgroundAnalysis, Dict[str, Any]],
    ) -> Background:
        return self._edit_analysis(
            story_id, "backgrounds", background_id, StructuredBackgroundAnalysis, analysis
        )

    def set_background_description(
        self,
        story_id: str,
        background_id: str,
        description: Optional[str],
    ) -> Background:
        return self._set_description(story_id, "backgrounds", background_id, description)

    def remove_background(self, story_id: str, background_id: str, confirm: bool = False) -> None:
        self._remove(story_id, "backgrounds", background_id, confirm)

    # -------------------------------------------------------------------------
    # Art style
    # -------------------------------------------------------------------------

    async def set_art_style(self, story_id: str, image: ImageFile) -> ArtStyleReference:
        """Replace the art style image and analyze it."""
        current = self.state.get(story_id).art_style
        if current is not None:
            art_style = current.model_copy(update={"image": image})
        else:
            art_style = ArtStyleReference(image=image)
        self.state.update(story_id, {"art_style": art_style})
        return await self.reanalyze_art_style(story_id)

    async def reanalyze_art_style(self, story_id: str) -> ArtStyleReference:
        art_style = self.state.get(story_id).art_style
        if art_style is None:
            raise ValidationError("Art style image is required")
        result = await self._analyze(ReferenceKind.ART_STYLE, story_id, art_style.image)
        updated = self.state.get(story_id).art_style.model_copy(update={
            "description": result.description,
            "structured_analysis": result.structured_analysis,
        })
        self.state.update(story_id, {"art_style": updated})
        return updated

    def update_art_style_analysis(
        self,
        story_id: str,
        analysis: Union[StructuredArtStyleAnalysis, Dict[str, Any]],
    ) -> ArtStyleReference:
        """Replace the art style analysis by hand and re-render its description."""
        art_style = self.state.get(story_id).art_style
        if art_style is None:
            raise ValidationError("Art style image is required")
        analysis = self._validated(StructuredArtStyleAnalysis, analysis)
        updated = art_style.model_copy(update={
            "structured_analysis": analysis,
            "description": render_legacy_description(analysis),
        })
        self.state.update(story_id, {"art_style": updated})
        return updated

    def clear_art_style(self, story_id: str) -> None:
        self.state.update(story_id, {"art_style": None})
