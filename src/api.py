"""
Public API for the novel illustrator.

This module provides the official interface for external applications
(HTTP backend, CLI tools, notebooks) to drive the illustration workflow.

All configuration comes from environment variables (.env file).

Example usage:
    from api import IllustrationSession

    session = IllustrationSession.from_env()
    await session.start()

    story = session.create_story(novel_text=text)
    story = await session.analyze_novel(story.id)

    # First call composes the prompt for review, second call draws
    await session.generate_scene(story.id, story.scenes[0].id)
    await session.generate_scene(story.id, story.scenes[0].id)

    await session.close()
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from google import genai

from config import get_cache_dir, get_save_debounce_seconds
from exceptions import ValidationError
from illustration import (
    BatchResult,
    IllustrationOrchestrator,
    PromptInvalidationPolicy,
    generate_reference_image,
)
from illustration.orchestrate import ProgressCallback
from models.story import (
    DEFAULT_STORY_TITLE,
    PLACEHOLDER_TITLES,
    ImageFile,
    Scene,
    Story,
)
from scene_extraction import generate_title, segment_novel, segment_novel_structured
from stories.references import ReferenceManager
from stories.state import StoryState
from storage import LocalSceneCache, StoryRepository, SupabaseStoryStore

logger = logging.getLogger(__name__)


class IllustrationSession:
    """One user's working set of stories plus everything needed to illustrate them.

    Attributes:
        state: In-memory stories
        repository: Local cache + remote mirror
        references: Character/background/art style operations
        orchestrator: Scene prompt/generation/edit operations
    """

    def __init__(
        self,
        client: Optional[genai.Client] = None,
        store: Optional[SupabaseStoryStore] = None,
        cache_dir: Optional[Path] = None,
        debounce_seconds: Optional[float] = None,
        invalidation_policy: PromptInvalidationPolicy = PromptInvalidationPolicy.KEEP,
    ):
        """
        Args:
            client: genai client (built lazily from GEMINI_API_KEY if omitted)
            store: Remote store; None keeps stories in memory and the local cache only
            cache_dir: Scene image cache directory (default: ILLUSTRATOR_CACHE_DIR)
            debounce_seconds: Remote save quiet period (default: ILLUSTRATOR_SAVE_DEBOUNCE)
            invalidation_policy: Whether description edits clear reviewed prompts
        """
        self.client = client
        self.state = StoryState()
        self.repository = StoryRepository(
            self.state,
            LocalSceneCache(cache_dir or get_cache_dir()),
            store,
            debounce_seconds if debounce_seconds is not None else get_save_debounce_seconds(),
        )
        self.references = ReferenceManager(self.state, client=client)
        self.orchestrator = IllustrationOrchestrator(
            self.state,
            self.repository,
            client=client,
            invalidation_policy=invalidation_policy,
        )

    @classmethod
    def from_env(cls, user_id: Optional[str] = None, **kwargs) -> "IllustrationSession":
        """Session backed by the Supabase project in SUPABASE_URL / SUPABASE_KEY."""
        return cls(store=SupabaseStoryStore.from_env(user_id=user_id), **kwargs)

    async def start(self) -> List[Story]:
        """Load stories from the remote store and merge cached scene images."""
        return await self.repository.load()

    async def close(self) -> None:
        """Flush pending remote saves and stop listening to state changes."""
        try:
            await self.repository.flush()
        finally:
            self.repository.close()

    # -------------------------------------------------------------------------
    # Stories
    # -------------------------------------------------------------------------

    @property
    def stories(self) -> List[Story]:
        return self.state.all()

    def get_story(self, story_id: str) -> Story:
        return self.state.get(story_id)

    def create_story(self, title: str = DEFAULT_STORY_TITLE, novel_text: str = "") -> Story:
        story = Story(title=title, novel_text=novel_text)
        logger.info(f"Created story {story.id}")
        return self.state.put(story)

    def rename_story(self, story_id: str, title: str) -> Story:
        return self.state.update(story_id, {"title": title.strip()})

    def set_novel_text(self, story_id: str, novel_text: str) -> Story:
        return self.state.update(story_id, {"novel_text": novel_text})

    async def delete_story(self, story_id: str) -> None:
        await self.repository.delete_story(story_id)

    async def analyze_novel(
        self,
        story_id: str,
        novel_text: Optional[str] = None,
        structured: bool = True,
    ) -> Story:
        """
        Split the novel into scenes, replacing the story's current scenes.

        Placeholder titles ("New Story", "Untitled Story") are replaced by a
        generated title. Title generation never fails the operation.

        Raises:
            ValidationError: If there is no novel text
            SegmentationError: If no scenes could be derived
        """
        story = self.state.get(story_id)
        text = novel_text if novel_text is not None else story.novel_text
        if not text or not text.strip():
            raise ValidationError("Novel text is required")

        wants_title = story.title.strip() in PLACEHOLDER_TITLES
        if structured:
            segmentation = segment_novel_structured(text, client=self.client)
        else:
            segmentation = segment_novel(text, client=self.client)

        if wants_title:
            segments, title = await asyncio.gather(segmentation, generate_title(text, client=self.client))
        else:
            segments, title = await segmentation, story.title

        if structured:
            scenes = [Scene(description=s.summary, structured_description=s) for s in segments]
        else:
            scenes = [Scene(description=s) for s in segments]

        # Old scene images belong to scenes that no longer exist
        for old in story.scenes:
            self.repository.delete_scene_image(story_id, old.id)

        updated = self.state.update(story_id, {"novel_text": text, "title": title, "scenes": scenes})
        logger.info(f"Story {story_id} analyzed into {len(scenes)} scenes")
        return updated

    # -------------------------------------------------------------------------
    # Scenes
    # -------------------------------------------------------------------------

    async def generate_scene(self, story_id: str, scene_id: str) -> Scene:
        return await self.orchestrator.generate(story_id, scene_id)

    async def generate_all(self, story_id: str, on_progress: Optional[ProgressCallback] = None) -> BatchResult:
        return await self.orchestrator.generate_all(story_id, on_progress=on_progress)

    async def edit_scene(self, story_id: str, scene_id: str, instruction: str) -> Scene:
        return await self.orchestrator.edit(story_id, scene_id, instruction)

    # -------------------------------------------------------------------------
    # References
    # -------------------------------------------------------------------------

    async def generate_reference(self, prompt: str, story_id: Optional[str] = None) -> ImageFile:
        """Draw a new reference image, in the story's art style if it has one."""
        art_style = None
        if story_id is not None:
            story_art = self.state.get(story_id).art_style
            art_style = story_art.image if story_art else None
        return await generate_reference_image(prompt, art_style=art_style, client=self.client)
