"""Durable story storage in Supabase (PostgREST tables).

Tables: stories, scenes, characters, backgrounds. Reference images are
stored inline as data URLs; scene images are not (their image_url column is
always written as NULL, the local cache holds them).

All methods are blocking; async callers go through asyncio.to_thread.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client, create_client

from config import get_supabase_key, get_supabase_url
from exceptions import DataIntegrityError, StorageError
from models.analysis import (
    StructuredArtStyleAnalysis,
    StructuredBackgroundAnalysis,
    StructuredCharacterAnalysis,
)
from models.scene_description import StructuredSceneDescription
from models.story import (
    ArtStyleReference,
    AspectRatio,
    Background,
    Character,
    ImageFile,
    Scene,
    SceneStatus,
    ShotType,
    Story,
)

logger = logging.getLogger(__name__)

STORIES_TABLE = "stories"
SCENES_TABLE = "scenes"
CHARACTERS_TABLE = "characters"
BACKGROUNDS_TABLE = "backgrounds"

DEFAULT_QUOTA_MB = 50.0


def _dump(model: Any) -> Optional[Dict[str, Any]]:
    return model.model_dump(mode="json", by_alias=True) if model is not None else None


def _image_or_none(data_url: Optional[str], name: str) -> Optional[ImageFile]:
    if not data_url:
        return None
    try:
        return ImageFile.from_data_url(data_url, name=name)
    except DataIntegrityError:
        logger.warning(f"Stored image for '{name}' is not a valid data URL; dropping it")
        return None


# =============================================================================
# Row conversion
# =============================================================================

def story_to_row(story: Story, user_id: Optional[str] = None) -> Dict[str, Any]:
    art_style = story.art_style
    row = {
        "id": story.id,
        "title": story.title,
        "novel_text": story.novel_text,
        "art_style_url": art_style.image.to_data_url() if art_style else None,
        "art_style_description": art_style.description if art_style else None,
        "art_style_analysis": _dump(art_style.structured_analysis) if art_style else None,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    if user_id:
        row["user_id"] = user_id
    return row


def scene_to_row(scene: Scene, story_id: str, index: int) -> Dict[str, Any]:
    return {
        "id": scene.id,
        "story_id": story_id,
        "description": scene.description,
        "structured_description": _dump(scene.structured_description),
        "custom_prompt": scene.custom_prompt,
        "status": scene.status.value,
        "shot_type": scene.shot_type.value,
        "aspect_ratio": scene.aspect_ratio.value,
        "image_url": None,
        "order_index": index,
    }


def character_to_row(character: Character, story_id: str, index: int) -> Dict[str, Any]:
    return {
        "id": character.id,
        "story_id": story_id,
        "name": character.name,
        "image_url": character.image.to_data_url() if character.image else None,
        "description": character.description,
        "structured_analysis": _dump(character.structured_analysis),
        "order_index": index,
    }


def background_to_row(background: Background, story_id: str, index: int) -> Dict[str, Any]:
    return {
        "id": background.id,
        "story_id": story_id,
        "name": background.name,
        "image_url": background.image.to_data_url(),
        "description": background.description,
        "structured_analysis": _dump(background.structured_analysis),
        "order_index": index,
    }


def scene_from_row(row: Dict[str, Any]) -> Scene:
    structured = row.get("structured_description")
    return Scene(
        id=row["id"],
        description=row.get("description") or "",
        structured_description=(
            StructuredSceneDescription.model_validate(structured) if structured else None
        ),
        custom_prompt=row.get("custom_prompt"),
        status=SceneStatus(row.get("status") or SceneStatus.NO_PROMPT.value),
        shot_type=ShotType(row.get("shot_type") or ShotType.AUTOMATIC.value),
        aspect_ratio=AspectRatio(row.get("aspect_ratio") or AspectRatio.SQUARE.value),
    )


def character_from_row(row: Dict[str, Any]) -> Character:
    analysis = row.get("structured_analysis")
    return Character(
        id=row["id"],
        name=row.get("name") or "",
        image=_image_or_none(row.get("image_url"), row.get("name") or "character"),
        description=row.get("description"),
        structured_analysis=(
            StructuredCharacterAnalysis.model_validate(analysis) if analysis else None
        ),
    )


def background_from_row(row: Dict[str, Any]) -> Optional[Background]:
    image = _image_or_none(row.get("image_url"), row.get("name") or "background")
    if image is None:
        logger.warning(f"Background {row.get('id')} has no usable image; skipping it")
        return None
    analysis = row.get("structured_analysis")
    return Background(
        id=row["id"],
        name=row.get("name") or "",
        image=image,
        description=row.get("description"),
        structured_analysis=(
            StructuredBackgroundAnalysis.model_validate(analysis) if analysis else None
        ),
    )


def story_from_rows(
    row: Dict[str, Any],
    scene_rows: List[Dict[str, Any]],
    character_rows: List[Dict[str, Any]],
    background_rows: List[Dict[str, Any]],
) -> Story:
    art_style = None
    art_image = _image_or_none(row.get("art_style_url"), "art-style")
    if art_image is not None:
        analysis = row.get("art_style_analysis")
        art_style = ArtStyleReference(
            image=art_image,
            description=row.get("art_style_description"),
            structured_analysis=(
                StructuredArtStyleAnalysis.model_validate(analysis) if analysis else None
            ),
        )

    backgrounds = [bg for bg in (background_from_row(r) for r in background_rows) if bg is not None]
    return Story(
        id=row["id"],
        title=row.get("title") or "",
        novel_text=row.get("novel_text") or "",
        characters=[character_from_row(r) for r in character_rows],
        backgrounds=backgrounds,
        art_style=art_style,
        scenes=[scene_from_row(r) for r in scene_rows],
    )


# =============================================================================
# Storage usage
# =============================================================================

def base64_size(data: str) -> int:
    """Decoded byte size of base64 text (a data URL prefix is ignored)."""
    payload = data.split(",", 1)[1] if "," in data else data
    return (len(payload) * 3) // 4 - payload.count("=")


@dataclass
class StorageUsage:
    """Bytes used by reference images (scene images live in the local cache).

    Attributes:
        art_styles: Bytes of art style images
        characters: Bytes of character images
        backgrounds: Bytes of background images
        quota_mb: Quota the usage is measured against
    """
    art_styles: int = 0
    characters: int = 0
    backgrounds: int = 0
    quota_mb: float = DEFAULT_QUOTA_MB

    @property
    def breakdown(self) -> Dict[str, int]:
        return {
            "artStyles": self.art_styles,
            "characters": self.characters,
            "backgrounds": self.backgrounds,
        }

    @property
    def total_bytes(self) -> int:
        return self.art_styles + self.characters + self.backgrounds

    @property
    def total_mb(self) -> float:
        return round(self.total_bytes / (1024 * 1024), 2)

    @property
    def remaining_mb(self) -> float:
        return max(0.0, self.quota_mb - self.total_mb)

    @property
    def percentage(self) -> float:
        return min(100.0, round(self.total_mb / self.quota_mb * 100, 2))

    @property
    def is_over_quota(self) -> bool:
        return self.total_mb > self.quota_mb


def calculate_storage_usage(stories: List[Story], quota_mb: float = DEFAULT_QUOTA_MB) -> StorageUsage:
    usage = StorageUsage(quota_mb=quota_mb)
    for story in stories:
        if story.art_style is not None:
            usage.art_styles += base64_size(story.art_style.image.base64)
        for character in story.characters:
            if character.image is not None:
                usage.characters += base64_size(character.image.base64)
        for background in story.backgrounds:
            usage.backgrounds += base64_size(background.image.base64)
    return usage


# =============================================================================
# Store
# =============================================================================

class SupabaseStoryStore:
    """Reads and writes whole stories to Supabase."""

    def __init__(self, client: Client, user_id: Optional[str] = None):
        self.client = client
        self.user_id = user_id

    @classmethod
    def from_env(cls, user_id: Optional[str] = None) -> "SupabaseStoryStore":
        """
        Build a store from SUPABASE_URL and SUPABASE_KEY.

        Raises:
            ConfigurationError: If either variable is unset
        """
        return cls(create_client(get_supabase_url(), get_supabase_key()), user_id=user_id)

    def _children(self, table: str, story_id: str) -> List[Dict[str, Any]]:
        result = (
            self.client.table(table)
            .select("*")
            .eq("story_id", story_id)
            .order("order_index")
            .execute()
        )
        return result.data or []

    def load_stories(self) -> List[Story]:
        """
        Load every story (most recently updated first) with its children.

        Raises:
            StorageError: If any query fails
        """
        try:
            query = self.client.table(STORIES_TABLE).select("*")
            if self.user_id:
                query = query.eq("user_id", self.user_id)
            rows = query.order("updated_at", desc=True).execute().data or []

            stories = []
            for row in rows:
                stories.append(story_from_rows(
                    row,
                    self._children(SCENES_TABLE, row["id"]),
                    self._children(CHARACTERS_TABLE, row["id"]),
                    self._children(BACKGROUNDS_TABLE, row["id"]),
                ))
        except Exception as e:
            logger.error(f"Error loading stories from Supabase: {e}")
            raise StorageError(f"Failed to load stories: {e}") from e

        logger.info(f"Loaded {len(stories)} stories from Supabase")
        return stories

    def _sync_children(self, table: str, story_id: str, rows: List[Dict[str, Any]]) -> None:
        """Upsert ``rows`` then delete rows of this story that are no longer present."""
        if not rows:
            self.client.table(table).delete().eq("story_id", story_id).execute()
            return

        existing = self.client.table(table).select("id").eq("story_id", story_id).execute().data or []
        self.client.table(table).upsert(rows, on_conflict="id").execute()

        keep = {row["id"] for row in rows}
        stale = [row["id"] for row in existing if row["id"] not in keep]
        if stale:
            self.client.table(table).delete().in_("id", stale).execute()
            logger.debug(f"Deleted {len(stale)} stale rows from {table}")

    def save_story(self, story: Story) -> None:
        """
        Upsert a story and mirror its children.

        Raises:
            StorageError: If any write fails
        """
        try:
            self.client.table(STORIES_TABLE).upsert(
                story_to_row(story, self.user_id), on_conflict="id"
            ).execute()
            self._sync_children(
                SCENES_TABLE, story.id,
                [scene_to_row(s, story.id, i) for i, s in enumerate(story.scenes)],
            )
            self._sync_children(
                CHARACTERS_TABLE, story.id,
                [character_to_row(c, story.id, i) for i, c in enumerate(story.characters)],
            )
            self._sync_children(
                BACKGROUNDS_TABLE, story.id,
                [background_to_row(b, story.id, i) for i, b in enumerate(story.backgrounds)],
            )
        except Exception as e:
            logger.error(f"Error saving story {story.id} to Supabase: {e}")
            raise StorageError(f"Failed to save story {story.id}: {e}") from e

        logger.info(f"Story saved to Supabase: {story.id}")

    def delete_story(self, story_id: str) -> None:
        """Delete a story and all of its child rows."""
        try:
            for table in (SCENES_TABLE, CHARACTERS_TABLE, BACKGROUNDS_TABLE):
                self.client.table(table).delete().eq("story_id", story_id).execute()
            self.client.table(STORIES_TABLE).delete().eq("id", story_id).execute()
        except Exception as e:
            logger.error(f"Error deleting story {story_id} from Supabase: {e}")
            raise StorageError(f"Failed to delete story {story_id}: {e}") from e
        logger.info(f"Story deleted from Supabase: {story_id}")
