"""On-disk cache of scene images.

Scene images never go to the remote store; this cache is their only home.
Each image is a data URL in its own file:

    <root>/<story_id>/scene_image_<story_id>_<scene_id>.dataurl

Older installs wrote every file directly under <root>; see migrate_flat_layout().
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Dict, Iterable, Optional

from exceptions import StorageError

logger = logging.getLogger(__name__)

KEY_PREFIX = "scene_image_"
SUFFIX = ".dataurl"


def cache_key(story_id: str, scene_id: str) -> str:
    return f"{KEY_PREFIX}{story_id}_{scene_id}"


def parse_cache_key(key: str, story_ids: Iterable[str] = ()) -> Optional[tuple]:
    """
    Split a key into (story_id, scene_id).

    Ids may themselves contain underscores, so the longest known story id
    that prefixes the key wins. Without a known match the key is split at
    the last underscore, which is exact for uuid4 scene ids.
    """
    if not key.startswith(KEY_PREFIX):
        return None
    body = key[len(KEY_PREFIX):]
    for story_id in sorted(story_ids, key=len, reverse=True):
        if story_id and body.startswith(f"{story_id}_") and len(body) > len(story_id) + 1:
            return story_id, body[len(story_id) + 1:]
    story_id, sep, scene_id = body.rpartition("_")
    if not sep or not story_id or not scene_id:
        return None
    return story_id, scene_id


class LocalSceneCache:
    """Keyed blob cache for scene images."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _story_dir(self, story_id: str) -> Path:
        return self.root / story_id

    def _path(self, story_id: str, scene_id: str) -> Path:
        return self._story_dir(story_id) / f"{cache_key(story_id, scene_id)}{SUFFIX}"

    def get(self, story_id: str, scene_id: str) -> Optional[str]:
        """Cached data URL for a scene, or None."""
        path = self._path(story_id, scene_id)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read cached image {path.name}: {e}") from e

    def put(self, story_id: str, scene_id: str, data_url: str) -> None:
        """Write a scene image. The file is replaced atomically."""
        path = self._path(story_id, scene_id)
        tmp_path = path.with_suffix(SUFFIX + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(data_url, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to cache image for scene {scene_id}: {e}") from e
        logger.debug(f"Cached image {path.name} ({len(data_url)} chars)")

    def delete(self, story_id: str, scene_id: str) -> None:
        path = self._path(story_id, scene_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete cached image {path.name}: {e}") from e

    def delete_story(self, story_id: str) -> None:
        """Drop every cached image of a story."""
        story_dir = self._story_dir(story_id)
        if not story_dir.exists():
            return
        try:
            shutil.rmtree(story_dir)
        except OSError as e:
            raise StorageError(f"Failed to delete cached images for story {story_id}: {e}") from e
        logger.info(f"Deleted cached images for story {story_id}")

    def get_story_images(self, story_id: str) -> Dict[str, str]:
        """All cached images of a story, keyed by scene id."""
        story_dir = self._story_dir(story_id)
        images: Dict[str, str] = {}
        if not story_dir.exists():
            return images
        prefix = cache_key(story_id, "")
        for path in story_dir.glob(f"{prefix}*{SUFFIX}"):
            scene_id = path.name[len(prefix): -len(SUFFIX)]
            if scene_id:
                images[scene_id] = path.read_text(encoding="utf-8")
        return images

    def storage_size(self) -> int:
        """Total bytes used by cached images."""
        if not self.root.exists():
            return 0
        return sum(p.stat().st_size for p in self.root.rglob(f"*{SUFFIX}") if p.is_file())

    def migrate_flat_layout(self, story_ids: Iterable[str] = ()) -> int:
        """
        Move files written directly under the root into per-story directories.

        Args:
            story_ids: Known story ids, used to split keys unambiguously

        Returns:
            Number of files moved
        """
        if not self.root.exists():
            return 0

        story_ids = list(story_ids)
        moved = 0
        for path in self.root.glob(f"{KEY_PREFIX}*{SUFFIX}"):
            if not path.is_file():
                continue
            parsed = parse_cache_key(path.name[: -len(SUFFIX)], story_ids)
            if parsed is None:
                logger.warning(f"Skipping unrecognized cache file: {path.name}")
                continue
            story_id, scene_id = parsed
            target = self._path(story_id, scene_id)
            if target.exists():
                # The per-story copy is newer
                path.unlink()
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            os.replace(path, target)
            moved += 1

        if moved:
            logger.info(f"Migrated {moved} cached images to per-story layout")
        return moved
