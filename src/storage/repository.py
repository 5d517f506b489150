"""Two-tier story repository: local scene-image cache plus remote Supabase mirror.

Merge policy on load:
    - The remote store is the source of truth for story metadata.
    - The local cache is the source of truth for scene image bytes.
    - A scene whose image is cached is hydrated and marked GENERATED.

Writes: scene images go to the local cache synchronously, before the story
state changes. The remote mirror is saved after a quiet period
(debounced per story); flush() forces pending saves.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Set

from models.story import Story
from stories.state import StoryState
from .local_cache import LocalSceneCache
from .remote_store import SupabaseStoryStore, StorageUsage, calculate_storage_usage, DEFAULT_QUOTA_MB

logger = logging.getLogger(__name__)


class StoryRepository:
    """Loads, caches and mirrors stories."""

    def __init__(
        self,
        state: StoryState,
        cache: LocalSceneCache,
        store: Optional[SupabaseStoryStore] = None,
        debounce_seconds: float = 2.0,
    ):
        """
        Args:
            state: In-memory story state; every replacement schedules a remote save
            cache: Local scene image cache
            store: Remote store (None keeps everything local)
            debounce_seconds: Quiet period before a story is mirrored remotely
        """
        self.state = state
        self.cache = cache
        self.store = store
        self.debounce_seconds = debounce_seconds
        self._pending: Dict[str, asyncio.Task] = {}
        self._dirty: Set[str] = set()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._unsubscribe = state.subscribe(self.schedule_save)

    def close(self) -> None:
        """Stop listening to state changes. Pending saves are left to flush()."""
        self._unsubscribe()

    # -------------------------------------------------------------------------
    # Load / merge
    # -------------------------------------------------------------------------

    def hydrate(self, story: Story) -> Story:
        """Attach cached scene images and settle scene statuses."""
        images = self.cache.get_story_images(story.id)
        scenes = []
        for scene in story.scenes:
            image_url = images.get(scene.id)
            scenes.append(scene.model_copy(update={
                "image_url": image_url,
                "status": scene.resting_status(image_url is not None),
            }))
        return story.model_copy(update={"scenes": scenes})

    async def load(self) -> List[Story]:
        """
        Session-start sync: pull remote stories and merge cached images into them.

        Raises:
            StorageError: If the remote store cannot be read
        """
        if self.store is None:
            logger.info("No remote store configured; starting with local state only")
            self.cache.migrate_flat_layout([s.id for s in self.state.all()])
            return self.state.all()

        remote = await asyncio.to_thread(self.store.load_stories)
        self.cache.migrate_flat_layout([s.id for s in remote])
        stories = [self.hydrate(story) for story in remote]
        for story in stories:
            self.state.put(story, notify=False)

        hydrated = sum(1 for s in stories for scene in s.scenes if scene.image_url)
        logger.info(f"Loaded {len(stories)} stories ({hydrated} cached scene images)")
        return stories

    # -------------------------------------------------------------------------
    # Scene images (local tier)
    # -------------------------------------------------------------------------

    def put_scene_image(self, story_id: str, scene_id: str, data_url: str) -> None:
        self.cache.put(story_id, scene_id, data_url)

    def delete_scene_image(self, story_id: str, scene_id: str) -> None:
        self.cache.delete(story_id, scene_id)

    # -------------------------------------------------------------------------
    # Remote mirror
    # -------------------------------------------------------------------------

    @property
    def pending_story_ids(self) -> List[str]:
        return [sid for sid, task in self._pending.items() if not task.done()]

    def _cancel_pending(self, story_id: str) -> bool:
        task = self._pending.pop(story_id, None)
        if task is not None and not task.done():
            task.cancel()
            return True
        return False

    def schedule_save(self, story: Story) -> None:
        """Restart the debounce timer for a story."""
        if self.store is None:
            return
        self._cancel_pending(story.id)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside the event loop; picked up by the next flush()
            self._dirty.add(story.id)
            return
        self._pending[story.id] = loop.create_task(self._debounced_save(story.id))

    async def _write(self, story_id: str) -> None:
        """Save the current snapshot. Writes for one story never overlap."""
        lock = self._locks.setdefault(story_id, asyncio.Lock())
        async with lock:
            # Snapshot is read under the lock
            if story_id not in self.state:
                return
            await asyncio.to_thread(self.store.save_story, self.state.get(story_id))

    async def _debounced_save(self, story_id: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        self._pending.pop(story_id, None)
        try:
            await self._write(story_id)
        except Exception as e:
            # Remote mirror is best-effort; the local state stays authoritative
            logger.error(f"Debounced save failed for story {story_id}: {e}")

    async def save_now(self, story_id: str) -> None:
        """
        Save a story to the remote store immediately.

        Waits for a save of the same story that is already running, then
        writes the current state.

        Raises:
            StorageError: If the write fails
        """
        self._cancel_pending(story_id)
        self._dirty.discard(story_id)
        if self.store is None:
            return
        await self._write(story_id)

    async def flush(self) -> None:
        """Force every pending debounced save to run now."""
        due = set(self._dirty)
        self._dirty.clear()
        for story_id in list(self._pending):
            if self._cancel_pending(story_id):
                due.add(story_id)
        for story_id in due:
            await self._write(story_id)

    async def delete_story(self, story_id: str) -> None:
        """Remove a story from state, the local cache and the remote store."""
        self._cancel_pending(story_id)
        self._dirty.discard(story_id)
        self.state.remove(story_id)
        self.cache.delete_story(story_id)
        if self.store is not None:
            async with self._locks.setdefault(story_id, asyncio.Lock()):
                await asyncio.to_thread(self.store.delete_story, story_id)
        self._locks.pop(story_id, None)

    def storage_usage(self, quota_mb: float = DEFAULT_QUOTA_MB) -> StorageUsage:
        """Reference image usage of the loaded stories against a quota."""
        return calculate_storage_usage(self.state.all(), quota_mb=quota_mb)
