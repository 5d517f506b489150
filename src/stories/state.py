"""In-memory story state with whole-story replacement updates.

Every update reads the current story, builds a new frozen Story and swaps
it in. Listeners are told about each replacement (the repository uses this
to schedule remote saves).
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from exceptions import ValidationError
from models.story import Scene, Story

logger = logging.getLogger(__name__)

StoryPatch = Union[Dict[str, Any], Callable[[Story], Story]]
ScenePatch = Union[Dict[str, Any], Callable[[Scene], Scene]]
Listener = Callable[[Story], None]


def apply_patch(story: Story, patch: StoryPatch) -> Story:
    """
    Return a new story with ``patch`` applied.

    Args:
        story: Current story
        patch: Field updates (snake_case names) or a function returning the new story

    Raises:
        TypeError: If a patch function does not return a Story
    """
    if callable(patch):
        updated = patch(story)
        if not isinstance(updated, Story):
            raise TypeError(f"Story patch returned {type(updated).__name__}, expected Story")
        return updated
    return story.model_copy(update=patch)


def _patch_scene(scene: Scene, patch: ScenePatch) -> Scene:
    if callable(patch):
        return patch(scene)
    return scene.model_copy(update=patch)


class StoryState:
    """Stories keyed by id."""

    def __init__(self, stories: Optional[Iterable[Story]] = None):
        self._stories: Dict[str, Story] = {}
        self._listeners: List[Listener] = []
        for story in stories or []:
            self._stories[story.id] = story

    def __contains__(self, story_id: str) -> bool:
        return story_id in self._stories

    def __len__(self) -> int:
        return len(self._stories)

    def all(self) -> List[Story]:
        return list(self._stories.values())

    def get(self, story_id: str) -> Story:
        """
        Raises:
            ValidationError: If no story has this id
        """
        try:
            return self._stories[story_id]
        except KeyError:
            raise ValidationError(f"Unknown story: {story_id}") from None

    def get_scene(self, story_id: str, scene_id: str) -> Scene:
        scene = self.get(story_id).find_scene(scene_id)
        if scene is None:
            raise ValidationError(f"Unknown scene: {scene_id}")
        return scene

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self, story: Story) -> None:
        for listener in list(self._listeners):
            listener(story)

    def put(self, story: Story, notify: bool = True) -> Story:
        self._stories[story.id] = story
        if notify:
            self._notify(story)
        return story

    def remove(self, story_id: str) -> None:
        self._stories.pop(story_id, None)

    def update(self, story_id: str, patch: StoryPatch, notify: bool = True) -> Story:
        """Replace a story with the patched version."""
        updated = apply_patch(self.get(story_id), patch)
        if updated.id != story_id:
            raise ValidationError("A story patch cannot change the story id")
        return self.put(updated, notify=notify)

    def update_scene(self, story_id: str, scene_id: str, patch: ScenePatch, notify: bool = True) -> Story:
        """Replace one scene of a story, keeping the others untouched."""
        self.get_scene(story_id, scene_id)

        def replace(story: Story) -> Story:
            scenes = [_patch_scene(s, patch) if s.id == scene_id else s for s in story.scenes]
            return story.model_copy(update={"scenes": scenes})

        return self.update(story_id, replace, notify=notify)
