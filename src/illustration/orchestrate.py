"""Scene illustration lifecycle: prompt, generate, regenerate, edit.

Scene states:

    NO_PROMPT -> PROMPT_READY -> GENERATING -> GENERATED
    GENERATED -> GENERATING -> GENERATED          (regenerate)
    GENERATED -> EDIT_GENERATING -> GENERATED     (edit)

generate() is a two-step gate. The first call composes and persists the
prompt so it can be reviewed; the next call sends the image request. A
failed request returns the scene to where it was (PROMPT_READY, or GENERATED
if an older image exists) and keeps the prompt.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from google import genai

from config import ILLUSTRATION_MODEL
from exceptions import IllustrationError, IllustratorError, InvalidTransitionError, ValidationError
from models.scene_description import StructuredSceneDescription
from models.story import AspectRatio, ImageFile, Scene, SceneStatus, ShotType
from stories.state import StoryState
from storage.repository import StoryRepository
from util.gemini import generate_image_async, get_client
from .build_request import build_edit_request, build_generation_request
from .compose_prompt import compose_prompt
from .reference_filter import select_relevant_backgrounds, select_relevant_characters

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

RESTING_STATES = frozenset({SceneStatus.NO_PROMPT, SceneStatus.PROMPT_READY, SceneStatus.GENERATED})

ALLOWED_TRANSITIONS: Dict[SceneStatus, frozenset] = {
    SceneStatus.NO_PROMPT: frozenset({SceneStatus.PROMPT_READY}),
    SceneStatus.PROMPT_READY: frozenset({SceneStatus.NO_PROMPT, SceneStatus.GENERATING}),
    SceneStatus.GENERATING: frozenset({SceneStatus.GENERATED, SceneStatus.PROMPT_READY}),
    SceneStatus.GENERATED: frozenset({SceneStatus.GENERATING, SceneStatus.EDIT_GENERATING}),
    SceneStatus.EDIT_GENERATING: frozenset({SceneStatus.GENERATED}),
}


class PromptInvalidationPolicy(str, Enum):
    """What happens to a reviewed prompt when the scene description changes."""

    KEEP = "keep"
    INVALIDATE = "invalidate"


def transition(scene: Scene, target: SceneStatus) -> SceneStatus:
    """
    Validate a status change and return the target.

    Staying in a resting state is always allowed.

    Raises:
        InvalidTransitionError: If the move is not part of the lifecycle
    """
    target = SceneStatus(target)
    if target == scene.status and target in RESTING_STATES:
        return target
    if target not in ALLOWED_TRANSITIONS[scene.status]:
        raise InvalidTransitionError(
            f"Scene {scene.id} cannot move from {scene.status.value} to {target.value}"
        )
    return target


@dataclass
class BatchResult:
    """Outcome of generate_all.

    Attributes:
        total: Scenes attempted
        completed: Scene ids that now have an image
        failed: Scene id -> error message
    """
    total: int = 0
    completed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        return len(self.completed)


class IllustrationOrchestrator:
    """Drives scenes through prompt composition, generation and editing."""

    def __init__(
        self,
        state: StoryState,
        repository: StoryRepository,
        client: Optional[genai.Client] = None,
        invalidation_policy: PromptInvalidationPolicy = PromptInvalidationPolicy.KEEP,
        model: str = ILLUSTRATION_MODEL,
    ):
        self.state = state
        self.repository = repository
        self._client = client
        self.invalidation_policy = PromptInvalidationPolicy(invalidation_policy)
        self.model = model

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = get_client()
        return self._client

    def _relevant_references(self, story_id: str, scene: Scene):
        story = self.state.get(story_id)
        characters = select_relevant_characters(scene, story.characters, story.previous_scene(scene.id))
        backgrounds = select_relevant_backgrounds(scene, story.backgrounds)
        return story, characters, backgrounds

    def _require_idle(self, scene: Scene) -> None:
        if scene.is_generating:
            raise ValidationError(f"Scene {scene.id} is already generating")

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def generate(self, story_id: str, scene_id: str) -> Scene:
        """
        Advance a scene one step.

        Without a prompt: compose it, persist it and stop (no image call).
        With a prompt: generate the illustration.

        Raises:
            ValidationError: If the scene is already generating
            IllustrationError: If the image request fails
        """
        scene = self.state.get_scene(story_id, scene_id)
        self._require_idle(scene)
        if not scene.has_prompt:
            return await self._compose_and_persist(story_id, scene)
        return await self._illustrate(story_id, scene)

    async def _compose_and_persist(self, story_id: str, scene: Scene) -> Scene:
        story, characters, backgrounds = self._relevant_references(story_id, scene)
        art_style = story.art_style
        prompt = compose_prompt(
            scene,
            characters,
            backgrounds,
            art_style.description if art_style else None,
            scene.shot_type,
            art_style_analysis=art_style.structured_analysis if art_style else None,
        )

        status = transition(scene, scene.model_copy(update={"custom_prompt": prompt}).resting_status())
        self.state.update_scene(story_id, scene.id, {"custom_prompt": prompt, "status": status})
        await self.repository.save_now(story_id)

        logger.info(
            f"Composed prompt for scene {scene.id} "
            f"({len(characters)} characters, {len(backgrounds)} backgrounds)"
        )
        logger.debug(f"Prompt for scene {scene.id}:\n{prompt}")
        return self.state.get_scene(story_id, scene.id)

    async def _illustrate(self, story_id: str, scene: Scene) -> Scene:
        resting = scene.status
        client = self.client
        self.state.update_scene(
            story_id, scene.id, {"status": transition(scene, SceneStatus.GENERATING)}, notify=False
        )

        succeeded = False
        try:
            story, characters, backgrounds = self._relevant_references(story_id, scene)
            request = build_generation_request(
                scene.custom_prompt,
                characters,
                backgrounds,
                story.art_style,
                scene.shot_type,
                scene.aspect_ratio,
            )
            logger.info(f"Generating illustration for scene {scene.id} ({len(request.parts)} parts)")
            logger.debug(f"Full text prompt for scene {scene.id}:\n{request.prompt_text}")

            data_url = await generate_image_async(client, self.model, request.parts, request.config)

            # Scene may have been deleted while the request ran
            self.state.get_scene(story_id, scene.id)
            self.repository.put_scene_image(story_id, scene.id, data_url)
            self.state.update_scene(story_id, scene.id, {
                "image_url": data_url,
                "generated_prompt": request.prompt_text,
                "status": SceneStatus.GENERATED,
            })
            succeeded = True
        except Exception as e:
            logger.error(f"Error generating illustration for scene {scene.id}: {e}")
            raise IllustrationError("Failed to generate the illustration for the scene.") from e
        finally:
            if not succeeded:
                self._revert(story_id, scene.id, resting)

        logger.info(f"Illustration generated for scene {scene.id}")
        return self.state.get_scene(story_id, scene.id)

    def _revert(self, story_id: str, scene_id: str, status: SceneStatus) -> None:
        if self.state.get(story_id).find_scene(scene_id) is None:
            return
        self.state.update_scene(story_id, scene_id, {"status": status}, notify=False)

    async def generate_all(
        self,
        story_id: str,
        on_progress: Optional[ProgressCallback] = None
    ) -> BatchResult:
        """
        Illustrate every scene that has no image, one at a time.

        Each scene runs both steps (prompt, then image). A failing scene is
        logged and recorded; the sweep continues.

        Args:
            story_id: Story to process
            on_progress: Called with (current, total) after each scene
        """
        story = self.state.get(story_id)
        targets = [s.id for s in story.scenes if not s.image_url and not s.is_generating]
        result = BatchResult(total=len(targets))
        logger.info(f"Generating illustrations for {len(targets)} scenes of story {story_id}")

        for index, scene_id in enumerate(targets, 1):
            try:
                scene = self.state.get_scene(story_id, scene_id)
                if not scene.has_prompt:
                    await self.generate(story_id, scene_id)
                await self.generate(story_id, scene_id)
                result.completed.append(scene_id)
            except IllustratorError as e:
                logger.error(f"Scene {scene_id} failed during batch generation: {e}")
                result.failed[scene_id] = str(e)
            if on_progress is not None:
                on_progress(index, len(targets))

        logger.info(f"Batch complete: {result.succeeded}/{result.total} scenes illustrated")
        return result

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    async def edit(self, story_id: str, scene_id: str, instruction: str) -> Scene:
        """
        Apply a free-text edit to a scene's illustration.

        Raises:
            ValidationError: If the scene has no image, is generating, or the instruction is empty
            DataIntegrityError: If the stored image is not a valid data URL
            IllustrationError: If the edit request fails
        """
        scene = self.state.get_scene(story_id, scene_id)
        self._require_idle(scene)
        if not scene.image_url:
            raise ValidationError("Scene has no image to edit")
        if not instruction or not instruction.strip():
            raise ValidationError("Edit instruction is required")

        image = ImageFile.from_data_url(scene.image_url)
        client = self.client
        self.state.update_scene(
            story_id, scene_id, {"status": transition(scene, SceneStatus.EDIT_GENERATING)}, notify=False
        )

        succeeded = False
        try:
            request = build_edit_request(image, instruction)
            logger.info(f"Editing illustration for scene {scene_id}")
            data_url = await generate_image_async(client, self.model, request.parts, request.config)

            self.state.get_scene(story_id, scene_id)
            self.repository.put_scene_image(story_id, scene_id, data_url)
            self.state.update_scene(story_id, scene_id, {
                "image_url": data_url,
                "status": SceneStatus.GENERATED,
            })
            succeeded = True
        except Exception as e:
            logger.error(f"Error editing illustration for scene {scene_id}: {e}")
            raise IllustrationError("Failed to edit the illustration.") from e
        finally:
            if not succeeded:
                self._revert(story_id, scene_id, SceneStatus.GENERATED)

        return self.state.get_scene(story_id, scene_id)

    # -------------------------------------------------------------------------
    # Scene edits
    # -------------------------------------------------------------------------

    def update_custom_prompt(self, story_id: str, scene_id: str, prompt: Optional[str]) -> Scene:
        """Replace the reviewed prompt; an empty prompt clears it."""
        scene = self.state.get_scene(story_id, scene_id)
        self._require_idle(scene)
        prompt = prompt if prompt and prompt.strip() else None
        status = transition(scene, scene.model_copy(update={"custom_prompt": prompt}).resting_status())
        self.state.update_scene(story_id, scene_id, {"custom_prompt": prompt, "status": status})
        return self.state.get_scene(story_id, scene_id)

    def update_scene_description(
        self,
        story_id: str,
        scene_id: str,
        description: str,
        structured_description: Optional[StructuredSceneDescription] = None,
    ) -> Scene:
        """
        Change what a scene depicts.

        The reviewed prompt is kept unless the invalidation policy is INVALIDATE.
        """
        scene = self.state.get_scene(story_id, scene_id)
        self._require_idle(scene)
        if not description or not description.strip():
            raise ValidationError("Scene description cannot be empty")

        update = {"description": description.strip()}
        if structured_description is not None:
            update["structured_description"] = structured_description
        if self.invalidation_policy == PromptInvalidationPolicy.INVALIDATE and scene.has_prompt:
            update["custom_prompt"] = None
            update["status"] = transition(
                scene, scene.model_copy(update={"custom_prompt": None}).resting_status()
            )
            logger.info(f"Scene {scene_id} description changed; prompt invalidated")

        self.state.update_scene(story_id, scene_id, update)
        return self.state.get_scene(story_id, scene_id)

    def set_shot_type(self, story_id: str, scene_id: str, shot_type: Union[ShotType, str]) -> Scene:
        try:
            shot = ShotType(shot_type)
        except ValueError:
            raise ValidationError(f"Unknown shot type: {shot_type}") from None
        self.state.update_scene(story_id, scene_id, {"shot_type": shot})
        return self.state.get_scene(story_id, scene_id)

    def set_aspect_ratio(self, story_id: str, scene_id: str, aspect_ratio: Union[AspectRatio, str]) -> Scene:
        try:
            ratio = AspectRatio(aspect_ratio)
        except ValueError:
            raise ValidationError(f"Unknown aspect ratio: {aspect_ratio}") from None
        self.state.update_scene(story_id, scene_id, {"aspect_ratio": ratio})
        return self.state.get_scene(story_id, scene_id)

    def delete_scene(self, story_id: str, scene_id: str) -> None:
        """Remove a scene and its cached image."""
        self.state.get_scene(story_id, scene_id)
        story = self.state.get(story_id)
        self.state.update(story_id, {"scenes": [s for s in story.scenes if s.id != scene_id]})
        self.repository.delete_scene_image(story_id, scene_id)
        logger.info(f"Deleted scene {scene_id} from story {story_id}")
