"""Tests for the scene illustration lifecycle.

Covers the two-step generate gate, failure recovery, batch generation,
editing and the scene status machine.
"""

import base64

import pytest
from unittest.mock import MagicMock

from gemini_fakes import PNG_DATA_URL, empty_image_response, image_response, make_client

NEW_IMAGE = b"new-image-bytes"
NEW_DATA_URL = "data:image/png;base64," + base64.b64encode(NEW_IMAGE).decode("ascii")


@pytest.fixture
def store():
    return MagicMock()


@pytest.fixture
def setup(tmp_path, sample_story, store):
    """Factory: (state, repository, orchestrator) around sample_story."""
    from illustration import IllustrationOrchestrator
    from stories import StoryState
    from storage import LocalSceneCache, StoryRepository

    def build(*responses, policy="keep"):
        state = StoryState([sample_story])
        repository = StoryRepository(state, LocalSceneCache(tmp_path / "cache"), store, debounce_seconds=60)
        client = make_client(*responses) if responses else make_client(image_response())
        orchestrator = IllustrationOrchestrator(state, repository, client=client, invalidation_policy=policy)
        return state, repository, orchestrator

    return build


def _with_image(state, story_id, scene_id, data_url=PNG_DATA_URL):
    from models.story import SceneStatus

    state.update_scene(story_id, scene_id, {
        "image_url": data_url,
        "custom_prompt": "Reviewed prompt",
        "status": SceneStatus.GENERATED,
    })


@pytest.mark.unit
class TestTransition:
    """Tests for the scene status machine."""

    @pytest.mark.parametrize("start,target", [
        ("no_prompt", "prompt_ready"),
        ("prompt_ready", "generating"),
        ("generating", "generated"),
        ("generating", "prompt_ready"),
        ("generated", "generating"),
        ("generated", "edit_generating"),
        ("edit_generating", "generated"),
        ("generated", "generated"),
    ])
    def test_allowed(self, start, target):
        from illustration import transition
        from models.story import Scene, SceneStatus

        assert transition(Scene(description="a", status=start), target) == SceneStatus(target)

    @pytest.mark.parametrize("start,target", [
        ("no_prompt", "generating"),
        ("no_prompt", "generated"),
        ("prompt_ready", "edit_generating"),
        ("generating", "generating"),
        ("edit_generating", "generating"),
    ])
    def test_rejected(self, start, target):
        from exceptions import InvalidTransitionError
        from illustration import transition
        from models.story import Scene

        with pytest.raises(InvalidTransitionError):
            transition(Scene(description="a", status=start), target)


@pytest.mark.unit
@pytest.mark.asyncio
class TestGenerate:
    """Tests for the two-step generate gate."""

    @pytest.mark.smoke
    async def test_first_call_composes_prompt_only(self, setup, sample_story, store):
        from models.story import SceneStatus

        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[0].id

        scene = await orchestrator.generate(sample_story.id, scene_id)

        assert scene.status == SceneStatus.PROMPT_READY
        assert "Mira finds the compass." in scene.custom_prompt
        assert scene.image_url is None
        orchestrator.client.models.generate_content.assert_not_called()
        # The reviewed prompt is persisted right away
        store.save_story.assert_called_once()
        assert store.save_story.call_args.args[0].find_scene(scene_id).custom_prompt == scene.custom_prompt

    async def test_second_call_generates_image(self, setup, sample_story):
        from config import ILLUSTRATION_MODEL
        from models.story import SceneStatus

        state, repository, orchestrator = setup(image_response(NEW_IMAGE))
        scene_id = sample_story.scenes[0].id

        await orchestrator.generate(sample_story.id, scene_id)
        scene = await orchestrator.generate(sample_story.id, scene_id)

        assert scene.status == SceneStatus.GENERATED
        assert scene.image_url == NEW_DATA_URL
        assert scene.custom_prompt.strip() in scene.generated_prompt
        assert repository.cache.get(sample_story.id, scene_id) == NEW_DATA_URL
        assert orchestrator.client.models.generate_content.call_args.kwargs["model"] == ILLUSTRATION_MODEL

    async def test_only_relevant_references_attached(self, setup, sample_story):
        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[0].id

        await orchestrator.generate(sample_story.id, scene_id)
        await orchestrator.generate(sample_story.id, scene_id)

        contents = orchestrator.client.models.generate_content.call_args.kwargs["contents"]
        texts = "\n".join(p.text for p in contents.parts if p.text)
        images = [p for p in contents.parts if p.inline_data is not None]
        # Scene 1 is Mira in a forest clearing: the forest plate and Mira
        assert len(images) == 2
        assert '"Mira"' in texts
        assert '"Tomas"' not in texts

    async def test_edited_prompt_is_sent_verbatim(self, setup, sample_story):
        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[2].id

        orchestrator.update_custom_prompt(sample_story.id, scene_id, "A lighthouse in a storm, oil painting.")
        scene = await orchestrator.generate(sample_story.id, scene_id)

        assert "A lighthouse in a storm, oil painting." in scene.generated_prompt

    async def test_failure_reverts_to_prompt_ready(self, setup, sample_story):
        from exceptions import IllustrationError
        from models.story import SceneStatus

        state, repository, orchestrator = setup(empty_image_response())
        scene_id = sample_story.scenes[0].id
        await orchestrator.generate(sample_story.id, scene_id)

        with pytest.raises(IllustrationError, match="Failed to generate the illustration"):
            await orchestrator.generate(sample_story.id, scene_id)

        scene = state.get_scene(sample_story.id, scene_id)
        assert scene.status == SceneStatus.PROMPT_READY
        assert scene.custom_prompt
        assert scene.image_url is None
        assert repository.cache.get(sample_story.id, scene_id) is None

    async def test_failed_regenerate_keeps_old_image(self, setup, sample_story):
        from exceptions import IllustrationError
        from models.story import SceneStatus

        state, repository, orchestrator = setup()
        orchestrator.client.models.generate_content.side_effect = RuntimeError("503")
        scene_id = sample_story.scenes[1].id
        _with_image(state, sample_story.id, scene_id)

        with pytest.raises(IllustrationError):
            await orchestrator.generate(sample_story.id, scene_id)

        scene = state.get_scene(sample_story.id, scene_id)
        assert scene.status == SceneStatus.GENERATED
        assert scene.image_url == PNG_DATA_URL

    async def test_already_generating_rejected(self, setup, sample_story):
        from exceptions import ValidationError
        from models.story import SceneStatus

        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[0].id
        state.update_scene(sample_story.id, scene_id, {"status": SceneStatus.GENERATING})

        with pytest.raises(ValidationError, match="already generating"):
            await orchestrator.generate(sample_story.id, scene_id)

    async def test_generating_status_not_persisted(self, setup, sample_story, store):
        from exceptions import IllustrationError

        state, repository, orchestrator = setup(empty_image_response())
        scene_id = sample_story.scenes[0].id
        await orchestrator.generate(sample_story.id, scene_id)
        store.reset_mock()

        with pytest.raises(IllustrationError):
            await orchestrator.generate(sample_story.id, scene_id)

        assert repository.pending_story_ids == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestGenerateAll:
    """Tests for batch generation."""

    async def test_continues_past_failures(self, setup, sample_story):
        state, repository, orchestrator = setup(
            image_response(), RuntimeError("rate limited"), image_response()
        )
        progress = []

        result = await orchestrator.generate_all(sample_story.id, on_progress=lambda i, n: progress.append((i, n)))

        first, second, third = sample_story.scenes
        assert result.total == 3
        assert result.completed == [first.id, third.id]
        assert list(result.failed) == [second.id]
        assert result.succeeded == 2
        assert progress == [(1, 3), (2, 3), (3, 3)]
        assert state.get_scene(sample_story.id, second.id).image_url is None

    async def test_skips_scenes_with_images(self, setup, sample_story):
        state, repository, orchestrator = setup()
        _with_image(state, sample_story.id, sample_story.scenes[0].id)

        result = await orchestrator.generate_all(sample_story.id)

        assert result.total == 2
        assert orchestrator.client.models.generate_content.call_count == 2


@pytest.mark.unit
@pytest.mark.asyncio
class TestEdit:
    """Tests for illustration editing."""

    async def test_edit_replaces_image(self, setup, sample_story):
        from models.story import SceneStatus

        state, repository, orchestrator = setup(image_response(NEW_IMAGE))
        scene_id = sample_story.scenes[0].id
        _with_image(state, sample_story.id, scene_id)

        scene = await orchestrator.edit(sample_story.id, scene_id, "Make it night")

        assert scene.image_url == NEW_DATA_URL
        assert scene.status == SceneStatus.GENERATED
        assert scene.custom_prompt == "Reviewed prompt"
        contents = orchestrator.client.models.generate_content.call_args.kwargs["contents"]
        assert contents.parts[0].inline_data is not None
        assert "Instruction: Make it night" in contents.parts[1].text

    async def test_failed_edit_keeps_image(self, setup, sample_story):
        from exceptions import IllustrationError
        from models.story import SceneStatus

        state, repository, orchestrator = setup(empty_image_response())
        scene_id = sample_story.scenes[0].id
        _with_image(state, sample_story.id, scene_id)

        with pytest.raises(IllustrationError, match="Failed to edit the illustration."):
            await orchestrator.edit(sample_story.id, scene_id, "Make it night")

        scene = state.get_scene(sample_story.id, scene_id)
        assert scene.status == SceneStatus.GENERATED
        assert scene.image_url == PNG_DATA_URL

    async def test_edit_requires_image(self, setup, sample_story):
        from exceptions import ValidationError

        state, repository, orchestrator = setup()

        with pytest.raises(ValidationError, match="no image"):
            await orchestrator.edit(sample_story.id, sample_story.scenes[0].id, "Make it night")

    async def test_edit_requires_instruction(self, setup, sample_story):
        from exceptions import ValidationError

        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[0].id
        _with_image(state, sample_story.id, scene_id)

        with pytest.raises(ValidationError, match="instruction is required"):
            await orchestrator.edit(sample_story.id, scene_id, "   ")
        orchestrator.client.models.generate_content.assert_not_called()

    async def test_edit_rejects_malformed_image(self, setup, sample_story):
        from exceptions import DataIntegrityError
        from models.story import SceneStatus

        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[0].id
        _with_image(state, sample_story.id, scene_id, data_url="https://example.com/image.png")

        with pytest.raises(DataIntegrityError):
            await orchestrator.edit(sample_story.id, scene_id, "Make it night")

        assert state.get_scene(sample_story.id, scene_id).status == SceneStatus.GENERATED


@pytest.mark.unit
class TestSceneEdits:
    """Tests for prompt, description, framing and deletion edits."""

    def test_update_custom_prompt(self, setup, sample_story):
        from models.story import SceneStatus

        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[1].id

        assert orchestrator.update_custom_prompt(sample_story.id, scene_id, "Draw").status == SceneStatus.PROMPT_READY
        assert orchestrator.update_custom_prompt(sample_story.id, scene_id, "  ").status == SceneStatus.NO_PROMPT

    def test_clearing_prompt_keeps_generated_status(self, setup, sample_story):
        from models.story import SceneStatus

        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[1].id
        _with_image(state, sample_story.id, scene_id)

        scene = orchestrator.update_custom_prompt(sample_story.id, scene_id, None)

        assert scene.status == SceneStatus.GENERATED
        assert scene.custom_prompt is None

    def test_description_change_keeps_prompt_by_default(self, setup, sample_story):
        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[1].id
        orchestrator.update_custom_prompt(sample_story.id, scene_id, "Draw Tomas.")

        scene = orchestrator.update_scene_description(sample_story.id, scene_id, "Tomas sleeps.")

        assert scene.description == "Tomas sleeps."
        assert scene.custom_prompt == "Draw Tomas."

    def test_description_change_can_invalidate_prompt(self, setup, sample_story):
        from models.story import SceneStatus

        state, repository, orchestrator = setup(policy="invalidate")
        scene_id = sample_story.scenes[1].id
        orchestrator.update_custom_prompt(sample_story.id, scene_id, "Draw Tomas.")

        scene = orchestrator.update_scene_description(sample_story.id, scene_id, "Tomas sleeps.")

        assert scene.custom_prompt is None
        assert scene.status == SceneStatus.NO_PROMPT

    def test_empty_description_rejected(self, setup, sample_story):
        from exceptions import ValidationError

        state, repository, orchestrator = setup()

        with pytest.raises(ValidationError):
            orchestrator.update_scene_description(sample_story.id, sample_story.scenes[0].id, " ")

    def test_shot_type_and_aspect_ratio(self, setup, sample_story):
        from models.story import AspectRatio, ShotType

        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[0].id

        orchestrator.set_shot_type(sample_story.id, scene_id, "wide_shot")
        scene = orchestrator.set_aspect_ratio(sample_story.id, scene_id, "9:16")

        assert scene.shot_type == ShotType.WIDE_SHOT
        assert scene.aspect_ratio == AspectRatio.PORTRAIT

    def test_invalid_shot_type_rejected(self, setup, sample_story):
        from exceptions import ValidationError

        state, repository, orchestrator = setup()

        with pytest.raises(ValidationError, match="Unknown shot type"):
            orchestrator.set_shot_type(sample_story.id, sample_story.scenes[0].id, "dutch_angle")

    def test_delete_scene_drops_cached_image(self, setup, sample_story):
        state, repository, orchestrator = setup()
        scene_id = sample_story.scenes[0].id
        repository.put_scene_image(sample_story.id, scene_id, PNG_DATA_URL)

        orchestrator.delete_scene(sample_story.id, scene_id)

        assert state.get(sample_story.id).find_scene(scene_id) is None
        assert repository.cache.get(sample_story.id, scene_id) is None
