"""Tests for prompt, illustration, edit and reference endpoints."""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from gemini_fakes import PNG_BASE64, PNG_DATA_URL


@pytest.fixture
def scene_payload(image_payload):
    """A scene about Mira in the forest, with one unrelated character."""
    return {
        "sceneDescription": "Mira kneels in the forest and lifts the compass.",
        "characters": [
            {"name": "Mira", "image": image_payload, "description": "Silver hair."},
            {"name": "Tomas", "image": image_payload},
        ],
        "backgrounds": [{"name": "forest", "image": image_payload}],
        "artStyleDescription": "Loose watercolor.",
    }


@pytest.fixture
def render():
    """Patch the Gemini client and image call used by the router."""
    with patch("app.routers.illustrations.get_client", return_value=MagicMock()), \
            patch("app.routers.illustrations.generate_image_async", new_callable=AsyncMock,
                  return_value=PNG_DATA_URL) as generate:
        yield generate


@pytest.mark.unit
class TestGeneratePrompt:
    """Test POST /api/generate-prompt."""

    def test_prompt_covers_relevant_references_only(self, client, scene_payload):
        response = client.post("/api/generate-prompt", json=scene_payload)

        assert response.status_code == 200
        prompt = response.json()["prompt"]
        assert "Mira kneels in the forest" in prompt
        assert "Mira" in prompt
        assert "Tomas" not in prompt

    def test_empty_scene_is_400(self, client):
        response = client.post("/api/generate-prompt", json={"sceneDescription": "  "})

        assert response.status_code == 400
        assert response.json() == {"detail": "Scene description is required"}

    def test_unknown_shot_type_is_422(self, client, scene_payload):
        scene_payload["shotType"] = "dutch_angle"

        response = client.post("/api/generate-prompt", json=scene_payload)

        assert response.status_code == 422


@pytest.mark.unit
class TestGenerateIllustration:
    """Test POST /api/generate-illustration."""

    @pytest.mark.smoke
    def test_generates_with_reference_images(self, client, scene_payload, render):
        scene_payload["prompt"] = "Reviewed: Mira at dusk with the compass."

        response = client.post("/api/generate-illustration", json=scene_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["image"] == PNG_DATA_URL
        assert "Reviewed: Mira at dusk with the compass." in data["prompt"]
        _client, _model, parts, _config = render.await_args.args
        # forest plate + Mira; Tomas is not in the scene
        assert len([p for p in parts if p.inline_data is not None]) == 2

    def test_aspect_ratio_in_config(self, client, scene_payload, render):
        scene_payload["aspectRatio"] = "16:9"

        client.post("/api/generate-illustration", json=scene_payload)

        config = render.await_args.args[3]
        assert config.image_config.aspect_ratio == "16:9"
        assert config.response_modalities == ["IMAGE"]

    def test_art_style_image_attached(self, client, scene_payload, image_payload, render):
        scene_payload["artStyle"] = image_payload

        response = client.post("/api/generate-illustration", json=scene_payload)

        parts = render.await_args.args[2]
        assert len([p for p in parts if p.inline_data is not None]) == 3
        assert "Loose watercolor." in response.json()["prompt"]

    def test_model_failure_is_500(self, client, scene_payload, render):
        render.side_effect = RuntimeError("quota exceeded")

        response = client.post("/api/generate-illustration", json=scene_payload)

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to generate the illustration for the scene."}


@pytest.mark.unit
class TestEditIllustration:
    """Test POST /api/edit-illustration."""

    def test_edit(self, client, image_payload, render):
        response = client.post(
            "/api/edit-illustration",
            json={"originalImage": image_payload, "editPrompt": "Make it night"},
        )

        assert response.json() == {"image": PNG_DATA_URL}
        parts = render.await_args.args[2]
        assert parts[0].inline_data is not None
        assert "Instruction: Make it night" in parts[1].text

    def test_missing_image_is_400(self, client, render):
        response = client.post("/api/edit-illustration", json={"editPrompt": "Make it night"})

        assert response.status_code == 400
        render.assert_not_awaited()

    def test_blank_instruction_is_400(self, client, image_payload, render):
        response = client.post(
            "/api/edit-illustration", json={"originalImage": image_payload, "editPrompt": " "}
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "Edit instruction is required"}


@pytest.mark.unit
class TestGenerateReference:
    """Test POST /api/generate-reference."""

    def test_returns_image_file(self, client, image_payload):
        from models.story import ImageFile

        image = ImageFile(mime_type="image/png", base64=PNG_BASE64, name="reference.png")
        with patch("app.routers.illustrations.generate_reference_image", new_callable=AsyncMock,
                   return_value=image) as draw:
            response = client.post(
                "/api/generate-reference", json={"prompt": "A tall sailor", "artStyle": image_payload}
            )

        assert response.json() == {"image": {"mimeType": "image/png", "base64": PNG_BASE64,
                                             "name": "reference.png"}}
        assert draw.await_args.args[0] == "A tall sailor"
        assert draw.await_args.kwargs["art_style"].base64 == PNG_BASE64

    def test_empty_prompt_is_400(self, client):
        response = client.post("/api/generate-reference", json={"prompt": ""})

        assert response.status_code == 400
