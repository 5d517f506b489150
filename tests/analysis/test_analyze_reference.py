"""Tests for reference image analysis."""

import json

import pytest

from gemini_fakes import (
    ART_STYLE_ANALYSIS,
    BACKGROUND_ANALYSIS,
    CHARACTER_ANALYSIS,
    make_client,
    text_response,
)


@pytest.mark.unit
@pytest.mark.asyncio
class TestAnalyzeReference:
    """Tests for analyze_reference."""

    @pytest.mark.smoke
    async def test_character_analysis(self, sample_image):
        from analysis import ReferenceKind, analyze_reference
        from models.analysis import StructuredCharacterAnalysis

        client = make_client(text_response(json.dumps(CHARACTER_ANALYSIS)))

        result = await analyze_reference(ReferenceKind.CHARACTER, sample_image, client=client)

        assert isinstance(result.structured_analysis, StructuredCharacterAnalysis)
        assert result.structured_analysis.hair.color == "silver"
        assert "**HAIR:**" in result.description

    async def test_request_carries_prompt_and_image(self, sample_image):
        from analysis import ReferenceKind, analyze_reference
        from config import VISION_MODEL

        client = make_client(text_response(json.dumps(BACKGROUND_ANALYSIS)))

        await analyze_reference(ReferenceKind.BACKGROUND, sample_image, client=client)

        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == VISION_MODEL
        text, image = kwargs["contents"]
        assert "background" in text.text.lower()
        assert image.inline_data.mime_type == "image/png"
        assert kwargs["config"].response_mime_type == "application/json"

    async def test_wrapped_analysis_is_unwrapped(self, sample_image):
        from analysis import ReferenceKind, analyze_reference

        payload = {"description": "ignored", "structuredAnalysis": ART_STYLE_ANALYSIS}
        client = make_client(text_response(json.dumps(payload)))

        result = await analyze_reference(ReferenceKind.ART_STYLE, sample_image, client=client)

        assert result.structured_analysis.medium == "watercolor"

    async def test_fenced_json_is_accepted(self, sample_image):
        from analysis import ReferenceKind, analyze_reference

        fenced = "```json\n" + json.dumps(ART_STYLE_ANALYSIS) + "\n```"
        client = make_client(text_response(fenced))

        result = await analyze_reference("art_style", sample_image, client=client)

        assert result.structured_analysis.style_genre == "storybook"

    async def test_missing_image_raises_before_call(self):
        from analysis import ReferenceKind, analyze_reference
        from exceptions import ValidationError

        client = make_client(text_response("{}"))

        with pytest.raises(ValidationError, match="Character image is required"):
            await analyze_reference(ReferenceKind.CHARACTER, None, client=client)

        client.models.generate_content.assert_not_called()

    async def test_schema_mismatch_raises_analysis_error(self, sample_image):
        from analysis import ReferenceKind, analyze_reference
        from exceptions import AnalysisError

        client = make_client(text_response(json.dumps({"face": {}})))

        with pytest.raises(AnalysisError, match="Failed to analyze character appearance.") as exc_info:
            await analyze_reference(ReferenceKind.CHARACTER, sample_image, client=client)

        assert exc_info.value.kind == "character"

    async def test_invalid_json_raises_analysis_error(self, sample_image):
        from analysis import ReferenceKind, analyze_reference
        from exceptions import AnalysisError

        client = make_client(text_response("I cannot help with that"))

        with pytest.raises(AnalysisError, match="Failed to analyze background setting."):
            await analyze_reference(ReferenceKind.BACKGROUND, sample_image, client=client)

    async def test_api_failure_raises_analysis_error(self, sample_image):
        from analysis import ReferenceKind, analyze_reference
        from exceptions import AnalysisError

        client = make_client(text_response(""))
        client.models.generate_content.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(AnalysisError, match="Failed to analyze art style.") as exc_info:
            await analyze_reference(ReferenceKind.ART_STYLE, sample_image, client=client)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
