"""Tests for legacy description rendering."""

import pytest


@pytest.mark.unit
class TestRenderLegacyDescription:
    """Tests for render_legacy_description and legacy_sections."""

    def test_character_labels_in_order(self, character_analysis):
        from analysis import legacy_sections

        labels = [label for label, _ in legacy_sections(character_analysis)]

        assert labels == [
            "FACE & EYES",
            "HAIR",
            "BODY & BUILD",
            "MAIN OUTFIT",
            "DISTINCTIVE ACCESSORIES",
            "OVERALL VIBE",
        ]

    def test_character_text_includes_required_fields(self, character_analysis):
        from analysis import render_legacy_description

        text = render_legacy_description(character_analysis)

        assert "**FACE & EYES:**\namber eyes (almond, large)" in text
        assert "Distinctive marks: scar over left eyebrow." in text
        assert "silver, shoulder length, loose waves" in text
        assert "**DISTINCTIVE ACCESSORIES:**\nbrass compass" in text
        assert "**OVERALL VIBE:**\ndetermined wanderer" in text

    def test_optional_lists_omitted_when_absent(self, character_analysis):
        from analysis import render_legacy_description

        text = render_legacy_description(character_analysis)

        # hair.accessories is None in the fixture
        assert "Hair accessories" not in text

    def test_empty_accessories_render_none(self, character_analysis):
        from analysis import render_legacy_description

        outfit = character_analysis.outfit.model_copy(update={"accessories": []})
        analysis = character_analysis.model_copy(update={"outfit": outfit})

        assert "**DISTINCTIVE ACCESSORIES:**\nNone" in render_legacy_description(analysis)

    def test_background_sections(self, background_analysis):
        from analysis import render_legacy_description

        text = render_legacy_description(background_analysis)

        assert text.startswith("**LOCATION TYPE & STYLE:**\nforest, ancient woodland.")
        assert "mossy stone (foreground): waist-high boulder" in text
        assert "**ATMOSPHERE:**\nquiet and old" in text

    def test_art_style_sections(self, art_style_analysis):
        from analysis import legacy_sections, render_legacy_description

        labels = [label for label, _ in legacy_sections(art_style_analysis)]
        text = render_legacy_description(art_style_analysis)

        assert labels[0] == "MEDIUM & TECHNIQUE"
        assert labels[-1] == "KEY DISTINCTIVE FEATURES"
        assert "paper texture, visible pencil lines" in text

    def test_sections_separated_by_blank_line(self, art_style_analysis):
        from analysis import render_legacy_description

        blocks = render_legacy_description(art_style_analysis).split("\n\n")

        assert len(blocks) == 7
        assert all(block.startswith("**") for block in blocks)

    def test_unknown_type_raises(self):
        from analysis import legacy_sections

        with pytest.raises(TypeError, match="Unsupported analysis type"):
            legacy_sections({"face": {}})
