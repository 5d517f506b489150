"""
Shared pytest fixtures for novel illustrator tests.
"""

import sys
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))
# Shared fakes (gemini_fakes.py) live next to this file
sys.path.insert(0, str(Path(__file__).parent))

from gemini_fakes import (  # noqa: E402
    ART_STYLE_ANALYSIS,
    BACKGROUND_ANALYSIS,
    CHARACTER_ANALYSIS,
    PNG_BASE64,
    structured_scene,
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests away from real keys and the real cache directory."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setenv("ILLUSTRATOR_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.delenv("ILLUSTRATOR_SAVE_DEBOUNCE", raising=False)
    yield


@pytest.fixture
def sample_image():
    """Small PNG reference image."""
    from models.story import ImageFile

    return ImageFile(mime_type="image/png", base64=PNG_BASE64, name="ref.png")


@pytest.fixture
def character_analysis():
    from models.analysis import StructuredCharacterAnalysis

    return StructuredCharacterAnalysis.model_validate(CHARACTER_ANALYSIS)


@pytest.fixture
def background_analysis():
    from models.analysis import StructuredBackgroundAnalysis

    return StructuredBackgroundAnalysis.model_validate(BACKGROUND_ANALYSIS)


@pytest.fixture
def art_style_analysis():
    from models.analysis import StructuredArtStyleAnalysis

    return StructuredArtStyleAnalysis.model_validate(ART_STYLE_ANALYSIS)


@pytest.fixture
def sample_story(sample_image, character_analysis, background_analysis):
    """Story with two characters, one background and three scenes."""
    from models.scene_description import StructuredSceneDescription
    from models.story import Background, Character, Scene, Story

    mira = Character(name="Mira", image=sample_image, description="Silver hair.",
                     structured_analysis=character_analysis)
    tomas = Character(name="Tomas", image=sample_image)
    forest = Background(name="forest", image=sample_image, structured_analysis=background_analysis)
    scenes = [
        Scene(description="Mira finds the compass.",
              structured_description=StructuredSceneDescription.model_validate(structured_scene())),
        Scene(description="Tomas waits at the inn."),
        Scene(description="The storm breaks over the sea."),
    ]
    return Story(title="The Silver Compass", novel_text="Once upon a time...",
                 characters=[mira, tomas], backgrounds=[forest], scenes=scenes)

