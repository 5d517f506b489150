"""Split novel text into illustration-worthy scenes using Gemini."""

import logging
from typing import Any, List, Optional

from google import genai
from google.genai import types

from analysis.prompts import (
    SCENE_LIST_FORMAT,
    SCENE_SEGMENTATION_PROMPT,
    STRUCTURED_SCENE_FORMAT,
)
from config import TEXT_MODEL
from exceptions import SegmentationError, ValidationError
from models.scene_description import StructuredSceneDescription
from util.gemini import generate_content_async, get_client, parse_json_response

logger = logging.getLogger(__name__)

MIN_SCENES = 3
MAX_SCENES = 8


def _build_prompt(novel_text: str, output_format: str) -> str:
    return f"""{SCENE_SEGMENTATION_PROMPT}

{output_format}

Novel Text:
```
{novel_text}
```"""


def _check_count(count: int) -> None:
    if count == 0:
        raise SegmentationError("The model returned no scenes for this text.")
    if count < MIN_SCENES or count > MAX_SCENES:
        logger.warning(
            f"Segmenter returned {count} scenes (expected {MIN_SCENES}-{MAX_SCENES}); keeping them"
        )


async def _request_scenes(novel_text: str, output_format: str, client: Optional[genai.Client]) -> List[Any]:
    if not novel_text or not novel_text.strip():
        raise ValidationError("Novel text is required")

    client = get_client(client)
    try:
        response = await generate_content_async(
            client,
            TEXT_MODEL,
            _build_prompt(novel_text, output_format),
            types.GenerateContentConfig(response_mime_type="application/json"),
        )
        logger.debug(f"Gemini response: {response.text}")
        data = parse_json_response(response.text)
    except Exception as e:
        logger.error(f"Failed to generate scenes: {e}")
        raise SegmentationError("Failed to analyze the novel and generate scenes.") from e

    scenes = data.get("scenes") if isinstance(data, dict) else data
    if not isinstance(scenes, list):
        raise SegmentationError("Segmenter response did not contain a scene list.")
    return scenes


async def segment_novel(novel_text: str, client: Optional[genai.Client] = None) -> List[str]:
    """
    Choose the scenes of a novel worth illustrating.

    Args:
        novel_text: Full novel text
        client: Optional genai client

    Returns:
        Ordered list of scene paragraphs

    Raises:
        ValidationError: If the text is empty
        SegmentationError: If the call fails or yields no scenes
    """
    logger.info(f"Segmenting novel text ({len(novel_text or '')} chars)")
    raw_scenes = await _request_scenes(novel_text, SCENE_LIST_FORMAT, client)

    scenes = [s.strip() for s in raw_scenes if isinstance(s, str) and s.strip()]
    _check_count(len(scenes))

    logger.info(f"Identified {len(scenes)} scenes")
    return scenes


async def segment_novel_structured(
    novel_text: str,
    client: Optional[genai.Client] = None
) -> List[StructuredSceneDescription]:
    """
    Like segment_novel, but each scene comes back as a structured breakdown.

    Raises:
        ValidationError: If the text is empty
        SegmentationError: If the call fails, a scene fails validation, or no scenes are returned
    """
    logger.info(f"Segmenting novel text into structured scenes ({len(novel_text or '')} chars)")
    raw_scenes = await _request_scenes(novel_text, STRUCTURED_SCENE_FORMAT, client)

    try:
        scenes = [StructuredSceneDescription.model_validate(s) for s in raw_scenes]
    except Exception as e:
        logger.error(f"Structured scene failed validation: {e}")
        raise SegmentationError(f"Structured scene failed validation: {e}") from e

    _check_count(len(scenes))
    logger.info(f"Identified {len(scenes)} structured scenes")
    return scenes
