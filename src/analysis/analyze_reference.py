"""Analyze reference images (character, background, art style) with Gemini vision."""

import logging
from enum import Enum
from typing import Dict, Optional, Type

from google import genai
from google.genai import types

from config import VISION_MODEL
from exceptions import AnalysisError, ValidationError
from models.analysis import (
    CamelModel,
    StructuredAnalysis,
    StructuredArtStyleAnalysis,
    StructuredBackgroundAnalysis,
    StructuredCharacterAnalysis,
)
from models.story import ImageFile
from util.gemini import (
    generate_content_async,
    get_client,
    image_part,
    parse_json_response,
    text_part,
)
from .legacy_description import render_legacy_description
from .prompts import (
    ART_STYLE_ANALYSIS_PROMPT,
    BACKGROUND_ANALYSIS_PROMPT,
    CHARACTER_ANALYSIS_PROMPT,
)

logger = logging.getLogger(__name__)


class ReferenceKind(str, Enum):
    CHARACTER = "character"
    BACKGROUND = "background"
    ART_STYLE = "art_style"


SCHEMAS: Dict[ReferenceKind, Type[CamelModel]] = {
    ReferenceKind.CHARACTER: StructuredCharacterAnalysis,
    ReferenceKind.BACKGROUND: StructuredBackgroundAnalysis,
    ReferenceKind.ART_STYLE: StructuredArtStyleAnalysis,
}

PROMPTS: Dict[ReferenceKind, str] = {
    ReferenceKind.CHARACTER: CHARACTER_ANALYSIS_PROMPT,
    ReferenceKind.BACKGROUND: BACKGROUND_ANALYSIS_PROMPT,
    ReferenceKind.ART_STYLE: ART_STYLE_ANALYSIS_PROMPT,
}

# User-facing messages surfaced when analysis fails
FAILURE_MESSAGES: Dict[ReferenceKind, str] = {
    ReferenceKind.CHARACTER: "Failed to analyze character appearance.",
    ReferenceKind.BACKGROUND: "Failed to analyze background setting.",
    ReferenceKind.ART_STYLE: "Failed to analyze art style.",
}

MISSING_IMAGE_MESSAGES: Dict[ReferenceKind, str] = {
    ReferenceKind.CHARACTER: "Character image is required",
    ReferenceKind.BACKGROUND: "Background image is required",
    ReferenceKind.ART_STYLE: "Art style image is required",
}


class AnalysisResult(CamelModel):
    """Structured analysis plus its rendered legacy description."""

    description: str
    structured_analysis: StructuredAnalysis


async def analyze_reference(
    kind: ReferenceKind,
    image: Optional[ImageFile],
    client: Optional[genai.Client] = None
) -> AnalysisResult:
    """
    Analyze a reference image into a structured, schema-checked description.

    Args:
        kind: Which schema to request and enforce
        image: Reference image to analyze
        client: Optional genai client (built from GEMINI_API_KEY if omitted)

    Returns:
        AnalysisResult with the legacy description and structured analysis

    Raises:
        ValidationError: If no image is given (no network call is made)
        AnalysisError: If the model call fails or its JSON does not match the schema
    """
    kind = ReferenceKind(kind)
    if image is None or not image.base64:
        raise ValidationError(MISSING_IMAGE_MESSAGES[kind])

    client = get_client(client)
    logger.info(f"Analyzing {kind.value} reference ({image.mime_type})")

    try:
        response = await generate_content_async(
            client,
            VISION_MODEL,
            [text_part(PROMPTS[kind]), image_part(image.mime_type, image.base64)],
            types.GenerateContentConfig(response_mime_type="application/json"),
        )
        data = parse_json_response(response.text)
        if isinstance(data, dict) and "structuredAnalysis" in data:
            data = data["structuredAnalysis"]
        analysis = SCHEMAS[kind].model_validate(data)
    except Exception as e:
        logger.error(f"Error analyzing {kind.value}: {e}")
        raise AnalysisError(FAILURE_MESSAGES[kind], kind=kind.value) from e

    description = render_legacy_description(analysis)
    logger.debug(f"{kind.value} analysis:\n{description}")
    return AnalysisResult(description=description, structured_analysis=analysis)
