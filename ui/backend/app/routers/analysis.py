"""Reference analysis, title and scene segmentation endpoints."""

import logging

from fastapi import APIRouter

from app.models.illustration import AnalyzeImageRequest, NovelTextRequest

from analysis import ReferenceKind, analyze_reference  # noqa: E402
from exceptions import ValidationError  # noqa: E402
from scene_extraction import generate_title, segment_novel, segment_novel_structured  # noqa: E402

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


async def _analyze(kind: ReferenceKind, request: AnalyzeImageRequest) -> dict:
    result = await analyze_reference(kind, request.image)
    return result.model_dump(mode="json", by_alias=True)


@router.post("/analyze-character")
async def analyze_character(request: AnalyzeImageRequest):
    """
    Analyze a character reference image.

    Returns:
        {"description": str, "structuredAnalysis": {...}}

    Raises:
        400: If no image is provided
        500: If the analysis fails
    """
    return await _analyze(ReferenceKind.CHARACTER, request)


@router.post("/analyze-background")
async def analyze_background(request: AnalyzeImageRequest):
    """Analyze a background reference image."""
    return await _analyze(ReferenceKind.BACKGROUND, request)


@router.post("/analyze-art-style")
async def analyze_art_style(request: AnalyzeImageRequest):
    """Analyze an art style sample (technique only)."""
    return await _analyze(ReferenceKind.ART_STYLE, request)


@router.post("/generate-title")
async def create_title(request: NovelTextRequest):
    """
    Derive a 4-5 word title. Always succeeds; falls back to "Untitled Story".
    """
    if not request.novel_text:
        raise ValidationError("Novel text is required")
    return {"title": await generate_title(request.novel_text)}


@router.post("/generate-scenes")
async def create_scenes(request: NovelTextRequest):
    """
    Split novel text into 3-8 illustration-worthy scenes.

    With ``structured: true`` each scene is a structured breakdown instead of a paragraph.
    """
    if request.structured:
        scenes = await segment_novel_structured(request.novel_text or "")
        return {"scenes": [s.model_dump(mode="json", by_alias=True) for s in scenes]}
    return {"scenes": await segment_novel(request.novel_text or "")}
