"""Render structured analyses as labeled plain-text descriptions.

The legacy description is what older stories stored before structured
analysis existed. It is still shown to users and fed to the prompt composer
when a reference has no structured analysis.
"""

from typing import List, Optional, Tuple

from models.analysis import (
    StructuredAnalysis,
    StructuredArtStyleAnalysis,
    StructuredBackgroundAnalysis,
    StructuredCharacterAnalysis,
)

Section = Tuple[str, str]

NONE_LISTED = "None"


def _join(items: Optional[List[str]]) -> str:
    cleaned = [item.strip() for item in items or [] if item and item.strip()]
    return ", ".join(cleaned) if cleaned else NONE_LISTED


def _character_sections(analysis: StructuredCharacterAnalysis) -> List[Section]:
    face, hair, body, outfit = analysis.face, analysis.hair, analysis.body, analysis.outfit

    face_text = (
        f"{face.eyes.color} eyes ({face.eyes.shape}, {face.eyes.size}), "
        f"{face.skin_tone} skin, {face.shape} face, apparent age {face.age}. "
        f"Nose: {face.nose}. Mouth: {face.mouth}."
    )
    if face.distinctive_marks:
        face_text += f" Distinctive marks: {_join(face.distinctive_marks)}."

    hair_text = (
        f"{hair.color}, {hair.length}, {hair.style}. "
        f"Parting: {hair.parting}. Texture: {hair.texture}."
    )
    if hair.accessories:
        hair_text += f" Hair accessories: {_join(hair.accessories)}."

    return [
        ("FACE & EYES", face_text),
        ("HAIR", hair_text),
        ("BODY & BUILD", f"{body.build} build, {body.height}. Posture: {body.posture}."),
        ("MAIN OUTFIT", (
            f"{outfit.style}. Top: {outfit.upper_body}. Bottom: {outfit.lower_body}. "
            f"Colors: {_join(outfit.colors)}."
        )),
        ("DISTINCTIVE ACCESSORIES", _join(outfit.accessories)),
        ("OVERALL VIBE", analysis.overall_vibe),
    ]


def _background_sections(analysis: StructuredBackgroundAnalysis) -> List[Section]:
    location, lighting, colors = analysis.location, analysis.lighting, analysis.colors

    if analysis.objects:
        elements = "; ".join(
            f"{obj.item} ({obj.prominence}): {obj.description}" for obj in analysis.objects
        )
    else:
        elements = NONE_LISTED

    return [
        ("LOCATION TYPE & STYLE", (
            f"{location.type}, {location.setting}. Architecture: {location.architecture}."
        )),
        ("COLOR & LIGHTING", (
            f"Dominant colors: {_join(colors.dominant)}. Accents: {_join(colors.accents)}. "
            f"Palette: {colors.palette}. {lighting.quality} light from {_join(lighting.source)} "
            f"at {lighting.time_of_day}, {lighting.mood} mood."
        )),
        ("NOTABLE ELEMENTS", elements),
        ("ATMOSPHERE", analysis.atmosphere),
    ]


def _art_style_sections(analysis: StructuredArtStyleAnalysis) -> List[Section]:
    technique = analysis.technique
    color = analysis.color_application
    shading = analysis.shading_and_lighting

    return [
        ("MEDIUM & TECHNIQUE", (
            f"{analysis.medium}. {technique.rendering} rendering, {technique.edge_quality} edges."
        )),
        ("LINE WORK", technique.line_work),
        ("COLOR APPLICATION", (
            f"{color.style}, {color.saturation} saturation. Blending: {color.blending}."
        )),
        ("SHADING & LIGHTING", (
            f"{shading.shading_style} shading, {shading.contrast} contrast, {shading.lighting_type} lighting."
        )),
        ("STYLE GENRE", analysis.style_genre),
        ("MOOD", analysis.mood),
        ("KEY DISTINCTIVE FEATURES", _join(analysis.distinctive_features)),
    ]


def legacy_sections(analysis: StructuredAnalysis) -> List[Section]:
    """
    Ordered (label, text) sections for a structured analysis.

    Raises:
        TypeError: If the analysis is not one of the structured analysis models
    """
    if isinstance(analysis, StructuredCharacterAnalysis):
        return _character_sections(analysis)
    if isinstance(analysis, StructuredBackgroundAnalysis):
        return _background_sections(analysis)
    if isinstance(analysis, StructuredArtStyleAnalysis):
        return _art_style_sections(analysis)
    raise TypeError(f"Unsupported analysis type: {type(analysis).__name__}")


def render_legacy_description(analysis: StructuredAnalysis) -> str:
    """Flatten a structured analysis into ``**LABEL:**`` blocks."""
    return "\n\n".join(f"**{label}:**\n{text}" for label, text in legacy_sections(analysis))
