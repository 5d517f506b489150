"""Assemble the multimodal Gemini request for an illustration.

Part order:
    1. Directive (scene prompt, composition line, consistency rules)
    2. Art style preamble + image (technique only)
    3. Each background preamble + image
    4. Each character preamble + image (appearance locked)
    5. Final checklist, when characters are present

Aspect ratio travels in ``ImageConfig``, not in the text.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from google.genai import types

from models.story import (
    ArtStyleReference,
    AspectRatio,
    Background,
    Character,
    ImageFile,
    ShotType,
)
from util.gemini import image_part, text_part
from .compose_prompt import composition_instruction

logger = logging.getLogger(__name__)

BANNER = "═" * 39


@dataclass
class GenerationRequest:
    """A ready-to-send image request.

    Attributes:
        parts: Ordered text and inline image parts
        prompt_text: All text parts joined, as stored on the scene
        config: Generation config (IMAGE modality, aspect ratio)
    """
    parts: List[types.Part]
    prompt_text: str
    config: types.GenerateContentConfig


CONSISTENCY_RULES = """**REFERENCE PRIORITY ORDER:**
1. CHARACTER APPEARANCE (most critical, never compromise): hair color, eye color, clothing and accessories MUST be 100% identical to the character references. Character details override everything else, including art style.
2. ART STYLE & TECHNIQUE: use the line work, shading and coloring technique of the art style reference, applied to the characters without replacing their appearance.
3. BACKGROUND/SETTING: match the environmental style and atmosphere of the background references to keep the world consistent.

Use the reference images ONLY for appearance and style. IGNORE the pose, action and composition of the reference images; those come from the scene above."""


def _directive(prompt_body: str, shot_type: Union[ShotType, str, None]) -> str:
    composition = composition_instruction(shot_type)
    return (
        "Your task is to create a single, cohesive illustration for the following scene. "
        "You MUST use the provided reference images to maintain PERFECT CONSISTENCY across all generated scenes.\n\n"
        + (f"{composition}\n\n" if composition else "")
        + f"{prompt_body.strip()}\n\n"
        + CONSISTENCY_RULES
    )


def _art_style_preamble(art_style: ArtStyleReference) -> str:
    description = ""
    if art_style.description:
        description = (
            "\n\n📋 **ART STYLE DESCRIPTION:**\n"
            f"{art_style.description}\n\n"
            "⚠️ This description covers the artistic TECHNIQUE ONLY."
        )
    return f"""{BANNER}
🎨 ART STYLE REFERENCE (TECHNIQUE ONLY)
{BANNER}

This reference shows HOW to draw, NOT WHAT to draw.
If there are people in this image, IGNORE their hair color, clothing, accessories and eye color completely.{description}

**COPY FROM THIS REFERENCE:** line work, shading, color blending, brush texture, lighting technique, level of polish.
**NEVER COPY FROM THIS REFERENCE:** hair, clothing, eye color, accessories, skin tone or body proportions of anyone shown."""


def _background_preamble(background: Background, index: int, total: int) -> str:
    label = f"BACKGROUND REFERENCE {index}" if total > 1 else "BACKGROUND REFERENCE"
    description = ""
    if background.description:
        description = f"\n\n📋 **BACKGROUND DESCRIPTION:**\n{background.description}"
    return f"""{BANNER}
🏞️ {label}: "{background.name}" (MANDATORY TO FOLLOW)
{BANNER}

This is the reference for "{background.name}" mentioned in the scene.{description}

Match the architectural style, color palette, lighting mood and environmental details. The scene's setting MUST feel like it exists in this same world.
**REMINDER:** Keep every character's appearance from the character references unchanged."""


def _character_preamble(character: Character, index: int) -> str:
    description = ""
    if character.description:
        description = (
            "\n\n📋 **CHARACTER DESCRIPTION:**\n"
            f"{character.description}\n\n"
            "⚠️ Follow EVERY detail of this description PRECISELY."
        )
    return f"""{BANNER}
👤 CHARACTER REFERENCE #{index}: "{character.name}"
{BANNER}

🔒 THIS CHARACTER'S FEATURES ARE LOCKED AND CANNOT BE CHANGED 🔒
This appearance OVERRIDES all other references.{description}

**LOCKED FEATURES (CRITICAL: REPLICATE EXACTLY):**
- HAIR: exact color from THIS image (not from the art style), cut, length and accessories
- EYES: exact color from THIS image (not from the art style), shape and size
- CLOTHING & ACCESSORIES: exact outfit, colors, glasses and jewelry from THIS image
- FACE & SKIN: skin tone, face shape and distinctive marks
- BODY & BUILD: proportions and build

If an art style reference shows a person with different hair or clothes, ignore that person's appearance and use only its drawing technique."""


FINAL_CHECKLIST = """**🚨 FINAL CHECKLIST BEFORE GENERATING:**

CHARACTER APPEARANCE (from CHARACTER references only):
✓ EXACT hair color, eye color, outfit and accessories from the character reference

TECHNIQUE (from the ART STYLE reference):
✓ Drawing technique, shading style and line work from the art style reference

SETTING (from BACKGROUND references):
✓ Environment consistent with the background references

The character's APPEARANCE comes from the character reference. The drawing TECHNIQUE comes from the art style reference."""


def _image_config(aspect_ratio: Union[AspectRatio, str, None]) -> types.GenerateContentConfig:
    if aspect_ratio:
        return types.GenerateContentConfig(
            response_modalities=["IMAGE"],
            image_config=types.ImageConfig(aspect_ratio=AspectRatio(aspect_ratio).value),
        )
    return types.GenerateContentConfig(response_modalities=["IMAGE"])


def _finish(parts: List[types.Part], aspect_ratio: Union[AspectRatio, str, None]) -> GenerationRequest:
    prompt_text = "\n\n".join(p.text for p in parts if p.text)
    return GenerationRequest(parts=parts, prompt_text=prompt_text, config=_image_config(aspect_ratio))


def build_generation_request(
    prompt_body: str,
    characters: List[Character],
    backgrounds: List[Background],
    art_style: Optional[ArtStyleReference] = None,
    shot_type: Union[ShotType, str, None] = ShotType.AUTOMATIC,
    aspect_ratio: Union[AspectRatio, str, None] = AspectRatio.SQUARE,
) -> GenerationRequest:
    """
    Build the full illustration request.

    Args:
        prompt_body: Reviewed scene prompt (the scene's custom prompt)
        characters: Relevant characters; only those with images are attached
        backgrounds: Relevant backgrounds
        art_style: Optional art style reference
        shot_type: Requested framing
        aspect_ratio: Output aspect ratio

    Returns:
        GenerationRequest with parts, joined prompt text and config
    """
    parts = [text_part(_directive(prompt_body, shot_type))]

    if art_style is not None:
        parts.append(text_part(_art_style_preamble(art_style)))
        parts.append(image_part(art_style.image.mime_type, art_style.image.base64))

    for index, background in enumerate(backgrounds, 1):
        parts.append(text_part(_background_preamble(background, index, len(backgrounds))))
        parts.append(image_part(background.image.mime_type, background.image.base64))

    attached = [c for c in characters if c.image is not None]
    for index, character in enumerate(attached, 1):
        parts.append(text_part(_character_preamble(character, index)))
        parts.append(image_part(character.image.mime_type, character.image.base64))

    if characters:
        parts.append(text_part(FINAL_CHECKLIST))

    logger.debug(
        f"Built request: {len(parts)} parts, art style={art_style is not None}, "
        f"backgrounds={len(backgrounds)}, characters attached={len(attached)}/{len(characters)}"
    )
    return _finish(parts, aspect_ratio)


def build_edit_request(image: ImageFile, instruction: str) -> GenerationRequest:
    """Request that edits ``image`` according to ``instruction``."""
    parts = [
        image_part(image.mime_type, image.base64),
        text_part(
            "Edit this illustration according to the instruction below. Keep every character's "
            "appearance, the art style and the composition unchanged except where the instruction "
            f"says otherwise.\n\nInstruction: {instruction.strip()}"
        ),
    ]
    return _finish(parts, None)


def build_reference_request(prompt: str, art_style: Optional[ImageFile] = None) -> GenerationRequest:
    """Request for a new character/background reference image from a text prompt."""
    parts = [text_part(
        "Create a single clear reference image for the following subject. Show the full subject "
        f"against a simple backdrop so it can be reused as a reference.\n\nSubject: {prompt.strip()}"
    )]
    if art_style is not None:
        parts.append(text_part(
            "Render it in the artistic TECHNIQUE of the following image (line work, shading, "
            "coloring). Do not copy any person, clothing or hair color from it."
        ))
        parts.append(image_part(art_style.mime_type, art_style.base64))
    return _finish(parts, None)
