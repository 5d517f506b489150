"""Prompt, illustration, edit and reference image endpoints.

These endpoints are stateless: the caller sends the scene and the story's
references with every request.
"""

import logging

from fastapi import APIRouter

from app.models.illustration import (
    EditIllustrationRequest,
    IllustrationRequest,
    PromptRequest,
    ReferenceRequest,
)

from config import ILLUSTRATION_MODEL  # noqa: E402
from exceptions import DataIntegrityError, IllustrationError, ValidationError  # noqa: E402
from illustration import (  # noqa: E402
    build_edit_request,
    build_generation_request,
    compose_prompt,
    generate_reference_image,
    select_relevant_backgrounds,
    select_relevant_characters,
)
from models.story import ArtStyleReference, Scene  # noqa: E402
from util.gemini import generate_image_async, get_client  # noqa: E402

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["illustrations"])


def _scene_from_request(request: PromptRequest) -> Scene:
    structured = request.structured_description
    description = request.scene_description.strip() or (structured.summary if structured else "")
    if not description:
        raise ValidationError("Scene description is required")
    return Scene(description=description, structured_description=structured, shot_type=request.shot_type)


def _previous_scene(request: PromptRequest):
    previous = request.previous_scene_description
    if previous is None:
        return None
    return Scene(description=previous.summary, structured_description=previous)


def _compose(request: PromptRequest, scene: Scene):
    characters = select_relevant_characters(scene, request.characters, _previous_scene(request))
    backgrounds = select_relevant_backgrounds(scene, request.backgrounds)
    prompt = compose_prompt(
        scene,
        characters,
        backgrounds,
        request.art_style_description,
        request.shot_type,
        art_style_analysis=request.art_style_structured_analysis,
    )
    return prompt, characters, backgrounds


async def _render(request_parts, config, failure_message: str) -> str:
    client = get_client()
    try:
        return await generate_image_async(client, ILLUSTRATION_MODEL, request_parts, config)
    except DataIntegrityError:
        raise
    except Exception as e:
        logger.error(f"{failure_message} {e}")
        raise IllustrationError(failure_message) from e


@router.post("/generate-prompt")
async def generate_prompt(request: PromptRequest):
    """
    Compose the reviewable prompt for a scene.

    Returns:
        {"prompt": str}
    """
    scene = _scene_from_request(request)
    prompt, _, _ = _compose(request, scene)
    return {"prompt": prompt}


@router.post("/generate-illustration")
async def generate_illustration(request: IllustrationRequest):
    """
    Generate an illustration with the reference images attached.

    Returns:
        {"image": data URL, "prompt": full text sent to the model}
    """
    scene = _scene_from_request(request)
    composed, characters, backgrounds = _compose(request, scene)
    prompt_body = request.prompt if request.prompt and request.prompt.strip() else composed

    art_style = None
    if request.art_style is not None:
        art_style = ArtStyleReference(image=request.art_style, description=request.art_style_description)

    generation = build_generation_request(
        prompt_body, characters, backgrounds, art_style, request.shot_type, request.aspect_ratio
    )
    image = await _render(
        generation.parts, generation.config, "Failed to generate the illustration for the scene."
    )
    return {"image": image, "prompt": generation.prompt_text}


@router.post("/edit-illustration")
async def edit_illustration(request: EditIllustrationRequest):
    """
    Edit an illustration with a free-text instruction.

    Returns:
        {"image": data URL}
    """
    if request.original_image is None:
        raise ValidationError("Original image is required")
    if not request.edit_prompt.strip():
        raise ValidationError("Edit instruction is required")

    edit = build_edit_request(request.original_image, request.edit_prompt)
    image = await _render(edit.parts, edit.config, "Failed to edit the illustration.")
    return {"image": image}


@router.post("/generate-reference")
async def generate_reference(request: ReferenceRequest):
    """
    Draw a new character/background reference image.

    Returns:
        {"image": {"mimeType", "base64", "name"}}
    """
    image = await generate_reference_image(request.prompt, art_style=request.art_style)
    return {"image": image.model_dump(mode="json", by_alias=True)}
