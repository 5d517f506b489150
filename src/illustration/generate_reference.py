"""Generate character or background reference images from a text prompt."""

import logging
from typing import Optional

from google import genai

from config import ILLUSTRATION_MODEL
from exceptions import IllustrationError, ValidationError
from models.story import ImageFile
from util.gemini import generate_image_async, get_client
from .build_request import build_reference_request

logger = logging.getLogger(__name__)


async def generate_reference_image(
    prompt: str,
    art_style: Optional[ImageFile] = None,
    client: Optional[genai.Client] = None
) -> ImageFile:
    """
    Create a reference image, optionally in the technique of an art style sample.

    Args:
        prompt: Description of the character or setting to draw
        art_style: Optional art style image (technique only)
        client: Optional genai client

    Returns:
        Generated image

    Raises:
        ValidationError: If the prompt is empty
        IllustrationError: If the call fails or returns no image
    """
    if not prompt or not prompt.strip():
        raise ValidationError("Reference prompt is required")

    client = get_client(client)
    request = build_reference_request(prompt, art_style)
    logger.info(f"Generating reference image (art style: {art_style is not None})")

    try:
        data_url = await generate_image_async(client, ILLUSTRATION_MODEL, request.parts, request.config)
        return ImageFile.from_data_url(data_url, name="reference.png")
    except Exception as e:
        logger.error(f"Error generating reference image: {e}")
        raise IllustrationError("Failed to generate the reference image.") from e
