"""
Gemini API utilities for the novel illustrator.

Centralized module for all Google Generative AI (Gemini) interactions:
client construction, async calls, JSON response parsing and inline image
extraction.
"""

import asyncio
import base64
import json
import logging
from typing import Optional, Any, List, Tuple
from google import genai
from google.genai import types

from config import TEXT_MODEL, get_gemini_api_key
from exceptions import DataIntegrityError

logger = logging.getLogger(__name__)


class GeminiAPI:
    """Wrapper for Gemini API operations."""

    def __init__(self, model_name: str = TEXT_MODEL, api_key: Optional[str] = None):
        """
        Initialize Gemini API client.

        Args:
            model_name: Name of the Gemini model to use
            api_key: API key (if None, loads GEMINI_API_KEY from environment)

        Raises:
            ConfigurationError: If no key is passed and GEMINI_API_KEY is unset
        """
        self.model_name = model_name
        self.client = genai.Client(api_key=api_key or get_gemini_api_key())

    def generate_content(self, contents: Any, config: Optional[types.GenerateContentConfig] = None) -> Any:
        """
        Generate content using Gemini.

        Args:
            contents: Prompt string or list of parts
            config: Optional generation config

        Returns:
            Response object with .text and .candidates
        """
        return self.client.models.generate_content(
            model=self.model_name,
            contents=contents,
            config=config
        )


def get_client(client: Optional[genai.Client] = None) -> genai.Client:
    """Return the given client or build one from the environment."""
    if client is not None:
        return client
    return GeminiAPI().client


async def generate_content_async(
    client: genai.Client,
    model: str,
    contents: Any,
    config: Optional[Any] = None
) -> Any:
    """
    Async wrapper for generate_content using asyncio.to_thread.

    The google.genai client used here is synchronous. This wrapper allows
    async code to call it without blocking the event loop.

    Args:
        client: genai.Client instance
        model: Model name (e.g., "gemini-2.5-flash")
        contents: Content to send to the model
        config: Optional generation config

    Returns:
        Response object with .text attribute
    """
    return await asyncio.to_thread(
        client.models.generate_content,
        model=model,
        contents=contents,
        config=config
    )


def text_part(text: str) -> types.Part:
    """Build a text part."""
    return types.Part(text=text)


def image_part(mime_type: str, base64_data: str) -> types.Part:
    """Build an inline image part from base64 data."""
    return types.Part(
        inline_data=types.Blob(mime_type=mime_type, data=base64.b64decode(base64_data))
    )


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```) if present."""
    response_text = text.strip()
    if not response_text.startswith("```"):
        return response_text

    lines = response_text.split("\n")
    # Remove first line (``` or ```json)
    lines = lines[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    # "json" may sit on its own line after the backticks
    if lines and lines[0].strip() == "json":
        lines = lines[1:]
    return "\n".join(lines).strip()


def parse_json_response(text: Optional[str]) -> Any:
    """
    Parse a model's JSON response, tolerating markdown fences.

    Raises:
        ValueError: If the text is empty or not valid JSON
    """
    if not text or not text.strip():
        raise ValueError("Empty response from Gemini")
    cleaned = strip_code_fence(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse Gemini response as JSON: {cleaned[:500]}")
        raise ValueError(f"Failed to parse Gemini response as JSON: {e}") from e


def first_inline_image(response: Any) -> Tuple[str, bytes]:
    """
    Return (mime_type, raw bytes) of the first inline image in a response.

    Raises:
        DataIntegrityError: If the response carries no inline image
    """
    candidates = getattr(response, "candidates", None) or []
    for candidate in candidates:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data:
                return inline.mime_type or "image/png", inline.data
    raise DataIntegrityError("No image was generated by the API.")


def inline_image_to_data_url(response: Any) -> str:
    """Surface the first inline image of a response as a data URL."""
    mime_type, data = first_inline_image(response)
    if isinstance(data, str):
        # Some transports already hand back base64 text
        encoded = data
    else:
        encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


async def generate_image_async(
    client: genai.Client,
    model: str,
    parts: List[types.Part],
    config: Optional[types.GenerateContentConfig] = None
) -> str:
    """
    Send a multimodal request to an image model.

    Returns:
        First inline image of the response as a data URL

    Raises:
        DataIntegrityError: If the response carries no image
    """
    response = await generate_content_async(
        client,
        model,
        types.Content(role="user", parts=parts),
        config
    )
    return inline_image_to_data_url(response)
