"""Derive a short story title from the opening of a novel."""

import logging
from typing import Optional

from google import genai

from analysis.prompts import TITLE_PROMPT
from config import TEXT_MODEL
from models.story import UNTITLED_STORY_TITLE
from util.gemini import generate_content_async, get_client

logger = logging.getLogger(__name__)

TITLE_EXCERPT_CHARS = 1000


async def generate_title(novel_text: str, client: Optional[genai.Client] = None) -> str:
    """
    Ask the text model for a 4-5 word title.

    Never raises: any failure returns "Untitled Story".
    """
    if not novel_text or not novel_text.strip():
        logger.warning("No novel text for title generation, using placeholder title")
        return UNTITLED_STORY_TITLE

    try:
        client = get_client(client)
        response = await generate_content_async(
            client,
            TEXT_MODEL,
            TITLE_PROMPT.format(excerpt=novel_text[:TITLE_EXCERPT_CHARS]),
        )
        title = (response.text or "").strip().replace('"', "")
    except Exception as e:
        logger.warning(f"Title generation failed, using placeholder title: {e}")
        return UNTITLED_STORY_TITLE

    if not title:
        logger.warning("Title generation returned empty text, using placeholder title")
        return UNTITLED_STORY_TITLE
    return title
