"""Reference selection, prompt assembly and scene illustration."""

from .reference_filter import (
    mentions_name,
    name_pattern,
    select_relevant_backgrounds,
    select_relevant_characters,
)
from .compose_prompt import compose_prompt
from .build_request import GenerationRequest, build_edit_request, build_generation_request
from .generate_reference import generate_reference_image
from .orchestrate import (
    BatchResult,
    IllustrationOrchestrator,
    PromptInvalidationPolicy,
    transition,
)

__all__ = [
    'mentions_name',
    'name_pattern',
    'select_relevant_backgrounds',
    'select_relevant_characters',
    'compose_prompt',
    'GenerationRequest',
    'build_edit_request',
    'build_generation_request',
    'generate_reference_image',
    'BatchResult',
    'IllustrationOrchestrator',
    'PromptInvalidationPolicy',
    'transition',
]
