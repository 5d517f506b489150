"""Scene segmentation and title derivation."""

from .segment_scenes import segment_novel, segment_novel_structured
from .generate_title import generate_title

__all__ = [
    'segment_novel',
    'segment_novel_structured',
    'generate_title',
]
