"""Story state and reference management."""

from .state import StoryState, apply_patch

__all__ = ['StoryState', 'apply_patch']
