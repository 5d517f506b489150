"""Centralized exception hierarchy for the novel illustrator.

Usage:
    from exceptions import ValidationError, AnalysisError

    raise ValidationError("Novel text is required")
    raise AnalysisError("Failed to analyze character appearance.", kind="character")
"""

from typing import Optional


class IllustratorError(Exception):
    """Base exception for all novel illustrator errors."""
    pass


class ValidationError(IllustratorError):
    """Raised when required input is missing or invalid.

    Raised before any network call; no state is mutated.

    Examples:
        - Empty novel text
        - Analysis requested without an image
        - Edit requested for a scene without an image
    """
    pass


class InvalidTransitionError(ValidationError):
    """Raised when a scene is asked to move to a state it cannot reach."""
    pass


class GenerationError(IllustratorError):
    """Raised when an external model call fails."""
    pass


class AnalysisError(GenerationError):
    """Raised when reference image analysis fails.

    Carries the reference kind ("character", "background", "art_style").
    """

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.kind = kind


class SegmentationError(GenerationError):
    """Raised when novel text cannot be split into scenes."""
    pass


class IllustrationError(GenerationError):
    """Raised when illustration generation or editing fails."""
    pass


class DataIntegrityError(IllustratorError):
    """Raised when stored or returned data is malformed.

    Examples:
        - Malformed data URL
        - Model response without an inline image
    """
    pass


class StorageError(IllustratorError):
    """Raised when the local cache or remote store fails."""
    pass


class ConfigurationError(IllustratorError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Missing API key
        - Missing Supabase URL
    """
    pass
