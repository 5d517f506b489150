"""Reference image analysis and legacy description rendering."""

from .analyze_reference import AnalysisResult, ReferenceKind, analyze_reference
from .legacy_description import legacy_sections, render_legacy_description

__all__ = [
    'AnalysisResult',
    'ReferenceKind',
    'analyze_reference',
    'legacy_sections',
    'render_legacy_description',
]
