"""Structured analyses of reference images.

One schema per reference kind. Field names are snake_case in Python and
camelCase on the wire (what the vision model returns and what the API
serves), e.g. ``skin_tone`` <-> ``skinTone``.
"""

from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Frozen model that reads and writes camelCase JSON keys."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# CHARACTER
# =============================================================================

class Eyes(CamelModel):
    color: str
    shape: str
    size: str


class Face(CamelModel):
    shape: str
    age: str
    skin_tone: str
    eyes: Eyes
    nose: str
    mouth: str
    distinctive_marks: Optional[List[str]] = None


class Hair(CamelModel):
    color: str
    length: str
    style: str
    parting: str
    texture: str
    accessories: Optional[List[str]] = None


class Body(CamelModel):
    build: str
    height: str
    posture: str


class Outfit(CamelModel):
    upper_body: str
    lower_body: str
    accessories: List[str]
    colors: List[str]
    style: str


class StructuredCharacterAnalysis(CamelModel):
    """Face/hair/body/outfit breakdown of a character reference."""

    face: Face
    hair: Hair
    body: Body
    outfit: Outfit
    overall_vibe: str


# =============================================================================
# BACKGROUND
# =============================================================================

class Location(CamelModel):
    type: str
    setting: str
    architecture: str


class Lighting(CamelModel):
    source: List[str]
    quality: str
    time_of_day: str
    mood: str


class Colors(CamelModel):
    dominant: List[str]
    accents: List[str]
    palette: str


class BackgroundObject(CamelModel):
    item: str
    description: str
    prominence: str


class StructuredBackgroundAnalysis(CamelModel):
    """Location/lighting/colors/objects breakdown of a background plate."""

    location: Location
    lighting: Lighting
    colors: Colors
    objects: List[BackgroundObject]
    atmosphere: str


# =============================================================================
# ART STYLE
# =============================================================================

class Technique(CamelModel):
    rendering: str
    line_work: str
    edge_quality: str


class ColorApplication(CamelModel):
    style: str
    saturation: str
    blending: str


class ShadingAndLighting(CamelModel):
    shading_style: str
    contrast: str
    lighting_type: str


class StructuredArtStyleAnalysis(CamelModel):
    """Technique-only breakdown of an art style sample."""

    medium: str
    technique: Technique
    color_application: ColorApplication
    shading_and_lighting: ShadingAndLighting
    style_genre: str
    mood: str
    distinctive_features: List[str]


StructuredAnalysis = Union[
    StructuredCharacterAnalysis,
    StructuredBackgroundAnalysis,
    StructuredArtStyleAnalysis,
]
