"""Compose the human-reviewable text prompt for a scene illustration.

The composed prompt is a preview: the real request (see build_request) also
attaches the reference images. No network calls happen here.
"""

from typing import List, Optional, Union

from models.analysis import (
    StructuredArtStyleAnalysis,
    StructuredBackgroundAnalysis,
    StructuredCharacterAnalysis,
)
from models.scene_description import StructuredSceneDescription
from models.story import Background, Character, Scene, ShotType

SECTION_RULE = "\n---\n"


def composition_instruction(shot_type: Union[ShotType, str, None]) -> str:
    """Composition line for a shot type, empty for automatic framing."""
    shot = ShotType(shot_type or ShotType.AUTOMATIC)
    if shot == ShotType.AUTOMATIC:
        return ""
    return f"Composition: Use a **{shot.label}** for this scene."


def format_scene_breakdown(structured: StructuredSceneDescription) -> str:
    """Itemized scene breakdown: summary, cast, environment, objects, mood, interactions."""
    lines = [f"**Scene Summary:** {structured.summary}"]

    if structured.characters:
        lines.append("")
        lines.append("**Characters in Scene:**")
        for idx, char in enumerate(structured.characters, 1):
            lines.append(f"{idx}. **{char.name}**")
            lines.append(f"   - Action: {char.action}")
            lines.append(f"   - Expression: {char.expression}")
            lines.append(f"   - Posture: {char.posture}")
            lines.append(f"   - Position: {char.position}")

    env = structured.environment
    if env is not None:
        lines.append("")
        lines.append("**Environment:**")
        lines.append(f"   - Location: {env.location}")
        lines.append(f"   - Time of Day: {env.time_of_day}")
        lines.append(f"   - Lighting: {env.lighting}")
        if env.weather:
            lines.append(f"   - Weather: {env.weather}")
        lines.append(f"   - Atmosphere: {env.atmosphere}")

    if structured.important_objects:
        lines.append("")
        lines.append("**Important Objects:**")
        for idx, obj in enumerate(structured.important_objects, 1):
            lines.append(f"{idx}. **{obj.item}**: {obj.description} ({obj.importance})")

    if structured.mood is not None:
        lines.append("")
        lines.append("**Mood & Atmosphere:**")
        lines.append(f"   - Emotional Tone: {structured.mood.emotional_tone}")
        lines.append(f"   - Tension Level: {structured.mood.tension_level}")
        lines.append(f"   - Key Feeling: {structured.mood.key_feeling}")

    if structured.interactions:
        lines.append("")
        lines.append("**Character Interactions:**")
        for idx, interaction in enumerate(structured.interactions, 1):
            lines.append(f"{idx}. {' & '.join(interaction.characters)}")
            lines.append(f"   - Type: {interaction.type}")
            lines.append(f"   - Description: {interaction.description}")
            lines.append(f"   - Physical Distance: {interaction.physical_distance}")

    return "\n".join(lines)


def scene_text(scene: Scene) -> str:
    """Structured breakdown when available, else the plain description."""
    if scene.structured_description is not None:
        return format_scene_breakdown(scene.structured_description)
    return f'Scene Description: "{scene.description}"'


def format_character_analysis(analysis: StructuredCharacterAnalysis) -> str:
    face, hair, body, outfit = analysis.face, analysis.hair, analysis.body, analysis.outfit
    accessories = ", ".join(outfit.accessories) or "none"
    return "\n".join([
        f"  - **Hair:** Color: {hair.color}, Length: {hair.length}, Style: {hair.style}.",
        f"  - **Face:** Shape: {face.shape}, Skin Tone: {face.skin_tone}, "
        f"Eye Color: {face.eyes.color}, Apparent Age: {face.age}.",
        f"  - **Body:** Build: {body.build}, Height: {body.height}.",
        f"  - **Outfit:** {outfit.style}. Upper: {outfit.upper_body}, Lower: {outfit.lower_body}. "
        f"Key Accessories: {accessories}.",
        f"  - **Vibe:** {analysis.overall_vibe}.",
        "  - **Critical Reminder:** Hair color, eye color, and key accessories MUST match EXACTLY.",
    ])


def format_background_analysis(analysis: StructuredBackgroundAnalysis) -> str:
    location, lighting, colors = analysis.location, analysis.lighting, analysis.colors
    lines = [
        f"  - **Location Details:** Type: {location.type}, Setting: {location.setting}, "
        f"Architecture: {location.architecture}.",
        f"  - **Lighting:** {lighting.quality} lighting from {', '.join(lighting.source)} "
        f"at {lighting.time_of_day}. Mood: {lighting.mood}.",
        f"  - **Palette:** Dominantly {', '.join(colors.dominant)} with "
        f"{', '.join(colors.accents)} accents. Overall feel: {colors.palette}.",
    ]
    if analysis.objects:
        lines.append(f"  - **Key Objects:** {', '.join(o.item for o in analysis.objects)}.")
    return "\n".join(lines)


def format_art_style_analysis(analysis: StructuredArtStyleAnalysis) -> str:
    technique = analysis.technique
    color = analysis.color_application
    shading = analysis.shading_and_lighting
    return "\n".join([
        f"  - **Technique:** {technique.rendering} rendering with {technique.line_work} "
        f"and {technique.edge_quality} edges.",
        f"  - **Color:** {color.style} color application with {color.saturation} saturation.",
        f"  - **Shading:** {shading.shading_style} with {shading.contrast} contrast.",
        f"  - **Genre:** {analysis.style_genre}.",
        f"  - **Mood:** {analysis.mood}.",
    ])


def _character_block(character: Character) -> str:
    lines = [
        f"\n### Character: {character.name}",
        f"🔒 {character.name}'s appearance is LOCKED. Reproduce hair color, eye color, "
        "outfit and accessories EXACTLY as in the reference. Pose and expression come "
        "from the scene, never from the reference.",
    ]
    if character.image is None:
        lines.append(f"⚠️ WARNING: No reference image for {character.name}; rely on the description only.")

    if character.structured_analysis is not None:
        lines.append(format_character_analysis(character.structured_analysis))
    elif character.description:
        lines.append(character.description)
    else:
        lines.append(
            f"⚠️ WARNING: No appearance description for {character.name}; "
            "appearance must come from the reference image."
        )
    return "\n".join(lines)


def _background_block(background: Background) -> str:
    lines = [f"\n### Background: {background.name}"]
    if background.structured_analysis is not None:
        lines.append(format_background_analysis(background.structured_analysis))
    elif background.description:
        lines.append(background.description)
    else:
        lines.append(f"Match the setting shown in the \"{background.name}\" reference image.")
    return "\n".join(lines)


def _art_style_block(
    art_style_description: Optional[str],
    art_style_analysis: Optional[StructuredArtStyleAnalysis]
) -> str:
    detail = (
        format_art_style_analysis(art_style_analysis)
        if art_style_analysis is not None
        else art_style_description
    )
    return (
        "## 🖼️ ART STYLE (TECHNIQUE ONLY)\n"
        "Apply this style to HOW the illustration is drawn: rendering, line work, "
        "color application and shading. It does NOT dictate any character trait. "
        "Never take hair color, eye color, clothing or accessories from the art style.\n"
        f"{detail}"
    )


CLOSING_CHECKLIST = """## ✅ FINAL CHECKLIST
- Character identity is LOCKED: hair, eyes, outfit and accessories match the character references exactly.
- The art style informs technique only: line work, shading and rendering.
- The setting follows the background references above."""


def compose_prompt(
    scene: Scene,
    characters: List[Character],
    backgrounds: List[Background],
    art_style_description: Optional[str] = None,
    shot_type: Union[ShotType, str, None] = ShotType.AUTOMATIC,
    art_style_analysis: Optional[StructuredArtStyleAnalysis] = None,
) -> str:
    """
    Build the text prompt for a scene from its relevant references.

    Args:
        scene: Scene to illustrate
        characters: Characters already filtered for this scene
        backgrounds: Backgrounds already filtered for this scene
        art_style_description: Legacy art style description, if any
        shot_type: Requested framing; automatic adds no composition line
        art_style_analysis: Structured art style analysis, preferred over the description

    Returns:
        Deterministic multi-section prompt string
    """
    sections = []

    scene_section = "## 🎨 SCENE TO ILLUSTRATE\n" + scene_text(scene)
    composition = composition_instruction(shot_type)
    if composition:
        scene_section += f"\n{composition}"
    sections.append(scene_section)

    if characters:
        sections.append(
            "## 👤 CHARACTER REFERENCES\n"
            "Use the references ONLY for physical appearance. Ignore the pose, action "
            "and composition of the reference images."
            + "".join(_character_block(c) for c in characters)
        )

    if art_style_description or art_style_analysis is not None:
        sections.append(_art_style_block(art_style_description, art_style_analysis))

    if backgrounds:
        sections.append(
            "## 🏞️ BACKGROUNDS\n"
            "The setting must feel like it exists in the same world as these references."
            + "".join(_background_block(bg) for bg in backgrounds)
        )

    if characters:
        sections.append(CLOSING_CHECKLIST)

    return (
        "Your primary task is to create a single, high-quality illustration for the following scene.\n"
        + SECTION_RULE
        + SECTION_RULE.join(sections)
    )
