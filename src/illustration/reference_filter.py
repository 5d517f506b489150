"""Decide which character and background references belong in a scene.

Pure functions: relevance is recomputed for every generation attempt and
never stored. Roster order is preserved in the results.
"""

import re
from typing import List, Optional, Pattern, Set

from models.story import Background, Character, Scene


def _normalize(name: Optional[str]) -> str:
    return (name or "").strip().lower()


def name_pattern(name: str) -> Pattern[str]:
    """
    Case-insensitive whole-word pattern for a name.

    Regex metacharacters in the name match literally. Word boundaries are
    lookarounds rather than ``\\b`` so names that begin or end with
    punctuation ("Dr. Vale", "R2-") still match.
    """
    return re.compile(rf"(?<!\w){re.escape(name.strip())}(?!\w)", re.IGNORECASE)


def mentions_name(text: Optional[str], name: Optional[str]) -> bool:
    """True if ``name`` occurs in ``text`` as a whole word, ignoring case."""
    if not text or not name or not name.strip():
        return False
    return name_pattern(name).search(text) is not None


def _scene_location(scene: Optional[Scene]) -> str:
    if scene is None or scene.structured_description is None:
        return ""
    return _normalize(scene.structured_description.location)


def _candidate_names(scene: Scene, previous_scene: Optional[Scene]) -> Set[str]:
    candidates: Set[str] = set()
    structured = scene.structured_description
    if structured is not None:
        candidates.update(_normalize(n) for n in structured.character_names)

    # Characters carry over from the previous scene when the location is unchanged
    location = _scene_location(scene)
    if location and previous_scene is not None and location == _scene_location(previous_scene):
        candidates.update(_normalize(n) for n in previous_scene.structured_description.character_names)

    candidates.discard("")
    return candidates


def select_relevant_characters(
    scene: Scene,
    roster: List[Character],
    previous_scene: Optional[Scene] = None
) -> List[Character]:
    """
    Characters from ``roster`` that appear in ``scene``.

    Structured character names are matched by prefix in either direction
    ("Kai" matches "Kai Tanaka" and vice versa). When that yields nothing,
    roster names are matched as whole words against the scene description.
    """
    candidates = _candidate_names(scene, previous_scene)

    matched: List[Character] = []
    if candidates:
        for character in roster:
            roster_name = _normalize(character.name)
            if not roster_name:
                continue
            if any(c.startswith(roster_name) or roster_name.startswith(c) for c in candidates):
                matched.append(character)

    if matched:
        return matched

    return [c for c in roster if mentions_name(scene.description, c.name)]


def select_relevant_backgrounds(scene: Scene, roster: List[Background]) -> List[Background]:
    """
    Backgrounds from ``roster`` that match the scene's location.

    A background matches when its name is contained in the structured
    location ("forest" in "forest at dusk"). Falls back to whole-word
    matching against the scene description.
    """
    location = _scene_location(scene)
    matched: List[Background] = []
    if location:
        matched = [
            bg for bg in roster
            if _normalize(bg.name) and _normalize(bg.name) in location
        ]

    if matched:
        return matched

    return [bg for bg in roster if mentions_name(scene.description, bg.name)]
