"""Vision-model instructions for reference analysis.

Each instruction asks for a single JSON object matching the schema of its
reference kind. Keys are camelCase to match the stored representation.
"""

CHARACTER_ANALYSIS_PROMPT = """Analyze this character image and describe the visual characteristics needed to recreate the SAME character consistently across many illustrations.

Return ONLY a JSON object with exactly this structure (all fields required unless marked optional):

{
  "face": {
    "shape": "face shape, e.g. heart-shaped, oval",
    "age": "apparent age, e.g. early 20s",
    "skinTone": "specific skin tone",
    "eyes": {"color": "specific shade", "shape": "eye shape", "size": "eye size"},
    "nose": "nose description",
    "mouth": "mouth description",
    "distinctiveMarks": ["optional: scars, freckles, moles"]
  },
  "hair": {
    "color": "specific shade, including highlights or dip-dye",
    "length": "hair length",
    "style": "cut and styling",
    "parting": "parting or bangs",
    "texture": "straight, wavy, curly...",
    "accessories": ["optional: clips, ribbons, headbands"]
  },
  "body": {"build": "slim, athletic...", "height": "approximate height", "posture": "typical posture"},
  "outfit": {
    "upperBody": "top garment and color",
    "lowerBody": "bottom garment and color",
    "accessories": ["glasses, jewelry, bags"],
    "colors": ["main outfit colors"],
    "style": "overall fashion style"
  },
  "overallVibe": "one sentence: personality impression and typical expression"
}

Be specific with colors and key features. Describe only what is visible. Do not describe pose or background."""

BACKGROUND_ANALYSIS_PROMPT = """Analyze this background/setting image and describe the environmental elements needed to recreate the SAME setting consistently across many illustrations.

Return ONLY a JSON object with exactly this structure (all fields required):

{
  "location": {
    "type": "castle, forest, bedroom...",
    "setting": "indoor/outdoor and broader context",
    "architecture": "architectural or natural style and materials"
  },
  "lighting": {
    "source": ["light sources, e.g. sunlight through windows"],
    "quality": "soft, harsh, diffuse...",
    "timeOfDay": "time of day",
    "mood": "warm, cool, ominous..."
  },
  "colors": {
    "dominant": ["2-3 dominant colors"],
    "accents": ["accent colors"],
    "palette": "overall palette feel"
  },
  "objects": [
    {"item": "object name", "description": "short description", "prominence": "foreground/midground/background"}
  ],
  "atmosphere": "one sentence on the overall atmosphere"
}

List only the most defining objects. Do not describe people."""

ART_STYLE_ANALYSIS_PROMPT = """Analyze the ARTISTIC TECHNIQUE of this image so the same style can be applied to other illustrations.

Describe HOW the image is drawn, NOT WHAT it depicts. Never describe the hair color, clothing, eye color or accessories of any person in the image.

Return ONLY a JSON object with exactly this structure (all fields required):

{
  "medium": "digital painting, watercolor, cel-shaded anime...",
  "technique": {
    "rendering": "painterly, flat, semi-realistic...",
    "lineWork": "line weight and quality",
    "edgeQuality": "crisp, soft, lost-and-found..."
  },
  "colorApplication": {
    "style": "flat fills, gradients, textured brush...",
    "saturation": "muted, vibrant...",
    "blending": "how colors transition"
  },
  "shadingAndLighting": {
    "shadingStyle": "cel, gradient, painterly...",
    "contrast": "low, medium, high",
    "lightingType": "rim light, ambient, dramatic..."
  },
  "styleGenre": "e.g. shoujo manga, western comic, storybook",
  "mood": "overall feel of the style",
  "distinctiveFeatures": ["technique traits that make this style recognizable"]
}"""

SCENE_SEGMENTATION_PROMPT = """You are a storyboard artist. Read the novel text below and choose the moments that deserve an illustration.

RULES:
- Choose between 3 and 8 scenes.
- Favor moments of visual action and emotional turning points over pure dialogue.
- Distribute the scenes across the narrative arc: introduction, development, climax, resolution.
- Each scene is one self-contained paragraph describing who is present, what they are doing, the setting, the lighting and the mood.
- Use the characters' names exactly as they appear in the text.
- Keep the scenes in story order."""

SCENE_LIST_FORMAT = """Return ONLY a JSON object of the form:
{"scenes": ["scene paragraph 1", "scene paragraph 2", ...]}"""

STRUCTURED_SCENE_FORMAT = """Return ONLY a JSON object of the form:
{
  "scenes": [
    {
      "summary": "one paragraph describing the scene",
      "sourceExcerpt": "the verbatim passage the scene is based on",
      "characters": [
        {"name": "exact name", "action": "what they do", "expression": "facial expression", "posture": "body posture", "position": "where in frame"}
      ],
      "environment": {"location": "place name", "timeOfDay": "...", "lighting": "...", "weather": "optional", "atmosphere": "..."},
      "importantObjects": [{"item": "...", "description": "...", "importance": "why it matters"}],
      "mood": {"emotionalTone": "...", "tensionLevel": "low/medium/high", "keyFeeling": "..."},
      "interactions": [{"characters": ["name", "name"], "type": "conversation/confrontation/support", "description": "...", "physicalDistance": "..."}]
    }
  ]
}
Use the same location name for scenes that happen in the same place."""

TITLE_PROMPT = """Based on the following novel text, create a short, descriptive title (4-5 words maximum) for this project.

Novel Text:
```
{excerpt}
```

Title:"""
