#!/usr/bin/env python3
"""
Illustrate a novel from the command line.

This script:
1. Splits the novel text into illustration-worthy scenes
2. Analyzes the given character/background/art style reference images
3. Composes a prompt for every scene
4. Generates each scene's illustration, one at a time
5. Saves images, prompts and scene metadata to the output directory

Usage:
    uv run python scripts/illustrate_novel.py --novel-file chapter1.txt
    uv run python scripts/illustrate_novel.py --novel-file chapter1.txt \\
        --character Mira=refs/mira.png --background "forest=refs/forest.jpg" \\
        --art-style refs/style.png --aspect-ratio 16:9
"""

import argparse
import asyncio
import json
import mimetypes
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Tuple

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from api import IllustrationSession  # noqa: E402
from exceptions import IllustratorError  # noqa: E402
from logging_config import setup_logging  # noqa: E402
from models.story import AspectRatio, ImageFile, ShotType  # noqa: E402

logger = setup_logging(__name__)


def load_image(path: Path) -> ImageFile:
    mime_type = mimetypes.guess_type(path.name)[0] or "image/png"
    return ImageFile.from_bytes(path.read_bytes(), mime_type=mime_type, name=path.name)


def parse_named_paths(values: List[str]) -> List[Tuple[str, Path]]:
    """Parse NAME=PATH arguments."""
    pairs = []
    for value in values or []:
        name, sep, path = value.partition("=")
        if not sep or not name.strip() or not path.strip():
            raise argparse.ArgumentTypeError(f"Expected NAME=PATH, got '{value}'")
        pairs.append((name.strip(), Path(path.strip())))
    return pairs


async def illustrate(args: argparse.Namespace) -> dict:
    """Run the whole workflow; returns processing statistics."""
    novel_text = Path(args.novel_file).read_text(encoding="utf-8")
    output_dir = Path(args.output_dir)
    images_dir = output_dir / "images"
    images_dir.mkdir(parents=True, exist_ok=True)

    if args.remote:
        session = IllustrationSession.from_env(cache_dir=output_dir / ".cache")
        await session.start()
    else:
        session = IllustrationSession(cache_dir=output_dir / ".cache")

    story = session.create_story(novel_text=novel_text)

    # Step 1: References
    logger.info("Step 1: Analyzing reference images...")
    for name, path in parse_named_paths(args.character):
        await session.references.add_character(story.id, name, load_image(path))
        logger.info(f"  Character: {name}")
    for name, path in parse_named_paths(args.background):
        await session.references.add_background(story.id, name, load_image(path))
        logger.info(f"  Background: {name}")
    if args.art_style:
        await session.references.set_art_style(story.id, load_image(Path(args.art_style)))
        logger.info("  Art style analyzed")

    # Step 2: Scenes
    logger.info("Step 2: Segmenting novel into scenes...")
    story = await session.analyze_novel(story.id)
    logger.info(f"  Title: {story.title}")
    logger.info(f"  Found {len(story.scenes)} scenes")

    for scene in story.scenes:
        session.orchestrator.set_shot_type(story.id, scene.id, args.shot_type)
        session.orchestrator.set_aspect_ratio(story.id, scene.id, args.aspect_ratio)

    # Step 3: Prompts (and images unless --prompts-only)
    if args.prompts_only:
        logger.info("Step 3: Composing prompts...")
        for scene in story.scenes:
            await session.generate_scene(story.id, scene.id)
        completed, failed = [], {}
    else:
        logger.info("Step 3: Generating illustrations (sequentially)...")
        result = await session.generate_all(
            story.id,
            on_progress=lambda current, total: logger.info(f"  [{current}/{total}] done"),
        )
        completed, failed = result.completed, result.failed

    # Step 4: Save outputs
    logger.info("Step 4: Saving images and metadata...")
    story = session.get_story(story.id)
    scenes_metadata = []
    for i, scene in enumerate(story.scenes, start=1):
        image_file = None
        if scene.image_url:
            image = ImageFile.from_data_url(scene.image_url)
            extension = mimetypes.guess_extension(image.mime_type) or ".png"
            image_file = f"images/scene_{i:03d}{extension}"
            (output_dir / image_file).write_bytes(image.data)
        scenes_metadata.append({
            "id": scene.id,
            "description": scene.description,
            "prompt": scene.custom_prompt,
            "generated_prompt": scene.generated_prompt,
            "status": scene.status.value,
            "image_file": image_file,
            "error": failed.get(scene.id),
        })

    metadata_file = output_dir / "scenes_metadata.json"
    with open(metadata_file, "w", encoding="utf-8") as f:
        json.dump({
            "generated_at": datetime.now().isoformat(),
            "title": story.title,
            "total_scenes": len(story.scenes),
            "scenes": scenes_metadata,
        }, f, indent=2)
    logger.info(f"  Saved metadata to: {metadata_file}")

    await session.close()
    return {
        "title": story.title,
        "scenes_found": len(story.scenes),
        "images_generated": len(completed),
        "failures": len(failed),
        "metadata_file": str(metadata_file),
    }


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Segment a novel and illustrate every scene")
    parser.add_argument("--novel-file", required=True, help="Plain text file with the novel")
    parser.add_argument("--output-dir", default="output/illustrations", help="Where to save images and metadata")
    parser.add_argument("--character", action="append", default=[], metavar="NAME=PATH",
                        help="Character reference image (repeatable)")
    parser.add_argument("--background", action="append", default=[], metavar="NAME=PATH",
                        help="Background reference image (repeatable)")
    parser.add_argument("--art-style", help="Art style sample image")
    parser.add_argument("--shot-type", default=ShotType.AUTOMATIC.value,
                        choices=[s.value for s in ShotType])
    parser.add_argument("--aspect-ratio", default=AspectRatio.SQUARE.value,
                        choices=[a.value for a in AspectRatio])
    parser.add_argument("--prompts-only", action="store_true",
                        help="Compose prompts for review without generating images")
    parser.add_argument("--remote", action="store_true",
                        help="Mirror the story to Supabase (SUPABASE_URL / SUPABASE_KEY)")

    args = parser.parse_args()

    try:
        stats = asyncio.run(illustrate(args))
    except (IllustratorError, argparse.ArgumentTypeError) as e:
        logger.error(f"Illustration failed: {e}")
        sys.exit(1)

    logger.info(
        f"Done: '{stats['title']}', {stats['images_generated']}/{stats['scenes_found']} "
        f"scenes illustrated ({stats['failures']} failed)"
    )


if __name__ == "__main__":
    main()
