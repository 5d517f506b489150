"""
Centralized logging configuration for the novel illustrator.

Log levels:
    DEBUG: Full prompts, request part layouts, cache keys
    INFO: Workflow progress (scene segmentation, generation, saves)
    WARNING: Fallbacks (placeholder title, scene count outside range)
    ERROR: Failed analyses, generations, edits and saves

The default level can be overridden with ILLUSTRATOR_LOG_LEVEL.

Usage:
    from logging_config import setup_logging

    logger = setup_logging(__name__)
    logger.info("Segmentation started")
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional


def resolve_level(level: Optional[int] = None) -> int:
    """Return the explicit level, else ILLUSTRATOR_LOG_LEVEL, else INFO."""
    if level is not None:
        return level
    name = os.environ.get("ILLUSTRATOR_LOG_LEVEL", "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    name: str,
    level: Optional[int] = None,
    log_file: Optional[Path] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Configure and return a logger instance.

    Args:
        name: Logger name (typically __name__ from calling module)
        level: Logging level (default: ILLUSTRATOR_LOG_LEVEL or INFO)
        log_file: Optional path to write logs to file
        console_output: Whether to output to console (default: True)

    Returns:
        Configured logger instance
    """
    level = resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
