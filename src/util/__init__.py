"""Shared utilities: Gemini client helpers."""
