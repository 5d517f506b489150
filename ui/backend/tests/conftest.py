"""Pytest configuration for UI backend tests."""
import sys
import pytest
from pathlib import Path

# Add backend root to path so imports work
backend_root = Path(__file__).parent.parent
sys.path.insert(0, str(backend_root))

# Shared Gemini fakes live with the main project tests
project_root = backend_root.parent.parent
sys.path.insert(0, str(project_root / "tests"))
sys.path.insert(0, str(project_root / "src"))

from gemini_fakes import PNG_BASE64  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Never reach the real Gemini API from router tests."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from app.main import app

    return TestClient(app)


@pytest.fixture
def image_payload():
    """ImageFile as the frontend sends it."""
    return {"mimeType": "image/png", "base64": PNG_BASE64, "name": "ref.png"}
