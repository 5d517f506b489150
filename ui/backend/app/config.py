"""Configuration for the illustrator backend."""
import sys
from pathlib import Path

# Add project src to path
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


class Settings:
    """Application settings."""

    SERVICE_NAME = "novel-illustrator-api"
    API_TITLE = "Novel Illustrator API"
    API_VERSION = "0.1.0"

    # Vite dev server ports
    CORS_ORIGINS = ["http://localhost:5173", "http://localhost:5174"]


# Global settings instance
settings = Settings()
