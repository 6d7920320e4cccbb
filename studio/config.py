"""Runtime configuration for ProShot Studio.

Values come from the environment (a ``.env`` file at the project root is
loaded on import).  The constants below are the defaults; ``StudioConfig``
bundles them so the session and the queue controller can be built with
different values in tests.

Environment variables
---------------------
GEMINI_API_KEY / GOOGLE_API_KEY   credential for the image model
IMAGE_MODEL                       model id (default ``gemini-3-pro-image-preview``)
IMAGE_SIZE                        resolution tier (default ``2K``)
PROSHOT_DATA_DIR                  rating log and presets
PROSHOT_EXPORT_DIR                where exported results are written
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# ── Defaults ────────────────────────────────────────────────────────────────

MAX_QUEUE_SIZE = 30  # queued + generating
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
THROTTLE_SECONDS = 1.0
RATE_LIMIT_COOLDOWN_SECONDS = 10.0
HIGH_RATING_THRESHOLD = 4
GROUNDED_THRESHOLD = 5  # elevation percentage still considered touching the floor

DEFAULT_IMAGE_MODEL = "gemini-3-pro-image-preview"
DEFAULT_IMAGE_SIZE = "2K"


def get_api_key() -> str | None:
    """Return the configured Gemini API key, or None when unset."""
    key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    return key.strip() if key and key.strip() else None


class StudioConfig(BaseModel):
    max_queue_size: int = MAX_QUEUE_SIZE
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    throttle_seconds: float = THROTTLE_SECONDS
    rate_limit_cooldown_seconds: float = RATE_LIMIT_COOLDOWN_SECONDS
    data_dir: Path = _PROJECT_ROOT / "data"
    export_dir: Path = _PROJECT_ROOT / "exports"
    image_model: str = DEFAULT_IMAGE_MODEL
    image_size: str = DEFAULT_IMAGE_SIZE

    @classmethod
    def from_env(cls) -> StudioConfig:
        """Build a config from environment variables, falling back to defaults."""
        config = cls(
            data_dir=Path(os.getenv("PROSHOT_DATA_DIR", str(_PROJECT_ROOT / "data"))),
            export_dir=Path(os.getenv("PROSHOT_EXPORT_DIR", str(_PROJECT_ROOT / "exports"))),
            image_model=os.getenv("IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            image_size=os.getenv("IMAGE_SIZE", DEFAULT_IMAGE_SIZE),
        )
        logger.debug("Loaded studio config: %s", config)
        return config
