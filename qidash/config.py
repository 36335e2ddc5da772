"""Configuration for the dashboard and the cohort store."""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent.parent

# Load environment variables from .env file
env_path = PROJECT_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)
else:
    template_path = PROJECT_ROOT / ".env.template"
    if template_path.exists():
        load_dotenv(template_path)


class Config:
    """Application configuration."""

    LOG_LEVEL: str = os.getenv("QIDASH_LOG_LEVEL", "INFO").upper()

    # JSON file backing the cohort store; unset keeps the cohort in memory only
    STORE_PATH: Optional[str] = os.getenv("QIDASH_STORE_PATH") or None

    # Generator defaults shown in the dashboard sidebar
    DEFAULT_SEED: int = int(os.getenv("QIDASH_DEFAULT_SEED", "42"))
    DEFAULT_PARTICIPANTS: int = int(os.getenv("QIDASH_DEFAULT_PARTICIPANTS", "50"))

    @classmethod
    def store_path(cls) -> Optional[Path]:
        if not cls.STORE_PATH:
            return None
        return Path(os.path.expanduser(cls.STORE_PATH))


config = Config()
