"""Configuration settings for the Curio feed ranker."""

from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load .env file
load_dotenv()

_PACKAGE_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LiteLLM Model Configuration
    llm_model: str = "gpt-4o-mini"
    llm_enabled: bool = True
    llm_timeout: float = 30.0
    llm_max_tokens: int = 4096
    llm_temperature: float = 0.2

    # Network
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    feed_timeout: float = 5.0  # feed and HTML fetches in the resolver
    metadata_timeout: float = 3.0  # og:image deep fetch
    page_timeout: float = 5.0  # full text fetch for adaptive crawl

    # Delivery
    max_articles: int = 200
    rubric_max_age_hours: float = 24.0

    # Paths
    project_root: Path = _PACKAGE_DIR.parent
    data_dir: Path = project_root / "data"
    output_dir: Path = project_root / "output" / "runs"
    defaults_file: Path = _PACKAGE_DIR / "config" / "defaults.yaml"

    class Config:
        env_file = ".env"
        extra = "ignore"


# Global settings instance
settings = Settings()
