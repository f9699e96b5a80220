"""
Configuration for the recipe-share API.

Settings come from ``RECIPES_``-prefixed environment variables, optionally
loaded from a ``.env`` file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


@dataclass
class Config:
    """Application configuration settings"""

    # Database
    database_url: str = "sqlite:///./recipes.db"

    # Authentication
    session_duration_hours: int = 24
    password_min_length: int = 6

    # HTTP server
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    # Reviews
    reviews_page_size: int = 10

    # Logging
    log_level: str = "INFO"
    log_file: str = ""

    @classmethod
    def from_environment(cls) -> "Config":
        """Create configuration from environment variables"""
        load_dotenv()
        origins = os.getenv("RECIPES_CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("RECIPES_DATABASE_URL", "sqlite:///./recipes.db"),
            session_duration_hours=int(os.getenv("RECIPES_SESSION_HOURS", "24")),
            password_min_length=int(os.getenv("RECIPES_PASSWORD_MIN_LENGTH", "6")),
            host=os.getenv("RECIPES_HOST", "127.0.0.1"),
            port=int(os.getenv("RECIPES_PORT", "8000")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            reviews_page_size=int(os.getenv("RECIPES_REVIEWS_PAGE_SIZE", "10")),
            log_level=os.getenv("RECIPES_LOG_LEVEL", "INFO"),
            log_file=os.getenv("RECIPES_LOG_FILE", ""),
        )

    def ensure_directories(self):
        """Create the parent directories of the log file and SQLite database"""
        paths = []
        if self.log_file:
            paths.append(Path(self.log_file).parent)
        if self.database_url.startswith("sqlite:///") and ":memory:" not in self.database_url:
            paths.append(Path(self.database_url[len("sqlite:///"):]).parent)
        for directory in paths:
            if directory != Path("."):
                directory.mkdir(parents=True, exist_ok=True)


_config: Optional[Config] = None


def get_config() -> Config:
    """Get global configuration instance"""
    global _config
    if _config is None:
        _config = Config.from_environment()
        _config.ensure_directories()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment"""
    global _config
    _config = None
    return get_config()
