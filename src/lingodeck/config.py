"""Configuration settings for the trainer."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
EXPORTS_DIR = DATA_DIR / "exports"

APP_VERSION = "2.1.0"

# Learning settings
BASE_INTERVALS = [1, 3, 7, 14, 30, 90]  # days between reviews
MAX_LEVEL = 5.0
SKILL_MULTIPLIERS = {1: 0.5, 2: 0.75, 3: 1.0}
SESSION_SIZES = [1, 3, 5, 0]  # 0 means "all"
LANGUAGE_PAIRS = {
    "cs-vi": "Czech → Vietnamese",
    "vi-zh": "Vietnamese → Chinese",
    "vi-en": "Vietnamese → English",
}


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        EXPORTS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    exports_dir: Path = EXPORTS_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///lingodeck.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


def get_storage_quota() -> Optional[int]:
    """Get the per-document storage quota in bytes, if any."""
    value = os.getenv("STORAGE_QUOTA_BYTES", "")
    return int(value) if value else None


@dataclass
class StorageSettings:
    """Key-value store settings."""
    quota_bytes: Optional[int] = field(default_factory=get_storage_quota)
    session_history_keep: int = int(os.getenv("SESSION_HISTORY_KEEP", "7"))


@dataclass
class CatalogSettings:
    """Vocabulary catalog settings."""
    base_url: str = os.getenv(
        "CATALOG_BASE_URL",
        "https://raw.githubusercontent.com/daniel-klesc/language-learning-app-vocabulary/main",
    )
    cache_ttl_ms: int = int(os.getenv("CATALOG_CACHE_TTL_MS", "86400000"))
    language_pairs: dict[str, str] = field(default_factory=lambda: dict(LANGUAGE_PAIRS))
    default_language_pair: str = os.getenv("DEFAULT_LANGUAGE_PAIR", "cs-vi")


@dataclass
class LearningSettings:
    """Learning process settings."""
    repetition_intervals: list[int] = field(default_factory=lambda: list(BASE_INTERVALS))
    max_level: float = MAX_LEVEL
    skill_multipliers: dict[int, float] = field(default_factory=lambda: dict(SKILL_MULTIPLIERS))
    beginner_penalty: float = 0.5
    default_penalty: float = 1.0
    promotion_streak: int = int(os.getenv("PROMOTION_STREAK", "3"))
    promotion_min_attempts: int = 3
    promotion_accuracy: float = float(os.getenv("PROMOTION_ACCURACY", "0.8"))
    daily_goal_new: int = int(os.getenv("DAILY_GOAL_NEW", "3"))
    daily_goal_review: int = int(os.getenv("DAILY_GOAL_REVIEW", "5"))
    min_goal_new: int = 2
    min_goal_review: int = 3
    max_goal_new: int = 10
    max_goal_review: int = 15
    daily_counter_slack: int = 10
    adaptive_min_sessions: int = 2
    adaptive_raise_accuracy: float = 85.0
    adaptive_lower_accuracy: float = 60.0
    session_sizes: list[int] = field(default_factory=lambda: list(SESSION_SIZES))


@dataclass
class MonitoringSettings:
    """Metrics exposition settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_storage_settings() -> StorageSettings:
    """Get storage settings."""
    return StorageSettings()


def get_catalog_settings() -> CatalogSettings:
    """Get catalog settings."""
    return CatalogSettings()


def get_learning_settings() -> LearningSettings:
    """Get learning settings."""
    return LearningSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    storage: StorageSettings = field(default_factory=get_storage_settings)
    catalog: CatalogSettings = field(default_factory=get_catalog_settings)
    learning: LearningSettings = field(default_factory=get_learning_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        learning = self.learning

        if not learning.repetition_intervals:
            raise ValueError("At least one repetition interval is required")

        if sorted(learning.repetition_intervals) != learning.repetition_intervals:
            raise ValueError("Repetition intervals must be ascending")

        if any(m <= 0 for m in learning.skill_multipliers.values()):
            raise ValueError("Skill multipliers must be positive")

        if not 0 < learning.promotion_accuracy <= 1:
            raise ValueError("PROMOTION_ACCURACY must be in (0, 1]")

        if learning.min_goal_new > learning.max_goal_new or \
           learning.min_goal_review > learning.max_goal_review:
            raise ValueError("Daily goal minimum cannot be greater than maximum")

        if not learning.min_goal_new <= learning.daily_goal_new <= learning.max_goal_new:
            raise ValueError("DAILY_GOAL_NEW must be between the configured bounds")

        if not learning.min_goal_review <= learning.daily_goal_review <= learning.max_goal_review:
            raise ValueError("DAILY_GOAL_REVIEW must be between the configured bounds")

        if self.catalog.default_language_pair not in self.catalog.language_pairs:
            raise ValueError("DEFAULT_LANGUAGE_PAIR must be one of the configured pairs")

        if self.storage.quota_bytes is not None and self.storage.quota_bytes <= 0:
            raise ValueError("STORAGE_QUOTA_BYTES must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
