"""
Configuration management for Brief Aggregation.

Uses Pydantic for validation and pydantic-settings for environment variable support.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration.

    Supports SQLite and PostgreSQL backends.

    For SQLite:
        - Only `path` is required (":memory:" gives a private in-memory database)
        - Environment variable: DB_PATH

    For PostgreSQL:
        - Set `type` to "postgresql"
        - Set `host`, `database`, `user`, `password`
        - Optional: `port`, `ssl_mode`
    """

    model_config = SettingsConfigDict(env_prefix="DB_")

    type: str = Field(default="sqlite", description="Database type: sqlite, postgresql")

    # SQLite configuration
    path: str = Field(default="data/brief_aggregation.db", description="Database file path (SQLite)")

    # PostgreSQL configuration
    host: str | None = Field(default=None, description="Database host")
    port: int | None = Field(default=None, description="Database port (default: 5432)")
    database: str | None = Field(default=None, description="Database name")
    user: str | None = Field(default=None, description="Database user")
    password: str | None = Field(default=None, description="Database password")
    ssl_mode: str | None = Field(default=None, description="SSL mode: disable/prefer/require")

    # Common settings
    echo: bool = Field(default=False, description="Echo SQL statements")
    pool_size: int = Field(default=5, ge=1, le=100, description="Connection pool size")
    max_overflow: int = Field(default=10, ge=0, description="Max overflow connections")

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        """Normalize and validate database type."""
        v = v.lower().strip()
        if v == "postgres":
            v = "postgresql"
        valid_types = ["sqlite", "postgresql"]
        if v not in valid_types:
            raise ValueError(f"Invalid database type: {v!r}. Must be one of {valid_types}")
        return v

    @field_validator("path")
    @classmethod
    def ensure_directory_exists(cls, v: str) -> str:
        """Ensure the database directory exists."""
        if v != ":memory:" and not v.startswith("sqlite://"):
            Path(v).parent.mkdir(parents=True, exist_ok=True)
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int | None) -> int | None:
        """Validate port number."""
        if v is not None and not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("ssl_mode")
    @classmethod
    def validate_ssl_mode(cls, v: str | None) -> str | None:
        """Validate SSL mode."""
        if v is None:
            return None

        v = v.lower()
        valid_modes = ["disable", "allow", "prefer", "require", "verify-ca", "verify-full"]
        if v not in valid_modes:
            raise ValueError(f"Invalid ssl_mode: {v!r}. Must be one of {valid_modes}")
        return v


class SchedulerConfig(BaseSettings):
    """Background job scheduler configuration."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    enabled: bool = Field(default=True, description="Enable scheduler")
    timezone: str = Field(default="UTC", description="Scheduler timezone")

    # Cycle intervals (in minutes)
    fetch_interval_minutes: int = Field(default=30, ge=1, description="Source fetch cycle interval")
    maintenance_interval_minutes: int = Field(
        default=24 * 60, ge=1, description="Retention cleanup interval"
    )
    digest_hour_utc: Optional[int] = Field(
        default=None, ge=0, le=23, description="Hour to assemble daily digests (None=disabled)"
    )

    # Job execution settings
    max_workers: int = Field(default=3, ge=1, le=20, description="Maximum concurrent workers")
    misfire_grace_time: int = Field(default=300, ge=0, description="Misfire grace time in seconds")
    coalesce: bool = Field(default=True, description="Coalesce misfired jobs")


class FetcherConfig(BaseSettings):
    """HTTP settings shared by every source adapter."""

    model_config = SettingsConfigDict(env_prefix="FETCHER_")

    timeout_seconds: int = Field(default=30, ge=1, le=300, description="Request timeout")
    user_agent: str = Field(
        default="Brief-Aggregation/0.1.0 (+https://github.com/brief-aggregation)",
        description="User-Agent header",
    )

    # Retry settings
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_delay_seconds: float = Field(default=2.0, ge=0)

    follow_redirects: bool = Field(default=True)
    max_redirects: int = Field(default=5, ge=0, le=20)

    # Content settings
    max_description_length: int = Field(
        default=5_000, ge=200, le=100_000, description="Maximum stored description length"
    )
    max_items_per_source: int = Field(
        default=50, ge=1, le=500, description="Max items to keep per fetch of one source"
    )


class RedditConfig(BaseSettings):
    """Reddit API credentials and listing settings."""

    model_config = SettingsConfigDict(env_prefix="REDDIT_")

    client_id: Optional[str] = Field(default=None, description="OAuth client id")
    client_secret: Optional[str] = Field(default=None, description="OAuth client secret")
    user_agent: str = Field(
        default="brief-aggregation/0.1 (by /u/brief-aggregation)",
        description="User-Agent required by the Reddit API",
    )
    listing: str = Field(default="hot", description="Listing to read: hot, new, top")
    limit: int = Field(default=25, ge=1, le=100, description="Posts per subreddit")

    @field_validator("listing")
    @classmethod
    def validate_listing(cls, v: str) -> str:
        """Validate listing name."""
        v = v.lower()
        if v not in ("hot", "new", "top", "rising"):
            raise ValueError(f"Invalid reddit listing: {v!r}")
        return v


class YouTubeConfig(BaseSettings):
    """YouTube Data API v3 settings."""

    model_config = SettingsConfigDict(env_prefix="YOUTUBE_")

    api_key: Optional[str] = Field(default=None, description="YouTube Data API key")
    api_base_url: str = Field(default="https://www.googleapis.com/youtube/v3")
    max_results: int = Field(default=10, ge=1, le=50, description="Uploads to list per channel")


class SocialConfig(BaseSettings):
    """Social posts (X/Twitter v2) settings."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_")

    bearer_token: Optional[str] = Field(default=None, description="API bearer token")
    api_base_url: str = Field(default="https://api.twitter.com/2")
    max_results: int = Field(default=10, ge=10, le=100)


class DeduplicatorConfig(BaseSettings):
    """Deduplication configuration."""

    model_config = SettingsConfigDict(env_prefix="DEDUP_")

    enabled: bool = Field(default=True, description="Enable deduplication")

    check_by_url: bool = Field(default=True, description="Deduplicate by exact URL")
    check_by_title: bool = Field(default=True, description="Deduplicate by title similarity")

    title_similarity_threshold: float = Field(
        default=0.8, ge=0.0, le=1.0, description="Word-overlap similarity treated as duplicate"
    )
    title_prefix_length: int = Field(
        default=20, ge=1, le=200, description="Leading title substring used to pre-filter candidates"
    )
    max_candidates: int = Field(default=5, ge=1, le=50, description="Fuzzy candidates compared")


class HealthConfig(BaseSettings):
    """Feed health tracking and retention configuration."""

    model_config = SettingsConfigDict(env_prefix="HEALTH_")

    recent_errors_considered: int = Field(
        default=5, ge=1, le=100, description="Most recent errors inspected"
    )
    error_threshold: int = Field(
        default=3, ge=1, le=100, description="Errors inside the window that suspend a source"
    )
    window_minutes: int = Field(default=60, ge=1, description="Rolling window in minutes")

    error_retention_days: int = Field(default=7, ge=1, description="Days to keep error records")
    content_retention_days: int = Field(default=30, ge=1, description="Days to keep content items")


class RelevanceConfig(BaseSettings):
    """Relevance oracle configuration."""

    model_config = SettingsConfigDict(env_prefix="RELEVANCE_")

    enabled: bool = Field(default=True, description="Use the remote oracle when configured")
    api_url: str = Field(
        default="https://api.openai.com/v1/chat/completions",
        description="OpenAI-compatible chat completions endpoint",
    )
    api_key: Optional[str] = Field(default=None, description="Oracle API key")
    model: str = Field(default="gpt-4o-mini", description="Model name")
    timeout_seconds: int = Field(default=60, ge=1, le=600, description="Oracle call timeout")
    batch_size: int = Field(default=20, ge=1, le=200, description="Items per oracle request")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)

    # Fallback settings
    summary_length: int = Field(default=200, ge=20, le=2000, description="Fallback summary length")
    default_score: float = Field(default=0.5, ge=0.0, le=1.0)
    default_category: str = Field(default="General")


class DigestConfig(BaseSettings):
    """Digest assembly configuration."""

    model_config = SettingsConfigDict(env_prefix="DIGEST_")

    top_stories: int = Field(default=10, ge=1, le=100, description="Top stories per digest")
    time_window_hours: int = Field(default=24, ge=1, le=24 * 30, description="Content window")
    max_items_per_feed: int = Field(default=3, ge=1, le=100, description="Balanced items per feed")
    total_max_items: int = Field(default=50, ge=1, le=500, description="Max items per digest")
    balance_feeds: bool = Field(default=True, description="Cap items per feed by engagement")
    min_relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format",
    )

    # File logging
    file_enabled: bool = Field(default=True, description="Enable file logging")
    file_path: str = Field(default="logs/brief_aggregation.log", description="Log file path")
    rotation: str = Field(default="100 MB", description="Log rotation size")
    retention: str = Field(default="30 days", description="Log retention period")

    # Console logging
    console_enabled: bool = Field(default=True, description="Enable console logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v


class WebConfig(BaseSettings):
    """Web API configuration."""

    model_config = SettingsConfigDict(env_prefix="WEB_")

    host: str = Field(default="127.0.0.1", description="Web server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Web server port")
    debug: bool = Field(default=False, description="Debug mode")
    secret_key: str = Field(default="dev-secret-key", description="Secret key for sessions")
    start_scheduler: bool = Field(default=False, description="Start background jobs with the app")


_SECTION_CLASSES = {
    "database": DatabaseConfig,
    "scheduler": SchedulerConfig,
    "fetcher": FetcherConfig,
    "reddit": RedditConfig,
    "youtube": YouTubeConfig,
    "social": SocialConfig,
    "deduplicator": DeduplicatorConfig,
    "health": HealthConfig,
    "relevance": RelevanceConfig,
    "digest": DigestConfig,
    "logging": LoggingConfig,
    "web": WebConfig,
}


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BRIEF_",
        case_sensitive=False,
    )

    version: str = Field(default="0.1.0", description="Application version")
    app_name: str = Field(default="Brief Aggregation", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    reddit: RedditConfig = Field(default_factory=RedditConfig)
    youtube: YouTubeConfig = Field(default_factory=YouTubeConfig)
    social: SocialConfig = Field(default_factory=SocialConfig)
    deduplicator: DeduplicatorConfig = Field(default_factory=DeduplicatorConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    relevance: RelevanceConfig = Field(default_factory=RelevanceConfig)
    digest: DigestConfig = Field(default_factory=DigestConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def load_config_from_yaml(yaml_path: str) -> Config:
    """Load configuration from a YAML file.

    Nested sections are rebuilt through their own settings classes so that
    environment variables still apply to keys the file leaves out.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        Config instance loaded from the file.
    """
    import yaml

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with yaml_file.open("r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    main_config = {}
    for key, value in config_dict.items():
        if key not in _SECTION_CLASSES:
            main_config[key] = value

    for key, config_class in _SECTION_CLASSES.items():
        main_config[key] = config_class(**(config_dict.get(key) or {}))

    return Config(**main_config)


def reload_config() -> Config:
    """Reload configuration from environment and YAML files."""
    global _config
    _config = None

    config_yaml = Path("config/config.yaml")
    if config_yaml.exists():
        _config = load_config_from_yaml(str(config_yaml))
    else:
        _config = Config()

    return _config
