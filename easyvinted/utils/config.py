"""Configuration management system using Pydantic v2 and YAML.

This module provides type-safe configuration loading with validation
for the EasyVinted publisher. Values come from a YAML file and can be
overridden by the environment variables the worker has always used
(``VINTED_EMAIL``, ``SUPABASE_URL``, ``HEADLESS`` ...).
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .exceptions import ConfigurationError


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class FailurePolicy(str, Enum):
    """What happens to an article when its publication fails."""

    REVERT_TO_DRAFT = "revert_to_draft"
    LEAVE_UNCHANGED = "leave_unchanged"


class Viewport(BaseModel):
    """Browser viewport size."""

    width: int = Field(default=1280, ge=320)
    height: int = Field(default=720, ge=240)


class VintedConfig(BaseModel):
    """Configuration for the marketplace browser session."""

    base_url: str = Field(default="https://www.vinted.fr", description="Marketplace home page")
    login_path: str = Field(default="/member/login", description="Login page path")
    new_item_path: str = Field(default="/items/new", description="New listing form path")
    headless: bool = Field(default=True, description="Run browser in headless mode")
    slow_mo_ms: int = Field(default=100, ge=0, description="Delay injected between browser actions")
    locale: str = Field(default="fr-FR")
    timezone_id: str = Field(default="Europe/Paris")
    viewport: Viewport = Field(default_factory=Viewport)
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    session_file: str = Field(
        default="./playwright-state/vinted-session.json",
        description="Path of the persisted cookie session",
    )
    navigation_timeout_ms: int = Field(default=30000, ge=1000)
    submit_timeout_ms: int = Field(default=30000, ge=1000)

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an absolute http(s) URL without trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator('login_path', 'new_item_path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Ensure paths are rooted."""
        return v if v.startswith("/") else f"/{v}"

    @property
    def login_url(self) -> str:
        return f"{self.base_url}{self.login_path}"

    @property
    def new_item_url(self) -> str:
        return f"{self.base_url}{self.new_item_path}"


class PublisherConfig(BaseModel):
    """Configuration for the publication batch and the listing form."""

    max_articles_per_run: int = Field(default=5, ge=1, description="Maximum jobs per run")
    delay_between_posts_ms: int = Field(default=60000, ge=0, description="Pause between two publications")
    delay_jitter_ms: int = Field(default=0, ge=0, description="Random extra pause added to the delay")
    form_settle_ms: int = Field(default=2000, ge=0, description="Fallback wait for the form to render")
    upload_settle_ms: int = Field(default=1500, ge=0, description="Fallback wait after a photo upload")
    readiness_timeout_ms: int = Field(default=10000, ge=0, description="Upper bound for readiness polling")
    temp_dir: Optional[str] = Field(default=None, description="Directory for downloaded photos")
    validate_photos: bool = Field(default=True, description="Check downloaded photos with Pillow")
    manual_form_fill: bool = Field(default=False, description="Pause for the operator instead of filling fields")
    failure_policy: FailurePolicy = Field(default=FailurePolicy.REVERT_TO_DRAFT)
    show_progress: bool = Field(default=True, description="Display a progress bar over the batch")

    @model_validator(mode='after')
    def validate_readiness_timeout(self) -> 'PublisherConfig':
        """Readiness polling is either disabled (0) or long enough to poll."""
        if 0 < self.readiness_timeout_ms < 100:
            raise ValueError("readiness_timeout_ms must be 0 (disabled) or at least 100")
        return self


class QueueConfig(BaseModel):
    """Configuration for the Supabase-backed job queue."""

    supabase_url: Optional[str] = Field(default=None)
    supabase_key: Optional[str] = Field(default=None, description="Service role key")
    jobs_table: str = Field(default="publication_jobs")
    articles_table: str = Field(default="articles")
    settings_table: str = Field(default="user_settings")
    logs_table: str = Field(default="publication_logs")


class CredentialsConfig(BaseModel):
    """Marketplace account credentials and the key protecting stored passwords."""

    email: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None, repr=False)
    encryption_key: Optional[str] = Field(default=None, repr=False)


class AppConfig(BaseModel):
    """Root configuration model containing all sub-configurations."""

    vinted: VintedConfig = Field(default_factory=VintedConfig)
    publisher: PublisherConfig = Field(default_factory=PublisherConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Choose from: {valid_levels}")
        return v_upper

    @classmethod
    def from_yaml(cls, path: Path | str, apply_env: bool = False) -> 'AppConfig':
        """Build a configuration from a YAML file.

        Args:
            path: YAML file path
            apply_env: Also apply environment variable overrides
        """
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if apply_env:
            data = _apply_env_overrides(data)
        return cls.model_validate(data)

    def require_credentials(self) -> None:
        """Fail fast when the marketplace account is not configured."""
        missing = []
        if not self.credentials.email:
            missing.append("VINTED_EMAIL")
        if not self.credentials.password:
            missing.append("VINTED_PASSWORD")
        if missing:
            raise ConfigurationError(
                f"Missing marketplace credentials: {', '.join(missing)}",
                missing=missing,
            )

    def require_queue(self) -> None:
        """Fail fast when the job queue connection is not configured."""
        missing = []
        if not self.queue.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.queue.supabase_key:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        if missing:
            raise ConfigurationError(
                f"Missing job queue connection settings: {', '.join(missing)}",
                missing=missing,
            )


# Environment variable -> (section, key, converter)
ENV_OVERRIDES = {
    "VINTED_EMAIL": ("credentials", "email", str),
    "VINTED_PASSWORD": ("credentials", "password", str),
    "ENCRYPTION_KEY": ("credentials", "encryption_key", str),
    "SUPABASE_URL": ("queue", "supabase_url", str),
    "SUPABASE_SERVICE_ROLE_KEY": ("queue", "supabase_key", str),
    "HEADLESS": ("vinted", "headless", lambda v: v.strip().lower() != "false"),
    "VINTED_SESSION_PATH": ("vinted", "session_file", str),
    "MAX_ARTICLES_PER_RUN": ("publisher", "max_articles_per_run", int),
    "DELAY_BETWEEN_POSTS_MS": ("publisher", "delay_between_posts_ms", int),
    "LOG_LEVEL": (None, "log_level", str),
}


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay environment variables on raw configuration data."""
    data = dict(data)
    for env_name, (section, key, convert) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            value = convert(raw)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid value for {env_name}: {raw!r}",
                context={"variable": env_name},
            ) from e
        if section is None:
            data[key] = value
        else:
            section_data = dict(data.get(section) or {})
            section_data[key] = value
            data[section] = section_data
    return data


# Singleton pattern for configuration
_config: Optional[AppConfig] = None


def load_config(config_path: Optional[Path | str] = None) -> AppConfig:
    """Load and validate configuration from YAML file and environment.

    Args:
        config_path: Path to configuration file. Defaults to the
                    EASYVINTED_CONFIG env var, then config/config.yaml
                    relative to project root

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If an explicitly requested config file doesn't exist
        ValueError: If configuration is invalid
    """
    explicit = config_path is not None
    if config_path is None:
        env_config_path = os.environ.get('EASYVINTED_CONFIG')
        if env_config_path:
            config_path = Path(env_config_path)
            explicit = True
        else:
            project_root = Path(__file__).parent.parent.parent
            config_path = project_root / "config" / "config.yaml"
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path, 'r', encoding='utf-8') as f:
            config_dict = yaml.safe_load(f) or {}
    elif explicit:
        example_path = config_path.parent / "config.example.yaml"
        raise FileNotFoundError(
            f"Configuration file not found: {config_path}\n"
            f"Please copy {example_path} to {config_path} and customize it.\n"
            f"Alternatively, unset EASYVINTED_CONFIG and configure through environment variables."
        )
    else:
        # Environment-only deployments (cron jobs, containers)
        config_dict = {}

    return AppConfig.model_validate(_apply_env_overrides(config_dict))


def get_config(config_path: Optional[Path | str] = None, reload: bool = False) -> AppConfig:
    """Get configuration instance (singleton pattern).

    Args:
        config_path: Path to configuration file (only used on first call or if reload=True)
        reload: Force reload of configuration

    Returns:
        Cached or newly loaded AppConfig instance
    """
    global _config

    if _config is None or reload:
        _config = load_config(config_path)

    return _config


def reset_config() -> None:
    """Reset cached configuration (useful for testing)."""
    global _config
    _config = None
