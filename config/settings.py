"""
Settings Management

Pydantic-based settings schema with environment variable support.
Integrates with the relay TOML config and provides type-safe access.

@.architecture
Incoming: utils/config.py, Environment variables, config/relay.toml, api/dependencies.py --- {Dict from load_toml_config, str from os.getenv, TOML config dict, get_settings calls}
Processing: get_settings(), reload_settings(), Settings.__init__(), field_validator() --- {4 jobs: configuration_loading, environment_variable_merging, schema_validation, caching}
Outgoing: app.py, main.py, api/dependencies.py, api/v1/endpoints/health.py --- {Settings Pydantic model with typed config sections}
"""

import os
from pathlib import Path
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field, field_validator
from functools import lru_cache

from utils.config import load_config as load_toml_config


# =============================================================================
# Settings Schemas
# =============================================================================

class RelaySettings(BaseModel):
    """Session relay settings."""
    session_ttl_seconds: int = 4 * 60 * 60
    sweep_interval_seconds: int = 10 * 60
    keepalive_interval_seconds: float = 45.0
    keepalive_enabled: bool = True
    max_participants: int = 2
    send_timeout_seconds: float = 3.0

    @field_validator('max_participants')
    @classmethod
    def validate_max_participants(cls, v: int) -> int:
        """Sessions are strictly two-party."""
        if v != 2:
            raise ValueError("max_participants must be 2")
        return v

    @field_validator('session_ttl_seconds', 'sweep_interval_seconds', 'keepalive_interval_seconds', 'send_timeout_seconds')
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("Interval values must be positive")
        return v

    class Config:
        env_prefix = "RELAY_"


class SecuritySettings(BaseModel):
    """Server binding and CORS configuration."""
    bind_host: str = "0.0.0.0"
    bind_port: int = 8080
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = False
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_headers: List[str] = Field(default_factory=lambda: ["*"])

    class Config:
        env_prefix = "SECURITY_"


class MonitoringSettings(BaseModel):
    """Monitoring and logging configuration."""
    log_level: str = "INFO"
    log_format: Optional[str] = None  # json|text, None uses the environment preset
    metrics_enabled: bool = True

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    class Config:
        env_prefix = "MONITORING_"


class Settings(BaseModel):
    """
    Main application settings.

    Loads configuration from:
    1. TOML config file (config/relay.toml)
    2. Environment variables
    3. Defaults defined in schemas

    Priority: Environment variables > TOML config > Defaults
    """

    app_name: str = "Negotiation Relay"
    app_version: str = "1.0.1"
    environment: str = "development"  # development|production|test

    config_dir: Path = Field(
        default_factory=lambda: Path(__file__).parent,
        description="Directory containing config files"
    )

    relay: RelaySettings = Field(default_factory=RelaySettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @property
    def base_url(self) -> str:
        return f"http://{self.security.bind_host}:{self.security.bind_port}"

    @property
    def logging_preset(self) -> str:
        """Logging preset name for the current environment."""
        return {
            "development": "development",
            "production": "production",
            "test": "testing",
        }[self.environment]

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = ['development', 'production', 'test']
        if v not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v

    class Config:
        env_prefix = "RELAY_"
        case_sensitive = False


# =============================================================================
# Settings Loader
# =============================================================================

def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@lru_cache()
def get_settings() -> Settings:
    """
    Load and return application settings (cached).

    Merges configuration from:
    1. TOML config file (via utils.config)
    2. Environment variables
    3. Default values

    Returns:
        Settings: Complete application settings
    """
    toml_config = load_toml_config()

    relay_settings: Dict[str, Any] = dict(toml_config.get("RELAY", {}))
    security_settings: Dict[str, Any] = {}
    monitoring_settings: Dict[str, Any] = dict(toml_config.get("MONITORING", {}))

    if "SERVER" in toml_config:
        server = toml_config["SERVER"]
        for key in ("bind_host", "bind_port", "allowed_origins"):
            if key in server:
                security_settings[key] = server[key]

    settings_dict: Dict[str, Any] = {
        "environment": os.getenv("RELAY_ENVIRONMENT", "development"),
    }

    # Override with environment variables if present
    if host := os.getenv("RELAY_HOST"):
        security_settings["bind_host"] = host

    if port := os.getenv("PORT"):
        security_settings["bind_port"] = int(port)

    if ttl := os.getenv("RELAY_SESSION_TTL"):
        relay_settings["session_ttl_seconds"] = int(ttl)

    if sweep := os.getenv("RELAY_SWEEP_INTERVAL"):
        relay_settings["sweep_interval_seconds"] = int(sweep)

    if keepalive := os.getenv("RELAY_KEEPALIVE_INTERVAL"):
        relay_settings["keepalive_interval_seconds"] = float(keepalive)

    if keepalive_enabled := os.getenv("RELAY_KEEPALIVE_ENABLED"):
        relay_settings["keepalive_enabled"] = _env_bool(keepalive_enabled)

    if log_level := os.getenv("MONITORING_LOG_LEVEL"):
        monitoring_settings["log_level"] = log_level

    if relay_settings:
        settings_dict["relay"] = relay_settings

    if security_settings:
        settings_dict["security"] = security_settings

    if monitoring_settings:
        settings_dict["monitoring"] = monitoring_settings

    return Settings(**settings_dict)


def reload_settings() -> Settings:
    """
    Reload settings (clears cache).

    Returns:
        Settings: Reloaded application settings
    """
    get_settings.cache_clear()
    return get_settings()


# =============================================================================
# Environment-specific Helpers
# =============================================================================

def is_development() -> bool:
    """Check if running in development environment."""
    return get_settings().environment == "development"


def is_production() -> bool:
    """Check if running in production environment."""
    return get_settings().environment == "production"


def is_test() -> bool:
    """Check if running in test environment."""
    return get_settings().environment == "test"
