"""
Simple config loader for the relay.
Reads directly from the relay TOML config.

@.architecture
Incoming: config/relay.toml, config/settings.py --- {TOML file, load_config calls}
Processing: load_config(), get_fallback_config() --- {2 jobs: config_loading, fallback_generation}
Outgoing: config/settings.py --- {Dict[str, Any] config data}
"""

import logging
import toml
from pathlib import Path
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "relay.toml"


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from the relay TOML file."""
    config_file = config_file or DEFAULT_CONFIG_FILE
    try:
        with open(config_file, 'r') as f:
            return toml.load(f)
    except Exception as e:
        logger.warning(f"Failed to load relay config {config_file}: {e}")
        return get_fallback_config()


def get_fallback_config() -> Dict[str, Any]:
    """Fallback configuration if TOML file can't be loaded."""
    return {
        "RELAY": {
            "session_ttl_seconds": 14400,
            "sweep_interval_seconds": 600,
            "keepalive_interval_seconds": 45.0,
            "keepalive_enabled": True,
            "max_participants": 2,
            "send_timeout_seconds": 3.0,
        },
        "SERVER": {
            "bind_host": "0.0.0.0",
            "bind_port": 8080,
            "allowed_origins": ["*"],
        },
        "MONITORING": {
            "log_level": "INFO",
            "metrics_enabled": True,
        },
    }
