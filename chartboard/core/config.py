"""
Configuration management for the Chartboard dashboard system.
"""

import os
import json
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict
from pathlib import Path

from .interfaces import ConfigurationManagerInterface
from .models import ValidationResult


logger = logging.getLogger(__name__)


@dataclass
class RPCConfig:
    """Configuration for the remote procedure call transport."""
    base_url: str = "http://localhost:8000"
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    timeout_seconds: int = 30
    verify_ssl: bool = True
    settings_method: str = "chartboard.sources.get_settings"


@dataclass
class StoreConfig:
    """Configuration for the dashboard document store."""
    database_url: str = "sqlite:///chartboard.db"
    echo: bool = False
    dashboard_doctype: str = "Dashboard"
    chart_doctype: str = "Dashboard Chart"
    filters_field: str = "filters_json"


@dataclass
class VisualizationConfig:
    """Configuration for chart rendering."""
    default_color: str = "light-blue"
    color_palette: Dict[str, str] = field(default_factory=lambda: {
        "light-blue": "#7cd6fd",
        "blue": "#5e64ff",
        "violet": "#743ee2",
        "red": "#ff5858",
        "orange": "#ffa00a",
        "yellow": "#feef72",
        "green": "#28a745",
        "light-green": "#98d85b",
        "purple": "#b554ff",
        "magenta": "#ffa3ef",
        "grey": "#bdd3e6",
        "dark-grey": "#b8c2cc"
    })
    chart_height: int = 300
    output_directory: str = "dashboards"
    include_plotlyjs: str = "cdn"


@dataclass
class SystemConfig:
    """Main system configuration."""
    rpc: RPCConfig = field(default_factory=RPCConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)
    debug_mode: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None


class ConfigurationManager(ConfigurationManagerInterface):
    """Configuration manager implementation."""

    SECTIONS = ("rpc", "store", "visualization")

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or "chartboard.json"
        self.config = SystemConfig()
        self._load_config()
        self._load_environment_variables()

    def _load_config(self) -> None:
        """Load configuration from file."""
        config_path = Path(self.config_file)
        if config_path.exists():
            try:
                with open(config_path, 'r') as f:
                    config_data = json.load(f)
                    self._update_config_from_dict(config_data)
            except (OSError, ValueError) as e:
                logger.warning(f"Could not load config file {self.config_file}: {e}")

    def _load_environment_variables(self) -> None:
        """Load configuration from environment variables."""
        if os.getenv('CHARTBOARD_RPC_URL'):
            self.config.rpc.base_url = os.getenv('CHARTBOARD_RPC_URL')

        if os.getenv('CHARTBOARD_API_KEY'):
            self.config.rpc.api_key = os.getenv('CHARTBOARD_API_KEY')

        if os.getenv('CHARTBOARD_API_SECRET'):
            self.config.rpc.api_secret = os.getenv('CHARTBOARD_API_SECRET')

        if os.getenv('CHARTBOARD_SETTINGS_METHOD'):
            self.config.rpc.settings_method = os.getenv('CHARTBOARD_SETTINGS_METHOD')

        if os.getenv('CHARTBOARD_RPC_TIMEOUT'):
            self.config.rpc.timeout_seconds = int(os.getenv('CHARTBOARD_RPC_TIMEOUT'))

        if os.getenv('DATABASE_URL'):
            self.config.store.database_url = os.getenv('DATABASE_URL')

        if os.getenv('CHARTBOARD_OUTPUT_DIR'):
            self.config.visualization.output_directory = os.getenv('CHARTBOARD_OUTPUT_DIR')

        if os.getenv('DEBUG'):
            self.config.debug_mode = os.getenv('DEBUG').lower() in ('true', '1', 'yes')

        if os.getenv('LOG_LEVEL'):
            self.config.log_level = os.getenv('LOG_LEVEL').upper()

    def _update_config_from_dict(self, config_data: Dict[str, Any]) -> None:
        """Update configuration from dictionary."""
        for section in self.SECTIONS:
            if section in config_data:
                section_obj = getattr(self.config, section)
                for key, value in config_data[section].items():
                    if hasattr(section_obj, key):
                        setattr(section_obj, key, value)

        # Top-level config
        for key in ['debug_mode', 'log_level', 'log_file']:
            if key in config_data:
                setattr(self.config, key, config_data[key])

    def update_config(self, section: str, key: str, value: Any) -> None:
        """Update configuration value."""
        if hasattr(self.config, section):
            section_obj = getattr(self.config, section)
            if hasattr(section_obj, key):
                setattr(section_obj, key, value)
            else:
                raise ValueError(f"Invalid configuration key: {section}.{key}")
        else:
            raise ValueError(f"Invalid configuration section: {section}")

    def validate_config(self) -> ValidationResult:
        """Validate current configuration."""
        errors = []
        warnings = []

        if not self.config.rpc.base_url.startswith(("http://", "https://")):
            errors.append("rpc.base_url must be an http(s) URL")

        if self.config.rpc.timeout_seconds <= 0:
            errors.append("rpc.timeout_seconds must be greater than 0")

        if not self.config.rpc.settings_method:
            errors.append("rpc.settings_method is not configured")

        if bool(self.config.rpc.api_key) != bool(self.config.rpc.api_secret):
            warnings.append("Only one of api_key/api_secret is set; requests will be unauthenticated")

        if not self.config.store.database_url:
            errors.append("store.database_url is not configured")

        palette = self.config.visualization.color_palette
        if self.config.visualization.default_color not in palette and \
                not self.config.visualization.default_color.startswith("#"):
            warnings.append(
                f"Default color '{self.config.visualization.default_color}' is not in the color palette"
            )

        if self.config.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Invalid log level: {self.config.log_level}")

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings
        )

    def save_config(self) -> None:
        """Save current configuration to file."""
        config_dict = {
            'rpc': {
                key: value for key, value in asdict(self.config.rpc).items()
                if key not in ('api_key', 'api_secret')
            },
            'store': asdict(self.config.store),
            'visualization': asdict(self.config.visualization),
            'debug_mode': self.config.debug_mode,
            'log_level': self.config.log_level,
            'log_file': self.config.log_file
        }

        with open(self.config_file, 'w') as f:
            json.dump(config_dict, f, indent=2)

