"""
Configuration manager for the monetary policy SVAR pipeline.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .settings import AnalysisSettings
from ..exceptions import ConfigurationError


class ConfigManager:
    """
    Manages configuration loading, validation, and environment setup.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to configuration file (optional)
        """
        self.config_path = config_path
        self.settings: Optional[AnalysisSettings] = None
        self.logger = logging.getLogger(__name__)

    def load_config(self, config_path: Optional[str] = None,
                    overrides: Optional[Dict[str, Any]] = None) -> AnalysisSettings:
        """
        Load configuration from file or create default configuration.

        Args:
            config_path: Path to configuration file
            overrides: Nested dictionary merged over the loaded values

        Returns:
            Loaded AnalysisSettings

        Raises:
            ConfigurationError: If the configuration cannot be parsed or is invalid
        """
        if config_path:
            self.config_path = config_path

        try:
            if self.config_path and Path(self.config_path).exists():
                self.logger.info(f"Loading configuration from {self.config_path}")
                config_dict = AnalysisSettings.from_file(self.config_path).to_dict(include_api_key=True)
            else:
                if self.config_path:
                    self.logger.warning(f"Configuration file {self.config_path} not found, using defaults")
                else:
                    self.logger.info("Creating default configuration")
                config_dict = AnalysisSettings().to_dict(include_api_key=True)

            if overrides:
                config_dict = _merge(config_dict, overrides)

            self.settings = AnalysisSettings.from_dict(config_dict)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Could not parse configuration: {e}") from e

        validation_errors = self.settings.validate()
        if validation_errors:
            raise ConfigurationError(
                "Configuration validation failed:\n" +
                "\n".join(f"  - {error}" for error in validation_errors),
                validation_errors=validation_errors
            )

        if not self.settings.data.fred_api_key:
            self.logger.warning("FRED_API_KEY environment variable not set; live fetch will fail over to the snapshot")

        return self.settings

    def setup_environment(self):
        """Create the output directories named in the configuration."""
        if not self.settings:
            raise ConfigurationError("No configuration loaded")

        output_dir = Path(self.settings.output_directory)
        output_dir.mkdir(parents=True, exist_ok=True)

        if self.settings.visualization.save_figures:
            Path(self.settings.visualization.export_directory).mkdir(parents=True, exist_ok=True)

        Path(self.settings.data.snapshot_path).parent.mkdir(parents=True, exist_ok=True)

    def save_config(self, config_path: Optional[str] = None):
        """
        Save current configuration to file.

        Args:
            config_path: Path where to save configuration
        """
        if not self.settings:
            raise ConfigurationError("No configuration loaded to save")

        save_path = config_path or self.config_path or "config.json"
        self.settings.save_to_file(save_path)
        self.logger.info(f"Configuration saved to {save_path}")

    def create_config_template(self, output_path: str):
        """Write the default configuration to output_path."""
        AnalysisSettings().save_to_file(output_path)
        self.logger.info(f"Configuration template written to {output_path}")


def _merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged
