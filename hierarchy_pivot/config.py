"""
config.py - Configuration for the hierarchical pivot engine
"""
import logging
import os
import re
from typing import Optional
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class PivotEngineConfig:
    """Configuration for the hierarchical pivot engine"""

    # Measures
    default_measure: str = "COST_UNIT"
    default_column_label: str = "Value"

    # Default expansion policy
    column_root_expanded: bool = False
    first_row_dimension_expanded: bool = True

    # GMID path matching
    gmid_level_pattern: str = r"LEVEL_\d+_(.+)"
    gmid_underscore_replacement: str = "-"
    gmid_path_separator: str = "/"

    # Separator used by raw ancestor paths in dimension mappings
    mapping_path_separator: str = "//"

    # Caching configuration
    enable_result_cache: bool = True
    result_cache_ttl: int = 300
    result_cache_max_entries: int = 128

    log_level: str = "INFO"

    def from_env(self) -> 'PivotEngineConfig':
        """Load configuration from environment variables"""
        config = PivotEngineConfig()

        config.default_measure = os.getenv('PIVOT_DEFAULT_MEASURE', config.default_measure)
        config.gmid_level_pattern = os.getenv('PIVOT_GMID_LEVEL_PATTERN', config.gmid_level_pattern)

        # Cache settings
        config.enable_result_cache = _env_bool('PIVOT_RESULT_CACHE', config.enable_result_cache)
        config.result_cache_ttl = int(os.getenv('PIVOT_CACHE_TTL', str(config.result_cache_ttl)))
        config.result_cache_max_entries = int(
            os.getenv('PIVOT_CACHE_MAX_ENTRIES', str(config.result_cache_max_entries))
        )

        config.log_level = os.getenv('PIVOT_LOG_LEVEL', config.log_level)

        return config

    def validate(self) -> None:
        """Validate configuration settings"""
        errors = []

        if not self.default_measure:
            errors.append("default_measure must not be empty")

        if self.result_cache_ttl <= 0:
            errors.append("result_cache_ttl must be positive")

        if self.result_cache_max_entries <= 0:
            errors.append("result_cache_max_entries must be positive")

        if not self.gmid_path_separator:
            errors.append("gmid_path_separator must not be empty")

        try:
            pattern = re.compile(self.gmid_level_pattern)
            if pattern.groups < 1:
                errors.append("gmid_level_pattern must have a capture group")
        except re.error as e:
            errors.append(f"gmid_level_pattern is not a valid regex: {e}")

        if logging.getLevelName(self.log_level.upper()) not in (
            logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL
        ):
            errors.append(f"log_level {self.log_level!r} is not a logging level")

        if errors:
            raise ValueError(f"Configuration validation errors: {'; '.join(errors)}")


class ConfigManager:
    """Manager for configuration loading and validation"""

    def __init__(self):
        self.config: Optional[PivotEngineConfig] = None

    def load_config(self, config_source: Optional[str] = None) -> PivotEngineConfig:
        """Load configuration from various sources"""
        if config_source == 'env':
            self.config = PivotEngineConfig().from_env()
        else:
            self.config = PivotEngineConfig()

        self.config.validate()
        return self.config

    def get_config(self) -> PivotEngineConfig:
        """Get the loaded configuration"""
        if self.config is None:
            self.config = self.load_config()
        return self.config


# Global configuration manager
config_manager = ConfigManager()


def get_config() -> PivotEngineConfig:
    """Get the global configuration"""
    return config_manager.get_config()


def configure_logging(level: Optional[str] = None):
    """Setup logging for the engine"""
    level = level or get_config().log_level
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))
