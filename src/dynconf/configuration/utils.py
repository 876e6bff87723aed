"""
Utility functions for common configuration patterns.
"""

from pathlib import Path
from typing import Optional, Union

import yaml

from ..flags.engine import FeatureFlagEngine
from ..observability.logging import DynconfLogger, LogLevel, configure_default_logging
from .builder import ConfigurationBuilder
from .core import DynamicConfiguration
from .models import EngineConfiguration, LoggingConfiguration


def load_configuration_from_file(
    file_path: Union[str, Path],
    refresh_interval: Optional[float] = None,
    env_prefix: str = "DYNCONF_",
) -> DynamicConfiguration:
    """
    Load configuration from a single YAML file with environment variable overrides.

    Args:
        file_path: Path to the YAML configuration file
        refresh_interval: Seconds between automatic refreshes; None disables auto-refresh
        env_prefix: Prefix of environment variables that override file values

    Returns:
        DynamicConfiguration instance
    """
    builder = (ConfigurationBuilder()
               .add_yaml_source(file_path)
               .add_environment_source(env_prefix))
    if refresh_interval is not None:
        builder.enable_auto_refresh(refresh_interval)
    return builder.build()


def load_default_configuration(env_prefix: str = "DYNCONF_") -> DynamicConfiguration:
    """Load configuration from environment variables only."""
    return ConfigurationBuilder().add_environment_source(env_prefix).build()


def create_configuration_builder() -> ConfigurationBuilder:
    return ConfigurationBuilder()


def load_engine_configuration(file_path: Union[str, Path]) -> EngineConfiguration:
    """
    Read engine settings (logging, refresh, flags) from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the settings are invalid
    """
    path = Path(file_path)
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Engine configuration in {path} must be a mapping")
    return EngineConfiguration(**data)


def configure_logging(config: LoggingConfiguration) -> DynconfLogger:
    """Apply a LoggingConfiguration to the root dynconf logger."""
    log_file = config.file_path if config.output in ('file', 'both') else None
    root_logger = configure_default_logging(
        level=LogLevel(config.level),
        use_json=config.format == "json",
        log_file=log_file,
        console=config.output in ('console', 'both'),
    )
    return root_logger


def create_flag_engine(config: EngineConfiguration, **engine_kwargs) -> FeatureFlagEngine:
    """Create a FeatureFlagEngine preloaded with the flags of ``config``."""
    engine = FeatureFlagEngine(**engine_kwargs)
    for flag_name, definition in config.flags.items():
        engine.define(flag_name, definition)
    return engine
