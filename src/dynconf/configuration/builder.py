"""
Configuration builder for creating DynamicConfiguration instances.
"""

import logging
from pathlib import Path
from typing import List, Mapping, Optional, Tuple, Union

from .core import DynamicConfiguration
from .encryption import ConfigurationDecryptor, EncryptedConfigurationSource
from .models import RefreshConfiguration
from .scheduler import Interval, to_seconds
from .sources import (
    ConfigurationSource, EnvironmentConfigurationSource, InMemoryConfigurationSource, YAMLConfigurationSource
)

logger = logging.getLogger(__name__)

DEFAULTS_PRIORITY = 0
YAML_PRIORITY = 100
ENVIRONMENT_PRIORITY = 200


class ConfigurationBuilder:
    """
    Builder for creating DynamicConfiguration instances with multiple sources.

    Sources are ordered by priority (higher = more important); sources with
    equal priority keep the order in which they were added. Supports YAML
    files, environment variables, in-memory and custom sources, decryption,
    startup validation and auto-refresh.
    """

    def __init__(self):
        self._sources: List[Tuple[int, ConfigurationSource]] = []
        self._name: Optional[str] = None
        self._decryptor: Optional[ConfigurationDecryptor] = None
        self._validator = None
        self._refresh_interval: Optional[float] = None

    def named(self, name: str) -> 'ConfigurationBuilder':
        self._name = name
        return self

    def add_source(self, source: ConfigurationSource, priority: int = 150) -> 'ConfigurationBuilder':
        """Add a custom configuration source."""
        self._sources.append((priority, source))
        return self

    def add_in_memory_source(
        self, properties: Mapping[str, str], priority: int = 150, name: str = "in-memory"
    ) -> 'ConfigurationBuilder':
        return self.add_source(InMemoryConfigurationSource(properties, name), priority)

    def add_yaml_source(self, path: Union[str, Path], priority: int = YAML_PRIORITY) -> 'ConfigurationBuilder':
        """
        Add a YAML configuration source.

        Args:
            path: Path to the YAML configuration file
            priority: Priority of this source (higher = more important)
        """
        return self.add_source(YAMLConfigurationSource(path), priority)

    def add_environment_source(
        self, prefix: str = "DYNCONF_", priority: int = ENVIRONMENT_PRIORITY
    ) -> 'ConfigurationBuilder':
        """
        Add environment variable configuration source.

        Args:
            prefix: Environment variable prefix (default: DYNCONF_)
            priority: Priority of this source (higher = more important)
        """
        return self.add_source(EnvironmentConfigurationSource(prefix), priority)

    def add_defaults(self, defaults: Mapping[str, str]) -> 'ConfigurationBuilder':
        """Add fallback values consulted only when no other source has the key."""
        return self.add_in_memory_source(defaults, DEFAULTS_PRIORITY, name="defaults")

    def with_decryptor(self, decryptor: ConfigurationDecryptor) -> 'ConfigurationBuilder':
        """Decrypt ``{cipher}`` values of every source with ``decryptor``."""
        self._decryptor = decryptor
        return self

    def validate_with(self, validator) -> 'ConfigurationBuilder':
        """
        Validate the assembled configuration before returning it from build().

        ``validator`` is anything exposing ``validate_or_raise(source)``, such
        as a RuleValidator.
        """
        self._validator = validator
        return self

    def enable_auto_refresh(self, interval: Interval) -> 'ConfigurationBuilder':
        self._refresh_interval = to_seconds(interval)
        return self

    def with_refresh(self, refresh: RefreshConfiguration) -> 'ConfigurationBuilder':
        self._refresh_interval = refresh.interval_seconds if refresh.enabled else None
        return self

    def _ordered_sources(self) -> List[ConfigurationSource]:
        ordered = [source for _, source in sorted(self._sources, key=lambda entry: -entry[0])]
        if self._decryptor is not None:
            ordered = [EncryptedConfigurationSource(source, self._decryptor) for source in ordered]
        return ordered

    def build(self) -> DynamicConfiguration:
        """
        Build the configuration instance with all added sources.

        Raises:
            ConfigurationValidationError: If a validator is set and rejects
                the assembled configuration
        """
        if not self._sources:
            # Add default environment source if no sources specified
            self.add_environment_source()

        configuration = DynamicConfiguration(self._ordered_sources(), name=self._name)

        if self._validator is not None:
            try:
                self._validator.validate_or_raise(configuration)
            except Exception:
                configuration.close()
                raise

        if self._refresh_interval is not None:
            configuration.enable_auto_refresh(self._refresh_interval)
            logger.info(f"Auto-refresh of {configuration.name} every {self._refresh_interval}s")

        return configuration
