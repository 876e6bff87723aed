"""
Configuration sources providing typed access to string properties.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .results import RefreshResult
from .store import KeyValueStore

logger = logging.getLogger(__name__)

_INTEGER_PATTERN = re.compile(r'[+-]?\d+')

INT_MIN, INT_MAX = -(2 ** 31), 2 ** 31 - 1
LONG_MIN, LONG_MAX = -(2 ** 63), 2 ** 63 - 1


def parse_integer(value: Optional[str], minimum: int = LONG_MIN, maximum: int = LONG_MAX) -> Optional[int]:
    """Parse a signed integer literal, returning None when malformed or out of range."""
    if value is None or not _INTEGER_PATTERN.fullmatch(value):
        return None
    parsed = int(value)
    if parsed < minimum or parsed > maximum:
        return None
    return parsed


def parse_double(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value.strip())
    except ValueError:
        return None


def parse_boolean(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    return None


def strip_prefix(properties: Mapping[str, str], prefix: str) -> Dict[str, str]:
    """Select keys under ``prefix.`` and return them with the prefix removed."""
    prefix_with_dot = prefix if prefix.endswith('.') else prefix + '.'
    return {
        key[len(prefix_with_dot):]: value
        for key, value in properties.items()
        if key.startswith(prefix_with_dot)
    }


class ConfigurationSource(ABC):
    """
    Abstract base class for configuration sources.

    Values are strings; the typed getters parse on demand and return None
    when the key is missing or the value does not parse.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable source name used in events and refresh results."""
        pass

    @abstractmethod
    def get_string(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def contains_key(self, key: str) -> bool:
        pass

    @abstractmethod
    def snapshot(self) -> Dict[str, str]:
        """All properties currently held by the source."""
        pass

    @abstractmethod
    def refresh(self) -> RefreshResult:
        """Re-read the backing source. Failures are reported, never raised."""
        pass

    def get_int(self, key: str) -> Optional[int]:
        return parse_integer(self.get_string(key), INT_MIN, INT_MAX)

    def get_long(self, key: str) -> Optional[int]:
        return parse_integer(self.get_string(key), LONG_MIN, LONG_MAX)

    def get_double(self, key: str) -> Optional[float]:
        return parse_double(self.get_string(key))

    def get_boolean(self, key: str) -> Optional[bool]:
        return parse_boolean(self.get_string(key))

    def get_properties(self, prefix: str) -> Dict[str, str]:
        """
        Properties under ``prefix`` with the prefix stripped.

        ``database.url`` requested with prefix ``database`` is returned as ``url``.
        """
        return strip_prefix(self.snapshot(), prefix)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class StoreBackedSource(ConfigurationSource):
    """
    Source holding its resolved values in a KeyValueStore.

    Subclasses implement ``_load``; a refresh loads a complete new property set
    and swaps it in atomically, so a failing load leaves the previous values
    untouched. Remote backends plug in here and own their own timeouts.
    """

    def __init__(self, name: str, store: Optional[KeyValueStore] = None):
        self._name = name
        self._store = store if store is not None else KeyValueStore()

    @property
    def name(self) -> str:
        return self._name

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @abstractmethod
    def _load(self) -> Mapping[str, str]:
        """Load the complete property set from the backing source."""
        pass

    def get_string(self, key: str) -> Optional[str]:
        return self._store.get(key)

    def contains_key(self, key: str) -> bool:
        return self._store.contains(key)

    def snapshot(self) -> Dict[str, str]:
        return dict(self._store.snapshot())

    def refresh(self) -> RefreshResult:
        try:
            properties = self._load()
            self._store.replace_all(properties)
        except Exception as e:
            logger.warning(f"Refresh of configuration source {self._name} failed: {e}")
            return RefreshResult.failed(self._name, str(e) or type(e).__name__)
        logger.debug(f"Refreshed configuration source {self._name} ({len(self._store)} properties)")
        return RefreshResult.ok(self._name)


class InMemoryConfigurationSource(StoreBackedSource):
    """Source whose properties are set programmatically; refresh is a no-op."""

    def __init__(self, properties: Optional[Mapping[str, str]] = None, name: str = "in-memory"):
        super().__init__(name, KeyValueStore(properties))

    def _load(self) -> Mapping[str, str]:
        return self._store.snapshot()

    def refresh(self) -> RefreshResult:
        return RefreshResult.ok(self._name)

    def set_property(self, key: str, value: str) -> None:
        self._store.put(key, value)

    def set_properties(self, properties: Mapping[str, str]) -> None:
        self._store.put_all(properties)

    def remove_property(self, key: str) -> None:
        self._store.remove(key)

    def clear(self) -> None:
        self._store.clear()


def flatten_mapping(data: Mapping[str, Any], parent: str = "") -> Dict[str, str]:
    """Flatten nested mappings into dot-segmented string properties."""
    flat: Dict[str, str] = {}
    for key, value in data.items():
        full_key = f"{parent}.{key}" if parent else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_mapping(value, full_key))
        elif value is None:
            continue
        else:
            flat[full_key] = render_value(value)
    return flat


def render_value(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple)):
        return ','.join(render_value(item) for item in value)
    return str(value)


class YAMLConfigurationSource(StoreBackedSource):
    """YAML file configuration source; nested mappings become dotted keys."""

    def __init__(self, file_path: Union[str, Path], name: Optional[str] = None, load: bool = True):
        self.file_path = Path(file_path)
        self._last_modified: Optional[float] = None
        super().__init__(name or f"yaml:{self.file_path.name}")
        if load:
            self.refresh()

    def _load(self) -> Mapping[str, str]:
        if not self.file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.file_path}")

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {self.file_path}: {e}") from e

        if not isinstance(data, Mapping):
            raise ValueError(f"Configuration file {self.file_path} must contain a mapping at the top level")

        self._last_modified = self.file_path.stat().st_mtime
        return flatten_mapping(data)

    def has_changed(self) -> bool:
        """Check if the file has been modified since last load."""
        if not self.file_path.exists():
            return False
        current_modified = self.file_path.stat().st_mtime
        if self._last_modified is None:
            self._last_modified = current_modified
            return False
        return current_modified != self._last_modified


class EnvironmentConfigurationSource(StoreBackedSource):
    """
    Environment variable configuration source.

    ``DYNCONF_DATABASE_POOL_SIZE`` becomes ``database.pool.size``; a double
    underscore keeps a literal underscore (``DYNCONF_HTTP_MAX__RETRIES`` ->
    ``http.max_retries``).
    """

    def __init__(self, prefix: str = "DYNCONF_", name: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        self.prefix = prefix.upper()
        self._environ = environ
        super().__init__(name or f"env:{self.prefix}")
        self.refresh()

    def _load(self) -> Mapping[str, str]:
        environ = self._environ if self._environ is not None else os.environ
        config: Dict[str, str] = {}
        for key, value in environ.items():
            if key.upper().startswith(self.prefix) and len(key) > len(self.prefix):
                config[self.to_property_key(key[len(self.prefix):])] = value
        return config

    @staticmethod
    def to_property_key(variable: str) -> str:
        parts = variable.lower().split('__')
        return '_'.join(part.replace('_', '.') for part in parts)
