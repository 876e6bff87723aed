"""
Composite configuration source resolving keys across sources by priority.
"""

from typing import Callable, Dict, Optional, Sequence, Tuple, TypeVar

from ..observability.logging import get_logger
from .results import RefreshResult
from .sources import ConfigurationSource

logger = get_logger("dynconf.sources")

T = TypeVar('T')


class CompositeConfigurationSource(ConfigurationSource):
    """
    Queries several sources in a fixed priority order.

    The first source in the list has the highest priority. Each typed getter
    returns the first non-None result, so a higher-priority source holding an
    unparsable value does not hide a parsable one further down.

    Example:
        composite = CompositeConfigurationSource([env_source, yaml_source, defaults])
        timeout = composite.get_int("http.timeout")
    """

    def __init__(self, sources: Sequence[ConfigurationSource], name: Optional[str] = None):
        if not sources:
            raise ValueError("At least one configuration source is required")
        self._sources: Tuple[ConfigurationSource, ...] = tuple(sources)
        self._name = name or "composite[" + ",".join(s.name for s in self._sources) + "]"

    @property
    def name(self) -> str:
        return self._name

    @property
    def sources(self) -> Tuple[ConfigurationSource, ...]:
        return self._sources

    def _first(self, getter: Callable[[ConfigurationSource], Optional[T]]) -> Optional[T]:
        for source in self._sources:
            value = getter(source)
            if value is not None:
                return value
        return None

    def get_string(self, key: str) -> Optional[str]:
        return self._first(lambda s: s.get_string(key))

    def get_int(self, key: str) -> Optional[int]:
        return self._first(lambda s: s.get_int(key))

    def get_long(self, key: str) -> Optional[int]:
        return self._first(lambda s: s.get_long(key))

    def get_double(self, key: str) -> Optional[float]:
        return self._first(lambda s: s.get_double(key))

    def get_boolean(self, key: str) -> Optional[bool]:
        return self._first(lambda s: s.get_boolean(key))

    def get_properties(self, prefix: str) -> Dict[str, str]:
        result: Dict[str, str] = {}
        # Lowest priority first so higher priority sources overwrite
        for source in reversed(self._sources):
            result.update(source.get_properties(prefix))
        return result

    def contains_key(self, key: str) -> bool:
        return any(source.contains_key(key) for source in self._sources)

    def snapshot(self) -> Dict[str, str]:
        """Priority-resolved union of every source's properties."""
        resolved: Dict[str, str] = {}
        for source in reversed(self._sources):
            resolved.update(source.snapshot())
        return resolved

    def origin_of(self, key: str) -> Optional[str]:
        """Name of the highest-priority source holding ``key``."""
        for source in self._sources:
            if source.contains_key(key):
                return source.name
        return None

    def refresh(self) -> RefreshResult:
        """
        Refresh every source.

        Failure is per source: sources that refreshed successfully keep their
        new state even when the overall result is a failure, so a failed
        composite refresh means "some sources are stale".
        """
        errors = []
        failed = []
        for source in self._sources:
            with logger.source_context(source.name):
                try:
                    result = source.refresh()
                except Exception as e:
                    logger.error(f"Configuration source {source.name} raised during refresh", exc_info=e)
                    result = RefreshResult.failed(source.name, str(e) or type(e).__name__)

                if not result.success:
                    logger.warning(f"Configuration source {source.name} is stale", extra={"error": result.error_message})
                    failed.append(source.name)
                    errors.append(f"{source.name}: {result.error_message}")

        if errors:
            return RefreshResult.failed(
                self._name,
                "One or more providers failed to refresh: " + "; ".join(errors),
                failed_sources=failed,
            )
        return RefreshResult.ok(self._name)
