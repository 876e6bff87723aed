"""
Feature flag engine with deterministic per-subject bucketing.
"""

import logging
import random
import threading
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Sequence, TypeVar

from pydantic import ValidationError

from ..configuration.sources import ConfigurationSource, parse_boolean, parse_integer, strip_prefix
from ..exceptions import FlagConfigurationError, MissingSubjectError
from ..observability.metrics import FLAG_EVALUATIONS_TOTAL, MetricsCollector, get_metrics_collector
from .bucketing import random_bucket, select_variant, subject_bucket
from .models import (
    DEFAULT_SUBJECT_KEYS, EvaluationContext, FlagConfiguration, FlagDefinition, check_variant_weights
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


class FeatureFlagEngine:
    """
    Stores flag configurations and evaluates them against a context.

    Supports boolean flags, percentage rollouts and weighted variants (A/B/C
    testing). A subject (``userId``, then ``sessionId``) always lands in the
    same bucket, so raising a rollout percentage never turns a flag off for a
    subject that already had it.

    Evaluating a partial rollout without a subject draws a random bucket on
    every call. This is discouraged; pass ``require_subject=True`` to reject
    such evaluations with MissingSubjectError instead.

    Example:
        flags = FeatureFlagEngine()
        flags.set_rollout_percentage("beta-feature", 50)
        flags.set_variants("button-color", {"control": 40, "red": 30, "blue": 30})

        if flags.is_enabled("beta-feature", {"userId": "user-123"}):
            ...
        color = flags.get_variant("button-color", "control", {"userId": "user-123"})
    """

    def __init__(
        self,
        require_subject: bool = False,
        subject_keys: Sequence[str] = DEFAULT_SUBJECT_KEYS,
        rng: Optional[random.Random] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._flags: Mapping[str, FlagConfiguration] = MappingProxyType({})
        self._write_lock = threading.Lock()
        self._require_subject = require_subject
        self._subject_keys = tuple(subject_keys)
        self._rng = rng
        self._metrics = metrics or get_metrics_collector()

    # Table mutation: every write publishes a new table holding whole records

    def _put(self, flag_name: str, config: FlagConfiguration) -> None:
        if not flag_name:
            raise FlagConfigurationError("Flag name must not be empty")
        with self._write_lock:
            table = dict(self._flags)
            table[flag_name] = config
            self._flags = MappingProxyType(table)

    def enable(self, flag_name: str) -> None:
        self._put(flag_name, FlagConfiguration(enabled=True, percentage=100))

    def disable(self, flag_name: str) -> None:
        self._put(flag_name, FlagConfiguration(enabled=False, percentage=0))

    def set_rollout_percentage(self, flag_name: str, percentage: int) -> None:
        """Enable ``flag_name`` for ``percentage`` percent of subjects (0-100)."""
        if isinstance(percentage, bool) or not isinstance(percentage, int) or not 0 <= percentage <= 100:
            raise FlagConfigurationError("Percentage must be between 0 and 100", flag_name=flag_name)
        self._put(flag_name, FlagConfiguration(enabled=True, percentage=percentage))

    def set_variants(self, flag_name: str, variants: Mapping[str, int]) -> None:
        """
        Install a weighted variant table; weights must sum to exactly 100.

        Variants are assigned in the table's iteration order.
        """
        try:
            weights = check_variant_weights(variants)
        except ValueError as e:
            raise FlagConfigurationError(str(e), flag_name=flag_name) from e
        self._put(flag_name, FlagConfiguration(enabled=True, percentage=100, variants=weights))

    def set_metadata(self, flag_name: str, metadata: Mapping[str, Any]) -> None:
        """Merge ``metadata`` into the flag without touching its rollout state."""
        if not flag_name:
            raise FlagConfigurationError("Flag name must not be empty")
        with self._write_lock:
            existing = self._flags.get(flag_name) or FlagConfiguration()
            merged = dict(existing.metadata)
            merged.update(metadata)
            table = dict(self._flags)
            table[flag_name] = existing.model_copy(update={"metadata": merged})
            self._flags = MappingProxyType(table)

    def define(self, flag_name: str, definition: FlagDefinition) -> None:
        self._put(flag_name, definition.to_configuration())

    def remove(self, flag_name: str) -> None:
        with self._write_lock:
            if flag_name in self._flags:
                table = dict(self._flags)
                del table[flag_name]
                self._flags = MappingProxyType(table)

    def clear(self) -> None:
        with self._write_lock:
            self._flags = MappingProxyType({})

    # Evaluation

    def _bucket(self, flag_name: str, context: EvaluationContext) -> int:
        subject_id = context.subject_id
        if subject_id is not None:
            return subject_bucket(subject_id)
        if self._require_subject:
            raise MissingSubjectError(flag_name)
        logger.warning(
            f"Flag '{flag_name}' evaluated without a subject identifier; "
            f"using a random bucket, results will vary between calls"
        )
        return random_bucket(self._rng)

    def _context(self, context: Optional[Any]) -> EvaluationContext:
        return EvaluationContext.coerce(context, self._subject_keys)

    def is_enabled(self, flag_name: str, context: Optional[Any] = None) -> bool:
        config = self._flags.get(flag_name)
        result = self._evaluate(flag_name, config, context)
        self._metrics.counter(FLAG_EVALUATIONS_TOTAL, "Flag evaluations").increment(
            labels={"flag": flag_name, "result": str(result).lower()}
        )
        return result

    def _evaluate(self, flag_name: str, config: Optional[FlagConfiguration], context: Optional[Any]) -> bool:
        if config is None or not config.enabled:
            return False
        if config.percentage == 100:
            return True
        if config.percentage == 0:
            return False
        return self._bucket(flag_name, self._context(context)) < config.percentage

    def get_variant(self, flag_name: str, default_value: T, context: Optional[Any] = None) -> T:
        config = self._flags.get(flag_name)
        if config is None or not config.enabled or not config.variants:
            return default_value
        variant = select_variant(config.variants, self._bucket(flag_name, self._context(context)))
        return variant if variant is not None else default_value

    # Introspection

    def get_flag(self, flag_name: str) -> Optional[FlagConfiguration]:
        """Copy of the stored record; the shared table is never handed out."""
        config = self._flags.get(flag_name)
        return config.model_copy(deep=True) if config is not None else None

    def get_all_flags(self) -> FrozenSet[str]:
        return frozenset(self._flags)

    def get_flag_metadata(self, flag_name: str) -> Dict[str, Any]:
        config = self._flags.get(flag_name)
        if config is None:
            return {}
        metadata = dict(config.metadata)
        metadata["enabled"] = config.enabled
        metadata["percentage"] = config.percentage
        if config.variants is not None:
            metadata["variants"] = dict(config.variants)
        return metadata

    # Loading from configuration

    def load_from_source(self, source: ConfigurationSource, prefix: str = "flags") -> FrozenSet[str]:
        """
        Install flags described under ``prefix`` in a configuration source.

        Recognised keys per flag: ``<prefix>.<name>.enabled``, ``.percentage``,
        ``.variants.<variant>`` and ``.metadata.<key>``. Flags are validated
        before any is installed; flags no longer present are left untouched.
        """
        properties = strip_prefix(source.snapshot(), prefix)
        raw: Dict[str, Dict[str, Any]] = {}
        for key, value in properties.items():
            flag_name, _, attribute = key.partition('.')
            if not attribute:
                continue
            entry = raw.setdefault(flag_name, {})
            section, _, item = attribute.partition('.')
            if section in ('variants', 'metadata') and item:
                entry.setdefault(section, {})[item] = value
            elif section in ('enabled', 'percentage') and not item:
                entry[section] = value
            else:
                logger.warning(f"Ignoring unknown flag attribute {prefix}.{key}")

        definitions: Dict[str, FlagDefinition] = {}
        for flag_name, entry in raw.items():
            definitions[flag_name] = self._parse_definition(flag_name, entry)

        for flag_name, definition in definitions.items():
            self.define(flag_name, definition)
        if definitions:
            logger.info(f"Loaded {len(definitions)} feature flag(s) from {source.name}")
        return frozenset(definitions)

    @staticmethod
    def _parse_definition(flag_name: str, entry: Dict[str, Any]) -> FlagDefinition:
        data: Dict[str, Any] = {}
        if 'enabled' in entry:
            enabled = parse_boolean(entry['enabled'])
            if enabled is None:
                raise FlagConfigurationError(f"Invalid 'enabled' value: {entry['enabled']}", flag_name=flag_name)
            data['enabled'] = enabled
        if 'percentage' in entry:
            percentage = parse_integer(entry['percentage'])
            if percentage is None:
                raise FlagConfigurationError(f"Invalid 'percentage' value: {entry['percentage']}", flag_name=flag_name)
            data['percentage'] = percentage
        if 'variants' in entry:
            variants = {}
            for variant, weight in entry['variants'].items():
                parsed = parse_integer(weight)
                if parsed is None:
                    raise FlagConfigurationError(f"Invalid weight for variant '{variant}': {weight}", flag_name=flag_name)
                variants[variant] = parsed
            data['variants'] = variants
        if 'metadata' in entry:
            data['metadata'] = dict(entry['metadata'])
        try:
            return FlagDefinition(**data)
        except ValidationError as e:
            raise FlagConfigurationError(f"Invalid definition for flag '{flag_name}': {e}", flag_name=flag_name) from e

    def bind_to(self, configuration, prefix: str = "flags"):
        """
        Load flags from a DynamicConfiguration and reload them whenever a key
        under ``prefix`` changes. Returns the listener registration.
        """
        self.load_from_source(configuration, prefix)
        prefix_with_dot = prefix if prefix.endswith('.') else prefix + '.'

        def reload(event) -> None:
            if event.key.startswith(prefix_with_dot):
                removed = self._flag_name(event.key, prefix_with_dot)
                if event.new_value is None and removed and not any(
                    k.startswith(f"{prefix_with_dot}{removed}.") for k in configuration.snapshot()
                ):
                    self.remove(removed)
                self.load_from_source(configuration, prefix)

        return configuration.add_listener(reload)

    @staticmethod
    def _flag_name(key: str, prefix_with_dot: str) -> Optional[str]:
        name = key[len(prefix_with_dot):].split('.', 1)[0]
        return name or None
