"""
dynconf - dynamic configuration and feature flag evaluation.

Merges configuration from prioritized sources, detects and broadcasts
changes on refresh, evaluates feature flags with deterministic percentage
rollout and weighted variants, and validates configuration at startup.
"""

from .exceptions import (
    DynconfException,
    ConfigurationError,
    ConfigurationRefreshError,
    ConfigurationValidationError,
    DecryptionError,
    FeatureFlagError,
    FlagConfigurationError,
    MissingSubjectError,
    FeatureFlagDisabledError
)

from .configuration import (
    ConfigurationSource,
    InMemoryConfigurationSource,
    YAMLConfigurationSource,
    EnvironmentConfigurationSource,
    CompositeConfigurationSource,
    DynamicConfiguration,
    ConfigurationChangeEvent,
    ChangeType,
    RefreshResult,
    ConfigurationBuilder
)

from .flags import (
    FeatureFlagEngine,
    EvaluationContext,
    feature_flag,
    FallbackStrategy
)

from .validation import (
    RuleValidator,
    ValidationResult,
    ConfigurationMetadata
)

__version__ = "0.1.0"

__all__ = [
    'DynconfException',
    'ConfigurationError',
    'ConfigurationRefreshError',
    'ConfigurationValidationError',
    'DecryptionError',
    'FeatureFlagError',
    'FlagConfigurationError',
    'MissingSubjectError',
    'FeatureFlagDisabledError',
    'ConfigurationSource',
    'InMemoryConfigurationSource',
    'YAMLConfigurationSource',
    'EnvironmentConfigurationSource',
    'CompositeConfigurationSource',
    'DynamicConfiguration',
    'ConfigurationChangeEvent',
    'ChangeType',
    'RefreshResult',
    'ConfigurationBuilder',
    'FeatureFlagEngine',
    'EvaluationContext',
    'feature_flag',
    'FallbackStrategy',
    'RuleValidator',
    'ValidationResult',
    'ConfigurationMetadata',
]
