"""
Feature flags: boolean, percentage rollout and weighted variant flags with
deterministic per-subject bucketing.
"""

from .models import FlagConfiguration, FlagDefinition, EvaluationContext
from .bucketing import subject_bucket, select_variant
from .engine import FeatureFlagEngine
from .decorators import feature_flag, FallbackStrategy

__all__ = [
    'FlagConfiguration',
    'FlagDefinition',
    'EvaluationContext',
    'subject_bucket',
    'select_variant',
    'FeatureFlagEngine',
    'feature_flag',
    'FallbackStrategy',
]
