"""
Startup validation of configuration properties.
"""

from .result import ValidationResult
from .rules import ValidationRule, required, pattern, range_, value_range, one_of
from .validator import RuleValidator, RuleValidatorBuilder
from .metadata import PropertyMetadata, ConfigurationMetadata, ConfigurationMetadataBuilder

__all__ = [
    'ValidationResult',
    'ValidationRule',
    'required',
    'pattern',
    'range_',
    'value_range',
    'one_of',
    'RuleValidator',
    'RuleValidatorBuilder',
    'PropertyMetadata',
    'ConfigurationMetadata',
    'ConfigurationMetadataBuilder',
]
