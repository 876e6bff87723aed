"""
Rule-based configuration validator.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from ..configuration.sources import ConfigurationSource
from ..exceptions import ConfigurationValidationError
from . import rules
from .result import ValidationResult
from .rules import ValidationRule

logger = logging.getLogger(__name__)


class RuleValidator:
    """
    Runs an ordered list of rules against a configuration source.

    Every rule runs; errors are reported in declaration order. A rule that
    raises is reported as an error instead of aborting validation.

    Example:
        validator = (RuleValidator.builder()
                     .required("database.url")
                     .pattern("server.port", r"\\d+")
                     .range("pool.size", 1, 100)
                     .build())
        validator.validate_or_raise(configuration)
    """

    def __init__(self, rules: Iterable[ValidationRule] = ()):
        self._rules: Tuple[ValidationRule, ...] = tuple(rules)

    @property
    def rules(self) -> Tuple[ValidationRule, ...]:
        return self._rules

    @staticmethod
    def builder() -> 'RuleValidatorBuilder':
        return RuleValidatorBuilder()

    def validate(self, source: ConfigurationSource) -> ValidationResult:
        errors: List[str] = []
        for rule in self._rules:
            try:
                error = rule(source)
            except Exception as e:
                name = getattr(rule, '__name__', repr(rule))
                logger.warning(f"Validation rule {name} raised {type(e).__name__}: {e}")
                error = f"Validation rule {name} failed: {e}"
            if error is not None:
                errors.append(error)

        if not errors:
            return ValidationResult.valid()
        return ValidationResult.invalid(errors)

    def validate_or_raise(self, source: ConfigurationSource) -> ValidationResult:
        """Validate and raise ConfigurationValidationError on any error."""
        result = self.validate(source)
        if result.has_errors():
            logger.error(f"Configuration validation failed for {source.name} with {result.error_count} error(s)")
            raise ConfigurationValidationError(result)
        return result

    def __len__(self) -> int:
        return len(self._rules)


class RuleValidatorBuilder:
    """Fluent construction of a RuleValidator."""

    def __init__(self):
        self._rules: List[ValidationRule] = []

    def required(self, key: str, message: Optional[str] = None) -> 'RuleValidatorBuilder':
        self._rules.append(rules.required(key, message))
        return self

    def pattern(self, key: str, regex: str, message: Optional[str] = None) -> 'RuleValidatorBuilder':
        self._rules.append(rules.pattern(key, regex, message))
        return self

    def range(self, key: str, minimum: int, maximum: int) -> 'RuleValidatorBuilder':
        self._rules.append(rules.range_(key, minimum, maximum))
        return self

    def one_of(self, key: str, *allowed: str) -> 'RuleValidatorBuilder':
        self._rules.append(rules.one_of(key, *allowed))
        return self

    def rule(self, rule: ValidationRule) -> 'RuleValidatorBuilder':
        if not callable(rule):
            raise TypeError("rule must be callable")
        self._rules.append(rule)
        return self

    def build(self) -> RuleValidator:
        return RuleValidator(self._rules)
