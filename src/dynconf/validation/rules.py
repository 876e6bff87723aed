"""
Built-in validation rules.

A rule is any callable taking a ConfigurationSource and returning an error
message, or None when the property is acceptable. Rules other than
``required`` pass when their property is absent.
"""

import re
from typing import Callable, Optional

from ..configuration.sources import ConfigurationSource

ValidationRule = Callable[[ConfigurationSource], Optional[str]]


def _named(rule: ValidationRule, name: str) -> ValidationRule:
    rule.__name__ = name
    rule.__qualname__ = name
    return rule


def required(key: str, message: Optional[str] = None) -> ValidationRule:
    """Fail when ``key`` is absent or blank."""
    message = message or f"Required property '{key}' is missing"

    def rule(source: ConfigurationSource) -> Optional[str]:
        value = source.get_string(key)
        if value is None or not value.strip():
            return message
        return None

    return _named(rule, f"required[{key}]")


def pattern(key: str, regex: str, message: Optional[str] = None) -> ValidationRule:
    """Fail when ``key`` is present and does not fully match ``regex``."""
    compiled = re.compile(regex)
    message = message or f"Property '{key}' does not match pattern: {regex}"

    def rule(source: ConfigurationSource) -> Optional[str]:
        value = source.get_string(key)
        if value is not None and compiled.fullmatch(value) is None:
            return message
        return None

    return _named(rule, f"pattern[{key}]")


def range_(key: str, minimum: int, maximum: int) -> ValidationRule:
    """
    Fail when ``key`` parses as an integer outside ``[minimum, maximum]``.

    Values that do not parse are left to ``pattern`` or ``required``.
    """
    if minimum > maximum:
        raise ValueError(f"minimum ({minimum}) must not exceed maximum ({maximum})")

    def rule(source: ConfigurationSource) -> Optional[str]:
        value = source.get_long(key)
        if value is None:
            return None
        if value < minimum or value > maximum:
            return f"Property '{key}' must be between {minimum} and {maximum}, but was: {value}"
        return None

    return _named(rule, f"range[{key}]")


value_range = range_


def one_of(key: str, *allowed: str) -> ValidationRule:
    """Fail when ``key`` is present and not one of ``allowed``."""
    if not allowed:
        raise ValueError("At least one allowed value is required")
    choices = tuple(allowed)

    def rule(source: ConfigurationSource) -> Optional[str]:
        value = source.get_string(key)
        if value is None or value in choices:
            return None
        return f"Property '{key}' must be one of [{', '.join(choices)}], but was: {value}"

    return _named(rule, f"one_of[{key}]")
