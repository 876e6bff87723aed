"""
Tests for rule-based configuration validation.
"""

import pytest

from dynconf.configuration import InMemoryConfigurationSource
from dynconf.exceptions import ConfigurationValidationError
from dynconf.validation import RuleValidator, ValidationResult, one_of, pattern, range_, required, value_range


class TestValidationResult:
    """Test the validation result value."""

    def test_valid(self):
        result = ValidationResult.valid()
        assert result.is_valid()
        assert not result.has_errors()
        assert result.get_errors() == ()
        assert result.error_count == 0
        assert result.format_errors() == "No errors"
        assert str(result) == "No errors"

    def test_invalid_requires_errors(self):
        with pytest.raises(ValueError):
            ValidationResult.invalid([])

    def test_single_error_verbatim(self):
        result = ValidationResult.invalid("Required property 'a' is missing")
        assert result.format_errors() == "Required property 'a' is missing"

    def test_multiple_errors_numbered(self):
        result = ValidationResult.invalid(["first", "second"])
        assert result.error_count == 2
        assert result.format_errors() == "2 configuration error(s):\n  1. first\n  2. second\n"
        assert str(result) == result.format_errors()

    def test_equality(self):
        assert ValidationResult.invalid(["a"]) == ValidationResult.invalid("a")
        assert ValidationResult.valid() == ValidationResult()


class TestRules:
    """Test the built-in rules."""

    def test_required(self):
        rule = required("database.url")
        assert rule(InMemoryConfigurationSource({"database.url": "jdbc:x"})) is None
        assert rule(InMemoryConfigurationSource()) == "Required property 'database.url' is missing"
        assert rule(InMemoryConfigurationSource({"database.url": "   "})) is not None

    def test_required_custom_message(self):
        rule = required("api.key", "API key must be configured")
        assert rule(InMemoryConfigurationSource()) == "API key must be configured"

    def test_pattern_full_match(self):
        rule = pattern("server.port", r"\d+")
        assert rule(InMemoryConfigurationSource({"server.port": "8080"})) is None
        assert rule(InMemoryConfigurationSource({"server.port": "8080x"})) == (
            "Property 'server.port' does not match pattern: \\d+"
        )
        assert rule(InMemoryConfigurationSource()) is None

    def test_range(self):
        """pool.size of 150 is outside 1..100."""
        rule = range_("pool.size", 1, 100)
        assert rule(InMemoryConfigurationSource({"pool.size": "150"})) == (
            "Property 'pool.size' must be between 1 and 100, but was: 150"
        )
        assert rule(InMemoryConfigurationSource({"pool.size": "100"})) is None
        assert rule(InMemoryConfigurationSource({"pool.size": "1"})) is None
        assert rule(InMemoryConfigurationSource({"pool.size": "abc"})) is None
        assert rule(InMemoryConfigurationSource()) is None

    def test_range_alias_and_bounds(self):
        assert value_range is range_
        with pytest.raises(ValueError):
            range_("pool.size", 10, 1)

    def test_one_of(self):
        rule = one_of("log.level", "DEBUG", "INFO")
        assert rule(InMemoryConfigurationSource({"log.level": "INFO"})) is None
        assert rule(InMemoryConfigurationSource({"log.level": "TRACE"})) == (
            "Property 'log.level' must be one of [DEBUG, INFO], but was: TRACE"
        )
        assert rule(InMemoryConfigurationSource()) is None


class TestRuleValidator:
    """Test aggregation of rule results."""

    def test_two_of_three_failing_in_order(self):
        validator = (RuleValidator.builder()
                     .required("database.url")
                     .pattern("server.port", r"\d+")
                     .range("pool.size", 1, 100)
                     .build())
        source = InMemoryConfigurationSource({"server.port": "8080", "pool.size": "150"})

        result = validator.validate(source)

        assert result.get_errors() == (
            "Required property 'database.url' is missing",
            "Property 'pool.size' must be between 1 and 100, but was: 150",
        )

    def test_all_passing(self):
        validator = RuleValidator.builder().required("a").one_of("b", "x", "y").build()
        result = validator.validate(InMemoryConfigurationSource({"a": "1", "b": "x"}))
        assert result is ValidationResult.valid()

    def test_custom_rule(self):
        def ports_differ(source):
            if source.get_string("http.port") == source.get_string("admin.port"):
                return "http.port and admin.port must differ"
            return None

        validator = RuleValidator.builder().rule(ports_differ).build()
        source = InMemoryConfigurationSource({"http.port": "80", "admin.port": "80"})
        assert validator.validate(source).get_errors() == ("http.port and admin.port must differ",)

    def test_raising_rule_becomes_error(self):
        def exploding(source):
            raise KeyError("boom")

        validator = RuleValidator([exploding, required("a")])
        result = validator.validate(InMemoryConfigurationSource())

        assert result.get_errors() == (
            "Validation rule exploding failed: 'boom'",
            "Required property 'a' is missing",
        )

    def test_rule_must_be_callable(self):
        with pytest.raises(TypeError):
            RuleValidator.builder().rule("not callable")

    def test_validate_or_raise(self):
        validator = RuleValidator.builder().required("a").required("b").build()
        with pytest.raises(ConfigurationValidationError) as exc_info:
            validator.validate_or_raise(InMemoryConfigurationSource())

        error = exc_info.value
        assert error.validation_errors == [
            "Required property 'a' is missing",
            "Required property 'b' is missing",
        ]
        assert str(error) == error.result.format_errors()
        assert error.error_code == "CONFIG_VALIDATION_FAILED"

    def test_validate_or_raise_passes(self):
        validator = RuleValidator.builder().required("a").build()
        assert validator.validate_or_raise(InMemoryConfigurationSource({"a": "1"})).is_valid()
        assert len(validator) == 1
