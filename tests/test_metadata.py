"""
Tests for configuration property metadata.
"""

import json

import pytest
from pydantic import ValidationError

from dynconf.configuration import DynamicConfiguration, InMemoryConfigurationSource
from dynconf.validation import ConfigurationMetadata, PropertyMetadata


@pytest.fixture
def metadata():
    return (ConfigurationMetadata.builder()
            .property("database.url")
                .description("JDBC URL for the database connection")
                .required()
                .example("jdbc:postgresql://localhost:5432/app")
            .property("database.pool.max-size")
                .type("int")
                .description("Maximum pool size")
                .default_value("10")
                .range(1, 100)
            .property("log.level")
                .default_value("INFO")
                .allowed_values("DEBUG", "INFO", "WARNING")
            .build())


class TestPropertyMetadata:
    """Test property metadata validation."""

    def test_bounds_must_be_paired(self):
        with pytest.raises(ValidationError):
            PropertyMetadata(name="a", min_value=1)

    def test_bounds_ordered(self):
        with pytest.raises(ValidationError):
            PropertyMetadata(name="a", min_value=10, max_value=1)

    def test_name_required(self):
        with pytest.raises(ValidationError):
            PropertyMetadata(name="")


class TestConfigurationMetadata:
    """Test the metadata collection and what it derives."""

    def test_builder_preserves_order(self, metadata):
        assert list(metadata.properties) == ["database.url", "database.pool.max-size", "log.level"]
        assert metadata.get_property("database.url").required is True
        assert metadata.get_property("database.pool.max-size").max_value == 100
        assert "log.level" in metadata
        assert len(metadata) == 3

    def test_describe_before_property_rejected(self):
        with pytest.raises(ValueError):
            ConfigurationMetadata.builder().description("orphan")

    def test_defaults(self, metadata):
        assert metadata.defaults() == {"database.pool.max-size": "10", "log.level": "INFO"}

    def test_metadata_json(self, metadata):
        document = json.loads(metadata.to_metadata_json())
        names = [p["name"] for p in document["properties"]]
        assert names == ["database.url", "database.pool.max-size", "log.level"]
        pool = document["properties"][1]
        assert pool["type"] == "int"
        assert pool["default_value"] == "10"
        assert pool["min_value"] == 1
        assert "example" not in pool

    def test_derived_validator(self, metadata):
        validator = metadata.to_validator()
        source = InMemoryConfigurationSource({"database.pool.max-size": "500", "log.level": "TRACE"})

        errors = validator.validate(source).get_errors()

        assert errors == (
            "Required property 'database.url' is missing",
            "Property 'database.pool.max-size' must be between 1 and 100, but was: 500",
            "Property 'log.level' must be one of [DEBUG, INFO, WARNING], but was: TRACE",
        )

    def test_defaults_as_lowest_priority_source(self, metadata, metrics):
        overrides = InMemoryConfigurationSource({"log.level": "DEBUG", "database.url": "jdbc:x"}, name="app")
        defaults = InMemoryConfigurationSource(metadata.defaults(), name="defaults")
        with DynamicConfiguration([overrides, defaults], metrics=metrics) as configuration:
            assert configuration.get_string("log.level") == "DEBUG"
            assert configuration.get_int("database.pool.max-size") == 10
            assert metadata.to_validator().validate(configuration).is_valid()
