"""
Tests for configuration sources and typed access.
"""

import os
import time
from unittest.mock import patch

import pytest

from dynconf.configuration import (
    EnvironmentConfigurationSource,
    InMemoryConfigurationSource,
    StoreBackedSource,
    YAMLConfigurationSource,
)
from dynconf.exceptions import ConfigurationRefreshError


class TestTypedAccess:
    """Test typed getters shared by every source."""

    def test_get_string(self):
        """Present keys return their raw value, absent keys None."""
        source = InMemoryConfigurationSource({"app.name": "demo"})
        assert source.get_string("app.name") == "demo"
        assert source.get_string("app.missing") is None

    def test_get_int(self):
        """Integers parse within the 32-bit range only."""
        source = InMemoryConfigurationSource({
            "small": "42",
            "negative": "-7",
            "signed": "+5",
            "big": "3000000000",
            "text": "abc",
            "decimal": "1.5",
        })
        assert source.get_int("small") == 42
        assert source.get_int("negative") == -7
        assert source.get_int("signed") == 5
        assert source.get_int("big") is None
        assert source.get_int("text") is None
        assert source.get_int("decimal") is None

    def test_get_long(self):
        """Longs accept the 64-bit range."""
        source = InMemoryConfigurationSource({"big": "3000000000", "huge": "9223372036854775808"})
        assert source.get_long("big") == 3000000000
        assert source.get_long("huge") is None

    def test_get_double(self):
        source = InMemoryConfigurationSource({"ratio": "0.75", "bad": "x"})
        assert source.get_double("ratio") == 0.75
        assert source.get_double("bad") is None
        assert source.get_double("missing") is None

    def test_get_boolean(self):
        """Only true/false (any case) are booleans."""
        source = InMemoryConfigurationSource({"a": "TRUE", "b": "false", "c": "yes", "d": "1"})
        assert source.get_boolean("a") is True
        assert source.get_boolean("b") is False
        assert source.get_boolean("c") is None
        assert source.get_boolean("d") is None

    def test_get_properties_strips_prefix(self):
        """Prefix queries return keys relative to the prefix."""
        source = InMemoryConfigurationSource({
            "database.url": "jdbc:x",
            "database.pool.size": "10",
            "databases.other": "no",
            "server.port": "8080",
        })
        assert source.get_properties("database") == {"url": "jdbc:x", "pool.size": "10"}
        assert source.get_properties("database.") == {"url": "jdbc:x", "pool.size": "10"}
        assert source.get_properties("missing") == {}


class TestInMemorySource:
    """Test the programmatic source."""

    def test_mutation(self):
        source = InMemoryConfigurationSource()
        source.set_property("a", "1")
        source.set_properties({"b": "2", "c": "3"})
        source.remove_property("c")
        assert source.snapshot() == {"a": "1", "b": "2"}
        source.clear()
        assert source.snapshot() == {}

    def test_refresh_is_successful_noop(self):
        source = InMemoryConfigurationSource({"a": "1"}, name="mem")
        result = source.refresh()
        assert result.success
        assert result.source_name == "mem"
        assert source.get_string("a") == "1"


class FlakySource(StoreBackedSource):
    """Store-backed source whose next load can be scripted to fail."""

    def __init__(self, name="flaky"):
        super().__init__(name)
        self.next_properties = {}
        self.fail_with = None

    def _load(self):
        if self.fail_with is not None:
            raise self.fail_with
        return self.next_properties


class TestStoreBackedSource:
    """Test refresh semantics of store-backed sources."""

    def test_successful_refresh_replaces_properties(self):
        source = FlakySource()
        source.next_properties = {"a": "1"}
        assert source.refresh().success
        source.next_properties = {"b": "2"}
        assert source.refresh().success
        assert source.snapshot() == {"b": "2"}

    def test_failed_refresh_keeps_previous_values(self):
        """A load error becomes a failed result and the old values stay."""
        source = FlakySource()
        source.next_properties = {"a": "1"}
        source.refresh()

        source.fail_with = ConnectionError("backend unavailable")
        result = source.refresh()

        assert not result.success
        assert result.failed_sources == ("flaky",)
        assert result.error_message == "backend unavailable"
        assert source.get_string("a") == "1"

    def test_raise_for_status(self):
        source = FlakySource()
        source.fail_with = TimeoutError("timed out")
        result = source.refresh()
        with pytest.raises(ConfigurationRefreshError, match="timed out") as exc_info:
            result.raise_for_status()
        assert exc_info.value.failed_sources == ["flaky"]


class TestYAMLSource:
    """Test the YAML file source."""

    def test_nested_mapping_flattened(self, yaml_file):
        """Nested keys become dotted properties with string values."""
        path = yaml_file({
            "database": {"url": "jdbc:postgresql://db/app", "pool": {"size": 20}},
            "features": {"beta": True, "legacy": False},
            "hosts": ["a", "b"],
            "empty": None,
        })
        source = YAMLConfigurationSource(path)

        assert source.name == f"yaml:{path.name}"
        assert source.get_string("database.url") == "jdbc:postgresql://db/app"
        assert source.get_int("database.pool.size") == 20
        assert source.get_string("features.beta") == "true"
        assert source.get_boolean("features.legacy") is False
        assert source.get_string("hosts") == "a,b"
        assert not source.contains_key("empty")

    def test_missing_file_fails_refresh(self, tmp_path):
        """A missing file is a failed refresh, not an exception."""
        source = YAMLConfigurationSource(tmp_path / "absent.yaml", load=False)
        result = source.refresh()
        assert not result.success
        assert "Configuration file not found" in result.error_message

    def test_invalid_yaml_keeps_previous_values(self, yaml_file):
        path = yaml_file({"a": 1})
        source = YAMLConfigurationSource(path)

        path.write_text("a: [unclosed\n")
        result = source.refresh()

        assert not result.success
        assert "Invalid YAML" in result.error_message
        assert source.get_string("a") == "1"

    def test_non_mapping_document_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        source = YAMLConfigurationSource(path, load=False)
        assert not source.refresh().success

    def test_reload_after_change(self, yaml_file):
        path = yaml_file({"a": 1})
        source = YAMLConfigurationSource(path)
        assert not source.has_changed()

        time.sleep(0.01)
        path.write_text("a: 2\n")
        os.utime(path, (time.time() + 5, time.time() + 5))

        assert source.has_changed()
        assert source.refresh().success
        assert source.get_string("a") == "2"
        assert not source.has_changed()


class TestEnvironmentSource:
    """Test the environment variable source."""

    @patch.dict(os.environ, {
        "DYNCONF_DATABASE_POOL_SIZE": "25",
        "DYNCONF_HTTP_MAX__RETRIES": "3",
        "OTHER_VALUE": "ignored",
    })
    def test_variable_names_mapped_to_keys(self):
        source = EnvironmentConfigurationSource()
        assert source.get_int("database.pool.size") == 25
        assert source.get_int("http.max_retries") == 3
        assert not source.contains_key("other.value")

    def test_custom_prefix_and_environ(self):
        source = EnvironmentConfigurationSource("APP_", environ={"APP_FEATURE_ENABLED": "true", "APP_": "x"})
        assert source.name == "env:APP_"
        assert source.get_boolean("feature.enabled") is True
        assert source.snapshot() == {"feature.enabled": "true"}

    def test_refresh_picks_up_new_variables(self):
        with patch.dict(os.environ, {"DYNCONF_A": "1"}):
            source = EnvironmentConfigurationSource()
            assert source.get_string("a") == "1"
            os.environ["DYNCONF_B"] = "2"
            assert source.refresh().success
            assert source.get_string("b") == "2"

    def test_to_property_key(self):
        assert EnvironmentConfigurationSource.to_property_key("SERVER_PORT") == "server.port"
        assert EnvironmentConfigurationSource.to_property_key("MAX__SIZE") == "max_size"
