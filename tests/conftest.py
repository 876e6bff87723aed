"""
Shared fixtures for dynconf tests.
"""

import os
import tempfile
from pathlib import Path
from typing import Dict

import pytest
import yaml

from dynconf.configuration import DynamicConfiguration, InMemoryConfigurationSource
from dynconf.observability import LogLevel, MemoryLogHandler, MetricsCollector, get_logger


@pytest.fixture
def metrics():
    """Isolated metrics collector."""
    return MetricsCollector()


@pytest.fixture
def log_capture():
    """Capture structured records emitted under the root dynconf logger."""
    root_logger = get_logger("dynconf")
    original_level = root_logger.level
    handler = MemoryLogHandler()
    root_logger.set_level(LogLevel.DEBUG)
    root_logger.add_handler(handler)
    try:
        yield handler
    finally:
        root_logger.remove_handler(handler)
        root_logger.set_level(original_level)


@pytest.fixture
def memory_source():
    return InMemoryConfigurationSource({"app.name": "demo", "pool.size": "10"}, name="memory")


@pytest.fixture
def dynamic_configuration(memory_source, metrics):
    configuration = DynamicConfiguration([memory_source], metrics=metrics)
    try:
        yield configuration
    finally:
        configuration.close()


@pytest.fixture
def yaml_file():
    """Factory writing YAML documents to temporary files removed after the test."""
    paths = []

    def write(data: Dict) -> Path:
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            yaml.dump(data, f)
            paths.append(f.name)
            return Path(f.name)

    yield write

    for path in paths:
        if os.path.exists(path):
            os.unlink(path)
