"""
Descriptive metadata for configuration properties.

Metadata documents the properties an application reads and can derive both
the startup validator and the lowest-priority defaults source from the same
declaration.
"""

import json
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from . import rules
from .validator import RuleValidator


class PropertyMetadata(BaseModel):
    """Description of one configuration property."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    type: str = "str"
    description: Optional[str] = None
    default_value: Optional[str] = None
    required: bool = False
    example: Optional[str] = None
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    allowed_values: Optional[List[str]] = None

    @model_validator(mode='after')
    def validate_bounds(self):
        if (self.min_value is None) != (self.max_value is None):
            raise ValueError("min_value and max_value must be set together")
        if self.min_value is not None and self.min_value > self.max_value:
            raise ValueError(f"min_value ({self.min_value}) must not exceed max_value ({self.max_value})")
        return self


class ConfigurationMetadata:
    """
    Ordered collection of PropertyMetadata.

    Example:
        metadata = (ConfigurationMetadata.builder()
                    .property("database.url")
                        .description("JDBC URL for the database connection")
                        .required(True)
                    .property("database.pool.max-size")
                        .type("int")
                        .default_value("10")
                        .range(1, 100)
                    .build())

        defaults = InMemoryConfigurationSource(metadata.defaults(), name="defaults")
        metadata.to_validator().validate_or_raise(configuration)
    """

    def __init__(self, properties: Dict[str, PropertyMetadata]):
        self._properties = dict(properties)

    @staticmethod
    def builder() -> 'ConfigurationMetadataBuilder':
        return ConfigurationMetadataBuilder()

    @property
    def properties(self) -> Dict[str, PropertyMetadata]:
        return dict(self._properties)

    def get_property(self, key: str) -> Optional[PropertyMetadata]:
        return self._properties.get(key)

    def defaults(self) -> Dict[str, str]:
        return {
            name: prop.default_value
            for name, prop in self._properties.items()
            if prop.default_value is not None
        }

    def to_validator(self) -> RuleValidator:
        """Derive required, range and one-of rules from the declared properties."""
        derived = []
        for name, prop in self._properties.items():
            if prop.required:
                derived.append(rules.required(name))
            if prop.min_value is not None:
                derived.append(rules.range_(name, prop.min_value, prop.max_value))
            if prop.allowed_values:
                derived.append(rules.one_of(name, *prop.allowed_values))
        return RuleValidator(derived)

    def to_metadata_json(self, indent: Optional[int] = 2) -> str:
        document = {
            "properties": [prop.model_dump(exclude_none=True) for prop in self._properties.values()]
        }
        return json.dumps(document, indent=indent)

    def __len__(self) -> int:
        return len(self._properties)

    def __contains__(self, key: object) -> bool:
        return key in self._properties


class ConfigurationMetadataBuilder:
    """
    Fluent builder; ``property()`` starts a new property and every following
    call describes it until the next ``property()`` or ``build()``.
    """

    def __init__(self):
        self._properties: Dict[str, PropertyMetadata] = {}
        self._current: Optional[Dict[str, object]] = None

    def _set(self, field: str, value: object) -> 'ConfigurationMetadataBuilder':
        if self._current is None:
            raise ValueError("property() must be called before describing a property")
        self._current[field] = value
        return self

    def _finish(self) -> None:
        if self._current is not None:
            prop = PropertyMetadata(**self._current)
            self._properties[prop.name] = prop
            self._current = None

    def property(self, key: str) -> 'ConfigurationMetadataBuilder':
        self._finish()
        self._current = {"name": key}
        return self

    def type(self, type_name: str) -> 'ConfigurationMetadataBuilder':
        return self._set("type", type_name)

    def description(self, description: str) -> 'ConfigurationMetadataBuilder':
        return self._set("description", description)

    def default_value(self, value: str) -> 'ConfigurationMetadataBuilder':
        return self._set("default_value", value)

    def required(self, required: bool = True) -> 'ConfigurationMetadataBuilder':
        return self._set("required", required)

    def example(self, example: str) -> 'ConfigurationMetadataBuilder':
        return self._set("example", example)

    def range(self, minimum: int, maximum: int) -> 'ConfigurationMetadataBuilder':
        self._set("min_value", minimum)
        return self._set("max_value", maximum)

    def allowed_values(self, *values: str) -> 'ConfigurationMetadataBuilder':
        return self._set("allowed_values", list(values))

    def build(self) -> ConfigurationMetadata:
        self._finish()
        return ConfigurationMetadata(self._properties)
