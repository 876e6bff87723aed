"""
Feature flag data models with validation.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_SUBJECT_KEYS: Tuple[str, ...] = ("userId", "sessionId")


def check_variant_weights(variants: Mapping[str, int]) -> Dict[str, int]:
    """Validate a variant weight table; returns an ordered copy."""
    if not variants:
        raise ValueError("Variant table must contain at least one variant")
    for name, weight in variants.items():
        if not isinstance(weight, int) or isinstance(weight, bool):
            raise ValueError(f"Weight of variant '{name}' must be an integer")
        if weight < 0:
            raise ValueError(f"Weight of variant '{name}' must not be negative")
    total = sum(variants.values())
    if total != 100:
        raise ValueError(f"Variant percentages must sum to 100, got {total}")
    return dict(variants)


class FlagConfiguration(BaseModel):
    """
    Immutable configuration record of one flag.

    The engine replaces whole records; a record is never modified in place.
    """
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    percentage: int = Field(default=0, ge=0, le=100)
    variants: Optional[Dict[str, int]] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('variants')
    @classmethod
    def validate_variants(cls, v):
        if v is None:
            return v
        return check_variant_weights(v)


class FlagDefinition(BaseModel):
    """Declarative flag definition, as read from a configuration file or source."""
    enabled: bool = True
    percentage: int = Field(default=100, ge=0, le=100)
    variants: Optional[Dict[str, int]] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator('variants')
    @classmethod
    def validate_variants(cls, v):
        if v is None:
            return v
        return check_variant_weights(v)

    @model_validator(mode='after')
    def variants_require_full_rollout(self):
        if self.variants is not None and self.percentage != 100:
            raise ValueError("Variant flags always roll out to 100 percent")
        return self

    def to_configuration(self) -> FlagConfiguration:
        if not self.enabled:
            return FlagConfiguration(enabled=False, percentage=0, metadata=self.metadata)
        return FlagConfiguration(
            enabled=True,
            percentage=self.percentage,
            variants=self.variants,
            metadata=self.metadata,
        )


@dataclass(frozen=True)
class EvaluationContext:
    """
    Immutable attribute bag supplied when evaluating a flag.

    The subject identifier is the first attribute found among the subject
    keys (``userId`` then ``sessionId`` by default).
    """
    attributes: Mapping[str, Any] = field(default_factory=dict)
    subject_keys: Sequence[str] = DEFAULT_SUBJECT_KEYS

    def __post_init__(self):
        object.__setattr__(self, 'attributes', MappingProxyType(dict(self.attributes)))
        object.__setattr__(self, 'subject_keys', tuple(self.subject_keys))

    @classmethod
    def of(cls, **attributes: Any) -> 'EvaluationContext':
        return cls(attributes)

    @classmethod
    def for_subject(cls, subject_id: Any, **attributes: Any) -> 'EvaluationContext':
        attributes["userId"] = subject_id
        return cls(attributes)

    @classmethod
    def anonymous(cls) -> 'EvaluationContext':
        return cls()

    @classmethod
    def coerce(cls, context: Optional[Any], subject_keys: Sequence[str] = DEFAULT_SUBJECT_KEYS) -> 'EvaluationContext':
        if context is None:
            return cls(subject_keys=subject_keys)
        if isinstance(context, EvaluationContext):
            return context
        if isinstance(context, Mapping):
            return cls(context, subject_keys)
        raise TypeError(f"Evaluation context must be a mapping, got {type(context).__name__}")

    @property
    def subject_id(self) -> Optional[Any]:
        for key in self.subject_keys:
            value = self.attributes.get(key)
            if value is not None:
                return value
        return None

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)
