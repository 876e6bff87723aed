"""
Immutable outcome of configuration validation.
"""

from typing import Iterable, Tuple, Union


class ValidationResult:
    """
    Ordered collection of validation errors.

    ``ValidationResult.valid()`` is the canonical empty result;
    ``ValidationResult.invalid(...)`` needs at least one error.
    """

    __slots__ = ('_errors',)

    def __init__(self, errors: Iterable[str] = ()):
        self._errors: Tuple[str, ...] = tuple(errors)

    @classmethod
    def valid(cls) -> 'ValidationResult':
        return _VALID

    @classmethod
    def invalid(cls, errors: Union[str, Iterable[str]]) -> 'ValidationResult':
        if errors is None:
            raise ValueError("errors must not be None")
        if isinstance(errors, str):
            errors = (errors,)
        result = cls(errors)
        if not result._errors:
            raise ValueError("At least one error is required")
        return result

    def has_errors(self) -> bool:
        return bool(self._errors)

    def is_valid(self) -> bool:
        return not self._errors

    def get_errors(self) -> Tuple[str, ...]:
        return self._errors

    @property
    def error_count(self) -> int:
        return len(self._errors)

    def format_errors(self) -> str:
        """
        Operator-facing rendering: a single error verbatim, or a count header
        followed by one numbered line per error.
        """
        if not self._errors:
            return "No errors"
        if len(self._errors) == 1:
            return self._errors[0]

        lines = [f"{len(self._errors)} configuration error(s):\n"]
        for index, error in enumerate(self._errors, start=1):
            lines.append(f"  {index}. {error}\n")
        return "".join(lines)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationResult):
            return NotImplemented
        return self._errors == other._errors

    def __hash__(self) -> int:
        return hash(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __bool__(self) -> bool:
        # Truthy when validation passed
        return not self._errors

    def __str__(self) -> str:
        return self.format_errors()

    def __repr__(self) -> str:
        return f"ValidationResult(errors={list(self._errors)!r})"


_VALID = ValidationResult()
