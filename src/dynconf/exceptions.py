"""
Structured Exception Hierarchy

Provides the exception hierarchy used across dynconf with contextual
information for error reporting and diagnostics.
"""

from typing import Dict, List, Any, Optional
import uuid
from datetime import datetime, timezone


class DynconfException(Exception):
    """
    Base exception class for all dynconf-specific exceptions.

    Carries an error code, context data and a correlation ID so failures can
    be traced through structured logs.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        correlation_id: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class ConfigurationError(DynconfException):
    """Raised when configuration-related errors occur."""

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        error_code: str = "CONFIG_ERROR",
        **kwargs
    ):
        context = kwargs.pop('context', {})
        if source_name:
            context['source_name'] = source_name
        super().__init__(message=message, error_code=error_code, context=context, **kwargs)


class ConfigurationRefreshError(ConfigurationError):
    """Raised when a refresh result is turned into an exception."""

    def __init__(self, message: str, failed_sources: Optional[List[str]] = None, **kwargs):
        context = kwargs.pop('context', {})
        context['failed_sources'] = list(failed_sources or [])
        super().__init__(message, error_code="CONFIG_REFRESH_FAILED", context=context, **kwargs)
        self.failed_sources = list(failed_sources or [])


class ConfigurationValidationError(ConfigurationError):
    """
    Raised when startup validation finds misconfigured properties.

    The message is the operator-facing rendering of every collected error.
    """

    def __init__(self, result: Any, **kwargs):
        errors = list(result.get_errors())
        context = kwargs.pop('context', {})
        context['validation_errors'] = errors
        super().__init__(
            result.format_errors(),
            error_code="CONFIG_VALIDATION_FAILED",
            context=context,
            **kwargs
        )
        self.result = result
        self.validation_errors = errors


class DecryptionError(ConfigurationError):
    """Raised when an encrypted configuration value cannot be decrypted."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code="CONFIG_DECRYPTION_FAILED", **kwargs)


class FeatureFlagError(DynconfException):
    """Base class for feature flag errors."""

    def __init__(self, message: str, flag_name: Optional[str] = None, error_code: str = "FLAG_ERROR", **kwargs):
        context = kwargs.pop('context', {})
        if flag_name:
            context['flag_name'] = flag_name
        super().__init__(message=message, error_code=error_code, context=context, **kwargs)
        self.flag_name = flag_name


class FlagConfigurationError(FeatureFlagError, ValueError):
    """Raised synchronously when a flag is given an invalid configuration."""

    def __init__(self, message: str, flag_name: Optional[str] = None, **kwargs):
        super().__init__(message, flag_name=flag_name, error_code="FLAG_CONFIGURATION_INVALID", **kwargs)


class MissingSubjectError(FeatureFlagError):
    """Raised by strict engines when a partial rollout is evaluated without a subject."""

    def __init__(self, flag_name: str, **kwargs):
        super().__init__(
            f"Flag '{flag_name}' requires a subject identifier for percentage evaluation",
            flag_name=flag_name,
            error_code="FLAG_SUBJECT_REQUIRED",
            **kwargs
        )


class FeatureFlagDisabledError(FeatureFlagError):
    """Raised by the feature_flag decorator when the guarded flag is off."""

    def __init__(self, flag_name: str, **kwargs):
        super().__init__(
            f"Feature flag '{flag_name}' is disabled",
            flag_name=flag_name,
            error_code="FLAG_DISABLED",
            **kwargs
        )
