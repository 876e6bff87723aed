"""
Decorator gating function execution behind a feature flag.
"""

import functools
import inspect
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from ..exceptions import FeatureFlagDisabledError
from .engine import FeatureFlagEngine

F = TypeVar('F', bound=Callable[..., Any])


class FallbackStrategy(Enum):
    """What a guarded call does when its flag is off."""
    RAISE = "raise"
    RETURN_NONE = "return_none"
    RETURN_DEFAULT = "return_default"
    CALL_FUNCTION = "call_function"


def feature_flag(
    engine: FeatureFlagEngine,
    flag_name: str,
    fallback: FallbackStrategy = FallbackStrategy.RAISE,
    subject_arg: Optional[str] = None,
    fallback_function: Optional[Callable[..., Any]] = None,
    default: Any = None,
):
    """
    Run the decorated function only when ``flag_name`` is enabled.

    ``subject_arg`` names the parameter whose value is used as the
    ``userId`` of the evaluation context. With CALL_FUNCTION the fallback
    receives the same arguments as the guarded function.

    Usage:
        @feature_flag(flags, "new-checkout", FallbackStrategy.CALL_FUNCTION,
                      subject_arg="user_id", fallback_function=legacy_checkout)
        def checkout(user_id, cart):
            ...
    """
    if fallback is FallbackStrategy.CALL_FUNCTION and fallback_function is None:
        raise ValueError("fallback_function must be provided with the CALL_FUNCTION strategy")

    def decorator(func: F) -> F:
        signature = inspect.signature(func)
        if subject_arg is not None and subject_arg not in signature.parameters:
            raise ValueError(f"{func.__qualname__} has no parameter named '{subject_arg}'")

        def context_for(args, kwargs):
            if subject_arg is None:
                return None
            bound = signature.bind_partial(*args, **kwargs)
            subject = bound.arguments.get(subject_arg)
            return {"userId": subject} if subject is not None else None

        def on_disabled(args, kwargs):
            if fallback is FallbackStrategy.RAISE:
                raise FeatureFlagDisabledError(flag_name)
            if fallback is FallbackStrategy.RETURN_NONE:
                return None
            if fallback is FallbackStrategy.RETURN_DEFAULT:
                return default
            return fallback_function(*args, **kwargs)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            if engine.is_enabled(flag_name, context_for(args, kwargs)):
                return func(*args, **kwargs)
            return on_disabled(args, kwargs)

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            if engine.is_enabled(flag_name, context_for(args, kwargs)):
                return await func(*args, **kwargs)
            result = on_disabled(args, kwargs)
            if inspect.isawaitable(result):
                return await result
            return result

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
