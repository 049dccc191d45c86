"""
Error Handling Utilities

Standardized error handling for the render and simulation loop.
A failure while handling one vehicle or one record is logged with context
and must never take down the rest of the frame; configuration failures are
logged and propagated.
"""

import logging
from collections import defaultdict
from functools import wraps
from typing import Any, Callable, Dict, List, Tuple, Type

logger = logging.getLogger(__name__)

MAX_MESSAGES_PER_KIND = 3


def safe_execute(
    func: Callable,
    *args,
    default: Any = None,
    error_context: str = "",
    **kwargs
) -> Any:
    """
    Run func, returning default instead of raising.

    Used for per-item work inside a frame (placing one vehicle, drawing one
    segment) where one bad item must not abort the others.

    Args:
        func: Function to execute
        *args: Positional arguments
        default: Value returned when func raises
        error_context: Prefix for the log message, typically the item id
        **kwargs: Keyword arguments

    Returns:
        Function result or default value
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        context = f"{error_context}: " if error_context else ""
        logger.error(f"{context}{type(e).__name__}: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
        return default


def handle_specific_exceptions(
    exceptions: Tuple[Type[Exception], ...],
    error_context: str = "",
    log_level: int = logging.ERROR,
    reraise: bool = True
) -> Callable:
    """
    Decorator logging the listed exceptions with context.

    Args:
        exceptions: Exception types to log
        error_context: Prefix for the log message
        log_level: Logging level for the message
        reraise: Propagate after logging; otherwise the call returns None

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except exceptions as e:
                context = f"{error_context}: " if error_context else f"{func.__name__}: "
                logger.log(log_level, f"{context}{type(e).__name__}: {e}")
                if reraise:
                    raise
                return None
        return wrapper
    return decorator


def _error_kind(error: Exception) -> str:
    code = getattr(error, "code", None)
    return f"{type(error).__name__} ({code})" if code is not None else type(error).__name__


def create_error_summary(errors: List[Exception]) -> str:
    """
    Summarize collected errors, grouped by type and error code.

    Args:
        errors: Exceptions collected while decoding or rendering

    Returns:
        Multi-line summary listing a few messages per kind
    """
    if not errors:
        return "No errors"

    by_kind: Dict[str, List[str]] = defaultdict(list)
    for error in errors:
        by_kind[_error_kind(error)].append(str(error))

    summary_lines = [f"Error Summary ({len(errors)} errors):"]
    for kind, messages in by_kind.items():
        summary_lines.append(f"  {kind}: {len(messages)} occurrences")
        summary_lines.extend(f"    - {message}" for message in messages[:MAX_MESSAGES_PER_KIND])
        if len(messages) > MAX_MESSAGES_PER_KIND:
            summary_lines.append(f"    - ... and {len(messages) - MAX_MESSAGES_PER_KIND} more")

    return "\n".join(summary_lines)
