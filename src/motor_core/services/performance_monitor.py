# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Performance monitoring decorator for lifecycle and rating operations."""

import asyncio
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from beartype import beartype

from ..core.config import get_settings
from ..core.logging_utils import get_logger

P = ParamSpec("P")
T = TypeVar("T")

logger = get_logger(__name__)


@beartype
def performance_monitor(
    operation_name: str,
    max_duration_ms: int | None = None,
    log_slow_operations: bool = True,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator to monitor the duration of an operation.

    Durations are logged at DEBUG. Operations slower than the threshold are
    logged at WARNING, and failures are logged and re-raised.

    Args:
        operation_name: Name of the operation for monitoring
        max_duration_ms: Alert threshold in milliseconds, defaults to
            ``Settings.slow_operation_threshold_ms``
        log_slow_operations: Whether to log slow operations
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)  # type: ignore[misc]
            except Exception as e:
                _log_failure(operation_name, start_time, e)
                raise
            _log_duration(operation_name, start_time, max_duration_ms, log_slow_operations)
            return result

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_failure(operation_name, start_time, e)
                raise
            _log_duration(operation_name, start_time, max_duration_ms, log_slow_operations)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore[return-value]
        return sync_wrapper

    return decorator


def _log_duration(
    operation_name: str,
    start_time: float,
    max_duration_ms: int | None,
    log_slow_operations: bool,
) -> None:
    duration_ms = (time.perf_counter() - start_time) * 1000
    threshold = max_duration_ms or get_settings().slow_operation_threshold_ms

    if log_slow_operations and duration_ms > threshold:
        logger.warning(
            "Slow operation %s: %.2fms > %sms threshold",
            operation_name,
            duration_ms,
            threshold,
        )
    else:
        logger.debug("%s completed in %.2fms", operation_name, duration_ms)


def _log_failure(operation_name: str, start_time: float, error: Exception) -> None:
    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.error(
        "%s failed after %.2fms: %s", operation_name, duration_ms, error
    )
