"""Decorators for monitoring, retries and other cross-cutting concerns."""
import asyncio
import logging
import random
import time
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar

from chunkstore.core.exceptions import ChunkStoreException
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

AsyncF = TypeVar('AsyncF', bound=Callable[..., Awaitable[Any]])


def async_performance_monitor(
    operation_name: Optional[str] = None,
    log_slow_operations: bool = True,
    slow_threshold: float = 1.0
):
    """
    Decorator for measuring coroutine latency and flagging slow calls.

    Args:
        operation_name: Custom label for the monitored operation.
        log_slow_operations: Emit warnings when threshold is exceeded.
        slow_threshold: Seconds beyond which the call is considered slow.
    """

    def decorator(func: AsyncF) -> AsyncF:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            op_name = operation_name or f"{func.__module__}.{func.__name__}"
            start_time = time.perf_counter()

            try:
                result = await func(*args, **kwargs)
            except ChunkStoreException as e:
                # Expected domain outcomes are logged without a traceback
                execution_time = time.perf_counter() - start_time
                logger.warning(
                    "%s failed in %.3fs: %s",
                    op_name, execution_time, e.message,
                    extra={"operation": op_name, "error_details": e.to_dict()}
                )
                raise
            except Exception as e:
                execution_time = time.perf_counter() - start_time
                logger.error(
                    "%s failed in %.3fs: %s",
                    op_name, execution_time, e,
                    extra={"operation": op_name, "error_type": type(e).__name__},
                    exc_info=True
                )
                raise

            execution_time = time.perf_counter() - start_time
            log_info = {
                "operation": op_name,
                "duration_ms": round(execution_time * 1000, 2),
                "status": "success"
            }

            if log_slow_operations and execution_time > slow_threshold:
                logger.warning("Slow operation detected: %s", log_info)
            else:
                logger.debug("Operation completed: %s", log_info)

            return result

        return wrapper  # type: ignore

    return decorator


def async_retry(
    max_attempts: int = 3,
    delay: float = 0.5,
    exponential_base: float = 2.0,
    jitter: bool = True,
    exceptions: tuple = (Exception,)
):
    """
    Retry decorator with exponential backoff for coroutines.

    Args:
        max_attempts: Maximum number of attempts (at least one).
        delay: Delay before the first retry, in seconds.
        exponential_base: Base multiplier used for backoff.
        jitter: Whether to introduce randomness to delays.
        exceptions: Tuple of exception types that trigger retries.
    """
    max_attempts = max(1, max_attempts)

    def decorator(func: AsyncF) -> AsyncF:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error("%s failed after %d attempts: %s", func.__name__, max_attempts, e)
                        raise

                    wait_time = delay * (exponential_base ** (attempt - 1))
                    if jitter:
                        wait_time *= 0.5 + random.random() * 0.5

                    logger.warning(
                        "%s attempt %d failed, retrying in %.2fs: %s",
                        func.__name__, attempt, wait_time, e
                    )
                    await asyncio.sleep(wait_time)

        return wrapper  # type: ignore

    return decorator
