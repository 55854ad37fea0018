"""
Run bookkeeping shared by the provisioner and the benchmarks: call timing,
batch identifiers and progress events.
"""

import functools
import time
import uuid
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def timer(func: F) -> F:
    """
    Log the wall-clock duration of every call to ``func`` at debug level.

    Failures are logged with the exception type only and re-raised.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(
                "Timed call failed",
                function_name=func.__name__,
                duration_ms=(time.perf_counter() - start) * 1000,
                error_type=type(e).__name__,
                success=False,
            )
            raise

        logger.debug(
            "Timed call completed",
            function_name=func.__name__,
            duration_ms=(time.perf_counter() - start) * 1000,
            success=True,
        )
        return result

    return wrapper


def generate_batch_id(prefix: str = "batch") -> str:
    """
    Return ``<prefix>_<UTC date>_<UTC time>_<8 hex chars>``.

    Examples
    --------
    >>> generate_batch_id("bench").startswith("bench_")
    True
    """
    stamp = time.strftime("%Y%m%d_%H%M%S", time.gmtime())
    return f"{prefix}_{stamp}_{uuid.uuid4().hex[:8]}"


class ProgressTracker:
    """
    Emits a progress event each time another ``log_interval`` percent of a
    batch has been processed.

    Parameters
    ----------
    total_items : int
        Number of items in the batch.
    description : str, default="Processing"
        Prefix of the emitted event names.
    log_interval : int, default=10
        Percentage step between progress events.
    """

    def __init__(
        self, total_items: int, description: str = "Processing", log_interval: int = 10
    ) -> None:
        self.total_items = total_items
        self.description = description
        self.log_interval = log_interval
        self.current_item = 0
        self._next_percentage = log_interval
        self._start = time.perf_counter()

        logger.info(f"{description} started", total_items=total_items)

    def update(self, current_item: int) -> None:
        """Record that ``current_item`` items (1-based count) are done."""
        self.current_item = current_item
        if self.total_items <= 0:
            return

        percentage = current_item * 100 / self.total_items
        if percentage < self._next_percentage:
            return

        logger.info(
            f"{self.description} progress",
            current_item=current_item,
            total_items=self.total_items,
            percentage=round(percentage, 1),
            elapsed_seconds=time.perf_counter() - self._start,
        )
        while self._next_percentage <= percentage:
            self._next_percentage += self.log_interval

    def complete(self) -> float:
        """Emit the completion event and return elapsed seconds."""
        elapsed = time.perf_counter() - self._start
        logger.info(
            f"{self.description} completed",
            total_items=self.total_items,
            elapsed_seconds=elapsed,
            items_per_second=self.total_items / elapsed if elapsed > 0 else 0.0,
        )
        return elapsed
