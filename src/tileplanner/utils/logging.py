"""
Logging helpers for timing route queries.
"""

import logging
import time
from typing import Any, Optional

logger = logging.getLogger(__name__)


class PerformanceTimer:
    """
    Context manager for timing code blocks.

    Usage:
        with PerformanceTimer("NBA* search") as timer:
            result = await planner.find_path(origin, destination)
        # Automatically logs execution time
    """

    def __init__(
        self,
        operation_name: str,
        log_level: int = logging.DEBUG,
        threshold_ms: Optional[float] = None,
    ):
        """
        Initialize PerformanceTimer.

        Args:
            operation_name: Name of the operation being timed
            log_level: Logging level to use
            threshold_ms: Only log if execution time exceeds this threshold
        """
        self.operation_name = operation_name
        self.log_level = log_level
        self.threshold_ms = threshold_ms
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.duration_ms: Optional[float] = None

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the timer started, or the final duration once stopped."""
        if self.duration_ms is not None:
            return self.duration_ms
        if self.start_time is None:
            return 0.0
        return (time.perf_counter() - self.start_time) * 1000

    def __enter__(self) -> "PerformanceTimer":
        """Start the timer."""
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Stop the timer and log the result."""
        self.end_time = time.perf_counter()
        if self.start_time is not None:
            self.duration_ms = (self.end_time - self.start_time) * 1000

            if self.threshold_ms is None or self.duration_ms >= self.threshold_ms:
                logger.log(
                    self.log_level,
                    f"{self.operation_name} completed in {self.duration_ms:.2f}ms",
                    extra={
                        "duration_ms": self.duration_ms,
                        "operation": self.operation_name,
                    },
                )
