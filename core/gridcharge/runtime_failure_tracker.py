"""Runtime cycle failure tracking for the grid charge controller.

Failed cycles are kept in memory so the status API can show why charging
did not happen. Nothing is persisted; a restart clears the list.

The scheduler thread records failures while API requests read and dismiss
them, so access goes through a lock.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock

from .exceptions import (
    ForecastRangeError,
    GatewayUnavailableError,
    SystemConfigurationError,
)

logger = logging.getLogger(__name__)

CATEGORY_GATEWAY = "GATEWAY"
CATEGORY_FORECAST_RANGE = "FORECAST_RANGE"
CATEGORY_CONFIGURATION = "CONFIGURATION"
CATEGORY_UNKNOWN = "UNKNOWN"


def categorize_error(error: Exception) -> str:
    """Map an exception to the failure category shown to the user."""
    if isinstance(error, GatewayUnavailableError):
        return CATEGORY_GATEWAY
    if isinstance(error, ForecastRangeError):
        return CATEGORY_FORECAST_RANGE
    if isinstance(error, SystemConfigurationError):
        return CATEGORY_CONFIGURATION
    return CATEGORY_UNKNOWN


@dataclass
class CycleFailure:
    """A decision cycle that was aborted.

    Attributes:
        id: Unique identifier (UUID)
        timestamp: When the cycle failed
        category: GATEWAY, FORECAST_RANGE, CONFIGURATION or UNKNOWN
        device_address: Gateway the cycle talked to
        band: Name of the band the cycle ran for, if one was active
        error_message: Exception message
        dismissed: Whether the user has acknowledged it
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)
    category: str = CATEGORY_UNKNOWN
    device_address: str = ""
    band: str | None = None
    error_message: str = ""
    dismissed: bool = False


class RuntimeFailureTracker:
    """Thread-safe in-memory list of failed cycles, bounded to MAX_FAILURES."""

    MAX_FAILURES = 100

    def __init__(self):
        self._failures: list[CycleFailure] = []
        self._lock = Lock()

    def record_failure(
        self, error: Exception, device_address: str, band: str | None = None
    ) -> CycleFailure:
        """Record a failed cycle and return the stored record."""
        failure = CycleFailure(
            category=categorize_error(error),
            device_address=device_address,
            band=band,
            error_message=str(error),
        )

        with self._lock:
            self._failures.append(failure)
            self._enforce_max_size()

        logger.warning(
            f"Cycle failure recorded [{failure.category}] for {device_address} "
            f"(band: {band or 'none'}): {error}"
        )
        return failure

    def get_active_failures(self) -> list[CycleFailure]:
        """Get all non-dismissed failures, newest first."""
        with self._lock:
            active = [f for f in self._failures if not f.dismissed]
            return sorted(active, key=lambda f: f.timestamp, reverse=True)

    def dismiss_failure(self, failure_id: str) -> None:
        """Dismiss a failure by ID.

        Raises:
            ValueError: If failure ID not found
        """
        with self._lock:
            for failure in self._failures:
                if failure.id == failure_id:
                    failure.dismissed = True
                    logger.info(f"Dismissed cycle failure: {failure_id}")
                    return

        raise ValueError(f"Failure not found: {failure_id}")

    def dismiss_all(self) -> int:
        """Dismiss all active failures and return how many were dismissed."""
        with self._lock:
            count = 0
            for failure in self._failures:
                if not failure.dismissed:
                    failure.dismissed = True
                    count += 1

        if count > 0:
            logger.info(f"Dismissed {count} cycle failures")
        return count

    def _enforce_max_size(self) -> None:
        # Oldest entries go first, dismissed ones before active ones
        overflow = len(self._failures) - self.MAX_FAILURES
        if overflow <= 0:
            return

        ordered = sorted(self._failures, key=lambda f: (not f.dismissed, f.timestamp))
        evicted = {f.id for f in ordered[:overflow]}
        self._failures = [f for f in self._failures if f.id not in evicted]
