"""In-flight guards for slow operations.

A guard holds a set of keys for operations currently running. Entering a
held key raises OperationInProgress, so the same control cannot trigger a
second submission or AI request until the first one settles.
"""

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator

from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)


class OperationInProgress(Exception):
    """Raised when an operation is triggered while it is already running."""
    pass


class InFlightGuard:
    """Tracks which keyed operations are currently running."""

    def __init__(self):
        self._lock = threading.Lock()
        self._held: set = set()

    def is_held(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._held

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Mark key as in flight for the duration of the block.

        The key is released when the block exits, whether it succeeded
        or raised.

        Raises:
            OperationInProgress: If key is already held
        """
        with self._lock:
            if key in self._held:
                logger.info(f"Rejected duplicate in-flight operation: {key}")
                raise OperationInProgress(f"Operation already in progress: {key}")
            self._held.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._held.discard(key)
