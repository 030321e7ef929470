"""
Operation Coordinator

Debounces and prioritizes outbound remote operations (event pushes to the
remote backend). Operations are queued by priority and processed one at a
time, either synchronously via process_pending() or on a single background
thread started with ensure_started().
"""
from __future__ import annotations

import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional

from flask import current_app

from ..domain.models import now_utc, format_datetime

logger = logging.getLogger(__name__)


class OperationPriority(IntEnum):
    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


class LogVerbosity(IntEnum):
    NONE = 0       # No logging
    ERRORS = 1     # Only errors
    IMPORTANT = 2  # Completed operations
    VERBOSE = 3    # Scheduling, debouncing, cancellation
    DEBUG = 4


@dataclass
class PendingOperation:
    name: str
    key: str
    operation: Callable[[], Any]
    priority: OperationPriority = OperationPriority.NORMAL
    min_interval: float = 2.0
    error_handler: Optional[Callable[[Exception], Any]] = None
    sequence: int = 0
    scheduled_at: datetime = field(default_factory=now_utc)


class OperationCoordinator:
    def __init__(self, min_interval: float = 2.0, operation_delay: float = 0.1,
                 verbosity: LogVerbosity = LogVerbosity.IMPORTANT,
                 background: bool = True,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.min_interval = min_interval
        self.operation_delay = operation_delay
        self.verbosity = verbosity
        self.background = background
        self._clock = clock
        self._sleep = sleep

        self._operations: List[PendingOperation] = []
        self._last_run: Dict[str, float] = {}
        self._sequence = itertools.count()
        self._lock = threading.RLock()
        self._wakeup = threading.Event()
        self._processing = False
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._app = None

        self.total_operations_processed = 0
        self.total_operations_skipped = 0
        self.total_operations_failed = 0
        self.last_operation_time: Optional[datetime] = None

    def set_log_verbosity(self, level: LogVerbosity) -> None:
        self.verbosity = LogVerbosity(level)
        logger.info(f"Operation log verbosity set to {self.verbosity.name}")

    # ---------------------- Scheduling ----------------------
    def schedule_operation(self, name: str, key: str, operation: Callable[[], Any],
                           priority: OperationPriority = OperationPriority.NORMAL,
                           min_interval: Optional[float] = None,
                           error_handler: Optional[Callable[[Exception], Any]] = None) -> bool:
        """Queue an operation unless its key ran successfully within min_interval.

        Returns True when the operation was queued, False when it was debounced.
        """
        interval = self.min_interval if min_interval is None else min_interval
        with self._lock:
            last = self._last_run.get(key)
            if last is not None and (self._clock() - last) < interval:
                self.total_operations_skipped += 1
                if self.verbosity >= LogVerbosity.VERBOSE:
                    logger.debug(f"Debounced operation: {name} (key: {key})")
                return False

            self._operations.append(PendingOperation(
                name=name,
                key=key,
                operation=operation,
                priority=OperationPriority(priority),
                min_interval=interval,
                error_handler=error_handler,
                sequence=next(self._sequence),
            ))
            # Highest priority first, FIFO within a priority
            self._operations.sort(key=lambda op: (-op.priority, op.sequence))
            if self.verbosity >= LogVerbosity.VERBOSE:
                logger.debug(f"Scheduled operation: {name} (key: {key}, priority: {int(priority)})")

        if self.background:
            self.ensure_started()
            self._wakeup.set()
        return True

    def cancel_operations(self, key: str) -> int:
        """Drop queued operations with the given key. Returns how many were removed."""
        with self._lock:
            before = len(self._operations)
            self._operations = [op for op in self._operations if op.key != key]
            removed = before - len(self._operations)
        if self.verbosity >= LogVerbosity.VERBOSE:
            logger.debug(f"Cancelled {removed} operations with key: {key}")
        return removed

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._operations)

    def pending_keys(self) -> List[str]:
        with self._lock:
            return [op.key for op in self._operations]

    # ---------------------- Processing ----------------------
    def _next_operation(self) -> Optional[PendingOperation]:
        with self._lock:
            if not self._operations:
                return None
            return self._operations.pop(0)

    def process_pending(self) -> int:
        """Run queued operations sequentially. Returns the number that succeeded."""
        with self._lock:
            if self._processing:
                return 0
            self._processing = True

        succeeded = 0
        try:
            while True:
                op = self._next_operation()
                if op is None:
                    break
                if self._execute(op):
                    succeeded += 1
                if self.operation_delay > 0:
                    self._sleep(self.operation_delay)
        finally:
            with self._lock:
                self._processing = False
        return succeeded

    def _execute(self, op: PendingOperation) -> bool:
        if self.verbosity >= LogVerbosity.VERBOSE:
            logger.debug(f"Executing operation: {op.name} (priority: {int(op.priority)})")
        try:
            op.operation()
        except Exception as e:
            with self._lock:
                self.total_operations_failed += 1
            if self.verbosity >= LogVerbosity.ERRORS:
                logger.error(f"Failed operation: {op.name} - {e}")
            if op.error_handler is not None:
                try:
                    op.error_handler(e)
                except Exception:
                    logger.exception(f"Error handler for {op.name} raised")
            return False

        with self._lock:
            self._last_run[op.key] = self._clock()
            self.last_operation_time = now_utc()
            self.total_operations_processed += 1
        if self.verbosity >= LogVerbosity.IMPORTANT:
            logger.info(f"Completed operation: {op.name}")
        return True

    # ---------------------- Background thread ----------------------
    def ensure_started(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            self._running = True
            try:
                # Capture a concrete Flask app object from the active context
                self._app = current_app._get_current_object()  # type: ignore[attr-defined]
            except RuntimeError:
                self._app = None
            self._thread = threading.Thread(target=self._run_loop, name="operation-coordinator", daemon=True)
            self._thread.start()

    def _run_loop(self) -> None:
        ctx = self._app.app_context() if self._app is not None else None
        if ctx is not None:
            ctx.push()
        try:
            while self._running:
                self._wakeup.wait(timeout=1.0)
                self._wakeup.clear()
                try:
                    self.process_pending()
                except Exception:
                    logger.exception("Operation coordinator loop error")
        finally:
            if ctx is not None:
                ctx.pop()

    def shutdown(self, timeout: float = 2.0) -> None:
        with self._lock:
            self._running = False
            thread = self._thread
        self._wakeup.set()
        if thread and thread.is_alive():
            thread.join(timeout=timeout)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'total_operations_processed': self.total_operations_processed,
                'total_operations_skipped': self.total_operations_skipped,
                'total_operations_failed': self.total_operations_failed,
                'pending_operations': len(self._operations),
                'last_operation_time': format_datetime(self.last_operation_time),
                'is_processing': self._processing,
                'background_running': bool(self._thread and self._thread.is_alive()),
            }


_coordinator: Optional[OperationCoordinator] = None
_coordinator_lock = threading.Lock()


def get_operation_coordinator() -> OperationCoordinator:
    """Process-wide coordinator configured from the current app when available."""
    global _coordinator
    if _coordinator is None:
        with _coordinator_lock:
            if _coordinator is None:
                _coordinator = _build_coordinator()
    return _coordinator


def _build_coordinator() -> OperationCoordinator:
    try:
        config = current_app.config
    except RuntimeError:
        return OperationCoordinator()
    return OperationCoordinator(
        min_interval=float(config.get('COORDINATOR_MIN_INTERVAL', 2.0)),
        operation_delay=float(config.get('COORDINATOR_DELAY', 0.1)),
        background=bool(config.get('COORDINATOR_BACKGROUND', True)),
    )


def reset_operation_coordinator() -> None:
    global _coordinator
    with _coordinator_lock:
        if _coordinator is not None:
            _coordinator.shutdown()
        _coordinator = None
