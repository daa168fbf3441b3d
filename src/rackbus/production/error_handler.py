"""
Production Error Handler

Centralized reporting for failures that must never take the backplane down.
Subscriber callbacks that raise during a publish are routed here instead of
propagating to the publisher.
"""

import time
import traceback
import logging
from typing import Dict, Optional, Any, List
from dataclasses import dataclass, field
from enum import Enum

log = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Context information for error handling"""
    error: Exception
    context: str
    severity: ErrorSeverity
    user_message: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0


class ProductionErrorHandler:
    """Collects, counts and logs errors reported by ports and buses"""

    def __init__(self, max_history: int = 100):
        self.error_counts: Dict[str, int] = {}
        self.severity_counts: Dict[ErrorSeverity, int] = {s: 0 for s in ErrorSeverity}
        self.error_history: List[ErrorContext] = []
        self.max_history = max_history

    def handle_error(self, error: Exception, context: str,
                     severity: ErrorSeverity = ErrorSeverity.MEDIUM,
                     details: Optional[Dict[str, Any]] = None) -> ErrorContext:
        """
        Record and log an error

        Args:
            error: The exception that occurred
            context: Where the error occurred (e.g. "port:midi.out")
            severity: Error severity level
            details: Additional context details

        Returns:
            The stored ErrorContext
        """
        self.error_counts[context] = self.error_counts.get(context, 0) + 1
        self.severity_counts[severity] += 1

        error_ctx = ErrorContext(
            error=error,
            context=context,
            severity=severity,
            user_message=f"{type(error).__name__}: {error}",
            details=dict(details or {}),
            timestamp=time.time(),
        )

        self._log_error(error_ctx)
        self._store_error(error_ctx)
        return error_ctx

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get error statistics for monitoring"""
        return {
            'total_errors': sum(self.error_counts.values()),
            'error_counts': dict(self.error_counts),
            'recent_errors': len([e for e in self.error_history
                                  if e.timestamp > (time.time() - 3600)]),
            'low_severity': self.severity_counts[ErrorSeverity.LOW],
            'medium_severity': self.severity_counts[ErrorSeverity.MEDIUM],
            'high_severity': self.severity_counts[ErrorSeverity.HIGH],
            'critical_errors': self.severity_counts[ErrorSeverity.CRITICAL],
        }

    def reset_statistics(self):
        """Reset error statistics"""
        self.error_counts.clear()
        self.error_history.clear()
        self.severity_counts = {s: 0 for s in ErrorSeverity}

    def _log_error(self, error_ctx: ErrorContext):
        """Log error with appropriate level"""
        if error_ctx.severity == ErrorSeverity.CRITICAL:
            log.critical(f"[{error_ctx.context}] {error_ctx.user_message}")
        elif error_ctx.severity == ErrorSeverity.HIGH:
            log.error(f"[{error_ctx.context}] {error_ctx.user_message}")
        elif error_ctx.severity == ErrorSeverity.MEDIUM:
            log.warning(f"[{error_ctx.context}] {error_ctx.user_message}")
        else:
            log.info(f"[{error_ctx.context}] {error_ctx.user_message}")

        if error_ctx.details:
            log.debug(f"Error details: {error_ctx.details}")
        log.debug(f"Stack trace:\n{''.join(traceback.format_tb(error_ctx.error.__traceback__))}")

    def _store_error(self, error_ctx: ErrorContext):
        """Store error in history"""
        self.error_history.append(error_ctx)

        # Maintain history size
        if len(self.error_history) > self.max_history:
            self.error_history = self.error_history[-self.max_history:]


_default_handler: Optional[ProductionErrorHandler] = None


def get_default_error_handler() -> ProductionErrorHandler:
    """Shared handler used by ports created without their own"""
    global _default_handler
    if _default_handler is None:
        _default_handler = ProductionErrorHandler()
    return _default_handler
