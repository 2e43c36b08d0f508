"""Error classification, circuit breaking, and retries for remote store calls."""

from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitBreakerError, CircuitBreakerManager, CircuitState
from .error_classifier import ErrorCategory, ErrorClassification, ErrorClassifier, ErrorSeverity
from .recovery_manager import RecoveryConfig, RecoveryManager, RecoveryResult

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitBreakerManager",
    "CircuitState",
    "ErrorCategory",
    "ErrorClassification",
    "ErrorClassifier",
    "ErrorSeverity",
    "RecoveryConfig",
    "RecoveryManager",
    "RecoveryResult"
]
