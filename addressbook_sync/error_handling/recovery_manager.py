"""
Retry and circuit-breaker execution for remote store calls.

Every blocking DynamoDB call goes through ``RecoveryManager.execute_with_recovery``,
which classifies each failure, retries the retryable ones with exponential
backoff and jitter, and reports the outcome as a ``RecoveryResult`` instead of
raising.
"""

import time
import random
import logging
from typing import Dict, Any, Optional, Callable, List
from dataclasses import dataclass, field
from datetime import datetime, UTC

from .error_classifier import ErrorClassifier, ErrorClassification, ErrorSeverity
from .circuit_breaker import CircuitBreakerManager, CircuitBreakerConfig, CircuitBreakerError

logger = logging.getLogger(__name__)


@dataclass
class RecoveryConfig:
    """Configuration for error recovery behavior."""
    max_retry_attempts: int = 3
    base_retry_delay: float = 1.0
    max_retry_delay: float = 30.0
    jitter_factor: float = 0.1
    circuit_breaker_enabled: bool = True
    circuit_breaker_failure_threshold: int = 5
    circuit_breaker_timeout: float = 60.0


@dataclass
class RecoveryAttempt:
    """Information about a single attempt."""
    attempt_number: int
    timestamp: datetime
    error: Optional[Exception] = None
    success: bool = False
    delay_after_attempt: float = 0.0
    recovery_action: Optional[str] = None


@dataclass
class RecoveryResult:
    """Result of a recovery-enabled execution."""
    success: bool
    result: Any = None
    error: Optional[Exception] = None
    classification: Optional[ErrorClassification] = None
    attempts: List[RecoveryAttempt] = field(default_factory=list)
    total_duration: float = 0.0

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


class RecoveryManager:
    """
    Executes operations with classification-driven retries.

    Integrates error classification, exponential backoff, and per-operation
    circuit breakers.
    """

    def __init__(self,
                 config: Optional[RecoveryConfig] = None,
                 error_classifier: Optional[ErrorClassifier] = None,
                 circuit_breaker_manager: Optional[CircuitBreakerManager] = None):
        """
        Initialize recovery manager.

        Args:
            config: Recovery configuration
            error_classifier: Error classifier instance
            circuit_breaker_manager: Circuit breaker manager instance
        """
        self.config = config or RecoveryConfig()
        self.error_classifier = error_classifier or ErrorClassifier()
        self.circuit_breaker_manager = circuit_breaker_manager or CircuitBreakerManager()

    def execute_with_recovery(self,
                              operation_name: str,
                              operation_func: Callable,
                              *args, **kwargs) -> RecoveryResult:
        """
        Execute an operation with retries and circuit breaking.

        Args:
            operation_name: Name used for logging and circuit breaker lookup
            operation_func: Blocking function to execute
            *args: Positional arguments for the function
            **kwargs: Keyword arguments for the function

        Returns:
            RecoveryResult containing execution results
        """
        start_time = time.time()
        attempts: List[RecoveryAttempt] = []
        last_error: Optional[Exception] = None
        last_classification: Optional[ErrorClassification] = None

        circuit_breaker = None
        if self.config.circuit_breaker_enabled:
            circuit_breaker = self.circuit_breaker_manager.get_breaker(
                operation_name,
                CircuitBreakerConfig(
                    failure_threshold=self.config.circuit_breaker_failure_threshold,
                    timeout=self.config.circuit_breaker_timeout
                ),
                failure_filter=self._counts_against_breaker
            )

        for attempt_num in range(1, self.config.max_retry_attempts + 1):
            try:
                if circuit_breaker is not None:
                    result = circuit_breaker.call(operation_func, *args, **kwargs)
                else:
                    result = operation_func(*args, **kwargs)

                attempts.append(RecoveryAttempt(
                    attempt_number=attempt_num,
                    timestamp=datetime.now(UTC),
                    success=True
                ))

                if attempt_num > 1:
                    logger.info(f"Operation '{operation_name}' succeeded after {attempt_num} attempts")

                return RecoveryResult(
                    success=True,
                    result=result,
                    attempts=attempts,
                    total_duration=time.time() - start_time
                )

            except CircuitBreakerError as e:
                classification = self.error_classifier.classify_error(e)
                attempts.append(RecoveryAttempt(
                    attempt_number=attempt_num,
                    timestamp=datetime.now(UTC),
                    error=e,
                    recovery_action=classification.recovery_action
                ))
                logger.warning(f"Circuit breaker is open for '{operation_name}': {e}")
                return RecoveryResult(
                    success=False,
                    error=e,
                    classification=classification,
                    attempts=attempts,
                    total_duration=time.time() - start_time
                )

            except Exception as e:
                last_error = e
                last_classification = self.error_classifier.classify_error(e, {'operation': operation_name})

                logger.warning(f"Operation '{operation_name}' failed on attempt {attempt_num}: "
                               f"{type(e).__name__}: {e}")

                attempt = RecoveryAttempt(
                    attempt_number=attempt_num,
                    timestamp=datetime.now(UTC),
                    error=e,
                    recovery_action=last_classification.recovery_action
                )
                attempts.append(attempt)

                if not last_classification.is_retryable:
                    log = logger.critical if last_classification.severity == ErrorSeverity.CRITICAL else logger.error
                    log(f"Non-retryable error for '{operation_name}': {last_classification.user_message}")
                    break

                if attempt_num >= self.config.max_retry_attempts:
                    logger.error(f"All retry attempts exhausted for '{operation_name}'")
                    break

                delay = self._calculate_retry_delay(attempt_num, last_classification)
                attempt.delay_after_attempt = delay
                logger.info(f"Retrying '{operation_name}' in {delay:.2f}s "
                            f"(attempt {attempt_num + 1}/{self.config.max_retry_attempts})")
                if delay > 0:
                    time.sleep(delay)

        return RecoveryResult(
            success=False,
            error=last_error,
            classification=last_classification,
            attempts=attempts,
            total_duration=time.time() - start_time
        )

    def _counts_against_breaker(self, error: Exception) -> bool:
        """Only service and network failures trip a breaker; bad requests and credentials do not."""
        return self.error_classifier.classify_error(error).should_circuit_break

    def _calculate_retry_delay(self, attempt_num: int, classification: ErrorClassification) -> float:
        """
        Exponential backoff: base * multiplier^(attempt - 1), capped, with jitter.

        Args:
            attempt_num: Attempt that just failed (1-based)
            classification: Classification of its error

        Returns:
            Delay in seconds
        """
        delay = self.config.base_retry_delay * (classification.retry_delay_multiplier ** (attempt_num - 1))
        delay = min(delay, self.config.max_retry_delay)

        if delay > 0 and self.config.jitter_factor > 0:
            jitter_range = delay * self.config.jitter_factor
            delay = max(0.0, delay + random.uniform(-jitter_range, jitter_range))

        return delay

    def get_health_status(self) -> Dict[str, Any]:
        """Health of the recovery layer and its breakers."""
        return {
            'max_retry_attempts': self.config.max_retry_attempts,
            'circuit_breaker_enabled': self.config.circuit_breaker_enabled,
            'circuit_breakers': self.circuit_breaker_manager.get_health_status()
        }
