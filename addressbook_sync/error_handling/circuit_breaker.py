"""
Circuit breaker for remote store operations.

Stops calling the remote store for a cool-down period after repeated failures
so that a session on a dead network fails fast instead of waiting out every
retry of every call.
"""

import time
import logging
from enum import Enum
from typing import Dict, Any, Optional, Callable
from dataclasses import dataclass
from threading import Lock

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"        # Requests allowed
    OPEN = "open"            # Requests rejected
    HALF_OPEN = "half_open"  # Probing for recovery


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker behavior."""
    failure_threshold: int = 5   # Consecutive failures before opening
    success_threshold: int = 2   # Consecutive successes to close from half-open
    timeout: float = 60.0        # Seconds before an open circuit turns half-open


@dataclass
class CircuitBreakerStats:
    """Statistics for circuit breaker monitoring."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    rejected_requests: int = 0
    state_changes: int = 0
    last_failure_time: Optional[float] = None
    last_success_time: Optional[float] = None


class CircuitBreakerError(Exception):
    """Exception raised when circuit breaker is open."""

    def __init__(self, message: str, circuit_name: str, retry_after: float):
        super().__init__(message)
        self.circuit_name = circuit_name
        self.retry_after = retry_after


class CircuitBreaker:
    """
    Circuit breaker with consecutive-failure threshold and timed half-open trial calls.

    Thread-safe: remote calls run in worker threads via ``asyncio.to_thread``.
    """

    def __init__(self,
                 name: str,
                 config: Optional[CircuitBreakerConfig] = None,
                 failure_filter: Optional[Callable[[Exception], bool]] = None):
        """
        Args:
            name: Circuit breaker name
            config: Thresholds and timeout
            failure_filter: Decides whether an exception counts as a failure;
                every exception counts when omitted
        """
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.failure_filter = failure_filter
        self.stats = CircuitBreakerStats()
        self.state = CircuitState.CLOSED
        self._lock = Lock()
        self._consecutive_failures = 0
        self._consecutive_successes = 0
        self._last_state_change = time.time()

        logger.debug(f"Initialized circuit breaker '{name}' with config: {self.config}")

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute a function through the circuit breaker.

        Raises:
            CircuitBreakerError: If circuit is open
            Exception: Any exception raised by the function
        """
        with self._lock:
            self.stats.total_requests += 1
            self._check_timeout_state()

            if self.state == CircuitState.OPEN:
                self.stats.rejected_requests += 1
                retry_after = self._get_retry_after_time()
                logger.warning(f"Circuit breaker '{self.name}' is OPEN, rejecting request. Retry after {retry_after:.1f}s")
                raise CircuitBreakerError(
                    f"Circuit breaker '{self.name}' is open",
                    self.name,
                    retry_after
                )

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            if self.failure_filter is None or self.failure_filter(e):
                self._record_failure(e)
            raise

        self._record_success()
        return result

    def _record_success(self) -> None:
        with self._lock:
            self.stats.successful_requests += 1
            self.stats.last_success_time = time.time()
            self._consecutive_failures = 0
            self._consecutive_successes += 1

            if (self.state == CircuitState.HALF_OPEN and
                    self._consecutive_successes >= self.config.success_threshold):
                self._transition_to(CircuitState.CLOSED)

    def _record_failure(self, error: Exception) -> None:
        with self._lock:
            self.stats.failed_requests += 1
            self.stats.last_failure_time = time.time()
            self._consecutive_successes = 0
            self._consecutive_failures += 1

            logger.debug(f"Circuit breaker '{self.name}' recorded failure: {error}. "
                         f"Consecutive failures: {self._consecutive_failures}")

            # A failed half-open call reopens immediately
            if (self.state == CircuitState.HALF_OPEN or
                    self._consecutive_failures >= self.config.failure_threshold):
                self._transition_to(CircuitState.OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        """Caller holds the lock."""
        if self.state == new_state:
            return
        old_state = self.state
        self.state = new_state
        self.stats.state_changes += 1
        self._last_state_change = time.time()
        if new_state == CircuitState.CLOSED:
            self._consecutive_failures = 0
        elif new_state == CircuitState.HALF_OPEN:
            self._consecutive_successes = 0

        log = logger.error if new_state == CircuitState.OPEN else logger.info
        log(f"Circuit breaker '{self.name}' transitioned from {old_state.value} to {new_state.value}")

    def _check_timeout_state(self) -> None:
        if self.state == CircuitState.OPEN:
            if time.time() - self._last_state_change >= self.config.timeout:
                self._transition_to(CircuitState.HALF_OPEN)

    def _get_retry_after_time(self) -> float:
        if self.state == CircuitState.OPEN:
            return max(0.0, self.config.timeout - (time.time() - self._last_state_change))
        return 0.0

    def get_state(self) -> CircuitState:
        """Get current circuit breaker state."""
        with self._lock:
            self._check_timeout_state()
            return self.state


class CircuitBreakerManager:
    """Owns one circuit breaker per remote operation name."""

    def __init__(self):
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = Lock()

    def get_breaker(self,
                    name: str,
                    config: Optional[CircuitBreakerConfig] = None,
                    failure_filter: Optional[Callable[[Exception], bool]] = None) -> CircuitBreaker:
        """
        Get or create a circuit breaker.

        Args:
            name: Circuit breaker name
            config: Configuration (only used when creating new breaker)
            failure_filter: Failure predicate (only used when creating new breaker)

        Returns:
            CircuitBreaker instance
        """
        with self._lock:
            if name not in self._breakers:
                self._breakers[name] = CircuitBreaker(name, config, failure_filter)
            return self._breakers[name]

    def get_health_status(self) -> Dict[str, Any]:
        """Summarize breaker states for the session report."""
        with self._lock:
            breakers = list(self._breakers.values())

        states = {breaker.name: breaker.get_state().value for breaker in breakers}
        open_breakers = sum(1 for s in states.values() if s == CircuitState.OPEN.value)
        half_open_breakers = sum(1 for s in states.values() if s == CircuitState.HALF_OPEN.value)

        overall_health = "healthy"
        if open_breakers > 0:
            overall_health = "degraded" if open_breakers < len(states) else "unhealthy"
        elif half_open_breakers > 0:
            overall_health = "recovering"

        return {
            'overall_health': overall_health,
            'total_breakers': len(states),
            'open_breakers': open_breakers,
            'half_open_breakers': half_open_breakers,
            'breaker_states': states
        }
