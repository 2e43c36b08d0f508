"""
Error classification for remote store calls.

Maps DynamoDB and botocore failures onto categories that decide whether a
call is retried, whether it counts against the circuit breaker, and how the
sync coordinator should react once retries are exhausted.
"""

import logging
from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass
from botocore.exceptions import ClientError, BotoCoreError

from .circuit_breaker import CircuitBreakerError

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    TRANSIENT = "transient"          # Temporary service errors, retried
    PERMISSION = "permission"        # Credentials or IAM errors
    CONFIGURATION = "configuration"  # Bad table, bad request shape
    RATE_LIMIT = "rate_limit"        # Throughput exceeded
    NETWORK = "network"              # Connectivity and timeouts
    UNAVAILABLE = "unavailable"      # Circuit breaker open
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for logging."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorClassification:
    """Classification result for an error."""
    category: ErrorCategory
    severity: ErrorSeverity
    is_retryable: bool
    should_circuit_break: bool
    retry_delay_multiplier: float = 2.0
    recovery_action: Optional[str] = None
    user_message: Optional[str] = None


def _rate_limited(message: str) -> ErrorClassification:
    return ErrorClassification(
        category=ErrorCategory.RATE_LIMIT,
        severity=ErrorSeverity.MEDIUM,
        is_retryable=True,
        should_circuit_break=False,
        retry_delay_multiplier=2.0,
        recovery_action="exponential_backoff",
        user_message=message
    )


def _service_error(message: str) -> ErrorClassification:
    return ErrorClassification(
        category=ErrorCategory.TRANSIENT,
        severity=ErrorSeverity.HIGH,
        is_retryable=True,
        should_circuit_break=True,
        retry_delay_multiplier=1.5,
        recovery_action="circuit_breaker",
        user_message=message
    )


def _permission_error(message: str) -> ErrorClassification:
    return ErrorClassification(
        category=ErrorCategory.PERMISSION,
        severity=ErrorSeverity.HIGH,
        is_retryable=False,
        should_circuit_break=False,
        recovery_action="defer_sync",
        user_message=message
    )


def _configuration_error(message: str, severity: ErrorSeverity = ErrorSeverity.MEDIUM) -> ErrorClassification:
    return ErrorClassification(
        category=ErrorCategory.CONFIGURATION,
        severity=severity,
        is_retryable=False,
        should_circuit_break=False,
        recovery_action="defer_sync",
        user_message=message
    )


class ErrorClassifier:
    """Classifies errors and determines appropriate handling strategies."""

    DYNAMODB_ERROR_MAPPINGS = {
        'ProvisionedThroughputExceededException': _rate_limited("Table throughput exceeded, retrying with backoff"),
        'ThrottlingException': _rate_limited("Request was throttled, retrying with backoff"),
        'RequestLimitExceeded': _rate_limited("Account request limit exceeded"),
        'InternalServerError': _service_error("DynamoDB internal server error"),
        'ServiceUnavailable': _service_error("DynamoDB temporarily unavailable"),
        'ServiceUnavailableException': _service_error("DynamoDB temporarily unavailable"),
        'AccessDeniedException': _permission_error("Insufficient permissions on the contacts table"),
        'UnrecognizedClientException': _permission_error("Invalid AWS credentials"),
        'ExpiredTokenException': _permission_error("AWS credentials expired"),
        'ValidationException': _configuration_error("Invalid request parameters"),
        'ResourceNotFoundException': _configuration_error("Contacts table not found", ErrorSeverity.CRITICAL),
        'ItemCollectionSizeLimitExceededException': _configuration_error("Contact collection too large"),
    }

    def classify_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> ErrorClassification:
        """
        Classify an error and determine handling strategy.

        Args:
            error: The exception that occurred
            context: Optional context information about the operation

        Returns:
            ErrorClassification with handling strategy
        """
        if isinstance(error, CircuitBreakerError):
            return ErrorClassification(
                category=ErrorCategory.UNAVAILABLE,
                severity=ErrorSeverity.HIGH,
                is_retryable=False,
                should_circuit_break=False,
                recovery_action="defer_sync",
                user_message=f"Remote store calls suspended for {error.retry_after:.0f}s"
            )

        if isinstance(error, ClientError):
            return self._classify_client_error(error)

        if isinstance(error, BotoCoreError):
            return self._network_classification(f"Network error: {type(error).__name__}")

        if isinstance(error, (ConnectionError, TimeoutError)):
            return self._network_classification("Network connectivity issue")

        if isinstance(error, ValueError):
            return _configuration_error("Invalid data format")

        logger.warning(f"Classifying unknown error: {type(error).__name__} - {error}")
        return ErrorClassification(
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.MEDIUM,
            is_retryable=False,
            should_circuit_break=False,
            recovery_action="defer_sync",
            user_message=f"Unknown error: {type(error).__name__}"
        )

    def _classify_client_error(self, error: ClientError) -> ErrorClassification:
        """Classify AWS ClientError."""
        error_code = error.response.get('Error', {}).get('Code', 'Unknown')

        if error_code in self.DYNAMODB_ERROR_MAPPINGS:
            classification = self.DYNAMODB_ERROR_MAPPINGS[error_code]
            logger.info(f"Classified DynamoDB error {error_code} as {classification.category.value}")
            return classification

        logger.warning(f"Unknown DynamoDB error code: {error_code}")

        # Infer from the code when it is not in the table
        lowered = error_code.lower()
        if 'throttl' in lowered or 'limit' in lowered:
            return _rate_limited(f"Rate limiting error: {error_code}")
        if 'denied' in lowered or 'unauthorized' in lowered or 'token' in lowered:
            return _permission_error(f"Permission error: {error_code}")
        if 'invalid' in lowered or 'validation' in lowered:
            return _configuration_error(f"Configuration error: {error_code}")

        return ErrorClassification(
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.MEDIUM,
            is_retryable=True,
            should_circuit_break=False,
            retry_delay_multiplier=1.0,
            recovery_action="retry",
            user_message=f"Unknown AWS error: {error_code}"
        )

    def _network_classification(self, message: str) -> ErrorClassification:
        return ErrorClassification(
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.MEDIUM,
            is_retryable=True,
            should_circuit_break=True,
            retry_delay_multiplier=1.0,
            recovery_action="retry",
            user_message=message
        )
