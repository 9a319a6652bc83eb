#------------------------------------------------------------
#                      error_service.py
#        Classifies failures, retries transient ones with
#         backoff, and guards services behind breakers.

import random
import re
import sys
import time
from collections import Counter, deque
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, TypeVar
import requests
from dateutil import parser as date_parser
from ..config import (
    CIRCUIT_FAILURE_THRESHOLD,
    CIRCUIT_RESET_TIMEOUT_SECONDS,
    ERROR_LOG_MAX_SIZE,
    RETRY_BACKOFF_FACTOR,
    RETRY_BASE_DELAY_SECONDS,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_DELAY_SECONDS,
    RETRY_MAX_JITTER_SECONDS,
)
from ..errors import CircuitOpenError, NetworkError, ValidationError
from ..models import ErrorRecord

T = TypeVar("T")

class ErrorType(str, Enum):
    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CACHE_ERROR = "CACHE_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

class CircuitState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"

NETWORK_MESSAGE = "Network connection failed. Please check your internet connection and try again."
RATE_LIMIT_MESSAGE_TEMPLATE = "Rate limit exceeded. Please try again {when}."
NOT_FOUND_MESSAGE = "User not found. Please check the username and try again."
VALIDATION_MESSAGE = "Invalid input. Please check your data and try again."
API_MESSAGE = "Service temporarily unavailable. Please try again later."
CACHE_MESSAGE = "Data storage error. Your request will proceed without caching."
TIMEOUT_MESSAGE = "Request timed out. Please try again."
UNKNOWN_MESSAGE = "An unexpected error occurred. Please try again."

SERVICE_HINTS = {
    "github": " This may be due to GitHub API limitations or the user profile being private.",
    "leetcode": " This may be due to LeetCode API limitations or the user profile being private.",
}
RETRY_HINT = " You can try again or contact support if the problem persists."

RETRY_AFTER_PATTERNS = (
    (re.compile(r"try again after (\d+) seconds?", re.IGNORECASE), "second"),
    (re.compile(r"retry after (\d+) minutes?", re.IGNORECASE), "minute"),
    (re.compile(r"wait (\d+) seconds?", re.IGNORECASE), "second"),
)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_MAX_LENGTH = 39

RETRY_MESSAGE_TEMPLATE = "Attempt {attempt} failed, retrying in {delay:.0f}ms: {message}"
GIVE_UP_MESSAGE_TEMPLATE = "Giving up after {attempts} attempt(s) [{type}]: {details}"
HANDLED_ERROR_TEMPLATE = "Handled {type} error: {message}"

# This function does build a plural-aware duration label.
def _duration_label(value: int, unit: str) -> str:
    return f"{value} {unit}{'' if value == 1 else 's'}"

# This function does extract a retry-after hint from free text.
# Only a few known phrasings are recognized; others return None.
def extract_retry_after(message: str) -> Optional[str]:
    for pattern, unit in RETRY_AFTER_PATTERNS:
        match = pattern.search(message or "")
        if match:
            return _duration_label(int(match.group(1)), unit)
    return None

# This function does validate user input before any network call.
# It raises ValidationError synchronously on malformed values.
def validate_input(value: Any, kind: str) -> None:
    if kind == "username":
        if not value or not isinstance(value, str):
            raise ValidationError("Username is required and must be a string")
        if len(value) > USERNAME_MAX_LENGTH:
            raise ValidationError(f"Username must be between 1 and {USERNAME_MAX_LENGTH} characters")
        if not USERNAME_PATTERN.match(value):
            raise ValidationError("Username contains invalid characters")
    elif kind == "email":
        if not value or not isinstance(value, str):
            raise ValidationError("Email is required and must be a string")
        if not EMAIL_PATTERN.match(value):
            raise ValidationError("Invalid email format")

class CircuitBreaker:

    def __init__(
        self,
        service: str,
        failure_threshold: int = CIRCUIT_FAILURE_THRESHOLD,
        reset_timeout: float = CIRCUIT_RESET_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service = service
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.clock = clock
        self.state = CircuitState.CLOSED
        self.failures = 0
        self.last_failure_time: Optional[float] = None

    # This function does run an operation through the breaker.
    # Open circuits fail fast until the reset timeout has elapsed.
    def execute(self, operation: Callable[[], T]) -> T:
        if self.state == CircuitState.OPEN:
            if self.clock() - (self.last_failure_time or 0) > self.reset_timeout:
                self.state = CircuitState.HALF_OPEN
            else:
                raise CircuitOpenError(f"Circuit breaker is OPEN for {self.service}")

        try:
            result = operation()
        except Exception:
            self.failures += 1
            self.last_failure_time = self.clock()
            if self.state == CircuitState.HALF_OPEN or self.failures >= self.failure_threshold:
                self.state = CircuitState.OPEN
            raise

        self.state = CircuitState.CLOSED
        self.failures = 0
        return result

class ErrorService:

    # This function does initialize retry settings and the rolling log.
    # Sleep and jitter sources are injectable for deterministic tests.
    def __init__(
        self,
        max_attempts: int = RETRY_MAX_ATTEMPTS,
        base_delay: float = RETRY_BASE_DELAY_SECONDS,
        max_delay: float = RETRY_MAX_DELAY_SECONDS,
        backoff_factor: float = RETRY_BACKOFF_FACTOR,
        max_log_size: int = ERROR_LOG_MAX_SIZE,
        sleep: Callable[[float], None] = time.sleep,
        jitter: Callable[[], float] = random.random,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.sleep = sleep
        self.jitter = jitter
        self.error_log: deque = deque(maxlen=max_log_size)

    # This function does map a raw exception to an ErrorRecord.
    # Rules are checked in order; the first match wins.
    def classify(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> ErrorRecord:
        message = str(error)
        lowered = message.lower()
        base = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "context": dict(context or {}),
        }

        is_timeout = isinstance(error, (requests.Timeout, TimeoutError))
        if isinstance(error, NetworkError) or (
            isinstance(error, requests.ConnectionError) and not is_timeout
        ) or "network connection failed" in lowered:
            return ErrorRecord(
                type=ErrorType.NETWORK_ERROR.value,
                user_message=NETWORK_MESSAGE,
                details="Failed to connect to the server",
                can_retry=True,
                **base,
            )

        if "rate limit" in lowered or "429" in message:
            retry_after = extract_retry_after(message)
            when = f"after {retry_after}" if retry_after else "later"
            return ErrorRecord(
                type=ErrorType.RATE_LIMIT.value,
                user_message=RATE_LIMIT_MESSAGE_TEMPLATE.format(when=when),
                details="API rate limit reached",
                can_retry=True,
                retry_after=retry_after,
                **base,
            )

        if "not found" in lowered or "404" in message:
            return ErrorRecord(
                type=ErrorType.NOT_FOUND.value,
                user_message=NOT_FOUND_MESSAGE,
                details="The requested user profile could not be found",
                can_retry=False,
                **base,
            )

        if isinstance(error, ValidationError) or "invalid" in lowered or "validation" in lowered:
            return ErrorRecord(
                type=ErrorType.VALIDATION_ERROR.value,
                user_message=VALIDATION_MESSAGE,
                details=message,
                can_retry=False,
                **base,
            )

        if "API" in message or "GraphQL" in message:
            return ErrorRecord(
                type=ErrorType.API_ERROR.value,
                user_message=API_MESSAGE,
                details=message,
                can_retry=True,
                **base,
            )

        if "cache" in lowered or "storage" in lowered:
            return ErrorRecord(
                type=ErrorType.CACHE_ERROR.value,
                user_message=CACHE_MESSAGE,
                details=message,
                can_retry=False,
                **base,
            )

        if is_timeout or "timeout" in lowered or "timed out" in lowered:
            return ErrorRecord(
                type=ErrorType.TIMEOUT_ERROR.value,
                user_message=TIMEOUT_MESSAGE,
                details="The request took too long to complete",
                can_retry=True,
                **base,
            )

        return ErrorRecord(
            type=ErrorType.UNKNOWN_ERROR.value,
            user_message=UNKNOWN_MESSAGE,
            details=message or "Unknown error",
            can_retry=True,
            **base,
        )

    # This function does classify and log an error for the caller.
    # It returns the user-facing summary of the classification.
    def handle_error(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        record = self.classify(error, context)
        self.log_error(record)
        return {
            "type": record.type,
            "message": record.user_message,
            "details": record.details,
            "can_retry": record.can_retry,
            "retry_after": record.retry_after,
        }

    def create_user_message(self, error: BaseException, context: Optional[Dict[str, Any]] = None) -> str:
        record = self.classify(error, context)
        message = record.user_message
        message += SERVICE_HINTS.get((context or {}).get("service", ""), "")
        if record.can_retry:
            message += RETRY_HINT
        return message

    # This function does run an operation with exponential backoff.
    # The original exception is re-raised once retrying stops.
    def with_retry(
        self,
        operation: Callable[[], T],
        context: Optional[Dict[str, Any]] = None,
        max_attempts: Optional[int] = None,
    ) -> T:
        attempts = max_attempts or self.max_attempts
        attempt = 0
        while True:
            try:
                return operation()
            except Exception as error:
                record = self.classify(error, {**(context or {}), "attempt": attempt})
                self.log_error(record)
                if not record.can_retry or attempt + 1 >= attempts:
                    print(
                        GIVE_UP_MESSAGE_TEMPLATE.format(attempts=attempt + 1, type=record.type, details=record.details),
                        file=sys.stderr,
                    )
                    raise

                delay = self.backoff_delay(attempt)
                print(
                    RETRY_MESSAGE_TEMPLATE.format(attempt=attempt + 1, delay=delay * 1000, message=record.user_message),
                    file=sys.stderr,
                )
                self.sleep(delay)
                attempt += 1

    def backoff_delay(self, attempt: int) -> float:
        delay = min(self.base_delay * (self.backoff_factor ** attempt), self.max_delay)
        return delay + self.jitter() * RETRY_MAX_JITTER_SECONDS

    def log_error(self, record: ErrorRecord) -> None:
        self.error_log.appendleft(record)
        if record.type in (ErrorType.UNKNOWN_ERROR.value, ErrorType.NETWORK_ERROR.value):
            print(HANDLED_ERROR_TEMPLATE.format(type=record.type, message=record.details), file=sys.stderr)

    # This function does summarize the rolling error log.
    # It counts errors by type and within the last day.
    def get_error_stats(self) -> Dict[str, Any]:
        cutoff = datetime.now(timezone.utc) - timedelta(hours=24)
        records = list(self.error_log)
        return {
            "total": len(records),
            "last_24_hours": sum(1 for record in records if date_parser.isoparse(record.timestamp) >= cutoff),
            "by_type": dict(Counter(record.type for record in records)),
            "recent_errors": records[:10],
        }

    def clear_error_log(self) -> None:
        self.error_log.clear()

    def create_circuit_breaker(
        self,
        service: str,
        failure_threshold: int = CIRCUIT_FAILURE_THRESHOLD,
        reset_timeout: float = CIRCUIT_RESET_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> CircuitBreaker:
        return CircuitBreaker(service, failure_threshold, reset_timeout, clock)
