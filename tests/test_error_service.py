import pytest
import requests

from profile_scorer.errors import CircuitOpenError, NotFoundError, RateLimitError, ValidationError
from profile_scorer.services.error_service import (
    NETWORK_MESSAGE,
    NOT_FOUND_MESSAGE,
    RETRY_HINT,
    SERVICE_HINTS,
    CircuitState,
    ErrorService,
    ErrorType,
    extract_retry_after,
    validate_input,
)

from conftest import FakeClock


class Flaky:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.parametrize(
    "error, expected_type, can_retry",
    [
        (NotFoundError("GitHub user 'ghost' not found"), ErrorType.NOT_FOUND, False),
        (requests.ConnectionError("connection reset"), ErrorType.NETWORK_ERROR, True),
        (requests.Timeout("read timed out"), ErrorType.TIMEOUT_ERROR, True),
        (ValidationError("Username contains invalid characters"), ErrorType.VALIDATION_ERROR, False),
        (RuntimeError("GraphQL query failed"), ErrorType.API_ERROR, True),
        (RuntimeError("storage quota exceeded"), ErrorType.CACHE_ERROR, False),
        (RuntimeError("something odd"), ErrorType.UNKNOWN_ERROR, True),
    ],
)
def test_classify_maps_errors_to_types(errors, error, expected_type, can_retry) -> None:
    record = errors.classify(error)
    assert record.type == expected_type.value
    assert record.can_retry is can_retry


def test_classify_api_match_is_case_sensitive(errors) -> None:
    assert errors.classify(RuntimeError("bad API response")).type == ErrorType.API_ERROR.value
    assert errors.classify(RuntimeError("bad api response")).type == ErrorType.UNKNOWN_ERROR.value


def test_rate_limit_carries_retry_after_hint(errors) -> None:
    handled = errors.handle_error(RateLimitError("Rate limit exceeded, try again after 30 seconds"))
    assert handled["type"] == ErrorType.RATE_LIMIT.value
    assert handled["retry_after"] == "30 seconds"
    assert handled["can_retry"] is True
    assert "after 30 seconds" in handled["message"]


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Please retry after 1 minute", "1 minute"),
        ("wait 5 seconds", "5 seconds"),
        ("Try again after 1 second", "1 second"),
        ("slow down", None),
    ],
)
def test_extract_retry_after(message, expected) -> None:
    assert extract_retry_after(message) == expected


def test_rate_limit_without_hint_says_later(errors) -> None:
    handled = errors.handle_error(RateLimitError("GitHub API rate limit exceeded."))
    assert handled["retry_after"] is None
    assert handled["message"].endswith("try again later.")


def test_user_message_adds_service_and_retry_hints(errors) -> None:
    not_found = errors.create_user_message(NotFoundError("not found"), {"service": "github"})
    assert not_found == NOT_FOUND_MESSAGE + SERVICE_HINTS["github"]

    network = errors.create_user_message(requests.ConnectionError("down"), {"service": "leetcode"})
    assert network == NETWORK_MESSAGE + SERVICE_HINTS["leetcode"] + RETRY_HINT


def test_with_retry_does_not_retry_permanent_errors(errors, sleeps) -> None:
    operation = Flaky(NotFoundError("GitHub user 'ghost' not found"))
    with pytest.raises(NotFoundError):
        errors.with_retry(operation)
    assert operation.calls == 1
    assert sleeps == []


def test_with_retry_recovers_with_exponential_backoff(errors, sleeps) -> None:
    operation = Flaky(requests.ConnectionError("reset"), requests.ConnectionError("reset"), "payload")
    assert errors.with_retry(operation) == "payload"
    assert operation.calls == 3
    assert sleeps == [1.0, 2.0]


def test_with_retry_reraises_the_original_error(errors, sleeps) -> None:
    failure = requests.ConnectionError("reset")
    operation = Flaky(failure, failure, failure)
    with pytest.raises(requests.ConnectionError) as excinfo:
        errors.with_retry(operation)
    assert excinfo.value is failure
    assert operation.calls == 3
    assert len(sleeps) == 2


def test_backoff_delay_is_capped_and_jittered() -> None:
    service = ErrorService(base_delay=1, max_delay=10, backoff_factor=2, jitter=lambda: 0.5)
    assert service.backoff_delay(0) == 1.5
    assert service.backoff_delay(2) == 4.5
    assert service.backoff_delay(10) == 10.5


def test_error_log_is_bounded_newest_first() -> None:
    service = ErrorService(max_log_size=2)
    for name in ("first", "second", "third"):
        service.handle_error(RuntimeError(name))
    assert [record.details for record in service.error_log] == ["third", "second"]


def test_error_stats_summarize_the_log(errors) -> None:
    errors.handle_error(NotFoundError("not found"))
    errors.handle_error(NotFoundError("not found"))
    errors.handle_error(requests.ConnectionError("down"))

    stats = errors.get_error_stats()
    assert stats["total"] == 3
    assert stats["last_24_hours"] == 3
    assert stats["by_type"] == {ErrorType.NOT_FOUND.value: 2, ErrorType.NETWORK_ERROR.value: 1}
    assert stats["recent_errors"][0].type == ErrorType.NETWORK_ERROR.value

    errors.clear_error_log()
    assert errors.get_error_stats()["total"] == 0


def test_circuit_breaker_opens_and_recovers(errors) -> None:
    clock = FakeClock()
    breaker = errors.create_circuit_breaker("github", failure_threshold=2, reset_timeout=60, clock=clock)
    failing = Flaky(RuntimeError("boom"), RuntimeError("boom"))

    for _ in range(2):
        with pytest.raises(RuntimeError):
            breaker.execute(failing)
    assert breaker.state == CircuitState.OPEN

    untouched = Flaky("never")
    with pytest.raises(CircuitOpenError, match="OPEN for github"):
        breaker.execute(untouched)
    assert untouched.calls == 0

    clock.advance(61)
    assert breaker.execute(lambda: "ok") == "ok"
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failures == 0


def test_half_open_failure_reopens_circuit(errors) -> None:
    clock = FakeClock()
    breaker = errors.create_circuit_breaker("leetcode", failure_threshold=1, reset_timeout=10, clock=clock)
    with pytest.raises(RuntimeError):
        breaker.execute(Flaky(RuntimeError("boom")))

    clock.advance(11)
    with pytest.raises(RuntimeError):
        breaker.execute(Flaky(RuntimeError("still down")))
    assert breaker.state == CircuitState.OPEN


@pytest.mark.parametrize("username", ["octocat", "a", "my-name-1"])
def test_validate_input_accepts_usernames(username) -> None:
    validate_input(username, "username")


@pytest.mark.parametrize("username", ["", None, "-leading", "trailing-", "has space", "x" * 40])
def test_validate_input_rejects_bad_usernames(username) -> None:
    with pytest.raises(ValidationError):
        validate_input(username, "username")


def test_validate_input_checks_email() -> None:
    validate_input("dev@example.com", "email")
    with pytest.raises(ValidationError, match="Invalid email format"):
        validate_input("dev@example", "email")
