"""
Tests for rdcli/resilience.py.

Covers the backoff formula, retry classification, rate-limit parsing and the
ResilientAdapter retry loop with the underlying transport mocked out.
"""
import logging
import pytest
from unittest.mock import patch
import requests
from requests.adapters import HTTPAdapter

from rdcli.config import RdcliConfig
from rdcli.errors import ApiError, ApiTimeoutError, RateLimitError
from rdcli.resilience import (
    MAX_RETRIES,
    RateLimitInfo,
    RequestAttempt,
    RequestFailure,
    RequestState,
    ResilientAdapter,
    Retry,
    Fail,
    calculate_backoff,
    classify,
    is_retryable_error,
    setup_client_interceptors,
)
from tests.conftest import make_response, API_URL


def prepared(method="GET", url=f"{API_URL}/collections"):
    return requests.Request(method, url).prepare()


class TestCalculateBackoff:
    """Test the exponential backoff formula."""

    def test_first_retry_range(self):
        """Retry 0 waits between 1000ms and 1250ms."""
        assert calculate_backoff(0, rand=lambda: 0.0) == 1000
        assert 1000 <= calculate_backoff(0) < 1250

    def test_third_retry_range(self):
        """Retry 2 waits between 4000ms and 5000ms."""
        assert calculate_backoff(2, rand=lambda: 0.0) == 4000
        assert calculate_backoff(2, rand=lambda: 0.999) < 5000
        assert 4000 <= calculate_backoff(2) < 5000

    def test_jitter_is_a_quarter_of_delay(self):
        assert calculate_backoff(1, rand=lambda: 0.5) == 2000 + 2000 * 0.25 * 0.5

    def test_capped_at_thirty_seconds(self):
        assert calculate_backoff(10) == 30000
        assert calculate_backoff(10, rand=lambda: 0.0) == 30000


class TestIsRetryableError:
    """Test retry classification by status."""

    def test_network_error_is_retryable(self):
        assert is_retryable_error(None) is True

    @pytest.mark.parametrize("status", [500, 502, 503, 599, 408])
    def test_server_errors_and_408_are_retryable(self, status):
        assert is_retryable_error(status) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 429])
    def test_client_errors_are_not_retryable(self, status):
        assert is_retryable_error(status) is False


class TestRateLimitInfo:
    """Test rate-limit header parsing."""

    def test_parses_headers(self):
        info = RateLimitInfo.from_headers({
            "X-RateLimit-Limit": "120",
            "RateLimit-Remaining": "7",
            "X-RateLimit-Reset": "1700000000",
        })
        assert info == RateLimitInfo(limit=120, remaining=7, reset=1700000000)

    def test_missing_headers_are_none(self):
        assert RateLimitInfo.from_headers({}) == RateLimitInfo()

    def test_garbage_values_are_none(self):
        assert RateLimitInfo.from_headers({"x-ratelimit-limit": "lots"}).limit is None


class TestClassify:
    """Test the pure retry decision function."""

    def failure(self, status=None, body=None, headers=None, exception=None):
        return RequestFailure(method="GET", url=f"{API_URL}/x", status=status,
                              headers=headers or {}, body=body, exception=exception)

    def test_429_fails_immediately_with_header_values(self):
        decision = classify(
            self.failure(429, headers={"x-ratelimit-limit": "60", "x-ratelimit-reset": "1700000100"}),
            RequestAttempt(), 30,
        )
        assert isinstance(decision, Fail)
        assert decision.state is RequestState.RATE_LIMITED
        assert isinstance(decision.error, RateLimitError)
        assert decision.error.limit == 60
        assert decision.error.reset_time == 1700000100

    def test_429_defaults_without_headers(self):
        decision = classify(self.failure(429), RequestAttempt(), 30, now=lambda: 1000.5)
        assert decision.error.limit == 120
        assert decision.error.reset_time == 1060

    def test_429_is_not_retried_even_on_first_attempt(self):
        decision = classify(self.failure(429), RequestAttempt(retry_count=0), 30)
        assert not isinstance(decision, Retry)

    @pytest.mark.parametrize("status", [500, 503, 408])
    def test_retryable_status_retries(self, status):
        decision = classify(self.failure(status), RequestAttempt(retry_count=1), 30,
                            rand=lambda: 0.0)
        assert decision == Retry(2000)

    def test_network_error_retries(self):
        decision = classify(self.failure(exception=requests.ConnectionError("reset")),
                            RequestAttempt(), 30, rand=lambda: 0.0)
        assert decision == Retry(1000)

    def test_404_fails_with_body_error(self):
        decision = classify(self.failure(404, body={"result": False, "error": "not_found"}),
                            RequestAttempt(), 30)
        assert isinstance(decision, Fail)
        assert decision.state is RequestState.FAILED
        assert isinstance(decision.error, ApiError)
        assert decision.error.message == "not_found"
        assert decision.error.status_code == 404
        assert decision.error.details["url"] == f"{API_URL}/x"
        assert decision.error.details["method"] == "GET"

    def test_message_field_used_when_no_error_field(self):
        decision = classify(self.failure(400, body={"message": "bad input"}), RequestAttempt(), 30)
        assert decision.error.message == "bad input"

    def test_generic_message_without_body(self):
        decision = classify(self.failure(403), RequestAttempt(), 30)
        assert decision.error.message == "Request failed with status code 403"

    def test_exhausted_retries_become_api_error(self):
        decision = classify(self.failure(503), RequestAttempt(retry_count=MAX_RETRIES), 30)
        assert isinstance(decision, Fail)
        assert decision.state is RequestState.EXHAUSTED
        assert decision.error.status_code == 503

    def test_exhausted_timeout_becomes_timeout_error(self):
        decision = classify(self.failure(exception=requests.ReadTimeout("Read timed out.")),
                            RequestAttempt(retry_count=MAX_RETRIES), 45)
        assert isinstance(decision.error, ApiTimeoutError)
        assert decision.error.timeout_seconds == 45
        assert decision.error.details["url"] == f"{API_URL}/x"

    def test_timeout_message_signature(self):
        decision = classify(self.failure(exception=requests.ConnectionError("connect timeout")),
                            RequestAttempt(retry_count=MAX_RETRIES), 30)
        assert isinstance(decision.error, ApiTimeoutError)

    def test_exhausted_network_error_becomes_api_error(self):
        decision = classify(self.failure(exception=requests.ConnectionError("Connection refused")),
                            RequestAttempt(retry_count=MAX_RETRIES), 30)
        assert isinstance(decision.error, ApiError)
        assert decision.error.status_code is None
        assert decision.error.message == "Connection refused"

    def test_network_error_without_message(self):
        decision = classify(self.failure(exception=requests.ConnectionError()),
                            RequestAttempt(retry_count=MAX_RETRIES), 30)
        assert decision.error.message == "Network error - no response received"


class TestResilientAdapter:
    """Test the retry loop in the transport adapter."""

    @pytest.fixture
    def adapter(self, config, sleeps):
        return ResilientAdapter(config, sleep=sleeps.append, rand=lambda: 0.0)

    def test_success_passes_through(self, adapter, sleeps):
        with patch.object(HTTPAdapter, "send", return_value=make_response(200, {"items": []})):
            response = adapter.send(prepared())

        assert response.status_code == 200
        assert response.attempt.retry_count == 0
        assert response.attempt.state is RequestState.SUCCEEDED
        assert sleeps == []

    def test_three_500s_then_success(self, adapter, sleeps):
        """Three server errors then a 200 resolve after exactly three delays."""
        responses = [make_response(500) for _ in range(3)] + [make_response(200, {"ok": True})]
        with patch.object(HTTPAdapter, "send", side_effect=responses) as send:
            response = adapter.send(prepared())

        assert response.json() == {"ok": True}
        assert send.call_count == 4
        assert sleeps == [1.0, 2.0, 4.0]
        assert response.attempt.retry_count == 3

    def test_four_500s_exhaust_retries(self, adapter, sleeps):
        responses = [make_response(500, {"error": "boom"}) for _ in range(4)]
        with patch.object(HTTPAdapter, "send", side_effect=responses):
            with pytest.raises(ApiError) as exc_info:
                adapter.send(prepared())

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "boom"
        assert len(sleeps) == MAX_RETRIES

    def test_429_raises_without_retry(self, adapter, sleeps):
        response = make_response(429, headers={"X-RateLimit-Limit": "120",
                                               "X-RateLimit-Reset": "1700000000"})
        with patch.object(HTTPAdapter, "send", return_value=response) as send:
            with pytest.raises(RateLimitError) as exc_info:
                adapter.send(prepared())

        assert send.call_count == 1
        assert sleeps == []
        assert exc_info.value.reset_time == 1700000000

    def test_404_raises_without_retry(self, adapter, sleeps):
        with patch.object(HTTPAdapter, "send", return_value=make_response(404, {"error": "nope"})):
            with pytest.raises(ApiError) as exc_info:
                adapter.send(prepared("DELETE", f"{API_URL}/raindrop/5"))

        assert sleeps == []
        assert exc_info.value.details["method"] == "DELETE"
        assert exc_info.value.details["url"] == f"{API_URL}/raindrop/5"

    def test_network_error_then_success(self, adapter, sleeps):
        side_effect = [requests.ConnectionError("reset"), make_response(200, {})]
        with patch.object(HTTPAdapter, "send", side_effect=side_effect):
            response = adapter.send(prepared())

        assert response.status_code == 200
        assert sleeps == [1.0]

    def test_repeated_timeouts_raise_timeout_error(self, config, sleeps):
        adapter = ResilientAdapter(config.with_overrides(timeout=12), sleep=sleeps.append,
                                   rand=lambda: 0.0)
        with patch.object(HTTPAdapter, "send", side_effect=requests.ReadTimeout("Read timed out")):
            with pytest.raises(ApiTimeoutError) as exc_info:
                adapter.send(prepared())

        assert exc_info.value.timeout_seconds == 12
        assert len(sleeps) == MAX_RETRIES

    def test_api_delay_applied_before_each_send(self, sleeps):
        adapter = ResilientAdapter(RdcliConfig(api_delay_ms=250), sleep=sleeps.append,
                                   rand=lambda: 0.0)
        responses = [make_response(503), make_response(200, {})]
        with patch.object(HTTPAdapter, "send", side_effect=responses):
            adapter.send(prepared())

        assert sleeps == [0.25, 1.0, 0.25]

    def test_retry_is_logged(self, adapter, caplog):
        responses = [make_response(502), make_response(200, {})]
        with caplog.at_level(logging.INFO, logger="rdcli"):
            with patch.object(HTTPAdapter, "send", side_effect=responses):
                adapter.send(prepared())

        assert "Retrying request (attempt 1/3) after 1000ms - 502" in caplog.text
        assert "completed in" in caplog.text


class TestSetupClientInterceptors:
    """Test wiring the adapter into a session."""

    def test_mounts_adapter_for_both_schemes(self, config):
        session = requests.Session()
        setup_client_interceptors(session, config)

        assert isinstance(session.get_adapter("https://api.raindrop.io/"), ResilientAdapter)
        assert isinstance(session.get_adapter("http://localhost/"), ResilientAdapter)

    def test_session_requests_are_retried(self, config, sleeps):
        session = requests.Session()
        setup_client_interceptors(session, config, sleep=sleeps.append, rand=lambda: 0.0)

        responses = [make_response(408), make_response(200, {"items": [1]})]
        with patch.object(HTTPAdapter, "send", side_effect=responses):
            response = session.get(f"{API_URL}/collections")

        assert response.json() == {"items": [1]}
        assert sleeps == [1.0]
