"""
HTTP resilience for the Raindrop API client.

Provides:
- Request/response logging with timing (verbose and debug)
- Automatic retry with exponential backoff for transient errors
- Rate limit detection (HTTP 429 raises RateLimitError immediately)
- Normalisation of every other failure into ApiError or ApiTimeoutError

The retry decision is a pure function, classify(), so the backoff rules can be
tested without a network; ResilientAdapter is the requests transport that runs
the loop (send, classify, sleep, resend).
"""
import enum
import errno
import json
import random
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, NamedTuple, Optional, Union

import requests
from requests.adapters import HTTPAdapter

from rdcli.config import RdcliConfig
from rdcli.errors import ApiError, ApiTimeoutError, RateLimitError, RdcliError

logger = logging.getLogger(__name__)

# Rate limit header names as sent by the Raindrop API
HEADER_RATE_LIMIT = "x-ratelimit-limit"
HEADER_RATE_REMAINING = "ratelimit-remaining"
HEADER_RATE_RESET = "x-ratelimit-reset"

DEFAULT_RATE_LIMIT = 120
DEFAULT_RESET_WINDOW_SECONDS = 60

# Retry configuration
MAX_RETRIES = 3
INITIAL_DELAY_MS = 1000
MAX_DELAY_MS = 30000
JITTER_RATIO = 0.25


class RequestState(enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    RETRYING = "retrying"
    RATE_LIMITED = "rate_limited"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass
class RequestAttempt:
    """Retry state of one logical request."""
    retry_count: int = 0
    start_time: float = field(default_factory=time.perf_counter)
    state: RequestState = RequestState.PENDING


@dataclass
class RateLimitInfo:
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset: Optional[int] = None

    @classmethod
    def from_headers(cls, headers: Optional[Mapping[str, str]]) -> "RateLimitInfo":
        """Extract rate limit info from response headers; absent values stay None."""
        lowered = {str(k).lower(): v for k, v in (headers or {}).items()}

        def parse(name: str) -> Optional[int]:
            value = lowered.get(name)
            if value in (None, ""):
                return None
            try:
                return int(str(value).strip())
            except ValueError:
                return None

        return cls(
            limit=parse(HEADER_RATE_LIMIT),
            remaining=parse(HEADER_RATE_REMAINING),
            reset=parse(HEADER_RATE_RESET),
        )


@dataclass
class RequestFailure:
    """A failed attempt: either an error response or a transport exception."""
    method: str
    url: str
    status: Optional[int] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Any = None
    exception: Optional[BaseException] = None

    @classmethod
    def from_response(cls, response: requests.Response,
                      request: Optional[requests.PreparedRequest] = None) -> "RequestFailure":
        try:
            body = response.json()
        except ValueError:
            body = None
        request = request if request is not None else response.request
        return cls(
            method=(request.method if request is not None else "GET") or "GET",
            url=(request.url if request is not None else response.url) or "unknown",
            status=response.status_code,
            headers=response.headers,
            body=body,
        )

    @classmethod
    def from_exception(cls, exc: BaseException,
                       request: Optional[requests.PreparedRequest]) -> "RequestFailure":
        return cls(
            method=(request.method if request is not None else "GET") or "GET",
            url=(request.url if request is not None else "unknown") or "unknown",
            exception=exc,
        )

    @property
    def context(self) -> Dict[str, Any]:
        return {"url": self.url, "method": self.method}


class Retry(NamedTuple):
    delay_ms: float


class Fail(NamedTuple):
    error: RdcliError
    state: RequestState


Decision = Union[Retry, Fail]


def is_retryable_error(status: Optional[int]) -> bool:
    """
    Check whether a failure is transient.

    Retryable: network errors (no response), 5xx server errors, 408.
    Not retryable: 429 (handled separately) and other 4xx client errors.
    """
    if status is None:
        return True
    if 500 <= status <= 599:
        return True
    return status == 408


def calculate_backoff(retry_count: int, rand: Callable[[], float] = random.random) -> float:
    """
    Exponential backoff with up to 25% jitter, in milliseconds.

    Formula: min(1000 * 2^retry_count * (1 + jitter), 30000)
    """
    delay = INITIAL_DELAY_MS * (2 ** retry_count)
    jitter = delay * JITTER_RATIO * rand()
    return min(delay + jitter, MAX_DELAY_MS)


def is_timeout(exc: Optional[BaseException]) -> bool:
    """Recognise timeout failures raised by requests or the socket layer."""
    if exc is None:
        return False
    if isinstance(exc, (requests.Timeout, TimeoutError)):
        return True
    if getattr(exc, "errno", None) == errno.ETIMEDOUT:
        return True
    return "timeout" in str(exc).lower()


def error_message(failure: RequestFailure) -> str:
    """Message for an error response: body error/message, then transport text."""
    body = failure.body
    if isinstance(body, Mapping):
        for key in ("error", "message"):
            value = body.get(key)
            if value not in (None, "", False, True):
                return str(value)
    if failure.status is not None:
        return f"Request failed with status code {failure.status}"
    return "API request failed"


def classify(failure: RequestFailure, attempt: RequestAttempt, timeout_seconds: int,
             now: Callable[[], float] = time.time,
             rand: Callable[[], float] = random.random) -> Decision:
    """
    Decide what happens after a failed attempt.

    Args:
        failure: The failed attempt
        attempt: Retry state of the logical request
        timeout_seconds: Configured timeout, reported in ApiTimeoutError
        now: Clock returning epoch seconds
        rand: Uniform [0, 1) source for jitter

    Returns:
        Retry(delay_ms) or Fail(error, state)
    """
    if failure.status == 429:
        info = RateLimitInfo.from_headers(failure.headers)
        limit = info.limit if info.limit is not None else DEFAULT_RATE_LIMIT
        reset = info.reset if info.reset is not None else int(now()) + DEFAULT_RESET_WINDOW_SECONDS
        return Fail(RateLimitError(limit, reset), RequestState.RATE_LIMITED)

    state = RequestState.FAILED
    if is_retryable_error(failure.status):
        if attempt.retry_count < MAX_RETRIES:
            return Retry(calculate_backoff(attempt.retry_count, rand))
        state = RequestState.EXHAUSTED

    if failure.status is not None:
        return Fail(ApiError(error_message(failure), failure.status, failure.context), state)

    exc = failure.exception
    if is_timeout(exc):
        return Fail(ApiTimeoutError(timeout_seconds, {**failure.context,
                                                      "code": type(exc).__name__}), state)

    message = str(exc) if exc is not None and str(exc) else "Network error - no response received"
    code = type(exc).__name__ if exc is not None else None
    return Fail(ApiError(message, None, {"code": code}), state)


class ResilientAdapter(HTTPAdapter):
    """
    Transport adapter that retries transient failures.

    Every response with status >= 400 and every transport exception goes
    through classify(); retries are sequential and reuse the same prepared
    request. The final RequestAttempt is attached to the returned response
    as ``response.attempt``.
    """

    def __init__(self, config: Optional[RdcliConfig] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 rand: Callable[[], float] = random.random,
                 clock: Callable[[], float] = time.time,
                 **kwargs):
        super().__init__(**kwargs)
        self.config = config or RdcliConfig()
        self.sleep = sleep
        self.rand = rand
        self.clock = clock

    def send(self, request, **kwargs):
        attempt = RequestAttempt()
        method = (request.method or "GET").upper()

        while True:
            if self.config.api_delay_ms > 0:
                logger.debug(f"API delay: waiting {self.config.api_delay_ms}ms before request")
                self.sleep(self.config.api_delay_ms / 1000)

            attempt.start_time = time.perf_counter()
            attempt.state = RequestState.PENDING
            logger.info(f"API {method} {request.url}")
            logger.debug("Request config\n" + json.dumps(
                {"method": method, "url": request.url, "hasData": request.body is not None},
                indent=2))

            try:
                response = super().send(request, **kwargs)
            except requests.RequestException as exc:
                failure = RequestFailure.from_exception(exc, request)
            else:
                if response.status_code < 400:
                    self._log_success(response, method, request.url, attempt)
                    attempt.state = RequestState.SUCCEEDED
                    response.attempt = attempt
                    return response
                failure = RequestFailure.from_response(response, request)
                response.close()

            decision = classify(failure, attempt, self.config.timeout, now=self.clock, rand=self.rand)

            if isinstance(decision, Fail):
                attempt.state = decision.state
                if decision.state is RequestState.EXHAUSTED:
                    logger.info(f"Max retries ({MAX_RETRIES}) exceeded")
                logger.debug(f"{type(decision.error).__name__}\n"
                             + json.dumps(decision.error.details, indent=2, default=str))
                raise decision.error

            attempt.state = RequestState.RETRYING
            status = failure.status if failure.status is not None else "network error"
            logger.info(f"Retrying request (attempt {attempt.retry_count + 1}/{MAX_RETRIES}) "
                        f"after {decision.delay_ms:.0f}ms - {status}")
            self.sleep(decision.delay_ms / 1000)
            attempt.retry_count += 1

    def _log_success(self, response: requests.Response, method: str, url: str,
                     attempt: RequestAttempt) -> None:
        elapsed = (time.perf_counter() - attempt.start_time) * 1000
        logger.info(f"API {method} {url} completed in {elapsed:.0f}ms")

        info = RateLimitInfo.from_headers(response.headers)
        if info.remaining is not None:
            logger.debug(f"Rate limit status: remaining={info.remaining} limit={info.limit}")


def setup_client_interceptors(session: requests.Session, config: Optional[RdcliConfig] = None,
                              **adapter_kwargs) -> None:
    """
    Install the resilient transport on a session.

    Call this once after creating the session.
    """
    adapter = ResilientAdapter(config, **adapter_kwargs)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
