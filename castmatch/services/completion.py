"""
Text-completion client used to enrich character descriptions.

Wraps google-genai with bounded retries, error classification and a circuit
breaker. A client instance is built per request from an explicit credential,
so breaker state never leaks across callers with different keys.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from google import genai
from google.genai import types

from castmatch.core.exceptions import (
    CompletionCircuitOpenError,
    CompletionContentFilterError,
    CompletionError,
    CompletionRateLimitError,
    CompletionTimeoutError,
    CompletionUnavailableError,
    ConfigurationError,
)
from castmatch.core.metrics import track_completion_call

logger = logging.getLogger(__name__)

_RETRYABLE = {"rate_limit", "timeout", "model_unavailable", "unknown"}


@dataclass
class CircuitBreakerState:
    """Consecutive-failure breaker for one completion client."""

    failure_count: int = 0
    circuit_open_until: datetime | None = None
    consecutive_successes: int = 0

    failure_threshold: int = 5
    recovery_timeout_seconds: int = 60
    half_open_success_threshold: int = 2

    def record_failure(self) -> None:
        self.failure_count += 1
        self.consecutive_successes = 0
        if self.failure_count >= self.failure_threshold:
            self.circuit_open_until = datetime.now(timezone.utc) + timedelta(
                seconds=self.recovery_timeout_seconds
            )
            logger.warning(
                "completion circuit open failures=%d retry_after=%s",
                self.failure_count,
                self.circuit_open_until.isoformat(),
            )

    def record_success(self) -> None:
        self.consecutive_successes += 1
        if self.circuit_open_until is None:
            self.failure_count = 0
            return
        if self.is_half_open and self.consecutive_successes >= self.half_open_success_threshold:
            logger.info("completion circuit closed after %d successes", self.consecutive_successes)
            self.reset()

    def reset(self) -> None:
        self.failure_count = 0
        self.circuit_open_until = None
        self.consecutive_successes = 0

    @property
    def is_open(self) -> bool:
        if self.circuit_open_until is None:
            return False
        return datetime.now(timezone.utc) < self.circuit_open_until

    @property
    def is_half_open(self) -> bool:
        if self.circuit_open_until is None:
            return False
        return datetime.now(timezone.utc) >= self.circuit_open_until and self.failure_count > 0

    def check_circuit(self) -> None:
        if self.is_open:
            raise CompletionCircuitOpenError(
                f"Circuit breaker is open after {self.failure_count} consecutive failures",
                retry_after=self.circuit_open_until,
            )


def classify_error(error_text: str) -> str:
    """Map a provider error message onto a coarse error type."""
    lowered = error_text.lower()
    if "resource_exhausted" in lowered or "429" in lowered:
        return "rate_limit"
    if "safety" in lowered or "blocked" in lowered:
        return "content_filter"
    if "timeout" in lowered or "timed out" in lowered or "deadline" in lowered:
        return "timeout"
    if "unavailable" in lowered or "503" in lowered:
        return "model_unavailable"
    if "invalid" in lowered or "400" in lowered or "permission" in lowered or "401" in lowered:
        return "invalid_request"
    return "unknown"


_ERROR_TYPES: dict[str, type[CompletionError]] = {
    "rate_limit": CompletionRateLimitError,
    "timeout": CompletionTimeoutError,
    "model_unavailable": CompletionUnavailableError,
    "content_filter": CompletionContentFilterError,
}


class GeminiCompletionClient:
    def __init__(
        self,
        api_key: str | None,
        model: str,
        project: str | None = None,
        location: str | None = None,
        fallback_model: str | None = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 3,
        initial_backoff_seconds: float = 0.8,
        temperature: float = 0.7,
        max_output_tokens: int = 1024,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_timeout: int = 60,
        client: object | None = None,
    ):
        if client is None and not api_key and (not project or not location):
            raise ConfigurationError(
                "Either an API key or both GOOGLE_CLOUD_PROJECT and GOOGLE_CLOUD_LOCATION must be configured"
            )

        self._model = model
        self._fallback_model = fallback_model
        self._max_retries = max(1, max_retries)
        self._initial_backoff_seconds = initial_backoff_seconds
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self.circuit_breaker = CircuitBreakerState(
            failure_threshold=circuit_breaker_threshold,
            recovery_timeout_seconds=circuit_breaker_timeout,
        )

        self.last_request_id: str | None = None
        self.last_model: str | None = None
        self.last_error_type: str | None = None

        if client is not None:
            self._client = client
        else:
            http_options = types.HttpOptions(timeout=int(timeout_seconds * 1000))
            if api_key:
                self._client = genai.Client(api_key=api_key, http_options=http_options)
            else:
                self._client = genai.Client(
                    vertexai=True,
                    project=project,
                    location=location,
                    http_options=http_options,
                )

    def _call_with_retry(
        self,
        func: Callable[[], types.GenerateContentResponse],
        model_name: str,
    ) -> types.GenerateContentResponse:
        self.circuit_breaker.check_circuit()

        request_id = str(uuid.uuid4())
        self.last_request_id = request_id
        self.last_model = model_name
        error_type = "unknown"
        last_exc: Exception | None = None

        for attempt in range(self._max_retries):
            try:
                with track_completion_call("generate_text"):
                    response = func()
            except Exception as exc:  # noqa: BLE001
                last_exc = exc
                error_type = classify_error(str(exc))
                self.last_error_type = error_type
                logger.warning(
                    "completion failed request_id=%s model=%s attempt=%s/%s type=%s error=%r",
                    request_id,
                    model_name,
                    attempt + 1,
                    self._max_retries,
                    error_type,
                    exc,
                )
                if error_type not in _RETRYABLE or attempt + 1 >= self._max_retries:
                    break
                time.sleep(self._initial_backoff_seconds * (2**attempt))
                continue

            self.last_request_id = getattr(response, "response_id", None) or request_id
            self.last_error_type = None
            self._check_safety(response, model_name)
            self.circuit_breaker.record_success()
            return response

        self.circuit_breaker.record_failure()
        error_cls = _ERROR_TYPES.get(error_type, CompletionError)
        raise error_cls(
            f"Completion with {model_name} failed ({error_type}): {last_exc!r}",
            request_id=request_id,
            model=model_name,
        )

    def _check_safety(self, response: types.GenerateContentResponse, model_name: str) -> None:
        candidate = (response.candidates or [None])[0]
        if candidate is None:
            return
        finish_reason = getattr(candidate, "finish_reason", None)
        if finish_reason and "SAFETY" in str(finish_reason).upper():
            self.last_error_type = "content_filter"
            self.circuit_breaker.record_failure()
            blocked = [
                str(getattr(rating, "category", "UNKNOWN"))
                for rating in (getattr(candidate, "safety_ratings", None) or [])
                if getattr(rating, "blocked", False)
            ]
            raise CompletionContentFilterError(
                f"Completion blocked by safety filters: {blocked}",
                request_id=self.last_request_id,
                model=model_name,
                blocked_categories=blocked,
            )

    @staticmethod
    def _extract_text(response: types.GenerateContentResponse) -> str:
        candidate = (response.candidates or [None])[0]
        if candidate is None or not candidate.content or not candidate.content.parts:
            raise CompletionError("Completion returned empty content")
        text = "\n".join(part.text for part in candidate.content.parts if part.text).strip()
        if not text:
            raise CompletionError("Completion returned no textual content")
        return text

    def _generate(self, model_name: str, prompt: str, system_instruction: str | None) -> str:
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=self._temperature,
            max_output_tokens=self._max_output_tokens,
        )
        response = self._call_with_retry(
            lambda: self._client.models.generate_content(
                model=model_name,
                contents=[prompt],
                config=config,
            ),
            model_name=model_name,
        )
        return self._extract_text(response)

    def generate_text(self, prompt: str, system_instruction: str | None = None) -> str:
        """Generate text, retrying once on the fallback model for transient failures.

        Raises:
            CompletionError: On failure (with a specific subclass for the error type)
        """
        try:
            return self._generate(self._model, prompt, system_instruction)
        except (CompletionUnavailableError, CompletionRateLimitError, CompletionTimeoutError) as exc:
            fallback = self._fallback_model
            if not fallback or fallback == self._model or self.circuit_breaker.is_open:
                raise
            logger.warning("primary model %s failed, trying fallback %s: %s", self._model, fallback, exc)
            return self._generate(fallback, prompt, system_instruction)
