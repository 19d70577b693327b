"""Resilient invocation of the generative text collaborator.

Every model call goes through ``ResilientInvoker``: bounded retries with a
configurable backoff, failures classified into ``AIServiceError``, and an
explicit ``Result`` value instead of exceptions for callers that want to
inspect outcomes.
"""

from __future__ import annotations

import json
import math
import re
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..config.runtime import BackoffStrategy, RuntimeSettings
from ..domain.errors import (
    GENERATION_FAILED,
    MALFORMED_OUTPUT,
    MAX_RETRIES_EXCEEDED,
    TIMEOUT,
    AIServiceError,
    InvalidInput,
    ServiceKind,
)
from ..ports.text_generator import TextGenerator

T = TypeVar("T")

_FENCE_RE = re.compile(r"^\s*```(?:json|JSON)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)
_LEADING_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an invocation: a value or a typed error, never both."""

    value: T | None = None
    error: AIServiceError | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry and how long to wait between attempts."""

    max_retries: int = 3
    base_delay: float = 1.0
    strategy: BackoffStrategy = BackoffStrategy.exponential

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds after failed attempt number *attempt* (0-based)."""
        if self.strategy is BackoffStrategy.exponential:
            return self.base_delay * (2 ** attempt)
        if self.strategy is BackoffStrategy.linear:
            return self.base_delay * (attempt + 1)
        return self.base_delay

    @classmethod
    def for_service(cls, settings: RuntimeSettings, service: ServiceKind) -> "RetryPolicy":
        if service is ServiceKind.matching:
            retries, delay = settings.matching_max_retries, settings.matching_retry_delay_seconds
        elif service is ServiceKind.generation:
            retries, delay = settings.generation_max_retries, settings.generation_retry_delay_seconds
        else:
            retries, delay = settings.verification_max_retries, settings.verification_retry_delay_seconds
        return cls(max_retries=retries, base_delay=delay, strategy=settings.backoff_strategy)


class ResilientInvoker:
    """Retrying wrapper around a TextGenerator for one service kind."""

    def __init__(
        self,
        generator: TextGenerator,
        service: ServiceKind,
        policy: RetryPolicy | None = None,
        model_id: str = "",
        sleep: Callable[[float], None] = time.sleep,
        logger: Any = None,
    ) -> None:
        self._generator = generator
        self.service = ServiceKind(service)
        self._policy = policy or RetryPolicy()
        self.model_id = model_id
        self._sleep = sleep
        self._logger = logger

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def invoke(self, prompt: str) -> Result[str]:
        total = self._policy.max_retries + 1
        last_error: AIServiceError | None = None
        for attempt in range(total):
            try:
                text = self._generator.generate(prompt)
            except AIServiceError as exc:
                if not exc.retryable:
                    return Result(error=exc, attempts=attempt + 1)
                last_error = exc
            except TimeoutError as exc:
                last_error = AIServiceError(self.service, TIMEOUT, str(exc) or "request timed out")
            except Exception as exc:
                last_error = AIServiceError(self.service, GENERATION_FAILED, str(exc) or type(exc).__name__)
            else:
                if text and text.strip():
                    return Result(value=text, attempts=attempt + 1)
                last_error = AIServiceError(self.service, GENERATION_FAILED, "empty response")

            if self._logger:
                self._logger.warning(
                    "invoke_attempt_failed",
                    extra={
                        "service": self.service.value,
                        "attempt": attempt + 1,
                        "code": last_error.code,
                    },
                )
            if attempt < total - 1:
                self._sleep(self._policy.delay_for(attempt))

        message = f"{self.service.value} failed after {total} attempts"
        if last_error is not None:
            message = f"{message}: {last_error.message}"
        return Result(
            error=AIServiceError(self.service, MAX_RETRIES_EXCEEDED, message, retryable=False),
            attempts=total,
        )

    def generate(self, prompt: str) -> str:
        """Like ``invoke`` but raises the AIServiceError on failure."""
        return self.invoke(prompt).unwrap()

    def validate_input(self, obj: Any, fields: list[str]) -> None:
        """Raise InvalidInput if any required field is absent or blank."""
        missing = [name for name in fields if _is_blank(_field(obj, name))]
        if missing:
            raise InvalidInput(self.service, "missing required field(s): " + ", ".join(missing))


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def strip_code_fences(text: str) -> str:
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text.strip()


def parse_json_payload(text: str, service: ServiceKind | str) -> dict:
    """Decode a JSON object from model output, tolerating Markdown fences."""
    body = strip_code_fences(text)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        start, end = body.find("{"), body.rfind("}")
        if start == -1 or end <= start:
            raise AIServiceError(service, MALFORMED_OUTPUT, "response is not JSON", retryable=False)
        try:
            payload = json.loads(body[start : end + 1])
        except json.JSONDecodeError as exc:
            raise AIServiceError(service, MALFORMED_OUTPUT, f"response is not JSON: {exc}", retryable=False)
    if not isinstance(payload, dict):
        raise AIServiceError(service, MALFORMED_OUTPUT, "response is not a JSON object", retryable=False)
    return payload


def parse_unit_interval(text: str | None) -> float | None:
    """Return the leading decimal in *text* if it is finite and within [0, 1]."""
    if not text:
        return None
    match = _LEADING_NUMBER_RE.match(text)
    if not match:
        return None
    value = float(match.group(1))
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        return None
    return value


def parse_bool_answer(text: str | None) -> bool | None:
    if not text:
        return None
    answer = text.strip().strip(".!\"'`").lower()
    if answer == "true":
        return True
    if answer == "false":
        return False
    return None
