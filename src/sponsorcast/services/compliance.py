"""Compliance review shared by generation and verification."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ..domain.errors import AIServiceError
from ..domain.scoring import fallback_compliance
from ..domain.sponsorship import ComplianceResult
from .invocation import ResilientInvoker, parse_json_payload

COMPLIANCE_PROMPT = """Analyze this podcast content for advertising compliance and safety.

CONTENT:
{content}

Check for:
1. Advertising disclosure requirements (the sponsorship must be disclosed)
2. Truthful, non-misleading claims
3. Appropriate language and tone
4. No spam or excessive promotion

Return only a JSON object:
{{"compliant": true, "violations": [], "severity": "low", "suggestions": []}}
severity is one of "low", "medium", "high"."""


class ComplianceService:
    """Ask the model for a compliance verdict, falling back to fixed rules."""

    def __init__(self, invoker: ResilientInvoker, logger: Any = None) -> None:
        self._invoker = invoker
        self._logger = logger

    def validate(self, content: str) -> ComplianceResult:
        result = self._invoker.invoke(COMPLIANCE_PROMPT.format(content=content))
        if result.ok:
            try:
                return ComplianceResult.model_validate(
                    parse_json_payload(result.value, self._invoker.service)
                )
            except (AIServiceError, ValidationError) as exc:
                self._log_fallback(str(exc))
        else:
            self._log_fallback(result.error.code)
        return fallback_compliance(content)

    def _log_fallback(self, reason: str) -> None:
        if self._logger:
            self._logger.info(
                "compliance_fallback",
                extra={"service": self._invoker.service.value, "reason": reason},
            )
