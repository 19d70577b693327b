"""Port: ID generation strategies."""

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable


@runtime_checkable
class IdProvider(Protocol):
    """Generate a unique identifier with a short kind prefix."""

    def new_id(self, kind: str) -> str: ...


@runtime_checkable
class RequestIdProvider(Protocol):
    """Generate a unique request (trace) ID."""

    def new_request_id(self) -> str: ...


# ---------------------------------------------------------------------------
# Default implementations (pure stdlib, no infra deps)
# ---------------------------------------------------------------------------


class UuidIdProvider:
    """Uses uuid4 hex, prefixed by kind (e.g. ``plc_3f2a...``)."""

    def new_id(self, kind: str) -> str:
        return f"{kind}_{uuid.uuid4().hex}"


class UuidRequestIdProvider:
    """Uses uuid4 for request IDs."""

    def new_request_id(self) -> str:
        return str(uuid.uuid4())
