"""Port: generative text collaborator."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TextGenerator(Protocol):
    """Turn a prompt into generated text.

    Implementations raise on transport failure; classification into
    retryable/non-retryable happens in the invocation layer.
    """

    def generate(self, prompt: str) -> str: ...
