"""Concrete adapter implementations."""

from .gemini_generator import GeminiTextGenerator
from .memory_ledger import InMemoryLedger
from .memory_repository import InMemoryRepository

__all__ = [
    "GeminiTextGenerator",
    "InMemoryLedger",
    "InMemoryRepository",
]
