"""Port interfaces (Protocols).

Application services depend only on these, never on concrete adapters.
No google-generativeai or other infrastructure imports allowed here.
"""

from .id_gen import IdProvider, RequestIdProvider
from .ledger import Ledger, SettlementReceipt
from .repository import Repository
from .text_generator import TextGenerator

__all__ = [
    "IdProvider",
    "Ledger",
    "Repository",
    "RequestIdProvider",
    "SettlementReceipt",
    "TextGenerator",
]
