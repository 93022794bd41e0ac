"""
Ledger collaborator - in-memory account store with an atomic transfer primitive
"""

from .accounts import Account, Rent, SYSTEM_PROGRAM_ID
from .store import Ledger, Transaction
from .errors import LedgerError

__all__ = [
    "Account",
    "Rent",
    "SYSTEM_PROGRAM_ID",
    "Ledger",
    "Transaction",
    "LedgerError"
]
