"""
Seed Vault - single-owner custody on an account-based ledger
Vaults live at program-derived addresses; authority is proven by seeds, not keys
"""

from .vault import VaultController, VaultAccounts
from .state import VaultState
from .authority import SeedProof
from .derivation import Address, create_program_address, find_program_address
from .identity import Identity, Keypair, SignedRequest, authenticate
from .config import VaultConfig

__version__ = "0.1.0"
__all__ = [
    "VaultController",
    "VaultAccounts",
    "VaultState",
    "SeedProof",
    "Address",
    "create_program_address",
    "find_program_address",
    "Identity",
    "Keypair",
    "SignedRequest",
    "authenticate",
    "VaultConfig"
]
