"""
Errors reported by the vault controller

Every lifecycle failure is one of these. Ledger errors that have no
vault-level meaning are wrapped in CollaboratorFailure with the original
attached as __cause__.
"""


class VaultError(Exception):
    """Base class for vault controller errors"""
    kind = "VaultError"


class DuplicateVault(VaultError):
    """Open called for a user who already has a vault"""
    kind = "DuplicateVault"


class VaultNotFound(VaultError):
    """Operation on a user without a vault state record"""
    kind = "VaultNotFound"


class InsufficientFunds(VaultError):
    """Source balance too low, including breaching the reserve minimum"""
    kind = "InsufficientFunds"


class InvalidAmount(VaultError, ValueError):
    """Zero, negative, oversized or non-integer amount"""
    kind = "InvalidAmount"


class AuthorityMismatch(VaultError):
    """Re-derived address or seed proof does not match the presented account"""
    kind = "AuthorityMismatch"


class InvalidVaultState(AuthorityMismatch):
    """Presented state account does not hold a vault state record"""
    kind = "InvalidVaultState"


class Unauthorized(VaultError):
    """Caller failed authentication"""
    kind = "Unauthorized"


class CollaboratorFailure(VaultError):
    """Ledger or transfer primitive failed for a reason outside the vault rules"""
    kind = "CollaboratorFailure"
