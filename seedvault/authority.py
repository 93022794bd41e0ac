"""
Authority assertion for derived accounts

The controller holds no private key for the vault. It proves it may move
value out of one by handing the ledger a SeedProof: the exact seed sequence
that derived the address. The seed builders below are the single source of
those sequences, used both when an account is created and on every later
signed transfer.
"""

from typing import List

from .derivation import Address, DerivationError, create_program_address

STATE_SEED = b"state"
VAULT_SEED = b"vault"


def state_seeds(user: Address) -> List[bytes]:
    """Seeds of a user's vault state record, bump excluded"""
    return [STATE_SEED, bytes(user)]


def vault_seeds(vault_state: Address) -> List[bytes]:
    """Seeds of the vault owned by a state record, bump excluded"""
    return [VAULT_SEED, bytes(vault_state)]


class SeedProof:
    """Opaque capability proving signing authority over one derived address"""

    __slots__ = ("_seeds",)

    def __init__(self, seeds: List[bytes], bump: int):
        if not 0 <= bump <= 255:
            raise ValueError(f"Bump must fit in a byte, got {bump}")
        self._seeds = tuple(bytes(s) for s in seeds) + (bytes([bump]),)

    @classmethod
    def for_vault(cls, vault_state: Address, vault_bump: int) -> 'SeedProof':
        return cls(vault_seeds(vault_state), vault_bump)

    @classmethod
    def for_state(cls, user: Address, state_bump: int) -> 'SeedProof':
        return cls(state_seeds(user), state_bump)

    def signs_for(self, address: Address, program_id: Address) -> bool:
        """Check the seeds re-derive `address` under `program_id`"""
        try:
            return create_program_address(self._seeds, program_id) == address
        except DerivationError:
            return False

    def __repr__(self) -> str:
        return "SeedProof(<seeds hidden>)"
