import hashlib
from dataclasses import dataclass, asdict

from .errors import InvalidVaultState

DISCRIMINATOR = hashlib.sha256(b"account:VaultState").digest()[:8]


@dataclass(frozen=True)
class VaultState:
    """Per-user metadata record holding the bumps of both derived accounts"""
    vault_bump: int  # re-derives the vault from this record's address
    state_bump: int  # re-derives this record's address from the user

    INIT_SPACE = 2
    SPACE = len(DISCRIMINATOR) + INIT_SPACE

    def __post_init__(self):
        for name in ("vault_bump", "state_bump"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
                raise ValueError(f"{name} must be a byte, got {value!r}")

    def serialize(self) -> bytes:
        """Encode as discriminator || vault_bump || state_bump"""
        return DISCRIMINATOR + bytes([self.vault_bump, self.state_bump])

    @classmethod
    def deserialize(cls, data: bytes) -> 'VaultState':
        """Decode a record read from the ledger"""
        data = bytes(data)
        if len(data) != cls.SPACE:
            raise InvalidVaultState(f"Expected {cls.SPACE} bytes, got {len(data)}")
        if data[:len(DISCRIMINATOR)] != DISCRIMINATOR:
            raise InvalidVaultState("Account discriminator mismatch")

        vault_bump, state_bump = data[len(DISCRIMINATOR):]
        return cls(vault_bump=vault_bump, state_bump=state_bump)

    def to_dict(self) -> dict:
        return asdict(self)
