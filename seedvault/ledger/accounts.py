from dataclasses import dataclass

from ..derivation import Address

# The base transfer program owns every plain user account and every vault
SYSTEM_PROGRAM_ID = Address(bytes(32))

ACCOUNT_STORAGE_OVERHEAD = 128


@dataclass
class Account:
    """Ledger account record"""
    lamports: int = 0
    data: bytes = b""
    owner: Address = SYSTEM_PROGRAM_ID

    def copy(self) -> 'Account':
        return Account(lamports=self.lamports, data=bytes(self.data), owner=self.owner)

    def is_system_account(self) -> bool:
        return self.owner == SYSTEM_PROGRAM_ID and not self.data


@dataclass(frozen=True)
class Rent:
    """Reserve-exemption parameters of the ledger storage model"""
    lamports_per_byte_year: int = 3480
    exemption_threshold: float = 2.0

    def minimum_balance(self, size: int) -> int:
        """Lamports an account of `size` data bytes needs to stay exempt"""
        bytes_charged = ACCOUNT_STORAGE_OVERHEAD + size
        return int(bytes_charged * self.lamports_per_byte_year * self.exemption_threshold)

    def is_exempt(self, lamports: int, size: int) -> bool:
        return lamports >= self.minimum_balance(size)
