"""
Program-derived addresses

An address derived here is a SHA-256 digest that is guaranteed NOT to be a
valid Ed25519 public key, so nobody can hold a private key for it. Only the
program whose id was hashed in can act for it, by reproducing the seeds.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

from ecdsa.curves import Ed25519
from ecdsa.ellipticcurve import PointEdwards
from ecdsa.errors import MalformedPointError

logger = logging.getLogger("seedvault.derivation")

ADDRESS_LENGTH = 32
MAX_SEED_LENGTH = 32
MAX_SEEDS = 16
PDA_MARKER = b"ProgramDerivedAddress"


class DerivationError(ValueError):
    """Seeds cannot produce a derived address"""


class InvalidSeeds(DerivationError):
    """Seeds hash to a point on the curve"""


@dataclass(frozen=True)
class Address:
    """32-byte ledger address (public key or derived address)"""
    raw: bytes

    def __post_init__(self):
        if not isinstance(self.raw, (bytes, bytearray)) or len(self.raw) != ADDRESS_LENGTH:
            raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes")
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_hex(cls, value: str) -> 'Address':
        """Parse a hex encoded address"""
        try:
            return cls(bytes.fromhex(value))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid address {value!r}: {e}") from e

    def hex(self) -> str:
        return self.raw.hex()

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return self.raw.hex()

    def __repr__(self) -> str:
        return f"Address({self.raw.hex()[:16]}...)"


def is_on_curve(data: bytes) -> bool:
    """Check whether 32 bytes decode to a point on the Ed25519 curve"""
    try:
        PointEdwards.from_bytes(Ed25519.curve, bytes(data))
    except MalformedPointError:
        return False
    return True


def create_program_address(seeds: Sequence[bytes], program_id: Address) -> Address:
    """
    Verification mode: hash seeds (bump included) into an address.

    Raises InvalidSeeds if the digest lands on the curve.
    """
    if len(seeds) > MAX_SEEDS:
        raise DerivationError(f"At most {MAX_SEEDS} seeds allowed, got {len(seeds)}")

    hasher = hashlib.sha256()
    for seed in seeds:
        seed = bytes(seed)
        if len(seed) > MAX_SEED_LENGTH:
            raise DerivationError(f"Seed of {len(seed)} bytes exceeds {MAX_SEED_LENGTH}")
        hasher.update(seed)
    hasher.update(bytes(program_id))
    hasher.update(PDA_MARKER)
    digest = hasher.digest()

    if is_on_curve(digest):
        raise InvalidSeeds("Derived address lies on the Ed25519 curve")

    return Address(digest)


def find_program_address(seeds: Sequence[bytes], program_id: Address) -> Tuple[Address, int]:
    """
    Forward mode: search bumps 255..0 for the first off-curve address.

    Expensive compared to create_program_address, so callers persist the
    bump and only search once.
    """
    seeds = [bytes(s) for s in seeds]
    for bump in range(255, -1, -1):
        try:
            address = create_program_address(seeds + [bytes([bump])], program_id)
        except InvalidSeeds:
            continue
        logger.debug(f"Found bump {bump} after {256 - bump} attempts")
        return address, bump

    raise DerivationError("No valid bump found for seeds")
