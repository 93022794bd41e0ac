"""
Deployment configuration

The program id is fixed when the controller is deployed; it is read once at
startup and injected into the controller, never mutated afterwards.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .derivation import Address
from .ledger.accounts import Rent

DEFAULT_PROGRAM_ID = Address.from_hex("bd4c0b3e5a1f0e2d6c7a98f1e3b2d4c6a8f0e1d3c5b7a9f2e4d6c8b0a1f3e5d7")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class VaultConfig:
    """Process-wide settings for a vault controller deployment"""
    program_id: Address = DEFAULT_PROGRAM_ID
    log_level: str = "INFO"
    request_max_age: int = 300  # seconds a signed request stays valid
    rent: Rent = field(default_factory=Rent)

    @classmethod
    def from_env(cls) -> 'VaultConfig':
        """Build config from the environment (and a .env file if present)"""
        load_dotenv()

        program_id = DEFAULT_PROGRAM_ID
        raw_program_id = os.getenv("SEEDVAULT_PROGRAM_ID", "")
        if raw_program_id:
            program_id = Address.from_hex(raw_program_id.strip())

        defaults = Rent()
        rent = Rent(
            lamports_per_byte_year=int(os.getenv("SEEDVAULT_LAMPORTS_PER_BYTE_YEAR", defaults.lamports_per_byte_year)),
            exemption_threshold=float(os.getenv("SEEDVAULT_EXEMPTION_THRESHOLD", defaults.exemption_threshold)),
        )

        return cls(
            program_id=program_id,
            log_level=os.getenv("SEEDVAULT_LOG_LEVEL", "INFO").upper(),
            request_max_age=int(os.getenv("SEEDVAULT_REQUEST_MAX_AGE", 300)),
            rent=rent,
        )


def configure_logging(level: str = "INFO"):
    """Install the root log format used by the shell and scripts"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
