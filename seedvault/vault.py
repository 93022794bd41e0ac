import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .authority import SeedProof, state_seeds, vault_seeds
from .config import VaultConfig
from .derivation import Address, DerivationError, find_program_address
from .errors import (
    AuthorityMismatch,
    CollaboratorFailure,
    DuplicateVault,
    InsufficientFunds,
    InvalidAmount,
    InvalidVaultState,
    VaultError,
    VaultNotFound,
)
from .identity import Identity
from .ledger import Ledger
from .ledger.errors import (
    AccountAlreadyInUse,
    InsufficientLamports,
    LedgerError,
    MissingRequiredSignature,
    RentStateViolation,
)
from .state import VaultState

logger = logging.getLogger("seedvault.vault")

MAX_AMOUNT = 2 ** 64 - 1

# Vaults are plain system accounts and carry no data
VAULT_SPACE = 0

_LEDGER_ERRORS = [
    (InsufficientLamports, InsufficientFunds),
    (RentStateViolation, InsufficientFunds),
    (AccountAlreadyInUse, DuplicateVault),
    (MissingRequiredSignature, AuthorityMismatch),
]


@dataclass(frozen=True)
class VaultAccounts:
    """Accounts a client presents for a vault instruction"""
    user: Address
    vault_state: Address
    vault: Address

    def to_dict(self) -> dict:
        return {
            'user': self.user.hex(),
            'vault_state': self.vault_state.hex(),
            'vault': self.vault.hex()
        }


def validate_amount(amount) -> int:
    """Reject anything but a positive u64 integer"""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Amount must be an integer, got {type(amount).__name__}")
    if amount <= 0:
        raise InvalidAmount("Amount must be greater than zero")
    if amount > MAX_AMOUNT:
        raise InvalidAmount(f"Amount {amount} exceeds {MAX_AMOUNT}")
    return amount


class VaultController:
    """
    Open, deposit into, withdraw from and close per-user vaults.

    The controller keeps no vault state of its own, only a book of the
    addresses it has derived. Every call reads the user's state record from
    the ledger, checks the addresses against the stored bumps, and runs inside
    a single ledger transaction.
    """

    def __init__(self, ledger: Ledger, config: Optional[VaultConfig] = None):
        self.ledger = ledger
        self.config = config or VaultConfig()
        self.program_id = self.config.program_id
        # derived addresses never change, so each user is searched at most once
        self._address_book: Dict[Address, VaultAccounts] = {}

    # Queries

    def accounts_for(self, user: Address) -> VaultAccounts:
        """
        Canonical state and vault addresses of a user (client side helper).

        The forward search runs only the first time a user is seen; Open
        records the addresses it derives, so later calls are lookups.
        """
        accounts = self._address_book.get(user)
        if accounts is None:
            state_address, _ = find_program_address(state_seeds(user), self.program_id)
            vault, _ = find_program_address(vault_seeds(state_address), self.program_id)
            accounts = VaultAccounts(user=user, vault_state=state_address, vault=vault)
            self._address_book[user] = accounts
        return accounts

    def get_vault_state(self, user: Address) -> VaultState:
        _, record = self._load(user, None)
        return record

    def get_vault_info(self, user: Address) -> dict:
        """Addresses, bumps and balances of a user's vault"""
        accounts, record = self._load(user, None)
        balance = self.ledger.balance(accounts.vault)
        reserve = self.ledger.minimum_reserve_for(VAULT_SPACE)

        info = accounts.to_dict()
        info.update(record.to_dict())
        info.update({
            'balance': balance,
            'reserve': reserve,
            'available': max(balance - reserve, 0),
            'state_reserve': self.ledger.balance(accounts.vault_state)
        })
        return info

    # Lifecycle operations

    def open(self, caller: Identity) -> dict:
        """Create the caller's vault state record and fund the vault's reserve"""
        user = caller.address
        with self._guard("open", user):
            state_address, state_bump = find_program_address(state_seeds(user), self.program_id)
            vault, vault_bump = find_program_address(vault_seeds(state_address), self.program_id)

            record = VaultState(vault_bump=vault_bump, state_bump=state_bump)
            state_reserve = self.ledger.minimum_reserve_for(VaultState.SPACE)
            vault_reserve = self.ledger.minimum_reserve_for(VAULT_SPACE)

            with self.ledger.transaction([user], self.program_id) as tx:
                if self.ledger.exists(state_address):
                    raise DuplicateVault(f"Vault already exists for {user}")

                tx.create_account(
                    payer=user,
                    address=state_address,
                    lamports=state_reserve,
                    space=VaultState.SPACE,
                    owner=self.program_id,
                    proof=SeedProof.for_state(user, state_bump)
                )
                tx.write_state(state_address, record.serialize())
                tx.transfer(user, vault, vault_reserve)

        accounts = VaultAccounts(user, state_address, vault)
        self._address_book[user] = accounts

        logger.info(f"OPEN {user} | vault {vault} | reserve {vault_reserve} + state {state_reserve}")
        return {
            'success': True,
            'accounts': accounts.to_dict(),
            'vault_bump': vault_bump,
            'state_bump': state_bump,
            'reserve': vault_reserve,
            'state_reserve': state_reserve,
            'vault_balance': self.ledger.balance(vault)
        }

    def deposit(self, caller: Identity, amount: int, accounts: Optional[VaultAccounts] = None) -> dict:
        """Move `amount` from the caller into their vault"""
        user = caller.address
        with self._guard("deposit", user):
            validate_amount(amount)

            with self.ledger.transaction([user], self.program_id) as tx:
                accounts, _ = self._load(user, accounts)
                tx.transfer(user, accounts.vault, amount)

        balance = self.ledger.balance(accounts.vault)
        logger.info(f"DEPOSIT {amount} from {user} | vault balance {balance}")
        return {'success': True, 'amount': amount, 'vault_balance': balance}

    def withdraw(self, caller: Identity, amount: int, accounts: Optional[VaultAccounts] = None) -> dict:
        """Move `amount` out of the caller's vault, keeping the reserve in place"""
        user = caller.address
        with self._guard("withdraw", user):
            validate_amount(amount)

            # balance is read under the transaction so the check and the move see the same vault
            with self.ledger.transaction([user], self.program_id) as tx:
                accounts, record = self._load(user, accounts)

                balance = self.ledger.balance(accounts.vault)
                available = max(balance - self.ledger.minimum_reserve_for(VAULT_SPACE), 0)
                if amount > available:
                    raise InsufficientFunds(f"Withdrawal {amount} exceeds available {available}")

                proof = SeedProof.for_vault(accounts.vault_state, record.vault_bump)
                tx.transfer_with_authority(accounts.vault, user, amount, proof)

        balance = self.ledger.balance(accounts.vault)
        logger.info(f"WITHDRAW {amount} to {user} | vault balance {balance}")
        return {'success': True, 'amount': amount, 'vault_balance': balance}

    def close(self, caller: Identity, accounts: Optional[VaultAccounts] = None) -> dict:
        """Empty the vault to the caller and destroy the state record"""
        user = caller.address
        with self._guard("close", user):
            with self.ledger.transaction([user], self.program_id) as tx:
                accounts, record = self._load(user, accounts)
                vault_balance = self.ledger.balance(accounts.vault)

                proof = SeedProof.for_vault(accounts.vault_state, record.vault_bump)
                if vault_balance:
                    tx.transfer_with_authority(accounts.vault, user, vault_balance, proof)
                state_refund = tx.destroy(accounts.vault_state, refund_to=user)

        logger.info(f"CLOSE {user} | returned {vault_balance} + state reserve {state_refund}")
        return {
            'success': True,
            'vault_returned': vault_balance,
            'state_returned': state_refund,
            'total_returned': vault_balance + state_refund
        }

    # Internals

    def _load(self, user: Address, accounts: Optional[VaultAccounts]) -> Tuple[VaultAccounts, VaultState]:
        """Read the state record and check the presented accounts against it"""
        if accounts is None:
            accounts = self.accounts_for(user)
        if accounts.user != user:
            raise AuthorityMismatch("Presented user is not the caller")

        account = self.ledger.get_account(accounts.vault_state)
        if account is None:
            raise VaultNotFound(f"No vault for {user}")
        if account.owner != self.program_id:
            raise InvalidVaultState(f"{accounts.vault_state} is not owned by this program")
        record = VaultState.deserialize(account.data)

        # verification mode only: the stored bumps make searching unnecessary
        if not SeedProof.for_state(user, record.state_bump).signs_for(accounts.vault_state, self.program_id):
            raise AuthorityMismatch("State record does not derive from the caller")
        if not SeedProof.for_vault(accounts.vault_state, record.vault_bump).signs_for(accounts.vault, self.program_id):
            raise AuthorityMismatch("Vault does not derive from the state record")

        return accounts, record

    @contextmanager
    def _guard(self, operation: str, user: Address):
        """Log rejections and translate ledger errors into vault errors"""
        try:
            yield
        except VaultError as e:
            logger.warning(f"{operation.upper()} rejected for {user}: {e.kind}: {e}")
            raise
        except DerivationError as e:
            logger.warning(f"{operation.upper()} rejected for {user}: derivation failed: {e}")
            raise AuthorityMismatch(str(e)) from e
        except LedgerError as e:
            error = CollaboratorFailure(f"{type(e).__name__}: {e}")
            for ledger_error, vault_error in _LEDGER_ERRORS:
                if isinstance(e, ledger_error):
                    error = vault_error(str(e))
                    break
            logger.warning(f"{operation.upper()} rejected for {user}: {error.kind}: {e}")
            raise error from e
