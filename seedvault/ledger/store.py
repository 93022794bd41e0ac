"""
In-memory ledger: account store, transfer primitive and reserve oracle

Each transaction is all-or-nothing. State is snapshotted when the
transaction opens and restored if anything inside it raises, including the
rent check performed at commit.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, Optional, Set

from ..derivation import Address
from .accounts import SYSTEM_PROGRAM_ID, Account, Rent
from .errors import (
    AccountAlreadyInUse,
    AccountDataSizeMismatch,
    AccountNotFound,
    IllegalOwner,
    InsufficientLamports,
    MissingRequiredSignature,
    RentStateViolation,
    TransactionClosed,
)

logger = logging.getLogger("seedvault.ledger")


class Ledger:
    """Account-based ledger holding native lamport balances"""

    def __init__(self, rent: Optional[Rent] = None):
        self.rent = rent or Rent()
        self._accounts: Dict[Address, Account] = {}
        self._lock = threading.RLock()

    def get_account(self, address: Address) -> Optional[Account]:
        """Copy of the account at `address`, or None"""
        with self._lock:
            account = self._accounts.get(address)
            return account.copy() if account else None

    def exists(self, address: Address) -> bool:
        with self._lock:
            return address in self._accounts

    def balance(self, address: Address) -> int:
        with self._lock:
            account = self._accounts.get(address)
            return account.lamports if account else 0

    def read_state(self, address: Address) -> bytes:
        with self._lock:
            account = self._accounts.get(address)
            if account is None:
                raise AccountNotFound(f"No account at {address}")
            return bytes(account.data)

    def minimum_reserve_for(self, size: int) -> int:
        return self.rent.minimum_balance(size)

    def airdrop(self, address: Address, lamports: int) -> int:
        """Mint lamports into a system account (development ledgers only)"""
        if lamports <= 0:
            raise ValueError("Airdrop amount must be positive")
        with self._lock:
            account = self._accounts.setdefault(address, Account())
            account.lamports += lamports
            logger.info(f"Airdropped {lamports} lamports to {address}")
            return account.lamports

    @contextmanager
    def transaction(self, signers: Iterable[Address], program_id: Address = SYSTEM_PROGRAM_ID) -> Iterator['Transaction']:
        """Run a block of account mutations atomically"""
        with self._lock:
            snapshot = {addr: acc.copy() for addr, acc in self._accounts.items()}
            tx = Transaction(self, signers, program_id)
            try:
                yield tx
                tx._commit()
            except BaseException:
                self._accounts = snapshot
                logger.debug("Transaction rolled back")
                raise
            finally:
                tx._closed = True


class Transaction:
    """Mutation handle for a single ledger transaction"""

    def __init__(self, ledger: Ledger, signers: Iterable[Address], program_id: Address):
        self._ledger = ledger
        self.signers: Set[Address] = set(signers)
        self.program_id = program_id
        self._debited: Set[Address] = set()
        self._closed = False

    def _accounts(self) -> Dict[Address, Account]:
        if self._closed:
            raise TransactionClosed("Transaction already finished")
        return self._ledger._accounts

    def _check_amount(self, amount: int):
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValueError(f"Invalid lamport amount {amount!r}")

    def _move(self, source: Address, dest: Address, amount: int):
        accounts = self._accounts()
        src = accounts.get(source)
        if src is None:
            raise AccountNotFound(f"No account at {source}")
        if not src.is_system_account():
            raise IllegalOwner(f"Transfer source {source} is not a plain system account")
        if src.lamports < amount:
            raise InsufficientLamports(f"{source} has {src.lamports}, needs {amount}")

        src.lamports -= amount
        accounts.setdefault(dest, Account()).lamports += amount
        self._debited.add(source)

    def transfer(self, source: Address, dest: Address, amount: int):
        """Move lamports out of an account that signed the transaction"""
        self._check_amount(amount)
        if source not in self.signers:
            raise MissingRequiredSignature(f"{source} did not sign")
        self._move(source, dest, amount)
        logger.debug(f"transfer {amount} {source} -> {dest}")

    def transfer_with_authority(self, source: Address, dest: Address, amount: int, proof) -> None:
        """Move lamports out of a derived account the invoking program signs for"""
        self._check_amount(amount)
        if not proof.signs_for(source, self.program_id):
            raise MissingRequiredSignature(f"Seed proof does not sign for {source}")
        self._move(source, dest, amount)
        logger.debug(f"signed transfer {amount} {source} -> {dest}")

    def create_account(self, payer: Address, address: Address, lamports: int, space: int,
                       owner: Address, proof=None) -> Account:
        """Fund and allocate a new account, assigning it to `owner`"""
        self._check_amount(lamports)
        if payer not in self.signers:
            raise MissingRequiredSignature(f"Payer {payer} did not sign")
        if address not in self.signers and not (proof and proof.signs_for(address, self.program_id)):
            raise MissingRequiredSignature(f"New account {address} is not signed for")

        accounts = self._accounts()
        if address in accounts:
            raise AccountAlreadyInUse(f"Account {address} already exists")

        self._move(payer, address, lamports)
        account = accounts[address]
        account.data = bytes(space)
        account.owner = owner
        logger.debug(f"created {address} ({space} bytes, owner {owner})")
        return account.copy()

    def write_state(self, address: Address, data: bytes):
        """Overwrite an owned account's data; size is fixed at creation"""
        account = self._owned(address)
        if len(data) != len(account.data):
            raise AccountDataSizeMismatch(f"Expected {len(account.data)} bytes, got {len(data)}")
        account.data = bytes(data)

    def destroy(self, address: Address, refund_to: Address) -> int:
        """Delete an owned account, refunding its lamports"""
        account = self._owned(address)
        accounts = self._accounts()
        refund = account.lamports
        del accounts[address]
        accounts.setdefault(refund_to, Account()).lamports += refund
        logger.debug(f"destroyed {address} refunding {refund} to {refund_to}")
        return refund

    def _owned(self, address: Address) -> Account:
        account = self._accounts().get(address)
        if account is None:
            raise AccountNotFound(f"No account at {address}")
        if account.owner != self.program_id:
            raise IllegalOwner(f"{address} is not owned by the invoking program")
        return account

    def _commit(self):
        accounts = self._accounts()
        rent = self._ledger.rent
        for address in self._debited:
            account = accounts.get(address)
            if account is None:
                continue
            if account.lamports == 0 and account.is_system_account():
                # emptied plain accounts are reclaimed
                del accounts[address]
                continue
            if not rent.is_exempt(account.lamports, len(account.data)):
                raise RentStateViolation(
                    f"{address} left with {account.lamports}, "
                    f"minimum is {rent.minimum_balance(len(account.data))}"
                )
