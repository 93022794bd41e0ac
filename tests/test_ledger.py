import unittest
from seedvault.authority import SeedProof, state_seeds
from seedvault.derivation import Address, find_program_address
from seedvault.identity import Keypair
from seedvault.ledger import Ledger, Rent, SYSTEM_PROGRAM_ID
from seedvault.ledger.errors import (
    AccountAlreadyInUse,
    AccountDataSizeMismatch,
    IllegalOwner,
    InsufficientLamports,
    MissingRequiredSignature,
    RentStateViolation,
    TransactionClosed,
)

PROGRAM_ID = Address(bytes(range(32)))


class TestRent(unittest.TestCase):

    def test_minimum_balance(self):
        """Default parameters charge 128 bytes of overhead at 6960 per byte"""
        rent = Rent()
        self.assertEqual(rent.minimum_balance(0), 890_880)
        self.assertEqual(rent.minimum_balance(10), 960_480)
        self.assertTrue(rent.is_exempt(890_880, 0))
        self.assertFalse(rent.is_exempt(890_879, 0))


class TestLedger(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.ledger = Ledger()
        self.alice = Keypair().address
        self.bob = Keypair().address
        self.ledger.airdrop(self.alice, 10_000_000)

    def test_transfer_requires_signature(self):
        """Only a transaction signer can send from a plain account"""
        with self.assertRaises(MissingRequiredSignature):
            with self.ledger.transaction([self.bob]) as tx:
                tx.transfer(self.alice, self.bob, 1_000_000)

        self.assertEqual(self.ledger.balance(self.alice), 10_000_000)

    def test_transfer_moves_lamports(self):
        """Transfer debits source and credits (or creates) destination"""
        with self.ledger.transaction([self.alice]) as tx:
            tx.transfer(self.alice, self.bob, 1_000_000)

        self.assertEqual(self.ledger.balance(self.alice), 9_000_000)
        self.assertEqual(self.ledger.balance(self.bob), 1_000_000)

    def test_insufficient_lamports(self):
        """Cannot send more than the balance"""
        with self.assertRaises(InsufficientLamports):
            with self.ledger.transaction([self.alice]) as tx:
                tx.transfer(self.alice, self.bob, 10_000_001)

    def test_rollback_on_error(self):
        """A failure later in the transaction undoes earlier steps"""
        with self.assertRaises(InsufficientLamports):
            with self.ledger.transaction([self.alice]) as tx:
                tx.transfer(self.alice, self.bob, 5_000_000)
                tx.transfer(self.alice, self.bob, 6_000_000)

        self.assertEqual(self.ledger.balance(self.alice), 10_000_000)
        self.assertFalse(self.ledger.exists(self.bob))

    def test_rent_state_checked_at_commit(self):
        """A debited account may not end between zero and its reserve"""
        with self.assertRaises(RentStateViolation):
            with self.ledger.transaction([self.alice]) as tx:
                tx.transfer(self.alice, self.bob, 9_500_000)

        self.assertEqual(self.ledger.balance(self.alice), 10_000_000)

    def test_emptied_account_reclaimed(self):
        """Sending the whole balance removes the account"""
        with self.ledger.transaction([self.alice]) as tx:
            tx.transfer(self.alice, self.bob, 10_000_000)

        self.assertFalse(self.ledger.exists(self.alice))
        self.assertEqual(self.ledger.balance(self.bob), 10_000_000)

    def test_derived_account_lifecycle(self):
        """Create, write, and destroy a program-owned derived account"""
        state, bump = find_program_address(state_seeds(self.alice), PROGRAM_ID)
        proof = SeedProof.for_state(self.alice, bump)

        with self.assertRaises(MissingRequiredSignature):
            with self.ledger.transaction([self.alice], PROGRAM_ID) as tx:
                tx.create_account(self.alice, state, 960_480, 10, PROGRAM_ID)

        with self.ledger.transaction([self.alice], PROGRAM_ID) as tx:
            tx.create_account(self.alice, state, 960_480, 10, PROGRAM_ID, proof=proof)
            tx.write_state(state, b"\x01" * 10)

        self.assertEqual(self.ledger.read_state(state), b"\x01" * 10)
        self.assertEqual(self.ledger.get_account(state).owner, PROGRAM_ID)

        with self.assertRaises(AccountAlreadyInUse):
            with self.ledger.transaction([self.alice], PROGRAM_ID) as tx:
                tx.create_account(self.alice, state, 960_480, 10, PROGRAM_ID, proof=proof)

        with self.assertRaises(AccountDataSizeMismatch):
            with self.ledger.transaction([], PROGRAM_ID) as tx:
                tx.write_state(state, b"\x01" * 11)

        before = self.ledger.balance(self.alice)
        with self.ledger.transaction([], PROGRAM_ID) as tx:
            refund = tx.destroy(state, refund_to=self.alice)

        self.assertEqual(refund, 960_480)
        self.assertEqual(self.ledger.balance(self.alice), before + 960_480)
        self.assertFalse(self.ledger.exists(state))

    def test_only_owner_program_writes(self):
        """Another program cannot write or destroy the account"""
        state, bump = find_program_address(state_seeds(self.alice), PROGRAM_ID)
        with self.ledger.transaction([self.alice], PROGRAM_ID) as tx:
            tx.create_account(self.alice, state, 960_480, 10, PROGRAM_ID,
                              proof=SeedProof.for_state(self.alice, bump))

        with self.assertRaises(IllegalOwner):
            with self.ledger.transaction([], SYSTEM_PROGRAM_ID) as tx:
                tx.write_state(state, b"\x00" * 10)

        with self.assertRaises(IllegalOwner):
            with self.ledger.transaction([], SYSTEM_PROGRAM_ID) as tx:
                tx.destroy(state, refund_to=self.bob)

    def test_program_owned_account_cannot_be_transfer_source(self):
        """Data-carrying accounts are not moved by the transfer primitive"""
        state, bump = find_program_address(state_seeds(self.alice), PROGRAM_ID)
        proof = SeedProof.for_state(self.alice, bump)
        with self.ledger.transaction([self.alice], PROGRAM_ID) as tx:
            tx.create_account(self.alice, state, 960_480, 10, PROGRAM_ID, proof=proof)

        with self.assertRaises(IllegalOwner):
            with self.ledger.transaction([], PROGRAM_ID) as tx:
                tx.transfer_with_authority(state, self.alice, 1, proof)

    def test_transaction_handle_expires(self):
        """The handle cannot be used after the block exits"""
        with self.ledger.transaction([self.alice]) as tx:
            pass

        with self.assertRaises(TransactionClosed):
            tx.transfer(self.alice, self.bob, 1)


if __name__ == '__main__':
    unittest.main()
