import unittest
from seedvault.derivation import (
    Address,
    DerivationError,
    InvalidSeeds,
    MAX_SEEDS,
    create_program_address,
    find_program_address,
    is_on_curve,
)
from seedvault.identity import Keypair

PROGRAM_ID = Address(bytes(range(32)))
OTHER_PROGRAM_ID = Address(bytes(range(1, 33)))


class TestDerivation(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.user = Keypair().address
        self.seeds = [b"state", bytes(self.user)]

    def test_find_is_deterministic(self):
        """Same seeds and program id always give the same address and bump"""
        first = find_program_address(self.seeds, PROGRAM_ID)
        second = find_program_address(self.seeds, PROGRAM_ID)
        self.assertEqual(first, second)

    def test_derived_address_is_off_curve(self):
        """No private key can exist for a derived address"""
        address, _ = find_program_address(self.seeds, PROGRAM_ID)
        self.assertFalse(is_on_curve(address.raw))

    def test_user_keys_are_on_curve(self):
        """Ledger-native keys decode as curve points"""
        for _ in range(5):
            self.assertTrue(is_on_curve(Keypair().address.raw))

    def test_verification_mode_matches_search(self):
        """Recomputing with the stored bump reproduces the searched address"""
        address, bump = find_program_address(self.seeds, PROGRAM_ID)
        self.assertEqual(create_program_address(self.seeds + [bytes([bump])], PROGRAM_ID), address)

    def test_search_returns_highest_valid_bump(self):
        """Every bump above the one found lands on the curve"""
        _, bump = find_program_address(self.seeds, PROGRAM_ID)
        for higher in range(bump + 1, 256):
            with self.assertRaises(InvalidSeeds):
                create_program_address(self.seeds + [bytes([higher])], PROGRAM_ID)

    def test_changed_seed_byte_changes_address(self):
        """Flipping any single seed byte gives a different address"""
        address, _ = find_program_address(self.seeds, PROGRAM_ID)
        user_bytes = bytearray(self.user.raw)

        for index in (0, 15, 31):
            mutated = bytearray(user_bytes)
            mutated[index] ^= 0x01
            other, _ = find_program_address([b"state", bytes(mutated)], PROGRAM_ID)
            self.assertNotEqual(other, address)

    def test_tag_and_program_separate_namespaces(self):
        """Tag and program id both feed the hash"""
        state, _ = find_program_address(self.seeds, PROGRAM_ID)
        vault, _ = find_program_address([b"vault", bytes(self.user)], PROGRAM_ID)
        foreign, _ = find_program_address(self.seeds, OTHER_PROGRAM_ID)

        self.assertNotEqual(state, vault)
        self.assertNotEqual(state, foreign)

    def test_seed_limits(self):
        """Oversized seeds and too many seeds are rejected"""
        with self.assertRaises(DerivationError):
            create_program_address([b"x" * 33], PROGRAM_ID)

        with self.assertRaises(DerivationError):
            create_program_address([b"x"] * (MAX_SEEDS + 1), PROGRAM_ID)

    def test_address_validation(self):
        """Addresses are exactly 32 bytes"""
        with self.assertRaises(ValueError):
            Address(b"short")

        with self.assertRaises(ValueError):
            Address.from_hex("not hex")

        address = Address.from_hex("ab" * 32)
        self.assertEqual(address.hex(), "ab" * 32)
        self.assertEqual(bytes(address), b"\xab" * 32)


if __name__ == '__main__':
    unittest.main()
