#!/usr/bin/env python3
"""
Complete demo of the Seed Vault lifecycle
"""

from seedvault.config import VaultConfig, configure_logging
from seedvault.errors import AuthorityMismatch, DuplicateVault, InsufficientFunds, VaultNotFound
from seedvault.identity import Keypair, authenticate
from seedvault.ledger import Ledger
from seedvault.state import VaultState
from seedvault.vault import VaultController

LAMPORTS_PER_SOL = 1_000_000_000


def main():
    config = VaultConfig.from_env()
    configure_logging(config.log_level)

    print("=" * 60)
    print("🏦 SEED VAULT - COMPLETE DEMO")
    print("=" * 60)
    print()

    # Step 1: Setup
    print("🔧 STEP 1: Funding Alice on a fresh ledger")
    print("-" * 40)

    ledger = Ledger(rent=config.rent)
    controller = VaultController(ledger, config)
    alice = Keypair()
    ledger.airdrop(alice.address, 2 * LAMPORTS_PER_SOL)
    caller = authenticate(alice.sign_request({'action': 'login'}))

    print(f"✅ Alice: {alice.address.hex()[:16]}...")
    print(f"✅ Balance: {ledger.balance(alice.address):,} lamports")
    print(f"✅ Program id: {controller.program_id.hex()[:16]}...")
    print()

    # Step 2: Open
    print("🏗️  STEP 2: Opening Alice's vault")
    print("-" * 40)

    opened = controller.open(caller)
    print(f"✅ Vault: {opened['accounts']['vault'][:16]}... (bump {opened['vault_bump']})")
    print(f"✅ State: {opened['accounts']['vault_state'][:16]}... (bump {opened['state_bump']})")
    print(f"✅ Vault reserve: {opened['reserve']:,} lamports")
    print(f"✅ State reserve: {opened['state_reserve']:,} lamports")

    try:
        controller.open(caller)
        print("   ❌ UNEXPECTED: Second open should have failed")
    except DuplicateVault as e:
        print(f"   ✅ EXPECTED FAILURE: {e}")
    print()

    # Step 3: Deposit and withdraw
    print("💰 STEP 3: Deposit then withdraw 1000 lamports")
    print("-" * 40)

    result = controller.deposit(caller, 1000)
    print(f"✅ Deposited 1000 | vault balance {result['vault_balance']:,}")

    result = controller.withdraw(caller, 1000)
    print(f"✅ Withdrew 1000 | vault balance {result['vault_balance']:,}")

    try:
        controller.withdraw(caller, 1)
        print("   ❌ UNEXPECTED: Withdrawal below reserve should have failed")
    except InsufficientFunds as e:
        print(f"   ✅ EXPECTED FAILURE: {e}")
    print()

    # Step 4: Tampered bump
    print("🔐 STEP 4: Authority check with a tampered vault bump")
    print("-" * 40)

    accounts = controller.accounts_for(alice.address)
    original = controller.get_vault_state(alice.address)
    tampered = VaultState(vault_bump=(original.vault_bump - 1) % 256, state_bump=original.state_bump)

    with ledger.transaction([], controller.program_id) as tx:
        tx.write_state(accounts.vault_state, tampered.serialize())
    try:
        controller.withdraw(caller, 1)
        print("   ❌ UNEXPECTED: Tampered bump should have failed")
    except AuthorityMismatch as e:
        print(f"   ✅ EXPECTED FAILURE: {e}")

    with ledger.transaction([], controller.program_id) as tx:
        tx.write_state(accounts.vault_state, original.serialize())
    print("✅ Original record restored")
    print()

    # Step 5: Close
    print("🔒 STEP 5: Closing the vault")
    print("-" * 40)

    before = ledger.balance(alice.address)
    closed = controller.close(caller)
    print(f"✅ Returned {closed['vault_returned']:,} (vault) + {closed['state_returned']:,} (state)")
    print(f"✅ Alice balance: {before:,} -> {ledger.balance(alice.address):,}")
    print(f"✅ Vault exists: {ledger.exists(accounts.vault)}")
    print(f"✅ State exists: {ledger.exists(accounts.vault_state)}")

    try:
        controller.deposit(caller, 1000)
        print("   ❌ UNEXPECTED: Deposit after close should have failed")
    except VaultNotFound as e:
        print(f"   ✅ EXPECTED FAILURE: {e}")

    print()
    print("🎯 Demo completed successfully!")


if __name__ == "__main__":
    main()
