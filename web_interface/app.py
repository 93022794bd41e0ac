#!/usr/bin/env python3
"""
Web interface for Seed Vault

Every mutating call carries a request payload signed by the user's key.
"""

import logging
import os

from flask import Flask, request, jsonify

from seedvault.config import VaultConfig, configure_logging
from seedvault.derivation import Address
from seedvault.errors import (
    AuthorityMismatch,
    CollaboratorFailure,
    DuplicateVault,
    InsufficientFunds,
    InvalidAmount,
    Unauthorized,
    VaultError,
    VaultNotFound,
)
from seedvault.identity import ReplayGuard, SignedRequest, authenticate
from seedvault.ledger import Ledger
from seedvault.vault import VaultAccounts, VaultController

logger = logging.getLogger("seedvault.web")

STATUS_CODES = {
    Unauthorized: 401,
    VaultNotFound: 404,
    DuplicateVault: 409,
    InvalidAmount: 400,
    InsufficientFunds: 400,
    AuthorityMismatch: 403,
    CollaboratorFailure: 502,
}

ACTIONS = ("open", "deposit", "withdraw", "close")


def presented_accounts(caller, payload: dict):
    """Accounts the client derived itself, if it sent any"""
    data = payload.get('accounts')
    if data is None:
        return None

    try:
        return VaultAccounts(
            user=caller.address,
            vault_state=Address.from_hex(data['vault_state']),
            vault=Address.from_hex(data['vault'])
        )
    except (KeyError, TypeError, ValueError) as e:
        raise AuthorityMismatch(f"Malformed presented accounts: {e}") from e


def error_response(error: VaultError):
    status = 400
    for error_type, code in STATUS_CODES.items():
        if isinstance(error, error_type):
            status = code
            break
    return jsonify({'success': False, 'error': error.kind, 'message': str(error)}), status


def create_app(controller: VaultController = None, allow_airdrop: bool = True) -> Flask:
    """Build the Flask app around a controller (a fresh dev ledger by default)"""
    if controller is None:
        config = VaultConfig.from_env()
        controller = VaultController(Ledger(rent=config.rent), config)

    app = Flask(__name__)
    app.config['CONTROLLER'] = controller
    replay_guard = ReplayGuard(max_age=controller.config.request_max_age)

    @app.route('/api/vault/<action>', methods=['POST'])
    def vault_action(action):
        """Dispatch a signed open/deposit/withdraw/close request"""
        if action not in ACTIONS:
            return jsonify({'success': False, 'error': 'UnknownAction'}), 404

        try:
            signed = SignedRequest.from_dict(request.get_json(silent=True) or {})
            caller = authenticate(signed)

            # the signature must cover the action so it cannot be replayed as another one
            if signed.payload.get('action') != action:
                raise Unauthorized(f"Signed payload is not for '{action}'")
            replay_guard.check(signed)

            if action == 'open':
                result = controller.open(caller)
                return jsonify(result)

            # clients that send their own addresses spare the server any address search
            accounts = presented_accounts(caller, signed.payload)
            if action == 'close':
                result = controller.close(caller, accounts)
            elif action == 'deposit':
                result = controller.deposit(caller, signed.payload.get('amount'), accounts)
            else:
                result = controller.withdraw(caller, signed.payload.get('amount'), accounts)

            return jsonify(result)

        except Unauthorized as e:
            logger.warning(f"Refused {action} request: {e}")
            return error_response(e)
        except VaultError as e:
            return error_response(e)

    @app.route('/api/vault/<pubkey>')
    def get_vault(pubkey):
        """Get vault information"""
        try:
            user = Address.from_hex(pubkey)
        except ValueError as e:
            return jsonify({'success': False, 'error': 'InvalidAddress', 'message': str(e)}), 400

        try:
            return jsonify(controller.get_vault_info(user))
        except VaultError as e:
            return error_response(e)

    @app.route('/api/airdrop', methods=['POST'])
    def airdrop():
        """Credit a development account"""
        if not allow_airdrop:
            return jsonify({'success': False, 'error': 'AirdropDisabled'}), 403

        data = request.get_json(silent=True) or {}
        try:
            user = Address.from_hex(data['pubkey'])
            balance = controller.ledger.airdrop(user, int(data['lamports']))
        except (KeyError, TypeError, ValueError) as e:
            return jsonify({'success': False, 'error': 'InvalidAirdrop', 'message': str(e)}), 400

        return jsonify({'success': True, 'balance': balance})

    return app


if __name__ == "__main__":
    configure_logging(os.environ.get("SEEDVAULT_LOG_LEVEL", "INFO"))
    port = int(os.environ.get("PORT", 10000))
    create_app().run(
        host="0.0.0.0",
        port=port,
        debug=False
    )
