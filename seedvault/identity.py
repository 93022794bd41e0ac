"""
Caller identity: Ed25519 keypairs and signed request verification
"""

import json
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from .derivation import Address
from .errors import Unauthorized


def canonical_payload(payload: Dict[str, Any]) -> bytes:
    """Bytes that get signed for a request payload"""
    return json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()


@dataclass(frozen=True)
class Identity:
    """A caller whose control of `address` has been verified"""
    address: Address


@dataclass
class SignedRequest:
    """Request payload signed by the claimed user key"""
    pubkey: str  # hex
    payload: Dict[str, Any] = field(default_factory=dict)
    signature: str = ""  # hex

    def to_dict(self) -> dict:
        return {"pubkey": self.pubkey, "payload": self.payload, "signature": self.signature}

    @classmethod
    def from_dict(cls, data: dict) -> 'SignedRequest':
        try:
            signed = cls(pubkey=data["pubkey"], payload=data.get("payload") or {}, signature=data["signature"])
        except (AttributeError, KeyError, TypeError) as e:
            raise Unauthorized(f"Malformed signed request: {e}") from e

        if not isinstance(signed.payload, dict):
            raise Unauthorized("Payload must be an object")
        return signed


class Keypair:
    """Ed25519 key pair for a ledger user"""

    def __init__(self, private_key: Optional[bytes] = None):
        if private_key:
            self._private_key = Ed25519PrivateKey.from_private_bytes(private_key)
        else:
            self._private_key = Ed25519PrivateKey.generate()

        public_bytes = self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        )
        self.address = Address(public_bytes)

    def private_key_hex(self) -> str:
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption()
        ).hex()

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)

    def sign_request(self, payload: Dict[str, Any]) -> SignedRequest:
        """Stamp a payload with a nonce and timestamp, sign it and wrap it for submission"""
        payload = dict(payload)
        payload.setdefault("nonce", uuid.uuid4().hex)
        payload.setdefault("timestamp", int(time.time()))
        signature = self.sign(canonical_payload(payload))
        return SignedRequest(pubkey=self.address.hex(), payload=payload, signature=signature.hex())


def authenticate(request: SignedRequest) -> Identity:
    """Verify a signed request and return the caller identity"""
    try:
        address = Address.from_hex(request.pubkey)
        signature = bytes.fromhex(request.signature)
    except (TypeError, ValueError) as e:
        raise Unauthorized(f"Malformed credentials: {e}") from e

    try:
        public_key = Ed25519PublicKey.from_public_bytes(address.raw)
        public_key.verify(signature, canonical_payload(request.payload))
    except (InvalidSignature, ValueError) as e:
        raise Unauthorized("Signature verification failed") from e

    return Identity(address=address)


class ReplayGuard:
    """
    Reject signed requests that are stale or have been seen before.

    A request is accepted once, and only while its timestamp is within
    `max_age` seconds of now. Seen nonces are kept until the request would
    have expired anyway.
    """

    def __init__(self, max_age: int = 300):
        self.max_age = max_age
        self._seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def check(self, request: SignedRequest, now: Optional[float] = None):
        now = time.time() if now is None else now
        nonce = request.payload.get("nonce")
        timestamp = request.payload.get("timestamp")

        if not isinstance(nonce, str) or not nonce:
            raise Unauthorized("Signed payload has no nonce")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise Unauthorized("Signed payload has no timestamp")
        if abs(now - timestamp) > self.max_age:
            raise Unauthorized("Signed request has expired")

        key = f"{request.pubkey}:{nonce}"
        with self._lock:
            self._seen = {k: expiry for k, expiry in self._seen.items() if expiry >= now}
            if key in self._seen:
                raise Unauthorized("Signed request was already used")
            self._seen[key] = timestamp + self.max_age
