"""
Checkpoint signing.

Ed25519 signatures over checkpoint records, so an exported anchoring
history can be checked offline against the operator's public key.

- Key IDs are the first 16 hex chars of SHA-256 over the raw public key
- Signatures are stored base64-encoded on the record
"""

from __future__ import annotations

import base64
import hashlib
from typing import Dict, List, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from quillproof.ledger.models import CheckpointRecord


def _raw_public_bytes(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def key_id_for(public_key: Ed25519PublicKey) -> str:
    return hashlib.sha256(_raw_public_bytes(public_key)).hexdigest()[:16]


class CheckpointSigner:
    """
    Ed25519 signer for checkpoint records.

    Usage:
        signer = CheckpointSigner.from_pem_file("/path/to/key.pem")
        tree = ProvenanceTree(calendar, signer=signer)

        # tests
        signer = CheckpointSigner.generate()
    """

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self._key_id = key_id_for(self._public_key)

    @property
    def key_id(self) -> str:
        return self._key_id

    @property
    def public_key_bytes(self) -> bytes:
        return _raw_public_bytes(self._public_key)

    def sign(self, data: bytes) -> bytes:
        return self._private_key.sign(data)

    def sign_checkpoint(self, record: CheckpointRecord) -> CheckpointRecord:
        """Attach signature and key id to `record` (in place) and return it."""
        signature = self.sign(record.compute_signing_data().encode("utf-8"))
        record.signature = base64.b64encode(signature).decode("ascii")
        record.key_id = self._key_id
        return record

    @classmethod
    def generate(cls) -> "CheckpointSigner":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_private_bytes(cls, key_bytes: bytes) -> "CheckpointSigner":
        return cls(Ed25519PrivateKey.from_private_bytes(key_bytes))

    @classmethod
    def from_pem_file(cls, path: str, password: Optional[bytes] = None) -> "CheckpointSigner":
        with open(path, "rb") as f:
            private_key = serialization.load_pem_private_key(f.read(), password=password)
        if not isinstance(private_key, Ed25519PrivateKey):
            raise TypeError(f"Expected Ed25519 private key, got {type(private_key)}")
        return cls(private_key)

    def export_public_pem(self) -> bytes:
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )


class CheckpointVerifier:
    """
    Offline verifier; public keys must be registered up front.

    Usage:
        verifier = CheckpointVerifier()
        verifier.add_from_signer(signer)
        assert verifier.verify_checkpoint(tree.checkpoints[-1])
    """

    def __init__(self):
        self._public_keys: Dict[str, Ed25519PublicKey] = {}

    def add_public_key(self, key_id: str, public_key_bytes: bytes) -> None:
        self._public_keys[key_id] = Ed25519PublicKey.from_public_bytes(public_key_bytes)

    def add_public_key_pem(self, pem_data: bytes, key_id: Optional[str] = None) -> str:
        """Register a PEM public key; the key id is derived from it unless given."""
        public_key = serialization.load_pem_public_key(pem_data)
        if not isinstance(public_key, Ed25519PublicKey):
            raise TypeError(f"Expected Ed25519 public key, got {type(public_key)}")
        key_id = key_id or key_id_for(public_key)
        self._public_keys[key_id] = public_key
        return key_id

    def add_from_signer(self, signer: CheckpointSigner) -> None:
        self.add_public_key(signer.key_id, signer.public_key_bytes)

    def has_key(self, key_id: str) -> bool:
        return key_id in self._public_keys

    @property
    def key_ids(self) -> List[str]:
        return list(self._public_keys.keys())

    def verify(self, data: bytes, signature: bytes, key_id: str) -> bool:
        """False when the key is unknown or the signature does not match."""
        public_key = self._public_keys.get(key_id)
        if public_key is None:
            return False
        try:
            public_key.verify(signature, data)
            return True
        except InvalidSignature:
            return False

    def verify_checkpoint(self, record: CheckpointRecord) -> bool:
        if not record.signature or not record.key_id:
            return False
        try:
            signature = base64.b64decode(record.signature, validate=True)
        except ValueError:
            return False
        return self.verify(record.compute_signing_data().encode("utf-8"), signature, record.key_id)
