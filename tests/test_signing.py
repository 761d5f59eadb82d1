"""
Tests for checkpoint signing and offline verification.
"""

import hashlib

import pytest

from quillproof.anchoring import Timestamp
from quillproof.ledger import CheckpointRecord, CheckpointSigner, CheckpointVerifier


@pytest.fixture
def signer():
    return CheckpointSigner.generate()


@pytest.fixture
def verifier(signer):
    v = CheckpointVerifier()
    v.add_from_signer(signer)
    return v


def _record():
    return CheckpointRecord(
        tree_size=100,
        root_hash="ab" * 32,
        anchor=Timestamp(digest="ab" * 32, timestamp="ots"),
        created_at="2026-01-01T00:00:00+00:00",
    )


class TestSigner:
    def test_key_id_derived_from_public_key(self, signer):
        assert signer.key_id == hashlib.sha256(signer.public_key_bytes).hexdigest()[:16]

    def test_sign_checkpoint_in_place(self, signer):
        record = _record()
        returned = signer.sign_checkpoint(record)

        assert returned is record
        assert record.signature
        assert record.key_id == signer.key_id

    def test_from_private_bytes_same_key(self, signer):
        raw = signer._private_key.private_bytes_raw()
        assert CheckpointSigner.from_private_bytes(raw).key_id == signer.key_id

    def test_from_pem_file(self, signer, tmp_path):
        from cryptography.hazmat.primitives import serialization

        pem = signer._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        path = tmp_path / "key.pem"
        path.write_bytes(pem)

        assert CheckpointSigner.from_pem_file(str(path)).key_id == signer.key_id


class TestVerifier:
    def test_valid_signature(self, signer, verifier):
        record = signer.sign_checkpoint(_record())
        assert verifier.verify_checkpoint(record)

    def test_tampered_record(self, signer, verifier):
        record = signer.sign_checkpoint(_record())
        record.root_hash = "cd" * 32
        assert not verifier.verify_checkpoint(record)

    def test_error_field_not_signed(self, signer, verifier):
        record = signer.sign_checkpoint(_record())
        record.error = "annotated later"
        assert verifier.verify_checkpoint(record)

    def test_unknown_key(self, signer):
        record = signer.sign_checkpoint(_record())
        assert not CheckpointVerifier().verify_checkpoint(record)

    def test_unsigned_record(self, verifier):
        assert not verifier.verify_checkpoint(_record())

    def test_malformed_signature(self, signer, verifier):
        record = signer.sign_checkpoint(_record())
        record.signature = "***"
        assert not verifier.verify_checkpoint(record)

    def test_public_pem_registration(self, signer):
        verifier = CheckpointVerifier()
        key_id = verifier.add_public_key_pem(signer.export_public_pem())

        assert key_id == signer.key_id
        assert verifier.has_key(signer.key_id)
        assert verifier.key_ids == [signer.key_id]
        assert verifier.verify_checkpoint(signer.sign_checkpoint(_record()))
