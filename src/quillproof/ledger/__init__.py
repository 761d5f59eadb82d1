"""
Provenance ledger: the hash tree, its records, proof-of-work and checkpoint signing.
"""

from quillproof.ledger.models import (
    AddLeafResult,
    CheckpointRecord,
    CheckpointStatus,
    InclusionProof,
    LeafMetadata,
    PowResult,
    ProofVerification,
)
from quillproof.ledger.pow import DifficultyController, proof_of_work, verify_pow
from quillproof.ledger.provenance import CHECKPOINT_INTERVAL, ProvenanceTree
from quillproof.ledger.signing import CheckpointSigner, CheckpointVerifier

__all__ = [
    "AddLeafResult",
    "CheckpointRecord",
    "CheckpointStatus",
    "InclusionProof",
    "LeafMetadata",
    "PowResult",
    "ProofVerification",
    "DifficultyController",
    "proof_of_work",
    "verify_pow",
    "CHECKPOINT_INTERVAL",
    "ProvenanceTree",
    "CheckpointSigner",
    "CheckpointVerifier",
]
