"""
Hash tree primitives for the provenance ledger.
"""

from quillproof.merkle.tree import (
    ProofStep,
    ProvenanceNode,
    build_levels,
    compute_hash,
    compute_root,
    fold_proof,
    hash_internal,
    hash_leaf,
    hash_value,
    proof_from_levels,
)

__all__ = [
    "ProofStep",
    "ProvenanceNode",
    "build_levels",
    "compute_hash",
    "compute_root",
    "fold_proof",
    "hash_internal",
    "hash_leaf",
    "hash_value",
    "proof_from_levels",
]
