"""
Provenance hash tree primitives.

Provides:
- SHA-256 hashing over canonical JSON
- Leaf and internal nodes (parents own their two children)
- Full level construction with odd-node self-duplication
- Inclusion proof generation and folding
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from quillproof.delta.operations import Batch, parse_batch
from quillproof.protocol.enums import ProofPosition
from quillproof.protocol.errors import ValidationError
from quillproof.utils.json import canonical_json


# ===========================================================================
# Hash Functions
# ===========================================================================


def compute_hash(data: str) -> str:
    """Lowercase hex SHA-256 of the UTF-8 bytes of `data`."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def hash_value(value: Any) -> str:
    return compute_hash(canonical_json(value))


def leaf_content(batch: Optional[Batch], metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "delta": batch.to_dict() if batch is not None else None,
        "metadata": metadata,
    }


def hash_leaf(batch: Optional[Batch], metadata: Optional[Dict[str, Any]]) -> str:
    return hash_value(leaf_content(batch, metadata))


def hash_internal(left: str, right: str) -> str:
    return hash_value({"left": left, "right": right})


# ===========================================================================
# Nodes
# ===========================================================================


@dataclass
class ProvenanceNode:
    """
    A node of the provenance tree.

    Attributes:
        hash: Hex digest of this node
        batch: Edit batch (leaves only)
        metadata: Leaf metadata, or an anchor record on a checkpointed root
        left: Left child (internal nodes only)
        right: Right child (internal nodes only)
    """
    hash: str
    batch: Optional[Batch] = None
    metadata: Optional[Any] = None
    left: Optional["ProvenanceNode"] = None
    right: Optional["ProvenanceNode"] = None

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def metadata_dict(self) -> Optional[Dict[str, Any]]:
        if self.metadata is None:
            return None
        return self.metadata.to_dict()

    def content(self) -> Dict[str, Any]:
        """The value a leaf hash is computed over."""
        return leaf_content(self.batch, self.metadata_dict())

    def recompute_hash(self) -> str:
        return hash_value(self.content())

    def to_dict(self) -> Dict[str, Any]:
        # Children are never serialized; levels carry the structure.
        return {
            "hash": self.hash,
            "delta": self.batch.to_dict() if self.batch is not None else None,
            "metadata": self.metadata_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProvenanceNode":
        from quillproof.ledger.models import LeafMetadata

        if not isinstance(data, dict) or not isinstance(data.get("hash"), str):
            raise ValidationError("Node must be an object with a string 'hash'")
        delta = data.get("delta")
        metadata = data.get("metadata")
        return cls(
            hash=data["hash"],
            batch=parse_batch(delta) if delta is not None else None,
            metadata=LeafMetadata.from_dict(metadata) if metadata is not None else None,
        )


# ===========================================================================
# Proofs
# ===========================================================================


@dataclass
class ProofStep:
    sibling_hash: str
    position: ProofPosition

    def to_dict(self) -> Dict[str, Any]:
        return {"siblingHash": self.sibling_hash, "position": self.position.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProofStep":
        return cls(sibling_hash=data["siblingHash"], position=ProofPosition(data["position"]))


def build_levels(leaves: Sequence[ProvenanceNode]) -> List[List[ProvenanceNode]]:
    """
    Pair nodes bottom-up until one remains.

    Level 0 is the leaf list itself. An odd trailing node is paired with
    itself. Returns [] for no leaves.
    """
    if not leaves:
        return []

    current_level = list(leaves)
    levels = [current_level]

    while len(current_level) > 1:
        next_level: List[ProvenanceNode] = []
        for i in range(0, len(current_level), 2):
            left = current_level[i]
            right = current_level[i + 1] if i + 1 < len(current_level) else left
            next_level.append(
                ProvenanceNode(
                    hash=hash_internal(left.hash, right.hash),
                    left=left,
                    right=right,
                )
            )
        levels.append(next_level)
        current_level = next_level

    return levels


def compute_root(leaf_hashes: Sequence[str]) -> Optional[str]:
    """Pairwise reduction of leaf hashes, without materializing nodes."""
    if not leaf_hashes:
        return None

    current_level = list(leaf_hashes)
    while len(current_level) > 1:
        next_level: List[str] = []
        for i in range(0, len(current_level), 2):
            left = current_level[i]
            right = current_level[i + 1] if i + 1 < len(current_level) else left
            next_level.append(hash_internal(left, right))
        current_level = next_level
    return current_level[0]


def proof_from_levels(levels: Sequence[Sequence[ProvenanceNode]], index: int) -> List[ProofStep]:
    proof: List[ProofStep] = []
    current_index = index

    for level in levels:
        if len(level) <= 1:
            break

        if current_index % 2 == 0:
            sibling_index = current_index + 1
            position = ProofPosition.RIGHT
        else:
            sibling_index = current_index - 1
            position = ProofPosition.LEFT

        if sibling_index >= len(level):
            sibling_index = current_index  # duplicated self

        proof.append(ProofStep(sibling_hash=level[sibling_index].hash, position=position))
        current_index //= 2

    return proof


def fold_proof(leaf_hash: str, proof: Sequence[ProofStep]) -> str:
    """Re-derive a root from a leaf hash and its sibling path."""
    current_hash = leaf_hash
    for step in proof:
        if step.position == ProofPosition.LEFT:
            current_hash = hash_internal(step.sibling_hash, current_hash)
        else:
            current_hash = hash_internal(current_hash, step.sibling_hash)
    return current_hash
