"""
Ledger records.

Wire forms use camelCase keys; leaf metadata is hashed through its wire
form, so to_dict/from_dict must round-trip exactly.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union

from quillproof.analysis.cadence import EditStats
from quillproof.anchoring.calendar import Timestamp
from quillproof.merkle.tree import ProofStep
from quillproof.protocol.enums import VerificationType
from quillproof.protocol.errors import ValidationError
from quillproof.utils.json import canonical_json
from quillproof.utils.timestamps import now_iso


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_object(data: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError(f"Metadata field '{key}' must be an object")
    return value


# ===========================================================================
# Proof of work
# ===========================================================================


@dataclass
class PowResult:
    """
    Receipt of a proof-of-work search.

    Attributes:
        nonce: First nonce whose hash met the target
        hash: Hex digest of content + nonce
        elapsed_time: Search duration in milliseconds
        difficulty: Required number of leading zero hex digits
    """
    nonce: int
    hash: str
    elapsed_time: float
    difficulty: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nonce": self.nonce,
            "hash": self.hash,
            "elapsedTime": self.elapsed_time,
            "difficulty": self.difficulty,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PowResult":
        try:
            return cls(
                nonce=int(data["nonce"]),
                hash=str(data["hash"]),
                elapsed_time=float(data["elapsedTime"]),
                difficulty=int(data["difficulty"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid powResult: {e}") from e


# ===========================================================================
# Leaf metadata
# ===========================================================================


@dataclass
class LeafMetadata:
    timestamp: float = 0.0
    edit_stats: Optional[EditStats] = None
    pow_result: Optional[PowResult] = None
    is_genesis: Optional[bool] = None
    ots_timestamp: Optional[Timestamp] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "editStats": self.edit_stats.to_dict() if self.edit_stats else None,
            "powResult": self.pow_result.to_dict() if self.pow_result else None,
            "isGenesis": self.is_genesis,
            "otsTimestamp": self.ots_timestamp.to_dict() if self.ots_timestamp else None,
        }

    def with_anchor(self, anchor: Timestamp) -> "LeafMetadata":
        return replace(self, ots_timestamp=anchor)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LeafMetadata":
        if not isinstance(data, dict):
            raise ValidationError("Metadata must be an object")

        timestamp = data.get("timestamp")
        if timestamp is None:
            timestamp = 0.0
        if not _is_number(timestamp):
            raise ValidationError("Metadata field 'timestamp' must be a number")

        is_genesis = data.get("isGenesis")
        if is_genesis is not None and not isinstance(is_genesis, bool):
            raise ValidationError("Metadata field 'isGenesis' must be a boolean")

        edit_stats = _optional_object(data, "editStats")
        pow_result = _optional_object(data, "powResult")
        ots = _optional_object(data, "otsTimestamp")

        try:
            return cls(
                timestamp=float(timestamp),
                edit_stats=EditStats.from_dict(edit_stats) if edit_stats is not None else None,
                pow_result=PowResult.from_dict(pow_result) if pow_result is not None else None,
                is_genesis=is_genesis,
                ots_timestamp=Timestamp.from_dict(ots) if ots is not None else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid metadata: {e}") from e

    @classmethod
    def coerce(cls, value: Union["LeafMetadata", Dict[str, Any], str, None]) -> Optional["LeafMetadata"]:
        """
        Accept metadata as a record, a wire dict, a JSON string or None.

        Records go through their wire form too, so the returned metadata is
        validated and typed exactly as it will be after a reload.
        """
        if value is None:
            return None
        if isinstance(value, LeafMetadata):
            try:
                value = value.to_dict()
            except AttributeError as e:
                raise ValidationError(f"Invalid metadata: {e}") from e
        elif isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError as e:
                raise ValidationError(f"Metadata parse error: {e}") from e
            if value is None:
                return None
        return cls.from_dict(value)


# ===========================================================================
# Results
# ===========================================================================


@dataclass
class InclusionProof:
    proof: List[ProofStep]
    root_hash: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proof": [step.to_dict() for step in self.proof],
            "rootHash": self.root_hash,
        }


@dataclass
class AddLeafResult:
    leaf_hash: str
    proof: List[ProofStep]
    root_hash: Optional[str]
    previous_root_hash: Optional[str]
    leaf_index: int
    consistent: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "leafHash": self.leaf_hash,
            "proof": [step.to_dict() for step in self.proof],
            "rootHash": self.root_hash,
            "previousRootHash": self.previous_root_hash,
            "leafIndex": self.leaf_index,
            "consistent": self.consistent,
        }


@dataclass
class ProofVerification:
    valid: bool
    verification_type: VerificationType
    computed_hash: str
    stored_hash: str
    root_hash: Optional[str]
    timestamp: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "verificationType": self.verification_type.value,
            "computedHash": self.computed_hash,
            "storedHash": self.stored_hash,
            "rootHash": self.root_hash,
            "timestamp": self.timestamp,
            "error": self.error,
        }


@dataclass
class CheckpointStatus:
    total_leaves: int
    checkpoint_interval: int
    next_checkpoint: int
    latest_checkpoint: Optional[int]
    timestamped_leaf_count: int
    checkpoint_count: int = 0
    anchored_checkpoint_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalLeaves": self.total_leaves,
            "checkpointInterval": self.checkpoint_interval,
            "nextCheckpoint": self.next_checkpoint,
            "latestCheckpoint": self.latest_checkpoint,
            "timestampedLeafCount": self.timestamped_leaf_count,
            "checkpointCount": self.checkpoint_count,
            "anchoredCheckpointCount": self.anchored_checkpoint_count,
        }


@dataclass
class CheckpointRecord:
    """
    One anchoring attempt of the tree root.

    Attributes:
        tree_size: Number of leaves when the checkpoint fired
        root_hash: Root that was submitted
        anchor: Calendar response, when the submission succeeded
        error: Failure message, when it did not
        created_at: ISO-8601 creation time
        signature: Base64 Ed25519 signature over compute_signing_data()
        key_id: Signing key identifier
    """
    tree_size: int
    root_hash: str
    anchor: Optional[Timestamp] = None
    error: Optional[str] = None
    created_at: str = field(default_factory=now_iso)
    signature: Optional[str] = None
    key_id: Optional[str] = None

    @property
    def anchored(self) -> bool:
        return self.anchor is not None

    def compute_signing_data(self) -> str:
        return canonical_json({
            "treeSize": self.tree_size,
            "rootHash": self.root_hash,
            "anchor": self.anchor.to_dict() if self.anchor else None,
            "createdAt": self.created_at,
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            "treeSize": self.tree_size,
            "rootHash": self.root_hash,
            "anchor": self.anchor.to_dict() if self.anchor else None,
            "error": self.error,
            "createdAt": self.created_at,
            "signature": self.signature,
            "keyId": self.key_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckpointRecord":
        if not isinstance(data, dict):
            raise ValidationError("Checkpoint must be an object")
        anchor = data.get("anchor")
        try:
            return cls(
                tree_size=int(data["treeSize"]),
                root_hash=str(data["rootHash"]),
                anchor=Timestamp.from_dict(anchor) if anchor is not None else None,
                error=data.get("error"),
                created_at=str(data["createdAt"]),
                signature=data.get("signature"),
                key_id=data.get("keyId"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid checkpoint: {e}") from e
