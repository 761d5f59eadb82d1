"""
Provenance tree.

Append-only hash tree over edit batches:

- every accepted edit becomes a leaf (hash over {"delta", "metadata"})
- the document snapshot is the compose of all leaf batches
- levels and root are rebuilt from the leaves after every append
- every `checkpoint_interval` leaves the root is anchored with a calendar

Leaf indexes are stable; leaves are never modified or removed.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Union

from quillproof.anchoring.calendar import AnchorClient, Timestamp
from quillproof.delta.compose import compose, compose_all
from quillproof.delta.operations import Batch, parse_batch
from quillproof.ledger.models import (
    AddLeafResult,
    CheckpointRecord,
    CheckpointStatus,
    InclusionProof,
    LeafMetadata,
    ProofVerification,
)
from quillproof.ledger.signing import CheckpointSigner
from quillproof.merkle.tree import (
    ProofStep,
    ProvenanceNode,
    build_levels,
    compute_hash,
    compute_root,
    fold_proof,
    hash_leaf,
    proof_from_levels,
)
from quillproof.protocol.enums import VerificationType
from quillproof.protocol.errors import ConsistencyError, LeafIndexError, ValidationError
from quillproof.protocol.validators import validate_batch
from quillproof.utils.timestamps import now_ms

logger = logging.getLogger(__name__)

CHECKPOINT_INTERVAL = 100


class ProvenanceTree:
    """
    Tamper-evident record of a document's edit history.

    Usage:
        tree = ProvenanceTree(OpenTimestampsCalendar())
        result = await tree.add_leaf({"ops": [{"insert": "Hello"}]})
        tree.verify_proof(result.leaf_index).valid  # True

    `add_leaf` and `manual_timestamp` are serialized by an internal
    asyncio.Lock; the synchronous readers never suspend.
    """

    def __init__(
        self,
        anchor_client: Optional[AnchorClient] = None,
        *,
        checkpoint_interval: int = CHECKPOINT_INTERVAL,
        signer: Optional[CheckpointSigner] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        if checkpoint_interval <= 0:
            raise ValidationError("checkpoint_interval must be positive")
        self._anchor_client = anchor_client
        self._checkpoint_interval = checkpoint_interval
        self._signer = signer
        self._clock = clock or now_ms
        self._lock = asyncio.Lock()

        self.leaves: List[ProvenanceNode] = []
        self.levels: List[List[ProvenanceNode]] = []
        self.root: Optional[ProvenanceNode] = None
        self.document_state: Batch = Batch()
        self.checkpoints: List[CheckpointRecord] = []

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def leaf_count(self) -> int:
        return len(self.leaves)

    @property
    def root_hash(self) -> Optional[str]:
        return self.root.hash if self.root is not None else None

    @property
    def checkpoint_interval(self) -> int:
        return self._checkpoint_interval

    @property
    def anchor_client(self) -> Optional[AnchorClient]:
        return self._anchor_client

    def compute_hash(self, data: str) -> str:
        return compute_hash(data)

    def _leaf(self, index: int) -> ProvenanceNode:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.leaves):
            raise LeafIndexError(index, len(self.leaves))
        return self.leaves[index]

    # ------------------------------------------------------------------
    # Append
    # ------------------------------------------------------------------
    async def add_leaf(
        self,
        batch: Union[Batch, Dict[str, Any], str],
        metadata: Union[LeafMetadata, Dict[str, Any], str, None] = None,
    ) -> AddLeafResult:
        """
        Seal one edit batch as a new leaf.

        Raises ValidationError before any state changes when the batch or
        metadata is malformed. Anchoring failures at a checkpoint are logged
        and recorded, never raised.
        """
        async with self._lock:
            batch = parse_batch(batch)
            validate_batch(batch)
            meta = LeafMetadata.coerce(metadata) or LeafMetadata()
            if not meta.timestamp:
                meta = replace(meta, timestamp=float(self._clock()))

            leaf_hash = hash_leaf(batch, meta.to_dict())
            previous_root_hash = self.root_hash

            self.leaves.append(ProvenanceNode(hash=leaf_hash, batch=batch, metadata=meta))
            self.document_state = compose(self.document_state, batch)
            self.rebuild()

            consistent = self.verify_tree_consistency()
            if not consistent:
                logger.warning("Tree consistency check failed after adding leaf %s", leaf_hash)

            await self._checkpoint()

            leaf_index = len(self.leaves) - 1
            proof = self.generate_proof(leaf_index) if len(self.leaves) > 1 else []

            logger.info(
                "Added leaf: hash=%s, total_leaves=%d, root_hash=%s",
                leaf_hash,
                len(self.leaves),
                self.root_hash,
            )
            return AddLeafResult(
                leaf_hash=leaf_hash,
                proof=proof,
                root_hash=self.root_hash,
                previous_root_hash=previous_root_hash,
                leaf_index=leaf_index,
                consistent=consistent,
            )

    def rebuild(self) -> None:
        if not self.leaves:
            self.root = None
            self.levels = []
            return
        self.levels = build_levels(self.leaves)
        self.root = self.levels[-1][0]
        logger.debug(
            "Tree rebuilt: leaves=%d, levels=%d, root_hash=%s",
            len(self.leaves),
            len(self.levels),
            self.root.hash,
        )

    def verify_tree_consistency(self) -> bool:
        """Re-derive the root from the leaf hashes and compare with the stored root."""
        if not self.leaves:
            return True
        expected = compute_root([leaf.hash for leaf in self.leaves])
        return expected == self.root_hash

    # ------------------------------------------------------------------
    # Anchoring
    # ------------------------------------------------------------------
    def _anchored_root(self, anchor: Timestamp) -> ProvenanceNode:
        # A copy; a sole leaf doubles as the root and must stay untouched.
        root = self.root
        base = root.metadata if isinstance(root.metadata, LeafMetadata) else LeafMetadata()
        return ProvenanceNode(hash=root.hash, metadata=base.with_anchor(anchor))

    def _record(self, record: CheckpointRecord) -> CheckpointRecord:
        if self._signer is not None:
            self._signer.sign_checkpoint(record)
        self.checkpoints.append(record)
        return record

    async def _checkpoint(self) -> None:
        count = len(self.leaves)
        if count == 0 or count % self._checkpoint_interval != 0:
            logger.debug(
                "Skipping checkpoint - leaf count %d not at interval %d",
                count,
                self._checkpoint_interval,
            )
            return
        if self._anchor_client is None or self.root is None:
            logger.debug("Skipping checkpoint at %d leaves - no anchor client", count)
            return

        root_hash = self.root.hash
        record = CheckpointRecord(tree_size=count, root_hash=root_hash)
        try:
            anchor = await self._anchor_client.stamp(root_hash)
        except Exception as e:  # the leaf stays appended whatever the calendar does
            logger.warning("Failed to create checkpoint timestamp for %s: %s", root_hash, e)
            record.error = str(e)
            self._record(record)
            return

        record.anchor = anchor
        self.root = self._anchored_root(anchor)
        # Rebuilding replaces the anchored root with a fresh top node.
        self.rebuild()
        self._record(record)
        logger.info("Created checkpoint timestamp for root hash %s at %d leaves", root_hash, count)

    async def manual_timestamp(self) -> Optional[Timestamp]:
        """Anchor the current root now; None when there is nothing to anchor or the calendar fails."""
        async with self._lock:
            if self.root is None or self._anchor_client is None:
                return None

            root_hash = self.root.hash
            record = CheckpointRecord(tree_size=len(self.leaves), root_hash=root_hash)
            try:
                anchor = await self._anchor_client.stamp(root_hash)
            except Exception as e:  # reported as None to the caller
                logger.warning("Manual timestamp failed for %s: %s", root_hash, e)
                record.error = str(e)
                self._record(record)
                return None

            record.anchor = anchor
            self.root = self._anchored_root(anchor)
            self._record(record)
            logger.info("Manual timestamp created for root hash %s", root_hash)
            return anchor

    async def verify_timestamps(self) -> List[Dict[str, Any]]:
        """
        Re-verify every stored anchor: those in leaf metadata, then those
        held by checkpoint records.
        """
        results: List[Dict[str, Any]] = []
        if self._anchor_client is None:
            return results

        for i, leaf in enumerate(self.leaves):
            meta = leaf.metadata
            if meta is None or meta.ots_timestamp is None:
                continue
            try:
                verified = await self._anchor_client.verify(meta.ots_timestamp)
            except Exception as e:  # one unreachable anchor does not stop the sweep
                logger.warning("Failed to verify timestamp at index %d: %s", i, e)
                continue
            results.append({
                "source": "leaf",
                "index": i,
                "hash": leaf.hash,
                "timestamp": meta.ots_timestamp.timestamp,
                "verified": verified,
            })

        for i, record in enumerate(self.checkpoints):
            if record.anchor is None:
                continue
            try:
                verified = await self._anchor_client.verify(record.anchor)
            except Exception as e:  # same as above
                logger.warning("Failed to verify checkpoint %d anchor: %s", i, e)
                continue
            results.append({
                "source": "checkpoint",
                "index": i,
                "hash": record.root_hash,
                "timestamp": record.anchor.timestamp,
                "verified": verified,
            })
        return results

    def verify_checkpoint_roots(self) -> List[bool]:
        """For each checkpoint record, whether its root matches the leaf prefix it covers."""
        hashes = [leaf.hash for leaf in self.leaves]
        return [
            0 < record.tree_size <= len(hashes)
            and compute_root(hashes[:record.tree_size]) == record.root_hash
            for record in self.checkpoints
        ]

    def get_checkpoint_status(self) -> CheckpointStatus:
        count = len(self.leaves)
        interval = self._checkpoint_interval
        latest = (count // interval) * interval
        return CheckpointStatus(
            total_leaves=count,
            checkpoint_interval=interval,
            next_checkpoint=(count // interval + 1) * interval,
            latest_checkpoint=latest or None,
            timestamped_leaf_count=sum(
                1
                for leaf in self.leaves
                if leaf.metadata is not None and leaf.metadata.ots_timestamp is not None
            ),
            checkpoint_count=len(self.checkpoints),
            anchored_checkpoint_count=sum(1 for record in self.checkpoints if record.anchored),
        )

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------
    def generate_proof(self, index: int) -> List[ProofStep]:
        self._leaf(index)
        return proof_from_levels(self.levels, index)

    def get_proof(self, index: int) -> InclusionProof:
        self._leaf(index)
        if index == 0:
            return InclusionProof(proof=[], root_hash=self.root_hash)
        return InclusionProof(proof=self.generate_proof(index), root_hash=self.root_hash)

    def verify_proof(self, index: int) -> ProofVerification:
        leaf = self._leaf(index)
        computed = leaf.recompute_hash()
        timestamp = leaf.metadata.timestamp if leaf.metadata is not None else None

        if index == 0:
            return ProofVerification(
                valid=computed == leaf.hash,
                verification_type=VerificationType.GENESIS,
                computed_hash=computed,
                stored_hash=leaf.hash,
                root_hash=self.root_hash,
                timestamp=timestamp,
            )

        proof = self.generate_proof(index)
        if not proof:
            return ProofVerification(
                valid=False,
                verification_type=VerificationType.REGULAR,
                computed_hash=computed,
                stored_hash=leaf.hash,
                root_hash=self.root_hash,
                timestamp=timestamp,
                error="Missing proof for non-genesis block",
            )

        folded = fold_proof(computed, proof)
        valid = folded == self.root_hash and computed == leaf.hash
        return ProofVerification(
            valid=valid,
            verification_type=VerificationType.REGULAR,
            computed_hash=folded,
            stored_hash=leaf.hash,
            root_hash=self.root_hash,
            timestamp=timestamp,
            error=None if valid else "Recomputed leaf does not fold to the stored root",
        )

    def verify_all(self) -> List[ProofVerification]:
        return [self.verify_proof(i) for i in range(len(self.leaves))]

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def get_history(self) -> List[Dict[str, Any]]:
        return [
            {
                "delta": leaf.batch.to_dict() if leaf.batch is not None else None,
                "metadata": leaf.metadata_dict(),
                "hash": leaf.hash,
                "timestamp": leaf.metadata.timestamp if leaf.metadata is not None else None,
            }
            for leaf in self.leaves
        ]

    def get_current_content(self) -> Batch:
        """Recompose every leaf batch from scratch."""
        return compose_all(leaf.batch for leaf in self.leaves)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "leaves": [leaf.to_dict() for leaf in self.leaves],
            "documentState": self.document_state.to_dict(),
            "levels": [[node.to_dict() for node in level] for level in self.levels],
            "root": self.root.to_dict() if self.root is not None else None,
            "checkpoints": [record.to_dict() for record in self.checkpoints],
        }

    def serialize(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    def load(self, data: Union[str, bytes, Dict[str, Any]], *, strict: bool = False) -> None:
        """
        Replace this tree's state with serialized data.

        Leaf hashes are restored verbatim (not recomputed), so tampered
        content shows up in verify_proof. Levels and root are rebuilt from
        the leaves; with `strict`, a stored root that disagrees with the
        rebuilt one raises ConsistencyError. Checkpoint records are restored
        as stored; see verify_checkpoint_roots.
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except ValueError as e:
                raise ValidationError(f"Tree parse error: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError("Serialized tree must be an object")

        raw_leaves = data.get("leaves") or []
        if not isinstance(raw_leaves, list):
            raise ValidationError("Serialized 'leaves' must be a list")
        leaves = [ProvenanceNode.from_dict(raw) for raw in raw_leaves]

        raw_state = data.get("documentState")
        document_state = parse_batch(raw_state) if raw_state is not None else Batch()

        raw_checkpoints = data.get("checkpoints") or []
        if not isinstance(raw_checkpoints, list):
            raise ValidationError("Serialized 'checkpoints' must be a list")
        checkpoints = [CheckpointRecord.from_dict(raw) for raw in raw_checkpoints]

        self.leaves = leaves
        self.document_state = document_state
        self.checkpoints = checkpoints
        self.rebuild()

        stored_root = data.get("root")
        if strict and isinstance(stored_root, dict):
            if stored_root.get("hash") != self.root_hash:
                raise ConsistencyError(stored_root.get("hash"), self.root_hash)

        logger.info("Loaded tree with %d leaves, root_hash=%s", len(self.leaves), self.root_hash)

    @classmethod
    def deserialize(
        cls,
        data: Union[str, bytes, Dict[str, Any]],
        anchor_client: Optional[AnchorClient] = None,
        *,
        strict: bool = False,
        **kwargs,
    ) -> "ProvenanceTree":
        tree = cls(anchor_client, **kwargs)
        tree.load(data, strict=strict)
        return tree

    def clear(self) -> None:
        self.leaves = []
        self.levels = []
        self.root = None
        self.document_state = Batch()
        self.checkpoints = []
