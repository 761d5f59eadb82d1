"""
Document session.

Glues the pieces together for one document, in the order an editor
callback drives them:

    batch -> validate -> cadence verdict -> proof of work -> seal leaf
          -> difficulty adjustment

One session per document; `submit` is serialized by an asyncio.Lock so
edits are sealed in arrival order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from quillproof.analysis.cadence import CadenceAnalyzer, EditStats, EditVerdict
from quillproof.anchoring.calendar import AnchorClient, OpenTimestampsCalendar
from quillproof.delta.operations import Batch, Insert, parse_batch
from quillproof.ledger.models import AddLeafResult, LeafMetadata
from quillproof.ledger.pow import DifficultyController, proof_of_work
from quillproof.ledger.provenance import ProvenanceTree
from quillproof.ledger.signing import CheckpointSigner
from quillproof.protocol.errors import SuspiciousEditError, ValidationError
from quillproof.protocol.validators import validate_batch
from quillproof.utils.json import canonical_json
from quillproof.utils.timestamps import now_ms

logger = logging.getLogger(__name__)

BatchInput = Union[Batch, Dict[str, Any], str]


def genesis_batch() -> Batch:
    return Batch(ops=[Insert(content="\n")])


@dataclass
class EditOutcome:
    verdict: EditVerdict
    leaf: AddLeafResult
    difficulty: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verdict": self.verdict.to_dict(),
            "leaf": self.leaf.to_dict(),
            "difficulty": self.difficulty,
        }


class DocumentSession:
    def __init__(
        self,
        tree: Optional[ProvenanceTree] = None,
        analyzer: Optional[CadenceAnalyzer] = None,
        controller: Optional[DifficultyController] = None,
        *,
        enforce_cadence: bool = True,
        pow_enabled: bool = True,
        clock=None,
    ):
        self.tree = tree or ProvenanceTree()
        self.analyzer = analyzer or CadenceAnalyzer()
        self.controller = controller or DifficultyController()
        self.enforce_cadence = enforce_cadence
        self.pow_enabled = pow_enabled
        self._clock = clock or now_ms
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings=None,
        anchor_client: Optional[AnchorClient] = None,
        signer: Optional[CheckpointSigner] = None,
    ) -> "DocumentSession":
        """Build a session (and its tree, analyzer, controller) from QuillproofSettings."""
        if settings is None:
            from quillproof.core.settings import get_settings

            settings = get_settings()

        if anchor_client is None and settings.anchoring.enabled:
            anchor_client = OpenTimestampsCalendar(
                settings.anchoring.calendar_url,
                timeout=settings.anchoring.timeout_seconds,
            )

        ledger = settings.ledger
        if signer is None and ledger.signing_key_path:
            signer = CheckpointSigner.from_pem_file(ledger.signing_key_path)

        tree = ProvenanceTree(
            anchor_client,
            checkpoint_interval=ledger.checkpoint_interval,
            signer=signer,
        )
        controller = DifficultyController(
            minimum=ledger.pow_min_difficulty,
            maximum=ledger.pow_max_difficulty,
            adjustment_interval=ledger.pow_adjustment_interval,
            target_interval=ledger.pow_target_interval,
            max_adjustment_factor=ledger.pow_max_adjustment_factor,
        )
        return cls(
            tree,
            CadenceAnalyzer(settings.cadence.to_thresholds()),
            controller,
            enforce_cadence=ledger.enforce_cadence,
            pow_enabled=ledger.pow_enabled,
        )

    @property
    def started(self) -> bool:
        return self.tree.leaf_count > 0

    @property
    def difficulty(self) -> int:
        return self.controller.current

    async def start(
        self,
        initial_batch: Optional[BatchInput] = None,
        timestamp: Optional[float] = None,
    ) -> AddLeafResult:
        """Seal the genesis leaf (an empty document, "\\n", unless given)."""
        async with self._lock:
            if self.started:
                raise ValidationError("Session already has a genesis leaf")
            batch = parse_batch(initial_batch) if initial_batch is not None else genesis_batch()
            metadata = LeafMetadata(
                timestamp=timestamp if timestamp is not None else self._clock(),
                is_genesis=True,
            )
            result = await self.tree.add_leaf(batch, metadata)
            logger.info("Session started, genesis leaf %s", result.leaf_hash)
            return result

    async def submit(self, batch: BatchInput, timestamp: Optional[float] = None) -> EditOutcome:
        """
        Run one edit through the pipeline.

        Raises ValidationError for malformed batches and SuspiciousEditError
        when cadence enforcement is on and the analyzer rejects the edit.
        Neither touches the tree.
        """
        async with self._lock:
            if not self.started:
                raise ValidationError("Session has not been started")

            batch = parse_batch(batch)
            validate_batch(batch)
            if timestamp is None:
                timestamp = self._clock()

            verdict = self.analyzer.record(batch, self.tree.document_state, timestamp)
            if not verdict.valid:
                if self.enforce_cadence:
                    raise SuspiciousEditError(
                        f"Suspicious edit pattern: {', '.join(verdict.patterns)}",
                        verdict.patterns,
                    )
                logger.warning("Accepting flagged edit: %s", ", ".join(verdict.patterns))

            pow_result = None
            if self.pow_enabled:
                pow_result = await proof_of_work(canonical_json(batch.to_dict()), self.controller.current)

            stats = self.analyzer.statistics()
            metadata = LeafMetadata(timestamp=timestamp, edit_stats=stats, pow_result=pow_result)
            leaf = await self.tree.add_leaf(batch, metadata)

            if self.controller.due(stats.total_edits):
                self.controller.adjust(stats.geometric_mean_interval)

            return EditOutcome(verdict=verdict, leaf=leaf, difficulty=self.controller.current)

    def statistics(self) -> EditStats:
        return self.analyzer.statistics()

    def content(self) -> Batch:
        return self.tree.document_state
