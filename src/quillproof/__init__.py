"""
quillproof: tamper-evident provenance records for rich-text documents.
"""

from .anchoring import OpenTimestampsCalendar, Timestamp
from .analysis import CadenceAnalyzer, CadenceThresholds, EditStats, EditVerdict
from .delta import Batch, Delete, Insert, Retain, compose, parse_batch
from .ledger import (
    CheckpointSigner,
    CheckpointVerifier,
    DifficultyController,
    LeafMetadata,
    PowResult,
    ProvenanceTree,
    proof_of_work,
)
from .protocol import QuillproofError, ValidationError
from .session import DocumentSession, EditOutcome

__version__ = "0.1.0"

__all__ = [
    "OpenTimestampsCalendar",
    "Timestamp",
    "CadenceAnalyzer",
    "CadenceThresholds",
    "EditStats",
    "EditVerdict",
    "Batch",
    "Delete",
    "Insert",
    "Retain",
    "compose",
    "parse_batch",
    "CheckpointSigner",
    "CheckpointVerifier",
    "DifficultyController",
    "LeafMetadata",
    "PowResult",
    "ProvenanceTree",
    "proof_of_work",
    "QuillproofError",
    "ValidationError",
    "DocumentSession",
    "EditOutcome",
]
