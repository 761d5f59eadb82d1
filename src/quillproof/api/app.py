"""
HTTP API over document sessions.

    POST /documents                        create a session + genesis leaf
    POST /documents/{id}/edits             submit one edit batch
    GET  /documents/{id}/proofs/{index}    inclusion proof
    GET  /documents/{id}/verify/{index}    verify one leaf
    GET  /documents/{id}/verify            verify every leaf
    GET  /documents/{id}/status            checkpoint status
    GET  /documents/{id}/content           current document
    GET  /documents/{id}/stats             cadence statistics
    GET  /documents/{id}/checkpoints       checkpoint records
    POST /documents/{id}/timestamp         anchor the current root now
    GET  /documents/{id}/export            serialized tree

Sessions live in memory for the lifetime of the app.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from quillproof.anchoring.calendar import AnchorClient
from quillproof.core.settings import QuillproofSettings, get_settings
from quillproof.ledger.signing import CheckpointSigner
from quillproof.protocol.errors import (
    LeafIndexError,
    QuillproofError,
    SuspiciousEditError,
    ValidationError,
)
from quillproof.session import DocumentSession

logger = logging.getLogger(__name__)


class DocumentRegistry:
    """In-memory map of document id -> session."""

    def __init__(
        self,
        settings: QuillproofSettings,
        anchor_client: Optional[AnchorClient] = None,
        signer: Optional[CheckpointSigner] = None,
    ):
        self._settings = settings
        self._anchor_client = anchor_client
        self._signer = signer
        self._sessions: Dict[str, DocumentSession] = {}

    def build(self) -> DocumentSession:
        """A fresh, unregistered session."""
        return DocumentSession.from_settings(
            self._settings,
            anchor_client=self._anchor_client,
            signer=self._signer,
        )

    def register(self, session: DocumentSession) -> str:
        document_id = uuid.uuid4().hex
        self._sessions[document_id] = session
        return document_id

    def get(self, document_id: str) -> DocumentSession:
        session = self._sessions.get(document_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Unknown document '{document_id}'")
        return session

    def __len__(self) -> int:
        return len(self._sessions)


def _status_for(error: QuillproofError) -> int:
    if isinstance(error, SuspiciousEditError):
        return 422
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, LeafIndexError):
        return 404
    return 500


async def _json_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")
    return data


def _optional_timestamp(data: Dict[str, Any]) -> Optional[float]:
    value = data.get("timestamp")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise HTTPException(status_code=400, detail="'timestamp' must be a number")
    return float(value)


def create_app(
    settings: Optional[QuillproofSettings] = None,
    anchor_client: Optional[AnchorClient] = None,
    signer: Optional[CheckpointSigner] = None,
) -> FastAPI:
    settings = settings or get_settings()
    if signer is None and settings.ledger.signing_key_path:
        signer = CheckpointSigner.from_pem_file(settings.ledger.signing_key_path)
    registry = DocumentRegistry(settings, anchor_client=anchor_client, signer=signer)

    app = FastAPI(
        title="quillproof",
        version="0.1.0",
        description="Tamper-evident provenance for rich-text documents",
    )
    app.state.registry = registry

    @app.exception_handler(QuillproofError)
    async def _quillproof_error(request: Request, exc: QuillproofError):
        status = _status_for(exc)
        if status >= 500:
            logger.error("Unhandled ledger error on %s: %s", request.url.path, exc)
        body: Dict[str, Any] = {"error": str(exc), "code": exc.code.value}
        if isinstance(exc, SuspiciousEditError):
            body["patterns"] = exc.patterns
        return JSONResponse(status_code=status, content=body)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------
    @app.post("/documents", status_code=201)
    async def create_document(request: Request):
        data = await _json_body(request)
        timestamp = _optional_timestamp(data)
        session = registry.build()
        # registered only once the genesis leaf is sealed
        genesis = await session.start(data.get("initialDelta"), timestamp)
        document_id = registry.register(session)
        return {"documentId": document_id, "genesis": genesis.to_dict()}

    @app.post("/documents/{document_id}/edits")
    async def submit_edit(document_id: str, request: Request):
        session = registry.get(document_id)
        data = await _json_body(request)
        if data.get("delta") is None:
            raise HTTPException(status_code=400, detail="Missing 'delta'")
        outcome = await session.submit(data["delta"], _optional_timestamp(data))
        return outcome.to_dict()

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------
    @app.get("/documents/{document_id}/proofs/{index}")
    async def get_proof(document_id: str, index: int):
        return registry.get(document_id).tree.get_proof(index).to_dict()

    @app.get("/documents/{document_id}/verify/{index}")
    async def verify_leaf(document_id: str, index: int):
        return registry.get(document_id).tree.verify_proof(index).to_dict()

    @app.get("/documents/{document_id}/verify")
    async def verify_document(document_id: str):
        results = registry.get(document_id).tree.verify_all()
        return {
            "valid": all(r.valid for r in results),
            "results": [r.to_dict() for r in results],
        }

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    @app.get("/documents/{document_id}/status")
    async def checkpoint_status(document_id: str):
        session = registry.get(document_id)
        status = session.tree.get_checkpoint_status().to_dict()
        status["rootHash"] = session.tree.root_hash
        status["difficulty"] = session.difficulty
        return status

    @app.get("/documents/{document_id}/content")
    async def content(document_id: str):
        return {"delta": registry.get(document_id).content().to_dict()}

    @app.get("/documents/{document_id}/stats")
    async def stats(document_id: str):
        return registry.get(document_id).statistics().to_dict()

    @app.get("/documents/{document_id}/checkpoints")
    async def checkpoints(document_id: str):
        tree = registry.get(document_id).tree
        entries = []
        for record, root_matches in zip(tree.checkpoints, tree.verify_checkpoint_roots()):
            entry = record.to_dict()
            entry["rootMatches"] = root_matches
            entries.append(entry)
        return {"checkpoints": entries}

    @app.post("/documents/{document_id}/timestamp")
    async def manual_timestamp(document_id: str):
        anchor = await registry.get(document_id).tree.manual_timestamp()
        return {"timestamp": anchor.to_dict() if anchor is not None else None}

    @app.get("/documents/{document_id}/export")
    async def export(document_id: str):
        return registry.get(document_id).tree.to_dict()

    return app
