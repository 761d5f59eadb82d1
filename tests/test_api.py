"""
Tests for the HTTP API.

Test coverage:
1. Document lifecycle (create, edit, view)
2. Proofs and verification
3. Error mapping (400 / 404 / 422)
4. Anchoring
"""

import pytest
from fastapi.testclient import TestClient

from conftest import insert_batch
from quillproof.analysis.cadence import UNNATURAL_PATTERN
from quillproof.api import create_app
from quillproof.core.settings import AnchoringSettings, LedgerSettings, QuillproofSettings


def _settings():
    return QuillproofSettings(
        anchoring=AnchoringSettings(enabled=False),
        ledger=LedgerSettings(pow_enabled=False),
    )


@pytest.fixture
def client():
    return TestClient(create_app(_settings()))


@pytest.fixture
def anchored_client(anchor):
    return TestClient(create_app(_settings(), anchor_client=anchor))


def _create(client, **body):
    response = client.post("/documents", json=body or {"timestamp": 1.0})
    assert response.status_code == 201
    return response.json()["documentId"]


def _edit(client, document_id, text, timestamp):
    return client.post(
        f"/documents/{document_id}/edits",
        json={"delta": insert_batch(text), "timestamp": timestamp},
    )


# ===========================================================================
# 1. Lifecycle
# ===========================================================================


class TestLifecycle:
    def test_create_document(self, client):
        response = client.post("/documents", json={"timestamp": 1.0})

        assert response.status_code == 201
        data = response.json()
        assert len(data["documentId"]) == 32
        assert data["genesis"]["leafIndex"] == 0
        assert data["genesis"]["previousRootHash"] is None

    def test_create_without_body(self, client):
        assert client.post("/documents").status_code == 201

    def test_create_with_initial_delta(self, client):
        document_id = _create(client, initialDelta=insert_batch("Draft"), timestamp=1.0)
        content = client.get(f"/documents/{document_id}/content").json()
        assert content == {"delta": {"ops": [{"insert": "Draft"}]}}

    def test_edits_build_content(self, client):
        document_id = _create(client)

        first = _edit(client, document_id, "Hello", 10_000.0)
        second = _edit(client, document_id, " World", 10_150.0)

        assert first.status_code == 200
        assert second.json()["leaf"]["leafIndex"] == 2
        assert second.json()["verdict"]["isValid"] is True
        content = client.get(f"/documents/{document_id}/content").json()
        assert content == {"delta": {"ops": [{"insert": "Hello World"}]}}

    def test_status(self, client):
        document_id = _create(client)
        _edit(client, document_id, "a", 10_000.0)

        status = client.get(f"/documents/{document_id}/status").json()

        assert status["totalLeaves"] == 2
        assert status["checkpointInterval"] == 100
        assert status["nextCheckpoint"] == 100
        assert status["latestCheckpoint"] is None
        assert status["difficulty"] == 1
        assert len(status["rootHash"]) == 64

    def test_stats(self, client):
        document_id = _create(client)
        _edit(client, document_id, "ab", 10_000.0)
        _edit(client, document_id, "c", 10_200.0)

        stats = client.get(f"/documents/{document_id}/stats").json()

        assert stats["totalEdits"] == 2
        assert stats["averageInterval"] == 200.0
        assert stats["totalChars"] == 3

    def test_export(self, client):
        document_id = _create(client)
        data = client.get(f"/documents/{document_id}/export").json()
        assert set(data) == {"leaves", "documentState", "levels", "root", "checkpoints"}
        assert len(data["leaves"]) == 1


# ===========================================================================
# 2. Proofs
# ===========================================================================


class TestProofs:
    def test_proof_and_verify(self, client):
        document_id = _create(client)
        for i, text in enumerate(["a", "b", "c"]):
            _edit(client, document_id, text, 10_000.0 + 150.0 * i)

        proof = client.get(f"/documents/{document_id}/proofs/2").json()
        assert proof["proof"]
        assert len(proof["rootHash"]) == 64

        leaf = client.get(f"/documents/{document_id}/verify/2").json()
        assert leaf["valid"] is True
        assert leaf["verificationType"] == "regular"

        genesis = client.get(f"/documents/{document_id}/verify/0").json()
        assert genesis["verificationType"] == "genesis"

        everything = client.get(f"/documents/{document_id}/verify").json()
        assert everything["valid"] is True
        assert len(everything["results"]) == 4

    def test_genesis_proof_empty(self, client):
        document_id = _create(client)
        assert client.get(f"/documents/{document_id}/proofs/0").json()["proof"] == []


# ===========================================================================
# 3. Errors
# ===========================================================================


class TestErrors:
    def test_unknown_document(self, client):
        assert client.get("/documents/nope/status").status_code == 404
        assert _edit(client, "nope", "a", 1.0).status_code == 404

    def test_leaf_out_of_range(self, client):
        document_id = _create(client)
        response = client.get(f"/documents/{document_id}/verify/5")

        assert response.status_code == 404
        assert response.json()["code"] == "index_error"

    def test_missing_delta(self, client):
        document_id = _create(client)
        response = client.post(f"/documents/{document_id}/edits", json={"timestamp": 1.0})
        assert response.status_code == 400

    def test_malformed_delta(self, client):
        document_id = _create(client)
        response = client.post(
            f"/documents/{document_id}/edits",
            json={"delta": {"ops": [{"insert": ""}]}},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_invalid_json(self, client):
        document_id = _create(client)
        response = client.post(
            f"/documents/{document_id}/edits",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_non_numeric_timestamp(self, client):
        response = client.post("/documents", json={"timestamp": "soon"})
        assert response.status_code == 400

    def test_bad_initial_delta_registers_nothing(self, client):
        response = client.post("/documents", json={"initialDelta": {"ops": [{"insert": 5}]}})

        assert response.status_code == 400
        assert len(client.app.state.registry) == 0

    def test_burst_rejected(self, client):
        document_id = _create(client)
        _edit(client, document_id, "a", 10_000.0)
        _edit(client, document_id, "b", 10_005.0)
        response = _edit(client, document_id, "c", 10_010.0)

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "edit_rejected"
        assert body["patterns"][0] == UNNATURAL_PATTERN


# ===========================================================================
# 4. Anchoring
# ===========================================================================


class TestAnchoring:
    def test_manual_timestamp(self, anchored_client, anchor):
        document_id = _create(anchored_client)
        root_hash = anchored_client.get(f"/documents/{document_id}/status").json()["rootHash"]

        response = anchored_client.post(f"/documents/{document_id}/timestamp")

        assert response.status_code == 200
        assert response.json()["timestamp"]["digest"] == root_hash
        assert anchor.stamped == [root_hash]

    def test_manual_timestamp_without_calendar(self, client):
        document_id = _create(client)
        response = client.post(f"/documents/{document_id}/timestamp")
        assert response.json() == {"timestamp": None}

    def test_checkpoints_listed(self, anchored_client):
        document_id = _create(anchored_client)
        assert anchored_client.get(f"/documents/{document_id}/checkpoints").json() == {"checkpoints": []}

        stamp = anchored_client.post(f"/documents/{document_id}/timestamp").json()["timestamp"]
        records = anchored_client.get(f"/documents/{document_id}/checkpoints").json()["checkpoints"]

        assert len(records) == 1
        assert records[0]["treeSize"] == 1
        assert records[0]["anchor"] == stamp
        assert records[0]["rootMatches"] is True

        status = anchored_client.get(f"/documents/{document_id}/status").json()
        assert status["checkpointCount"] == 1
        assert status["anchoredCheckpointCount"] == 1

    def test_checkpoints_exported(self, anchored_client):
        document_id = _create(anchored_client)
        anchored_client.post(f"/documents/{document_id}/timestamp")

        data = anchored_client.get(f"/documents/{document_id}/export").json()

        assert [record["treeSize"] for record in data["checkpoints"]] == [1]

    def test_unknown_document_checkpoints(self, client):
        assert client.get("/documents/nope/checkpoints").status_code == 404
