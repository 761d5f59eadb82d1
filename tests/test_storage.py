"""
Tests for tree files (.bql / .bqlz).
"""

import asyncio
import gzip

import pytest

from conftest import insert_batch
from quillproof.ledger import ProvenanceTree
from quillproof.protocol.errors import ConsistencyError
from quillproof.storage import load_tree, read_tree_text, save_tree


@pytest.fixture
def tree(clock):
    t = ProvenanceTree(clock=clock)

    async def fill():
        for text in ["Hello", " World", "!"]:
            await t.add_leaf(insert_batch(text))

    asyncio.run(fill())
    return t


class TestSaveLoad:
    def test_plain_round_trip(self, tree, tmp_path):
        path = save_tree(tree, tmp_path / "doc.bql")

        assert path.read_text(encoding="utf-8") == tree.serialize()
        loaded = load_tree(path)
        assert loaded.root_hash == tree.root_hash
        assert loaded.get_current_content() == tree.get_current_content()

    def test_compressed_by_suffix(self, tree, tmp_path):
        path = save_tree(tree, tmp_path / "doc.bqlz")

        assert gzip.decompress(path.read_bytes()).decode("utf-8") == tree.serialize()
        assert load_tree(path).root_hash == tree.root_hash

    def test_compression_detected_by_magic(self, tree, tmp_path):
        path = save_tree(tree, tmp_path / "doc.json", compress=True)
        assert read_tree_text(path) == tree.serialize()

    def test_creates_parent_dirs(self, tree, tmp_path):
        path = save_tree(tree, tmp_path / "a" / "b" / "doc.bql")
        assert path.exists()

    def test_strict_load_detects_root_mismatch(self, tree, tmp_path):
        path = tmp_path / "doc.bql"
        text = tree.serialize().replace(tree.root_hash, "0" * 64)
        path.write_text(text, encoding="utf-8")

        with pytest.raises(ConsistencyError):
            load_tree(path, strict=True)
        assert load_tree(path).root_hash == tree.root_hash
