"""
Tree files.

    *.bql   serialized tree, UTF-8 JSON
    *.bqlz  the same, gzip-compressed
"""

from __future__ import annotations

import gzip
import logging
from pathlib import Path
from typing import Optional, Union

from quillproof.ledger.provenance import ProvenanceTree

logger = logging.getLogger(__name__)

PLAIN_SUFFIX = ".bql"
COMPRESSED_SUFFIX = ".bqlz"
_GZIP_MAGIC = b"\x1f\x8b"

PathLike = Union[str, Path]


def save_tree(tree: ProvenanceTree, path: PathLike, compress: Optional[bool] = None) -> Path:
    path = Path(path)
    if compress is None:
        compress = path.suffix == COMPRESSED_SUFFIX

    data = tree.serialize().encode("utf-8")
    if compress:
        data = gzip.compress(data)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info("Saved %d leaves to %s (compressed=%s)", tree.leaf_count, path, compress)
    return path


def read_tree_text(path: PathLike) -> str:
    path = Path(path)
    raw = path.read_bytes()
    if path.suffix == COMPRESSED_SUFFIX or raw[:2] == _GZIP_MAGIC:
        raw = gzip.decompress(raw)
    return raw.decode("utf-8")


def load_tree(path: PathLike, **kwargs) -> ProvenanceTree:
    """Keyword arguments go to ProvenanceTree.deserialize (anchor_client, strict, ...)."""
    return ProvenanceTree.deserialize(read_tree_text(path), **kwargs)
