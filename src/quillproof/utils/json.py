import json
from typing import Any


def canonical_json(obj: Any) -> str:
    """Deterministic encoding used for every hash: sorted keys, no whitespace."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
