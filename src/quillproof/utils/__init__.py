from .json import canonical_json
from .logging import configure_logging
from .timestamps import monotonic_ms, now_iso, now_ms

__all__ = [
    "canonical_json",
    "configure_logging",
    "monotonic_ms",
    "now_iso",
    "now_ms",
]
