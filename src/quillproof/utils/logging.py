import logging
from typing import Optional

_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Install a single stream handler on the package logger."""
    root = logging.getLogger("quillproof")
    root.setLevel((level or "INFO").upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
