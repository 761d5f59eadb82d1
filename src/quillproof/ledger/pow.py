"""
Proof-of-work over edit content, and the controller that tunes its
difficulty to the observed editing pace.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import math
from typing import Optional

from quillproof.ledger.models import PowResult
from quillproof.protocol.errors import ValidationError
from quillproof.utils.timestamps import monotonic_ms

logger = logging.getLogger(__name__)

MAX_DIFFICULTY = 64  # hex digits in a SHA-256 digest
YIELD_EVERY = 1000


async def proof_of_work(content: str, difficulty: int) -> PowResult:
    """
    Find the first nonce such that sha256(content + str(nonce)) starts with
    `difficulty` zero hex digits.

    Control is handed back to the event loop every 1000 attempts.
    """
    if isinstance(difficulty, bool) or not isinstance(difficulty, int):
        raise ValidationError(f"Difficulty must be an integer, got {difficulty!r}")
    if difficulty < 0 or difficulty > MAX_DIFFICULTY:
        raise ValidationError(f"Difficulty must be between 0 and {MAX_DIFFICULTY}, got {difficulty}")

    target = "0" * difficulty
    nonce = 0
    start = monotonic_ms()

    while True:
        for _ in range(YIELD_EVERY):
            digest = hashlib.sha256(f"{content}{nonce}".encode("utf-8")).hexdigest()
            if digest.startswith(target):
                return PowResult(
                    nonce=nonce,
                    hash=digest,
                    elapsed_time=monotonic_ms() - start,
                    difficulty=difficulty,
                )
            nonce += 1
        await asyncio.sleep(0)


def verify_pow(content: str, result: PowResult) -> bool:
    digest = hashlib.sha256(f"{content}{result.nonce}".encode("utf-8")).hexdigest()
    return digest == result.hash and digest.startswith("0" * result.difficulty)


class DifficultyController:
    """
    Scales the proof-of-work difficulty toward a target edit interval.

    Every `adjustment_interval` accepted edits the difficulty is multiplied
    by target_interval / geometric_mean_interval, with the factor clamped
    to [1/max_factor, max_factor] and the result clamped to [minimum, maximum].
    """

    def __init__(
        self,
        minimum: int = 1,
        maximum: int = 32,
        adjustment_interval: int = 201,
        target_interval: float = 200.0,
        max_adjustment_factor: float = 4.0,
        initial: Optional[int] = None,
    ):
        if minimum < 0 or maximum > MAX_DIFFICULTY or minimum > maximum:
            raise ValidationError(f"Invalid difficulty bounds {minimum}..{maximum}")
        self.minimum = minimum
        self.maximum = maximum
        self.adjustment_interval = adjustment_interval
        self.target_interval = target_interval
        self.max_adjustment_factor = max_adjustment_factor
        self.current = self._clamp(initial if initial is not None else minimum)

    def _clamp(self, value: int) -> int:
        return min(max(self.minimum, value), self.maximum)

    def due(self, total_edits: int) -> bool:
        return total_edits > 0 and total_edits % self.adjustment_interval == 0

    def adjust(self, geometric_mean_interval: float) -> int:
        if not geometric_mean_interval:
            return self.current

        factor = self.target_interval / geometric_mean_interval
        factor = min(max(factor, 1 / self.max_adjustment_factor), self.max_adjustment_factor)
        # half-up rounding
        proposed = int(math.floor(self.current * factor + 0.5))

        previous = self.current
        self.current = self._clamp(proposed)
        if self.current != previous:
            logger.info(
                "Difficulty adjusted %d -> %d (mean interval %.0fms)",
                previous,
                self.current,
                geometric_mean_interval,
            )
        return self.current
