"""
Shared fixtures: an in-memory anchor client and a fixed clock.
"""

from typing import List

import pytest

from quillproof.anchoring.calendar import Timestamp
from quillproof.protocol.errors import AnchorNetworkError


class FakeAnchorClient:
    """Records every stamp; optionally fails."""

    def __init__(self, fail: bool = False, verified: bool = True):
        self.fail = fail
        self.verified = verified
        self.stamped: List[str] = []
        self.verified_digests: List[str] = []

    async def stamp(self, hex_hash: str) -> Timestamp:
        if self.fail:
            raise AnchorNetworkError("calendar unreachable")
        self.stamped.append(hex_hash)
        return Timestamp(digest=hex_hash, timestamp=f"ots:{hex_hash[:8]}")

    async def verify(self, timestamp: Timestamp) -> bool:
        if self.fail:
            raise AnchorNetworkError("calendar unreachable")
        self.verified_digests.append(timestamp.digest)
        return self.verified


class StepClock:
    """Deterministic millisecond clock advancing by `step` per call."""

    def __init__(self, start: float = 1_700_000_000_000.0, step: float = 1.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def anchor():
    return FakeAnchorClient()


@pytest.fixture
def failing_anchor():
    return FakeAnchorClient(fail=True)


@pytest.fixture
def clock():
    return StepClock()


def insert_batch(text: str, **attributes) -> dict:
    op = {"insert": text}
    if attributes:
        op["attributes"] = attributes
    return {"ops": [op]}
