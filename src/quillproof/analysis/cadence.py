"""
Edit cadence analysis.

Classifies incoming edits as plausible human typing or not, from the
timing between consecutive edits:

1. Burst: geometric mean of the recent intervals is implausibly small
2. Consistency: too many consecutive intervals are nearly identical
3. Pauses: no word-boundary pause over a long run of intervals

A secondary, informational pass looks at cursor jumps inside the batch.
All times are milliseconds.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from quillproof.delta.operations import Batch, Retain, batch_size, parse_batch
from quillproof.utils.timestamps import now_ms

logger = logging.getLogger(__name__)

UNNATURAL_PATTERN = "Unnatural typing pattern detected"
EMPTY_EDIT = "Empty edit"
NORMAL_PATTERN = "Normal edit pattern"
CURSOR_PATTERN = "Suspicious cursor movement pattern"
LARGE_CHANGE_PATTERN = "Large content change detected"
FAST_MOVE_PATTERN = "Content changed too quickly with cursor movement"


def safe_ln(x: float) -> float:
    if x <= 0.0:
        return -math.inf
    return math.log(x)


def geometric_mean(values: Sequence[float]) -> float:
    """exp(mean(ln x)); any non-positive value drives the result to 0."""
    if not values:
        return 0.0
    log_sum = sum(safe_ln(v) for v in values)
    return math.exp(log_sum / len(values))


@dataclass
class CadenceThresholds:
    base_typing_interval: float = 30.0
    word_boundary_pause: float = 250.0
    fast_burst_threshold: float = 15.0
    burst_variance: float = 2.0
    consistent_pattern_window: int = 5
    max_consistent_count: int = 4
    max_word_length: int = 5
    window_size: int = 5
    min_sample_size: int = 2
    cursor_jump_threshold: int = 20
    max_cursor_jumps: int = 3
    large_change_threshold: int = 1000


@dataclass
class EditRecord:
    timestamp: float
    batch: Batch
    change_size: int
    interval: Optional[float]


@dataclass
class EditVerdict:
    valid: bool
    patterns: List[str]
    cursor_jump_count: int = 0
    failed_checks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.valid,
            "patterns": list(self.patterns),
            "cursorJumps": self.cursor_jump_count,
            "failedChecks": list(self.failed_checks),
        }


@dataclass
class EditStats:
    total_edits: int = 0
    average_interval: Optional[float] = None
    geometric_mean_interval: float = 0.0
    chars_per_minute: float = 0.0
    total_chars: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"totalEdits": self.total_edits}
        if self.average_interval is not None:
            data["averageInterval"] = self.average_interval
        data["geometricMeanInterval"] = self.geometric_mean_interval
        data["charsPerMinute"] = self.chars_per_minute
        data["totalChars"] = self.total_chars
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditStats":
        average = data.get("averageInterval")
        return cls(
            total_edits=int(data.get("totalEdits", 0)),
            average_interval=float(average) if average is not None else None,
            geometric_mean_interval=float(data.get("geometricMeanInterval", 0.0)),
            chars_per_minute=float(data.get("charsPerMinute", 0.0)),
            total_chars=int(data.get("totalChars", 0)),
        )


class CadenceAnalyzer:
    """
    Rolling-window classifier of inter-edit timing.

    One analyzer belongs to one document session. Edits classified as
    unnatural are not kept in the history, so the next interval is measured
    from the last accepted edit.
    """

    def __init__(self, thresholds: Optional[CadenceThresholds] = None):
        self.thresholds = thresholds or CadenceThresholds()
        self._history: List[EditRecord] = []
        self._intervals: List[float] = []

    @property
    def history(self) -> List[EditRecord]:
        return list(self._history)

    @property
    def intervals(self) -> List[float]:
        return list(self._intervals)

    # ------------------------------------------------------------------
    # Timing checks
    # ------------------------------------------------------------------
    def _push_interval(self, interval: float) -> None:
        self._intervals.append(interval)
        overflow = len(self._intervals) - self.thresholds.window_size
        if overflow > 0:
            del self._intervals[:overflow]

    def _is_burst(self) -> bool:
        clamped = [max(x, 1.0) for x in self._intervals]
        return geometric_mean(clamped) < self.thresholds.fast_burst_threshold

    def _is_too_consistent(self) -> bool:
        t = self.thresholds
        recent = self._intervals[max(0, len(self._intervals) - t.consistent_pattern_window):]
        consistent_count = 1
        for a, b in zip(recent, recent[1:]):
            if abs(a - b) < t.burst_variance:
                consistent_count += 1
                if consistent_count > t.max_consistent_count:
                    return True
            else:
                consistent_count = 1
        return False

    def _lacks_pauses(self) -> bool:
        t = self.thresholds
        recent = self._intervals[max(0, len(self._intervals) - t.window_size):]
        pause_count = sum(1 for interval in recent if interval > t.word_boundary_pause)
        return pause_count < len(recent) // t.max_word_length

    def _failed_timing_checks(self, interval: float) -> List[str]:
        self._push_interval(interval)
        if len(self._intervals) < self.thresholds.min_sample_size:
            return []

        failed = []
        if self._is_burst():
            failed.append("burst")
        if self._is_too_consistent():
            failed.append("consistency")
        if self._lacks_pauses():
            failed.append("pause")
        return failed

    # ------------------------------------------------------------------
    # Secondary pattern check
    # ------------------------------------------------------------------
    def _pattern_check(self, record: EditRecord) -> EditVerdict:
        t = self.thresholds
        if record.change_size == 0:
            return EditVerdict(valid=True, patterns=[EMPTY_EDIT])

        patterns: List[str] = []
        valid = True
        cursor_jumps = 0
        last_cursor = 0

        for op in record.batch.ops:
            if isinstance(op, Retain):
                if abs(op.length - last_cursor) > t.cursor_jump_threshold:
                    cursor_jumps += 1
                last_cursor = op.length

        fast = record.interval is not None and record.interval < t.base_typing_interval

        if cursor_jumps > t.max_cursor_jumps and fast:
            patterns.append(CURSOR_PATTERN)
            valid = False

        if record.change_size > t.large_change_threshold:
            patterns.append(LARGE_CHANGE_PATTERN)
            valid = False

        if fast and record.change_size > 1 and cursor_jumps > 0:
            patterns.append(FAST_MOVE_PATTERN)
            valid = False

        if not patterns:
            patterns.append(NORMAL_PATTERN)

        return EditVerdict(valid=valid, patterns=patterns, cursor_jump_count=cursor_jumps)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def record(
        self,
        batch: Union[Batch, Dict[str, Any], str],
        previous_batch: Union[Batch, Dict[str, Any], str, None] = None,
        timestamp: Optional[float] = None,
    ) -> EditVerdict:
        """
        Record one edit and classify it.

        `previous_batch` (the document before the edit) is accepted for
        parity with the editor callback; the classification only uses timing
        and the edit itself.
        """
        batch = parse_batch(batch)
        if previous_batch is not None:
            parse_batch(previous_batch)
        if timestamp is None:
            timestamp = now_ms()

        interval = timestamp - self._history[-1].timestamp if self._history else None
        record = EditRecord(
            timestamp=timestamp,
            batch=batch,
            change_size=batch_size(batch),
            interval=interval,
        )

        failed = self._failed_timing_checks(interval) if interval is not None else []
        secondary = self._pattern_check(record)

        if failed:
            logger.info("Unnatural edit cadence (failed checks: %s)", ", ".join(failed))
            extra = [p for p in secondary.patterns if p not in (NORMAL_PATTERN, EMPTY_EDIT)]
            return EditVerdict(
                valid=False,
                patterns=[UNNATURAL_PATTERN] + extra,
                cursor_jump_count=secondary.cursor_jump_count,
                failed_checks=failed,
            )

        self._history.append(record)
        return secondary

    def statistics(self) -> EditStats:
        if not self._history:
            return EditStats()

        total_edits = len(self._history)
        total_time = self._history[-1].timestamp - self._history[0].timestamp
        total_chars = sum(edit.change_size for edit in self._history)
        positive = [x for x in self._intervals if x > 0.0]

        return EditStats(
            total_edits=total_edits,
            average_interval=total_time / (total_edits - 1) if total_edits > 1 else None,
            geometric_mean_interval=geometric_mean(positive),
            chars_per_minute=(total_chars / total_time) * 60000.0 if total_time > 0 else 0.0,
            total_chars=total_chars,
        )

    def clear(self) -> None:
        self._history.clear()
        self._intervals.clear()
