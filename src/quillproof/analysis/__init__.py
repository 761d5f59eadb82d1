from quillproof.analysis.cadence import (
    CadenceAnalyzer,
    CadenceThresholds,
    EditRecord,
    EditStats,
    EditVerdict,
    geometric_mean,
    safe_ln,
)

__all__ = [
    "CadenceAnalyzer",
    "CadenceThresholds",
    "EditRecord",
    "EditStats",
    "EditVerdict",
    "geometric_mean",
    "safe_ln",
]
