"""
Central configuration for quillproof.

Typed settings read from environment variables (12-factor style) using
pydantic-settings.

Usage:

    from quillproof.core.settings import get_settings

    settings = get_settings()
    if settings.anchoring.enabled:
        ...
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from quillproof.analysis.cadence import CadenceThresholds
from quillproof.anchoring.calendar import DEFAULT_CALENDAR_URL


class AnchoringSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QUILLPROOF_ANCHOR_")

    enabled: bool = Field(
        default=True,
        description="Anchor checkpoint roots with the calendar server.",
    )
    calendar_url: str = Field(
        default=DEFAULT_CALENDAR_URL,
        description="Base URL of the OpenTimestamps calendar.",
    )
    timeout_seconds: float = Field(
        default=10.0,
        description="Per-request timeout for calendar calls.",
    )


class LedgerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QUILLPROOF_LEDGER_")

    checkpoint_interval: int = Field(
        default=100,
        description="Anchor the root every N leaves.",
    )
    pow_enabled: bool = Field(
        default=True,
        description="Attach a proof-of-work receipt to each edit.",
    )
    pow_min_difficulty: int = Field(default=1)
    pow_max_difficulty: int = Field(default=32)
    pow_adjustment_interval: int = Field(
        default=201,
        description="Re-tune the difficulty every N accepted edits.",
    )
    pow_target_interval: float = Field(
        default=200.0,
        description="Target mean interval between edits, in ms.",
    )
    pow_max_adjustment_factor: float = Field(default=4.0)
    enforce_cadence: bool = Field(
        default=True,
        description="Reject edits the cadence analyzer flags as unnatural.",
    )
    signing_key_path: Optional[str] = Field(
        default=None,
        description="PEM Ed25519 private key used to sign checkpoint records.",
    )

    @field_validator("checkpoint_interval", "pow_adjustment_interval")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v


class CadenceSettings(BaseSettings):
    """
    Cadence analyzer thresholds; all times in milliseconds.
    """

    model_config = SettingsConfigDict(env_prefix="QUILLPROOF_CADENCE_")

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

    @field_validator("max_word_length", "window_size")
    @classmethod
    def _non_zero(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    def to_thresholds(self) -> CadenceThresholds:
        return CadenceThresholds(**self.model_dump())


class RuntimeSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="QUILLPROOF_")

    log_level: str = Field(
        default="INFO",
        description="Package log level (DEBUG/INFO/WARNING/ERROR).",
    )
    http_host: str = Field(
        default="127.0.0.1",
        description="Bind host for the HTTP API.",
    )
    http_port: int = Field(
        default=8000,
        description="Bind port for the HTTP API.",
    )


class QuillproofSettings(BaseSettings):
    """
    Root configuration object.

    Aggregates:
      - Anchoring
      - Ledger
      - Cadence
      - Runtime
    """

    anchoring: AnchoringSettings = Field(default_factory=AnchoringSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    cadence: CadenceSettings = Field(default_factory=CadenceSettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)


@lru_cache(maxsize=1)
def get_settings() -> QuillproofSettings:
    """
    Cached accessor for QuillproofSettings.

    Usage:
        from quillproof.core.settings import get_settings
        settings = get_settings()
    """
    return QuillproofSettings()
