"""
Application settings.

Responsibilities:
- Load configuration from environment variables and the .env file.
- Validate required settings and provide defaults for optional ones.
- Expose typed settings (RPC URL, target wallet, source mode, copy ratio,
  submission policy) for the listener, executor and monitor loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from functools import lru_cache

from solders.pubkey import Pubkey

from curve_mirror.config.env import (
    env_bool,
    env_float,
    env_int,
    env_str,
    get_solana_rpc_url,
    get_stream_url,
)
from curve_mirror.pump.constants import PUMP_PROGRAM_ID

SOURCE_MODES = ("poll", "stream")


def _optional_int(name: str) -> int | None:
    value = env_int(name, 0)
    return value or None


@dataclass
class MirrorSettings:
    """Typed configuration; every field defaults from the environment."""

    solana_rpc_url: str = field(default_factory=get_solana_rpc_url)
    target_wallet: str = field(default_factory=lambda: env_str("TARGET_WALLET"))
    private_key: str = field(default_factory=lambda: env_str("MIRROR_PRIVATE_KEY"), repr=False)
    pump_program_id: str = field(default_factory=lambda: env_str("PUMP_PROGRAM_ID", str(PUMP_PROGRAM_ID)))
    # raw env text; converted and range-checked in __post_init__
    copy_ratio: Decimal | str = field(default_factory=lambda: env_str("COPY_RATIO", "0.5"))

    source_mode: str = field(default_factory=lambda: env_str("SOURCE_MODE", "poll").lower())
    poll_interval_sec: float = field(default_factory=lambda: env_float("POLL_INTERVAL_SEC", 2.0))
    signatures_window: int = field(default_factory=lambda: env_int("SIGNATURES_WINDOW", 5))
    stream_url: str = field(default_factory=get_stream_url)
    stream_token: str = field(default_factory=lambda: env_str("STREAM_TOKEN"), repr=False)
    stream_reconnect_sec: float = field(default_factory=lambda: env_float("STREAM_RECONNECT_SEC", 5.0))

    slippage_bps: int = field(default_factory=lambda: env_int("SLIPPAGE_BPS", 500))
    priority_fee_unit_limit: int | None = field(default_factory=lambda: _optional_int("PRIORITY_FEE_UNIT_LIMIT"))
    priority_fee_unit_price: int | None = field(default_factory=lambda: _optional_int("PRIORITY_FEE_UNIT_PRICE"))
    dry_run: bool = field(default_factory=lambda: env_bool("DRY_RUN"))

    request_timeout_sec: float = field(default_factory=lambda: env_float("REQUEST_TIMEOUT_SEC", 15.0))
    rpc_rate_per_sec: float = field(default_factory=lambda: env_float("RPC_RATE_PER_SEC", 8.0))
    submit_attempts: int = field(default_factory=lambda: env_int("SUBMIT_ATTEMPTS", 3))
    submit_retry_delay_sec: float = field(default_factory=lambda: env_float("SUBMIT_RETRY_DELAY_SEC", 1.0))
    confirm_timeout_sec: float = field(default_factory=lambda: env_float("CONFIRM_TIMEOUT_SEC", 30.0))
    restart_delay_sec: float = 5.0

    def __post_init__(self) -> None:
        if not self.solana_rpc_url.strip():
            raise ValueError("solana_rpc_url must be non-empty")
        if not self.target_wallet:
            raise ValueError("TARGET_WALLET must be set")
        for name, value in (("TARGET_WALLET", self.target_wallet), ("PUMP_PROGRAM_ID", self.pump_program_id)):
            try:
                Pubkey.from_string(value)
            except ValueError as e:
                raise ValueError(f"{name} is not a valid base58 address: {value!r}") from e
        try:
            self.copy_ratio = Decimal(str(self.copy_ratio))
        except InvalidOperation as e:
            raise ValueError(f"COPY_RATIO must be a decimal, got {self.copy_ratio!r}") from e
        if not self.copy_ratio.is_finite() or not (0 <= self.copy_ratio <= 1):
            raise ValueError("COPY_RATIO must be between 0 and 1")
        if self.source_mode not in SOURCE_MODES:
            raise ValueError(f"SOURCE_MODE must be one of {SOURCE_MODES}, got {self.source_mode!r}")
        if self.source_mode == "stream" and not self.stream_url:
            raise ValueError("SOURCE_MODE=stream needs STREAM_URL (or HELIUS_API_KEY)")
        if self.poll_interval_sec <= 0:
            raise ValueError("POLL_INTERVAL_SEC must be positive")
        if not (1 <= self.signatures_window <= 1000):
            raise ValueError("SIGNATURES_WINDOW must be between 1 and 1000")
        if not (0 <= self.slippage_bps < 10_000):
            raise ValueError("SLIPPAGE_BPS must be in [0, 10000)")
        if self.submit_attempts < 1:
            raise ValueError("SUBMIT_ATTEMPTS must be >= 1")
        if self.request_timeout_sec <= 0:
            raise ValueError("REQUEST_TIMEOUT_SEC must be positive")

    @property
    def program_id(self) -> Pubkey:
        return Pubkey.from_string(self.pump_program_id)


@lru_cache(maxsize=1)
def get_settings() -> MirrorSettings:
    """Return the process-wide settings, built from the environment on first call."""
    return MirrorSettings()
