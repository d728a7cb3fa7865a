"""
Environment variable loading for curve-mirror.

- SOLANA_RPC_URL: RPC endpoint (read from .env)
- HELIUS_API_KEY: Helius API key (fallback for the RPC URL and the stream URL)
- TARGET_WALLET: wallet whose pump.fun trades are mirrored
- MIRROR_PRIVATE_KEY: bot signing key, base58 string or JSON array of 64 bytes
- PUMP_PROGRAM_ID: bonding-curve program (default: pump.fun mainnet)
- Loads .env from project root when available.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import base58
from dotenv import load_dotenv
from solders.keypair import Keypair

from curve_mirror.mirror_logging import get_logger

logger = get_logger(__name__)

# Project root: config is curve_mirror/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"
HELIUS_STREAM_URL_TEMPLATE = "wss://atlas-mainnet.helius-rpc.com/?api-key={key}"

_TRUE_VALUES = ("1", "true", "yes", "on")


def load_mirror_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides set variables."""
    load_dotenv(_ENV_PATH)


def env_str(name: str, default: str = "") -> str:
    load_mirror_env()
    return (os.getenv(name) or default).strip()


def env_bool(name: str, default: bool = False) -> bool:
    raw = env_str(name)
    if not raw:
        return default
    return raw.lower() in _TRUE_VALUES


def env_int(name: str, default: int) -> int:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def env_float(name: str, default: float) -> float:
    raw = env_str(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def get_solana_rpc_url() -> str:
    """
    Resolve Solana RPC URL from env.
    Order: SOLANA_RPC_URL > HELIUS_API_KEY > public mainnet.
    """
    url = env_str("SOLANA_RPC_URL")
    if url:
        return url
    key = env_str("HELIUS_API_KEY")
    if key:
        return HELIUS_MAINNET_URL_TEMPLATE.format(key=key)
    return MAINNET_RPC_URL


def get_stream_url() -> str:
    """
    Resolve the push feed URL. Order: STREAM_URL > HELIUS_API_KEY > "" (not configured).
    """
    url = env_str("STREAM_URL")
    if url:
        return url
    key = env_str("HELIUS_API_KEY")
    if key:
        return HELIUS_STREAM_URL_TEMPLATE.format(key=key)
    return ""


def load_keypair(private_key: str) -> Keypair:
    """Load Keypair from a base58 string or a JSON array of 64 bytes."""
    raw = private_key.strip()
    if not raw:
        raise ValueError("MIRROR_PRIVATE_KEY is not set")
    if raw.startswith("["):
        try:
            arr = json.loads(raw)
            return Keypair.from_bytes(bytes(arr[:64]))
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning("keypair_load_failed", format="json_array", error=str(e))
            raise ValueError("Invalid MIRROR_PRIVATE_KEY") from e
    try:
        return Keypair.from_bytes(base58.b58decode(raw))
    except ValueError as e:
        logger.warning("keypair_load_failed", format="base58", error=str(e))
        raise ValueError("Invalid MIRROR_PRIVATE_KEY") from e


def mask_secret_url(url: str) -> str:
    """Mask an api-key query value so the URL can be logged."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url


def print_mirror_startup(script_name: str) -> None:
    """Print RPC endpoint, target and program at script start (API keys masked)."""
    rpc = mask_secret_url(get_solana_rpc_url())
    target = env_str("TARGET_WALLET") or "<unset>"
    program_id = env_str("PUMP_PROGRAM_ID") or "<default>"
    print(f"[curve-mirror] {script_name} | target={target} | program_id={program_id} | rpc={rpc}")
