"""
pump.fun bonding-curve program constants (deployed mainnet ABI).

Discriminators are Anchor's sha256("global:<ix>")[:8] for instructions,
sha256("event:<Event>")[:8] for emitted events and sha256("account:<Acc>")[:8]
for account data, stored here as the little-endian u64 the wire carries.
"""

from __future__ import annotations

from solana.constants import LAMPORTS_PER_SOL, SYSTEM_PROGRAM_ID
from solders.pubkey import Pubkey
from solders.sysvar import RENT
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

PUMP_PROGRAM_ID_STR = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
PUMP_GLOBAL_STR = "4wTV1YmiEkRvAtNtsSGPtUrqRYQMe5SKy2uB4Jjaxnjf"
PUMP_FEE_RECIPIENT_STR = "CebN5WGQ4jvEPvsVU4EoHEpgzq1VV7AbicfhtW4xC9iM"
PUMP_EVENT_AUTHORITY_STR = "Ce6TQqeHC9p8KetsN6JsjHK7UTZk7nasjjnr7XxXp9F1"

PUMP_PROGRAM_ID = Pubkey.from_string(PUMP_PROGRAM_ID_STR)
PUMP_GLOBAL = Pubkey.from_string(PUMP_GLOBAL_STR)
PUMP_FEE_RECIPIENT = Pubkey.from_string(PUMP_FEE_RECIPIENT_STR)
PUMP_EVENT_AUTHORITY = Pubkey.from_string(PUMP_EVENT_AUTHORITY_STR)

# Instruction discriminators (u64 LE of 66063d1201daebea / 33e685a4017f83ad)
BUY_DISCRIMINATOR = 16927863322537952870
SELL_DISCRIMINATOR = 12502976635542562355
# TradeEvent emitted via "Program data:" (bddb7fd34ee661ee)
TRADE_EVENT_DISCRIMINATOR = int.from_bytes(bytes.fromhex("bddb7fd34ee661ee"), "little")
# BondingCurve account data prefix (17b7f83760d8ac60)
BONDING_CURVE_ACCOUNT_DISCRIMINATOR = 6966180631402821399

BONDING_CURVE_SEED = b"bonding-curve"

# Program charges 1% on the SOL side of every trade
PUMP_FEE_BPS = 100
BPS_DENOMINATOR = 10_000

__all__ = [
    "ASSOCIATED_TOKEN_PROGRAM_ID",
    "BONDING_CURVE_ACCOUNT_DISCRIMINATOR",
    "BONDING_CURVE_SEED",
    "BPS_DENOMINATOR",
    "BUY_DISCRIMINATOR",
    "LAMPORTS_PER_SOL",
    "PUMP_EVENT_AUTHORITY",
    "PUMP_FEE_BPS",
    "PUMP_FEE_RECIPIENT",
    "PUMP_GLOBAL",
    "PUMP_PROGRAM_ID",
    "PUMP_PROGRAM_ID_STR",
    "RENT",
    "SELL_DISCRIMINATOR",
    "SYSTEM_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "TRADE_EVENT_DISCRIMINATOR",
]
