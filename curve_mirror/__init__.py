"""
curve-mirror — copy-trading agent for the pump.fun bonding-curve program.

Watches one target wallet's confirmed transactions, decodes the bonding-curve
buy/sell embedded in them, and mirrors each trade from a bot wallet with a
proportional size. Modular architecture with clear separation between
listener/ingestion (transaction sources), pump (program codec, addresses,
market state, instruction building) and agent worker (policy, executor,
monitor loop).
"""

__version__ = "0.1.0"
