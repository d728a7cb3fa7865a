"""
Solana RPC access — async JSON-RPC client used by the listener, market
reader and executor.
"""

from curve_mirror.rpc.client import SolanaRpcClient

__all__ = ["SolanaRpcClient"]
