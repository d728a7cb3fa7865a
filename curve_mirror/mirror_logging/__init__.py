"""
Structured logging for curve-mirror.

JSON logs with timestamp, event_type, mint, signature and direction.
Use get_logger() in all agent modules for aggregation-friendly output.
"""

from curve_mirror.mirror_logging.logger import bind_mint, get_logger

__all__ = ["bind_mint", "get_logger"]
