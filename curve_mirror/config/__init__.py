"""
Configuration management for curve-mirror.

Loads and validates settings from environment variables and the optional
.env file. Exposes a single source of truth for all service configuration.
"""

from curve_mirror.config.env import load_keypair
from curve_mirror.config.settings import MirrorSettings, get_settings

__all__ = ["MirrorSettings", "get_settings", "load_keypair"]
