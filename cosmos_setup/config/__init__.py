"""
Configuration Package
====================

Configuration keys and lookups for Cosmos database setup.

Usage:
    from cosmos_setup.config import ConfigSource, DATABASE_NAME_KEY

    config = ConfigSource()
    name = config.get_strict(DATABASE_NAME_KEY)
"""

from .cosmos_config import (
    ACCOUNT_KEY_KEY,
    DATABASE_NAME_KEY,
    DATABASE_THROUGHPUT_KEY,
    DATABASE_THROUGHPUT_MODE_KEY,
    ENDPOINT_KEY,
    REPLACE_THROUGHPUT_KEY,
    ConfigSource,
    env_var_name,
    validate_cosmos_settings,
)

__all__ = [
    "ACCOUNT_KEY_KEY",
    "DATABASE_NAME_KEY",
    "DATABASE_THROUGHPUT_KEY",
    "DATABASE_THROUGHPUT_MODE_KEY",
    "ENDPOINT_KEY",
    "REPLACE_THROUGHPUT_KEY",
    "ConfigSource",
    "env_var_name",
    "validate_cosmos_settings",
]
