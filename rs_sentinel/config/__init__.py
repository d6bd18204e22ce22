"""Configuration — Pydantic schema and YAML loader."""

from rs_sentinel.config.loader import load_config, validate_config
from rs_sentinel.config.schema import RsSentinelConfig

__all__ = [
    "RsSentinelConfig",
    "load_config",
    "validate_config",
]
