"""Configuration loading utilities for terragrid."""

from .schema import (
    GridRunConfig,
    load_config,
    validate_config,
)

__all__ = ["GridRunConfig", "load_config", "validate_config"]
