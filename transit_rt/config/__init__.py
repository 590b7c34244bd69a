"""
Configuration for transit runs.

This module provides:
- TransitConfig: Top-level run configuration with YAML/JSON loading
- Section dataclasses for system, spectral, opacity, geometry and output settings
"""

from transit_rt.config.settings import (
    TransitConfig,
    SystemConfig,
    SpectralConfig,
    OpacityConfig,
    GeometryConfig,
    OutputConfig,
)

__all__ = [
    "TransitConfig",
    "SystemConfig",
    "SpectralConfig",
    "OpacityConfig",
    "GeometryConfig",
    "OutputConfig",
]
