"""
Data storage for transit-rt.

This module provides:
- OpacityTable: Precomputed per-molecule cross sections stored in HDF5
"""

from transit_rt.data.opacity_table import OpacityTable

__all__ = [
    "OpacityTable",
]
