"""
Output utilities.
"""

from transit_rt.utils.output import (
    write_extinction_table,
    write_modulation_spectrum,
    save_result_json,
)

__all__ = [
    "write_extinction_table",
    "write_modulation_spectrum",
    "save_result_json",
]
