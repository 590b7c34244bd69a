"""
Extinction from a precomputed opacity table.

Alternative to the line-by-line builder: each layer's extinction is the
density-weighted sum over molecules of cross sections linearly
interpolated in temperature.
"""

import logging

import numpy as np

from transit_rt.core.atmosphere import AtmosphereLayers
from transit_rt.core.errors import OpacityTableRangeError
from transit_rt.core.extinction import ExtinctionGrid
from transit_rt.data.opacity_table import OpacityTable

logger = logging.getLogger(__name__)


def temperature_bracket(temperatures: np.ndarray, temperature: float) -> int:
    """Index ``i`` with ``temperatures[i] <= temperature < temperatures[i+1]``.

    The upper table edge maps to the last interval.

    Raises:
        OpacityTableRangeError: If the temperature lies outside the table
    """
    t_min, t_max = temperatures[0], temperatures[-1]
    if not (t_min <= temperature <= t_max):
        raise OpacityTableRangeError(
            f"Temperature {temperature:.2f}K outside the opacity table "
            f"range [{t_min:.2f}, {t_max:.2f}]K"
        )
    if len(temperatures) == 1:
        return 0
    index = int(np.searchsorted(temperatures, temperature, side="right")) - 1
    return min(index, len(temperatures) - 2)


def interpolate_layer_extinction(
    layer: int,
    table: OpacityTable,
    atmosphere: AtmosphereLayers,
    extinction: ExtinctionGrid,
) -> None:
    """Fill one layer row from the opacity table.

    Args:
        layer: Layer index
        table: Precomputed opacity table
        atmosphere: Atmospheric layers (temperatures and densities)
        extinction: Grid receiving the row

    Raises:
        OpacityTableRangeError: If the layer temperature is outside the table
        KeyError: If a tabulated molecule is missing from the atmosphere
    """
    temperature = atmosphere.temperature[layer]
    itemp = temperature_bracket(table.temperature, temperature)

    row = np.zeros(extinction.num_wavenumbers)
    for imol, name in enumerate(table.molecules):
        density = atmosphere.molecules.density[atmosphere.molecules.index(name), layer]
        low = table.opacity[imol, itemp, layer]
        if len(table.temperature) == 1:
            cross_section = low
        else:
            high = table.opacity[imol, itemp + 1, layer]
            t_low = table.temperature[itemp]
            t_high = table.temperature[itemp + 1]
            cross_section = low + (high - low) * (temperature - t_low) / (t_high - t_low)
        row += density * cross_section

    extinction.write_row(layer, row)
    logger.debug(f"Layer {layer}: interpolated extinction at T={temperature:.1f}K")
