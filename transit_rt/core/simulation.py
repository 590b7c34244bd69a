"""
Transit simulation driver.

Orchestrates a complete transit computation:
- Wavenumber sampling and Voigt profile table setup
- Per-layer extinction (line-by-line or opacity-table interpolation)
- Checkpoint restore/save of the extinction grid
- Optical depth per impact parameter and the modulation spectrum
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from transit_rt.config.settings import TransitConfig
from transit_rt.core.atmosphere import AtmosphereLayers, Isotopes
from transit_rt.core.checkpoint import RestoreStatus, restore_extinction, save_extinction
from transit_rt.core.constants import MIN_IMPACT_PARAMETERS
from transit_rt.core.errors import InvalidWidthError
from transit_rt.core.extinction import (
    ExtinctionGrid,
    LayerStatistics,
    OpacityGridBuilder,
    layer_widths,
)
from transit_rt.core.interpolation import interpolate_layer_extinction
from transit_rt.core.lines import LineTransitions
from transit_rt.core.modulation import modulation, optical_depth_curve
from transit_rt.core.slantpath import RaySolution
from transit_rt.core.voigt import VoigtProfileTable
from transit_rt.core.wavenumber import WavenumberGrid
from transit_rt.data.opacity_table import OpacityTable

logger = logging.getLogger(__name__)


@dataclass
class TransitResult:
    """Transit computation results.

    Attributes:
        wavenumber: Output wavenumber grid [cm^-1]
        modulation: Transmitted fraction of the stellar flux per wavenumber
        extinction: Extinction grid [cm^-1], shape (n_layers, n_wavenumbers)
        layer_statistics: Line-by-line statistics of the layers computed in this run
        config: Configuration used
        metadata: Additional information about the run
    """
    wavenumber: np.ndarray
    modulation: np.ndarray
    extinction: np.ndarray
    layer_statistics: List[LayerStatistics]
    config: TransitConfig
    metadata: Dict[str, Any]

    @property
    def transit_depth(self) -> np.ndarray:
        """Fraction of the stellar flux blocked, 1 - modulation."""
        return 1.0 - self.modulation

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            "wavenumber": self.wavenumber.tolist(),
            "modulation": self.modulation.tolist(),
            "metadata": self.metadata,
        }


class TransitSimulation:
    """Transit spectrum of a planetary atmosphere.

    The simulation object owns every piece of run state: the wavenumber
    grid, the Voigt profile table, the extinction grid and the ray
    geometry. Inputs are treated as read-only.

    Example:
        >>> sim = TransitSimulation(config, atmosphere, isotopes, lines)
        >>> result = sim.run()
        >>> print(f"Deepest transit: {result.transit_depth.max():.4f}")
    """

    def __init__(
        self,
        config: Union[Dict[str, Any], str, TransitConfig],
        atmosphere: AtmosphereLayers,
        isotopes: Isotopes,
        lines: Optional[LineTransitions] = None,
        opacity_table: Optional[OpacityTable] = None,
    ):
        """Initialize the simulation.

        Args:
            config: Configuration dictionary, YAML/JSON path, or TransitConfig
            atmosphere: Atmospheric layers
            isotopes: Isotope table
            lines: Sorted line transitions (LINES mode)
            opacity_table: Precomputed opacity table (GRID mode); read from
                the configured path if not given

        Raises:
            ValueError: If the configuration is invalid
        """
        if isinstance(config, TransitConfig):
            self.config = config
        elif isinstance(config, dict):
            self.config = TransitConfig.from_dict(config)
        elif isinstance(config, (str, Path)):
            if Path(config).suffix.lower() in (".yaml", ".yml"):
                self.config = TransitConfig.from_yaml(str(config))
            else:
                self.config = TransitConfig.from_json(str(config))
        else:
            raise TypeError(f"Invalid config type: {type(config)}")

        errors = self.config.validate()
        if self.config.opacity.mode == "GRID" and opacity_table is not None:
            errors = [e for e in errors if "table_path" not in e]
        if self.config.opacity.mode == "LINES" and lines is None:
            errors.append("LINES opacity mode requires line transitions")
        if errors:
            raise ValueError("Invalid configuration: " + "; ".join(errors))

        self.atmosphere = atmosphere
        self.isotopes = isotopes
        self.lines = lines

        spectral = self.config.spectral
        self.grid = WavenumberGrid(
            initial=spectral.initial_wavenumber,
            final=spectral.final_wavenumber,
            spacing=spectral.spacing,
            oversampling=spectral.oversampling,
        )
        self.ray_solution = RaySolution[self.config.geometry.ray_solution]
        self.extinction = ExtinctionGrid.allocate(
            atmosphere.num_layers, self.grid.num_points, isotopes.num_isotopes
        )

        # Built lazily
        self._opacity_table = opacity_table
        self._profile_table = None
        self._builder = None

    @property
    def opacity_table(self) -> OpacityTable:
        """Get or load the precomputed opacity table (lazy initialization)."""
        if self._opacity_table is None:
            self._opacity_table = OpacityTable.from_hdf5(self.config.opacity.table_path)
        self._opacity_table.check_compatible(self.atmosphere.num_layers, self.grid.num_points)
        return self._opacity_table

    @property
    def profile_table(self) -> VoigtProfileTable:
        """Get or create the Voigt profile table (lazy initialization)."""
        if self._profile_table is None:
            op = self.config.opacity
            doppler_range = op.doppler_range or self._width_range("doppler")
            lorentz_range = op.lorentz_range or self._width_range("lorentz")
            self._profile_table = VoigtProfileTable.for_widths(
                tuple(doppler_range),
                tuple(lorentz_range),
                self.grid.oversampled_spacing,
                n_doppler=op.n_doppler,
                n_lorentz=op.n_lorentz,
                widths_in_alpha=op.times_alpha,
                max_half_size=self.grid.num_oversampled,
                quick_threshold=op.quick_threshold,
            )
        return self._profile_table

    @property
    def builder(self) -> OpacityGridBuilder:
        """Get or create the line-by-line builder (lazy initialization)."""
        if self._builder is None:
            self._builder = OpacityGridBuilder(
                self.atmosphere,
                self.isotopes,
                self.lines,
                self.grid,
                self.profile_table,
                ethresh=self.config.opacity.ethresh,
            )
        return self._builder

    def _width_range(self, kind: str) -> tuple:
        """(min, max) positive line width over all layers and isotopes [cm^-1].

        Zero widths (no collisional broadening in a vacuum layer) are left
        out; such lines take the narrowest tabulated profile.
        """
        lo, hi = np.inf, 0.0
        for layer in range(self.atmosphere.num_layers):
            lorentz, doppler_per_wn = layer_widths(self.atmosphere, self.isotopes, layer)
            if kind == "lorentz":
                widths = lorentz
            else:
                widths = np.concatenate([
                    doppler_per_wn * self.grid.initial,
                    doppler_per_wn * self.grid.last_oversampled,
                ])
            widths = widths[widths > 0]
            if len(widths):
                lo = min(lo, float(widths.min()))
                hi = max(hi, float(widths.max()))
        if not np.isfinite(lo):
            raise InvalidWidthError(
                f"No positive {kind} width in any of the "
                f"{self.atmosphere.num_layers} layers"
            )
        return lo, hi

    def impact_parameters(self) -> np.ndarray:
        """Impact parameters of the rays, descending [cm].

        One ray per layer tangent point by default, or an evenly spaced set
        when ``geometry.num_impact_parameters`` is configured. Atmospheres
        with fewer layers than the modulation integral needs are resampled
        to ``MIN_IMPACT_PARAMETERS`` rays.
        """
        radius = self.atmosphere.radius
        if self.ray_solution is RaySolution.STRAIGHT:
            b = radius * self.atmosphere.refractivity[0]
        else:
            b = radius * self.atmosphere.refractivity

        n_ip = self.config.geometry.num_impact_parameters
        if n_ip is None:
            if len(b) >= MIN_IMPACT_PARAMETERS:
                return b[::-1].copy()
            n_ip = MIN_IMPACT_PARAMETERS
        return np.linspace(b[-1], b[0], n_ip)

    def compute_extinction(self) -> List[LayerStatistics]:
        """Fill every missing layer of the extinction grid.

        A configured checkpoint is restored first and saved afterwards,
        also when the computation fails part way.

        Returns:
            Statistics of the layers computed line by line in this call
        """
        checkpoint = self.config.system.checkpoint_path
        n_iso = self.isotopes.num_isotopes
        if checkpoint:
            status = restore_extinction(checkpoint, self.extinction, n_iso)
            if status is RestoreStatus.RESTORED:
                logger.info(f"Resuming from checkpoint {checkpoint}")

        missing = self.extinction.missing_layers()
        logger.info(
            f"Computing extinction of {len(missing)}/{self.atmosphere.num_layers} layers "
            f"({self.config.opacity.mode} mode, {self.grid.num_points} wavenumbers)"
        )

        stats: List[LayerStatistics] = []
        try:
            if not missing:
                return stats
            if self.config.opacity.mode == "GRID":
                table = self.opacity_table
                for layer in missing:
                    interpolate_layer_extinction(layer, table, self.atmosphere, self.extinction)
            else:
                builder = self.builder
                with ThreadPoolExecutor(max_workers=self.config.system.num_threads) as pool:
                    futures = [
                        pool.submit(builder.compute_layer_extinction, layer, self.extinction)
                        for layer in missing
                    ]
                    for future in futures:
                        stats.append(future.result())
        finally:
            if checkpoint:
                save_extinction(checkpoint, self.extinction, n_iso)

        return stats

    def compute_modulation(self) -> np.ndarray:
        """Modulation spectrum from the completed extinction grid."""
        geom = self.config.geometry
        ip = self.impact_parameters()
        radius = self.atmosphere.radius
        refractivity = self.atmosphere.refractivity

        result = np.zeros(self.grid.num_points)
        for i in range(self.grid.num_points):
            curve = optical_depth_curve(
                self.ray_solution,
                ip,
                radius,
                refractivity,
                self.extinction.wavenumber_column(i),
                toomuch=geom.toomuch,
            )
            result[i] = modulation(curve.tau, curve.last, geom.toomuch, ip, geom.star_radius)
        return result

    def run(self) -> TransitResult:
        """Run the transit computation.

        Returns:
            TransitResult with the modulation spectrum
        """
        logger.info(
            f"Running transit: {self.grid.initial}-{self.grid.final} cm^-1, "
            f"{self.atmosphere.num_layers} layers, {self.ray_solution.value} rays"
        )

        stats = self.compute_extinction()
        spectrum = self.compute_modulation()

        out = self.config.output
        if out.extinction_table or out.modulation_path:
            from transit_rt.utils.output import write_extinction_table, write_modulation_spectrum
            if out.extinction_table:
                layer = out.extinction_layer
                write_extinction_table(
                    out.extinction_table,
                    self.grid.values,
                    self.extinction.extinction[layer],
                    self.atmosphere.molecules.density[:, layer].sum(),
                )
            if out.modulation_path:
                write_modulation_spectrum(out.modulation_path, self.grid.values, spectrum)

        metadata = {
            "opacity_mode": self.config.opacity.mode,
            "ray_solution": self.ray_solution.value,
            "num_layers": self.atmosphere.num_layers,
            "num_wavenumbers": self.grid.num_points,
            "num_impact_parameters": len(self.impact_parameters()),
            "num_lines": self.lines.num_lines if self.lines is not None else 0,
        }

        return TransitResult(
            wavenumber=self.grid.values,
            modulation=spectrum,
            extinction=self.extinction.extinction.copy(),
            layer_statistics=sorted(stats, key=lambda s: s.layer),
            config=self.config,
            metadata=metadata,
        )
