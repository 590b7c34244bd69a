"""
Transit run configuration data structures.

Defines the configuration schema of a transit computation: threading and
checkpointing, wavenumber sampling, extinction mode and its tunables,
ray geometry, and output files.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
import json
import yaml

from transit_rt.core.constants import (
    DEFAULT_ETHRESH,
    DEFAULT_N_DOPPLER,
    DEFAULT_N_LORENTZ,
    DEFAULT_TIMES_ALPHA,
    DEFAULT_TOOMUCH,
    MIN_IMPACT_PARAMETERS,
    SOLAR_RADIUS,
    VOIGT_QUICK_THRESHOLD,
)

VALID_OPACITY_MODES = ["LINES", "GRID"]
VALID_RAY_SOLUTIONS = ["STRAIGHT", "BENT"]


@dataclass
class SystemConfig:
    """System-level configuration settings.

    Attributes:
        num_threads: Number of worker threads for the layer computation
        checkpoint_path: Extinction checkpoint file (None disables checkpointing)
    """
    num_threads: int = 4
    checkpoint_path: Optional[str] = None


@dataclass
class SpectralConfig:
    """Wavenumber sampling.

    Attributes:
        initial_wavenumber: First output wavenumber in cm^-1
        final_wavenumber: Last output wavenumber in cm^-1
        spacing: Output grid spacing in cm^-1
        oversampling: Oversampling factor of the line-placement grid
    """
    initial_wavenumber: float = 2000.0
    final_wavenumber: float = 2100.0
    spacing: float = 0.1
    oversampling: int = 10


@dataclass
class OpacityConfig:
    """Extinction computation settings.

    Attributes:
        mode: LINES (line-by-line builder) or GRID (precomputed table)
        ethresh: Lines weaker than ethresh times the strongest line are skipped
        times_alpha: Voigt profile half extent in units of the largest width
        n_doppler: Number of Doppler width samples of the profile table
        n_lorentz: Number of Lorentz width samples of the profile table
        doppler_range: (min, max) Doppler width in cm^-1, derived from the atmosphere if None
        lorentz_range: (min, max) Lorentz width in cm^-1, derived from the atmosphere if None
        quick_threshold: Profile sample count above which a quick approximation is used
        table_path: HDF5 opacity table for GRID mode
    """
    mode: str = "LINES"
    ethresh: float = DEFAULT_ETHRESH
    times_alpha: float = DEFAULT_TIMES_ALPHA
    n_doppler: int = DEFAULT_N_DOPPLER
    n_lorentz: int = DEFAULT_N_LORENTZ
    doppler_range: Optional[List[float]] = None
    lorentz_range: Optional[List[float]] = None
    quick_threshold: int = VOIGT_QUICK_THRESHOLD
    table_path: Optional[str] = None


@dataclass
class GeometryConfig:
    """Transit geometry.

    Attributes:
        ray_solution: STRAIGHT or BENT ray paths
        star_radius: Stellar radius in cm
        toomuch: Optical depth beyond which rays are treated as opaque
        num_impact_parameters: Number of evenly spaced impact parameters
            (None uses one ray per layer)
    """
    ray_solution: str = "STRAIGHT"
    star_radius: float = SOLAR_RADIUS
    toomuch: float = DEFAULT_TOOMUCH
    num_impact_parameters: Optional[int] = None


@dataclass
class OutputConfig:
    """Output files.

    Attributes:
        modulation_path: Modulation spectrum file ("-" for standard output)
        extinction_table: Diagnostic extinction table file
        extinction_layer: Layer written to the extinction table
    """
    modulation_path: Optional[str] = None
    extinction_table: Optional[str] = None
    extinction_layer: int = 0


@dataclass
class TransitConfig:
    """Complete transit run configuration.

    Example YAML input:
        system: {num_threads: 8, checkpoint_path: ./extinction.bin}
        spectral: {initial_wavenumber: 2000, final_wavenumber: 2100, spacing: 0.1, oversampling: 10}
        opacity: {mode: LINES, ethresh: 1.0e-6}
        geometry: {ray_solution: STRAIGHT, star_radius: 6.957e10}
    """
    system: SystemConfig = field(default_factory=SystemConfig)
    spectral: SpectralConfig = field(default_factory=SpectralConfig)
    opacity: OpacityConfig = field(default_factory=OpacityConfig)
    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "TransitConfig":
        """Create TransitConfig from a dictionary.

        Missing sections and keys take their defaults.

        Args:
            config_dict: Configuration dictionary

        Returns:
            TransitConfig instance
        """
        config_dict = config_dict or {}

        sys_dict = config_dict.get("system", {})
        system = SystemConfig(
            num_threads=sys_dict.get("num_threads", 4),
            checkpoint_path=sys_dict.get("checkpoint_path"),
        )

        spec_dict = config_dict.get("spectral", {})
        spectral = SpectralConfig(
            initial_wavenumber=spec_dict.get("initial_wavenumber", 2000.0),
            final_wavenumber=spec_dict.get("final_wavenumber", 2100.0),
            spacing=spec_dict.get("spacing", 0.1),
            oversampling=spec_dict.get("oversampling", 10),
        )

        op_dict = config_dict.get("opacity", {})
        opacity = OpacityConfig(
            mode=str(op_dict.get("mode", "LINES")).upper(),
            ethresh=op_dict.get("ethresh", DEFAULT_ETHRESH),
            times_alpha=op_dict.get("times_alpha", DEFAULT_TIMES_ALPHA),
            n_doppler=op_dict.get("n_doppler", DEFAULT_N_DOPPLER),
            n_lorentz=op_dict.get("n_lorentz", DEFAULT_N_LORENTZ),
            doppler_range=op_dict.get("doppler_range"),
            lorentz_range=op_dict.get("lorentz_range"),
            quick_threshold=op_dict.get("quick_threshold", VOIGT_QUICK_THRESHOLD),
            table_path=op_dict.get("table_path"),
        )

        geom_dict = config_dict.get("geometry", {})
        geometry = GeometryConfig(
            ray_solution=str(geom_dict.get("ray_solution", "STRAIGHT")).upper(),
            star_radius=geom_dict.get("star_radius", SOLAR_RADIUS),
            toomuch=geom_dict.get("toomuch", DEFAULT_TOOMUCH),
            num_impact_parameters=geom_dict.get("num_impact_parameters"),
        )

        out_dict = config_dict.get("output", {})
        output = OutputConfig(
            modulation_path=out_dict.get("modulation_path"),
            extinction_table=out_dict.get("extinction_table"),
            extinction_layer=out_dict.get("extinction_layer", 0),
        )

        return cls(
            system=system,
            spectral=spectral,
            opacity=opacity,
            geometry=geometry,
            output=output,
        )

    @classmethod
    def from_json(cls, json_path: str) -> "TransitConfig":
        """Load configuration from a JSON file."""
        with open(json_path, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "TransitConfig":
        """Load configuration from a YAML file."""
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f)
        return cls.from_dict(config_dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a nested dictionary."""
        return {
            "system": {
                "num_threads": self.system.num_threads,
                "checkpoint_path": self.system.checkpoint_path,
            },
            "spectral": {
                "initial_wavenumber": self.spectral.initial_wavenumber,
                "final_wavenumber": self.spectral.final_wavenumber,
                "spacing": self.spectral.spacing,
                "oversampling": self.spectral.oversampling,
            },
            "opacity": {
                "mode": self.opacity.mode,
                "ethresh": self.opacity.ethresh,
                "times_alpha": self.opacity.times_alpha,
                "n_doppler": self.opacity.n_doppler,
                "n_lorentz": self.opacity.n_lorentz,
                "doppler_range": self.opacity.doppler_range,
                "lorentz_range": self.opacity.lorentz_range,
                "quick_threshold": self.opacity.quick_threshold,
                "table_path": self.opacity.table_path,
            },
            "geometry": {
                "ray_solution": self.geometry.ray_solution,
                "star_radius": self.geometry.star_radius,
                "toomuch": self.geometry.toomuch,
                "num_impact_parameters": self.geometry.num_impact_parameters,
            },
            "output": {
                "modulation_path": self.output.modulation_path,
                "extinction_table": self.output.extinction_table,
                "extinction_layer": self.output.extinction_layer,
            },
        }

    def to_yaml(self, yaml_path: str) -> None:
        """Save configuration to a YAML file."""
        with open(yaml_path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)

    def validate(self) -> list:
        """Validate configuration parameters.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.system.num_threads < 1:
            errors.append("num_threads must be at least 1")

        # Wavenumber sampling
        if self.spectral.initial_wavenumber >= self.spectral.final_wavenumber:
            errors.append("initial_wavenumber must be less than final_wavenumber")
        if self.spectral.spacing <= 0:
            errors.append("wavenumber spacing must be positive")
        if int(self.spectral.oversampling) != self.spectral.oversampling or self.spectral.oversampling < 1:
            errors.append("oversampling must be a positive integer")

        # Extinction
        if self.opacity.mode not in VALID_OPACITY_MODES:
            errors.append(f"Invalid opacity mode: {self.opacity.mode}")
        if self.opacity.mode == "GRID" and not self.opacity.table_path:
            errors.append("GRID opacity mode requires table_path")
        if self.opacity.ethresh < 0:
            errors.append("ethresh must be non-negative")
        if self.opacity.times_alpha <= 0:
            errors.append("times_alpha must be positive")
        if self.opacity.n_doppler < 1 or self.opacity.n_lorentz < 1:
            errors.append("Voigt table needs at least one width sample per axis")
        for name in ["doppler_range", "lorentz_range"]:
            width_range = getattr(self.opacity, name)
            if width_range is not None:
                if len(width_range) != 2 or not (0 < width_range[0] <= width_range[1]):
                    errors.append(f"{name} must be (min, max) with 0 < min <= max")

        # Geometry
        if self.geometry.ray_solution not in VALID_RAY_SOLUTIONS:
            errors.append(f"Invalid ray solution: {self.geometry.ray_solution}")
        if self.geometry.star_radius <= 0:
            errors.append("star_radius must be positive")
        if self.geometry.toomuch <= 0:
            errors.append("toomuch must be positive")
        n_ip = self.geometry.num_impact_parameters
        if n_ip is not None and n_ip < MIN_IMPACT_PARAMETERS:
            errors.append(f"num_impact_parameters must be at least {MIN_IMPACT_PARAMETERS}")

        return errors
