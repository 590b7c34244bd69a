"""
Exceptions raised by the transit computation.

Numerical-contract violations abort the run; their messages carry the
physical quantities needed to diagnose the offending atmosphere or line
list.
"""


class TransitError(Exception):
    """Base class for transit computation errors."""
    pass


class InvalidWidthError(TransitError, ValueError):
    """Raised when Doppler/Lorentz widths give a non-positive profile size."""
    pass


class AllocationError(TransitError, MemoryError):
    """Raised when an extinction or work array cannot be allocated."""
    pass


class ConvergenceFailure(TransitError, RuntimeError):
    """Raised when the bent-ray tangent radius iteration does not converge."""
    pass


class InsufficientSamplesError(TransitError, ValueError):
    """Raised when fewer than three points are available for a spline."""
    pass


class TangentRadiusError(TransitError, ValueError):
    """Raised when a ray's tangent radius lies below the sampled atmosphere."""
    pass


class OpacityTableRangeError(TransitError, ValueError):
    """Raised when a layer temperature falls outside the opacity table."""
    pass


class CheckpointError(TransitError):
    """Base class for extinction checkpoint errors."""
    pass


class CorruptCheckpointError(CheckpointError):
    """Raised when a checkpoint file has a bad tag, header or payload size."""
    pass
