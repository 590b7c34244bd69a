"""
Binary checkpoint of the extinction grid.

File layout (little endian, no padding):

    b"@E@S@"                          5-byte tag
    int64 n_layers, int16 n_isotopes,
    int64 n_wavenumbers               optional metadata record
    float64[n_layers * n_wavenumbers] extinction, row major
    bool[n_layers]                    computed flags

A saved grid lets an interrupted run skip the layers already computed.
"""

import logging
import os
import struct
import tempfile
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import numpy as np

from transit_rt.core.constants import (
    CHECKPOINT_MAGIC,
    CHECKPOINT_MAX_ISOTOPES,
    CHECKPOINT_MAX_SAMPLES,
)
from transit_rt.core.errors import CorruptCheckpointError
from transit_rt.core.extinction import ExtinctionGrid

logger = logging.getLogger(__name__)

HEADER_FORMAT = "<qhq"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)


class RestoreStatus(Enum):
    """Outcome of a checkpoint restore."""
    RESTORED = "restored"
    NOT_FOUND = "not_found"


def _payload_size(num_layers: int, num_wavenumbers: int) -> int:
    return num_layers * num_wavenumbers * 8 + num_layers


def save_extinction(
    path: Union[str, Path],
    grid: ExtinctionGrid,
    num_isotopes: Optional[int] = None,
) -> bool:
    """Write the extinction grid to a checkpoint file.

    The file is written to a temporary sibling and then moved over the
    target, so an existing checkpoint is never left half written. A path
    that cannot be written, or an isotope count the metadata record cannot
    hold, is reported and skipped.

    Args:
        path: Checkpoint file
        grid: Extinction grid
        num_isotopes: If given, a metadata record is written

    Returns:
        True if the checkpoint was written
    """
    path = Path(path)
    num_layers, num_wavenumbers = grid.shape

    extinction, computed = grid.snapshot()
    extinction = extinction.astype("<f8")

    chunks = [CHECKPOINT_MAGIC]
    if num_isotopes is not None:
        if not (0 < num_isotopes <= CHECKPOINT_MAX_ISOTOPES):
            logger.warning(
                f"Not writing extinction checkpoint {path}: isotope count "
                f"{num_isotopes} outside the storable range 1-{CHECKPOINT_MAX_ISOTOPES}"
            )
            return False
        chunks.append(struct.pack(HEADER_FORMAT, num_layers, num_isotopes, num_wavenumbers))
    chunks.append(extinction.tobytes(order="C"))
    chunks.append(computed.tobytes())

    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "wb") as f:
            for chunk in chunks:
                f.write(chunk)
        os.replace(tmp_name, path)
    except OSError as e:
        logger.warning(f"Could not write extinction checkpoint {path}: {e}")
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        return False

    logger.info(
        f"Saved extinction checkpoint {path} "
        f"({int(computed.sum())}/{num_layers} layers computed)"
    )
    return True


def restore_extinction(
    path: Union[str, Path],
    grid: ExtinctionGrid,
    num_isotopes: Optional[int] = None,
) -> RestoreStatus:
    """Load a checkpoint file into the extinction grid.

    The file is fully validated before the grid is modified.

    Args:
        path: Checkpoint file
        grid: Extinction grid to fill; its shape is the expected shape
        num_isotopes: Expected isotope count; a metadata record is then required

    Returns:
        RestoreStatus.RESTORED, or RestoreStatus.NOT_FOUND for a missing file

    Raises:
        CorruptCheckpointError: On a bad tag, metadata or payload size
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Extinction checkpoint {path} not found, computing from scratch")
        return RestoreStatus.NOT_FOUND

    data = path.read_bytes()
    num_layers, num_wavenumbers = grid.shape

    tag_size = len(CHECKPOINT_MAGIC)
    if data[:tag_size] != CHECKPOINT_MAGIC:
        raise CorruptCheckpointError(
            f"{path}: missing checkpoint tag, found {data[:tag_size]!r}"
        )
    pos = tag_size

    if num_isotopes is not None:
        if len(data) < pos + HEADER_SIZE:
            raise CorruptCheckpointError(f"{path}: truncated metadata record")
        nrad, niso, nwn = struct.unpack_from(HEADER_FORMAT, data, pos)
        pos += HEADER_SIZE
        if not (0 < niso <= CHECKPOINT_MAX_ISOTOPES):
            raise CorruptCheckpointError(
                f"{path}: implausible isotope count {niso} "
                f"(limit {CHECKPOINT_MAX_ISOTOPES})"
            )
        if not (0 < nrad <= CHECKPOINT_MAX_SAMPLES and 0 < nwn <= CHECKPOINT_MAX_SAMPLES):
            raise CorruptCheckpointError(
                f"{path}: implausible grid size {nrad}x{nwn} "
                f"(limit {CHECKPOINT_MAX_SAMPLES})"
            )
        if (nrad, niso, nwn) != (num_layers, num_isotopes, num_wavenumbers):
            raise CorruptCheckpointError(
                f"{path}: checkpoint is for {nrad} layers, {niso} isotopes, "
                f"{nwn} wavenumbers; expected {num_layers}, {num_isotopes}, "
                f"{num_wavenumbers}"
            )

    expected = pos + _payload_size(num_layers, num_wavenumbers)
    if len(data) != expected:
        raise CorruptCheckpointError(
            f"{path}: size {len(data)} bytes, expected {expected}"
        )

    n_values = num_layers * num_wavenumbers
    extinction = np.frombuffer(data, dtype="<f8", count=n_values, offset=pos)
    computed = np.frombuffer(data, dtype="?", count=num_layers, offset=pos + 8 * n_values)

    grid.load(extinction.reshape(num_layers, num_wavenumbers), computed)

    logger.info(
        f"Restored extinction checkpoint {path} "
        f"({int(computed.sum())}/{num_layers} layers computed)"
    )
    return RestoreStatus.RESTORED
