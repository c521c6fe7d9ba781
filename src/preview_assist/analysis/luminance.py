"""
Sampled Luminance Reader
========================

Bounds-checked reads of 8-bit luminance samples from a frame's primary
plane.

Offsets are computed as ``row * row_stride + col * pixel_stride``. A
sample whose offset falls outside the buffer is never read: the scalar
reader returns a default, and the grid reader returns the default together
with a mask so callers can skip the sample instead.
"""

from typing import Tuple

import numpy as np


def read_luminance(
    buffer: np.ndarray,
    row: int,
    col: int,
    row_stride: int,
    pixel_stride: int = 1,
    default: int = 0,
) -> int:
    """
    Read one luminance sample.

    Args:
        buffer: Flat uint8 plane buffer
        row: Pixel row
        col: Pixel column
        row_stride: Bytes per buffer row
        pixel_stride: Bytes per pixel within a row
        default: Value returned for out-of-range offsets

    Returns:
        Luminance in [0, 255], or ``default`` if the offset is out of range
    """
    offset = row * row_stride + col * pixel_stride
    if 0 <= offset < buffer.size:
        return int(buffer[offset]) & 0xFF
    return default


def read_luminance_grid(
    buffer: np.ndarray,
    rows: np.ndarray,
    cols: np.ndarray,
    row_stride: int,
    pixel_stride: int = 1,
    default: int = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Read luminance over the grid ``rows x cols``.

    Args:
        buffer: Flat uint8 plane buffer
        rows: 1-D array of pixel rows
        cols: 1-D array of pixel columns
        row_stride: Bytes per buffer row
        pixel_stride: Bytes per pixel within a row
        default: Value used for out-of-range samples

    Returns:
        Tuple of (values, in_bounds)
        - values: (len(rows), len(cols)) int array of luminance
        - in_bounds: boolean array, False where the offset was out of range
    """
    rows = np.asarray(rows, dtype=np.int64)
    cols = np.asarray(cols, dtype=np.int64)

    offsets = rows[:, np.newaxis] * row_stride + cols[np.newaxis, :] * pixel_stride
    in_bounds = (offsets >= 0) & (offsets < buffer.size)

    values = np.full(offsets.shape, default, dtype=np.int64)
    values[in_bounds] = buffer[offsets[in_bounds]]

    return values, in_bounds
