"""
Overexposure (Zebra) Analyzer
=============================

Finds square blocks of the primary plane that are mostly blown out.

The frame is tiled into non-overlapping ``block_size`` squares; edge
blocks are clipped to the frame. Every pixel of a block is inspected at
full density, addressed as ``row * row_stride + col`` (pixel stride 1).
A block is reported when more than half of its readable pixels exceed
the cutoff.

Formula:
    cutoff = threshold_percent * 255 // 100
    overexposed(pixel) = luma > cutoff
    report(block) = countable > 0 and overexposed / countable > 0.5

The overlay needs coarse rectangles, not a per-pixel mask, so results are
block-level.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np
from numpy.lib.stride_tricks import as_strided

from preview_assist.analysis.base import AnalyzerKind
from preview_assist.config import OverexposureConfig
from preview_assist.models.results import OverexposedRegion
from preview_assist.stream.frame import Frame


logger = logging.getLogger(__name__)


OVEREXPOSED_FRACTION = 0.5


def _block_sums(mask: np.ndarray, block_size: int) -> np.ndarray:
    """Sum a boolean (H, W) mask over block_size tiles, zero-padding edges."""
    height, width = mask.shape
    blocks_y = -(-height // block_size)
    blocks_x = -(-width // block_size)

    padded = np.zeros((blocks_y * block_size, blocks_x * block_size), dtype=bool)
    padded[:height, :width] = mask

    return padded.reshape(blocks_y, block_size, blocks_x, block_size).sum(
        axis=(1, 3), dtype=np.int32
    )


def _block_areas(height: int, width: int, block_size: int) -> np.ndarray:
    """Pixel count of each block, edge blocks clipped to the frame."""
    heights = np.minimum(block_size, height - np.arange(0, height, block_size))
    widths = np.minimum(block_size, width - np.arange(0, width, block_size))
    return np.outer(heights, widths).astype(np.int32)


def _read_rows(
    buffer: np.ndarray,
    row_stride: int,
    height: int,
    width: int,
) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Read the (height, width) pixel rectangle at pixel stride 1.

    Returns:
        Tuple of (values, in_bounds)
        - values: uint8 array; a read-only view when every row fits
        - in_bounds: None when every pixel is readable, else a bool mask
    """
    step = buffer.strides[0]
    complete = 0
    if buffer.size >= width:
        complete = min(height, (buffer.size - width) // row_stride + 1)

    if complete == height:
        view = as_strided(
            buffer,
            shape=(height, width),
            strides=(row_stride * step, step),
            writeable=False,
        )
        return view, None

    # Short buffer: rows past the end are unreadable, one row may be partial
    values = np.zeros((height, width), dtype=np.uint8)
    in_bounds = np.zeros((height, width), dtype=bool)
    if complete:
        values[:complete] = as_strided(
            buffer,
            shape=(complete, width),
            strides=(row_stride * step, step),
            writeable=False,
        )
        in_bounds[:complete] = True

    start = complete * row_stride
    tail = max(0, min(width, buffer.size - start))
    values[complete, :tail] = buffer[start:start + tail]
    in_bounds[complete, :tail] = True

    return values, in_bounds


def find_overexposed_regions(
    frame: Frame,
    threshold_percent: int = 95,
    block_size: int = 32,
) -> List[OverexposedRegion]:
    """
    Locate overexposed blocks.

    Args:
        frame: Frame to analyze (not released)
        threshold_percent: Cutoff as a percent of the 0-255 range (0-100)
        block_size: Side of the square block in pixels

    Returns:
        Regions in raster order (top-to-bottom, left-to-right); empty for
        unsupported formats
    """
    if not 0 <= threshold_percent <= 100:
        raise ValueError("threshold_percent must be in [0, 100]")
    if block_size < 1:
        raise ValueError("block_size must be >= 1")

    if not frame.is_supported or frame.width == 0 or frame.height == 0:
        return []

    plane = frame.luma_plane
    cutoff = threshold_percent * 255 // 100

    values, in_bounds = _read_rows(
        plane.buffer, plane.row_stride, frame.height, frame.width
    )

    hot_pixels = values > cutoff
    if in_bounds is None:
        countable = _block_areas(frame.height, frame.width, block_size)
    else:
        hot_pixels &= in_bounds
        countable = _block_sums(in_bounds, block_size)
    overexposed = _block_sums(hot_pixels, block_size)

    # Blocks with no countable pixel never qualify; avoid 0/0.
    hot = (countable > 0) & (overexposed > OVEREXPOSED_FRACTION * countable)

    regions: List[OverexposedRegion] = []
    for block_row, block_col in np.argwhere(hot):
        origin_y = int(block_row) * block_size
        origin_x = int(block_col) * block_size
        clipped_h = min(block_size, frame.height - origin_y)
        clipped_w = min(block_size, frame.width - origin_x)

        regions.append(
            OverexposedRegion(
                x=origin_x / frame.width,
                y=origin_y / frame.height,
                width=clipped_w / frame.width,
                height=clipped_h / frame.height,
            )
        )

    return regions


class OverexposureAnalyzer:
    """
    Zebra analyzer bound to an immutable config.

    Example:
        analyzer = OverexposureAnalyzer(OverexposureConfig(threshold_percent=90))
        regions = analyzer.analyze(frame)
    """

    kind = AnalyzerKind.OVEREXPOSURE

    def __init__(self, config: Optional[OverexposureConfig] = None) -> None:
        self.config = config or OverexposureConfig()
        logger.debug(
            f"OverexposureAnalyzer initialized: "
            f"threshold={self.config.threshold_percent}%, "
            f"block={self.config.block_size}px"
        )

    def analyze(self, frame: Frame) -> List[OverexposedRegion]:
        return find_overexposed_regions(
            frame,
            threshold_percent=self.config.threshold_percent,
            block_size=self.config.block_size,
        )
