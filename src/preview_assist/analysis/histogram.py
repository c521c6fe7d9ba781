"""
Histogram Analyzer
==================

Luminance histogram over a sparse grid of the primary plane.

Sampling every ``sample_step``-th row and column bounds the per-frame
cost on high-resolution previews. Samples whose buffer offset is out of
range are skipped, so the bin total always equals the number of samples
actually read.
"""

import logging
from typing import Optional

import numpy as np

from preview_assist.analysis.base import AnalyzerKind
from preview_assist.analysis.luminance import read_luminance_grid
from preview_assist.config import HistogramConfig
from preview_assist.models.results import HISTOGRAM_BINS, HistogramResult
from preview_assist.stream.frame import Frame


logger = logging.getLogger(__name__)


def compute_histogram(frame: Frame, sample_step: int = 4) -> HistogramResult:
    """
    Count luminance levels on a stride grid.

    Args:
        frame: Frame to analyze (not released)
        sample_step: Row and column stride of the grid

    Returns:
        HistogramResult with raw counts; all zero for unsupported formats
    """
    if not frame.is_supported:
        return HistogramResult.empty()

    plane = frame.luma_plane
    rows = np.arange(0, frame.height, sample_step)
    cols = np.arange(0, frame.width, sample_step)

    values, in_bounds = read_luminance_grid(
        plane.buffer,
        rows,
        cols,
        plane.row_stride,
        plane.pixel_stride,
    )

    counts = np.bincount(values[in_bounds], minlength=HISTOGRAM_BINS)
    return HistogramResult(bins=tuple(int(c) for c in counts))


class HistogramAnalyzer:
    """
    Histogram analyzer bound to an immutable config.

    Example:
        analyzer = HistogramAnalyzer(HistogramConfig(sample_step=4))
        result = analyzer.analyze(frame)
    """

    kind = AnalyzerKind.HISTOGRAM

    def __init__(self, config: Optional[HistogramConfig] = None) -> None:
        self.config = config or HistogramConfig()
        logger.debug(f"HistogramAnalyzer initialized: sample_step={self.config.sample_step}")

    def analyze(self, frame: Frame) -> HistogramResult:
        return compute_histogram(frame, sample_step=self.config.sample_step)
