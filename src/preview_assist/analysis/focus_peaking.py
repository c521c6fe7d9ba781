"""
Focus Peaking Analyzer
======================

Locates in-focus, high-contrast points with a stride-sampled gradient.

A sparse grid is walked over the frame interior, excluding a border of
``sample_step`` pixels so every point has neighbours at +/- one step in
both directions. The gradient is a central difference across those
neighbours:

    gx = L(row, col + step) - L(row, col - step)
    gy = L(row + step, col) - L(row - step, col)
    magnitude = sqrt(gx^2 + gy^2)
    threshold = (1 - sensitivity) * 100

This is a coarse Sobel-style approximation. It trades precision for a
bounded per-frame cost and is not a full-resolution edge detector.
"""

import logging
from typing import List, Optional

import numpy as np

from preview_assist.analysis.base import AnalyzerKind
from preview_assist.analysis.luminance import read_luminance_grid
from preview_assist.config import FocusPeakingConfig
from preview_assist.models.results import FocusPeakPoint
from preview_assist.stream.frame import Frame


logger = logging.getLogger(__name__)


def sensitivity_to_threshold(sensitivity: float) -> float:
    """Map sensitivity in [0, 1] to a gradient threshold in [0, 100]."""
    if not 0.0 <= sensitivity <= 1.0:
        raise ValueError("sensitivity must be in [0, 1]")
    return (1.0 - sensitivity) * 100.0


def detect_focus_peaks(
    frame: Frame,
    sensitivity: float = 0.5,
    sample_step: int = 8,
) -> List[FocusPeakPoint]:
    """
    Find grid points whose gradient magnitude exceeds the threshold.

    Args:
        frame: Frame to analyze (not released)
        sensitivity: 0 = only the strongest edges, 1 = any non-zero gradient
        sample_step: Grid stride and neighbour distance in pixels

    Returns:
        Peak points in raster order; empty for unsupported formats
    """
    threshold = sensitivity_to_threshold(sensitivity)
    if sample_step < 1:
        raise ValueError("sample_step must be >= 1")

    if not frame.is_supported:
        return []

    rows = np.arange(sample_step, frame.height - sample_step, sample_step)
    cols = np.arange(sample_step, frame.width - sample_step, sample_step)
    if rows.size == 0 or cols.size == 0:
        return []

    plane = frame.luma_plane

    def sample(row_offset: int, col_offset: int) -> np.ndarray:
        values, _ = read_luminance_grid(
            plane.buffer,
            rows + row_offset,
            cols + col_offset,
            plane.row_stride,
        )
        return values

    gradient_x = sample(0, sample_step) - sample(0, -sample_step)
    gradient_y = sample(sample_step, 0) - sample(-sample_step, 0)
    magnitude = np.sqrt(gradient_x ** 2 + gradient_y ** 2)

    points: List[FocusPeakPoint] = []
    for i, j in np.argwhere(magnitude > threshold):
        points.append(
            FocusPeakPoint(
                x=int(cols[j]) / frame.width,
                y=int(rows[i]) / frame.height,
                intensity=float(np.clip(magnitude[i, j] / 255.0, 0.0, 1.0)),
            )
        )

    return points


class FocusPeakingAnalyzer:
    """
    Focus peaking analyzer bound to an immutable config.

    Example:
        analyzer = FocusPeakingAnalyzer(FocusPeakingConfig(sensitivity=0.8))
        points = analyzer.analyze(frame)
    """

    kind = AnalyzerKind.FOCUS_PEAKING

    def __init__(self, config: Optional[FocusPeakingConfig] = None) -> None:
        self.config = config or FocusPeakingConfig()
        logger.debug(
            f"FocusPeakingAnalyzer initialized: "
            f"sensitivity={self.config.sensitivity}, "
            f"threshold={sensitivity_to_threshold(self.config.sensitivity):.1f}"
        )

    def analyze(self, frame: Frame) -> List[FocusPeakPoint]:
        return detect_focus_peaks(
            frame,
            sensitivity=self.config.sensitivity,
            sample_step=self.config.sample_step,
        )
