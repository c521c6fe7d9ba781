"""
Analysis Module
===============

Frame analyzers for the preview overlays.

This module provides:
    - Sampled luminance reads (scalar and grid)
    - Luminance histogram
    - Overexposure (zebra) block detection
    - Focus peaking edge points

All analyzers read only the primary (luma) plane of YUV_420_888 frames and
degrade to an empty result for any other format.
"""

from preview_assist.analysis.base import AnalyzerKind, FrameAnalyzer
from preview_assist.analysis.luminance import read_luminance, read_luminance_grid
from preview_assist.analysis.histogram import HistogramAnalyzer, compute_histogram
from preview_assist.analysis.overexposure import (
    OverexposureAnalyzer,
    find_overexposed_regions,
)
from preview_assist.analysis.focus_peaking import (
    FocusPeakingAnalyzer,
    detect_focus_peaks,
    sensitivity_to_threshold,
)

__all__ = [
    # Variants
    "AnalyzerKind",
    "FrameAnalyzer",
    # Sampling
    "read_luminance",
    "read_luminance_grid",
    # Analyzers
    "HistogramAnalyzer",
    "compute_histogram",
    "OverexposureAnalyzer",
    "find_overexposed_regions",
    "FocusPeakingAnalyzer",
    "detect_focus_peaks",
    "sensitivity_to_threshold",
]
