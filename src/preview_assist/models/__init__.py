"""
Data Models
===========

Result types handed from the analyzers to the overlay renderer.

Models:
    - HistogramResult: 256-bin raw luminance counts
    - OverexposedRegion: normalized rectangle of a blown-out block
    - FocusPeakPoint: normalized point with edge intensity
"""

from preview_assist.models.results import (
    HISTOGRAM_BINS,
    FocusPeakPoint,
    HistogramResult,
    OverexposedRegion,
)

__all__ = [
    "HISTOGRAM_BINS",
    "HistogramResult",
    "OverexposedRegion",
    "FocusPeakPoint",
]
