"""
Analyzer Abstraction
====================

The closed set of analyzer variants and the protocol they share.

Design Rules:
    - Every analyzer takes a Frame and returns a result value
    - Analyzers never release frames (the dispatcher does)
    - Analyzer configuration is fixed at construction
"""

from enum import Enum
from typing import Any, Protocol

from preview_assist.stream.frame import Frame


class AnalyzerKind(str, Enum):
    """Analyzer variants, in dispatch order."""

    HISTOGRAM = "histogram"
    OVEREXPOSURE = "overexposure"
    FOCUS_PEAKING = "focus_peaking"


class FrameAnalyzer(Protocol):
    """
    Protocol for frame analyzers.

    Implemented by:
        - HistogramAnalyzer
        - OverexposureAnalyzer
        - FocusPeakingAnalyzer
    """

    kind: AnalyzerKind
    config: Any

    def analyze(self, frame: Frame) -> Any:
        """
        Analyze one frame.

        Args:
            frame: Unreleased frame

        Returns:
            Analyzer-specific result
        """
        ...
