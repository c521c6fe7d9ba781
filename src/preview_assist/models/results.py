"""
Analysis Result Models
======================

Typed results produced by the three frame analyzers and handed to the
overlay renderer.

All coordinates are normalized to [0, 1] relative to the frame
dimensions, so results are independent of the preview resolution.
"""

from dataclasses import dataclass
from typing import Tuple


HISTOGRAM_BINS = 256

# Slack for float rounding when a clipped edge block touches the border.
_EPSILON = 1e-6


def _check_unit(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")


@dataclass(frozen=True, slots=True)
class HistogramResult:
    """
    Luminance distribution of one frame's sampled grid.

    Index is the luminance level (0-255), value is the raw sample count
    at that level. Counts are not normalized; divide by ``total`` for a
    distribution.

    Attributes:
        bins: 256 non-negative sample counts
    """

    bins: Tuple[int, ...]

    def __post_init__(self) -> None:
        """Validate invariants."""
        if len(self.bins) != HISTOGRAM_BINS:
            raise ValueError(
                f"histogram must have {HISTOGRAM_BINS} bins, got {len(self.bins)}"
            )
        if any(count < 0 for count in self.bins):
            raise ValueError("histogram bins must be non-negative")

    @classmethod
    def empty(cls) -> "HistogramResult":
        """Histogram with every bin at zero."""
        return cls(bins=(0,) * HISTOGRAM_BINS)

    @property
    def total(self) -> int:
        """Number of samples counted."""
        return sum(self.bins)

    def __repr__(self) -> str:
        peak = max(range(HISTOGRAM_BINS), key=self.bins.__getitem__)
        return f"HistogramResult(total={self.total}, peak_level={peak})"

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "bins": list(self.bins),
            "total": self.total,
        }


@dataclass(frozen=True, slots=True)
class OverexposedRegion:
    """
    One block whose overexposed-pixel fraction exceeded 50%.

    Attributes:
        x: Left edge, fraction of frame width
        y: Top edge, fraction of frame height
        width: Block width, fraction of frame width
        height: Block height, fraction of frame height
    """

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        """Validate invariants."""
        for name in ("x", "y", "width", "height"):
            _check_unit(name, getattr(self, name))
        if self.x + self.width > 1.0 + _EPSILON:
            raise ValueError("region extends past the right edge")
        if self.y + self.height > 1.0 + _EPSILON:
            raise ValueError("region extends past the bottom edge")

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "x": round(self.x, 4),
            "y": round(self.y, 4),
            "width": round(self.width, 4),
            "height": round(self.height, 4),
        }


@dataclass(frozen=True, slots=True)
class FocusPeakPoint:
    """
    Sampled grid point with a strong luminance gradient.

    Attributes:
        x: Horizontal position, fraction of frame width
        y: Vertical position, fraction of frame height
        intensity: Gradient magnitude scaled to [0, 1]
    """

    x: float
    y: float
    intensity: float

    def __post_init__(self) -> None:
        """Validate invariants."""
        _check_unit("x", self.x)
        _check_unit("y", self.y)
        _check_unit("intensity", self.intensity)

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "x": round(self.x, 4),
            "y": round(self.y, 4),
            "intensity": round(self.intensity, 4),
        }
