"""
Frame Throttle
==============

Every-Nth-frame policy that decouples analysis cadence from the
delivery rate.

The counter only ever increases; a frame is due when the counter is a
multiple of the interval. With interval 5, ticks 1-4 are skipped and
tick 5 runs, then 10, 15, and so on.
"""


class FrameThrottle:
    """
    Per-analyzer frame counter.

    Only the analysis worker ticks a throttle, so it carries no lock.

    Attributes:
        interval: Analyze every Nth frame
    """

    __slots__ = ("interval", "_frame_count")

    def __init__(self, interval: int) -> None:
        if interval < 1:
            raise ValueError("interval must be >= 1")
        self.interval = interval
        self._frame_count: int = 0

    @property
    def frame_count(self) -> int:
        """Number of frames ticked so far."""
        return self._frame_count

    def tick(self) -> bool:
        """Count one frame and report whether it should be analyzed."""
        self._frame_count += 1
        return self._frame_count % self.interval == 0

    def __repr__(self) -> str:
        return f"FrameThrottle(interval={self.interval}, frame_count={self._frame_count})"
