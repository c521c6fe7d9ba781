"""
Latest Frame Slot
==================

Thread-safe single-slot handoff between the frame producer and the
analysis worker.

This module provides the LatestFrameSlot class, which keeps only the most
recent frame. A frame whose analysis has not started when the next one
arrives is displaced and handed back to the caller for release.

Design Rules:
    - Holds at most one frame (keep-latest backpressure)
    - Never blocks the producer
    - Does NOT release frames itself; displaced frames are returned
    - Exposes minimal metrics for observability
"""

import logging
import threading
from typing import Optional

from preview_assist.stream.frame import Frame


logger = logging.getLogger(__name__)


class LatestFrameSlot:
    """
    Keep-latest frame handoff.

    The producer calls ``put`` from its delivery thread; the analysis
    worker calls ``get`` from its own thread.

    Attributes:
        dropped_count: Number of frames displaced before analysis started
        total_put: Total frames ever put into the slot

    Example:
        slot = LatestFrameSlot()

        # Producer
        displaced = slot.put(frame)
        if displaced is not None:
            displaced.release()

        # Worker
        frame = slot.get(timeout=0.1)
    """

    def __init__(self, log_every_n_drops: int = 100) -> None:
        """
        Initialize the slot.

        Args:
            log_every_n_drops: Emit a warning every N displaced frames
        """
        if log_every_n_drops < 1:
            raise ValueError("log_every_n_drops must be >= 1")

        self._condition = threading.Condition()
        self._frame: Optional[Frame] = None
        self._dropped_count: int = 0
        self._total_put: int = 0
        self._log_every_n_drops = log_every_n_drops

    @property
    def size(self) -> int:
        """1 if a frame is waiting, else 0."""
        with self._condition:
            return 0 if self._frame is None else 1

    @property
    def dropped_count(self) -> int:
        """Number of frames displaced before analysis started."""
        return self._dropped_count

    @property
    def total_put(self) -> int:
        """Total frames ever put into the slot."""
        return self._total_put

    def put(self, frame: Frame) -> Optional[Frame]:
        """
        Store a frame, displacing any frame still waiting.

        Args:
            frame: Newly delivered frame

        Returns:
            The displaced frame (caller must release it), or None.
        """
        with self._condition:
            self._total_put += 1
            displaced = self._frame
            self._frame = frame

            if displaced is not None:
                self._dropped_count += 1
                if self._dropped_count % self._log_every_n_drops == 0:
                    logger.warning(
                        f"Analysis behind producer, displaced frame "
                        f"{displaced.frame_id}. Total dropped: {self._dropped_count}"
                    )

            self._condition.notify()

        return displaced

    def get(self, timeout: Optional[float] = None) -> Optional[Frame]:
        """
        Take the waiting frame.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            The frame, or None if timeout occurred.
        """
        with self._condition:
            if self._frame is None:
                self._condition.wait_for(
                    lambda: self._frame is not None,
                    timeout=timeout,
                )
            frame = self._frame
            self._frame = None
            return frame

    def get_nowait(self) -> Optional[Frame]:
        """
        Take the waiting frame without blocking.

        Returns:
            The frame if one is waiting, None otherwise.
        """
        with self._condition:
            frame = self._frame
            self._frame = None
            return frame

    def drain(self) -> Optional[Frame]:
        """
        Remove the pending frame at shutdown.

        Unlike ``get_nowait`` the frame is counted as dropped, since it
        will never be analyzed.

        Returns:
            The removed frame (caller must release it), or None.
        """
        with self._condition:
            frame = self._frame
            self._frame = None
            if frame is not None:
                self._dropped_count += 1
                logger.debug(f"Drained pending frame {frame.frame_id}")
            return frame

    def metrics(self) -> dict:
        """
        Get slot metrics for observability.

        Returns:
            Dict with size, dropped_count, total_put
        """
        return {
            "size": self.size,
            "dropped_count": self._dropped_count,
            "total_put": self._total_put,
        }
