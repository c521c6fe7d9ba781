"""
Analysis Worker
===============

Runs the dispatcher on one dedicated background thread.

The producer hands frames over with ``submit`` from its own delivery
thread. Only the latest frame is kept: a frame whose analysis has not
started when the next one arrives is released unanalyzed. The producer
never waits for analysis.

Design Rules:
    - Exactly one analysis thread; analyzers for a frame run sequentially
    - Frames analyzed in arrival order, never overlapping
    - Every frame submitted is released exactly once (analyzed, displaced,
      refused after stop, or drained at shutdown)
    - Analyzer errors are logged and the worker continues
    - Frame contract violations stop the worker
"""

import logging
import threading
from typing import Optional

from preview_assist.pipeline.dispatcher import AnalysisDispatcher
from preview_assist.stream.buffer import LatestFrameSlot
from preview_assist.stream.frame import Frame, FrameContractError


logger = logging.getLogger(__name__)


class AnalysisWorkerMetrics:
    """Metrics for AnalysisWorker observability."""

    __slots__ = (
        "frames_submitted",
        "frames_refused",
        "analysis_errors",
        "last_frame_id",
    )

    def __init__(self) -> None:
        self.frames_submitted: int = 0
        self.frames_refused: int = 0
        self.analysis_errors: int = 0
        self.last_frame_id: int = -1

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "frames_submitted": self.frames_submitted,
            "frames_refused": self.frames_refused,
            "analysis_errors": self.analysis_errors,
            "last_frame_id": self.last_frame_id,
        }


class AnalysisWorker:
    """
    Single background thread feeding frames to an AnalysisDispatcher.

    Attributes:
        dispatcher: Dispatcher run on the worker thread
        slot: Keep-latest handoff from the producer
        metrics: Operational metrics

    Example:
        worker = AnalysisWorker(dispatcher)
        worker.start()

        # From the camera delivery thread
        worker.submit(frame)

        # Capture session ends
        worker.stop()
    """

    def __init__(
        self,
        dispatcher: AnalysisDispatcher,
        poll_timeout_sec: float = 0.1,
    ) -> None:
        """
        Initialize worker.

        Args:
            dispatcher: Dispatcher to run for each frame
            poll_timeout_sec: How long to wait for a frame before
                rechecking the stop flag
        """
        if poll_timeout_sec <= 0:
            raise ValueError("poll_timeout_sec must be positive")

        self.dispatcher = dispatcher
        self.poll_timeout_sec = poll_timeout_sec
        self.slot = LatestFrameSlot()
        self.metrics = AnalysisWorkerMetrics()

        self._accepting = threading.Event()
        self._stop_event = threading.Event()
        self._submit_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._fatal_error: Optional[BaseException] = None

    @property
    def running(self) -> bool:
        """Whether the worker thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def fatal_error(self) -> Optional[BaseException]:
        """Contract violation that stopped the worker, if any."""
        return self._fatal_error

    def start(self) -> None:
        """Start the analysis thread."""
        if self._thread is not None:
            raise RuntimeError("AnalysisWorker already started")

        self._stop_event.clear()
        self._accepting.set()
        self._thread = threading.Thread(
            target=self._run,
            name="preview-assist-analysis",
            daemon=True,
        )
        self._thread.start()
        logger.info("AnalysisWorker started")

    def submit(self, frame: Frame) -> bool:
        """
        Hand a frame to the worker. Never blocks on analysis.

        Ownership of the frame passes to the worker in every case.

        Args:
            frame: Newly delivered frame

        Returns:
            True if the frame was queued, False if the worker is not
            accepting frames (the frame was released immediately).
        """
        with self._submit_lock:
            if not self._accepting.is_set():
                self.metrics.frames_refused += 1
                frame.release()
                return False

            self.metrics.frames_submitted += 1
            displaced = self.slot.put(frame)

        if displaced is not None:
            displaced.release()
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting frames and wait for the worker to finish.

        In-flight analysis completes and releases its frame; a frame
        still waiting in the slot is released unanalyzed.

        Args:
            timeout: Maximum seconds to wait for the thread. None = forever.
        """
        logger.info("AnalysisWorker stopping...")

        with self._submit_lock:
            self._accepting.clear()
        self._stop_event.set()

        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("AnalysisWorker did not stop within timeout")
                return

        # Worker never started, or it exited before the last submit landed
        self._release_pending()

        logger.info(f"AnalysisWorker stopped: {self.metrics.to_dict()}")

    def _release_pending(self) -> None:
        pending = self.slot.drain()
        if pending is not None:
            pending.release()

    def _run(self) -> None:
        """Worker loop: take the latest frame, dispatch, repeat."""
        try:
            while not self._stop_event.is_set():
                frame = self.slot.get(timeout=self.poll_timeout_sec)
                if frame is None:
                    continue

                self.metrics.last_frame_id = frame.frame_id
                try:
                    self.dispatcher.dispatch(frame)
                except FrameContractError as e:
                    self._fatal_error = e
                    self._accepting.clear()
                    logger.critical(f"Frame contract violated (frame={frame.frame_id}): {e}")
                    raise
                except Exception as e:
                    self.metrics.analysis_errors += 1
                    logger.error(f"Analysis error (frame={frame.frame_id}): {e}")
        finally:
            with self._submit_lock:
                self._accepting.clear()
            self._release_pending()

    def __enter__(self) -> "AnalysisWorker":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
