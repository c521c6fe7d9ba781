"""
Frame Sources
=============

Producers that stand in for the camera delivery thread.

This module provides:
    - SyntheticFrameSource: deterministic luma test patterns (numpy)
    - VideoFileSource: frames read with OpenCV and converted to planar
      YUV 4:2:0, resized to the analysis resolution

Both sources count deliveries and releases so callers can verify that
every frame handed out came back exactly once.

Design Rules:
    - Frames are delivered to a sink callable (typically
      ``AnalysisWorker.submit``) from the calling thread
    - Delivery is paced at the configured FPS
    - Sources never release frames themselves
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Iterator, Optional

import cv2
import numpy as np

from preview_assist.stream.frame import Frame, PixelFormat, Plane


logger = logging.getLogger(__name__)


PATTERNS = ("uniform", "vertical_edge", "gradient", "highlights")


class FrameSourceError(Exception):
    """Raised when a frame source cannot be opened or read."""
    pass


def make_pattern(
    pattern: str,
    width: int,
    height: int,
    level: int = 200,
) -> np.ndarray:
    """
    Build a 2-D luma test pattern.

    Patterns:
        uniform: every pixel at ``level``
        vertical_edge: 0 left of the centre column, 255 from it onwards
        gradient: horizontal ramp from 0 to 255
        highlights: mid grey with a fully blown-out centre quarter

    Args:
        pattern: One of PATTERNS
        width: Pattern width
        height: Pattern height
        level: Luma level of the uniform pattern

    Returns:
        (height, width) uint8 array
    """
    if pattern == "uniform":
        return np.full((height, width), level, dtype=np.uint8)

    if pattern == "vertical_edge":
        luma = np.zeros((height, width), dtype=np.uint8)
        luma[:, width // 2:] = 255
        return luma

    if pattern == "gradient":
        ramp = np.linspace(0, 255, num=width).astype(np.uint8)
        return np.tile(ramp, (height, 1))

    if pattern == "highlights":
        luma = np.full((height, width), 128, dtype=np.uint8)
        luma[height // 4: 3 * height // 4, width // 4: 3 * width // 4] = 255
        return luma

    raise ValueError(f"Unknown pattern: {pattern} (expected one of {PATTERNS})")


class FrameSource(ABC):
    """
    Base class for paced frame producers.

    Subclasses implement ``frames()``; this class handles pacing and
    delivery/release bookkeeping.
    """

    def __init__(self, fps: float) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.fps = fps
        self._lock = threading.Lock()
        self._delivered: int = 0
        self._released: int = 0

    @property
    def delivered_count(self) -> int:
        return self._delivered

    @property
    def released_count(self) -> int:
        return self._released

    @property
    def outstanding(self) -> int:
        """Frames delivered but not yet released."""
        with self._lock:
            return self._delivered - self._released

    def _on_release(self, frame: Frame) -> None:
        with self._lock:
            self._released += 1

    def _next_frame_id(self) -> int:
        with self._lock:
            frame_id = self._delivered
            self._delivered += 1
            return frame_id

    @abstractmethod
    def frames(self) -> Iterator[Frame]:
        """Yield frames until the source is exhausted."""
        ...

    def run(
        self,
        sink: Callable[[Frame], object],
        stop_event: threading.Event,
        max_frames: Optional[int] = None,
    ) -> int:
        """
        Deliver frames to ``sink`` at ``fps`` until stopped or exhausted.

        Args:
            sink: Receives each frame (ownership passes to it)
            stop_event: Set to end delivery
            max_frames: Stop after this many frames (None = unlimited)

        Returns:
            Number of frames delivered
        """
        period = 1.0 / self.fps
        delivered = 0
        next_due = time.monotonic()

        for frame in self.frames():
            sink(frame)
            delivered += 1

            if stop_event.is_set():
                break
            if max_frames is not None and delivered >= max_frames:
                break

            next_due += period
            delay = next_due - time.monotonic()
            if delay > 0 and stop_event.wait(timeout=delay):
                break

        logger.info(f"{type(self).__name__} delivered {delivered} frames")
        return delivered


class SyntheticFrameSource(FrameSource):
    """
    Endless stream of identical synthetic frames.

    Example:
        source = SyntheticFrameSource("highlights", width=640, height=480)
        source.run(worker.submit, stop_event)
    """

    def __init__(
        self,
        pattern: str = "vertical_edge",
        width: int = 640,
        height: int = 480,
        fps: float = 30.0,
        row_padding: int = 0,
        level: int = 200,
    ) -> None:
        super().__init__(fps)
        self.pattern = pattern
        self.row_padding = row_padding
        self._luma = make_pattern(pattern, width, height, level=level)

        logger.info(
            f"SyntheticFrameSource initialized: pattern={pattern}, "
            f"size={width}x{height}, fps={fps}"
        )

    def frames(self) -> Iterator[Frame]:
        while True:
            frame_id = self._next_frame_id()
            yield Frame.from_luma(
                self._luma,
                row_padding=self.row_padding,
                frame_id=frame_id,
                timestamp=time.time(),
                on_release=self._on_release,
            )


def bgr_to_yuv420_frame(
    bgr: np.ndarray,
    frame_id: int = 0,
    timestamp: float = 0.0,
    on_release: Optional[Callable[[Frame], None]] = None,
) -> Frame:
    """
    Convert a BGR image into a planar YUV 4:2:0 frame.

    Odd dimensions are cropped to even, as I420 requires.

    Args:
        bgr: (H, W, 3) uint8 image
        frame_id: Producer sequence number
        timestamp: Capture timestamp
        on_release: Called once when the frame is released

    Returns:
        YUV_420_888 Frame with Y, U and V planes
    """
    if bgr.ndim != 3 or bgr.shape[2] != 3:
        raise FrameSourceError(f"Invalid image shape: {bgr.shape}")

    height = bgr.shape[0] & ~1
    width = bgr.shape[1] & ~1
    if height == 0 or width == 0:
        raise FrameSourceError(f"Image too small for YUV 4:2:0: {bgr.shape}")

    i420 = cv2.cvtColor(
        np.ascontiguousarray(bgr[:height, :width]),
        cv2.COLOR_BGR2YUV_I420,
    ).reshape(-1)

    luma_size = width * height
    chroma_size = luma_size // 4
    y_plane = Plane(i420[:luma_size], row_stride=width)
    u_plane = Plane(i420[luma_size:luma_size + chroma_size], row_stride=width // 2)
    v_plane = Plane(i420[luma_size + chroma_size:], row_stride=width // 2)

    return Frame(
        format=PixelFormat.YUV_420_888,
        width=width,
        height=height,
        planes=(y_plane, u_plane, v_plane),
        frame_id=frame_id,
        timestamp=timestamp,
        on_release=on_release,
    )


class VideoFileSource(FrameSource):
    """
    Frames read from a video file with OpenCV.

    Each frame is resized to the analysis resolution and converted to
    planar YUV 4:2:0.

    Example:
        source = VideoFileSource("clip.mp4", width=640, height=480)
        source.run(worker.submit, stop_event)
    """

    def __init__(
        self,
        path: str,
        width: int = 640,
        height: int = 480,
        fps: Optional[float] = None,
        loop: bool = False,
    ) -> None:
        self.path = path
        self.width = width
        self.height = height
        self.loop = loop

        capture = cv2.VideoCapture(path)
        if not capture.isOpened():
            raise FrameSourceError(f"Cannot open video: {path}")
        native_fps = capture.get(cv2.CAP_PROP_FPS) or 30.0
        capture.release()

        super().__init__(fps or native_fps)

        logger.info(
            f"VideoFileSource initialized: {path}, "
            f"size={width}x{height}, fps={self.fps:.1f}"
        )

    def frames(self) -> Iterator[Frame]:
        capture = cv2.VideoCapture(self.path)
        if not capture.isOpened():
            raise FrameSourceError(f"Cannot open video: {self.path}")

        try:
            while True:
                ok, bgr = capture.read()
                if not ok:
                    if not self.loop:
                        break
                    capture.set(cv2.CAP_PROP_POS_FRAMES, 0)
                    ok, bgr = capture.read()
                    if not ok:
                        break

                bgr = cv2.resize(bgr, (self.width, self.height), interpolation=cv2.INTER_AREA)
                yield bgr_to_yuv420_frame(
                    bgr,
                    frame_id=self._next_frame_id(),
                    timestamp=time.time(),
                    on_release=self._on_release,
                )
        finally:
            capture.release()
