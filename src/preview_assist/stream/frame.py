"""
Frame Data Model
=================

Frame handle delivered by the capture layer for each preview tick.

This module defines the Frame class that is used as the interface
between the frame producer and the analysis pipeline.

Design Rules:
    - A Frame is single-use: released exactly once, never read afterwards
    - Only the primary (luma) plane is read by the analyzers
    - Release is delegated to the producer through ``on_release``
    - Does NOT copy or decode pixel data
"""

import logging
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np


logger = logging.getLogger(__name__)


BufferLike = Union[bytes, bytearray, memoryview, np.ndarray]


class FrameContractError(RuntimeError):
    """Raised when a Frame is used in violation of its single-use contract."""
    pass


class FrameReleasedError(FrameContractError):
    """Raised when pixel data is read from a Frame that was already released."""
    pass


class FrameAlreadyReleasedError(FrameContractError):
    """Raised when a Frame is released a second time."""
    pass


class PixelFormat(str, Enum):
    """Pixel formats a producer may deliver."""

    YUV_420_888 = "YUV_420_888"
    NV21 = "NV21"
    RGBA_8888 = "RGBA_8888"
    JPEG = "JPEG"
    UNKNOWN = "UNKNOWN"


def _as_byte_array(buffer: BufferLike) -> np.ndarray:
    """Flat uint8 view over a buffer, without copying where possible."""
    if isinstance(buffer, np.ndarray):
        flat = buffer.reshape(-1)
        if flat.dtype != np.uint8:
            flat = (flat.astype(np.int64) & 0xFF).astype(np.uint8)
        return flat
    return np.frombuffer(buffer, dtype=np.uint8)


class Plane:
    """
    One image plane with its stride metadata.

    Attributes:
        buffer: Flat uint8 array holding the plane bytes
        row_stride: Bytes between the starts of consecutive rows
        pixel_stride: Bytes between consecutive pixels within a row
    """

    __slots__ = ("buffer", "row_stride", "pixel_stride")

    def __init__(
        self,
        buffer: BufferLike,
        row_stride: int,
        pixel_stride: int = 1,
    ) -> None:
        if row_stride < 1:
            raise ValueError("row_stride must be >= 1")
        if pixel_stride < 1:
            raise ValueError("pixel_stride must be >= 1")

        self.buffer = _as_byte_array(buffer)
        self.row_stride = row_stride
        self.pixel_stride = pixel_stride

    @property
    def capacity(self) -> int:
        """Number of readable bytes in the plane."""
        return int(self.buffer.size)

    def __repr__(self) -> str:
        return (
            f"Plane(capacity={self.capacity}, "
            f"row_stride={self.row_stride}, "
            f"pixel_stride={self.pixel_stride})"
        )


class Frame:
    """
    Single-use handle over one captured preview frame.

    The analysis pipeline owns the frame from the moment it is submitted
    until it calls ``release()``. Release must happen exactly once;
    releasing twice or reading planes after release raises a
    ``FrameContractError`` subclass.

    Attributes:
        format: Pixel format tag
        width: Frame width in pixels
        height: Frame height in pixels
        rotation_degrees: Sensor rotation (renderer only, ignored by analysis)
        frame_id: Producer sequence number
        timestamp: Capture timestamp in seconds

    Example:
        frame = Frame.from_luma(luma, on_release=pool.recycle)

        with frame:
            histogram = compute_histogram(frame)
        # frame released here
    """

    __slots__ = (
        "format",
        "width",
        "height",
        "rotation_degrees",
        "frame_id",
        "timestamp",
        "_planes",
        "_on_release",
        "_released",
    )

    def __init__(
        self,
        format: PixelFormat,
        width: int,
        height: int,
        planes: Sequence[Plane],
        rotation_degrees: int = 0,
        frame_id: int = 0,
        timestamp: float = 0.0,
        on_release: Optional[Callable[["Frame"], None]] = None,
    ) -> None:
        if width < 0 or height < 0:
            raise ValueError("width and height must be non-negative")

        self.format = PixelFormat(format)
        self.width = width
        self.height = height
        self.rotation_degrees = rotation_degrees
        self.frame_id = frame_id
        self.timestamp = timestamp
        self._planes: Tuple[Plane, ...] = tuple(planes)
        self._on_release = on_release
        self._released = False

    @classmethod
    def from_luma(
        cls,
        luma: np.ndarray,
        row_padding: int = 0,
        frame_id: int = 0,
        timestamp: float = 0.0,
        on_release: Optional[Callable[["Frame"], None]] = None,
    ) -> "Frame":
        """
        Build a YUV_420_888 frame from a 2-D luma array.

        Chroma planes are filled with neutral grey (128). ``row_padding``
        adds unused bytes at the end of every luma row so that the row
        stride exceeds the width, as camera buffers commonly do.

        Args:
            luma: (H, W) array of luminance values
            row_padding: Extra bytes per luma row
            frame_id: Producer sequence number
            timestamp: Capture timestamp
            on_release: Called once when the frame is released

        Returns:
            Frame with three planes (Y, U, V)
        """
        luma = np.asarray(luma, dtype=np.uint8)
        if luma.ndim != 2:
            raise ValueError(f"luma must be 2-D, got shape {luma.shape}")

        height, width = luma.shape
        row_stride = width + row_padding

        y_buffer = np.zeros((height, row_stride), dtype=np.uint8)
        y_buffer[:, :width] = luma

        chroma_w = (width + 1) // 2
        chroma_h = (height + 1) // 2
        u_plane = Plane(np.full(chroma_w * chroma_h, 128, dtype=np.uint8), chroma_w)
        v_plane = Plane(np.full(chroma_w * chroma_h, 128, dtype=np.uint8), chroma_w)

        return cls(
            format=PixelFormat.YUV_420_888,
            width=width,
            height=height,
            planes=(Plane(y_buffer, row_stride), u_plane, v_plane),
            frame_id=frame_id,
            timestamp=timestamp,
            on_release=on_release,
        )

    @property
    def released(self) -> bool:
        """Whether release() has been called."""
        return self._released

    @property
    def is_supported(self) -> bool:
        """Whether the analyzers understand this pixel format."""
        return self.format is PixelFormat.YUV_420_888 and bool(self._planes)

    @property
    def planes(self) -> Tuple[Plane, ...]:
        """All planes, primary plane first."""
        if self._released:
            raise FrameReleasedError(
                f"Frame {self.frame_id} read after release"
            )
        return self._planes

    @property
    def luma_plane(self) -> Plane:
        """Primary (Y) plane."""
        return self.planes[0]

    def release(self) -> None:
        """
        Hand the frame back to its producer.

        Raises:
            FrameAlreadyReleasedError: If called more than once
        """
        if self._released:
            raise FrameAlreadyReleasedError(
                f"Frame {self.frame_id} released twice"
            )
        self._released = True

        if self._on_release is not None:
            self._on_release(self)

    def __enter__(self) -> "Frame":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._released:
            self.release()

    def __repr__(self) -> str:
        """Compact repr that doesn't dump pixel data."""
        return (
            f"Frame(frame_id={self.frame_id}, "
            f"format={self.format.value}, "
            f"size={self.width}x{self.height}, "
            f"released={self._released})"
        )
