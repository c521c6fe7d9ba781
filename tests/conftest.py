"""
Test Configuration
==================

Pytest fixtures and test configuration for PreviewAssist.
"""

from typing import List

import numpy as np
import pytest

from preview_assist.stream.frame import Frame, PixelFormat, Plane


class ReleaseRecorder:
    """Release hook that records every frame handed back."""

    def __init__(self) -> None:
        self.released: List[int] = []

    def __call__(self, frame: Frame) -> None:
        self.released.append(frame.frame_id)

    @property
    def count(self) -> int:
        return len(self.released)


@pytest.fixture
def release_recorder():
    """Provide a fresh release recorder."""
    return ReleaseRecorder()


@pytest.fixture
def make_frame(release_recorder):
    """Build a YUV_420_888 frame from a 2-D luma array."""

    def _make(luma, frame_id: int = 0, row_padding: int = 0) -> Frame:
        return Frame.from_luma(
            np.asarray(luma, dtype=np.uint8),
            row_padding=row_padding,
            frame_id=frame_id,
            on_release=release_recorder,
        )

    return _make


@pytest.fixture
def make_uniform_frame(make_frame):
    """Build a frame at a single luminance level."""

    def _make(level: int, width: int = 64, height: int = 48, frame_id: int = 0) -> Frame:
        return make_frame(np.full((height, width), level), frame_id=frame_id)

    return _make


@pytest.fixture
def make_unsupported_frame(release_recorder):
    """Build an RGBA frame the analyzers do not understand."""

    def _make(width: int = 64, height: int = 48, frame_id: int = 0) -> Frame:
        buffer = np.full(width * height * 4, 255, dtype=np.uint8)
        return Frame(
            format=PixelFormat.RGBA_8888,
            width=width,
            height=height,
            planes=(Plane(buffer, row_stride=width * 4, pixel_stride=4),),
            frame_id=frame_id,
            on_release=release_recorder,
        )

    return _make
