"""
Stream Module
=============

Frame handles, the producer-to-worker handoff, and frame sources.

This module provides the ingestion layer for PreviewAssist:
    - Frame: single-use handle over one preview frame's planes
    - LatestFrameSlot: keep-latest handoff (displaces unstarted frames)
    - SyntheticFrameSource / VideoFileSource: paced producers

Example:
    from preview_assist.stream import SyntheticFrameSource

    source = SyntheticFrameSource("highlights")
    for frame in source.frames():
        with frame:
            process(frame)
"""

from preview_assist.stream.frame import (
    Frame,
    FrameAlreadyReleasedError,
    FrameContractError,
    FrameReleasedError,
    PixelFormat,
    Plane,
)
from preview_assist.stream.buffer import LatestFrameSlot
from preview_assist.stream.sources import (
    FrameSource,
    FrameSourceError,
    SyntheticFrameSource,
    VideoFileSource,
)


__all__ = [
    "Frame",
    "FrameAlreadyReleasedError",
    "FrameContractError",
    "FrameReleasedError",
    "PixelFormat",
    "Plane",
    "LatestFrameSlot",
    "FrameSource",
    "FrameSourceError",
    "SyntheticFrameSource",
    "VideoFileSource",
]
