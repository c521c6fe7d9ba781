"""
Analysis Dispatcher
===================

Routes each frame to the enabled analyzers and delivers their results.

For every frame the dispatcher:
    - Visits the analyzer slots in fixed order
      (histogram, overexposure, focus peaking)
    - Skips disabled slots without touching their throttle
    - Ticks each enabled slot's throttle and runs the analyzer when due
    - Passes the result to the registered callback for that analyzer
    - Releases the frame exactly once, whatever happened above

Key Design Decisions:
    - The analyzer set is closed (AnalyzerKind); each kind owns one slot
    - Reconfiguration swaps the whole slot tuple between frames
    - A disabled slot keeps its throttle phase frozen until re-enabled
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from preview_assist.analysis import (
    AnalyzerKind,
    FocusPeakingAnalyzer,
    FrameAnalyzer,
    HistogramAnalyzer,
    OverexposureAnalyzer,
)
from preview_assist.config import AnalyzersConfig
from preview_assist.models.results import (
    FocusPeakPoint,
    HistogramResult,
    OverexposedRegion,
)
from preview_assist.pipeline.throttle import FrameThrottle
from preview_assist.stream.frame import Frame


logger = logging.getLogger(__name__)


_ANALYZER_TYPES = {
    AnalyzerKind.HISTOGRAM: HistogramAnalyzer,
    AnalyzerKind.OVEREXPOSURE: OverexposureAnalyzer,
    AnalyzerKind.FOCUS_PEAKING: FocusPeakingAnalyzer,
}


@dataclass(slots=True)
class AnalyzerSlot:
    """
    One analyzer with its private throttle.

    Attributes:
        analyzer: Analyzer instance (immutable config)
        throttle: Frame counter for this analyzer
    """

    analyzer: FrameAnalyzer
    throttle: FrameThrottle

    @property
    def kind(self) -> AnalyzerKind:
        return self.analyzer.kind

    @property
    def enabled(self) -> bool:
        return self.analyzer.config.enabled


def _analyzer_config(config: AnalyzersConfig, kind: AnalyzerKind) -> Any:
    return getattr(config, kind.value)


class AnalysisDispatcher:
    """
    Fan-out of one frame to the enabled analyzers.

    ``dispatch`` is meant to be called from a single analysis thread;
    callbacks run on that thread. ``reconfigure`` and ``set_enabled`` may
    be called from any thread; the new slots take effect from the next
    frame.

    Attributes:
        config: Current analyzer configuration

    Example:
        dispatcher = AnalysisDispatcher(
            settings.analyzers,
            on_histogram=overlay.show_histogram,
        )

        analyzed = dispatcher.dispatch(frame)  # frame is released here
    """

    def __init__(
        self,
        config: Optional[AnalyzersConfig] = None,
        on_histogram: Optional[Callable[[HistogramResult], None]] = None,
        on_overexposed_regions: Optional[Callable[[List[OverexposedRegion]], None]] = None,
        on_focus_peak_points: Optional[Callable[[List[FocusPeakPoint]], None]] = None,
        log_every_n_frames: int = 100,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            config: Analyzer configuration (defaults if None)
            on_histogram: Receives each histogram result
            on_overexposed_regions: Receives each zebra region list
            on_focus_peak_points: Receives each focus peaking point list
            log_every_n_frames: Log a summary every N dispatched frames
        """
        if log_every_n_frames < 1:
            raise ValueError("log_every_n_frames must be >= 1")

        self._callbacks: Dict[AnalyzerKind, Optional[Callable[[Any], None]]] = {
            AnalyzerKind.HISTOGRAM: on_histogram,
            AnalyzerKind.OVEREXPOSURE: on_overexposed_regions,
            AnalyzerKind.FOCUS_PEAKING: on_focus_peak_points,
        }
        self.log_every_n_frames = log_every_n_frames

        self.config = config or AnalyzersConfig()
        self._slots: Tuple[AnalyzerSlot, ...] = tuple(
            self._new_slot(kind, _analyzer_config(self.config, kind))
            for kind in AnalyzerKind
        )
        self._frames_dispatched: int = 0
        self._analyzed: Dict[AnalyzerKind, int] = {kind: 0 for kind in AnalyzerKind}

        # Serializes reconfiguration callers; dispatch never takes it
        self._reconfigure_lock = threading.Lock()

        logger.info(
            f"AnalysisDispatcher initialized: enabled="
            f"{[slot.kind.value for slot in self._slots if slot.enabled]}"
        )

    @staticmethod
    def _new_slot(kind: AnalyzerKind, analyzer_config: Any) -> AnalyzerSlot:
        return AnalyzerSlot(
            analyzer=_ANALYZER_TYPES[kind](analyzer_config),
            throttle=FrameThrottle(analyzer_config.interval),
        )

    @property
    def frames_dispatched(self) -> int:
        """Number of frames passed to dispatch()."""
        return self._frames_dispatched

    def slot(self, kind: AnalyzerKind) -> AnalyzerSlot:
        """Current slot for an analyzer kind."""
        for slot in self._slots:
            if slot.kind is kind:
                return slot
        raise KeyError(kind)

    def dispatch(self, frame: Frame) -> Tuple[AnalyzerKind, ...]:
        """
        Run the due analyzers on a frame, then release it.

        The frame is released exactly once, including when an analyzer or
        callback raises (the exception propagates after release).

        Args:
            frame: Unreleased frame; ownership passes to the dispatcher

        Returns:
            Kinds of the analyzers that ran, in dispatch order
        """
        slots = self._slots
        analyzed: List[AnalyzerKind] = []
        self._frames_dispatched += 1

        try:
            for slot in slots:
                if not slot.enabled:
                    continue
                if not slot.throttle.tick():
                    continue

                result = slot.analyzer.analyze(frame)
                self._analyzed[slot.kind] += 1
                analyzed.append(slot.kind)

                callback = self._callbacks[slot.kind]
                if callback is not None:
                    callback(result)
        finally:
            frame.release()

        if analyzed:
            logger.debug(
                f"Frame {frame.frame_id} analyzed by "
                f"{[kind.value for kind in analyzed]}"
            )

        if self._frames_dispatched % self.log_every_n_frames == 0:
            logger.info(
                f"Dispatcher [frame {self._frames_dispatched}]: "
                f"analyzed={self._analyzed_counts()}"
            )

        return tuple(analyzed)

    def reconfigure(self, config: AnalyzersConfig) -> None:
        """
        Apply a new analyzer configuration from the next frame on.

        Slots whose config is unchanged are kept as they are. A changed
        config gets a new analyzer instance; the throttle (and its phase)
        survives unless the interval changed.

        Args:
            config: New analyzer configuration
        """
        with self._reconfigure_lock:
            self._apply(config)

    def _apply(self, config: AnalyzersConfig) -> None:
        slots: List[AnalyzerSlot] = []
        for slot in self._slots:
            new_config = _analyzer_config(config, slot.kind)
            old_config = slot.analyzer.config

            if new_config == old_config:
                slots.append(slot)
                continue

            throttle = slot.throttle
            if new_config.interval != old_config.interval:
                throttle = FrameThrottle(new_config.interval)

            slots.append(
                AnalyzerSlot(
                    analyzer=_ANALYZER_TYPES[slot.kind](new_config),
                    throttle=throttle,
                )
            )
            logger.info(f"Reconfigured {slot.kind.value} analyzer: {new_config}")

        self.config = config
        self._slots = tuple(slots)

    def set_enabled(self, kind: AnalyzerKind, enabled: bool) -> None:
        """Turn one analyzer on or off from the next frame on."""
        with self._reconfigure_lock:
            current = _analyzer_config(self.config, kind)
            updated = current.model_copy(update={"enabled": enabled})
            self._apply(self.config.model_copy(update={kind.value: updated}))

    def _analyzed_counts(self) -> Dict[str, int]:
        return {kind.value: count for kind, count in self._analyzed.items()}

    def metrics(self) -> dict:
        """
        Get dispatcher metrics for observability.

        Returns:
            Dict with frames_dispatched, per-kind analyzed counts,
            throttle counters and enable flags
        """
        slots = self._slots
        return {
            "frames_dispatched": self._frames_dispatched,
            "analyzed": self._analyzed_counts(),
            "throttle_counts": {
                slot.kind.value: slot.throttle.frame_count for slot in slots
            },
            "enabled": {slot.kind.value: slot.enabled for slot in slots},
        }
