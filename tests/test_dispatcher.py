"""
Analysis Dispatcher Tests
=========================
"""

import threading

import numpy as np
import pytest

from preview_assist.analysis import AnalyzerKind
from preview_assist.config import (
    AnalyzersConfig,
    FocusPeakingConfig,
    HistogramConfig,
    OverexposureConfig,
)
from preview_assist.pipeline.dispatcher import AnalysisDispatcher
from preview_assist.stream.frame import FrameAlreadyReleasedError


def _config(
    histogram: bool = True,
    overexposure: bool = True,
    focus_peaking: bool = True,
    interval: int = 1,
) -> AnalyzersConfig:
    return AnalyzersConfig(
        histogram=HistogramConfig(enabled=histogram, interval=interval),
        overexposure=OverexposureConfig(enabled=overexposure, interval=interval),
        focus_peaking=FocusPeakingConfig(enabled=focus_peaking, interval=interval),
    )


class Recorder:
    """Collects callback invocations in order."""

    def __init__(self) -> None:
        self.calls = []

    def histogram(self, result):
        self.calls.append((AnalyzerKind.HISTOGRAM, result))

    def regions(self, result):
        self.calls.append((AnalyzerKind.OVEREXPOSURE, result))

    def peaks(self, result):
        self.calls.append((AnalyzerKind.FOCUS_PEAKING, result))

    def dispatcher(self, config: AnalyzersConfig) -> AnalysisDispatcher:
        return AnalysisDispatcher(
            config,
            on_histogram=self.histogram,
            on_overexposed_regions=self.regions,
            on_focus_peak_points=self.peaks,
        )


class TestDispatch:
    """Tests for per-frame routing."""

    def test_all_enabled_run_in_order(self, make_uniform_frame):
        recorder = Recorder()
        dispatcher = recorder.dispatcher(_config())

        analyzed = dispatcher.dispatch(make_uniform_frame(255))

        assert analyzed == (
            AnalyzerKind.HISTOGRAM,
            AnalyzerKind.OVEREXPOSURE,
            AnalyzerKind.FOCUS_PEAKING,
        )
        assert [kind for kind, _ in recorder.calls] == list(analyzed)

    @pytest.mark.parametrize(
        "flags, expected_runs",
        [
            ((False, False, False), 0),
            ((True, False, False), 1),
            ((True, True, False), 2),
            ((True, True, True), 3),
        ],
    )
    def test_release_exactly_once(
        self, make_uniform_frame, release_recorder, flags, expected_runs
    ):
        dispatcher = AnalysisDispatcher(_config(*flags))

        analyzed = dispatcher.dispatch(make_uniform_frame(100, frame_id=9))

        assert len(analyzed) == expected_runs
        assert release_recorder.released == [9]

    def test_release_when_throttled(self, make_uniform_frame, release_recorder):
        dispatcher = AnalysisDispatcher(_config(interval=3))

        assert dispatcher.dispatch(make_uniform_frame(1, frame_id=1)) == ()
        assert release_recorder.released == [1]

    def test_release_when_callback_raises(self, make_uniform_frame, release_recorder):
        def boom(result):
            raise RuntimeError("renderer failed")

        dispatcher = AnalysisDispatcher(_config(), on_histogram=boom)

        with pytest.raises(RuntimeError):
            dispatcher.dispatch(make_uniform_frame(1))
        assert release_recorder.count == 1

    def test_released_frame_is_a_contract_violation(self, make_uniform_frame):
        dispatcher = AnalysisDispatcher(_config(histogram=False, interval=2))
        frame = make_uniform_frame(1)
        frame.release()

        with pytest.raises(FrameAlreadyReleasedError):
            dispatcher.dispatch(frame)

    def test_missing_callbacks_are_fine(self, make_uniform_frame):
        dispatcher = AnalysisDispatcher(_config())
        assert len(dispatcher.dispatch(make_uniform_frame(1))) == 3

    def test_independent_intervals(self, make_uniform_frame):
        dispatcher = AnalysisDispatcher(
            AnalyzersConfig(
                histogram=HistogramConfig(interval=5),
                overexposure=OverexposureConfig(enabled=True, interval=10),
                focus_peaking=FocusPeakingConfig(enabled=True, interval=8),
            )
        )

        for tick in range(40):
            dispatcher.dispatch(make_uniform_frame(1, frame_id=tick))

        assert dispatcher.metrics()["analyzed"] == {
            "histogram": 8,
            "overexposure": 4,
            "focus_peaking": 5,
        }

    def test_unsupported_frames_then_supported(
        self, make_unsupported_frame, make_uniform_frame, release_recorder
    ):
        recorder = Recorder()
        dispatcher = recorder.dispatcher(
            AnalyzersConfig(histogram=HistogramConfig(interval=5))
        )

        analyzed_ticks = []
        for tick in range(1, 21):
            if tick < 20:
                frame = make_unsupported_frame(width=64, height=48, frame_id=tick)
            else:
                frame = make_uniform_frame(200, width=64, height=48, frame_id=tick)
            if dispatcher.dispatch(frame):
                analyzed_ticks.append(tick)

        assert analyzed_ticks == [5, 10, 15, 20]
        assert release_recorder.released == list(range(1, 21))

        histograms = [result for _, result in recorder.calls]
        assert len(histograms) == 4
        assert [h.total for h in histograms[:3]] == [0, 0, 0]

        last = histograms[-1]
        assert last.bins[200] == 16 * 12
        assert last.total == last.bins[200]


class TestReconfigure:
    """Tests for configuration changes between frames."""

    def test_disabled_slot_keeps_its_phase(self, make_uniform_frame):
        dispatcher = AnalysisDispatcher(
            AnalyzersConfig(histogram=HistogramConfig(interval=5))
        )
        for _ in range(3):
            dispatcher.dispatch(make_uniform_frame(1))

        dispatcher.set_enabled(AnalyzerKind.HISTOGRAM, False)
        for _ in range(10):
            assert dispatcher.dispatch(make_uniform_frame(1)) == ()
        assert dispatcher.slot(AnalyzerKind.HISTOGRAM).throttle.frame_count == 3

        dispatcher.set_enabled(AnalyzerKind.HISTOGRAM, True)
        assert dispatcher.dispatch(make_uniform_frame(1)) == ()
        assert dispatcher.dispatch(make_uniform_frame(1)) == (AnalyzerKind.HISTOGRAM,)

    def test_unchanged_slots_are_kept(self):
        dispatcher = AnalysisDispatcher(_config())
        histogram_slot = dispatcher.slot(AnalyzerKind.HISTOGRAM)

        dispatcher.reconfigure(
            _config().model_copy(
                update={"overexposure": OverexposureConfig(enabled=True, interval=1, threshold_percent=80)}
            )
        )

        assert dispatcher.slot(AnalyzerKind.HISTOGRAM) is histogram_slot
        assert dispatcher.slot(AnalyzerKind.OVEREXPOSURE).analyzer.config.threshold_percent == 80

    def test_new_threshold_builds_new_analyzer(self, make_uniform_frame):
        recorder = Recorder()
        dispatcher = recorder.dispatcher(_config(histogram=False, focus_peaking=False))
        old_analyzer = dispatcher.slot(AnalyzerKind.OVEREXPOSURE).analyzer

        dispatcher.dispatch(make_uniform_frame(200, width=32, height=32))
        dispatcher.reconfigure(
            AnalyzersConfig(
                histogram=HistogramConfig(enabled=False),
                overexposure=OverexposureConfig(enabled=True, interval=1, threshold_percent=50),
            )
        )
        dispatcher.dispatch(make_uniform_frame(200, width=32, height=32))

        assert dispatcher.slot(AnalyzerKind.OVEREXPOSURE).analyzer is not old_analyzer
        assert [len(regions) for _, regions in recorder.calls] == [0, 1]

    def test_interval_change_resets_throttle(self, make_uniform_frame):
        dispatcher = AnalysisDispatcher(
            AnalyzersConfig(histogram=HistogramConfig(interval=5))
        )
        for _ in range(4):
            dispatcher.dispatch(make_uniform_frame(1))

        dispatcher.reconfigure(AnalyzersConfig(histogram=HistogramConfig(interval=2)))

        slot = dispatcher.slot(AnalyzerKind.HISTOGRAM)
        assert slot.throttle.interval == 2
        assert slot.throttle.frame_count == 0


    def test_concurrent_toggles_are_not_lost(self):
        dispatcher = AnalysisDispatcher(_config(histogram=False, focus_peaking=False))
        kinds = (AnalyzerKind.HISTOGRAM, AnalyzerKind.FOCUS_PEAKING)
        start = threading.Barrier(len(kinds))

        def toggle(kind):
            start.wait(timeout=5.0)
            for _ in range(200):
                dispatcher.set_enabled(kind, True)

        threads = [threading.Thread(target=toggle, args=(kind,)) for kind in kinds]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5.0)

        assert dispatcher.config.histogram.enabled is True
        assert dispatcher.config.focus_peaking.enabled is True
        assert dispatcher.slot(AnalyzerKind.HISTOGRAM).enabled
        assert dispatcher.slot(AnalyzerKind.FOCUS_PEAKING).enabled

    def test_analyzed_counts_survive_reconfigure(self, make_uniform_frame):
        dispatcher = AnalysisDispatcher(
            AnalyzersConfig(histogram=HistogramConfig(interval=1))
        )
        for _ in range(3):
            dispatcher.dispatch(make_uniform_frame(1))

        dispatcher.reconfigure(AnalyzersConfig(histogram=HistogramConfig(interval=2)))
        for _ in range(2):
            dispatcher.dispatch(make_uniform_frame(1))

        assert dispatcher.metrics()["analyzed"]["histogram"] == 4


class TestMetrics:
    """Tests for observability output."""

    def test_metrics_shape(self, make_uniform_frame):
        dispatcher = AnalysisDispatcher(_config(interval=2))
        for _ in range(4):
            dispatcher.dispatch(make_uniform_frame(1))

        metrics = dispatcher.metrics()

        assert metrics["frames_dispatched"] == 4
        assert metrics["analyzed"]["histogram"] == 2
        assert metrics["throttle_counts"]["focus_peaking"] == 4
        assert metrics["enabled"] == {
            "histogram": True,
            "overexposure": True,
            "focus_peaking": True,
        }
