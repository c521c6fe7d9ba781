"""
Analysis Worker Tests
=====================

Threaded handoff between a producer and the single analysis worker.
"""

import threading

import pytest

from preview_assist.config import AnalyzersConfig, HistogramConfig
from preview_assist.pipeline.dispatcher import AnalysisDispatcher
from preview_assist.pipeline.worker import AnalysisWorker
from preview_assist.stream.frame import FrameContractError


WAIT = 5.0


def _every_frame() -> AnalyzersConfig:
    return AnalyzersConfig(histogram=HistogramConfig(interval=1))


def _peak_level(histogram) -> int:
    return max(range(256), key=histogram.bins.__getitem__)


class GatedConsumer:
    """Histogram callback that blocks the worker until the gate opens."""

    def __init__(self) -> None:
        self.entered = threading.Event()
        self.gate = threading.Event()
        self.levels = []
        self.threads = []
        self.done = threading.Event()
        self.expected = 0

    def __call__(self, histogram) -> None:
        self.threads.append(threading.current_thread().name)
        self.levels.append(_peak_level(histogram))
        self.entered.set()
        self.gate.wait(timeout=WAIT)
        if len(self.levels) >= self.expected:
            self.done.set()


class TestAnalysisWorker:
    """Tests for the background worker."""

    def test_keeps_only_latest_frame(self, make_uniform_frame, release_recorder):
        consumer = GatedConsumer()
        consumer.expected = 2
        worker = AnalysisWorker(
            AnalysisDispatcher(_every_frame(), on_histogram=consumer),
            poll_timeout_sec=0.01,
        )
        worker.start()

        try:
            assert worker.submit(make_uniform_frame(10, frame_id=0))
            assert consumer.entered.wait(timeout=WAIT)

            # Worker is busy with frame 0; only the last of these survives
            for frame_id, level in ((1, 20), (2, 30), (3, 40)):
                assert worker.submit(make_uniform_frame(level, frame_id=frame_id))

            assert sorted(release_recorder.released) == [1, 2]

            consumer.gate.set()
            assert consumer.done.wait(timeout=WAIT)
        finally:
            worker.stop(timeout=WAIT)

        assert consumer.levels == [10, 40]
        assert sorted(release_recorder.released) == [0, 1, 2, 3]
        assert worker.slot.dropped_count == 2

    def test_callbacks_run_on_worker_thread(self, make_uniform_frame):
        consumer = GatedConsumer()
        consumer.expected = 1
        consumer.gate.set()

        with AnalysisWorker(AnalysisDispatcher(_every_frame(), on_histogram=consumer)) as worker:
            worker.submit(make_uniform_frame(5))
            assert consumer.done.wait(timeout=WAIT)

        assert consumer.threads == ["preview-assist-analysis"]
        assert threading.current_thread().name not in consumer.threads

    def test_stop_releases_pending_frame(self, make_uniform_frame, release_recorder):
        consumer = GatedConsumer()
        worker = AnalysisWorker(
            AnalysisDispatcher(_every_frame(), on_histogram=consumer),
            poll_timeout_sec=0.01,
        )
        worker.start()

        worker.submit(make_uniform_frame(10, frame_id=0))
        assert consumer.entered.wait(timeout=WAIT)
        worker.submit(make_uniform_frame(20, frame_id=1))

        # Stop while frame 0 is in flight; the join times out
        worker.stop(timeout=0.01)
        assert not worker.submit(make_uniform_frame(30, frame_id=2))

        consumer.gate.set()
        worker.stop(timeout=WAIT)

        assert not worker.running
        assert consumer.levels == [10]
        assert sorted(release_recorder.released) == [0, 1, 2]
        assert worker.metrics.frames_refused == 1

    def test_pending_frame_released_when_stop_times_out(
        self, make_uniform_frame, release_recorder
    ):
        consumer = GatedConsumer()
        worker = AnalysisWorker(
            AnalysisDispatcher(_every_frame(), on_histogram=consumer),
            poll_timeout_sec=0.01,
        )
        worker.start()

        worker.submit(make_uniform_frame(10, frame_id=0))
        assert consumer.entered.wait(timeout=WAIT)
        worker.submit(make_uniform_frame(20, frame_id=1))

        # Single stop; the join gives up while frame 0 is in flight
        worker.stop(timeout=0.01)
        assert worker.running

        consumer.gate.set()
        worker._thread.join(timeout=WAIT)

        assert not worker.running
        assert consumer.levels == [10]
        assert sorted(release_recorder.released) == [0, 1]
        assert worker.slot.size == 0

    def test_submit_before_start_is_refused(self, make_uniform_frame, release_recorder):
        worker = AnalysisWorker(AnalysisDispatcher(_every_frame()))

        assert not worker.submit(make_uniform_frame(1, frame_id=4))
        assert release_recorder.released == [4]

    def test_analysis_error_does_not_stop_worker(self, make_uniform_frame, release_recorder):
        calls = []
        first = threading.Event()
        second = threading.Event()

        def flaky(histogram):
            calls.append(histogram)
            if len(calls) == 1:
                first.set()
                raise RuntimeError("overlay not ready")
            second.set()

        worker = AnalysisWorker(
            AnalysisDispatcher(_every_frame(), on_histogram=flaky),
            poll_timeout_sec=0.01,
        )
        with worker:
            worker.submit(make_uniform_frame(1, frame_id=0))
            assert first.wait(timeout=WAIT)
            worker.submit(make_uniform_frame(1, frame_id=1))
            assert second.wait(timeout=WAIT)

        assert worker.metrics.analysis_errors == 1
        assert sorted(release_recorder.released) == [0, 1]

    @pytest.mark.filterwarnings("ignore::pytest.PytestUnhandledThreadExceptionWarning")
    def test_contract_violation_stops_worker(self, make_uniform_frame):
        worker = AnalysisWorker(AnalysisDispatcher(_every_frame()), poll_timeout_sec=0.01)
        worker.start()

        frame = make_uniform_frame(1)
        frame.release()
        worker.submit(frame)

        worker._thread.join(timeout=WAIT)

        assert not worker.running
        assert isinstance(worker.fatal_error, FrameContractError)
        worker.stop(timeout=WAIT)

    def test_start_twice_raises(self):
        worker = AnalysisWorker(AnalysisDispatcher(_every_frame()))
        worker.start()
        try:
            with pytest.raises(RuntimeError):
                worker.start()
        finally:
            worker.stop(timeout=WAIT)

    def test_rejects_bad_poll_timeout(self):
        with pytest.raises(ValueError):
            AnalysisWorker(AnalysisDispatcher(), poll_timeout_sec=0)
