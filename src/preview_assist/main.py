"""
PreviewAssist Runner
====================

Command line entry point that runs the analysis pipeline against a frame
source and reports what it produced.

The source runs on the calling thread (standing in for the camera
delivery thread) and submits frames to the AnalysisWorker, which runs
the enabled analyzers on its own thread.

Usage:
    preview-assist --duration 10
    preview-assist --source video --video clip.mp4 --zebra --peaking
    preview-assist --pattern highlights --zebra --zebra-threshold 90
"""

import argparse
import logging
import sys
import threading
import time
from typing import List, Optional

from preview_assist.config import (
    FocusPeakingConfig,
    OverexposureConfig,
    Settings,
    load_config,
    setup_logging,
)
from preview_assist.models.results import (
    FocusPeakPoint,
    HistogramResult,
    OverexposedRegion,
)
from preview_assist.pipeline import AnalysisDispatcher, AnalysisWorker
from preview_assist.stream.sources import (
    PATTERNS,
    FrameSource,
    SyntheticFrameSource,
    VideoFileSource,
)


logger = logging.getLogger(__name__)


class ResultLog:
    """Keeps the latest result of each analyzer for the final report."""

    def __init__(self) -> None:
        self.histogram: Optional[HistogramResult] = None
        self.regions: List[OverexposedRegion] = []
        self.peaks: List[FocusPeakPoint] = []

    def on_histogram(self, result: HistogramResult) -> None:
        self.histogram = result
        logger.debug(f"Histogram: {result!r}")

    def on_overexposed_regions(self, regions: List[OverexposedRegion]) -> None:
        self.regions = regions
        logger.debug(f"Zebra: {len(regions)} regions")

    def on_focus_peak_points(self, points: List[FocusPeakPoint]) -> None:
        self.peaks = points
        logger.debug(f"Focus peaking: {len(points)} points")

    def summary(self) -> dict:
        strongest = max(self.peaks, key=lambda point: point.intensity, default=None)
        return {
            "histogram_total": self.histogram.total if self.histogram else None,
            "overexposed_regions": len(self.regions),
            "first_overexposed_region": self.regions[0].to_dict() if self.regions else None,
            "focus_peak_points": len(self.peaks),
            "strongest_focus_peak": strongest.to_dict() if strongest else None,
        }


def create_source(settings: Settings) -> FrameSource:
    """
    Create frame source based on config.

    Fails fast if the video source is requested without a path.
    """
    source = settings.source

    if source.kind == "synthetic":
        return SyntheticFrameSource(
            pattern=source.pattern,
            width=source.width,
            height=source.height,
            fps=source.fps,
            row_padding=source.row_padding,
        )

    elif source.kind == "video":
        if not source.video_path:
            raise ValueError("Video source requested but no video path configured")
        return VideoFileSource(
            source.video_path,
            width=source.width,
            height=source.height,
            fps=source.fps,
            loop=True,
        )

    else:
        raise ValueError(f"Unknown frame source: {source.kind}")


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with command line flags applied on top."""
    analyzers = settings.analyzers

    histogram = analyzers.histogram
    if args.no_histogram:
        histogram = histogram.model_copy(update={"enabled": False})

    overexposure = analyzers.overexposure
    if args.zebra:
        overexposure = overexposure.model_copy(update={"enabled": True})
    if args.zebra_threshold is not None:
        overexposure = OverexposureConfig(
            **{**overexposure.model_dump(), "threshold_percent": args.zebra_threshold}
        )

    focus_peaking = analyzers.focus_peaking
    if args.peaking:
        focus_peaking = focus_peaking.model_copy(update={"enabled": True})
    if args.sensitivity is not None:
        focus_peaking = FocusPeakingConfig(
            **{**focus_peaking.model_dump(), "sensitivity": args.sensitivity}
        )

    source_update = {}
    if args.source:
        source_update["kind"] = args.source
    if args.video:
        source_update["video_path"] = args.video
    if args.pattern:
        source_update["pattern"] = args.pattern

    return settings.model_copy(
        update={
            "analyzers": analyzers.model_copy(
                update={
                    "histogram": histogram,
                    "overexposure": overexposure,
                    "focus_peaking": focus_peaking,
                }
            ),
            "source": settings.source.model_copy(update=source_update),
        }
    )


def run(settings: Settings, duration: float, report_interval: float) -> dict:
    """
    Run the pipeline for a fixed duration.

    Args:
        settings: Loaded configuration
        duration: Seconds to run
        report_interval: Seconds between progress reports

    Returns:
        Final metrics dict
    """
    logger.info("=" * 60)
    logger.info("PreviewAssist pipeline run")
    logger.info("=" * 60)
    logger.info(f"Source: {settings.source.kind}")
    logger.info(f"Duration: {duration} seconds")
    logger.info("=" * 60)

    results = ResultLog()
    dispatcher = AnalysisDispatcher(
        settings.analyzers,
        on_histogram=results.on_histogram,
        on_overexposed_regions=results.on_overexposed_regions,
        on_focus_peak_points=results.on_focus_peak_points,
        log_every_n_frames=settings.worker.log_every_n_frames,
    )
    worker = AnalysisWorker(
        dispatcher,
        poll_timeout_sec=settings.worker.poll_timeout_sec,
    )
    source = create_source(settings)

    stop_event = threading.Event()
    timer = threading.Timer(duration, stop_event.set)
    reporter_stop = threading.Event()

    def report() -> None:
        while not reporter_stop.wait(timeout=report_interval):
            logger.info(
                f"Progress: delivered={source.delivered_count}, "
                f"dropped={worker.slot.dropped_count}, "
                f"analyzed={dispatcher.metrics()['analyzed']}"
            )

    reporter = threading.Thread(target=report, name="preview-assist-report", daemon=True)

    start_time = time.time()
    worker.start()
    timer.start()
    reporter.start()
    try:
        source.run(worker.submit, stop_event)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        timer.cancel()
        reporter_stop.set()
        worker.stop()

    elapsed = time.time() - start_time

    final = {
        "elapsed_seconds": round(elapsed, 1),
        "frames_delivered": source.delivered_count,
        "frames_released": source.released_count,
        "frames_dropped": worker.slot.dropped_count,
        **worker.metrics.to_dict(),
        **dispatcher.metrics(),
        **results.summary(),
    }

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    for key, value in final.items():
        logger.info(f"  {key}: {value}")
    logger.info("=" * 60)

    if source.outstanding:
        logger.error(f"{source.outstanding} frames were never released")

    return final


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run the preview analysis pipeline against a frame source"
    )
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    parser.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Run duration in seconds (default: 10)",
    )
    parser.add_argument(
        "--report-interval",
        type=float,
        default=2.0,
        help="Seconds between progress reports (default: 2)",
    )
    parser.add_argument("--source", choices=("synthetic", "video"), default=None)
    parser.add_argument("--video", default=None, help="Video file for --source video")
    parser.add_argument("--pattern", choices=PATTERNS, default=None)
    parser.add_argument("--no-histogram", action="store_true", help="Disable the histogram")
    parser.add_argument("--zebra", action="store_true", help="Enable zebra detection")
    parser.add_argument("--zebra-threshold", type=int, default=None, help="Zebra threshold percent")
    parser.add_argument("--peaking", action="store_true", help="Enable focus peaking")
    parser.add_argument("--sensitivity", type=float, default=None, help="Focus peaking sensitivity")

    args = parser.parse_args()

    settings = load_config(args.config)
    setup_logging(settings)

    try:
        settings = apply_cli_overrides(settings, args)
        final = run(settings, args.duration, args.report_interval)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    return 0 if final["frames_delivered"] == final["frames_released"] else 1


if __name__ == "__main__":
    sys.exit(main())
