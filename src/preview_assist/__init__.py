"""
PreviewAssist
=============

Real-time analysis of camera preview frames for manual-photography overlays.

The pipeline inspects the luma plane of each delivered preview frame and
produces three results for the overlay renderer:
    - a luminance histogram
    - overexposed ("zebra") blocks
    - focus peaking points

Components:
    - stream: Frame handle, keep-latest handoff, frame sources
    - analysis: Histogram, overexposure and focus peaking analyzers
    - pipeline: Throttles, dispatcher and the background analysis worker
    - config: Settings loaded from YAML and environment variables

Example:
    from preview_assist.config import load_config
    from preview_assist.pipeline import AnalysisDispatcher, AnalysisWorker

    settings = load_config()
    dispatcher = AnalysisDispatcher(settings.analyzers, on_histogram=print)
    with AnalysisWorker(dispatcher) as worker:
        camera.on_frame(worker.submit)
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
