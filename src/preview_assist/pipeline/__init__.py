"""
Pipeline Module
===============

Scheduling of analyzers against the incoming frame stream.

Components:
    - FrameThrottle: every-Nth-frame policy per analyzer
    - AnalysisDispatcher: enabled-analyzer fan-out with release-exactly-once
    - AnalysisWorker: single background thread fed by a keep-latest slot
"""

from preview_assist.pipeline.throttle import FrameThrottle
from preview_assist.pipeline.dispatcher import AnalysisDispatcher, AnalyzerSlot
from preview_assist.pipeline.worker import AnalysisWorker, AnalysisWorkerMetrics

__all__ = [
    "FrameThrottle",
    "AnalysisDispatcher",
    "AnalyzerSlot",
    "AnalysisWorker",
    "AnalysisWorkerMetrics",
]
