from netloop.core.loops.engine import LoopDetectionEngine, detect_loops
from netloop.core.loops.fees import FeeSchedule, calculate_fee
from netloop.core.loops.graph import ObligationGraph, ObligationGraphBuilder, build_graph
from netloop.core.loops.service import LoopDetectionService

__all__ = [
    "ObligationGraph",
    "ObligationGraphBuilder",
    "build_graph",
    "detect_loops",
    "calculate_fee",
    "FeeSchedule",
    "LoopDetectionEngine",
    "LoopDetectionService",
]
