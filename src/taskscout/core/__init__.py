"""
TaskScout Core — configuration, data models, scoring, and search.

Re-exports the primary classes for convenience::

    from taskscout.core import InferenceSearchEngine, SnapshotProvider
"""

from taskscout.core.analysis import (
    AnalysisSource,
    JsonAnalysisSource,
    NullAnalysisSource,
    StaticAnalysisSource,
)
from taskscout.core.config import ScoringRules, TaskScoutConfig
from taskscout.core.engine import (
    AnalysisMatch,
    Cluster,
    DatabaseInstance,
    InferenceResult,
    Task,
    TaskStatus,
    infer_clusters,
    score_tasks_against_instance,
    score_tasks_by_naming,
    split_segments,
    split_words,
)
from taskscout.core.providers import ResourceProvider, SnapshotProvider
from taskscout.core.search import (
    InferenceSearchEngine,
    PerformanceTracker,
    ResultFormatter,
    filter_inference_results,
    format_inference_result,
    rank_results,
)

__all__ = [
    "AnalysisSource",
    "JsonAnalysisSource",
    "NullAnalysisSource",
    "StaticAnalysisSource",
    "ScoringRules",
    "TaskScoutConfig",
    "AnalysisMatch",
    "Cluster",
    "DatabaseInstance",
    "InferenceResult",
    "Task",
    "TaskStatus",
    "infer_clusters",
    "score_tasks_against_instance",
    "score_tasks_by_naming",
    "split_segments",
    "split_words",
    "ResourceProvider",
    "SnapshotProvider",
    "InferenceSearchEngine",
    "PerformanceTracker",
    "ResultFormatter",
    "filter_inference_results",
    "format_inference_result",
    "rank_results",
]
