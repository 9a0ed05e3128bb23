"""
TaskScout — find the compute task most likely to reach a database.

The ``taskscout`` package ranks (cluster, task) pairs for a target
database instance using layered name heuristics and a staged, bounded
parallel search.  The output is a best-effort shortlist for a human to
confirm before opening a forwarded session.

Quick start (programmatic API)::

    from taskscout import TaskScout, SnapshotProvider

    scout = TaskScout(provider=SnapshotProvider.from_file("account.json"))
    database = scout.provider.get_database("prod-web-db")
    results = scout.infer(database)

Quick start (CLI)::

    taskscout databases account.json
    taskscout infer account.json prod-web-db

Configuration override::

    from taskscout import TaskScout, TaskScoutConfig

    config = TaskScoutConfig(analysis_dir="./temp", primary_cluster_limit=2)
    scout = TaskScout(config=config, provider=provider)
"""

__version__ = "1.0.0"

# Primary public API: the TaskScout facade
from taskscout.client import TaskScout

# Configuration
from taskscout.core.config import TaskScoutConfig

# Core data types that callers interact with
from taskscout.core.engine import (
    AnalysisMatch,
    Cluster,
    DatabaseInstance,
    InferenceResult,
    Task,
    TaskStatus,
)

# Collaborators
from taskscout.core.analysis import AnalysisSource, JsonAnalysisSource
from taskscout.core.providers import ResourceProvider, SnapshotProvider

# Exception hierarchy
from taskscout.exceptions import (
    AnalysisLoadError,
    ClusterListingError,
    ConfigError,
    SnapshotError,
    TaskListingError,
    TaskScoutError,
)


def health(config: TaskScoutConfig | None = None) -> dict:
    """
    Return a small status dict for agents or REST health checks (no provider calls).

    When *config* is None, uses :meth:`TaskScoutConfig.from_env()` for the snapshot.
    """
    cfg = config or TaskScoutConfig.from_env()
    return {
        "version": __version__,
        "analysis_dir": cfg.analysis_dir,
        "primary_cluster_limit": cfg.primary_cluster_limit,
        "fallback_cluster_limit": cfg.fallback_cluster_limit,
    }


__all__ = [
    "__version__",
    # Facade
    "TaskScout",
    # Config
    "TaskScoutConfig",
    # Data types
    "AnalysisMatch",
    "Cluster",
    "DatabaseInstance",
    "InferenceResult",
    "Task",
    "TaskStatus",
    # Collaborators
    "AnalysisSource",
    "JsonAnalysisSource",
    "ResourceProvider",
    "SnapshotProvider",
    # Exceptions
    "TaskScoutError",
    "ConfigError",
    "ClusterListingError",
    "TaskListingError",
    "AnalysisLoadError",
    "SnapshotError",
    # Status
    "health",
]
