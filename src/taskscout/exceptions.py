"""
TaskScout Exception Hierarchy

Structured exceptions for clear error handling across CLI, API, and MCP
consumers.  Each exception type maps to a specific failure mode so that
callers can handle errors precisely without parsing message strings.

Usage::

    from taskscout.exceptions import TaskScoutError, ClusterListingError

    try:
        results = scout.infer(database)
    except ClusterListingError:
        print("Could not list clusters; check credentials and region.")
    except TaskScoutError as exc:
        print(f"TaskScout error: {exc}")
"""


class TaskScoutError(Exception):
    """Base exception for all TaskScout errors."""


class ConfigError(TaskScoutError, ValueError):
    """Configuration is invalid (e.g. a non-positive fan-out limit).

    Inherits from ``ValueError`` so callers validating user input can
    keep catching ``ValueError``.
    """


class ClusterListingError(TaskScoutError):
    """The cluster list could not be fetched.  Fatal to an inference call."""


class TaskListingError(TaskScoutError):
    """Listing tasks for a single cluster failed (transport or permission).

    Providers return an empty list for "no tasks" and raise this only for
    genuine failures.  The search engine absorbs it per cluster.
    """


class AnalysisLoadError(TaskScoutError):
    """Pre-computed analysis matches could not be read or parsed."""


class SnapshotError(TaskScoutError, ValueError):
    """A resource snapshot file is missing or malformed."""
