"""
TaskScout Resource Providers

The search engine never talks to a cloud API directly.  It calls a
:class:`ResourceProvider`, which lists clusters and the tasks inside one
cluster.  Contract:

- ``list_clusters()`` raises on failure (fatal to an inference call).
- ``list_tasks(cluster)`` returns ``[]`` when the cluster has no
  eligible tasks and raises :class:`~taskscout.exceptions.TaskListingError`
  only for genuine transport or permission failures.

:class:`SnapshotProvider` serves a JSON snapshot of an account, which the
CLI and MCP server use::

    {
      "clusters":  [{"name": "prod-web", "arn": "arn:aws:ecs:..."}],
      "tasks":     {"prod-web": [{"task_id": "abc123", "service_name": "web",
                                  "status": "RUNNING", ...}]},
      "databases": [{"identifier": "prod-web-db", "endpoint": "...",
                     "port": 5432, "engine": "postgres"}]
    }
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from taskscout.core.engine import Cluster, DatabaseInstance, Task, TaskStatus
from taskscout.exceptions import SnapshotError, TaskListingError

logger = logging.getLogger(__name__)


class ResourceProvider:
    """
    Abstract base for cluster/task listing collaborators.

    Each subclass wraps one backend and exposes a uniform interface so
    that the rest of the codebase never imports a vendor SDK directly.
    """

    def list_clusters(self) -> List[Cluster]:
        """Return every cluster that tasks can be reached through."""
        raise NotImplementedError

    def list_tasks(self, cluster: Cluster) -> List[Task]:
        """Return the tasks of *cluster* that accept interactive sessions."""
        raise NotImplementedError

    def list_databases(self) -> List[DatabaseInstance]:
        """Return the database instances known to this provider."""
        raise NotImplementedError

    def get_database(self, identifier: str) -> DatabaseInstance:
        """Return the database instance named *identifier*.

        Raises ``KeyError`` when no such instance exists.
        """
        for database in self.list_databases():
            if database.identifier == identifier:
                return database
        raise KeyError(identifier)


class SnapshotProvider(ResourceProvider):
    """Serves clusters, tasks, and databases from a JSON snapshot."""

    def __init__(self, data: Dict[str, Any], source: str = "<memory>"):
        if not isinstance(data, dict):
            raise SnapshotError(f"Snapshot {source} must be a JSON object")
        self.source = source
        self._clusters = [_parse_cluster(c, source) for c in data.get("clusters", [])]
        raw_tasks = data.get("tasks", {})
        if not isinstance(raw_tasks, dict):
            raise SnapshotError(f"'tasks' in snapshot {source} must map cluster names to lists")
        self._tasks: Dict[str, List[Task]] = {
            name: [_parse_task(t, name, source) for t in entries]
            for name, entries in raw_tasks.items()
        }
        self._databases = [_parse_database(d, source) for d in data.get("databases", [])]
        # Cluster names whose task listing should fail (simulates permission errors)
        self._unavailable = set(data.get("unavailable_clusters", []))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SnapshotProvider":
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise SnapshotError(f"Snapshot file not found: {path}") from exc
        except (OSError, ValueError) as exc:
            raise SnapshotError(f"Could not read snapshot {path}: {exc}") from exc
        return cls(data, source=str(path))

    def list_clusters(self) -> List[Cluster]:
        return list(self._clusters)

    def list_tasks(self, cluster: Cluster) -> List[Task]:
        if cluster.name in self._unavailable:
            raise TaskListingError(f"Access denied listing tasks in cluster '{cluster.name}'")
        return list(self._tasks.get(cluster.name, []))

    def list_databases(self) -> List[DatabaseInstance]:
        return list(self._databases)


# =============================================================================
# Snapshot parsing helpers
# =============================================================================

def _require(entry: Dict[str, Any], key: str, kind: str, source: str) -> str:
    value = _optional(entry, key, kind, source)
    if value is None:
        raise SnapshotError(f"{kind} entry in {source} is missing '{key}': {entry!r}")
    return value


def _optional(entry: Dict[str, Any], key: str, kind: str, source: str) -> Optional[str]:
    """Return a string field, None when absent or empty.

    Names and ids are matched as text, so numbers and other JSON types
    are rejected rather than stored.
    """
    value = entry.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise SnapshotError(
            f"{kind} field '{key}' in {source} must be a string, "
            f"got {type(value).__name__}: {value!r}"
        )
    return value


def _parse_datetime(value: Optional[str], source: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"Invalid timestamp {value!r} in {source}") from exc


def _parse_cluster(entry: Any, source: str) -> Cluster:
    if not isinstance(entry, dict):
        raise SnapshotError(f"Cluster entry in {source} must be an object: {entry!r}")
    name = _require(entry, "name", "Cluster", source)
    return Cluster(name=name, arn=_optional(entry, "arn", "Cluster", source) or f"cluster/{name}")


def _parse_task(entry: Any, cluster_name: str, source: str) -> Task:
    if not isinstance(entry, dict):
        raise SnapshotError(f"Task entry in {source} must be an object: {entry!r}")
    task_id = _require(entry, "task_id", "Task", source)
    service_name = _optional(entry, "service_name", "Task", source) or ""
    runtime_id = _optional(entry, "runtime_id", "Task", source) or ""
    raw_status = str(entry.get("status", "RUNNING")).upper()
    try:
        status = TaskStatus(raw_status)
    except ValueError as exc:
        raise SnapshotError(f"Unknown task status {raw_status!r} in {source}") from exc
    return Task(
        task_ref=_optional(entry, "task_ref", "Task", source) or f"ecs:{cluster_name}_{task_id}_{runtime_id}",
        real_ref=_optional(entry, "real_ref", "Task", source) or f"task/{cluster_name}/{task_id}",
        display_name=_optional(entry, "display_name", "Task", source) or service_name or task_id,
        runtime_id=runtime_id,
        task_id=task_id,
        cluster_name=cluster_name,
        service_name=service_name,
        status=status,
        created_at=_parse_datetime(_optional(entry, "created_at", "Task", source), source),
    )


def _parse_database(entry: Any, source: str) -> DatabaseInstance:
    if not isinstance(entry, dict):
        raise SnapshotError(f"Database entry in {source} must be an object: {entry!r}")
    identifier = _require(entry, "identifier", "Database", source)
    try:
        port = int(entry.get("port", 5432))
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"Invalid port for database '{identifier}' in {source}") from exc
    return DatabaseInstance(
        identifier=identifier,
        endpoint=_optional(entry, "endpoint", "Database", source) or "",
        port=port,
        engine=_optional(entry, "engine", "Database", source) or "",
        status=_optional(entry, "status", "Database", source) or "available",
        instance_class=_optional(entry, "instance_class", "Database", source),
        availability_zone=_optional(entry, "availability_zone", "Database", source),
        created_at=_parse_datetime(entry.get("created_at"), source),
    )
