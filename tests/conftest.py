"""
Shared fixtures for the TaskScout test suite.
"""

import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Ensure the src/ directory is on the import path so that
# taskscout.core.config / taskscout.core.engine / etc. can be imported.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

from taskscout.core.engine import (  # noqa: E402
    Cluster, DatabaseInstance, Task, TaskStatus,
)
from taskscout.core.providers import ResourceProvider  # noqa: E402


# =============================================================================
# Builders
# =============================================================================

def make_cluster(name: str) -> Cluster:
    return Cluster(name=name, arn=f"arn:aws:ecs:us-east-1:123456789012:cluster/{name}")


def make_task(
    service_name: str,
    cluster_name: str = "cluster",
    task_id: Optional[str] = None,
    display_name: Optional[str] = None,
    status: TaskStatus = TaskStatus.RUNNING,
) -> Task:
    task_id = task_id or f"{service_name}-0001"
    return Task(
        task_ref=f"ecs:{cluster_name}_{task_id}_rt",
        real_ref=f"arn:aws:ecs:us-east-1:123456789012:task/{cluster_name}/{task_id}",
        display_name=display_name if display_name is not None else service_name,
        runtime_id="rt",
        task_id=task_id,
        cluster_name=cluster_name,
        service_name=service_name,
        status=status,
    )


def make_database(identifier: str = "prod-web-db") -> DatabaseInstance:
    return DatabaseInstance(
        identifier=identifier,
        endpoint=f"{identifier}.abc.us-east-1.rds.amazonaws.com",
        port=5432,
        engine="postgres",
    )


class FakeProvider(ResourceProvider):
    """In-memory provider that records calls and can simulate failures."""

    def __init__(
        self,
        clusters: List[Cluster],
        tasks: Optional[Dict[str, List[Task]]] = None,
        failing: Optional[set] = None,
        databases: Optional[List[DatabaseInstance]] = None,
        cluster_error: Optional[Exception] = None,
    ):
        self.clusters = clusters
        self.tasks = tasks or {}
        self.failing = failing or set()
        self.databases = databases or []
        self.cluster_error = cluster_error
        self.listed: List[str] = []
        self._lock = threading.Lock()

    def list_clusters(self) -> List[Cluster]:
        if self.cluster_error is not None:
            raise self.cluster_error
        return list(self.clusters)

    def list_tasks(self, cluster: Cluster) -> List[Task]:
        with self._lock:
            self.listed.append(cluster.name)
        if cluster.name in self.failing:
            raise RuntimeError(f"boom in {cluster.name}")
        return list(self.tasks.get(cluster.name, []))

    def list_databases(self) -> List[DatabaseInstance]:
        return list(self.databases)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def database() -> DatabaseInstance:
    return make_database("prod-web-db")


@pytest.fixture
def snapshot_data() -> dict:
    """A small account snapshot in the JSON layout SnapshotProvider reads."""
    return {
        "clusters": [
            {"name": "prod-web", "arn": "arn:aws:ecs:us-east-1:123456789012:cluster/prod-web"},
            {"name": "staging-api"},
            {"name": "dev-app"},
        ],
        "tasks": {
            "prod-web": [
                {"task_id": "a1b2c3", "service_name": "prod-web-db-api",
                 "display_name": "prod-web-db-api", "runtime_id": "r-1",
                 "status": "RUNNING", "created_at": "2024-05-01T12:00:00"},
                {"task_id": "d4e5f6", "service_name": "worker", "status": "STOPPED"},
            ],
            "staging-api": [
                {"task_id": "0a0a0a", "service_name": "api", "status": "RUNNING"},
            ],
        },
        "databases": [
            {"identifier": "prod-web-db", "endpoint": "prod-web-db.example.com",
             "port": 5432, "engine": "postgres"},
            {"identifier": "staging-db", "endpoint": "staging-db.example.com",
             "port": "3306", "engine": "mysql"},
        ],
    }


@pytest.fixture
def snapshot_file(tmp_path: Path, snapshot_data: dict) -> Path:
    import json

    path = tmp_path / "account.json"
    path.write_text(json.dumps(snapshot_data), encoding="utf-8")
    return path
