"""
Tests for the TaskScout client API (taskscout.client.TaskScout).

Covers the public facade: infer(), filtering, async variant, health(),
config construction, engine caching, and ConfigError when no provider
is configured.
"""

from unittest.mock import patch

import pytest
from tqdm import tqdm

import taskscout
from conftest import FakeProvider, make_cluster, make_task
from taskscout import ConfigError, SnapshotProvider, TaskScout, TaskScoutConfig
from taskscout.core.analysis import StaticAnalysisSource
from taskscout.core.engine import AnalysisMatch


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config():
    return TaskScoutConfig(primary_cluster_limit=3, fallback_cluster_limit=5)


@pytest.fixture
def provider():
    clusters = [make_cluster(n) for n in ("prod-web", "staging-api", "prod-worker")]
    return FakeProvider(clusters, tasks={
        "prod-web": [
            make_task("prod-web-db-api", "prod-web", task_id="a"),
            make_task("web", "prod-web", task_id="b"),
        ],
        "prod-worker": [make_task("prod-web-db-jobs", "prod-worker", task_id="c")],
    })


@pytest.fixture
def client(config, provider):
    return TaskScout(config=config, provider=provider)


# =============================================================================
# Construction
# =============================================================================


class TestTaskScoutConstruction:
    """Client construction from config and from kwargs."""

    def test_construct_with_explicit_config(self, config):
        client = TaskScout(config=config)
        assert client.config is config
        assert client.provider is None

    def test_construct_from_kwargs_overrides_env(self, monkeypatch):
        monkeypatch.setenv("TASKSCOUT_FALLBACK_CLUSTERS", "9")
        client = TaskScout(primary_cluster_limit=1, analysis_dir="/tmp/x")
        assert client.config.primary_cluster_limit == 1
        assert client.config.analysis_dir == "/tmp/x"
        assert client.config.fallback_cluster_limit == 9

    def test_config_property_returns_same_instance(self, client):
        assert client.config is client._config

    def test_validate_on_init(self):
        with pytest.raises(ConfigError):
            TaskScout(config=TaskScoutConfig(primary_cluster_limit=0), validate_on_init=True)


# =============================================================================
# infer()
# =============================================================================


class TestInfer:
    """Inference through the client."""

    def test_infer_requires_provider(self, config, database):
        with pytest.raises(ConfigError, match="No resource provider"):
            TaskScout(config=config).infer(database)

    def test_infer_ranks_results(self, client, database):
        results = client.infer(database)
        assert [r.task.task_id for r in results] == ["a", "c", "b"]
        assert results[0].confidence == "high"

    def test_infer_with_filter(self, client, database):
        results = client.infer(database, filter_text="jobs")
        assert [r.task.task_id for r in results] == ["c"]

    def test_infer_with_analysis_source(self, config, provider, database):
        source = StaticAnalysisSource([
            AnalysisMatch(database_identifier="prod-web-db", task_family="web",
                          confidence="high", reasons=("DB_HOST",)),
        ])
        client = TaskScout(config=config, provider=provider, analysis_source=source)
        reasons = [r.reason for r in client.infer(database)]
        assert "Analysis match: DB_HOST" in reasons

    def test_infer_from_snapshot(self, config, snapshot_file):
        provider = SnapshotProvider.from_file(snapshot_file)
        client = TaskScout(config=config, provider=provider)
        results = client.infer(provider.get_database("prod-web-db"))
        assert results[0].cluster.name == "prod-web"
        assert results[0].task.task_id == "a1b2c3"


# =============================================================================
# Async variants
# =============================================================================


class TestAsyncApi:
    """Async methods: ainfer."""

    @pytest.mark.asyncio
    async def test_ainfer_returns_same_as_infer(self, client, database):
        sync_results = client.infer(database)
        async_results = await client.ainfer(database)
        assert async_results == sync_results

    @pytest.mark.asyncio
    async def test_ainfer_raises_without_provider(self, config, database):
        with pytest.raises(ConfigError):
            await TaskScout(config=config).ainfer(database)


# =============================================================================
# health()
# =============================================================================


class TestHealth:
    """Status dicts for agents."""

    def test_client_health(self, client):
        status = client.health()
        assert status["version"] == taskscout.__version__
        assert status["provider"] == "FakeProvider"
        assert status["primary_cluster_limit"] == 3

    def test_client_health_without_provider(self, config):
        assert TaskScout(config=config).health()["provider"] is None

    def test_package_health(self):
        status = taskscout.health(TaskScoutConfig(analysis_dir="/tmp/a"))
        assert status["analysis_dir"] == "/tmp/a"
        assert status["fallback_cluster_limit"] == 5


# =============================================================================
# Engine caching
# =============================================================================


class TestEngineCaching:
    """Client caches its InferenceSearchEngine."""

    def test_repeated_infer_reuses_engine(self, client, database):
        client.infer(database)
        engine = client._engine
        client.infer(database)
        assert client._engine is engine

    def test_show_progress_does_not_leak_into_shared_engine(self, client, database):
        with patch("taskscout.core.search.tqdm", wraps=tqdm) as bar:
            client.infer(database, show_progress=True)
        assert client._engine.show_progress is False
        assert [c.kwargs["disable"] for c in bar.call_args_list] == [False]

        with patch("taskscout.core.search.tqdm", wraps=tqdm) as bar:
            client.infer(database)
        assert [c.kwargs["disable"] for c in bar.call_args_list] == [True]
