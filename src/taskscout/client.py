"""
TaskScout Client Facade

Single entry point for programmatic use of TaskScout.  Wraps provider
wiring, inference, and filtering behind an instance-based API with
optional async support.

Usage::

    from taskscout import TaskScout, SnapshotProvider

    scout = TaskScout(provider=SnapshotProvider.from_file("account.json"))

    database = scout.provider.get_database("prod-web-db")
    for result in scout.infer(database):
        print(result.cluster.name, result.task.service_name, result.confidence)

    # Async variant (for FastAPI / asyncio callers)
    results = await scout.ainfer(database)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List

from taskscout.core.analysis import AnalysisSource
from taskscout.core.config import TaskScoutConfig
from taskscout.core.engine import DatabaseInstance, InferenceResult
from taskscout.core.providers import ResourceProvider
from taskscout.core.search import InferenceSearchEngine, filter_inference_results
from taskscout.exceptions import ConfigError

logger = logging.getLogger(__name__)


class TaskScout:
    """
    High-level TaskScout client.

    Each instance carries its own :class:`TaskScoutConfig` and never
    touches global state.

    Args:
        config: Explicit configuration object.  When *None*, a config
            is built from environment variables or keyword overrides.
        provider: Collaborator that lists clusters and tasks.  Required
            for :meth:`infer`.
        analysis_source: Source of pre-computed analysis matches.  When
            *None*, the config's ``analysis_dir`` is used (or none at all).
        validate_on_init: If True, call :meth:`TaskScoutConfig.validate`
            in __init__ so bad limits surface immediately.
        **kwargs: Forwarded to :class:`TaskScoutConfig` when *config* is
            ``None`` (e.g. ``primary_cluster_limit=2``).
    """

    def __init__(
        self,
        config: TaskScoutConfig | None = None,
        *,
        provider: ResourceProvider | None = None,
        analysis_source: AnalysisSource | None = None,
        validate_on_init: bool = False,
        **kwargs,
    ):
        if config is not None:
            self._config = config
        elif kwargs:
            # Build a config from env, then overlay keyword overrides
            base = TaskScoutConfig.from_env()
            merged = {
                f.name: kwargs.get(f.name, getattr(base, f.name))
                for f in base.__dataclass_fields__.values()
            }
            self._config = TaskScoutConfig(**merged)
        else:
            self._config = TaskScoutConfig.from_env()

        if validate_on_init:
            self._config.validate()

        self.provider = provider
        self.analysis_source = analysis_source
        self._engine: InferenceSearchEngine | None = None

    # ── Configuration ─────────────────────────────────────────────

    @property
    def config(self) -> TaskScoutConfig:
        """The active configuration for this client."""
        return self._config

    # ── Inference ─────────────────────────────────────────────────

    def infer(
        self,
        database: DatabaseInstance,
        *,
        filter_text: str | None = None,
        show_progress: bool = False,
    ) -> List[InferenceResult]:
        """
        Rank the tasks most likely to reach *database*.

        Args:
            database: Target database instance.
            filter_text: Optional whitespace-separated keywords; only
                results matching all of them are returned.
            show_progress: Show a tqdm progress bar per search phase.

        Returns:
            Reachable candidates ranked by confidence and score, followed
            by stopped tasks demoted to low confidence.

        Raises:
            ConfigError: If no provider is configured.
            ClusterListingError: If the cluster list cannot be fetched.
        """
        results = self._get_engine().infer(database, show_progress=show_progress)
        if filter_text:
            results = filter_inference_results(results, filter_text)
        return results

    # ── Async variants ────────────────────────────────────────────
    # asyncio.to_thread() keeps the provider's blocking calls off the
    # event loop.  Raises the same exceptions as the sync methods.

    async def ainfer(
        self,
        database: DatabaseInstance,
        *,
        filter_text: str | None = None,
    ) -> List[InferenceResult]:
        """Async variant of :meth:`infer`. Raises same exceptions as sync."""
        return await asyncio.to_thread(self.infer, database, filter_text=filter_text)

    # ── Health (for agents / status endpoints) ─────────────────────

    def health(self) -> Dict[str, object]:
        """
        Return a small status dict for agents or REST health checks.

        Does not call the provider.
        """
        return {
            "version": __import__("taskscout", fromlist=["__version__"]).__version__,
            "provider": type(self.provider).__name__ if self.provider else None,
            "analysis_dir": self._config.analysis_dir,
            "primary_cluster_limit": self._config.primary_cluster_limit,
            "fallback_cluster_limit": self._config.fallback_cluster_limit,
        }

    # ── Internal helpers ──────────────────────────────────────────

    def _get_engine(self) -> InferenceSearchEngine:
        """Return the cached search engine, building it on first use."""
        if self.provider is None:
            raise ConfigError(
                "No resource provider configured. "
                "Pass provider=SnapshotProvider.from_file(...) or a custom ResourceProvider."
            )
        if self._engine is None:
            self._engine = InferenceSearchEngine(
                self.provider,
                config=self._config,
                analysis_source=self.analysis_source,
            )
        return self._engine
