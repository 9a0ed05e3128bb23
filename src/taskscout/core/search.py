"""
TaskScout Search Engine

Staged search for the tasks most likely to reach a database instance.

Phases:
- Load analysis hints (best-effort)
- Infer candidate clusters from the database identifier
- Primary search: top clusters, environment scorer, concurrent fan-out
- Fallback search: next clusters, naming scorer, only when under-delivered
- Partition live/dead, rank, and demote unreachable tasks

Also provides keyword filtering of results and output formatting.
"""

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from tqdm import tqdm

from taskscout.core.analysis import AnalysisSource, JsonAnalysisSource, NullAnalysisSource
from taskscout.core.config import ScoringRules, TaskScoutConfig
from taskscout.core.engine import (
    AnalysisMatch, Cluster, DatabaseInstance, InferenceResult, Task,
    infer_clusters, score_tasks_against_instance, score_tasks_by_naming,
)
from taskscout.core.providers import ResourceProvider
from taskscout.exceptions import ClusterListingError

logger = logging.getLogger(__name__)

# Scores one cluster's tasks: (tasks, cluster) -> results
ClusterScorer = Callable[[Sequence[Task], Cluster], List[InferenceResult]]


# =============================================================================
# Performance Tracking
# =============================================================================

@dataclass
class PerformanceMetric:
    step: str
    start_time: float
    end_time: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class PerformanceTracker:
    """Records wall-clock duration of named, sequential steps."""

    SLOW_THRESHOLD_SECONDS = 3.0

    def __init__(self):
        self._metrics: List[PerformanceMetric] = []
        self._current_step: Optional[str] = None
        self._step_start: Optional[float] = None

    def start_step(self, step: str) -> None:
        """Begin *step*, closing any step still open."""
        if self._current_step:
            self.end_step()
        self._current_step = step
        self._step_start = time.perf_counter()

    def end_step(self) -> None:
        if self._current_step is None or self._step_start is None:
            return
        self._metrics.append(PerformanceMetric(
            step=self._current_step,
            start_time=self._step_start,
            end_time=time.perf_counter(),
        ))
        self._current_step = None
        self._step_start = None

    def get_metrics(self) -> List[PerformanceMetric]:
        if self._current_step:
            self.end_step()
        return list(self._metrics)

    def get_total_duration(self) -> float:
        return sum(m.duration for m in self._metrics)

    def get_report(self) -> str:
        """Render a per-step timing table."""
        metrics = self.get_metrics()
        total = self.get_total_duration()

        lines = ["", "  Performance Report", "─" * 50]
        for m in metrics:
            pct = (m.duration / total * 100) if total > 0 else 0.0
            lines.append(f"  {m.step:<32} {m.duration * 1000:>7.0f}ms ({pct:.1f}%)")
        lines.append("─" * 50)
        lines.append(f"  {'Total':<32} {total * 1000:>7.0f}ms (100.0%)")
        if total > self.SLOW_THRESHOLD_SECONDS:
            lines.append(
                f"  Warning: total time exceeds {self.SLOW_THRESHOLD_SECONDS:.0f} seconds"
            )
        return "\n".join(lines)


# =============================================================================
# Search Engine
# =============================================================================

class InferenceSearchEngine:
    """
    Staged search engine ranking (cluster, task) pairs for a database.

    The engine runs at most **two** bounded fan-out phases:

    1. **Primary** — the top ``primary_cluster_limit`` inferred clusters,
       scored with the precise (filtering) environment heuristic.
    2. **Fallback** — when the primary phase produced fewer than
       ``fallback_threshold`` results, the next ``fallback_cluster_limit``
       clusters, scored with the cheaper non-filtering naming heuristic.

    Each phase issues its task listings concurrently and joins them all
    before anything is ranked, so the output never depends on which call
    finished first.  A failing cluster contributes nothing; only a
    failure to list clusters aborts the search.
    """

    def __init__(
        self,
        provider: ResourceProvider,
        config: TaskScoutConfig | None = None,
        analysis_source: AnalysisSource | None = None,
        show_progress: bool = False,
    ):
        self._config = config or TaskScoutConfig.from_env()
        self.provider = provider
        self.analysis_source = analysis_source or self._default_analysis_source()
        self.show_progress = show_progress
        self._last_tracker: Optional[PerformanceTracker] = None

    def _default_analysis_source(self) -> AnalysisSource:
        path = self._config.get_analysis_path()
        if path is None:
            return NullAnalysisSource()
        return JsonAnalysisSource(path)

    @property
    def last_performance(self) -> Optional[PerformanceTracker]:
        """Tracker of the most recently started :meth:`infer` call.

        Each call records into its own tracker, so overlapping calls never
        share timings; this only exposes the latest one.
        """
        return self._last_tracker

    # ── Public API ────────────────────────────────────────────────

    def infer(
        self,
        database: DatabaseInstance,
        show_progress: bool | None = None,
    ) -> List[InferenceResult]:
        """
        Rank candidate (cluster, task) pairs for *database*.

        *show_progress* overrides the engine default for this call only.

        Returns live results sorted by confidence then score, followed by
        results for stopped tasks demoted to ``low``/0.

        Raises:
            ClusterListingError: If the cluster list cannot be fetched.
        """
        cfg = self._config
        progress = self.show_progress if show_progress is None else show_progress
        tracker = PerformanceTracker()
        self._last_tracker = tracker
        try:
            tracker.start_step("Load analysis results")
            analysis_matches = self._load_analysis()

            tracker.start_step("List clusters")
            clusters = self._list_clusters()
            cluster_map: Dict[str, Cluster] = {c.name: c for c in clusters}

            tracker.start_step("Infer clusters from name")
            ranked_names = infer_clusters(database.identifier, clusters)
            candidates = [cluster_map[name] for name in ranked_names if name in cluster_map]
            logger.info(
                f"Inferred {len(candidates)} candidate clusters for "
                f"'{database.identifier}' out of {len(clusters)}"
            )

            tracker.start_step("Search primary clusters")
            primary = candidates[:cfg.primary_cluster_limit]
            results = self._search_clusters(
                primary,
                lambda tasks, cluster: score_tasks_against_instance(
                    tasks, cluster, database, analysis_matches,
                    floor=cfg.environment_match_floor,
                ),
                phase="primary",
                show_progress=progress,
            )

            tracker.start_step("Search fallback clusters")
            if len(results) < cfg.fallback_threshold:
                start = cfg.primary_cluster_limit
                fallback = candidates[start:start + cfg.fallback_cluster_limit]
                logger.info(
                    f"Primary search found {len(results)} result(s); "
                    f"falling back to {len(fallback)} more cluster(s)"
                )
                results += self._search_clusters(
                    fallback,
                    lambda tasks, cluster: score_tasks_by_naming(tasks, cluster, database),
                    phase="fallback",
                    show_progress=progress,
                )
            tracker.end_step()

            final = rank_results(results, cfg.stopped_task_suffix)
            live = sum(1 for r in final if r.is_live)
            logger.debug(
                f"Inference summary: {len(ranked_names)} clusters inferred, "
                f"{len(final)} results, {live} reachable, {len(final) - live} stopped"
            )
            return final
        finally:
            if cfg.enable_performance_tracking:
                logger.info(tracker.get_report())

    # ── Phase helpers ─────────────────────────────────────────────

    def _load_analysis(self) -> List[AnalysisMatch]:
        """Best-effort load of analysis hints; any failure means none.

        Hints with an unknown confidence level are dropped one by one so
        they cannot take the rest of a cluster's results down with them.
        """
        try:
            matches = self.analysis_source.load()
        except Exception as e:
            logger.warning(f"Could not load analysis results: {e}")
            return []

        usable: List[AnalysisMatch] = []
        for match in matches:
            if match.confidence not in ScoringRules.ANALYSIS_SCORES:
                logger.warning(
                    f"Ignoring analysis match for '{match.database_identifier}' "
                    f"with unknown confidence {match.confidence!r}"
                )
                continue
            usable.append(match)
        return usable

    def _list_clusters(self) -> List[Cluster]:
        try:
            return self.provider.list_clusters()
        except ClusterListingError:
            raise
        except Exception as e:
            raise ClusterListingError(f"Failed to list clusters: {e}") from e

    def _search_clusters(
        self,
        clusters: Sequence[Cluster],
        scorer: ClusterScorer,
        phase: str,
        show_progress: bool = False,
    ) -> List[InferenceResult]:
        """
        Fetch and score every cluster concurrently, then join.

        The worker cap equals the number of clusters in the phase, which
        the caller has already bounded.  Per-cluster output is placed by
        candidate index so concatenation follows inferred rank.
        """
        if not clusters:
            return []

        per_cluster: List[List[InferenceResult]] = [[] for _ in clusters]
        with ThreadPoolExecutor(max_workers=len(clusters)) as executor:
            futures = {
                executor.submit(self._fetch_and_score, cluster, scorer): idx
                for idx, cluster in enumerate(clusters)
            }
            with tqdm(total=len(futures), desc=f"Searching {phase} clusters",
                      unit="cluster", disable=not show_progress) as pbar:
                for future in as_completed(futures):
                    per_cluster[futures[future]] = future.result()
                    pbar.update(1)

        merged = [r for chunk in per_cluster for r in chunk]
        logger.debug(f"{phase} phase: {len(merged)} result(s) from {len(clusters)} cluster(s)")
        return merged

    def _fetch_and_score(self, cluster: Cluster, scorer: ClusterScorer) -> List[InferenceResult]:
        """One fan-out branch.  Failures degrade to an empty contribution."""
        try:
            tasks = self.provider.list_tasks(cluster)
            if not tasks:
                logger.debug(f"No tasks in cluster '{cluster.name}'")
                return []
            return scorer(tasks, cluster)
        except Exception as e:
            logger.warning(f"Skipping cluster '{cluster.name}': {e}")
            return []


def rank_results(
    results: Sequence[InferenceResult],
    stopped_suffix: str = TaskScoutConfig.stopped_task_suffix,
) -> List[InferenceResult]:
    """
    Order results for presentation.

    Live tasks (RUNNING/PENDING) come first, sorted stably by confidence
    then score.  Every other task follows in its original order, demoted
    to ``low`` confidence with a score of 0.
    """
    live = [r for r in results if r.is_live]
    dead = [r for r in results if not r.is_live]
    live.sort(key=InferenceResult.ranking_key)
    return live + [r.as_unreachable(stopped_suffix) for r in dead]


# =============================================================================
# Filtering
# =============================================================================

def filter_inference_results(
    results: Sequence[InferenceResult],
    text: str,
) -> List[InferenceResult]:
    """
    Keep results matching every whitespace-separated keyword in *text*.

    Keywords are matched case-insensitively against cluster, task and
    service names, status, runtime id, confidence, method, reason and
    the formatted label.  Empty input keeps everything.

    Examples: ``"prod web"``, ``"staging api"``, ``"high"``.
    """
    keywords = [k for k in (text or "").lower().split() if k]
    if not keywords:
        return list(results)

    def _searchable(r: InferenceResult) -> str:
        return " ".join(part for part in (
            r.cluster.name,
            r.task.display_name,
            r.task.service_name,
            r.task.status.value,
            r.task.runtime_id,
            r.confidence,
            r.method,
            r.reason,
            format_inference_result(r),
        ) if part).lower()

    return [r for r in results if all(k in _searchable(r) for k in keywords)]


# =============================================================================
# Output Formatting
# =============================================================================

CONFIDENCE_MARKERS = {"high": "[HIGH]", "medium": "[MED] ", "low": "[LOW] "}


def format_inference_result(result: InferenceResult) -> str:
    """One-line label: confidence marker, cluster, service, and task id."""
    service = result.task.service_name or result.task.display_name
    return (
        f"{CONFIDENCE_MARKERS[result.confidence]} "
        f"{result.cluster.name} / {service} ({result.task.task_id})"
    )


class ResultFormatter:
    """Format inference results for different output modes."""

    # ── Console (human-friendly) ──────────────────────────────────

    @staticmethod
    def format_console(results: List[InferenceResult], database_identifier: str = "",
                       elapsed_time: float | None = None) -> str:
        """
        Numbered block per result with cluster, task, status, method,
        score, and the matched reason.
        """
        if not results:
            return "\n  No candidate tasks found.\n"

        import shutil
        width = min(shutil.get_terminal_size().columns, 78)
        thin = "─" * width

        header = f"  TASKSCOUT — {len(results)} candidate{'s' if len(results) != 1 else ''}"
        if database_identifier:
            header += f" for {database_identifier}"
        if elapsed_time is not None:
            header += f" in {elapsed_time:.3f} seconds"

        out: List[str] = [f"\n{thin}", header, thin]
        for idx, r in enumerate(results, start=1):
            out.append("")
            out.append(f"  #{idx}  {format_inference_result(r)}")
            out.append(f"    Task    : {r.task.display_name}")
            out.append(f"    Status  : {r.task.status.value}")
            out.append(f"    Method  : {r.method}")
            out.append(f"    Score   : {r.score} ({r.confidence})")
            out.append(f"    Reason  : {r.reason}")
        out.append(f"\n{thin}")
        return "\n".join(out)

    # ── JSON ──────────────────────────────────────────────────────

    @staticmethod
    def format_json(results: List[InferenceResult]) -> str:
        return json.dumps([r.to_dict() for r in results], indent=2, allow_nan=False)

    # ── Compact (one line per result) ─────────────────────────────

    @staticmethod
    def format_compact(results: List[InferenceResult]) -> str:
        if not results:
            return "No candidate tasks found."
        return "\n".join(
            f"{format_inference_result(r)}  {r.task.status.value}  score={r.score}"
            for r in results
        )
