"""
TaskScout Core Engine

Data models, identifier tokenization, cluster name inference, and the two
task scorers (naming similarity and simulated environment match).

Everything in this module is pure: no I/O, no clocks, no shared state.
The search orchestration that calls these functions lives in
:mod:`taskscout.core.search`.
"""

import logging
import re
from dataclasses import dataclass, asdict, field, replace
from datetime import datetime
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from taskscout.core.config import ENVIRONMENT_MATCH_FLOOR, ScoringRules

# Application code (CLI, MCP server) is responsible for configuring logging.
logger = logging.getLogger(__name__)

HYPHEN_UNDERSCORE_SPLIT = re.compile(r"[-_]")
WORD_SEPARATOR_SPLIT = re.compile(r"[-_\s]")


# =============================================================================
# Data Models
# =============================================================================

class TaskStatus(str, Enum):
    """Lifecycle status reported for a task by the scheduler."""
    PROVISIONING = "PROVISIONING"
    PENDING = "PENDING"
    ACTIVATING = "ACTIVATING"
    RUNNING = "RUNNING"
    DEACTIVATING = "DEACTIVATING"
    STOPPING = "STOPPING"
    DEPROVISIONING = "DEPROVISIONING"
    STOPPED = "STOPPED"

    @property
    def is_live(self) -> bool:
        """True when a session can currently be opened to the task."""
        return self in LIVE_STATUSES


LIVE_STATUSES = frozenset((TaskStatus.RUNNING, TaskStatus.PENDING))


@dataclass(frozen=True)
class Cluster:
    """A named pool of compute capacity."""
    name: str
    arn: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Task:
    """Read-only snapshot of a task fetched from one cluster."""
    task_ref: str
    """Synthetic composite key (e.g. ``ecs:<cluster>_<task-id>_<runtime-id>``)."""
    real_ref: str
    """Native reference (e.g. the task ARN)."""
    display_name: str
    runtime_id: str
    task_id: str
    cluster_name: str
    service_name: str
    status: TaskStatus
    created_at: Optional[datetime] = None

    @property
    def is_live(self) -> bool:
        return self.status.is_live

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data


@dataclass(frozen=True)
class DatabaseInstance:
    """The managed relational database the engine searches compute for."""
    identifier: str
    endpoint: str
    port: int
    engine: str
    status: str = "available"
    instance_class: Optional[str] = None
    availability_zone: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data


@dataclass(frozen=True)
class AnalysisMatch:
    """A pre-computed association hint between a database and a task family."""
    database_identifier: str
    confidence: str
    task_family: Optional[str] = None
    reasons: Tuple[str, ...] = ()
    cluster: Optional[str] = None
    service: Optional[str] = None
    method: Optional[str] = None


@dataclass(frozen=True)
class InferenceResult:
    """One ranked (cluster, task) candidate.

    Results are never mutated after construction; reclassification (e.g.
    for stopped tasks) produces a new instance via :meth:`as_unreachable`.
    """
    cluster: Cluster
    task: Task
    confidence: str
    """``"high"`` | ``"medium"`` | ``"low"``."""
    method: str
    """``"environment"`` | ``"naming"`` | ``"network"`` (reserved)."""
    score: int
    reason: str
    reasons: Tuple[str, ...] = field(default=(), compare=False)
    """The individual rule descriptions that fired, in evaluation order."""

    @property
    def confidence_rank(self) -> int:
        return ScoringRules.CONFIDENCE_RANK[self.confidence]

    @property
    def is_live(self) -> bool:
        return self.task.is_live

    def ranking_key(self) -> Tuple[int, int]:
        """Sort key: higher confidence first, then higher score."""
        return (-self.confidence_rank, -self.score)

    def as_unreachable(self, suffix: str) -> "InferenceResult":
        """Return a copy demoted to ``low``/0 with *suffix* appended to the reason."""
        return replace(self, confidence="low", score=0, reason=f"{self.reason}{suffix}")

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict for API/agent pipelines."""
        return {
            "cluster": self.cluster.to_dict(),
            "task": self.task.to_dict(),
            "confidence": self.confidence,
            "method": self.method,
            "score": self.score,
            "reason": self.reason,
        }


# =============================================================================
# Name Tokenizer
# =============================================================================

def split_segments(text: str) -> List[str]:
    """Split *text* on hyphens and underscores into lower-cased segments.

    Empty tokens are dropped; short tokens are kept (callers filter).
    """
    return [s for s in HYPHEN_UNDERSCORE_SPLIT.split(text.lower()) if s]


def split_words(text: str) -> List[str]:
    """Split *text* on hyphens, underscores, and whitespace into lower-cased words."""
    return [w for w in WORD_SEPARATOR_SPLIT.split(text.lower()) if w]


def _significant(tokens: Sequence[str]) -> List[str]:
    return [t for t in tokens if len(t) >= ScoringRules.MIN_TOKEN_LENGTH]


# =============================================================================
# Cluster Name Inference
# =============================================================================

def score_cluster_name(database_identifier: str, cluster_name: str) -> int:
    """
    Score how likely *cluster_name* hosts compute for *database_identifier*.

    Signals are independent and additive:
      - exact name match, prefix match, containment either way
      - identifier segments and words found in the cluster name
      - environment keywords (dev/staging/prod...) present in both
      - common service keywords (app/web/api...) present in both
    """
    weights = ScoringRules.CLUSTER_WEIGHTS
    db = database_identifier.lower()
    name = cluster_name.lower()

    score = 0
    if name == db:
        score += weights["exact_match"]
    if name.startswith(db) or db.startswith(name):
        score += weights["prefix_match"]
    if db in name:
        score += weights["contains_identifier"]
    if name in db and len(name) > ScoringRules.CLUSTER_NAME_MIN_REVERSE_LENGTH:
        score += weights["identifier_contains_cluster"]

    score += weights["segment_match"] * sum(
        1 for segment in _significant(split_segments(db)) if segment in name
    )
    score += weights["word_match"] * sum(
        1 for word in _significant(split_words(db)) if word in name
    )
    score += weights["environment_keyword"] * sum(
        1 for kw in ScoringRules.ENVIRONMENT_KEYWORDS if kw in db and kw in name
    )
    score += weights["pattern_keyword"] * sum(
        1 for kw in ScoringRules.COMMON_PATTERN_KEYWORDS if kw in db and kw in name
    )
    return score


def infer_clusters(database_identifier: str, clusters: Sequence[Cluster]) -> List[str]:
    """
    Rank cluster names by likelihood of hosting tasks for the database.

    Clusters scoring zero are discarded.  The sort is stable, so clusters
    with equal scores keep the order in which they were listed.
    """
    scored = [
        (cluster.name, score_cluster_name(database_identifier, cluster.name))
        for cluster in clusters
    ]
    ranked = sorted(
        (item for item in scored if item[1] > 0),
        key=lambda item: item[1],
        reverse=True,
    )
    logger.debug(f"Cluster inference for '{database_identifier}': {ranked}")
    return [name for name, _ in ranked]


# =============================================================================
# Task Naming Scorer
# =============================================================================

def score_tasks_by_naming(
    tasks: Sequence[Task],
    cluster: Cluster,
    database: DatabaseInstance,
) -> List[InferenceResult]:
    """Score every task by name overlap with the database identifier.

    Never filters: one result per input task, method ``"naming"``.
    """
    weights = ScoringRules.NAMING_WEIGHTS
    db = database.identifier.lower()
    segments = _significant(split_segments(db))
    results: List[InferenceResult] = []

    for task in tasks:
        task_name = task.display_name.lower()
        service_name = task.service_name.lower()

        rules: List[Tuple[bool, int, str]] = [
            (db in task_name, weights["name_contains_identifier"],
             "task name contains database identifier"),
            (db in service_name, weights["service_contains_identifier"],
             "service name contains database identifier"),
        ]
        for segment in segments:
            rules.append((segment in task_name, weights["name_segment"],
                          f"task name segment match: {segment}"))
            rules.append((segment in service_name, weights["service_segment"],
                          f"service name segment match: {segment}"))

        fired = [(points, detail) for matched, points, detail in rules if matched]
        score = weights["base"] + sum(points for points, _ in fired)
        details = tuple(detail for _, detail in fired)
        summary = ", ".join(details) if details else "base score only"

        results.append(InferenceResult(
            cluster=cluster,
            task=task,
            confidence=ScoringRules.classify(score, ScoringRules.NAMING_CONFIDENCE),
            method="naming",
            score=score,
            reason=f"Naming similarity: {summary}",
            reasons=details,
        ))

    return results


# =============================================================================
# Environment-Match Scorer
# =============================================================================

def check_task_environment(
    task: Task,
    database: DatabaseInstance,
) -> Tuple[int, List[str]]:
    """
    Simulate an environment-variable check for *task*.

    Real environment variables are not inspected; the task and service
    names stand in for them.  Returns ``(score, matched_details)``.
    """
    weights = ScoringRules.ENVIRONMENT_WEIGHTS
    db = database.identifier.lower()
    task_name = task.display_name.lower()
    service_name = task.service_name.lower()

    score = 0
    details: List[str] = []
    if db in task_name:
        score += weights["name_contains_identifier"]
        details.append("Task name contains database identifier")
    if db in service_name:
        score += weights["service_contains_identifier"]
        details.append("Service name contains database identifier")
    for segment in _significant(split_segments(db)):
        if segment in task_name:
            score += weights["name_segment"]
            details.append(f"Task name segment match: {segment}")
        if segment in service_name:
            score += weights["service_segment"]
            details.append(f"Service name segment match: {segment}")
    return score, details


def _matches_task_family(match: AnalysisMatch, task: Task, identifier: str) -> bool:
    if match.database_identifier != identifier or not match.task_family:
        return False
    return match.task_family in task.task_id or match.task_family in task.service_name


def score_tasks_against_instance(
    tasks: Sequence[Task],
    cluster: Cluster,
    database: DatabaseInstance,
    analysis_matches: Sequence[AnalysisMatch] = (),
    floor: int = ENVIRONMENT_MATCH_FLOOR,
) -> List[InferenceResult]:
    """
    Score tasks against the database with the environment heuristics.

    Two independent sub-signals, both with method ``"environment"``:

    1. Simulated environment check, emitted only when the score exceeds
       *floor*.
    2. One result per pre-computed :class:`AnalysisMatch` whose task
       family appears in the task id or service name (no deduplication).

    Simulated results come first, in task order, followed by analysis
    results in task order.
    """
    env_results: List[InferenceResult] = []
    for task in tasks:
        score, details = check_task_environment(task, database)
        if score <= floor:
            continue
        env_results.append(InferenceResult(
            cluster=cluster,
            task=task,
            confidence=ScoringRules.classify(score, ScoringRules.ENVIRONMENT_CONFIDENCE),
            method="environment",
            score=score,
            reason=f"Environment inference: {', '.join(details)}",
            reasons=tuple(details),
        ))

    analysis_results: List[InferenceResult] = []
    for task in tasks:
        for match in analysis_matches:
            if not _matches_task_family(match, task, database.identifier):
                continue
            reasons = tuple(match.reasons)
            summary = ", ".join(reasons) if reasons else "database connection reference"
            analysis_results.append(InferenceResult(
                cluster=cluster,
                task=task,
                confidence=match.confidence,
                method="environment",
                score=ScoringRules.ANALYSIS_SCORES[match.confidence],
                reason=f"Analysis match: {summary}",
                reasons=reasons,
            ))

    return env_results + analysis_results
