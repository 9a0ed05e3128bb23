"""
TaskScout Configuration Module

Centralized configuration for the TaskScout inference engine: search
fan-out limits, scoring floors, analysis-file location, and logging.

The heuristic keyword lists and signal weights live in :class:`ScoringRules`
so that every scorer reads them from a single translation table.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Fan-out widths for the two search phases.  These bound the number of
# concurrent task-listing calls regardless of how many clusters exist.
PRIMARY_CLUSTER_LIMIT = 3
FALLBACK_CLUSTER_LIMIT = 5
# The fallback phase runs only when the primary phase yields fewer results.
FALLBACK_THRESHOLD = 3
# Simulated-environment matches at or below this score are discarded.
ENVIRONMENT_MATCH_FLOOR = 20

ANALYSIS_FILE_NAME = "environment_match_results.json"


# =============================================================================
# Instance-Based Configuration
# =============================================================================

@dataclass
class TaskScoutConfig:
    """
    Instance-based configuration for TaskScout.

    Each ``TaskScoutConfig`` instance is self-contained and is passed
    through the call stack, so several engines with different limits can
    coexist in one process (and tests never touch global state).

    Create from environment variables::

        config = TaskScoutConfig.from_env()

    Or with explicit values::

        config = TaskScoutConfig(analysis_dir="./temp", primary_cluster_limit=2)
    """

    # ── Search phases ─────────────────────────────────────────────
    primary_cluster_limit: int = PRIMARY_CLUSTER_LIMIT
    fallback_cluster_limit: int = FALLBACK_CLUSTER_LIMIT
    fallback_threshold: int = FALLBACK_THRESHOLD

    # ── Scoring ───────────────────────────────────────────────────
    environment_match_floor: int = ENVIRONMENT_MATCH_FLOOR
    stopped_task_suffix: str = " (task stopped - unreachable)"

    # ── Pre-computed analysis ─────────────────────────────────────
    analysis_dir: Optional[str] = None
    """Directory holding ``environment_match_results.json``. None disables analysis hints."""

    # ── Diagnostics ───────────────────────────────────────────────
    enable_performance_tracking: bool = False

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> "TaskScoutConfig":
        """Build a config snapshot from current environment variables.

        Reads :envvar:`TASKSCOUT_TRACK_PERFORMANCE` (1/true/yes) to enable
        per-phase timing reports.
        """
        tracking_raw = os.getenv("TASKSCOUT_TRACK_PERFORMANCE", "").lower()
        return cls(
            primary_cluster_limit=int(
                os.getenv("TASKSCOUT_PRIMARY_CLUSTERS", str(PRIMARY_CLUSTER_LIMIT))
            ),
            fallback_cluster_limit=int(
                os.getenv("TASKSCOUT_FALLBACK_CLUSTERS", str(FALLBACK_CLUSTER_LIMIT))
            ),
            analysis_dir=os.getenv("TASKSCOUT_ANALYSIS_DIR") or None,
            enable_performance_tracking=tracking_raw in ("1", "true", "yes", "on"),
            log_level=os.getenv("TASKSCOUT_LOG_LEVEL", "INFO").upper(),
        )

    # ── Validation & Accessors ────────────────────────────────────

    def validate(self) -> bool:
        """
        Validate search limits and scoring floors.

        Raises :class:`~taskscout.exceptions.ConfigError` on failure.
        """
        from taskscout.exceptions import ConfigError

        for name in ("primary_cluster_limit", "fallback_cluster_limit"):
            value = getattr(self, name)
            if value < 1:
                raise ConfigError(
                    f"{name} must be a positive integer (got {value}).\n"
                    "  Set via: export TASKSCOUT_PRIMARY_CLUSTERS=3"
                )
        if self.fallback_threshold < 0:
            raise ConfigError(
                f"fallback_threshold must not be negative (got {self.fallback_threshold})."
            )
        if self.environment_match_floor < 0:
            raise ConfigError(
                f"environment_match_floor must not be negative "
                f"(got {self.environment_match_floor})."
            )
        return True

    def get_analysis_path(self) -> Optional[Path]:
        """Return the analysis results file, or None when no directory is configured."""
        if not self.analysis_dir:
            return None
        return Path(self.analysis_dir) / ANALYSIS_FILE_NAME


# =============================================================================
# Scoring Tables
# =============================================================================

class ScoringRules:
    """
    The standardized weight table for every TaskScout heuristic.
    Keeping the numbers here makes the scorers reproducible and auditable.
    """

    # Identifier fragments shorter than this never count as a match
    MIN_TOKEN_LENGTH = 3

    ENVIRONMENT_KEYWORDS = (
        "dev", "development", "staging", "stage", "stg",
        "prod", "production", "test",
    )

    COMMON_PATTERN_KEYWORDS = (
        "app", "web", "api", "service", "backend", "frontend",
    )

    # Cluster name inference (additive, not mutually exclusive)
    CLUSTER_WEIGHTS = {
        "exact_match": 100,
        "prefix_match": 80,
        "contains_identifier": 70,
        "identifier_contains_cluster": 60,
        "segment_match": 30,
        "word_match": 15,
        "environment_keyword": 25,
        "pattern_keyword": 20,
    }
    # Identifier-contains-cluster only counts for names longer than this
    CLUSTER_NAME_MIN_REVERSE_LENGTH = 3

    # Task naming scorer (non-filtering)
    NAMING_WEIGHTS = {
        "base": 25,
        "name_contains_identifier": 35,
        "service_contains_identifier": 30,
        "name_segment": 20,
        "service_segment": 15,
    }
    NAMING_CONFIDENCE = {"high": 75, "medium": 50}

    # Simulated environment scorer (filtering)
    ENVIRONMENT_WEIGHTS = {
        "name_contains_identifier": 40,
        "service_contains_identifier": 40,
        "name_segment": 15,
        "service_segment": 15,
    }
    ENVIRONMENT_CONFIDENCE = {"high": 80, "medium": 50}

    # Pre-computed analysis matches: confidence → score
    ANALYSIS_SCORES = {"high": 95, "medium": 75, "low": 45}

    CONFIDENCE_RANK = {"high": 3, "medium": 2, "low": 1}

    @classmethod
    def classify(cls, score: int, thresholds: dict) -> str:
        """Map a numeric score to a confidence bucket using *thresholds*."""
        if score >= thresholds["high"]:
            return "high"
        if score >= thresholds["medium"]:
            return "medium"
        return "low"
