"""
TaskScout Analysis Sources

Pre-computed association hints (``AnalysisMatch``) produced by offline
analysis tooling.  The search engine receives a source explicitly and
treats it as best-effort: a failed load means "no hints", never an error.

The on-disk layout is a JSON array written to
``<analysis_dir>/environment_match_results.json``::

    [
      {"rds_identifier": "prod-web-db", "task_family": "web-api",
       "confidence": "high", "match_reasons": ["DB_HOST references endpoint"]}
    ]
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional

from taskscout.core.config import ScoringRules
from taskscout.core.engine import AnalysisMatch
from taskscout.exceptions import AnalysisLoadError

logger = logging.getLogger(__name__)


class AnalysisSource:
    """
    Abstract base for analysis-match sources.

    Subclasses implement :meth:`load`; they may raise
    :class:`~taskscout.exceptions.AnalysisLoadError`, which the search
    engine absorbs.
    """

    def load(self) -> List[AnalysisMatch]:
        raise NotImplementedError


class NullAnalysisSource(AnalysisSource):
    """Default source: no analysis hints."""

    def load(self) -> List[AnalysisMatch]:
        return []


class StaticAnalysisSource(AnalysisSource):
    """In-memory source (embedding, tests)."""

    def __init__(self, matches: Iterable[AnalysisMatch]):
        self._matches = list(matches)

    def load(self) -> List[AnalysisMatch]:
        return list(self._matches)


class JsonAnalysisSource(AnalysisSource):
    """Reads analysis matches from a JSON results file.

    A missing file yields an empty list.  Unreadable or malformed files
    raise :class:`AnalysisLoadError`.  Individual entries with an unknown
    confidence level or no database identifier are skipped with a warning.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> List[AnalysisMatch]:
        if not self.path.exists():
            logger.debug(f"No analysis results at {self.path}")
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise AnalysisLoadError(
                f"Could not load analysis results from {self.path}: {exc}"
            ) from exc
        if not isinstance(raw, list):
            raise AnalysisLoadError(
                f"Analysis results in {self.path} must be a JSON array, "
                f"got {type(raw).__name__}"
            )

        matches: List[AnalysisMatch] = []
        for entry in raw:
            match = parse_analysis_match(entry)
            if match is None:
                logger.warning(f"Skipping malformed analysis entry in {self.path}: {entry!r}")
                continue
            matches.append(match)
        logger.info(f"Loaded {len(matches)} analysis matches from {self.path}")
        return matches


def parse_analysis_match(entry: Any) -> Optional[AnalysisMatch]:
    """Build an :class:`AnalysisMatch` from one JSON entry, or None if unusable.

    Accepts both the analysis tool's keys (``rds_identifier``,
    ``match_reasons``) and the package's own (``database_identifier``,
    ``reasons``).
    """
    if not isinstance(entry, dict):
        return None
    identifier = entry.get("database_identifier") or entry.get("rds_identifier")
    confidence = entry.get("confidence")
    if not identifier or confidence not in ScoringRules.ANALYSIS_SCORES:
        return None
    reasons = entry.get("reasons")
    if reasons is None:
        reasons = entry.get("match_reasons") or []
    return AnalysisMatch(
        database_identifier=str(identifier),
        confidence=confidence,
        task_family=entry.get("task_family") or None,
        reasons=tuple(str(r) for r in reasons),
        cluster=entry.get("cluster"),
        service=entry.get("service"),
        method=entry.get("method"),
    )

