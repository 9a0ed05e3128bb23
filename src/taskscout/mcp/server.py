"""
TaskScout MCP Server

Exposes TaskScout inference as tools that AI agents can invoke natively
via the Model Context Protocol.

Start with::

    taskscout mcp                   # stdio transport
    taskscout mcp --transport sse   # SSE transport

Or programmatically::

    from taskscout.mcp.server import create_server
    server = create_server()
    server.run()
"""

from __future__ import annotations

import json
import logging
from typing import Annotated

# FastMCP uses pydantic for validation, so Field is available whenever
# the fastmcp extra is installed
from pydantic import Field  # type: ignore[import-untyped]

from taskscout.core.config import TaskScoutConfig
from taskscout.core.providers import SnapshotProvider
from taskscout.core.search import InferenceSearchEngine, ResultFormatter, filter_inference_results

logger = logging.getLogger(__name__)


def create_server(config: TaskScoutConfig | None = None):
    """
    Build and return a configured FastMCP server instance.

    Uses a single config for the whole server: every tool invocation
    shares the same limits and analysis directory.

    Raises ``ImportError`` if ``fastmcp`` is not installed (install via
    ``pip install 'taskscout[mcp]'``).
    """
    from fastmcp import FastMCP  # type: ignore[import-untyped]

    cfg = config or TaskScoutConfig.from_env()

    mcp = FastMCP("TaskScout")

    # ==================================================================
    # Tool: infer_task_targets
    # ==================================================================

    @mcp.tool()
    def infer_task_targets(
        snapshot_path: Annotated[
            str,
            Field(description="Path to a JSON account snapshot with 'clusters', 'tasks' and 'databases'.")
        ],
        database_identifier: Annotated[
            str,
            Field(description="Identifier of the target database instance (e.g. 'prod-web-db').")
        ],
        filter_text: Annotated[
            str | None,
            Field(default=None, description="Optional whitespace-separated keywords; only results matching all of them are returned (e.g. 'prod web', 'high').")
        ] = None,
    ) -> str:
        """Rank the compute tasks most likely to reach a database instance.

        Reachable tasks come first, ordered by confidence then score;
        stopped tasks follow with low confidence and a score of 0.

        Returns:
            JSON array of results with cluster, task, confidence, method,
            score, and reason.
        """
        try:
            provider = SnapshotProvider.from_file(snapshot_path)
            database = provider.get_database(database_identifier)
            results = InferenceSearchEngine(provider, config=cfg).infer(database)
            if filter_text:
                results = filter_inference_results(results, filter_text)
            return ResultFormatter.format_json(results)
        except KeyError:
            return json.dumps({
                "error": f"Database '{database_identifier}' not found in snapshot",
                "results": [],
            })
        except Exception as e:
            logger.warning(f"infer_task_targets failed: {e}")
            return json.dumps({"error": str(e), "results": []})

    # ==================================================================
    # Tool: list_databases
    # ==================================================================

    @mcp.tool()
    def list_databases(
        snapshot_path: Annotated[
            str,
            Field(description="Path to a JSON account snapshot.")
        ],
    ) -> str:
        """List the database instances recorded in a snapshot."""
        try:
            provider = SnapshotProvider.from_file(snapshot_path)
            return json.dumps([db.to_dict() for db in provider.list_databases()], indent=2)
        except Exception as e:
            return json.dumps({"error": str(e), "databases": []})

    return mcp
