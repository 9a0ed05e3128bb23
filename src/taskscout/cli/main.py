"""
TaskScout CLI

Command-line interface for ranking the tasks that can reach a database.

Usage::

    taskscout databases account.json               # List databases in a snapshot
    taskscout infer account.json prod-web-db       # Rank candidate tasks
    taskscout infer account.json prod-web-db -f json --filter "high"
    taskscout mcp                                  # Start the MCP server
"""

import logging
import time

import click

from taskscout.core.config import TaskScoutConfig
from taskscout.core.providers import SnapshotProvider
from taskscout.core.search import (
    InferenceSearchEngine, ResultFormatter, filter_inference_results,
)
from taskscout.exceptions import ConfigError, TaskScoutError


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(verbose: bool, config: TaskScoutConfig) -> None:
    """Set up logging for the CLI session."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format=config.log_format)


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="taskscout")
@click.option(
    "--analysis-dir",
    type=click.Path(file_okay=False),
    default=None,
    envvar="TASKSCOUT_ANALYSIS_DIR",
    help="Directory with environment_match_results.json (default: $TASKSCOUT_ANALYSIS_DIR).",
)
@click.pass_context
def cli(ctx: click.Context, analysis_dir: str | None):
    """TaskScout — find the compute task most likely to reach a database."""
    ctx.ensure_object(dict)
    config = TaskScoutConfig.from_env()
    if analysis_dir:
        config.analysis_dir = analysis_dir
    ctx.obj["config"] = config


# ---------------------------------------------------------------------------
# taskscout infer
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
@click.argument("database_id")
@click.option("-f", "--format", "fmt",
              type=click.Choice(["console", "json", "compact"]),
              default="console", help="Output format.")
@click.option("--filter", "filter_text", default=None,
              help="Keep only results matching all of these keywords (e.g. 'prod web').")
@click.option("--primary-clusters", type=int, default=None,
              help="Clusters searched in the primary phase (default: 3).")
@click.option("--fallback-clusters", type=int, default=None,
              help="Clusters searched in the fallback phase (default: 5).")
@click.option("--track-performance", is_flag=True,
              help="Log a per-phase timing report.")
@click.option("--progress", is_flag=True, help="Show a progress bar per search phase.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def infer(ctx: click.Context, snapshot: str, database_id: str, fmt: str,
          filter_text: str | None, primary_clusters: int | None,
          fallback_clusters: int | None, track_performance: bool,
          progress: bool, verbose: bool):
    """Rank tasks in SNAPSHOT that are likely to reach DATABASE_ID."""
    config: TaskScoutConfig = ctx.obj["config"]
    if primary_clusters is not None:
        config.primary_cluster_limit = primary_clusters
    if fallback_clusters is not None:
        config.fallback_cluster_limit = fallback_clusters
    if track_performance:
        config.enable_performance_tracking = True
    _configure_logging(verbose, config)
    _validate_config(config)

    provider = _load_snapshot(snapshot)
    try:
        database = provider.get_database(database_id)
    except KeyError:
        click.echo(f"Error: Database '{database_id}' not found in {snapshot}", err=True)
        raise SystemExit(1)

    t0 = time.perf_counter()
    engine = InferenceSearchEngine(provider, config=config, show_progress=progress)
    try:
        results = engine.infer(database)
    except TaskScoutError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    if filter_text:
        results = filter_inference_results(results, filter_text)
    elapsed = time.perf_counter() - t0

    formatter = ResultFormatter()
    if fmt == "json":
        click.echo(formatter.format_json(results))
    elif fmt == "compact":
        click.echo(formatter.format_compact(results))
    else:
        click.echo(formatter.format_console(
            results, database_identifier=database.identifier, elapsed_time=elapsed,
        ))


# ---------------------------------------------------------------------------
# taskscout databases
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("snapshot", type=click.Path(exists=True, dir_okay=False))
def databases(snapshot: str):
    """List database instances recorded in SNAPSHOT."""
    provider = _load_snapshot(snapshot)
    instances = provider.list_databases()
    if not instances:
        click.echo("No databases found.")
        return
    click.echo("─" * 50)
    click.echo("  TASKSCOUT — Databases")
    click.echo("─" * 50)
    for db in instances:
        click.echo(f"  {db.identifier:<28} {db.engine:<12} {db.endpoint}:{db.port}")
    click.echo("─" * 50)


# ---------------------------------------------------------------------------
# taskscout mcp
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--transport", type=click.Choice(["stdio", "sse"]),
              default="stdio", help="MCP transport (default: stdio).")
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
def mcp(ctx: click.Context, transport: str, verbose: bool):
    """Start the TaskScout MCP server for agent integration."""
    config: TaskScoutConfig = ctx.obj["config"]
    _configure_logging(verbose, config)
    try:
        from taskscout.mcp.server import create_server  # noqa: E402
    except ImportError:
        click.echo(
            "Error: MCP dependencies not installed.\n"
            "Install with:  pip install 'taskscout[mcp]'",
            err=True,
        )
        raise SystemExit(1)

    server = create_server(config)
    server.run(transport=transport)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _validate_config(config: TaskScoutConfig) -> None:
    try:
        config.validate()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)


def _load_snapshot(path: str) -> SnapshotProvider:
    try:
        return SnapshotProvider.from_file(path)
    except TaskScoutError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
