r"""
Command-line interface for graph-acid.

    graph-acid run -s neo4j -p quick
    graph-acid run -s memgraph -t g0,g1a,lu -f all
    graph-acid scenarios
    graph-acid stores test -n neo4j
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

__all__ = ["app", "main"]

app = typer.Typer(
    name="graph-acid",
    help="Isolation anomaly tests for transactional graph stores.",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


@app.command()
def run(
    store: Annotated[str, typer.Option("-s", "--store", help="Store adapter to test")] = "memory",
    plan: Annotated[str, typer.Option("-p", "--plan", help="Run plan: standard, quick, stress")] = "standard",
    scenarios: Annotated[
        str | None, typer.Option("-t", "--scenarios", help="Scenarios to run (comma-separated)")
    ] = None,
    workers: Annotated[int | None, typer.Option("-w", "--workers", help="Worker pool size")] = None,
    seed: Annotated[int | None, typer.Option("--seed", help="Random seed for task parameters")] = None,
    uri: Annotated[str | None, typer.Option("--uri", help="Connection URI")] = None,
    output: Annotated[Path, typer.Option("-o", "--output", help="Output directory")] = Path("./results"),
    format_: Annotated[
        str, typer.Option("-f", "--format", help="Output format: json, csv, markdown, all")
    ] = "json",
    verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Verbose output")] = False,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Show what would run")] = False,
) -> None:
    """Run anomaly scenarios against a store."""
    from graph_acid.adapters import AdapterRegistry
    from graph_acid.config import get_env_int, get_plan
    from graph_acid.reporting import EXPORTERS, ResultCollector, render_summary
    from graph_acid.runner import Harness
    from graph_acid.scenarios import ScenarioRegistry

    _configure_logging(verbose)

    try:
        run_plan = get_plan(plan).with_overrides(
            workers=workers if workers is not None else get_env_int("WORKERS"),
            seed=seed if seed is not None else get_env_int("SEED"),
        )
        scenario_list = [s.strip() for s in scenarios.split(",")] if scenarios else ScenarioRegistry.list()
        resolved = [ScenarioRegistry.create(name) for name in scenario_list]
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if verbose:
        typer.echo(f"Store: {store}")
        typer.echo(f"Plan: {run_plan.name} (workers={run_plan.workers}, seed={run_plan.seed})")
        typer.echo(f"Output: {output}")

    if dry_run:
        typer.echo("\n[DRY RUN] Would run:")
        for scenario in resolved:
            typer.echo(f"  {store}: {scenario.name} - {scenario.description}")
        return

    try:
        adapter = AdapterRegistry.create(store)
        adapter.connect(**({"uri": uri} if uri else {}))
    except Exception as e:
        typer.echo(f"Error: Could not connect to {store}: {e}", err=True)
        raise typer.Exit(1)

    def progress(db: str, scenario: str, status: str) -> None:
        if verbose:
            typer.echo(f"  [{db}] {scenario}: {status}")

    collector = ResultCollector()
    collector.start_session(plan=run_plan.name, store=adapter.name, store_version=adapter.version)

    harness = Harness(adapter, plan=run_plan)
    harness.set_progress_callback(progress)
    try:
        summary = harness.run(resolved)
    finally:
        adapter.disconnect()

    collector.add_summary(summary)
    collector.end_session()

    output.mkdir(parents=True, exist_ok=True)
    session_id = collector.session.session_id

    formats_to_export = [f.strip() for f in format_.split(",")]
    if "all" in formats_to_export:
        formats_to_export = list(EXPORTERS)

    for fmt in formats_to_export:
        exporter_cls = EXPORTERS.get(fmt)
        if exporter_cls is None:
            typer.echo(f"Warning: Unknown format '{fmt}'", err=True)
            continue
        exporter = exporter_cls()
        path = output / f"{session_id}.{exporter.extension}"
        exporter.export(collector, path)
        typer.echo(f"Exported {fmt}: {path}")

    typer.echo("")
    typer.echo(render_summary(summary))

    if not summary.all_passed:
        raise typer.Exit(1)


@app.command("scenarios")
def list_scenarios() -> None:
    """List the scenario catalog."""
    from graph_acid.scenarios import ScenarioRegistry

    typer.echo("Available scenarios:")
    for scenario in ScenarioRegistry.create_all():
        typer.echo(f"  - {scenario.name}: {scenario.description}")


@app.command()
def stores(
    action: Annotated[str, typer.Argument(help="Action: list, test")] = "list",
    name: Annotated[str | None, typer.Option("-n", "--name", help="Store adapter name")] = None,
    uri: Annotated[str | None, typer.Option("--uri", help="Connection URI")] = None,
) -> None:
    """List and test store adapters."""
    from graph_acid.adapters import AdapterRegistry

    if action == "list":
        typer.echo("Available stores:")
        for adapter_name in AdapterRegistry.list():
            typer.echo(f"  - {adapter_name}")
    elif action == "test":
        if not name:
            typer.echo("Error: --name required for test", err=True)
            raise typer.Exit(1)

        try:
            adapter = AdapterRegistry.create(name)
            adapter.connect(**({"uri": uri} if uri else {}))
            typer.echo(f"Successfully connected to {adapter.name} (version: {adapter.version})")
            adapter.disconnect()
        except Exception as e:
            typer.echo(f"Failed to connect to {name}: {e}", err=True)
            raise typer.Exit(1)
    else:
        typer.echo(f"Unknown action: {action}", err=True)
        raise typer.Exit(1)


def main() -> None:
    """Main entry point."""
    app()
