"""taskgate CLI - run and list CI tasks."""

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from taskgate import __version__
from taskgate.catalogue import build_registry
from taskgate.config import dump_settings, load_settings
from taskgate.errors import ConfigError, RegistryError
from taskgate.runner import TaskRunner
from taskgate.ui import console

cli = typer.Typer(
    name="taskgate",
    help="taskgate - lint, test and coverage gates with one exit code",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Inspect the effective configuration.")
cli.add_typer(config_app, name="config")

USAGE_ERROR_EXIT_CODE = 2


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _version_option_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@cli.callback()
def _cli_callback(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show taskgate version and exit.",
        is_eager=True,
        callback=_version_option_callback,
    ),
) -> None:
    """Lint, tests and coverage gates aggregated into one exit code."""


@cli.command()
def run(
    tasks: list[str] = typer.Argument(..., help="Task names to run, in order."),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to taskgate.yaml."),
    root: Path = typer.Option(Path("."), "--root", help="Project root directory."),
    watch_mode: bool = typer.Option(
        False,
        "--watch-mode",
        help="Log failures instead of exiting non-zero.",
    ),
    jobs: int | None = typer.Option(None, "--jobs", "-j", min=1, help="Run combo dependencies in parallel."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    """Run one or more tasks; exits 1 if any gated check fails."""
    _setup_logging(verbose)
    overrides = {"jobs": jobs} if jobs is not None else None
    try:
        settings = load_settings(root=root, config_path=config, overrides=overrides)
        runner = TaskRunner(build_registry(), settings, console=console, watch_mode=watch_mode)
        exit_code = runner.run(tasks)
    except (ConfigError, RegistryError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(USAGE_ERROR_EXIT_CODE) from e
    except KeyboardInterrupt:
        console.print("[yellow]Stopped.[/yellow]")
        raise typer.Exit(0) from None

    raise typer.Exit(exit_code)


def _print_task_table(include_hidden: bool) -> None:
    table = Table(title="taskgate tasks", show_lines=False)
    table.add_column("Task", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Depends on", style="dim")
    for task in build_registry().list_tasks(include_hidden=include_hidden):
        table.add_row(task.name, task.description, ", ".join(task.dependencies))
    console.print(table)


@cli.command("list")
def list_tasks(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include hidden tasks."),
) -> None:
    """List available tasks."""
    _print_task_table(show_all)


@cli.command("h", hidden=True)
def list_alias_h() -> None:
    """Alias for list."""
    _print_task_table(False)


@cli.command("?", hidden=True)
def list_alias_question() -> None:
    """Alias for list."""
    _print_task_table(False)


@config_app.command("show")
def config_show(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to taskgate.yaml."),
    root: Path = typer.Option(Path("."), "--root", help="Project root directory."),
) -> None:
    """Print the merged configuration as YAML."""
    try:
        settings = load_settings(root=root, config_path=config)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(USAGE_ERROR_EXIT_CODE) from e
    typer.echo(dump_settings(settings), nl=False)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
