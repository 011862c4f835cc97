"""CLI commands for the spec build pipeline."""

import logging
import sys

import click
import structlog

from specbuild.config import BuildConfig, default_config
from specbuild.constants import (
    COMPONENT_CLI,
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    TASK_BUILD,
    TASK_CLEAN,
    TASK_DEFAULT,
    TASK_START,
    TASK_WATCH,
)
from specbuild.errors import TaskFailedError
from specbuild.observability.logging import (
    bind_task_context,
    clear_task_context,
    configure_logging,
)
from specbuild.observability.metrics import BuildMetrics
from specbuild.pipeline import Pipeline
from specbuild.tasks.graph import TaskRunner


logger = structlog.get_logger()


def run_task(name: str, config: BuildConfig | None = None) -> int:
    """Run one task from the pipeline graph.

    Args:
        name: Task name.
        config: Build configuration. Defaults to the fixed configuration.

    Returns:
        Process exit code: 0, EXIT_FAILURE or EXIT_INTERRUPTED.
    """
    config = config or default_config()
    bind_task_context(name)
    log = logger.bind(component=COMPONENT_CLI, command=name)

    pipeline = Pipeline(config)
    exit_code = 0

    try:
        TaskRunner(pipeline.graph).run(name)
    except TaskFailedError as e:
        log.error("command_failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        exit_code = EXIT_FAILURE
    except KeyboardInterrupt:
        log.info("command_interrupted")
        exit_code = EXIT_INTERRUPTED
    finally:
        pipeline.shutdown()
        log.debug("metrics_summary", **BuildMetrics.get_instance().get_summary())
        clear_task_context()

    return exit_code


def _exit_with(code: int) -> None:
    if code:
        sys.exit(code)


@click.group(invoke_without_command=True)
@click.option(
    "--json-logs/--no-json-logs",
    default=False,
    help="Use JSON format for logs (default: false).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
@click.pass_context
def cli(ctx: click.Context, json_logs: bool, verbose: bool) -> None:
    """Build spec.rst into build/index.html, optionally with live reload.

    Runs the default task (build) when no command is given.
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    configure_logging(level=log_level, json_format=json_logs)

    if ctx.invoked_subcommand is None:
        _exit_with(run_task(TASK_DEFAULT))


@cli.command()
def clean() -> None:
    """Delete everything under the build output directory."""
    _exit_with(run_task(TASK_CLEAN))


@cli.command()
def build() -> None:
    """Render the source document to build/index.html."""
    code = run_task(TASK_BUILD)
    if code == 0:
        click.echo(f"Build complete: {default_config().output_path}")
    _exit_with(code)


@cli.command()
def watch() -> None:
    """Rebuild whenever the source document changes. Runs until interrupted."""
    _exit_with(run_task(TASK_WATCH))


@cli.command()
def start() -> None:
    """Watch the source and serve the output with live reload."""
    config = default_config()
    click.echo(f"Serving {config.output_dir} at {config.server_url}")
    _exit_with(run_task(TASK_START, config))


@cli.command("default")
def default_task() -> None:
    """Alias for build."""
    _exit_with(run_task(TASK_DEFAULT))


if __name__ == "__main__":
    cli()
