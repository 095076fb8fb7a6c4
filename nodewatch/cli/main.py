"""``nodewatch`` command."""

from __future__ import annotations

import asyncio
import sys

import click

from nodewatch import __version__
from nodewatch.config import apply_overrides, load_config
from nodewatch.errors import ConfigError


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Log verbosity (default: NODEWATCH_LOG_LEVEL or info).",
)
@click.option("-v", "--verbose", count=True, help="Shortcut for --log-level=debug.")
@click.option(
    "--log-format",
    type=click.Choice(["json", "console"], case_sensitive=False),
    default=None,
    help="Log renderer (default: json).",
)
@click.option(
    "--kubeconfig",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to the kubeconfig file (default: ~/.kube/config).",
)
@click.option("--context", default=None, help="Kubeconfig context to use.")
@click.option(
    "--in-cluster/--no-in-cluster",
    default=None,
    help="Use the in-cluster service account (default: auto-detect).",
)
@click.option("--label-selector", default=None, help="Only watch nodes matching this label selector.")
@click.option("--field-selector", default=None, help="Only watch nodes matching this field selector.")
@click.option(
    "--watch-retry/--no-watch-retry",
    default=None,
    help="Restart a broken watch with exponential backoff instead of exiting.",
)
@click.option("--metrics-port", type=int, default=None, help="Serve Prometheus metrics on this port (0 disables).")
@click.version_option(version=__version__, prog_name="nodewatch")
def cli(
    log_level: str | None,
    verbose: int,
    log_format: str | None,
    kubeconfig: str | None,
    context: str | None,
    in_cluster: bool | None,
    label_selector: str | None,
    field_selector: str | None,
    watch_retry: bool | None,
    metrics_port: int | None,
) -> None:
    """Watch Kubernetes nodes and log every addition, update and deletion."""
    from nodewatch.app import main

    if verbose and log_level is None:
        log_level = "debug"

    try:
        config = apply_overrides(
            load_config(),
            kubeconfig=kubeconfig,
            context=context,
            in_cluster=in_cluster,
            label_selector=label_selector,
            field_selector=field_selector,
            watch_retry=watch_retry,
            metrics_port=metrics_port,
            log_level=log_level,
            log_format=log_format,
        )
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc

    sys.exit(asyncio.run(main(config)))
