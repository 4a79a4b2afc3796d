"""Command-line interface for Curator."""

import asyncio
import logging
import sys
from typing import Any

import click
import httpx
import uvicorn

from curator import __version__
from curator.api.app import create_app
from curator.core.config import settings
from curator.core.exceptions import CuratorError
from curator.core.models import (
    LearningConfig,
    LearningSummary,
    PosteriorView,
    ResetReport,
    RewardReport,
)
from curator.cli.status import format_learning_status, format_oracle_status
from curator.engines.export import export_learning_data
from curator.operations import parse_reward_args
from curator.oracle.models import OracleStatus
from curator.utils.service_factory import create_posterior_store

logger = logging.getLogger(__name__)

API_TIMEOUT = 10.0


def _api_get(path: str) -> dict[str, Any]:
    response = httpx.get(f"{settings.api_url}/learning{path}", timeout=API_TIMEOUT)
    response.raise_for_status()
    return response.json()


def _api_post(path: str, payload: dict[str, Any]) -> dict[str, Any]:
    response = httpx.post(
        f"{settings.api_url}/learning{path}", json=payload, timeout=API_TIMEOUT
    )
    response.raise_for_status()
    return response.json()


@click.group()
def cli() -> None:
    """Curator - adaptive context selection for agent prompts."""
    pass


@cli.command()
def status() -> None:
    """Show observations, baseline savings, and arm posteriors."""
    try:
        summary = LearningSummary.model_validate(_api_get("/summary"))
        config = _api_get("/config")
        posteriors = _api_get("/posteriors")
    except (httpx.HTTPError, ValueError) as e:
        logger.debug(f"Learning API request failed: {e}")
        click.echo("Learning status unavailable: gateway or backend not reachable.")
        sys.exit(1)

    click.echo(
        format_learning_status(
            summary,
            LearningConfig.model_validate(config["learning"]),
            [PosteriorView.model_validate(p) for p in posteriors["posteriors"]],
        )
    )


@cli.command()
def oracle() -> None:
    """Show metrics and posteriors held by the remote learner."""
    try:
        report = OracleStatus.model_validate(_api_get("/oracle"))
    except httpx.HTTPStatusError as e:
        logger.debug(f"Learning API request failed: {e}")
        if e.response.status_code == 404:
            click.echo("No remote oracle configured (set CURATOR_ORACLE=remote).")
        else:
            click.echo("Oracle status unavailable: remote learner not reachable.")
        sys.exit(1)
    except (httpx.HTTPError, ValueError) as e:
        logger.debug(f"Learning API request failed: {e}")
        click.echo("Oracle status unavailable: gateway or backend not reachable.")
        sys.exit(1)

    click.echo(format_oracle_status(report))


@cli.command()
@click.option("--arm", "arm_id", default=None, help="Reset a single arm ID")
def reset(arm_id: str | None) -> None:
    """Reset posteriors back to Beta(1,1)."""
    try:
        report = ResetReport.model_validate(_api_post("/reset", {"arm_id": arm_id}))
    except (httpx.HTTPError, ValueError) as e:
        logger.debug(f"Learning API request failed: {e}")
        click.echo("Reset failed: gateway or backend not reachable.")
        sys.exit(1)

    click.echo(
        f'Reset {report.reset_count} arm(s) for learner "{report.learner}". '
        "All posteriors back to Beta(1,1)."
    )


@cli.command()
@click.argument("target", nargs=-1, required=True)
def reward(target: tuple[str, ...]) -> None:
    """Record a reward: reward <arm_id_or_label> [0|1]."""
    try:
        label, value = parse_reward_args(" ".join(target))
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    try:
        report = RewardReport.model_validate(
            _api_post("/reward", {"label": label, "reward": int(value)})
        )
    except (httpx.HTTPError, ValueError) as e:
        logger.debug(f"Learning API request failed: {e}")
        click.echo(f'Reward failed for "{label}": gateway or backend not reachable.')
        sys.exit(1)

    click.echo(
        f"Recorded {report.outcome} (reward={report.reward:g}) for {report.arm_id}"
    )


@cli.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "csv"]),
    default="json",
    show_default=True,
    help="Output format",
)
@click.option("--traces/--no-traces", default=True, help="Include run traces")
@click.option("--posteriors/--no-posteriors", default=True, help="Include posteriors")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write to a file instead of stdout",
)
def export(fmt: str, traces: bool, posteriors: bool, output: str | None) -> None:
    """Export learning data from the local store."""

    async def run_export() -> str:
        store = await create_posterior_store(settings)
        try:
            return await export_learning_data(
                store, fmt, include_traces=traces, include_posteriors=posteriors
            )
        finally:
            await store.close()

    try:
        data = asyncio.run(run_export())
    except CuratorError as e:
        logger.error(f"Export failed: {e}")
        click.echo(f"Export failed: {e.message}", err=True)
        sys.exit(1)

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(data)
        click.echo(f"Exported to {output}")
    else:
        click.echo(data)


@cli.command()
@click.option(
    "--host",
    default=settings.api_host,
    help="Host to bind to",
    show_default=True,
)
@click.option(
    "--port",
    default=settings.api_port,
    type=int,
    help="Port to bind to",
    show_default=True,
)
@click.option(
    "--log-level",
    default=settings.log_level.lower(),
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
    show_default=True,
)
def serve(host: str, port: int, log_level: str) -> None:
    """Start the learning API server."""
    logger.info(f"Starting Curator API server on {host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_level=log_level)


@cli.command()
def version() -> None:
    """Show version information."""
    click.echo(f"Curator v{__version__}")


if __name__ == "__main__":
    cli()
