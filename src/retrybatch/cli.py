"""CLI interface for retrybatch"""

import logging
from pathlib import Path
from typing import Optional

import click

from retrybatch.domain.backoff import backoff_schedule
from retrybatch.domain.classifier import extract_failure_info, is_retryable
from retrybatch.infrastructure.config.config_manager import ConfigManager, ConfigurationError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def _load_config(ctx: click.Context) -> ConfigManager:
    """Load configuration, turning validation errors into CLI errors"""
    verbose = ctx.obj.get("verbose", False)
    try:
        return ConfigManager(config_path=ctx.obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .retrybatch.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """retrybatch - retry and batch execution for async operations"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command("validate-config")
@click.pass_context
def validate_config(ctx):
    """Validate configuration and print the effective values."""
    config_manager = _load_config(ctx)
    policy = config_manager.get_retry_policy()
    batch = config_manager.get_batch_config()

    source = config_manager.config_path or "defaults"
    click.echo(f"Configuration OK ({source})")
    click.echo("=" * 80)
    click.echo(f"max_retries: {policy.max_retries}")
    click.echo(f"initial_delay: {policy.initial_delay}s")
    click.echo(f"max_delay: {policy.max_delay}s")
    click.echo(f"backoff_multiplier: {policy.backoff_multiplier}")
    click.echo(f"retryable_patterns: {', '.join(policy.retryable_patterns)}")
    click.echo(f"batch_size: {batch.batch_size}")
    if policy.initial_delay > policy.max_delay:
        click.echo(
            f"Warning: initial_delay is above max_delay, delays are capped at {policy.max_delay}s",
            err=True,
        )


@cli.command()
@click.pass_context
def schedule(ctx):
    """Print the backoff delay before each retry."""
    policy = _load_config(ctx).get_retry_policy()
    delays = backoff_schedule(policy)
    if not delays:
        click.echo("No retries configured (max_retries = 0)")
        return

    total = 0.0
    for number, delay in enumerate(delays, start=1):
        total += delay
        click.echo(f"Retry {number}: wait {delay:.2f}s (elapsed {total:.2f}s)")
    click.echo(f"\nTotal attempts: {policy.max_attempts}, worst-case waiting: {total:.2f}s")


@cli.command()
@click.argument("message", type=str)
@click.option("--code", type=str, help="Error code or HTTP status, e.g. ECONNRESET or 503")
@click.pass_context
def classify(ctx, message: str, code: Optional[str]):
    """Check whether an error would be retried.

    MESSAGE: Error message to classify
    """
    policy = _load_config(ctx).get_retry_policy()
    error = {"message": message, "code": code}
    info = extract_failure_info(error)
    if is_retryable(error, policy.retryable_patterns):
        click.echo(f"retryable: message={info.message!r} code={info.code!r}")
    else:
        click.echo(f"fatal: message={info.message!r} code={info.code!r}")


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
