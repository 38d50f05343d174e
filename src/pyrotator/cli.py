"""Command-line interface for pyrotator.

Provides commands to preview rendered file names and calendar boundaries,
and to copy standard input into a rotating file.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import click
from dateutil import parser as date_parser

from .callback import RotationCallback
from .clock import FixedClock, SystemClock
from .errors import RotatorError
from .pattern import RotatingFilePattern
from .scheduler import RotationScheduler
from .settings import build_config, load_settings
from .writer import RotatingFileWriter


def parse_instant(text: Optional[str]) -> datetime:
    """Parse an ISO 8601 instant; naive values are taken as UTC."""
    if text is None:
        return datetime.now(timezone.utc)
    instant = date_parser.isoparse(text)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant


class EchoRotationCallback(RotationCallback):
    """Callback printing rotation events to the terminal."""

    def on_trigger(self, policy, instant):
        click.echo(click.style(f"↻ Rotation triggered by {policy} at {instant}", fg="blue"))

    def on_success(self, policy, instant, file):
        click.echo(click.style(f"✓ Rotated to {file}", fg="green"))

    def on_failure(self, policy, instant, file, error):
        click.echo(click.style(f"✗ Rotation failed ({file}): {error}", fg="red"), err=True)


class RotatorCLI:
    """Command implementations shared by the click commands."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def fail(self, error: Exception) -> None:
        click.echo(click.style(f"✗ Error: {error}", fg="red"), err=True)
        sys.exit(1)

    def render(self, pattern: str, at: Optional[str], locale: Optional[str]) -> None:
        """Print the path ``pattern`` renders to for the given instant."""
        try:
            compiled = RotatingFilePattern(pattern, locale)
            click.echo(compiled.render(parse_instant(at)))
        except (RotatorError, ValueError) as e:
            self.fail(e)

    def boundaries(self, at: Optional[str]) -> None:
        """Print the next daily and weekly rotation boundaries."""
        try:
            clock = FixedClock(parse_instant(at)) if at else SystemClock()
        except ValueError as e:
            self.fail(e)
            return
        click.echo(click.style(f"Now:             {clock.now().isoformat()}", fg="blue"))
        click.echo(f"Next midnight:   {clock.midnight().isoformat()}")
        click.echo(f"Sunday midnight: {clock.sunday_midnight().isoformat()}")

    def tee(self, settings_file: str) -> None:
        """Copy standard input line by line into a rotating file."""
        try:
            settings = load_settings(settings_file)
            scheduler = RotationScheduler()
            config = build_config(settings, scheduler, callback=EchoRotationCallback())
        except RotatorError as e:
            self.fail(e)
            return

        scheduler.start()
        try:
            with RotatingFileWriter(config) as writer:
                stdin = click.get_binary_stream("stdin")
                for line in stdin:
                    writer.write(line)
                    writer.flush()
        except OSError as e:
            self.fail(e)
        finally:
            scheduler.stop(timeout=5)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, verbose):
    """pyrotator - preview and run policy-driven file rotation."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    ctx.obj = RotatorCLI(verbose=verbose)


@cli.command()
@click.argument("pattern")
@click.option("--at", help="ISO 8601 instant to render (default: now)")
@click.option("--locale", help="Locale for month and day names")
@click.pass_obj
def render(cli: RotatorCLI, pattern: str, at: Optional[str], locale: Optional[str]):
    """Render PATTERN for an instant."""
    cli.render(pattern, at, locale)


@cli.command()
@click.option("--at", help="ISO 8601 instant to start from (default: now)")
@click.pass_obj
def boundaries(cli: RotatorCLI, at: Optional[str]):
    """Show the next daily and weekly rotation boundaries."""
    cli.boundaries(at)


@cli.command()
@click.argument("settings_file", type=click.Path(dir_okay=False))
@click.pass_obj
def tee(cli: RotatorCLI, settings_file: str):
    """Copy standard input into the rotating file described by SETTINGS_FILE."""
    cli.tee(settings_file)


if __name__ == "__main__":
    cli()
