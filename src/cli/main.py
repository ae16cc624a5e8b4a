"""CLI entry point for Nudge."""

import sys
from pathlib import Path

import click

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.commands import ask, chat, tasks
from cli.config import load_config_model
from cli.logging_config import setup_logging


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Nudge - tasks, reminders and an assistant that acts on them."""
    try:
        config = load_config_model()
    except ValueError as e:
        raise click.ClickException(str(e))
    level = "DEBUG" if verbose else config.logging.level
    setup_logging(
        json_mode=config.logging.json_mode,
        level=level,
        log_file=config.paths.log_file if config.logging.to_file else None,
    )


cli.add_command(tasks)
cli.add_command(ask)
cli.add_command(chat)


if __name__ == "__main__":
    cli()
