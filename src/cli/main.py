"""CLI entry point for cultivate."""

import sys
from pathlib import Path

import click

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli.commands import artifacts, contacts, suggestions
from cli.config import load_config_model
from cli.logging_config import setup_logging


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines")
def cli(verbose: bool, json_logs: bool):
    """cultivate - turn captured evidence into reviewed contact updates."""
    try:
        config = load_config_model()
    except ValueError as e:
        raise click.ClickException(str(e))
    level = "DEBUG" if verbose else config.logging.level
    setup_logging(
        json_mode=json_logs or config.logging.json_mode,
        level=level,
        log_file=config.paths.log_file,
    )


cli.add_command(artifacts)
cli.add_command(contacts)
cli.add_command(suggestions)


if __name__ == "__main__":
    cli()
