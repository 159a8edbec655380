"""Suggestion review CLI commands: list, show, apply."""

import json
import sys

import click
from rich.console import Console
from rich.table import Table

from cli.utils import default_user_id, get_components
from errors import CultivateError
from shared_types import ReviewStatus
from suggestions.models import preselected_paths

console = Console()


def _value(v) -> str:
    return v if isinstance(v, str) else json.dumps(v)


@click.group()
def suggestions():
    """Review AI-suggested contact updates."""
    pass


@suggestions.command("list")
@click.option("-c", "--contact", "contact_id", default=None, help="Batches for a contact")
@click.option("-a", "--artifact", "artifact_id", default=None, help="Batches for an artifact")
@click.option("-s", "--status", default=None, type=click.Choice([s.value for s in ReviewStatus]))
def suggestions_list(contact_id, artifact_id, status):
    """List suggestion batches for a contact or an artifact."""
    if not contact_id and not artifact_id:
        raise click.UsageError("Pass --contact or --artifact")
    c = get_components()
    if artifact_id:
        batches = c["suggestions"].list_for_artifact(artifact_id)
        if status:
            batches = [b for b in batches if b.status == status]
    else:
        batches = c["suggestions"].list_for_contact(contact_id, status=status)
    batches = [b for b in batches if b.user_id == default_user_id()]
    if not batches:
        console.print("No suggestion batches.")
        return

    table = Table(title="Suggestion batches")
    table.add_column("ID", style="dim")
    table.add_column("Artifact", style="dim")
    table.add_column("Status")
    table.add_column("Suggestions", justify="right")
    table.add_column("Created")
    for b in batches:
        status_text = b.status.value if not b.superseded_by else f"{b.status.value} (superseded)"
        table.add_row(
            b.id[:12],
            b.artifact_id[:12],
            status_text,
            str(len(b.suggestions)),
            b.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@suggestions.command("show")
@click.argument("batch_id")
def suggestions_show(batch_id):
    """Show a batch; * marks the default pre-selection."""
    c = get_components()
    batch = c["suggestions"].get(batch_id)
    if batch is None or batch.user_id != default_user_id():
        console.print(f"[red]Suggestion batch not found:[/] {batch_id}")
        sys.exit(1)

    threshold = c["config_model"].suggestions.preselect_threshold
    selected = set(preselected_paths(batch, threshold))
    table = Table(title=f"Batch {batch.id[:12]} ({batch.status.value})")
    table.add_column("", width=1)
    table.add_column("Field")
    table.add_column("Action")
    table.add_column("Value")
    table.add_column("Conf", justify="right")
    table.add_column("Reasoning", style="dim")
    for s in batch.suggestions:
        table.add_row(
            "*" if s.field_path in selected else "",
            s.field_path,
            s.action.value,
            _value(s.suggested_value)[:60],
            f"{s.confidence:.2f}",
            s.reasoning[:60],
        )
    console.print(table)


@suggestions.command("apply")
@click.argument("batch_id")
@click.option("-p", "--path", "paths", multiple=True, help="Field path to apply (repeatable)")
@click.option("--defaults", is_flag=True, help="Apply the default pre-selection")
@click.option("--reject", is_flag=True, help="Reject the whole batch")
def suggestions_apply(batch_id, paths, defaults, reject):
    """Apply selected suggestions to the contact."""
    if sum(bool(x) for x in (paths, defaults, reject)) != 1:
        raise click.UsageError("Use exactly one of --path, --defaults or --reject")
    c = get_components()

    selected = list(paths)
    if defaults:
        batch = c["suggestions"].get(batch_id)
        if batch is None:
            console.print(f"[red]Suggestion batch not found:[/] {batch_id}")
            sys.exit(1)
        selected = preselected_paths(batch, c["config_model"].suggestions.preselect_threshold)

    try:
        result = c["reconciler"].apply(batch_id, selected, user_id=default_user_id())
    except CultivateError as e:
        console.print(f"[red]{e.code}:[/] {e.message}")
        sys.exit(1)

    console.print(f"Batch {batch_id[:12]}: [bold]{result.batch.status.value}[/]")
    for path in result.applied_paths:
        console.print(f"  [green]✓[/] {path}")
