"""Artifact CLI commands: ingest, list, show, reprocess, delete."""

import asyncio
import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from cli.utils import default_user_id, get_components
from errors import ConflictError, CultivateError
from observability import log_run_summary
from shared_types import ArtifactType, Stage

console = Console()


def _fail(e: CultivateError):
    console.print(f"[red]{e.code}:[/] {e.message}")
    sys.exit(1)


async def _settle(c: dict, action):
    """Run `action` inside the event loop, then wait out every spawned stage."""
    try:
        result = action()
        await c["scheduler"].drain()
        return result
    finally:
        await c["transcriber"].aclose()
        log_run_summary()


def _status_line(artifact) -> str:
    parts = [f"extraction={artifact.extraction_status}", f"ai={artifact.ai_status}"]
    for stage in Stage:
        error = artifact.stage_error(stage)
        if error:
            parts.append(f"[red]{stage.value} error: {error}[/]")
    return "  ".join(parts)


@click.group()
def artifacts():
    """Captured evidence: voice memos, emails, notes, LinkedIn data."""
    pass


@artifacts.command("ingest")
@click.option(
    "-t",
    "--type",
    "artifact_type",
    required=True,
    type=click.Choice([t.value for t in ArtifactType]),
    help="Artifact type",
)
@click.option("-c", "--contact", "contact_id", help="Linked contact id")
@click.option("--content", help="Text content (email body, note, meeting notes)")
@click.option("--audio", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Audio file for voice memos")
@click.option("--metadata", "metadata_json", help="Type-specific metadata as a JSON object")
def artifacts_ingest(artifact_type, contact_id, content, audio, metadata_json):
    """Store a new artifact and run it through the pipeline."""
    c = get_components()
    user_id = default_user_id()

    metadata = {}
    if metadata_json:
        try:
            metadata = json.loads(metadata_json)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"not valid JSON: {e}", param_hint="--metadata")
        if not isinstance(metadata, dict):
            raise click.BadParameter("must be a JSON object", param_hint="--metadata")

    audio_ref = None
    if audio:
        audio_ref = c["blobs"].put(audio.read_bytes(), prefix=user_id, suffix=audio.suffix)

    def _ingest():
        return c["pipeline"].ingest(
            user_id=user_id,
            artifact_type=artifact_type,
            contact_id=contact_id,
            content=content,
            metadata=metadata,
            audio_file_path=audio_ref,
        )

    try:
        artifact = asyncio.run(_settle(c, _ingest))
    except CultivateError as e:
        if audio_ref:
            c["blobs"].delete(audio_ref)
        _fail(e)

    artifact = c["artifacts"].get(artifact.id)
    console.print(f"[green]Ingested[/] {artifact.id} ({artifact.type})")
    console.print(_status_line(artifact))
    for batch in c["suggestions"].list_for_artifact(artifact.id)[:1]:
        console.print(
            f"Suggestion batch {batch.id}: {len(batch.suggestions)} suggestion(s). "
            f"Review with [bold]cultivate suggestions show {batch.id}[/]"
        )


@artifacts.command("list")
@click.option("-c", "--contact", "contact_id", default=None, help="Filter by contact")
@click.option("-t", "--type", "artifact_type", default=None, type=click.Choice([t.value for t in ArtifactType]))
@click.option("-n", "--limit", default=20, help="Max artifacts")
def artifacts_list(contact_id, artifact_type, limit):
    """List your artifacts, newest first."""
    c = get_components()
    items = c["artifacts"].list_for_user(
        default_user_id(), contact_id=contact_id, artifact_type=artifact_type, limit=limit
    )
    if not items:
        console.print("No artifacts.")
        return

    table = Table(title="Artifacts")
    table.add_column("ID", style="dim")
    table.add_column("Type")
    table.add_column("Contact", style="dim")
    table.add_column("Extraction")
    table.add_column("AI")
    table.add_column("Created")
    for a in items:
        table.add_row(
            a.id[:12],
            a.type.value,
            (a.contact_id or "-")[:12],
            a.extraction_status.value,
            a.ai_status.value,
            a.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@artifacts.command("show")
@click.argument("artifact_id")
def artifacts_show(artifact_id):
    """Show one artifact with its processing state and suggestion history."""
    c = get_components()
    artifact = c["artifacts"].get(artifact_id)
    if artifact is None or artifact.user_id != default_user_id():
        console.print(f"[red]Artifact not found:[/] {artifact_id}")
        sys.exit(1)

    console.print(f"[bold]{artifact.id}[/] ({artifact.type})")
    console.print(f"Contact: {artifact.contact_id or '-'}")
    console.print(_status_line(artifact))
    if artifact.duration_seconds is not None:
        console.print(f"Duration: {artifact.duration_seconds}s")
    text = artifact.analysis_text
    if text:
        console.print(f"\n{text[:500]}")

    history = c["suggestions"].list_for_artifact(artifact.id)
    if history:
        console.print("\n[bold]Suggestion batches[/]")
        for batch in history:
            marker = f" (superseded by {batch.superseded_by[:12]})" if batch.superseded_by else ""
            console.print(
                f"  {batch.id[:12]}  {batch.status.value}  "
                f"{len(batch.suggestions)} suggestion(s){marker}"
            )


@artifacts.command("reprocess")
@click.argument("artifact_id")
@click.option("--stage", type=click.Choice([s.value for s in Stage]), default=None, help="Stage to reset")
def artifacts_reprocess(artifact_id, stage):
    """Reset a stage to pending and run the pipeline again."""
    c = get_components()
    try:
        asyncio.run(
            _settle(c, lambda: c["pipeline"].reprocess(artifact_id, default_user_id(), stage))
        )
    except CultivateError as e:
        _fail(e)
    artifact = c["artifacts"].get(artifact_id)
    console.print(f"[green]Reprocessed[/] {artifact_id}")
    console.print(_status_line(artifact))


@artifacts.command("delete")
@click.argument("artifact_id")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation")
def artifacts_delete(artifact_id, yes):
    """Delete an artifact unless contact data still cites it."""
    c = get_components()
    if not yes and not click.confirm(f"Delete artifact {artifact_id}?"):
        return
    try:
        c["guard"].delete(artifact_id, default_user_id())
    except ConflictError as e:
        console.print(f"[red]{e.code}:[/] {e.message}")
        for reason in e.reasons:
            console.print(f"  - {reason}")
        sys.exit(1)
    except CultivateError as e:
        _fail(e)
    console.print(f"[green]Deleted[/] {artifact_id}")
