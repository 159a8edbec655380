"""Contact CLI commands."""

import json
import sys
import uuid

import click
from rich.console import Console

from cli.utils import default_user_id, get_components
from contacts.models import DIRECT_COLUMNS, Contact

console = Console()


@click.group()
def contacts():
    """Contacts that artifacts are about."""
    pass


@contacts.command("add")
@click.argument("name")
@click.option("--email")
@click.option("--company")
@click.option("--title")
@click.option("--location")
def contacts_add(name, email, company, title, location):
    """Create a contact."""
    c = get_components()
    contact = c["contacts"].create(
        Contact(
            id=uuid.uuid4().hex,
            user_id=default_user_id(),
            name=name,
            email=email,
            company=company,
            title=title,
            location=location,
        )
    )
    console.print(f"[green]Created[/] {contact.name}: {contact.id}")


@contacts.command("list")
def contacts_list():
    """List contacts."""
    c = get_components()
    for contact in c["contacts"].list_for_user(default_user_id()):
        console.print(f"{contact.id[:12]}  {contact.name}  [dim]{contact.company or ''}[/]")


@contacts.command("show")
@click.argument("contact_id")
def contacts_show(contact_id):
    """Show a contact with structured context and field sources."""
    c = get_components()
    contact = c["contacts"].get(contact_id)
    if contact is None or contact.user_id != default_user_id():
        console.print(f"[red]Contact not found:[/] {contact_id}")
        sys.exit(1)

    console.print(f"[bold]{contact.name}[/] ({contact.id})")
    for col in DIRECT_COLUMNS[1:]:
        value = getattr(contact, col)
        if value:
            console.print(f"  {col}: {value}")
    for label, ctx in (
        ("Professional context", contact.professional_context),
        ("Personal context", contact.personal_context),
    ):
        if ctx:
            console.print(f"\n[bold]{label}[/]")
            console.print(json.dumps(ctx, indent=2))
    if contact.field_sources:
        console.print("\n[bold]Field sources[/]")
        for path, artifact_id in sorted(contact.field_sources.items()):
            console.print(f"  {path} <- {artifact_id}")
