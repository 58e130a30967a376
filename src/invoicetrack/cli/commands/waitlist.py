"""Waitlist commands."""

import click

from invoicetrack.cli.error_handling import handle_domain_error
from invoicetrack.domain.errors import DomainError
from invoicetrack.domain.waitlist import WaitlistService


@click.group()
def waitlist_group():
    """Manage the early-access waitlist."""
    pass


@waitlist_group.command("join")
@click.argument("email")
@click.pass_context
def join(ctx, email: str):
    """Add an email address to the waitlist."""
    service = WaitlistService(ctx.obj["db"])
    try:
        entry = service.signup(email)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Added {entry.email} to the waitlist")


@waitlist_group.command("count")
@click.pass_context
def count(ctx):
    """Show how many people are waiting."""
    service = WaitlistService(ctx.obj["db"])
    click.echo(str(service.count()))


@waitlist_group.command("list")
@click.pass_context
def list_entries(ctx):
    """List waitlist signups, oldest first."""
    service = WaitlistService(ctx.obj["db"])
    entries = service.list_entries()
    if not entries:
        click.echo("The waitlist is empty.")
        return
    for entry in entries:
        click.echo(f"{entry.created_at:%Y-%m-%d %H:%M}  {entry.email}")


def register_commands(cli):
    """Register waitlist commands with main CLI."""
    cli.add_command(waitlist_group, name="waitlist")
