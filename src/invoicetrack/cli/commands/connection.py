"""Email connection commands."""

import click

from invoicetrack.cli.error_handling import handle_domain_error
from invoicetrack.domain.connection import ConnectionService
from invoicetrack.domain.errors import DomainError


@click.group()
def connection_group():
    """Manage the email account reminders are sent from."""
    pass


@connection_group.command("connect")
@click.argument("email")
@click.option("--name", help="Display name for the account")
@click.option(
    "--credential",
    prompt=True,
    hide_input=True,
    help="SMTP password or app password (prompted when omitted)",
)
@click.pass_context
def connect(ctx, email: str, name: str | None, credential: str):
    """Connect an email account.

    Connecting again replaces the stored account.

    Examples:
        invoicetrack connection connect me@example.com --name "Jane Doe"
    """
    service = ConnectionService(ctx.obj["db"])
    try:
        connection = service.connect(ctx.obj["auth"], email, credential, name=name)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Connected {connection.email}")


@connection_group.command("status")
@click.pass_context
def status(ctx):
    """Show whether an email account is connected."""
    service = ConnectionService(ctx.obj["db"])
    try:
        result = service.get_status(ctx.obj["auth"])
    except DomainError as e:
        handle_domain_error(ctx, e)
    if not result.connected:
        click.echo("No email account connected.")
        return
    label = f"{result.name} <{result.email}>" if result.name else result.email
    click.echo(f"Connected: {label}")


@connection_group.command("disconnect")
@click.pass_context
def disconnect(ctx):
    """Remove the connected email account."""
    service = ConnectionService(ctx.obj["db"])
    try:
        service.disconnect(ctx.obj["auth"])
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo("Email account disconnected.")


def register_commands(cli):
    """Register connection commands with main CLI."""
    cli.add_command(connection_group, name="connection")
