"""Main CLI entry point."""

import logging

import click

from invoicetrack.database.factories import create_sqlite_database
from invoicetrack.domain.context import AuthContext

# Import and register all commands at module level
from invoicetrack.cli.commands import (
    connection,
    feedback,
    invoice,
    pdf,
    reminder,
    settings,
    template,
    waitlist,
)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides INVOICETRACK_DB_PATH environment variable)",
    envvar="INVOICETRACK_DB_PATH",
)
@click.option(
    "--user",
    help="User id to act as (overrides INVOICETRACK_USER environment variable)",
    envvar="INVOICETRACK_USER",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level (overrides INVOICETRACK_LOG_LEVEL environment variable)",
    envvar="INVOICETRACK_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, user: str | None, log_level: str):
    """Invoicetrack - Invoice tracking with payment reminders.

    Record the invoices you send, and let invoicetrack email your clients
    polite, then firm, then urgent reminders until they pay.
    """
    logging.basicConfig(level=getattr(logging, log_level.upper()), format=LOG_FORMAT)
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)
        ctx.obj["db"] = db
        ctx.obj["auth"] = AuthContext(user_id=user) if user else None


# Register all commands
invoice.register_commands(cli)
reminder.register_commands(cli)
settings.register_commands(cli)
template.register_commands(cli)
connection.register_commands(cli)
feedback.register_commands(cli)
waitlist.register_commands(cli)
pdf.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
