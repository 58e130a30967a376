"""Rendering of domain errors on the command line."""

import logging

import click

from invoicetrack.domain.errors import DomainError, ValidationError

logger = logging.getLogger(__name__)


def echo_field_errors(field_errors: dict[str, list[str]]) -> None:
    for field, messages in field_errors.items():
        click.echo(f"  {field}: {'; '.join(messages)}", err=True)


def handle_domain_error(ctx: click.Context, error: DomainError) -> None:
    """Print ``Error: <message>`` and any per-field details to stderr, then exit 1."""
    logger.debug("Command failed with %s", getattr(error, "code", type(error).__name__))
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, ValidationError):
        echo_field_errors(error.field_errors)
    ctx.exit(1)
