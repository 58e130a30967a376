"""Help center commands: feedback and feature requests."""

import click

from invoicetrack.cli.error_handling import handle_domain_error
from invoicetrack.domain.entities import FeaturePriority, FeatureStatus
from invoicetrack.domain.errors import DomainError
from invoicetrack.domain.feedback import FeedbackService


@click.group()
def feedback_group():
    """Send feedback and request features."""
    pass


@feedback_group.command("send")
@click.argument("content")
@click.option("--stars", type=click.IntRange(1, 5), required=True, help="Rating from 1 to 5")
@click.pass_context
def send_feedback(ctx, content: str, stars: int):
    """Send feedback about invoicetrack."""
    service = FeedbackService(ctx.obj["db"])
    try:
        service.submit_feedback(ctx.obj["auth"], content, stars)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo("Thanks for your feedback!")


@feedback_group.command("list")
@click.pass_context
def list_feedback(ctx):
    """List the feedback you sent."""
    service = FeedbackService(ctx.obj["db"])
    try:
        entries = service.list_feedback(ctx.obj["auth"])
    except DomainError as e:
        handle_domain_error(ctx, e)
    if not entries:
        click.echo("No feedback sent yet.")
        return
    for entry in entries:
        click.echo(f"{entry.created_at:%Y-%m-%d} {'*' * entry.stars:<5} {entry.content}")


@feedback_group.command("request")
@click.argument("title")
@click.option("--description", required=True, help="What you would like and why")
@click.option(
    "--priority",
    type=click.Choice([p.value for p in FeaturePriority]),
    default="medium",
    show_default=True,
)
@click.pass_context
def request_feature(ctx, title: str, description: str, priority: str):
    """Request a feature."""
    service = FeedbackService(ctx.obj["db"])
    try:
        request = service.submit_feature_request(ctx.obj["auth"], title, description, priority)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Submitted feature request '{request.title}' (ID: {request.id})")


@feedback_group.command("requests")
@click.pass_context
def list_requests(ctx):
    """List your feature requests."""
    service = FeedbackService(ctx.obj["db"])
    try:
        requests = service.list_feature_requests(ctx.obj["auth"])
    except DomainError as e:
        handle_domain_error(ctx, e)
    if not requests:
        click.echo("No feature requests yet.")
        return
    for request in requests:
        click.echo(
            f"{request.id[:8]:<10} {request.status.value:<12} {request.priority.value:<7} {request.title}"
        )


@feedback_group.command("request-status")
@click.argument("request_id")
@click.argument("status", type=click.Choice([s.value for s in FeatureStatus]))
@click.pass_context
def request_status(ctx, request_id: str, status: str):
    """Move a feature request to a new review status."""
    service = FeedbackService(ctx.obj["db"])
    try:
        request = service.update_feature_request_status(ctx.obj["auth"], request_id, status)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Feature request '{request.title}' is now {request.status.value}")


def register_commands(cli):
    """Register feedback commands with main CLI."""
    cli.add_command(feedback_group, name="feedback")
