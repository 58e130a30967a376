"""Reminder commands: manual sends, history, previews and the scheduled pass."""

import json

import click

from invoicetrack.cli.error_handling import handle_domain_error
from invoicetrack.domain.email import EmailTransport, SMTPTransport
from invoicetrack.domain.entities import DeliveryStatus, ReminderRecord, ReminderTone
from invoicetrack.domain.errors import DomainError
from invoicetrack.domain.reminder import ReminderService
from invoicetrack.domain.scheduler import BatchResult, ReminderScheduler

TONE_CHOICES = [t.value for t in ReminderTone]
REPORTED_STATUSES = [
    s.value for s in DeliveryStatus if s not in (DeliveryStatus.QUEUED, DeliveryStatus.SENT)
]


def _transport(ctx) -> EmailTransport:
    # A transport placed on the context object (tests, embedding) wins over SMTP
    transport = ctx.obj.get("transport")
    if transport is None:
        transport = SMTPTransport()
        ctx.obj["transport"] = transport
    return transport


def _service(ctx) -> ReminderService:
    return ReminderService(ctx.obj["db"], _transport(ctx))


def _print_record(record: ReminderRecord) -> None:
    click.echo(
        f"#{record.sequence_number:<3} {record.sent_at:%Y-%m-%d %H:%M}  {record.tone.value:<10} "
        f"{record.status.value:<10} {record.subject}"
    )


def _print_batch(result: BatchResult) -> None:
    click.echo(
        f"Users: {result.owners} (skipped {result.skipped_owners}), "
        f"invoices checked: {result.invoices_checked}, sent: {result.sent}, failed: {result.failed}"
    )


@click.group()
def reminder_group():
    """Send and track payment reminders."""
    pass


@reminder_group.command("send")
@click.argument("invoice_id")
@click.option("--subject", required=True, help="Email subject")
@click.option("--content", help="Email body")
@click.option("--content-file", type=click.File("r"), help="Read the email body from a file")
@click.option("--tone", type=click.Choice(TONE_CHOICES), default="polite", show_default=True)
@click.option("--plain", is_flag=True, help="Send the body as plain text instead of HTML")
@click.pass_context
def send_reminder(ctx, invoice_id: str, subject: str, content: str | None, content_file, tone: str, plain: bool):
    """Send a reminder for an invoice now.

    Manual reminders are sent even when automation is off or the reminder
    limit was reached.
    """
    if content_file is not None:
        content = content_file.read()
    if not content:
        click.echo("Error: Provide the email body with --content or --content-file", err=True)
        ctx.exit(1)

    service = _service(ctx)
    try:
        record = service.send_reminder(ctx.obj["auth"], invoice_id, subject, content, tone=tone, is_html=not plain)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Sent reminder #{record.sequence_number} ({record.tone.value}) for invoice {invoice_id}")


@reminder_group.command("bulk-send")
@click.argument("reminders_file", type=click.File("r"))
@click.pass_context
def bulk_send(ctx, reminders_file):
    """Send reminders listed in a JSON file.

    The file holds a list of objects with invoice_id, subject, content and
    optionally tone and is_html. Failures are reported per invoice.
    """
    try:
        reminders = json.load(reminders_file)
    except json.JSONDecodeError as e:
        click.echo(f"Error: Invalid JSON: {e}", err=True)
        ctx.exit(1)
    if not isinstance(reminders, list):
        click.echo("Error: Expected a JSON list of reminders", err=True)
        ctx.exit(1)

    service = _service(ctx)
    try:
        result = service.bulk_send(ctx.obj["auth"], reminders)
    except DomainError as e:
        handle_domain_error(ctx, e)

    for item in result.results:
        if item.success:
            click.echo(f"  OK    {item.invoice_id}: reminder #{item.sequence_number}")
        else:
            click.echo(f"  FAIL  {item.invoice_id}: {item.error}")
    click.echo(f"Sent {result.successful} of {result.total} reminder(s), {result.failed} failed")
    if not result.success:
        ctx.exit(1)


@reminder_group.command("history")
@click.argument("invoice_id")
@click.pass_context
def history(ctx, invoice_id: str):
    """Show the reminders sent for an invoice, newest first."""
    service = _service(ctx)
    try:
        records = service.get_history(ctx.obj["auth"], invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if not records:
        click.echo("No reminders sent yet.")
        return
    for record in records:
        _print_record(record)


@reminder_group.command("list")
@click.option("--limit", type=int, default=50, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@click.pass_context
def list_reminders(ctx, limit: int, offset: int):
    """List all your reminders, newest first."""
    service = _service(ctx)
    try:
        records = service.list_all(ctx.obj["auth"], limit=limit, offset=offset)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if not records:
        click.echo("No reminders found.")
        return
    for record in records:
        click.echo(f"{record.id[:8]:<10} {record.invoice_id[:8]:<10} ", nl=False)
        _print_record(record)


@reminder_group.command("status")
@click.argument("reminder_id")
@click.argument("status", type=click.Choice(REPORTED_STATUSES))
@click.pass_context
def update_status(ctx, reminder_id: str, status: str):
    """Record what happened to a sent reminder (delivered, opened, ...)."""
    service = _service(ctx)
    try:
        record = service.update_status(ctx.obj["auth"], reminder_id, status)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Reminder {record.id} is now {record.status.value}")


@reminder_group.command("log")
@click.argument("invoice_id")
@click.option("--subject", required=True, help="Subject of the email you sent")
@click.option("--content", required=True, help="Body of the email you sent")
@click.option("--tone", type=click.Choice(TONE_CHOICES), default="polite", show_default=True)
@click.pass_context
def log_reminder(ctx, invoice_id: str, subject: str, content: str, tone: str):
    """Record a reminder you sent yourself, outside invoicetrack."""
    service = _service(ctx)
    try:
        record = service.log_reminder(ctx.obj["auth"], invoice_id, subject, content, tone=tone)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Logged reminder #{record.sequence_number} for invoice {invoice_id}")


@reminder_group.command("stats")
@click.pass_context
def stats(ctx):
    """Show reminder totals and delivery, open and response rates."""
    service = _service(ctx)
    try:
        result = service.get_reminder_stats(ctx.obj["auth"])
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Total:     {result.total}")
    click.echo(f"Sent:      {result.sent}")
    click.echo(f"Delivered: {result.delivered} ({result.delivery_rate:.1f}%)")
    click.echo(f"Opened:    {result.opened} ({result.open_rate:.1f}%)")
    click.echo(f"Replied:   {result.replied} ({result.response_rate:.1f}%)")


@reminder_group.command("preview")
@click.argument("invoice_id")
@click.option("--tone", type=click.Choice(TONE_CHOICES), help="Tone (defaults to the next one in sequence)")
@click.option("--html", "show_html", is_flag=True, help="Show the HTML body instead of plain text")
@click.pass_context
def preview(ctx, invoice_id: str, tone: str | None, show_html: bool):
    """Show the next reminder for an invoice without sending it."""
    service = _service(ctx)
    try:
        rendered = service.preview(ctx.obj["auth"], invoice_id, tone=tone)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Subject: {rendered.subject}")
    click.echo("")
    click.echo(rendered.html if show_html else rendered.text)


@reminder_group.command("evaluate")
@click.argument("invoice_id")
@click.pass_context
def evaluate(ctx, invoice_id: str):
    """Explain whether an automatic reminder is due for an invoice."""
    service = _service(ctx)
    scheduler = ReminderScheduler(ctx.obj["db"], service)
    try:
        decision = scheduler.evaluate(ctx.obj["auth"], invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Days overdue: {decision.days_overdue}")
    if decision.send:
        click.echo(f"Reminder #{decision.sequence_number} ({decision.tone.value}) is due")
    elif decision.sequence_number:
        click.echo(f"No reminder due (last sent: #{decision.sequence_number})")
    else:
        click.echo("No reminder due")


@reminder_group.command("run")
@click.option("--all-users", is_flag=True, help="Process every user with automated reminders on")
@click.pass_context
def run(ctx, all_users: bool):
    """Send the automatic reminders that are due.

    Without --all-users only your own invoices are processed. Meant to be
    run periodically, e.g. from cron.
    """
    service = _service(ctx)
    scheduler = ReminderScheduler(ctx.obj["db"], service)
    try:
        if all_users:
            result = scheduler.process_scheduled_reminders()
        else:
            result = scheduler.run_for_owner(ctx.obj["auth"])
    except DomainError as e:
        handle_domain_error(ctx, e)
    _print_batch(result)


def register_commands(cli):
    """Register reminder commands with main CLI."""
    cli.add_command(reminder_group, name="reminder")
