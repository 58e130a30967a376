"""Invoice management commands."""

from datetime import date

import click

from invoicetrack.cli.error_handling import handle_domain_error
from invoicetrack.domain.context import utcnow
from invoicetrack.domain.entities import Invoice, InvoiceStatus, StatusFilter
from invoicetrack.domain.errors import DomainError
from invoicetrack.domain.invoice import InvoiceService, is_overdue
from invoicetrack.utils.amount_parser import format_amount, parse_amount
from invoicetrack.utils.date_parser import format_date, parse_date, resolve_due_date

STATUS_CHOICES = [s.value for s in InvoiceStatus]
FILTER_CHOICES = [s.value for s in StatusFilter]


def _display_status(invoice: Invoice) -> str:
    return "overdue" if is_overdue(invoice, utcnow()) else invoice.status.value


def _print_invoice_row(invoice: Invoice, extra: str = "") -> None:
    amount = format_amount(invoice.amount, invoice.currency)
    click.echo(
        f"{invoice.id[:8]:<10} {invoice.invoice_number:<14} {invoice.client_name[:24]:<25} "
        f"{amount:>14} {format_date(invoice.due_date):<14} {_display_status(invoice):<10}{extra}"
    )


def _print_invoice(invoice: Invoice) -> None:
    click.echo(f"\nInvoice {invoice.invoice_number}")
    click.echo("-" * 60)
    click.echo(f"  ID: {invoice.id}")
    click.echo(f"  Client: {invoice.client_name} <{invoice.client_email}>")
    click.echo(f"  Amount: {format_amount(invoice.amount, invoice.currency)}")
    click.echo(f"  Issued: {format_date(invoice.issue_date)}")
    click.echo(f"  Due: {format_date(invoice.due_date)}")
    click.echo(f"  Status: {_display_status(invoice)}")
    if invoice.payment_date:
        click.echo(f"  Paid: {format_date(invoice.payment_date)}")
    if invoice.description:
        click.echo(f"  Description: {invoice.description}")
    if invoice.additional_notes:
        click.echo(f"  Notes: {invoice.additional_notes}")


def _parse_dates(ctx, issue_date: str, due_date: str) -> tuple[date, date]:
    try:
        issued = parse_date(issue_date)
    except ValueError as e:
        click.echo(f"Error: Invalid issue date: {e}", err=True)
        ctx.exit(1)
    try:
        due = resolve_due_date(due_date, issued)
    except ValueError as e:
        click.echo(f"Error: Invalid due date: {e}", err=True)
        ctx.exit(1)
    return issued, due


@click.group()
def invoice_group():
    """Manage invoices."""
    pass


@invoice_group.command("create")
@click.option("--client-name", required=True, help="Client name")
@click.option("--client-email", required=True, help="Client email address")
@click.option("--number", "invoice_number", required=True, help="Invoice number (unique per user)")
@click.option("--amount", required=True, help="Invoice amount (e.g., 1250.00 or $1,250.00)")
@click.option("--currency", default="USD", show_default=True, help="Currency code")
@click.option("--issue-date", default="today", show_default=True, help="Issue date (YYYY-MM-DD or relative)")
@click.option("--due-date", required=True, help="Due date (YYYY-MM-DD, relative, or terms like 'net 30')")
@click.option("--description", help="Description of the billed work")
@click.option("--notes", help="Additional notes")
@click.option("--status", type=click.Choice(STATUS_CHOICES), default="pending", show_default=True)
@click.pass_context
def create_invoice(
    ctx,
    client_name: str,
    client_email: str,
    invoice_number: str,
    amount: str,
    currency: str,
    issue_date: str,
    due_date: str,
    description: str | None,
    notes: str | None,
    status: str,
):
    """Record a new invoice.

    Examples:
        invoicetrack invoice create --client-name "Acme" --client-email ap@acme.example.com \\
            --number INV-001 --amount 1250 --due-date "net 30"
    """
    db = ctx.obj["db"]
    service = InvoiceService(db)

    try:
        parsed_amount = parse_amount(amount)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)
    issued, due = _parse_dates(ctx, issue_date, due_date)

    try:
        invoice = service.create(
            ctx.obj["auth"],
            {
                "client_name": client_name,
                "client_email": client_email,
                "invoice_number": invoice_number,
                "amount": parsed_amount,
                "currency": currency,
                "issue_date": issued,
                "due_date": due,
                "description": description,
                "additional_notes": notes,
                "status": status,
            },
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created invoice {invoice.invoice_number} (ID: {invoice.id})")


@invoice_group.command("list")
@click.option("--status", type=click.Choice(FILTER_CHOICES), help="Filter by status")
@click.option("--reminders", "with_reminders", is_flag=True, help="Include reminder counts")
@click.option("--limit", type=int, default=50, show_default=True)
@click.option("--offset", type=int, default=0, show_default=True)
@click.pass_context
def list_invoices(ctx, status: str | None, with_reminders: bool, limit: int, offset: int):
    """List invoices, newest first.

    Overdue means pending and past its due date.
    """
    db = ctx.obj["db"]
    service = InvoiceService(db)
    auth = ctx.obj["auth"]

    try:
        if with_reminders:
            rows = service.list_with_reminder_counts(auth, status or StatusFilter.ALL)
        elif status:
            invoices = service.get_by_status(auth, status)
        else:
            invoices = service.list_invoices(auth, limit=limit, offset=offset)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if with_reminders:
        if not rows:
            click.echo("No invoices found.")
            return
        click.echo(f"\nFound {len(rows)} invoice(s):")
        click.echo("-" * 110)
        for row in rows:
            last = format_date(row.last_reminder_at) if row.last_reminder_at else "never"
            _print_invoice_row(row.invoice, f" reminders: {row.reminder_count} (last {last})")
        return

    if not invoices:
        click.echo("No invoices found.")
        return
    click.echo(f"\nFound {len(invoices)} invoice(s):")
    click.echo("-" * 92)
    click.echo(f"{'ID':<10} {'Number':<14} {'Client':<25} {'Amount':>14} {'Due':<14} {'Status':<10}")
    click.echo("-" * 92)
    for invoice in invoices:
        _print_invoice_row(invoice)


@invoice_group.command("show")
@click.argument("invoice_id")
@click.pass_context
def show_invoice(ctx, invoice_id: str):
    """Show one invoice."""
    service = InvoiceService(ctx.obj["db"])
    try:
        invoice = service.get(ctx.obj["auth"], invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    _print_invoice(invoice)


@invoice_group.command("update")
@click.argument("invoice_id")
@click.option("--client-name", help="Client name")
@click.option("--client-email", help="Client email address")
@click.option("--number", "invoice_number", help="Invoice number")
@click.option("--amount", help="Invoice amount")
@click.option("--currency", help="Currency code")
@click.option("--issue-date", help="Issue date")
@click.option("--due-date", help="Due date or payment terms")
@click.option("--description", help="Description (empty string to clear)")
@click.option("--notes", help="Additional notes (empty string to clear)")
@click.pass_context
def update_invoice(
    ctx,
    invoice_id: str,
    client_name: str | None,
    client_email: str | None,
    invoice_number: str | None,
    amount: str | None,
    currency: str | None,
    issue_date: str | None,
    due_date: str | None,
    description: str | None,
    notes: str | None,
):
    """Update an invoice.

    Updates only the fields that are provided.

    Examples:
        invoicetrack invoice update 3f2a... --amount 1400
        invoicetrack invoice update 3f2a... --due-date "net 45"
    """
    service = InvoiceService(ctx.obj["db"])
    auth = ctx.obj["auth"]
    try:
        current = service.get(auth, invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    data = {
        "client_name": client_name if client_name is not None else current.client_name,
        "client_email": client_email if client_email is not None else current.client_email,
        "invoice_number": invoice_number if invoice_number is not None else current.invoice_number,
        "amount": current.amount,
        "currency": currency if currency is not None else current.currency,
        "issue_date": current.issue_date,
        "due_date": current.due_date,
        "description": current.description if description is None else (description or None),
        "additional_notes": current.additional_notes if notes is None else (notes or None),
    }
    if amount is not None:
        try:
            data["amount"] = parse_amount(amount)
        except ValueError as e:
            click.echo(f"Error: Invalid amount format: {e}", err=True)
            ctx.exit(1)
    if issue_date is not None or due_date is not None:
        issued, due = _parse_dates(
            ctx,
            issue_date if issue_date is not None else current.issue_date.isoformat(),
            due_date if due_date is not None else current.due_date.isoformat(),
        )
        data["issue_date"], data["due_date"] = issued, due

    try:
        invoice = service.update(auth, invoice_id, data)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated invoice {invoice.invoice_number}")


@invoice_group.command("delete")
@click.argument("invoice_ids", nargs=-1, required=True)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_invoices(ctx, invoice_ids: tuple[str, ...], yes: bool):
    """Delete one or more invoices and their reminder history.

    Nothing is deleted if any of the invoices belongs to someone else.
    """
    service = InvoiceService(ctx.obj["db"])
    auth = ctx.obj["auth"]

    if not yes and not click.confirm(f"Are you sure you want to delete {len(invoice_ids)} invoice(s)?"):
        click.echo("Deletion cancelled.")
        return

    try:
        if len(invoice_ids) == 1:
            service.delete(auth, invoice_ids[0])
            deleted = list(invoice_ids)
        else:
            deleted = service.bulk_delete(auth, invoice_ids)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted {len(deleted)} invoice(s)")


@invoice_group.command("status")
@click.argument("status", type=click.Choice(STATUS_CHOICES))
@click.argument("invoice_ids", nargs=-1, required=True)
@click.pass_context
def set_status(ctx, status: str, invoice_ids: tuple[str, ...]):
    """Set the status of one or more invoices.

    Examples:
        invoicetrack invoice status cancelled 3f2a...
        invoicetrack invoice status paid 3f2a... 9b1c...
    """
    service = InvoiceService(ctx.obj["db"])
    auth = ctx.obj["auth"]
    try:
        if len(invoice_ids) == 1:
            service.update_status(auth, invoice_ids[0], status)
            updated = list(invoice_ids)
        else:
            updated = service.bulk_update_status(auth, invoice_ids, status)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Set {len(updated)} invoice(s) to {status}")


@invoice_group.command("paid")
@click.argument("invoice_id")
@click.pass_context
def mark_paid(ctx, invoice_id: str):
    """Mark an invoice as paid."""
    service = InvoiceService(ctx.obj["db"])
    try:
        invoice = service.mark_as_paid(ctx.obj["auth"], invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Marked invoice {invoice.invoice_number} as paid")


@invoice_group.command("check-number")
@click.argument("invoice_number")
@click.option("--exclude-id", help="Ignore this invoice (when editing it)")
@click.pass_context
def check_number(ctx, invoice_number: str, exclude_id: str | None):
    """Check whether an invoice number is already in use."""
    service = InvoiceService(ctx.obj["db"])
    try:
        exists, invoice_id = service.check_invoice_number(ctx.obj["auth"], invoice_number, exclude_id=exclude_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if exists:
        click.echo(f"Invoice number '{invoice_number}' is in use (ID: {invoice_id})")
    else:
        click.echo(f"Invoice number '{invoice_number}' is available")


@invoice_group.command("clients")
@click.pass_context
def list_clients(ctx):
    """List the clients you have invoiced."""
    service = InvoiceService(ctx.obj["db"])
    try:
        clients = service.unique_clients(ctx.obj["auth"])
    except DomainError as e:
        handle_domain_error(ctx, e)
    if not clients:
        click.echo("No clients found.")
        return
    for name, email in clients:
        click.echo(f"{name} <{email}>")


@invoice_group.command("dashboard")
@click.option("--year", type=int, help="Year for the monthly totals (defaults to this year)")
@click.pass_context
def dashboard(ctx, year: int | None):
    """Show invoice counters, outstanding amount and monthly totals."""
    service = InvoiceService(ctx.obj["db"])
    auth = ctx.obj["auth"]
    try:
        stats = service.get_stats(auth)
        monthly = service.get_monthly_data(auth, year=year)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo("\nDashboard")
    click.echo("=" * 60)
    click.echo(f"Pending:     {stats.pending_invoices}")
    click.echo(f"Overdue:     {stats.overdue_invoices}")
    click.echo(f"Paid:        {stats.paid_invoices}")
    click.echo(f"Outstanding: {stats.outstanding_amount:,.2f}")

    click.echo("\nMonthly totals:")
    for bucket in monthly:
        click.echo(f"  {bucket.name}: {bucket.amount:>12,.2f}")

    if stats.recent_invoices:
        click.echo("\nRecent invoices:")
        for invoice in stats.recent_invoices:
            _print_invoice_row(invoice)


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")
