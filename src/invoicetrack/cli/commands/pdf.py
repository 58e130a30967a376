"""Invoice PDF commands."""

import json
from pathlib import Path

import click
import pydantic

from invoicetrack.cli.error_handling import echo_field_errors, handle_domain_error
from invoicetrack.domain.entities import GeneratedInvoice
from invoicetrack.domain.errors import DomainError
from invoicetrack.domain.generated import GeneratedInvoiceService, load_document
from invoicetrack.domain.pdf import InvoiceDocument, money, render_invoice_pdf, suggested_filename
from invoicetrack.domain.schemas import field_errors
from invoicetrack.utils.date_parser import format_date

OUTPUT_HELP = "Where to write the PDF (defaults to invoice-<number>.pdf)"


def _read_document(ctx, document_file) -> InvoiceDocument:
    try:
        return InvoiceDocument.model_validate(json.load(document_file))
    except json.JSONDecodeError as e:
        click.echo(f"Error: Invalid JSON: {e}", err=True)
        ctx.exit(1)
    except pydantic.ValidationError as e:
        click.echo("Error: Invalid invoice document", err=True)
        echo_field_errors(field_errors(e))
        ctx.exit(1)


def _write_pdf(document: InvoiceDocument, output: str | None) -> None:
    path = Path(output or suggested_filename(document))
    path.write_bytes(render_invoice_pdf(document))
    click.echo(f"Wrote {path}")


def _print_saved_row(invoice: GeneratedInvoice) -> None:
    shared = " [shared]" if invoice.is_public else ""
    click.echo(
        f"{invoice.id:<38} {invoice.invoice_number:<14} "
        f"{money(invoice.total_amount) + ' ' + invoice.currency:>18} {format_date(invoice.due_date)}{shared}"
    )


@click.group()
def pdf_group():
    """Generate invoice PDFs and keep the documents you saved."""
    pass


@pdf_group.command("generate")
@click.argument("document_file", type=click.File("r"))
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help=OUTPUT_HELP)
@click.option("--save", is_flag=True, help="Also keep the document in your saved invoices")
@click.pass_context
def generate(ctx, document_file, output: str | None, save: bool):
    """Render an invoice described in a JSON file to PDF.

    The JSON object holds invoice_number, issue_date, due_date, currency,
    seller, buyer and items (name, quantity, unit, net_price, vat_rate),
    plus optional service_date, payment_method and notes.

    Examples:
        invoicetrack pdf generate invoice.json
        invoicetrack pdf generate invoice.json -o out/acme-march.pdf --save
    """
    document = _read_document(ctx, document_file)
    if save:
        service = GeneratedInvoiceService(ctx.obj["db"])
        try:
            saved = service.save(ctx.obj["auth"], document)
        except DomainError as e:
            handle_domain_error(ctx, e)
        click.echo(f"Saved invoice {saved.invoice_number} (ID: {saved.id})")
    _write_pdf(document, output)


@pdf_group.command("list")
@click.pass_context
def list_saved(ctx):
    """List your saved invoices, most recently changed first."""
    service = GeneratedInvoiceService(ctx.obj["db"])
    try:
        invoices = service.list_saved(ctx.obj["auth"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not invoices:
        click.echo("No saved invoices.")
    for invoice in invoices:
        _print_saved_row(invoice)


@pdf_group.command("show")
@click.argument("invoice_id")
@click.pass_context
def show_saved(ctx, invoice_id: str):
    """Show a saved invoice."""
    service = GeneratedInvoiceService(ctx.obj["db"])
    try:
        invoice = service.get(ctx.obj["auth"], invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    document = load_document(invoice)

    click.echo(f"\nInvoice {invoice.invoice_number}")
    click.echo("-" * 60)
    click.echo(f"  ID: {invoice.id}")
    click.echo(f"  Seller: {document.seller.name}")
    click.echo(f"  Buyer: {document.buyer.name}")
    click.echo(f"  Issued: {format_date(invoice.issue_date)}")
    click.echo(f"  Due: {format_date(invoice.due_date)}")
    click.echo(f"  Items: {len(document.items)}")
    click.echo(f"  Total: {money(invoice.total_amount)} {invoice.currency}")
    click.echo(f"  Shared: {'yes' if invoice.is_public else 'no'}")
    if invoice.is_public:
        click.echo(f"  Share token: {invoice.share_token}")


@pdf_group.command("render")
@click.argument("invoice_id")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help=OUTPUT_HELP)
@click.pass_context
def render_saved(ctx, invoice_id: str, output: str | None):
    """Render a saved invoice to PDF."""
    service = GeneratedInvoiceService(ctx.obj["db"])
    try:
        invoice = service.get(ctx.obj["auth"], invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    _write_pdf(load_document(invoice), output)


@pdf_group.command("update")
@click.argument("invoice_id")
@click.argument("document_file", type=click.File("r"))
@click.pass_context
def update_saved(ctx, invoice_id: str, document_file):
    """Replace a saved invoice with a new version of the document."""
    document = _read_document(ctx, document_file)
    service = GeneratedInvoiceService(ctx.obj["db"])
    try:
        invoice = service.update(ctx.obj["auth"], invoice_id, document)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated saved invoice {invoice.invoice_number}")


@pdf_group.command("delete")
@click.argument("invoice_id")
@click.pass_context
def delete_saved(ctx, invoice_id: str):
    """Delete a saved invoice."""
    service = GeneratedInvoiceService(ctx.obj["db"])
    try:
        service.delete(ctx.obj["auth"], invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted saved invoice {invoice_id}")


@pdf_group.command("share")
@click.argument("invoice_id")
@click.option("--off", is_flag=True, help="Stop sharing the invoice")
@click.pass_context
def share_saved(ctx, invoice_id: str, off: bool):
    """Share a saved invoice through its token, or stop sharing it."""
    service = GeneratedInvoiceService(ctx.obj["db"])
    try:
        invoice = service.set_public(ctx.obj["auth"], invoice_id, not off)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if invoice.is_public:
        click.echo(f"Invoice {invoice.invoice_number} is shared. Token: {invoice.share_token}")
    else:
        click.echo(f"Invoice {invoice.invoice_number} is no longer shared")


@pdf_group.command("public")
@click.argument("share_token")
@click.option("--output", "-o", type=click.Path(dir_okay=False, writable=True), help=OUTPUT_HELP)
@click.pass_context
def render_public(ctx, share_token: str, output: str | None):
    """Render an invoice someone shared with you. No user is needed."""
    service = GeneratedInvoiceService(ctx.obj["db"])
    try:
        invoice = service.load_public(share_token)
    except DomainError as e:
        handle_domain_error(ctx, e)
    _write_pdf(load_document(invoice), output)


def register_commands(cli):
    """Register PDF commands with main CLI."""
    cli.add_command(pdf_group, name="pdf")
