"""Invoice PDF generation using reportlab.

Documents are rendered from an ``InvoiceDocument`` and returned as bytes.
Saving documents is handled by ``invoicetrack.domain.generated``. All money
arithmetic uses ``Decimal``.
"""

import io
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union
from xml.sax.saxutils import escape

from pydantic import BaseModel, ConfigDict, Field, field_validator
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from invoicetrack.utils.date_parser import format_date

CENT = Decimal("0.01")

# Colors
TEXT_COLOR = colors.HexColor("#0f172a")
MUTED_COLOR = colors.HexColor("#64748b")
RULE_COLOR = colors.HexColor("#e2e8f0")


class Party(BaseModel):
    """Seller or buyer block."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    address: str = ""
    email: Optional[str] = None
    vat_number: Optional[str] = None
    notes: Optional[str] = None


class LineItem(BaseModel):
    """One invoice line.

    ``vat_rate`` is a percentage, or a code such as ``"NP"`` for lines outside
    the VAT scheme; coded lines carry no VAT.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    quantity: Decimal = Field(gt=0)
    unit: str = "pcs"
    net_price: Decimal = Field(ge=0)
    vat_rate: Union[Decimal, str] = Decimal("0")

    @field_validator("vat_rate", mode="before")
    @classmethod
    def _numeric_rate(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return Decimal(str(value))
        if isinstance(value, str):
            try:
                return Decimal(value.strip().rstrip("%"))
            except InvalidOperation:
                return value.strip().upper()
        return value

    @field_validator("vat_rate")
    @classmethod
    def _valid_rate(cls, value: Union[Decimal, str]) -> Union[Decimal, str]:
        if isinstance(value, Decimal) and not (value.is_finite() and Decimal("0") <= value <= Decimal("100")):
            raise ValueError("VAT rate must be between 0 and 100")
        if isinstance(value, str) and not value:
            raise ValueError("VAT code must not be empty")
        return value

    @property
    def rate(self) -> Decimal:
        return self.vat_rate if isinstance(self.vat_rate, Decimal) else Decimal("0")

    @property
    def net_amount(self) -> Decimal:
        return self.quantity * self.net_price

    @property
    def vat_amount(self) -> Decimal:
        return self.net_amount * self.rate / 100

    @property
    def gross_amount(self) -> Decimal:
        return self.net_amount + self.vat_amount


class InvoiceDocument(BaseModel):
    """Everything printed on a generated invoice."""

    invoice_number: str = Field(min_length=1)
    issue_date: date
    service_date: Optional[date] = None
    due_date: date
    currency: str = "USD"
    seller: Party
    buyer: Party
    items: list[LineItem] = Field(min_length=1)
    payment_method: Optional[str] = None
    notes: Optional[str] = None

    @property
    def total(self) -> Decimal:
        """Gross amount to pay, rounded to cents."""
        gross = sum((item.gross_amount for item in self.items), Decimal("0"))
        return gross.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class VatGroup:
    label: str
    net: Decimal
    vat: Decimal
    total: Decimal


def _rate_key(rate: Union[Decimal, str]) -> str:
    return f"{rate.normalize():f}" if isinstance(rate, Decimal) else rate


def vat_summary(items: list[LineItem]) -> list[VatGroup]:
    """Group line amounts by VAT rate.

    Numeric rates come first in descending order, followed by VAT codes in
    alphabetical order.
    """
    groups: dict[str, list[Decimal]] = {}
    rates: dict[str, Union[Decimal, str]] = {}
    for item in items:
        key = _rate_key(item.vat_rate)
        rates[key] = item.vat_rate
        totals = groups.setdefault(key, [Decimal("0"), Decimal("0")])
        totals[0] += item.net_amount
        totals[1] += item.vat_amount

    numeric = sorted((k for k in groups if isinstance(rates[k], Decimal)), key=lambda k: rates[k], reverse=True)
    coded = sorted(k for k in groups if not isinstance(rates[k], Decimal))
    return [
        VatGroup(
            label=f"{key}%" if isinstance(rates[key], Decimal) else key,
            net=groups[key][0],
            vat=groups[key][1],
            total=groups[key][0] + groups[key][1],
        )
        for key in numeric + coded
    ]


def money(amount: Decimal) -> str:
    return f"{amount.quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"


def suggested_filename(document: InvoiceDocument) -> str:
    safe_number = "".join(c if c.isalnum() or c in "-_" else "-" for c in document.invoice_number)
    return f"invoice-{safe_number}.pdf"


def _party_lines(title: str, party: Party) -> list[str]:
    lines = [f"<b>{title}</b>", escape(party.name)]
    lines.extend(escape(line) for line in party.address.splitlines() if line.strip())
    if party.email:
        lines.append(escape(party.email))
    if party.vat_number:
        lines.append(f"VAT no: {escape(party.vat_number)}")
    if party.notes:
        lines.append(escape(party.notes))
    return lines


def render_invoice_pdf(document: InvoiceDocument) -> bytes:
    """Render an invoice to PDF bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=0.5 * inch,
        bottomMargin=0.5 * inch,
        title=f"Invoice {document.invoice_number}",
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle("InvoiceTitle", parent=styles["Heading1"], fontSize=22, textColor=TEXT_COLOR)
    muted_style = ParagraphStyle("Muted", parent=styles["Normal"], fontSize=9, textColor=MUTED_COLOR)
    body_style = ParagraphStyle("Body", parent=styles["Normal"], fontSize=10, textColor=TEXT_COLOR)
    currency = document.currency.upper()

    elements = []

    # Header
    elements.append(Paragraph("INVOICE", title_style))
    elements.append(Paragraph(f"No. {escape(document.invoice_number)}", muted_style))
    elements.append(Spacer(1, 16))

    dates = [["Date of issue", "Service date", "Payment due"]]
    dates.append(
        [
            format_date(document.issue_date),
            format_date(document.service_date) if document.service_date else "-",
            format_date(document.due_date),
        ]
    )
    date_table = Table(dates, colWidths=[2.2 * inch] * 3)
    date_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("TEXTCOLOR", (0, 0), (-1, 0), MUTED_COLOR),
                ("ALIGN", (0, 0), (-1, -1), "LEFT"),
            ]
        )
    )
    elements.append(date_table)
    elements.append(Spacer(1, 16))

    # Parties
    seller = Paragraph("<br/>".join(_party_lines("Seller", document.seller)), body_style)
    buyer = Paragraph("<br/>".join(_party_lines("Buyer", document.buyer)), body_style)
    parties = Table([[seller, buyer]], colWidths=[3.3 * inch, 3.3 * inch])
    parties.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    elements.append(parties)
    elements.append(Spacer(1, 20))

    # Items
    rows = [["#", "Item", "Qty", "Unit", "Net price", "VAT", "Net amount", "Gross amount"]]
    for number, item in enumerate(document.items, start=1):
        rows.append(
            [
                str(number),
                Paragraph(escape(item.name), body_style),
                f"{item.quantity.normalize():f}",
                item.unit,
                money(item.net_price),
                f"{_rate_key(item.vat_rate)}%" if isinstance(item.vat_rate, Decimal) else item.vat_rate,
                money(item.net_amount),
                money(item.gross_amount),
            ]
        )
    items_table = Table(
        rows,
        colWidths=[0.3 * inch, 2.1 * inch, 0.5 * inch, 0.5 * inch, 0.8 * inch, 0.5 * inch, 0.9 * inch, 0.9 * inch],
        repeatRows=1,
    )
    items_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (2, 0), (-1, -1), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("GRID", (0, 0), (-1, -1), 0.5, RULE_COLOR),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f8fafc")),
            ]
        )
    )
    elements.append(items_table)
    elements.append(Spacer(1, 16))

    # VAT summary
    summary = vat_summary(document.items)
    net_total = sum((group.net for group in summary), Decimal("0"))
    vat_total = sum((group.vat for group in summary), Decimal("0"))
    gross_total = net_total + vat_total
    vat_rows = [["VAT rate", "Net", "VAT", "Total"]]
    vat_rows.extend([group.label, money(group.net), money(group.vat), money(group.total)] for group in summary)
    vat_rows.append(["Total", money(net_total), money(vat_total), money(gross_total)])
    vat_table = Table(vat_rows, colWidths=[1.2 * inch] * 4, hAlign="RIGHT")
    vat_table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                ("GRID", (0, 0), (-1, -1), 0.5, RULE_COLOR),
            ]
        )
    )
    elements.append(vat_table)
    elements.append(Spacer(1, 16))

    # Payment
    totals = Table(
        [["To pay", f"{money(gross_total)} {currency}"]],
        colWidths=[4.4 * inch, 2.2 * inch],
    )
    totals.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, -1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 12),
                ("ALIGN", (1, 0), (1, 0), "RIGHT"),
                ("LINEABOVE", (0, 0), (-1, 0), 1, RULE_COLOR),
                ("TOPPADDING", (0, 0), (-1, 0), 8),
            ]
        )
    )
    elements.append(totals)
    if document.payment_method:
        elements.append(Spacer(1, 8))
        elements.append(Paragraph(f"<b>Payment method:</b> {escape(document.payment_method)}", body_style))

    if document.notes:
        elements.append(Spacer(1, 20))
        elements.append(Paragraph("<b>Notes</b>", muted_style))
        elements.append(Paragraph(escape(document.notes).replace("\n", "<br/>"), body_style))

    doc.build(elements)
    return buffer.getvalue()
