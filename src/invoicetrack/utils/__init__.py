"""Utility functions for invoicetrack."""

from invoicetrack.utils.date_parser import parse_date, resolve_due_date, format_date, days_between
from invoicetrack.utils.amount_parser import parse_amount, format_amount

__all__ = ["parse_date", "resolve_due_date", "format_date", "days_between", "parse_amount", "format_amount"]
