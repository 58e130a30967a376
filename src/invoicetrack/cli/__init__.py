"""Command line interface for invoicetrack."""
