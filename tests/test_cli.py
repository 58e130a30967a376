"""Tests for the command line interface."""

import json

import pytest

from invoicetrack.cli.main import cli


@pytest.fixture
def invoke(cli_runner, temp_db):
    """Invoke the CLI as user-1 against the temporary database."""

    def run(*args, user="user-1", obj=None, input=None):
        base = ["--db-path", temp_db.database_path]
        if user is not None:
            base += ["--user", user]
        return cli_runner.invoke(cli, base + list(args), obj=obj, input=input)

    return run


def create_args(number="INV-001", **overrides):
    options = {
        "--client-name": "Acme Corp",
        "--client-email": "billing@acme.example.com",
        "--number": number,
        "--amount": "$1,250.00",
        "--issue-date": "2024-01-01",
        "--due-date": "net 30",
    }
    options.update(overrides)
    args = ["invoice", "create"]
    for key, value in options.items():
        args += [key, value]
    return args


def test_help_does_not_need_database(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "invoice" in result.output
    assert "reminder" in result.output


def test_create_and_list_invoice(invoke):
    result = invoke(*create_args())

    assert result.exit_code == 0
    assert "Created invoice INV-001" in result.output

    result = invoke("invoice", "list")
    assert result.exit_code == 0
    assert "Found 1 invoice(s)" in result.output
    assert "INV-001" in result.output


def test_create_resolves_payment_terms(invoke, temp_db):
    invoke(*create_args())

    invoice_id = temp_db.list_invoices("user-1")[0].id
    shown = invoke("invoice", "show", invoice_id)

    assert shown.exit_code == 0
    assert "Due: Jan 31, 2024" in shown.output
    assert "Amount: $1,250.00" in shown.output


def test_commands_require_user(invoke):
    result = invoke("invoice", "list", user=None)

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_invalid_amount(invoke):
    result = invoke(*create_args(**{"--amount": "lots"}))

    assert result.exit_code == 1
    assert "Invalid amount format" in result.output


def test_validation_errors_name_fields(invoke):
    result = invoke(*create_args(**{"--client-email": "nope"}))

    assert result.exit_code == 1
    assert "client_email" in result.output


def test_duplicate_number_is_reported(invoke):
    invoke(*create_args())

    result = invoke(*create_args())

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_mark_paid_and_dashboard(invoke, temp_db):
    invoke(*create_args())
    invoice_id = temp_db.list_invoices("user-1")[0].id

    result = invoke("invoice", "paid", invoice_id)
    assert result.exit_code == 0
    assert "Marked invoice INV-001 as paid" in result.output

    result = invoke("invoice", "dashboard", "--year", "2024")
    assert result.exit_code == 0
    assert "Paid:        1" in result.output


def test_delete_requires_confirmation(invoke, temp_db):
    invoke(*create_args())
    invoice_id = temp_db.list_invoices("user-1")[0].id

    result = invoke("invoice", "delete", invoice_id, input="n\n")
    assert "Deletion cancelled." in result.output

    result = invoke("invoice", "delete", invoice_id, "--yes")
    assert result.exit_code == 0
    assert "Deleted 1 invoice(s)" in result.output


def test_check_number(invoke):
    invoke(*create_args())

    assert "is in use" in invoke("invoice", "check-number", "INV-001").output
    assert "is available" in invoke("invoice", "check-number", "INV-002").output


def test_send_reminder_through_injected_transport(invoke, temp_db, transport):
    invoke(*create_args())
    invoice_id = temp_db.list_invoices("user-1")[0].id
    invoke("connection", "connect", "owner@example.com", "--credential", "app-password")

    result = invoke(
        "reminder",
        "send",
        invoice_id,
        "--subject",
        "Invoice INV-001",
        "--content",
        "Please pay.",
        "--tone",
        "firm",
        obj={"transport": transport},
    )

    assert result.exit_code == 0
    assert "Sent reminder #1 (firm)" in result.output
    assert len(transport.sent) == 1
    message, connection = transport.sent[0]
    assert message.to == "billing@acme.example.com"
    assert connection.credential == "app-password"

    history = invoke("reminder", "history", invoice_id)
    assert "Invoice INV-001" in history.output


def test_send_reminder_without_connection(invoke, temp_db, transport):
    invoke(*create_args())
    invoice_id = temp_db.list_invoices("user-1")[0].id

    result = invoke(
        "reminder", "send", invoice_id, "--subject", "Hi", "--content", "Pay", obj={"transport": transport}
    )

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_reminder_preview(invoke, temp_db, transport):
    invoke(*create_args())
    invoice_id = temp_db.list_invoices("user-1")[0].id

    result = invoke("reminder", "preview", invoice_id, "--tone", "urgent", obj={"transport": transport})

    assert result.exit_code == 0
    assert "Subject: URGENT: Invoice #INV-001 requires immediate attention" in result.output


def test_run_all_users(invoke, temp_db, transport):
    invoke(*create_args())
    invoke("connection", "connect", "owner@example.com", "--credential", "app-password")
    invoke("settings", "show")

    result = invoke("reminder", "run", "--all-users", obj={"transport": transport})

    assert result.exit_code == 0
    assert "sent: 1" in result.output
    assert len(transport.sent) == 1


def test_settings_policy(invoke):
    result = invoke("settings", "policy", "--follow-up", "5", "--max", "4")

    assert result.exit_code == 0
    assert "Reminder policy updated." in result.output
    assert "Follow-up every:     5 day(s)" in result.output

    result = invoke("settings", "policy", "--max", "11")
    assert result.exit_code == 1
    assert "max_reminders" in result.output


def test_template_lifecycle(invoke):
    result = invoke(
        "template",
        "create",
        "--name",
        "Last call",
        "--tone",
        "urgent",
        "--subject",
        "Invoice {invoice_number}",
        "--content",
        "Dear {client_name}",
    )
    assert result.exit_code == 0
    assert "Created template 'Last call'" in result.output
    assert "Warning: template does not mention {invoice_amount}" in result.output

    result = invoke("template", "list")
    assert "Last call" in result.output

    result = invoke("template", "placeholders")
    assert "{client_name}" in result.output


def test_connection_status(invoke):
    assert "No email account connected." in invoke("connection", "status").output

    invoke("connection", "connect", "owner@example.com", "--name", "Jane", "--credential", "secret")

    result = invoke("connection", "status")
    assert "Connected:" in result.output
    assert "owner@example.com" in result.output


def test_feedback_and_waitlist(invoke):
    result = invoke("feedback", "send", "Reminders saved my month", "--stars", "5")
    assert result.exit_code == 0
    assert "Thanks for your feedback!" in result.output

    assert invoke("waitlist", "join", "early@example.com", user=None).exit_code == 0
    duplicate = invoke("waitlist", "join", "EARLY@example.com", user=None)
    assert duplicate.exit_code == 1
    assert "already on the waitlist" in duplicate.output
    assert invoke("waitlist", "count", user=None).output.strip() == "1"


def test_pdf_generate(invoke, tmp_path):
    document = {
        "invoice_number": "FV/1",
        "issue_date": "2024-01-05",
        "due_date": "2024-01-19",
        "seller": {"name": "Studio Nine"},
        "buyer": {"name": "Acme Corp"},
        "items": [{"name": "Design", "quantity": 2, "net_price": "100", "vat_rate": 23}],
    }
    source = tmp_path / "invoice.json"
    source.write_text(json.dumps(document))
    output = tmp_path / "out.pdf"

    result = invoke("pdf", "generate", str(source), "-o", str(output))

    assert result.exit_code == 0
    assert f"Wrote {output}" in result.output
    assert output.read_bytes().startswith(b"%PDF")


def test_pdf_generate_reports_invalid_document(invoke, tmp_path):
    source = tmp_path / "invoice.json"
    source.write_text(json.dumps({"invoice_number": "FV/1", "items": []}))

    result = invoke("pdf", "generate", str(source))

    assert result.exit_code == 1
    assert "Invalid invoice document" in result.output
    assert "seller" in result.output


def test_saved_invoice_commands(invoke, tmp_path):
    document = {
        "invoice_number": "FV/2",
        "issue_date": "2024-01-05",
        "due_date": "2024-01-19",
        "currency": "EUR",
        "seller": {"name": "Studio Nine"},
        "buyer": {"name": "Acme Corp"},
        "items": [{"name": "Design", "quantity": 2, "net_price": "100", "vat_rate": 23}],
    }
    source = tmp_path / "invoice.json"
    source.write_text(json.dumps(document))

    result = invoke("pdf", "generate", str(source), "-o", str(tmp_path / "first.pdf"), "--save")
    assert result.exit_code == 0
    assert "Saved invoice FV/2" in result.output
    invoice_id = result.output.split("(ID: ")[1].split(")")[0]

    result = invoke("pdf", "list")
    assert invoice_id in result.output
    assert "246.00 EUR" in result.output

    result = invoke("pdf", "show", invoice_id)
    assert "Buyer: Acme Corp" in result.output
    assert "Shared: no" in result.output

    result = invoke("pdf", "share", invoice_id)
    assert result.exit_code == 0
    token = result.output.split("Token: ")[1].strip()

    shared = tmp_path / "shared.pdf"
    result = invoke("pdf", "public", token, "-o", str(shared), user=None)
    assert result.exit_code == 0
    assert shared.read_bytes().startswith(b"%PDF")

    result = invoke("pdf", "delete", invoice_id)
    assert result.exit_code == 0
    assert "No saved invoices." in invoke("pdf", "list").output

    result = invoke("pdf", "render", invoice_id, "-o", str(tmp_path / "gone.pdf"))
    assert result.exit_code == 1
    assert "not found" in result.output


def test_saved_invoices_need_a_user(invoke):
    result = invoke("pdf", "list", user=None)

    assert result.exit_code == 1
    assert "Error:" in result.output
