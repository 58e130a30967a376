"""Settings commands."""

from dataclasses import asdict

import click

from invoicetrack.cli.error_handling import handle_domain_error
from invoicetrack.domain.entities import ReminderPolicy, ReminderTone
from invoicetrack.domain.errors import DomainError
from invoicetrack.domain.settings import SettingsService

TONE_CHOICES = [t.value for t in ReminderTone]


def _merge(current: dict, **changes) -> dict:
    """Overlay the options that were given on the current values."""
    merged = dict(current)
    merged.update({key: value for key, value in changes.items() if value is not None})
    return merged


def _print_policy(policy: ReminderPolicy) -> None:
    click.echo("Reminder policy:")
    click.echo(f"  Automated reminders: {'on' if policy.is_automated_reminders else 'off'}")
    click.echo(f"  First reminder days: {policy.first_reminder_days}")
    click.echo(f"  Follow-up every:     {policy.follow_up_frequency} day(s)")
    click.echo(f"  Max reminders:       {policy.max_reminders}")
    click.echo(
        f"  Tones:               {policy.first_reminder_tone.value}, "
        f"{policy.second_reminder_tone.value}, {policy.third_reminder_tone.value}"
    )


@click.group()
def settings_group():
    """View and change your settings."""
    pass


@settings_group.command("show")
@click.pass_context
def show_settings(ctx):
    """Show all settings."""
    service = SettingsService(ctx.obj["db"])
    try:
        settings = service.get_settings(ctx.obj["auth"])
    except DomainError as e:
        handle_domain_error(ctx, e)

    _print_policy(settings.policy)
    click.echo("\nAccount:")
    click.echo(f"  Business name: {settings.business_name or '-'}")
    click.echo(f"  Phone number:  {settings.phone_number or '-'}")
    click.echo("\nEmail:")
    click.echo(f"  From name:    {settings.from_name or '-'}")
    click.echo(f"  Signature:    {settings.email_signature or '-'}")
    click.echo(f"  Default CC:   {settings.default_cc or '-'}")
    click.echo(f"  Default BCC:  {settings.default_bcc or '-'}")
    click.echo(f"  Copy to self: {'yes' if settings.send_copy_to_self else 'no'}")


@settings_group.command("policy")
@click.option("--automated/--manual", default=None, help="Turn automatic reminders on or off")
@click.option("--first-days", type=int, help="Days before the first reminder (-30 to 30)")
@click.option("--follow-up", type=int, help="Days between reminders (1 to 30)")
@click.option("--max", "max_reminders", type=int, help="Maximum automatic reminders per invoice (1 to 10)")
@click.option("--first-tone", type=click.Choice(TONE_CHOICES))
@click.option("--second-tone", type=click.Choice(TONE_CHOICES))
@click.option("--third-tone", type=click.Choice(TONE_CHOICES))
@click.pass_context
def policy(
    ctx,
    automated: bool | None,
    first_days: int | None,
    follow_up: int | None,
    max_reminders: int | None,
    first_tone: str | None,
    second_tone: str | None,
    third_tone: str | None,
):
    """Show or change the reminder policy.

    Examples:
        invoicetrack settings policy
        invoicetrack settings policy --follow-up 5 --max 4
        invoicetrack settings policy --manual
    """
    service = SettingsService(ctx.obj["db"])
    auth = ctx.obj["auth"]
    try:
        current = service.get_reminder_policy(auth)
        changes = dict(
            is_automated_reminders=automated,
            first_reminder_days=first_days,
            follow_up_frequency=follow_up,
            max_reminders=max_reminders,
            first_reminder_tone=first_tone,
            second_reminder_tone=second_tone,
            third_reminder_tone=third_tone,
        )
        if any(value is not None for value in changes.values()):
            values = asdict(current)
            values.pop("owner_id")
            current = service.update_reminder_policy(auth, _merge(values, **changes))
            click.echo("Reminder policy updated.")
    except DomainError as e:
        handle_domain_error(ctx, e)
    _print_policy(current)


@settings_group.command("account")
@click.option("--business-name", help="Business name shown in reminders")
@click.option("--phone", help="Phone number")
@click.pass_context
def account(ctx, business_name: str | None, phone: str | None):
    """Show or change account details."""
    service = SettingsService(ctx.obj["db"])
    auth = ctx.obj["auth"]
    try:
        current = service.get_account_settings(auth)
        if business_name is not None or phone is not None:
            current = service.update_account_settings(
                auth, _merge(asdict(current), business_name=business_name, phone_number=phone)
            )
            click.echo("Account settings updated.")
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Business name: {current.business_name or '-'}")
    click.echo(f"Phone number:  {current.phone_number or '-'}")


@settings_group.command("email")
@click.option("--from-name", help="Sender name on reminders")
@click.option("--signature", help="Signature appended to reminders")
@click.option("--cc", help="Address copied on every reminder (empty string to clear)")
@click.option("--bcc", help="Address blind-copied on every reminder (empty string to clear)")
@click.option("--copy-to-self/--no-copy-to-self", default=None, help="Blind-copy yourself on reminders")
@click.option("--preview/--no-preview", default=None, help="Preview emails before sending")
@click.pass_context
def email(
    ctx,
    from_name: str | None,
    signature: str | None,
    cc: str | None,
    bcc: str | None,
    copy_to_self: bool | None,
    preview: bool | None,
):
    """Show or change email settings."""
    service = SettingsService(ctx.obj["db"])
    auth = ctx.obj["auth"]
    try:
        current = service.get_email_settings(auth)
        changes = dict(
            from_name=from_name,
            email_signature=signature,
            default_cc=cc,
            default_bcc=bcc,
            send_copy_to_self=copy_to_self,
            preview_emails=preview,
        )
        if any(value is not None for value in changes.values()):
            values = asdict(current)
            if values["email_signature"] is None:
                values.pop("email_signature")
            current = service.update_email_settings(auth, _merge(values, **changes))
            click.echo("Email settings updated.")
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"From name:    {current.from_name or '-'}")
    click.echo(f"Signature:    {current.email_signature or '-'}")
    click.echo(f"Default CC:   {current.default_cc or '-'}")
    click.echo(f"Default BCC:  {current.default_bcc or '-'}")
    click.echo(f"Copy to self: {'yes' if current.send_copy_to_self else 'no'}")


def register_commands(cli):
    """Register settings commands with main CLI."""
    cli.add_command(settings_group, name="settings")
