"""Email template commands."""

import click

from invoicetrack.cli.error_handling import handle_domain_error
from invoicetrack.domain.entities import EmailTemplate, ReminderTone, TemplateCategory
from invoicetrack.domain.errors import DomainError
from invoicetrack.domain.rendering import (
    PLACEHOLDERS,
    RECOMMENDED_PLACEHOLDERS,
    extract_placeholders,
    validate_template,
)
from invoicetrack.domain.templates import TemplateService

TONE_CHOICES = [t.value for t in ReminderTone]
CATEGORY_CHOICES = [c.value for c in TemplateCategory]


def _print_template(template: EmailTemplate) -> None:
    flags = []
    if template.is_default:
        flags.append("default")
    if not template.is_active:
        flags.append("inactive")
    suffix = f" [{', '.join(flags)}]" if flags else ""
    click.echo(
        f"{template.id[:8]:<10} {template.tone.value:<10} {template.name[:30]:<31} "
        f"used {template.usage_count}x{suffix}"
    )


def _warn_missing_placeholders(template: EmailTemplate) -> None:
    valid, missing = validate_template(template.subject + "\n" + template.content, RECOMMENDED_PLACEHOLDERS)
    if not valid:
        click.echo(f"Warning: template does not mention {', '.join(missing)}")


def _read_content(content: str | None, content_file) -> str | None:
    if content_file is not None:
        return content_file.read()
    return content


@click.group()
def template_group():
    """Manage your reminder email templates."""
    pass


@template_group.command("list")
@click.option("--tone", type=click.Choice(TONE_CHOICES), help="Only templates of this tone")
@click.option("--stats", "with_stats", is_flag=True, help="Show counts by category and tone")
@click.pass_context
def list_templates(ctx, tone: str | None, with_stats: bool):
    """List your templates."""
    service = TemplateService(ctx.obj["db"])
    auth = ctx.obj["auth"]
    try:
        if with_stats:
            templates, stats = service.get_with_stats(auth)
            if tone:
                templates = [t for t in templates if t.tone.value == tone]
        else:
            stats = None
            templates = service.list_by_tone(auth, tone) if tone else service.list_templates(auth)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not templates:
        click.echo("No templates found.")
    for template in templates:
        _print_template(template)
    if stats is not None:
        click.echo(
            f"\nTotal: {stats.total_templates}, active: {stats.active_templates}, "
            f"default: {stats.default_templates}"
        )
        for tone_name, count in sorted(stats.by_tone.items()):
            click.echo(f"  {tone_name}: {count}")


@template_group.command("show")
@click.argument("template_id")
@click.pass_context
def show_template(ctx, template_id: str):
    """Show a template with the placeholders it uses."""
    service = TemplateService(ctx.obj["db"])
    try:
        template = service.get(ctx.obj["auth"], template_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    _print_template(template)
    click.echo(f"Subject: {template.subject}")
    click.echo("")
    click.echo(template.content)
    placeholders = extract_placeholders(template.subject + "\n" + template.content)
    if placeholders:
        click.echo(f"\nPlaceholders: {', '.join(placeholders)}")
    _warn_missing_placeholders(template)


@template_group.command("placeholders")
def list_placeholders():
    """List the placeholders templates can use."""
    for name, description in PLACEHOLDERS.items():
        click.echo(f"{name:<18} {description}")


@template_group.command("create")
@click.option("--name", required=True, help="Template name")
@click.option("--tone", type=click.Choice(TONE_CHOICES), required=True)
@click.option("--subject", required=True, help="Subject line (placeholders allowed)")
@click.option("--content", help="Body (placeholders allowed)")
@click.option("--content-file", type=click.File("r"), help="Read the body from a file")
@click.option("--category", type=click.Choice(CATEGORY_CHOICES), default="reminder", show_default=True)
@click.option("--description", help="What the template is for")
@click.option("--default", "is_default", is_flag=True, help="Use this template for its tone")
@click.pass_context
def create_template(
    ctx,
    name: str,
    tone: str,
    subject: str,
    content: str | None,
    content_file,
    category: str,
    description: str | None,
    is_default: bool,
):
    """Create a template.

    Examples:
        invoicetrack template create --name "Gentle nudge" --tone polite \\
            --subject "Invoice {invoice_number}" --content-file nudge.txt --default
    """
    service = TemplateService(ctx.obj["db"])
    try:
        template = service.create(
            ctx.obj["auth"],
            {
                "name": name,
                "tone": tone,
                "subject": subject,
                "content": _read_content(content, content_file) or "",
                "category": category,
                "description": description,
                "is_default": is_default,
            },
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created template '{template.name}' (ID: {template.id})")
    _warn_missing_placeholders(template)


@template_group.command("update")
@click.argument("template_id")
@click.option("--name", help="Template name")
@click.option("--tone", type=click.Choice(TONE_CHOICES))
@click.option("--subject", help="Subject line")
@click.option("--content", help="Body")
@click.option("--content-file", type=click.File("r"), help="Read the body from a file")
@click.option("--category", type=click.Choice(CATEGORY_CHOICES))
@click.option("--description", help="What the template is for")
@click.option("--default/--not-default", "is_default", default=None, help="Use this template for its tone")
@click.pass_context
def update_template(
    ctx,
    template_id: str,
    name: str | None,
    tone: str | None,
    subject: str | None,
    content: str | None,
    content_file,
    category: str | None,
    description: str | None,
    is_default: bool | None,
):
    """Update a template.

    Updates only the fields that are provided.
    """
    changes = {
        "name": name,
        "tone": tone,
        "subject": subject,
        "content": _read_content(content, content_file),
        "category": category,
        "description": description,
        "is_default": is_default,
    }
    service = TemplateService(ctx.obj["db"])
    try:
        template = service.update(
            ctx.obj["auth"], template_id, {key: value for key, value in changes.items() if value is not None}
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated template '{template.name}'")


@template_group.command("toggle")
@click.argument("template_id")
@click.pass_context
def toggle_template(ctx, template_id: str):
    """Activate or deactivate a template."""
    service = TemplateService(ctx.obj["db"])
    try:
        template = service.toggle_active(ctx.obj["auth"], template_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Template '{template.name}' is now {'active' if template.is_active else 'inactive'}")


@template_group.command("delete")
@click.argument("template_id")
@click.pass_context
def delete_template(ctx, template_id: str):
    """Delete a template."""
    service = TemplateService(ctx.obj["db"])
    try:
        service.delete(ctx.obj["auth"], template_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted template {template_id}")


@template_group.command("preview")
@click.argument("template_id")
@click.option("--html", "show_html", is_flag=True, help="Show the HTML body instead of plain text")
@click.pass_context
def preview_template(ctx, template_id: str, show_html: bool):
    """Render a template with sample invoice data."""
    service = TemplateService(ctx.obj["db"])
    try:
        rendered = service.preview(ctx.obj["auth"], template_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Subject: {rendered.subject}")
    click.echo("")
    click.echo(rendered.html if show_html else rendered.text)


def register_commands(cli):
    """Register template commands with main CLI."""
    cli.add_command(template_group, name="template")
