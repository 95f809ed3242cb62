"""
WhatsApp CLI

Command-line interface for the CRM WhatsApp integration.

Commands:
- init-db: Create the CRM tables
- connect: Store a tenant's WhatsApp credentials
- verify: Check credentials against the Business API
- send-text: Send a text message to a lead
- send-template: Send a template message to a lead
- sync-templates: Pull templates from the provider
- ingest: Process a webhook payload from a JSON file
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from crm_whatsapp.logging import setup_logging
from crm_whatsapp.providers.base import WhatsAppError

app = typer.Typer(
    name="crm-whatsapp",
    help="CRM WhatsApp integration CLI",
)

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    setup_logging("DEBUG" if verbose else None)


def get_db():
    """Get database session."""
    from crm_whatsapp.db import get_db as _get_db
    return next(_get_db())


def get_repo(db):
    from crm_whatsapp.persistence.repo import CrmRepository
    from crm_whatsapp.settings import get_settings

    return CrmRepository(db, get_settings().WHATSAPP_ENCRYPTION_KEY)


def get_recorder(repo):
    from crm_whatsapp.service.activity_recorder import ActivityRecorder
    from crm_whatsapp.settings import get_settings

    return ActivityRecorder(
        repo,
        repo,
        repo,
        message_index=repo,
        system_user_id=get_settings().SYSTEM_USER_ID,
    )


@app.command()
def init_db():
    """
    Create the CRM tables if they do not exist.
    """
    from crm_whatsapp.db import init_db as _init_db

    _init_db()
    rprint("[green]Database initialized[/green]")


@app.command()
def connect(
    tenant_id: int = typer.Argument(..., help="Tenant ID"),
    access_token: str = typer.Option(..., help="System user access token (will be encrypted)"),
    phone_number_id: str = typer.Option(..., help="WhatsApp Business phone number ID"),
    business_account_id: Optional[str] = typer.Option(None, help="WhatsApp Business Account ID"),
    verify_token: Optional[str] = typer.Option(None, help="Webhook verify token"),
    created_by: int = typer.Option(1, help="User recorded as creator"),
):
    """
    Store a tenant's WhatsApp Business credentials.

    An existing integration for the tenant is replaced.
    """
    from crm_whatsapp.settings import get_settings

    if not get_settings().WHATSAPP_ENCRYPTION_KEY:
        rprint("[yellow]Warning: WHATSAPP_ENCRYPTION_KEY not set, storing token unencrypted[/yellow]")

    db = get_db()

    try:
        repo = get_repo(db)
        integration = repo.save_integration(
            tenant_id=tenant_id,
            access_token=access_token,
            phone_number_id=phone_number_id,
            created_by=created_by,
            business_account_id=business_account_id,
            verify_token=verify_token,
        )
        repo.commit()

        rprint("[green]WhatsApp integration saved:[/green]")
        rprint(f"  Tenant: {integration.tenant_id}")
        rprint(f"  Phone Number ID: {integration.phone_number_id}")
        if integration.business_account_id:
            rprint(f"  WABA ID: {integration.business_account_id}")

    finally:
        db.close()


@app.command()
def verify(
    tenant_id: Optional[int] = typer.Option(None, help="Tenant ID (environment credentials if omitted)"),
):
    """
    Verify WhatsApp credentials by fetching the business profile.
    """
    from crm_whatsapp.providers import get_provider
    from crm_whatsapp.service.connection_verifier import ConnectionVerifier
    from crm_whatsapp.settings import get_settings

    settings = get_settings()
    credentials = settings.default_credentials()

    if tenant_id is not None:
        db = get_db()
        try:
            credentials = get_repo(db).get_credentials(tenant_id) or credentials
        finally:
            db.close()

    async def run():
        provider = get_provider()
        try:
            return await ConnectionVerifier(provider).verify(credentials)
        finally:
            await provider.close()

    result = asyncio.run(run())

    if result.connected:
        rprint(f"[green]{result.message}[/green]")
    else:
        rprint(f"[red]Connection failed: {result.message}[/red]")
        raise typer.Exit(1)


def _outbound_handler(db, provider):
    from crm_whatsapp.service.outbound_dispatcher import OutboundDispatcher
    from crm_whatsapp.service.outbound_handler import OutboundHandler
    from crm_whatsapp.settings import get_settings

    repo = get_repo(db)
    return OutboundHandler(
        dispatcher=OutboundDispatcher(provider),
        recorder=get_recorder(repo),
        lead_store=repo,
        template_store=repo,
        credential_source=repo,
        default_credentials=get_settings().default_credentials(),
        unit_of_work=repo,
    )


@app.command()
def send_text(
    lead_id: int = typer.Argument(..., help="Lead ID"),
    text: str = typer.Argument(..., help="Message text"),
    tenant_id: int = typer.Option(..., help="Tenant ID"),
    user_id: int = typer.Option(1, help="Sending user ID"),
):
    """
    Send a text message to a lead and log it as an activity.
    """
    from crm_whatsapp.providers import get_provider

    db = get_db()

    async def send():
        provider = get_provider()
        try:
            handler = _outbound_handler(db, provider)
            return await handler.send_text_to_lead(tenant_id, lead_id, user_id, text)
        finally:
            await provider.close()

    try:
        result = asyncio.run(send())
    except WhatsAppError as e:
        rprint(f"[red]Failed to send message: {e}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()

    rprint("[green]Message sent successfully![/green]")
    rprint(f"  Message ID: {result['message_id']}")
    rprint(f"  Activity ID: {result['activity_id']}")


@app.command()
def send_template(
    lead_id: int = typer.Argument(..., help="Lead ID"),
    template_name: str = typer.Argument(..., help="Approved template name"),
    tenant_id: int = typer.Option(..., help="Tenant ID"),
    user_id: int = typer.Option(1, help="Sending user ID"),
    header: Optional[str] = typer.Option(None, help="Header text parameter"),
    body: list[str] = typer.Option([], "--body", help="Body parameter (repeat for each)"),
    button: list[str] = typer.Option([], "--button", help="Quick-reply payload (repeat for each)"),
):
    """
    Send a template message to a lead and log it as an activity.
    """
    from crm_whatsapp.contracts.payloads import TemplateParameters
    from crm_whatsapp.providers import get_provider

    parameters = TemplateParameters(header=header, body=list(body), buttons=list(button))
    db = get_db()

    async def send():
        provider = get_provider()
        try:
            handler = _outbound_handler(db, provider)
            return await handler.send_template_to_lead(
                tenant_id, lead_id, user_id, template_name, parameters
            )
        finally:
            await provider.close()

    try:
        result = asyncio.run(send())
    except WhatsAppError as e:
        rprint(f"[red]Failed to send template: {e}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()

    rprint("[green]Template sent successfully![/green]")
    rprint(f"  Message ID: {result['message_id']}")
    rprint(f"  Activity ID: {result['activity_id']}")


@app.command()
def sync_templates(
    tenant_id: int = typer.Argument(..., help="Tenant ID"),
    actor_id: int = typer.Option(1, help="User recorded as creator of new templates"),
):
    """
    Pull message templates from the provider into the CRM.
    """
    from crm_whatsapp.providers import get_provider
    from crm_whatsapp.service.template_sync import TemplateSynchronizer
    from crm_whatsapp.settings import get_settings

    db = get_db()

    async def sync():
        provider = get_provider()
        try:
            repo = get_repo(db)
            synchronizer = TemplateSynchronizer(
                provider,
                repo,
                credential_source=repo,
                default_credentials=get_settings().default_credentials(),
                unit_of_work=repo,
            )
            return await synchronizer.sync_with_report(tenant_id, actor_id)
        finally:
            await provider.close()

    try:
        report = asyncio.run(sync())

        table = Table(title=f"Templates for tenant {tenant_id}")
        table.add_column("Name")
        table.add_column("Language")
        table.add_column("Active")
        table.add_column("Result")

        for template in report.created:
            table.add_row(template.name, template.language or "-", "Yes" if template.active else "No", "created")
        for template in report.updated:
            table.add_row(template.name, template.language or "-", "Yes" if template.active else "No", "updated")
        for name in report.failed:
            table.add_row(name, "-", "-", "[red]failed[/red]")

        console.print(table)

    except WhatsAppError as e:
        rprint(f"[red]Template sync failed: {e}[/red]")
        raise typer.Exit(1)

    finally:
        db.close()

    rprint(
        f"[green]Synced {len(report.saved)} templates[/green] "
        f"({len(report.created)} created, {len(report.updated)} updated, {len(report.failed)} failed)"
    )


@app.command()
def ingest(
    payload_file: Path = typer.Argument(..., help="JSON file with a webhook payload"),
    tenant_id: int = typer.Option(..., help="Tenant ID the webhook belongs to"),
    signature: Optional[str] = typer.Option(
        None, help="X-Hub-Signature-256 header to check against WHATSAPP_APP_SECRET"
    ),
):
    """
    Process a webhook payload as if it had been delivered to the webhook endpoint.
    """
    from crm_whatsapp.providers.meta_cloud.webhook import check_request_signature
    from crm_whatsapp.routing.lead_resolver import LeadResolver
    from crm_whatsapp.service.inbound_handler import InboundHandler, StatusHandler
    from crm_whatsapp.service.webhook_ingestor import WebhookIngestor

    try:
        body = payload_file.read_bytes()
        payload = json.loads(body)
    except (OSError, ValueError) as e:
        rprint(f"[red]Could not read payload: {e}[/red]")
        raise typer.Exit(1)

    if signature is not None and not check_request_signature(body, signature):
        rprint("[red]Webhook signature does not match WHATSAPP_APP_SECRET[/red]")
        raise typer.Exit(1)

    db = get_db()

    try:
        repo = get_repo(db)
        ingestor = WebhookIngestor(
            InboundHandler(
                LeadResolver(repo),
                get_recorder(repo),
                message_index=repo,
                unit_of_work=repo,
            ),
            StatusHandler(message_index=repo, unit_of_work=repo),
        )
        result = ingestor.ingest(payload, tenant_id)

    finally:
        db.close()

    rprint("[cyan]Webhook processed:[/cyan]")
    rprint(f"  Messages processed: {result.messages_processed}")
    rprint(f"  Messages skipped: {result.messages_skipped}")
    rprint(f"  Messages failed: {result.messages_failed}")
    rprint(f"  Leads created: {result.leads_created}")
    rprint(f"  Statuses updated: {result.statuses_updated}")

    if result.messages_failed:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
