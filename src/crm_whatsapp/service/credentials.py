"""
Credential resolution: the tenant's own integration first, then the
environment-level default.
"""

import logging

from crm_whatsapp.persistence.stores import CredentialSource
from crm_whatsapp.providers.base import Credentials, CredentialsNotFoundError

logger = logging.getLogger(__name__)


def resolve_credentials(
    source: CredentialSource | None,
    tenant_id: int,
    default: Credentials | None = None,
) -> Credentials:
    """
    Credentials for a tenant.

    Raises:
        CredentialsNotFoundError: If neither the tenant nor the environment has any
    """
    credentials = source.get_credentials(tenant_id) if source is not None else None
    if credentials is not None and credentials.is_complete:
        return credentials

    if default is not None and default.is_complete:
        logger.debug(f"Tenant {tenant_id} has no WhatsApp integration, using default credentials")
        return default

    raise CredentialsNotFoundError(f"WhatsApp credentials not configured for tenant {tenant_id}")
