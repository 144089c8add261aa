"""Workflows over secrets: platform key bootstrap and user credential lifecycle."""
import os
import logging
from typing import Any, Dict, List, Optional

from ..domains.gcp_client import GCPSecretClient
from ..domains.models import CREDENTIAL_NAME, Scope, Secret
from ..domains.secret_store import SecretStoreClient

logger = logging.getLogger(__name__)


def get_secret(
    secret_name: str,
    project_id: Optional[str] = None,
    quiet: bool = False,
    config: Optional[Dict[str, Any]] = None,
    gcp_client: Optional[GCPSecretClient] = None,
) -> Optional[str]:
    """
    Resolve a bootstrap secret by name.

    Args:
        secret_name: Name of the secret (also the environment variable name)
        project_id: GCP project ID (auto-detected if not provided)
        quiet: If True, suppress fallback warnings
        config: Loaded configuration, used for GCP project and credentials
        gcp_client: Client override, mainly for tests

    Returns:
        Secret value as string, or None if not found

    Behavior:
        - Checks the environment variable first (fast path for development)
        - Falls back to GCP Secret Manager (production path)
        - Nothing is cached; every call resolves afresh
    """
    env_value = os.getenv(secret_name)
    if env_value:
        if not quiet:
            logger.info(f"Using '{secret_name}' from environment")
        return env_value

    client = gcp_client or GCPSecretClient(config)
    if not project_id:
        project_id = client.get_project_id()
    if not project_id:
        return None

    secret_value = client.fetch_secret(secret_name, project_id, quiet=quiet)
    if secret_value and not quiet:
        logger.info(f"Using '{secret_name}' from GCP project {project_id}")
    return secret_value


async def store_credential(
    store: SecretStoreClient,
    user_id: str,
    payload: str,
    expires_at: Optional[int] = None,
) -> Secret:
    """Store the generation credential for ``user_id``, replacing any previous one."""
    return await store.create(Scope.for_user(user_id), CREDENTIAL_NAME, payload, expires_at)


async def find_credential(store: SecretStoreClient, user_id: str) -> Secret:
    """Raises NotFound when the user has no stored credential."""
    return await store.find(Scope.for_user(user_id), CREDENTIAL_NAME)


async def delete_credential(store: SecretStoreClient, user_id: str) -> Secret:
    return await store.delete_where(Scope.for_user(user_id), CREDENTIAL_NAME)


async def list_user_secrets(
    store: SecretStoreClient, user_id: str, include_payload: bool = False
) -> List[Secret]:
    """Secrets visible to ``user_id``. Payloads are only expanded when asked for."""
    return await store.list(Scope.for_user(user_id), include_payload=include_payload)
