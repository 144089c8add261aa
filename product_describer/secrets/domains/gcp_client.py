"""GCP Secret Manager client used to bootstrap the platform API key."""
import os
import logging
from typing import Any, Dict, Optional

from google.cloud import secretmanager

logger = logging.getLogger(__name__)


class GCPSecretClient:
    """Wrapper around GCP Secret Manager client.

    Only reads are needed: the platform key is provisioned out of band and
    fetched by name at session start.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self._config = config or {}
        self._client = None

    @property
    def client(self) -> secretmanager.SecretManagerServiceClient:
        """Lazy-initialize client, honouring a configured service account."""
        if self._client is None:
            auth = self._config.get("authentication") or {}
            service_account_path = auth.get("service_account_path")
            if service_account_path:
                self._client = secretmanager.SecretManagerServiceClient.from_service_account_file(
                    service_account_path
                )
                logger.info(f"Using service account from config: {service_account_path}")
            else:
                self._client = secretmanager.SecretManagerServiceClient()
        return self._client

    def get_project_id(self) -> Optional[str]:
        """
        Get GCP project ID.

        Priority order:
        1. GCP_PROJECT environment variable (allows override)
        2. gcp.project_id in config

        Returns:
            Project ID string, or None if not found
        """
        gcp_project_env = os.getenv("GCP_PROJECT")
        if gcp_project_env:
            logger.debug(f"Using GCP_PROJECT from environment: {gcp_project_env}")
            return gcp_project_env

        project_id = (self._config.get("gcp") or {}).get("project_id")
        if project_id:
            logger.debug(f"Using project_id from config: {project_id}")
            return project_id

        logger.error("Project ID not found. Set GCP_PROJECT or configure gcp.project_id")
        return None

    def fetch_secret(self, secret_name: str, project_id: str, quiet: bool = False) -> Optional[str]:
        """
        Fetch the latest version of a secret.

        Args:
            secret_name: Name of the secret
            project_id: GCP project ID
            quiet: If True, suppress warning logs

        Returns:
            Secret value or None if fetch fails
        """
        name = f"projects/{project_id}/secrets/{secret_name}/versions/latest"
        try:
            response = self.client.access_secret_version(request={"name": name})
        except Exception as e:
            # google-api-core raises a wide family of errors (auth, not found, transport)
            if not quiet:
                logger.warning(f"GCP fetch failed for {secret_name}: {e}")
            return None
        return response.payload.data.decode("UTF-8")
