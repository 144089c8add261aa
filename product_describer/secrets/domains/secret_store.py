"""Client for the platform's scope-partitioned secret store."""
import logging
from typing import Any, Dict, List, Optional

from ...errors import RemoteError
from ...platform_client import PlatformAPIClient
from .models import Scope, Secret

logger = logging.getLogger(__name__)

SECRETS_PATH = "/v1/apps/secrets"


class SecretStoreClient:
    """CRUD over secrets keyed by ``(scope, name)``.

    Every method is a single round trip (``list`` makes one per page). Errors
    propagate as ``NotFound`` or ``RemoteError``; nothing is retried or cached.
    """

    def __init__(self, api: PlatformAPIClient):
        self._api = api

    async def create(
        self,
        scope: Scope,
        name: str,
        payload: str,
        expires_at: Optional[int] = None,
    ) -> Secret:
        """
        Create or replace the secret ``(scope, name)``.

        Args:
            scope: Partition the secret belongs to
            name: Secret name, unique within the scope
            payload: Opaque credential material (not validated locally)
            expires_at: Optional Unix timestamp after which the store drops the secret

        Returns:
            The stored Secret (without payload)

        Raises:
            RemoteError: If the store rejects the request or is unreachable
        """
        data: Dict[str, Any] = {"name": name, "payload": payload, **scope.to_params()}
        if expires_at is not None:
            data["expires_at"] = str(expires_at)

        response = await self._api.post(SECRETS_PATH, data=data)
        logger.info(f"Secret '{name}' stored for scope {scope.type}")
        return _to_secret(response, scope, SECRETS_PATH)

    async def find(self, scope: Scope, name: str) -> Secret:
        """
        Find the secret ``(scope, name)`` with its payload expanded.

        Raises:
            NotFound: If the store has no such secret
            RemoteError: On transport or auth failure
        """
        params = {"name": name, "expand[]": "payload", **scope.to_params()}
        response = await self._api.get(f"{SECRETS_PATH}/find", params=params)
        return _to_secret(response, scope, f"{SECRETS_PATH}/find")

    async def delete_where(self, scope: Scope, name: str) -> Secret:
        """
        Delete the secret ``(scope, name)``.

        Raises:
            NotFound: If nothing matched
            RemoteError: On transport or auth failure
        """
        data = {"name": name, **scope.to_params()}
        response = await self._api.post(f"{SECRETS_PATH}/delete", data=data)
        logger.info(f"Secret '{name}' deleted for scope {scope.type}")
        return _to_secret(response, scope, f"{SECRETS_PATH}/delete")

    async def list(
        self,
        scope: Scope,
        include_payload: bool = False,
        limit: int = 100,
    ) -> List[Secret]:
        """List every secret in ``scope``, following pagination in store order."""
        secrets: List[Secret] = []
        starting_after: Optional[str] = None

        while True:
            params: Dict[str, Any] = {"limit": str(limit), **scope.to_params()}
            if include_payload:
                params["expand[]"] = "data.payload"
            if starting_after:
                params["starting_after"] = starting_after

            response = await self._api.get(SECRETS_PATH, params=params)
            items = response.get("data") or []
            if not isinstance(items, list):
                raise RemoteError(f"Malformed secret list from {SECRETS_PATH}: data is not a list")
            page = [_to_secret(item, scope, SECRETS_PATH) for item in items]
            secrets.extend(page)

            if not response.get("has_more") or not page or not page[-1].id:
                break
            starting_after = page[-1].id

        logger.debug(f"Listed {len(secrets)} secret(s) for scope {scope.type}")
        return secrets


def _to_secret(data: Any, scope: Scope, path: str) -> Secret:
    """Build a Secret from a store response, raising RemoteError if it is malformed."""
    if not isinstance(data, dict):
        raise RemoteError(f"Malformed secret response from {path}: expected an object")
    try:
        return Secret.from_api(data, scope)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Malformed secret response from {path}: {e!r}")
        raise RemoteError(f"Malformed secret response from {path}: {e!r}") from e
