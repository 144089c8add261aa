"""HTTP client for the platform REST API (secret store and product records).

Handles HTTP concerns only: form encoding, Bearer auth, timeouts and
translation of error responses into NotFound / RemoteError.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from .errors import NotFound, RemoteError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.stripe.com"
DEFAULT_TIMEOUT = 10.0


class PlatformAPIClient:
    """Thin async wrapper that issues one request per call.

    A new ``httpx.AsyncClient`` is opened per request unless one is injected,
    so instances hold no connection state between calls.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client

    @property
    def base_url(self) -> str:
        return self._base_url

    def _build_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await self._request("POST", path, data=data)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, params=params, data=data,
                    headers=self._build_headers(), timeout=self._timeout,
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(
                        method, url, params=params, data=data,
                        headers=self._build_headers(),
                    )
        except httpx.TimeoutException as e:
            logger.warning(f"Platform API request timed out: {method} {path}: {e}")
            raise RemoteError(f"Request to {path} timed out") from e
        except httpx.RequestError as e:
            logger.warning(f"Platform API connection error: {method} {path}: {e}")
            raise RemoteError(f"Failed to connect to platform API: {e}") from e

        return self._handle_response(response, path)

    def _handle_response(self, response: httpx.Response, path: str) -> Dict[str, Any]:
        if response.is_success:
            try:
                body = response.json()
            except ValueError as e:
                raise RemoteError(
                    f"Invalid JSON from {path}: {e}", status=response.status_code
                ) from e
            if not isinstance(body, dict):
                logger.warning(f"Platform API returned {type(body).__name__} for {path}")
                raise RemoteError(
                    f"Unexpected response from {path}: expected a JSON object",
                    status=response.status_code,
                )
            return body

        message = _error_message(response)
        if response.status_code == 404:
            logger.debug(f"Platform API reported not found for {path}: {message}")
            raise NotFound(message)

        logger.warning(f"Platform API error {response.status_code} for {path}: {message}")
        raise RemoteError(message, status=response.status_code)


def _error_message(response: httpx.Response) -> str:
    """Extract ``error.message`` from an API error body, else the status text."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        message = body["error"].get("message")
        if message:
            return message
    return f"{response.status_code} {response.reason_phrase}".strip()
