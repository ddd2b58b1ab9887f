"""Looker REST API implementation of OidcConfigClient."""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from oidc_admin.domain.errors import OidcApiError
from oidc_admin.domain.models.mapping_models import ConfigSnapshot, RemoteFieldError
from oidc_admin.domain.ports.oidc_config_client import OidcConfigClient

logger = logging.getLogger(__name__)

# Refresh the access token this many seconds before Looker expires it
TOKEN_EXPIRY_MARGIN = 60


class LookerOidcConfigClient(OidcConfigClient):
    """Looker API adapter for the OIDC configuration endpoints."""

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        api_version: str = "4.0",
        timeout: float = 30.0,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize client.

        Args:
            base_url: Looker instance URL (e.g. https://company.looker.com)
            client_id: API3 client id
            client_secret: API3 client secret
            api_version: Looker API version
            timeout: Request timeout in seconds
            verify_ssl: Verify TLS certificates
            transport: Optional httpx transport (used by tests)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self._http = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/api/{api_version}",
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
        )
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    async def fetch_config(self) -> ConfigSnapshot:
        """Get the full OIDC configuration."""
        response = await self._request("GET", "/oidc_config")
        return response.json()

    async def test_config(self, candidate: ConfigSnapshot) -> None:
        """Create an OIDC test configuration (validates without applying)."""
        await self._request("POST", "/oidc_test_configs", json=candidate)

    async def persist_config(self, partial: Dict[str, Any]) -> None:
        """Patch the live OIDC configuration."""
        await self._request("PATCH", "/oidc_config", json=partial)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def _login(self) -> str:
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        response = await self._http.post(
            "/login",
            data={"client_id": self.client_id, "client_secret": self.client_secret},
        )
        if response.status_code >= 400:
            raise self._api_error(response)

        body = response.json()
        self._access_token = body["access_token"]
        expires_in = int(body.get("expires_in", 3600))
        self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
        logger.info("✅ Authenticated with Looker API")
        return self._access_token

    async def _request(self, method: str, path: str, json: Optional[Any] = None) -> httpx.Response:
        token = await self._login()
        response = await self._http.request(
            method,
            path,
            json=json,
            headers={"Authorization": f"token {token}"},
        )
        if response.status_code >= 400:
            raise self._api_error(response)
        return response

    @staticmethod
    def _api_error(response: httpx.Response) -> OidcApiError:
        """Build an OidcApiError from a Looker error body."""
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = body.get("message") or f"Looker API returned HTTP {response.status_code}"
        errors = [
            RemoteFieldError(
                message=e.get("message") or "",
                field=e.get("field"),
                code=e.get("code"),
            )
            for e in body.get("errors") or []
            if isinstance(e, dict)
        ]
        return OidcApiError(message, status_code=response.status_code, errors=errors)
