"""
Client for the server-side access token verification route.

The route itself belongs to the host application; this client only forwards
the identity provider's bearer token and hands back whatever the route
answers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .base import IdentityProvider, ProviderResponseError, ProviderTransportError
from ..config import settings

logger = logging.getLogger(__name__)


class TokenVerifier:
    name = "verify"

    def __init__(
        self,
        identity_provider: IdentityProvider,
        verify_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._identity = identity_provider
        self._verify_url = verify_url or settings.verify_url
        self._transport = transport

    async def verify(self) -> Any:
        """GET the verify route with ``Authorization: Bearer <token>`` when a token exists."""
        access_token = await self._identity.get_access_token()
        headers: Dict[str, str] = {}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            async with httpx.AsyncClient(
                timeout=settings.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(self._verify_url, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Token verification request failed: {e}")
            raise ProviderTransportError(f"Token verification request failed: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(
                "Token verification returned a non-JSON body",
                status_code=response.status_code,
            ) from e
