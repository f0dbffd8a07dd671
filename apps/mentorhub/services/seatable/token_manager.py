from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from pydantic import SecretStr, ValidationError

from mentorhub.connectors.seatable_connector import SeaTableConnector
from mentorhub.core.exceptions import ConfigurationError, MalformedResponseError
from mentorhub.core.utils import utcnow
from mentorhub.schemas.seatable import AccessCredential, AccessTokenResponse
from mentorhub.services.seatable.credential_cache import CredentialCache

logger = logging.getLogger(__name__)


class TokenManager:
    """Keeps a non-expired base access token available.

    Concurrent callers that find the token missing or expired share a single
    in-flight exchange.
    """

    def __init__(
        self,
        *,
        api_key: SecretStr | str | None,
        connector: SeaTableConnector,
        cache: CredentialCache,
        token_ttl: timedelta = timedelta(days=3),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._api_key = api_key.get_secret_value() if isinstance(api_key, SecretStr) else api_key
        self._connector = connector
        self._cache = cache
        self._token_ttl = token_ttl
        self._clock = clock
        self._inflight: asyncio.Task[AccessCredential] | None = None

    @property
    def credential(self) -> AccessCredential | None:
        return self._cache.credential

    async def ensure_valid_credential(self) -> AccessCredential:
        credential = self._cache.credential
        if credential is not None and credential.is_valid(self._clock()):
            return credential

        if self._inflight is None:
            logger.info("SeaTable token missing or expired, refreshing")
            self._inflight = asyncio.ensure_future(self._acquire_once())
        return await asyncio.shield(self._inflight)

    async def _acquire_once(self) -> AccessCredential:
        try:
            return await self.acquire()
        finally:
            self._inflight = None

    async def acquire(self) -> AccessCredential:
        """Exchange the API token for a fresh base token and cache it.

        Any failure clears the whole cache before the error propagates.
        """
        if not self._api_key:
            await self._cache.adiscard()
            raise ConfigurationError("SEATABLE_API_KEY is not configured")

        try:
            body = await self._connector.exchange_token(self._api_key)
            try:
                parsed = AccessTokenResponse.model_validate(body)
            except ValidationError as exc:
                raise MalformedResponseError(
                    "Missing required fields in token response",
                    details={"fields": sorted(str(e["loc"][0]) for e in exc.errors())},
                ) from exc
        except Exception:
            await self._cache.adiscard()
            raise

        acquired_at = self._clock()
        credential = AccessCredential(
            token=parsed.access_token,
            base_id=parsed.dtable_uuid,
            server_url=parsed.dtable_server,
            expiry=acquired_at + self._token_ttl,
        )
        await self._cache.save(credential)
        logger.info(
            "SeaTable token stored for base %s (server %s), expires %s",
            credential.base_id,
            credential.server_url,
            credential.expiry.isoformat(),
        )
        return credential

    async def probe(self) -> bool:
        """Check that the API token is accepted without touching the cache."""
        if not self._api_key:
            return False
        try:
            await self._connector.exchange_token(self._api_key)
        except Exception as exc:
            logger.warning("SeaTable API token test failed: %s", exc)
            return False
        return True


__all__ = ["TokenManager"]
