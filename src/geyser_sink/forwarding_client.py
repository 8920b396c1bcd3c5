#!/usr/bin/env python3
"""Forwarding of account records to the remote PostgREST store.

This module wraps a single long-lived httpx client that is shared by every
update the validator delivers, possibly from many threads at once.
"""

import json
import logging
from types import TracebackType

import httpx

from .config import SinkConfig
from .models import AccountRecord

logger = logging.getLogger(__name__)


class ForwardError(Exception):
    """Base class for failures to forward a record."""


class ForwardTransportError(ForwardError):
    """The request could not be delivered (connection error or timeout)."""


class ForwardRemoteError(ForwardError):
    """The remote store answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Remote store returned HTTP {status_code}: {body}")


class ForwardSerializeError(ForwardError):
    """The record could not be encoded as JSON."""


class ForwardingClient:
    """Upserts account records into the remote ``accounts`` table.

    The underlying ``httpx.Client`` keeps a bounded connection pool and is
    safe to call concurrently from multiple threads.
    """

    TABLE: str = "accounts"
    CONFLICT_KEY: str = "account"
    MAX_ERROR_BODY: int = 200

    def __init__(
        self,
        config: SinkConfig,
        transport: httpx.BaseTransport | None = None
    ) -> None:
        """Initialize the forwarding client.

        Args:
            config: Loaded sink configuration
            transport: Optional transport override (used in tests)
        """
        self.endpoint: str = config.endpoint.rstrip("/")
        self._client: httpx.Client = httpx.Client(
            base_url=self.endpoint,
            headers={
                "apikey": config.credential,
                "Authorization": f"Bearer {config.credential}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.request_timeout),
            limits=httpx.Limits(
                max_connections=config.max_connections,
                max_keepalive_connections=config.max_connections
            ),
            transport=transport
        )
        logger.debug(f"ForwardingClient initialized for {self.endpoint}/{self.TABLE}")

    def upsert(self, record: AccountRecord) -> None:
        """Insert or replace a single account row keyed by ``account``.

        Blocks until the remote store answers or the request times out.

        Args:
            record: The account record to persist

        Raises:
            ForwardSerializeError: If the record cannot be encoded
            ForwardTransportError: On connection failure or timeout
            ForwardRemoteError: If the remote store rejects the request
        """
        try:
            body: str = json.dumps([record.to_dict()])
        except (TypeError, ValueError) as e:
            raise ForwardSerializeError(f"Cannot encode record for {record.account}: {e}") from e

        try:
            response: httpx.Response = self._client.post(
                f"/{self.TABLE}",
                params={"on_conflict": self.CONFLICT_KEY},
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
                content=body
            )
        except httpx.TransportError as e:
            raise ForwardTransportError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise ForwardRemoteError(response.status_code, response.text[:self.MAX_ERROR_BODY])

        logger.debug(f"Upserted {record.account} (HTTP {response.status_code})")

    def close(self) -> None:
        """Close the underlying connection pool."""
        self._client.close()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def __enter__(self) -> "ForwardingClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None
    ) -> None:
        self.close()
