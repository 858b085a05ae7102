"""CardDAV HTTP session: one lazily created httpx client per account."""

from __future__ import annotations

import asyncio
from typing import Optional

import httpx
from loguru import logger

from screenersync.domain.errors import DirectoryTransportError
from screenersync.infrastructure.settings import Settings


class CardDavSession:
    """Owns the HTTP client used to talk to one CardDAV address book.

    The client is created on first use. Concurrent first calls share one
    initialization. The session is passed explicitly to the stores that need it
    and closed by whoever created it.
    """

    def __init__(
        self,
        base_url: str,
        username: str = "",
        password: str = "",
        addressbook_path: str = "/",
        timeout_seconds: float = 15.0,
        debug: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self._password = password
        self.addressbook_path = addressbook_path or "/"
        self.timeout_seconds = timeout_seconds
        self.debug = debug
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._init_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CardDavSession":
        if not settings.carddav_base_url:
            raise ValueError("carddav_base_url is required for a CardDAV session")
        return cls(
            base_url=settings.carddav_base_url,
            username=settings.carddav_username,
            password=settings.carddav_password.get_secret_value(),
            addressbook_path=settings.carddav_addressbook_path,
            timeout_seconds=settings.carddav_timeout_seconds,
            debug=settings.carddav_debug,
        )

    @property
    def addressbook_url(self) -> str:
        """Collection URL, always with a trailing slash."""
        path = self.addressbook_path.strip("/")
        return f"{self.base_url}/{path}/" if path else f"{self.base_url}/"

    def resolve(self, href: str) -> str:
        """Absolute URL for an href returned by the server."""
        return str(httpx.URL(self.base_url + "/").join(href))

    async def client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        async with self._init_lock:
            if self._client is None:
                logger.info(f"Opening CardDAV session to {self.base_url} as {self.username or '<anonymous>'}")
                auth = httpx.BasicAuth(self.username, self._password) if self.username else None
                self._client = httpx.AsyncClient(
                    auth=auth,
                    timeout=self.timeout_seconds,
                    follow_redirects=True,
                    transport=self._transport,
                )
        return self._client

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        content: Optional[str] = None,
    ) -> httpx.Response:
        """Send one request; transport failures become DirectoryTransportError."""
        client = await self.client()
        if self.debug:
            logger.debug(f"CardDAV {method} {url}")
        try:
            response = await client.request(
                method,
                url,
                headers=headers,
                content=content.encode("utf-8") if content is not None else None,
            )
        except httpx.TimeoutException as e:
            raise DirectoryTransportError(f"CardDAV {method} {url} timed out") from e
        except httpx.HTTPError as e:
            raise DirectoryTransportError(f"CardDAV {method} {url} failed: {e}") from e
        if self.debug:
            logger.debug(f"CardDAV {method} {url} -> {response.status_code}")
        return response

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("CardDAV session closed")
