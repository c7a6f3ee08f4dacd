"""Authenticated request facade for the modem web API.

>>> from huawei_modem import ModemClient
>>> async with ModemClient("192.168.8.1") as client:
>>>     await client.login("admin", "password")
True
>>>     info = await client.get("/api/device/information")
>>>     await client.post("/api/dialup/mobile-dataswitch", body)

Reads refresh the verification token lazily, writes always fetch a fresh
token first and are serialized so two writes never race on the token.
A :class:`~huawei_modem.exceptions.SessionExpiredError` leaves the session
empty; the caller decides when to log in again.
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

from .auth import BaseAuthenticator, fetch_session_token, get_authenticator
from .credentials import DEFAULT_CREDENTIALS, Credentials, get_default_credentials
from .encryption import PUBLIC_KEY_PATH, FieldEncryptor, PublicKey
from .exceptions import (
    ModemException,
    PublicKeyUnavailableError,
    SessionExpiredError,
    TransportError,
    VendorError,
)
from .modemconfig import ModemConfig
from .session import SessionHealth, SessionState, redact
from .transport import ModemTransport
from .xmlutils import build_request, parse_xml_value

_LOGGER = logging.getLogger(__name__)

LOGOUT_PATH = "/api/user/logout"
STATE_LOGIN_PATH = "/api/user/state-login"
#: ``State`` value of state-login while a user is logged in
LOGGED_IN_STATE = "0"


class ModemClient:
    """Client for one modem address."""

    def __init__(
        self,
        host: str | None = None,
        *,
        config: ModemConfig | None = None,
        transport: ModemTransport | None = None,
    ) -> None:
        if config is None:
            if host is None:
                raise ModemException("Either host or config must be supplied")
            config = ModemConfig(host)
        self._config = config
        if transport is None:
            transport = ModemTransport(
                config=config, session=SessionState(), health=SessionHealth()
            )
        self._transport = transport
        self._session = transport.session
        self._authenticator: BaseAuthenticator = get_authenticator(
            config.login_method, transport=transport, config=config
        )
        # Held by every operation that fetches a token and then uses it
        self._lock = asyncio.Lock()

    @property
    def config(self) -> ModemConfig:
        """The connection configuration."""
        return self._config

    @property
    def host(self) -> str:
        """The modem address."""
        return self._config.host

    @property
    def session(self) -> SessionState:
        """Current token, cookie and token deadline."""
        return self._session

    @property
    def health(self) -> SessionHealth:
        """Last activity and whether the session was seen expiring."""
        return self._transport.health

    @property
    def transport(self) -> ModemTransport:
        """The underlying transport."""
        return self._transport

    def _get_credentials(
        self, username: str | None, password: str | None
    ) -> Credentials:
        if username is not None or password is not None:
            return Credentials(username or "", password or "")
        if self._config.credentials:
            return self._config.credentials
        return get_default_credentials(DEFAULT_CREDENTIALS["HUAWEI"])

    async def login(
        self, username: str | None = None, password: str | None = None
    ) -> bool:
        """Log in, returning False if the device rejected the credentials.

        Falls back to the configured credentials and then to the device
        defaults when none are passed.
        """
        credentials = self._get_credentials(username, password)
        async with self._lock:
            success = await self._authenticator.attempt(credentials)
        if success:
            _LOGGER.debug("%s: login succeeded", self.host)
        else:
            _LOGGER.debug("%s: login rejected", self.host)
        return success

    async def logout(self) -> bool:
        """Log out of the device.

        The session is left in place, the device invalidates it.
        """
        async with self._lock:
            await self._refresh_token(force=True)
            await self._transport.post(LOGOUT_PATH, build_request({"Logout": 1}))
        return True

    async def _refresh_token(self, *, force: bool) -> None:
        """Fetch a token unless the current one is fresh and force is False.

        Must be called with the lock held.
        """
        if not force and not self._session.needs_refresh(self._config.refresh_margin):
            return
        token = await fetch_session_token(
            self._transport, self._session, self._config.token_ttl
        )
        if not token:
            raise TransportError(f"{self.host} did not return a verification token")
        _LOGGER.debug("%s: got fresh token %s", self.host, redact(token))

    async def get(self, endpoint: str) -> str:
        """GET an endpoint with the current session."""
        if self._session.needs_refresh(self._config.refresh_margin):
            async with self._lock:
                await self._refresh_token(force=False)
        return await self._transport.get(endpoint)

    async def post(self, endpoint: str, body: str) -> str:
        """POST a request body with a freshly fetched token."""
        async with self._lock:
            await self._refresh_token(force=True)
            try:
                return await self._transport.post(endpoint, body)
            except SessionExpiredError:
                self._session.clear()
                raise

    async def is_logged_in(self) -> bool:
        """Return True if the device reports the session as logged in."""
        try:
            body = await self.get(STATE_LOGIN_PATH)
        except SessionExpiredError:
            return False
        return parse_xml_value(body, "State") == LOGGED_IN_STATE

    async def fetch_public_key(self) -> PublicKey:
        """Fetch the RSA key the device uses for sensitive fields."""
        try:
            body = await self.get(PUBLIC_KEY_PATH)
        except VendorError as ex:
            raise PublicKeyUnavailableError(
                f"{self.host} did not return a public key: {ex}"
            ) from ex
        return PublicKey.from_response(body)

    async def encrypt_field(self, plaintext: str) -> str:
        """Encrypt a settings value with the device public key."""
        return FieldEncryptor(await self.fetch_public_key()).encrypt(plaintext)

    async def close(self) -> None:
        """Close the underlying http client."""
        await self._transport.close()

    async def __aenter__(self) -> ModemClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()
