"""Login strategies for the modem web API.

Two strategies are supported by the firmware:

- :class:`LegacyAuthenticator` sends a single hashed password
  (``password_type`` 4) derived from the verification token.
- :class:`ScramAuthenticator` runs a SCRAM-SHA256 style challenge/response
  over ``challenge_login`` and ``authentication_login``.

Both work on a private in-flight :class:`SessionState` and only copy it to
the shared state once the device accepted the login.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

from .credentials import Credentials
from .crypto import (
    LEGACY_PASSWORD_TYPE,
    generate_nonce,
    legacy_password_hash,
    scram_client_proof,
)
from .exceptions import (
    AuthenticationError,
    DeviceError,
    ModemErrorCode,
    ModemException,
    TransportError,
)
from .modemconfig import LoginMethod
from .session import SessionState, normalize_cookie, redact
from .xmlutils import (
    build_request,
    find_xml_value,
    has_error,
    is_ok_response,
    parse_error_code,
    parse_xml_value,
)

if TYPE_CHECKING:
    from .modemconfig import ModemConfig
    from .transport import ModemTransport

_LOGGER = logging.getLogger(__name__)

SES_TOK_INFO_PATH = "/api/webserver/SesTokInfo"
TOKEN_PATH = "/api/webserver/token"
LOGIN_PATH = "/api/user/login"
CHALLENGE_LOGIN_PATH = "/api/user/challenge_login"
AUTHENTICATION_LOGIN_PATH = "/api/user/authentication_login"
DEVICE_INFORMATION_PATH = "/api/device/information"
HOMEPAGE_PATHS = ("/html/index.html", "/")

DEFAULT_SCRAM_ITERATIONS = 100


def _error_code(raw_code: str | None) -> ModemErrorCode | None:
    try:
        return ModemErrorCode.from_int(int(raw_code)) if raw_code else None
    except ValueError:
        return None


async def fetch_session_token(
    transport: ModemTransport,
    session: SessionState,
    ttl: float,
    *,
    check_errors: bool = True,
) -> str:
    """Fetch SesTokInfo into ``session`` and return the token.

    Token and cookie are taken from the same response. A cookie rotated through
    Set-Cookie wins over the SesInfo body field, which wins over the cookie
    already held. An empty string is returned if the body has no token.
    """
    sent_cookie = session.cookie
    body = await transport.get(
        SES_TOK_INFO_PATH, session=session, check_errors=check_errors
    )
    token = parse_xml_value(body, "TokInfo")
    cookie = session.cookie
    if cookie == sent_cookie or not cookie:
        cookie = normalize_cookie(parse_xml_value(body, "SesInfo")) or cookie
    if token:
        session.commit(token, cookie, ttl)
    elif cookie:
        session.cookie = cookie
    return token


class BaseAuthenticator(ABC):
    """Base class for login strategies."""

    def __init__(self, *, transport: ModemTransport, config: ModemConfig) -> None:
        self._transport = transport
        self._config = config
        self._host = transport.host

    @property
    def name(self) -> str:
        """Name used in log messages."""
        return self.__class__.__name__

    @abstractmethod
    async def authenticate(self, credentials: Credentials) -> None:
        """Log in and populate the session, raise AuthenticationError if rejected."""

    async def attempt(self, credentials: Credentials) -> bool:
        """Log in and return whether the device accepted the credentials."""
        try:
            await self.authenticate(credentials)
        except AuthenticationError as ex:
            _LOGGER.debug("%s: %s rejected: %s", self._host, self.name, ex)
            return False
        return True

    def _commit(self, exchange: SessionState) -> None:
        self._transport.session.commit(
            exchange.token, exchange.cookie, self._config.token_ttl
        )
        _LOGGER.debug(
            "%s: logged in with %s, session %s",
            self._host,
            self.name,
            redact(exchange.cookie, 20),
        )


class LegacyAuthenticator(BaseAuthenticator):
    """Hashed password login against ``/api/user/login``."""

    async def _is_authenticated(self) -> bool:
        """Check an authenticated endpoint with the current session."""
        shared = self._transport.session
        if not shared.cookie:
            return False
        trial = shared.copy()
        try:
            await self._transport.get(DEVICE_INFORMATION_PATH, session=trial)
        except (DeviceError, TransportError) as ex:
            _LOGGER.debug("%s: session check failed: %s", self._host, ex)
            return False
        shared.adopt(trial)
        return True

    async def authenticate(self, credentials: Credentials) -> None:
        """Log in with the legacy password hash."""
        if await self._is_authenticated():
            _LOGGER.debug("%s: already authenticated, skipping login", self._host)
            return

        exchange = SessionState()
        token = await fetch_session_token(
            self._transport, exchange, self._config.token_ttl, check_errors=False
        )
        if not token:
            raise AuthenticationError(
                f"Failed to get a verification token from {self._host}"
            )
        _LOGGER.debug(
            "%s: token %s session %s",
            self._host,
            redact(token),
            redact(exchange.cookie, 20),
        )

        request = build_request(
            {
                "Username": credentials.username,
                "Password": legacy_password_hash(
                    credentials.username, credentials.password, token
                ),
                "password_type": LEGACY_PASSWORD_TYPE,
            }
        )
        body = await self._transport.post(
            LOGIN_PATH, request, session=exchange, check_errors=False
        )

        if has_error(body):
            raw_code = parse_error_code(body)
            error_code = _error_code(raw_code)
            if error_code is ModemErrorCode.ALREADY_LOGGED_IN:
                _LOGGER.debug(
                    "%s: user already logged in, adopting session", self._host
                )
                self._commit(exchange)
                return
            raise AuthenticationError(
                f"Login to {self._host} failed with error code {raw_code}",
                error_code=error_code,
                raw_code=raw_code,
            )

        if not is_ok_response(body):
            raise AuthenticationError(
                f"Unknown login response format from {self._host}: {body[:100]}"
            )

        self._commit(exchange)


class ScramAuthenticator(BaseAuthenticator):
    """Challenge/response login over ``challenge_login``."""

    async def _fetch_homepage(self, exchange: SessionState) -> None:
        """Load the web UI page so the device hands out a session cookie."""
        last_ex: ModemException | None = None
        for path in HOMEPAGE_PATHS:
            try:
                await self._transport.get(path, session=exchange, check_errors=False)
            except ModemException as ex:
                _LOGGER.debug("%s: unable to fetch %s: %s", self._host, path, ex)
                last_ex = ex
                continue
            return
        if last_ex:
            raise last_ex

    async def _refresh_token(self, exchange: SessionState) -> None:
        body = await self._transport.get(
            TOKEN_PATH, session=exchange, check_errors=False
        )
        if token := find_xml_value(body, "token"):
            exchange.update(token=token, ttl=self._config.token_ttl)

    async def authenticate(self, credentials: Credentials) -> None:
        """Log in with the SCRAM challenge/response exchange."""
        exchange = SessionState()
        await self._fetch_homepage(exchange)
        await fetch_session_token(
            self._transport, exchange, self._config.token_ttl, check_errors=False
        )
        if not exchange.cookie:
            raise AuthenticationError(f"Failed to get session info from {self._host}")
        await self._refresh_token(exchange)

        client_nonce = generate_nonce()
        challenge = build_request(
            {
                "username": credentials.username,
                "firstnonce": client_nonce,
                "mode": 1,
            }
        )
        body = await self._transport.post(
            CHALLENGE_LOGIN_PATH, challenge, session=exchange, check_errors=False
        )
        if has_error(body):
            raw_code = parse_error_code(body)
            raise AuthenticationError(
                f"Challenge to {self._host} failed with error code {raw_code}",
                error_code=_error_code(raw_code),
                raw_code=raw_code,
            )

        salt = find_xml_value(body, "salt")
        server_nonce = find_xml_value(body, "servernonce")
        if not salt or not server_nonce:
            raise AuthenticationError(f"Invalid challenge response from {self._host}")
        try:
            iterations = int(
                find_xml_value(body, "iterations") or DEFAULT_SCRAM_ITERATIONS
            )
            client_proof = scram_client_proof(
                credentials.password, salt, client_nonce, server_nonce, iterations
            )
        except ValueError as ex:
            raise AuthenticationError(
                f"Unusable challenge parameters from {self._host}: {ex}"
            ) from ex
        _LOGGER.debug("%s: challenge accepted, %s iterations", self._host, iterations)

        # The challenge response rotated the token through its headers
        request = build_request(
            {"clientproof": client_proof, "finalnonce": server_nonce}
        )
        body = await self._transport.post(
            AUTHENTICATION_LOGIN_PATH, request, session=exchange, check_errors=False
        )
        if has_error(body):
            raw_code = parse_error_code(body)
            raise AuthenticationError(
                f"Authentication to {self._host} failed with error code {raw_code}",
                error_code=_error_code(raw_code),
                raw_code=raw_code,
            )
        if find_xml_value(body, "serversignature") is None and not is_ok_response(
            body
        ):
            raise AuthenticationError(f"No server signature from {self._host}")

        await self._refresh_token(exchange)
        self._commit(exchange)


class FallbackAuthenticator(BaseAuthenticator):
    """Try several strategies in order, succeed with the first that works."""

    def __init__(
        self,
        *,
        transport: ModemTransport,
        config: ModemConfig,
        authenticators: Sequence[BaseAuthenticator],
    ) -> None:
        super().__init__(transport=transport, config=config)
        self._authenticators = list(authenticators)

    async def authenticate(self, credentials: Credentials) -> None:
        """Run each strategy until one is accepted."""
        last_ex: AuthenticationError | None = None
        for authenticator in self._authenticators:
            try:
                await authenticator.authenticate(credentials)
            except AuthenticationError as ex:
                _LOGGER.debug(
                    "%s: %s rejected, trying next: %s",
                    self._host,
                    authenticator.name,
                    ex,
                )
                last_ex = ex
                continue
            return
        if last_ex:
            raise last_ex
        raise AuthenticationError(f"No login strategy configured for {self._host}")


def get_authenticator(
    login_method: LoginMethod, *, transport: ModemTransport, config: ModemConfig
) -> BaseAuthenticator:
    """Return the authenticator for a login method."""
    if login_method is LoginMethod.Legacy:
        return LegacyAuthenticator(transport=transport, config=config)
    if login_method is LoginMethod.Scram:
        return ScramAuthenticator(transport=transport, config=config)
    return FallbackAuthenticator(
        transport=transport,
        config=config,
        authenticators=[
            LegacyAuthenticator(transport=transport, config=config),
            ScramAuthenticator(transport=transport, config=config),
        ],
    )
