"""HTTP/XML transport for the modem web API.

Every response is inspected for a rotated verification token and session
cookie, and for vendor error codes carried inside a 200 OK body.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from yarl import URL

from .exceptions import (
    SESSION_EXPIRED_ERRORS,
    ModemErrorCode,
    ParameterError,
    SessionExpiredError,
    TransportError,
    VendorError,
)
from .httpclient import HttpClient, HttpResponse
from .session import SessionHealth, SessionState, normalize_cookie, redact
from .xmlutils import has_error, parse_error_code

if TYPE_CHECKING:
    from .modemconfig import ModemConfig

_LOGGER = logging.getLogger(__name__)

TOKEN_HEADER = "__RequestVerificationToken"
#: Validity given to a token rotated through a response header
HEADER_TOKEN_TTL = 30
_LOG_BODY_CHARS = 300


class ModemTransport:
    """Send requests to the modem and keep the session state in sync."""

    USER_AGENT = (
        "Mozilla/5.0 (Linux; Android 6.0; Nexus 5 Build/MRA58N) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/143.0.0.0 Mobile Safari/537.36"
    )
    FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"
    XML_CONTENT_TYPE = "application/xml"

    def __init__(
        self,
        *,
        config: ModemConfig,
        session: SessionState | None = None,
        health: SessionHealth | None = None,
    ) -> None:
        self._config = config
        self._host = config.host
        self._session = session if session is not None else SessionState()
        self._health = health if health is not None else SessionHealth()
        self._http_client = HttpClient(config)
        self._base_url = URL(f"http://{self._host}")
        self._headers = {
            "Accept": "*/*",
            "Accept-Language": "en,en-US;q=0.9",
            "X-Requested-With": "XMLHttpRequest",
            "Referer": f"http://{self._host}/html/content.html",
            "User-Agent": self.USER_AGENT,
        }

        _LOGGER.debug("Created modem transport for %s", self._host)

    @property
    def host(self) -> str:
        """Device address."""
        return self._host

    @property
    def session(self) -> SessionState:
        """Session state updated by every response."""
        return self._session

    @property
    def health(self) -> SessionHealth:
        """Session liveness observed by this transport."""
        return self._health

    def url(self, endpoint: str) -> URL:
        """Return the absolute url of an endpoint."""
        if not endpoint.startswith("/"):
            endpoint = "/" + endpoint
        return URL(f"{self._base_url}{endpoint}", encoded=True)

    def _build_headers(
        self,
        session: SessionState,
        content_type: str,
        *,
        send_token: bool,
        extra: dict[str, str] | None,
    ) -> dict[str, str]:
        headers = {**self._headers, "Content-Type": content_type}
        if session.cookie:
            headers["Cookie"] = session.cookie
        if send_token and session.token:
            headers[TOKEN_HEADER] = session.token
        if extra:
            headers.update(extra)
        return headers

    async def get(
        self,
        endpoint: str,
        *,
        session: SessionState | None = None,
        headers: dict[str, str] | None = None,
        check_errors: bool = True,
    ) -> str:
        """GET an endpoint and return the body.

        ``session`` selects the state to send and update, the transport's own
        by default. With ``check_errors`` disabled error bodies are returned
        instead of raised.
        """
        session = session if session is not None else self._session
        request_headers = self._build_headers(
            session, self.FORM_CONTENT_TYPE, send_token=False, extra=headers
        )
        resp = await self._http_client.get(self.url(endpoint), headers=request_headers)
        return self._handle_response(endpoint, resp, session, check_errors)

    async def post(
        self,
        endpoint: str,
        body: str,
        *,
        session: SessionState | None = None,
        headers: dict[str, str] | None = None,
        content_type: str = XML_CONTENT_TYPE,
        check_errors: bool = True,
    ) -> str:
        """POST a body to an endpoint and return the response body."""
        session = session if session is not None else self._session
        request_headers = self._build_headers(
            session, content_type, send_token=True, extra=headers
        )
        _LOGGER.debug("%s >> %s (%s bytes)", self._host, endpoint, len(body))
        resp = await self._http_client.post(
            self.url(endpoint), data=body, headers=request_headers
        )
        return self._handle_response(endpoint, resp, session, check_errors)

    def _handle_response(
        self,
        endpoint: str,
        resp: HttpResponse,
        session: SessionState,
        check_errors: bool,
    ) -> str:
        self._update_session_from_headers(resp, session)
        _LOGGER.debug(
            "%s << %s %s: %s",
            self._host,
            endpoint,
            resp.status,
            resp.text[:_LOG_BODY_CHARS],
        )

        if check_errors:
            self._handle_response_error_code(endpoint, resp.text, session)

        if not 200 <= resp.status < 300:
            if check_errors or not has_error(resp.text):
                raise TransportError(
                    f"{self._host} responded with an unexpected "
                    + f"status code {resp.status} to {endpoint}",
                    status=resp.status,
                )
            return resp.text

        if not has_error(resp.text):
            self._health.mark_activity()
        return resp.text

    def _update_session_from_headers(
        self, resp: HttpResponse, session: SessionState
    ) -> None:
        token = None
        if raw_token := resp.headers.get(TOKEN_HEADER):
            # Login responses can carry a list of tokens, the first is current
            token = raw_token.split("#")[0].split(",")[0].strip()

        cookie = None
        for set_cookie in resp.headers.getall("Set-Cookie", []):
            if cookie := normalize_cookie(set_cookie):
                break

        if token or cookie:
            _LOGGER.debug(
                "Session rotated by %s: token=%s cookie=%s",
                self._host,
                redact(token) if token else None,
                redact(cookie, 20) if cookie else None,
            )
            session.update(token=token, cookie=cookie, ttl=HEADER_TOKEN_TTL)

    def _get_error_code(self, raw_code: str) -> ModemErrorCode | None:
        try:
            return ModemErrorCode.from_int(int(raw_code))
        except ValueError:
            _LOGGER.warning(
                "Device %s received unknown error code: %s", self._host, raw_code
            )
            return None

    def _handle_response_error_code(
        self, endpoint: str, body: str, session: SessionState
    ) -> None:
        if not has_error(body):
            return
        raw_code = parse_error_code(body)
        error_code = self._get_error_code(raw_code) if raw_code else None
        msg = f"Error response to {endpoint}: {self._host}: {raw_code or 'no code'}"
        if error_code in SESSION_EXPIRED_ERRORS:
            session.clear()
            self._health.mark_unhealthy()
            raise SessionExpiredError(msg, error_code=error_code, raw_code=raw_code)
        if error_code is ModemErrorCode.PARAMETER_ERROR:
            raise ParameterError(msg, error_code=error_code, raw_code=raw_code)
        raise VendorError(msg, error_code=error_code, raw_code=raw_code)

    async def close(self) -> None:
        """Close the http client."""
        await self._http_client.close()
