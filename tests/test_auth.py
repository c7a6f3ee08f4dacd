import pytest

from huawei_modem.auth import (
    AUTHENTICATION_LOGIN_PATH,
    CHALLENGE_LOGIN_PATH,
    DEVICE_INFORMATION_PATH,
    LOGIN_PATH,
    SES_TOK_INFO_PATH,
    TOKEN_PATH,
    FallbackAuthenticator,
    LegacyAuthenticator,
    ScramAuthenticator,
    fetch_session_token,
    get_authenticator,
)
from huawei_modem.credentials import Credentials
from huawei_modem.crypto import legacy_password_hash
from huawei_modem.exceptions import AuthenticationError, ModemErrorCode
from huawei_modem.modemconfig import LoginMethod, ModemConfig
from huawei_modem.session import SessionState
from huawei_modem.transport import TOKEN_HEADER, ModemTransport
from huawei_modem.xmlutils import parse_xml_value

from .conftest import MOCK_HOST
from .fakemodem import MOCK_PWD, MOCK_USER, error_body

GOOD_CREDENTIALS = Credentials(MOCK_USER, MOCK_PWD)
BAD_CREDENTIALS = Credentials(MOCK_USER, "wrong_pwd")


@pytest.fixture()
def config():
    return ModemConfig(MOCK_HOST)


@pytest.fixture()
async def transport(config):
    transport = ModemTransport(config=config)
    yield transport
    await transport.close()


def _requests_to(modem, path):
    return [request for request in modem.requests if request[1] == path]


async def test_legacy_login(modem, transport, config):
    auth = LegacyAuthenticator(transport=transport, config=config)
    assert await auth.attempt(GOOD_CREDENTIALS) is True

    assert modem.logged_in
    assert transport.session.cookie == modem.session_id
    assert transport.session.token in modem.valid_tokens
    assert not transport.session.needs_refresh(config.refresh_margin)

    [(_, _, headers, body)] = _requests_to(modem, LOGIN_PATH)
    token = headers[TOKEN_HEADER]
    assert parse_xml_value(body, "Username") == MOCK_USER
    assert parse_xml_value(body, "password_type") == "4"
    assert parse_xml_value(body, "Password") == legacy_password_hash(
        MOCK_USER, MOCK_PWD, token
    )
    assert modem.paths == [SES_TOK_INFO_PATH, LOGIN_PATH]


async def test_legacy_login_rejected(modem, transport, config):
    transport.session.commit("oldtok", "SessionID=old", 120)
    auth = LegacyAuthenticator(transport=transport, config=config)

    with pytest.raises(AuthenticationError) as exc_info:
        await auth.authenticate(BAD_CREDENTIALS)
    assert exc_info.value.error_code is ModemErrorCode.USER_LOCKED
    assert exc_info.value.raw_code == "108006"

    assert await auth.attempt(BAD_CREDENTIALS) is False
    assert not modem.logged_in
    assert transport.session.token == "oldtok"
    assert transport.session.cookie == "SessionID=old"


async def test_legacy_login_already_logged_in(modem, transport, config):
    modem.logged_in = True
    modem.already_logged_in_error = True
    auth = LegacyAuthenticator(transport=transport, config=config)

    assert await auth.attempt(GOOD_CREDENTIALS) is True
    assert transport.session.cookie == modem.session_id
    assert transport.session.token


async def test_legacy_login_skipped_when_session_valid(modem, transport, config):
    auth = LegacyAuthenticator(transport=transport, config=config)
    assert await auth.attempt(GOOD_CREDENTIALS) is True
    session_before = transport.session.copy()

    assert await auth.attempt(GOOD_CREDENTIALS) is True
    assert len(_requests_to(modem, LOGIN_PATH)) == 1
    assert modem.paths[-1] == DEVICE_INFORMATION_PATH
    assert transport.session.cookie == session_before.cookie


async def test_legacy_login_stale_session_logs_in_again(modem, transport, config):
    transport.session.commit("oldtok", "SessionID=stale", 120)
    auth = LegacyAuthenticator(transport=transport, config=config)

    assert await auth.attempt(GOOD_CREDENTIALS) is True
    assert modem.paths == [DEVICE_INFORMATION_PATH, SES_TOK_INFO_PATH, LOGIN_PATH]
    assert transport.session.cookie == modem.session_id


async def test_legacy_login_without_token(modem, transport, config):
    modem.put_next_response(
        "GET", SES_TOK_INFO_PATH, "<response><SesInfo>abc</SesInfo></response>"
    )
    auth = LegacyAuthenticator(transport=transport, config=config)

    with pytest.raises(AuthenticationError, match="verification token"):
        await auth.authenticate(GOOD_CREDENTIALS)
    assert LOGIN_PATH not in modem.paths
    assert transport.session.is_empty


async def test_legacy_login_unknown_response(modem, transport, config):
    modem.put_next_response("POST", LOGIN_PATH, "<response>FAIL</response>")
    auth = LegacyAuthenticator(transport=transport, config=config)

    with pytest.raises(AuthenticationError, match="Unknown login response"):
        await auth.authenticate(GOOD_CREDENTIALS)
    assert transport.session.is_empty


async def test_scram_login(modem, transport, config):
    auth = ScramAuthenticator(transport=transport, config=config)
    assert await auth.attempt(GOOD_CREDENTIALS) is True

    assert modem.logged_in
    assert transport.session.cookie == modem.session_id
    assert transport.session.token in modem.valid_tokens
    assert modem.paths == [
        "/html/index.html",
        SES_TOK_INFO_PATH,
        TOKEN_PATH,
        CHALLENGE_LOGIN_PATH,
        AUTHENTICATION_LOGIN_PATH,
        TOKEN_PATH,
    ]

    [(_, _, _, challenge)] = _requests_to(modem, CHALLENGE_LOGIN_PATH)
    assert parse_xml_value(challenge, "username") == MOCK_USER
    assert len(parse_xml_value(challenge, "firstnonce")) == 64
    assert parse_xml_value(challenge, "mode") == "1"


async def test_scram_login_rejected(modem, transport, config):
    auth = ScramAuthenticator(transport=transport, config=config)
    assert await auth.attempt(BAD_CREDENTIALS) is False
    assert not modem.logged_in
    assert transport.session.is_empty


async def test_scram_missing_server_nonce(modem, transport, config):
    modem.missing_servernonce = True
    auth = ScramAuthenticator(transport=transport, config=config)

    assert await auth.attempt(GOOD_CREDENTIALS) is False
    assert AUTHENTICATION_LOGIN_PATH not in modem.paths
    assert transport.session.is_empty


async def test_scram_challenge_error(modem, transport, config):
    modem.put_next_response("POST", CHALLENGE_LOGIN_PATH, error_body(108003))
    auth = ScramAuthenticator(transport=transport, config=config)

    with pytest.raises(AuthenticationError) as exc_info:
        await auth.authenticate(GOOD_CREDENTIALS)
    assert exc_info.value.error_code is ModemErrorCode.USER_NOT_EXIST
    assert AUTHENTICATION_LOGIN_PATH not in modem.paths


async def test_scram_homepage_fallback(modem, transport, config):
    modem.put_next_response("GET", "/html/index.html", "Not found", status=404)
    auth = ScramAuthenticator(transport=transport, config=config)

    assert await auth.attempt(GOOD_CREDENTIALS) is True
    assert modem.paths[:2] == ["/html/index.html", "/"]


async def test_fallback_to_scram(modem, transport, config):
    modem.legacy_login_supported = False
    auth = get_authenticator(LoginMethod.Auto, transport=transport, config=config)
    assert isinstance(auth, FallbackAuthenticator)

    assert await auth.attempt(GOOD_CREDENTIALS) is True
    assert LOGIN_PATH in modem.paths
    assert AUTHENTICATION_LOGIN_PATH in modem.paths
    assert transport.session.cookie == modem.session_id


async def test_fallback_all_rejected(modem, transport, config):
    auth = get_authenticator(LoginMethod.Auto, transport=transport, config=config)
    assert await auth.attempt(BAD_CREDENTIALS) is False
    assert CHALLENGE_LOGIN_PATH in modem.paths


@pytest.mark.parametrize(
    ("login_method", "expected"),
    [
        pytest.param(LoginMethod.Legacy, LegacyAuthenticator, id="legacy"),
        pytest.param(LoginMethod.Scram, ScramAuthenticator, id="scram"),
        pytest.param(LoginMethod.Auto, FallbackAuthenticator, id="auto"),
    ],
)
async def test_get_authenticator(transport, config, login_method, expected):
    auth = get_authenticator(login_method, transport=transport, config=config)
    assert type(auth) is expected


@pytest.mark.parametrize(
    ("body", "headers", "expected_cookie"),
    [
        pytest.param(
            "<response><SesInfo>SessionID=body</SesInfo>"
            "<TokInfo>tok</TokInfo></response>",
            None,
            "SessionID=body",
            id="body",
        ),
        pytest.param(
            "<response><SesInfo>bare</SesInfo><TokInfo>tok</TokInfo></response>",
            None,
            "SessionID=bare",
            id="bare-body",
        ),
        pytest.param(
            "<response><SesInfo>SessionID=body</SesInfo>"
            "<TokInfo>tok</TokInfo></response>",
            {"Set-Cookie": "SessionID=header; path=/; HttpOnly"},
            "SessionID=header",
            id="header-wins",
        ),
        pytest.param(
            "<response><TokInfo>tok</TokInfo></response>",
            None,
            "SessionID=existing",
            id="keep-existing",
        ),
    ],
)
async def test_fetch_session_token(
    modem, transport, config, body, headers, expected_cookie
):
    session = SessionState(cookie="SessionID=existing")
    modem.put_next_response("GET", SES_TOK_INFO_PATH, body, headers=headers)

    token = await fetch_session_token(transport, session, config.token_ttl)
    assert token == "tok"
    assert session.token == "tok"
    assert session.cookie == expected_cookie
    assert not session.needs_refresh()
