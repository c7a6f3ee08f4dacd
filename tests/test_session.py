import pytest
from freezegun.api import FrozenDateTimeFactory

from huawei_modem.session import (
    SessionHealth,
    SessionState,
    normalize_cookie,
    redact,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        pytest.param("SessionID=abc", "SessionID=abc", id="prefixed"),
        pytest.param("abc", "SessionID=abc", id="bare"),
        pytest.param(" abc ", "SessionID=abc", id="whitespace"),
        pytest.param(
            "SessionID=abc; path=/; HttpOnly", "SessionID=abc", id="set-cookie"
        ),
        pytest.param("other=1; path=/", "", id="other-cookie"),
        pytest.param("", "", id="empty"),
        pytest.param(None, "", id="none"),
    ],
)
def test_normalize_cookie(value, expected):
    assert normalize_cookie(value) == expected


def test_redact():
    assert redact("abcdefghijkl") == "abcdefgh..."
    assert redact("short") == "short"
    assert redact("abcdef", 2) == "ab..."


def test_commit_sets_expiry(freezer: FrozenDateTimeFactory):
    session = SessionState()
    assert session.is_empty
    assert session.needs_refresh()

    session.commit("tok", "SessionID=abc", 120)
    assert not session.is_empty
    assert not session.needs_refresh(10)

    freezer.tick(111)
    assert not session.needs_refresh()
    assert session.needs_refresh(10)

    freezer.tick(10)
    assert session.needs_refresh()


def test_update_only_replaces_rotated_values(freezer: FrozenDateTimeFactory):
    session = SessionState()
    session.commit("tok", "SessionID=abc", 120)

    session.update(cookie="SessionID=def", ttl=30)
    assert session.token == "tok"
    assert session.cookie == "SessionID=def"

    session.update(token="tok2", ttl=30)
    assert session.token == "tok2"
    assert session.cookie == "SessionID=def"
    freezer.tick(31)
    assert session.needs_refresh()


def test_copy_is_independent():
    session = SessionState()
    session.commit("tok", "SessionID=abc", 120)
    copied = session.copy()
    copied.update(token="other", ttl=30)
    assert session.token == "tok"

    session.adopt(copied)
    assert session == copied


def test_clear():
    session = SessionState()
    session.commit("tok", "SessionID=abc", 120)
    session.clear()
    assert session.is_empty
    assert session.token == ""
    assert session.cookie == ""


def test_health(freezer: FrozenDateTimeFactory):
    health = SessionHealth()
    assert health.healthy
    assert health.last_activity is None

    health.mark_unhealthy()
    assert not health.healthy

    health.mark_activity()
    assert health.healthy
    first = health.last_activity
    freezer.tick(5)
    health.mark_activity()
    assert health.last_activity == pytest.approx(first + 5)
