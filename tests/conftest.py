from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from huawei_modem import ModemClient, ModemConfig

from .fakemodem import MockModemDevice, mock_device

MOCK_HOST = "192.168.8.1"


@pytest.fixture(autouse=True, scope="session")
def asyncio_sleep_fixture():  # noqa: PT004
    """Patch sleep to prevent tests actually waiting."""
    orig_asyncio_sleep = asyncio.sleep

    async def _asyncio_sleep(*_, **__):
        await orig_asyncio_sleep(0)

    with patch("asyncio.sleep", side_effect=_asyncio_sleep):
        yield


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Return a 2048 bit key standing in for the device key."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture()
def public_key_n(rsa_private_key) -> str:
    """Return the hex modulus as the device publishes it."""
    return format(rsa_private_key.public_key().public_numbers().n, "x")


@pytest.fixture()
def modem(mocker, public_key_n) -> MockModemDevice:
    """Return a fake modem with aiohttp routed to it."""
    return mock_device(mocker, MockModemDevice(MOCK_HOST, public_key_n=public_key_n))


@pytest.fixture()
async def client():
    """Return a client for the fake modem address."""
    client = ModemClient(config=ModemConfig(MOCK_HOST))
    yield client
    await client.close()
