"""Python client for the local web API of Huawei LTE routers.

All requests go through :class:`ModemClient`::

>>> from huawei_modem import ModemClient
>>> client = ModemClient("192.168.8.1")
>>> await client.login("admin", "password")
True
>>> print(await client.get("/api/device/signal"))

Errors reported by the device are raised as :class:`DeviceError` subclasses
and are expected to be handled by the user of the library.
"""

from huawei_modem.auth import (
    BaseAuthenticator,
    LegacyAuthenticator,
    ScramAuthenticator,
)
from huawei_modem.client import ModemClient
from huawei_modem.credentials import Credentials
from huawei_modem.encryption import FieldEncryptor, PublicKey, encrypt_field
from huawei_modem.exceptions import (
    AuthenticationError,
    AuthenticationRejected,
    DeviceError,
    FieldEncryptionError,
    ModemErrorCode,
    ModemException,
    ParameterError,
    PublicKeyUnavailableError,
    SessionExpiredError,
    TimeoutError,
    TransportError,
    VendorError,
)
from huawei_modem.modemconfig import LoginMethod, ModemConfig
from huawei_modem.session import SessionHealth, SessionState
from huawei_modem.transport import ModemTransport
from huawei_modem.version import __version__

__all__ = [
    "ModemClient",
    "ModemConfig",
    "LoginMethod",
    "Credentials",
    "ModemTransport",
    "SessionState",
    "SessionHealth",
    "BaseAuthenticator",
    "LegacyAuthenticator",
    "ScramAuthenticator",
    "FieldEncryptor",
    "PublicKey",
    "encrypt_field",
    "ModemException",
    "TimeoutError",
    "TransportError",
    "DeviceError",
    "SessionExpiredError",
    "ParameterError",
    "VendorError",
    "AuthenticationError",
    "AuthenticationRejected",
    "PublicKeyUnavailableError",
    "FieldEncryptionError",
    "ModemErrorCode",
    "__version__",
]
