"""huawei-modem-api exceptions."""

from __future__ import annotations

from asyncio import TimeoutError as _asyncioTimeoutError
from enum import IntEnum
from functools import cache
from typing import Any


class ModemException(Exception):
    """Base exception for library errors."""


class TransportError(ModemException):
    """Network failure, timeout or non-2xx response without a vendor error body."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.status: int | None = kwargs.get("status")
        super().__init__(*args)


class TimeoutError(TransportError, _asyncioTimeoutError):
    """Timeout exception for device errors."""

    def __repr__(self) -> str:
        return ModemException.__repr__(self)

    def __str__(self) -> str:
        return ModemException.__str__(self)


class _ConnectionError(TransportError):
    """Connection exception for device errors."""


class PublicKeyUnavailableError(ModemException):
    """The device did not publish a usable RSA public key."""


class FieldEncryptionError(ModemException):
    """A settings field could not be encrypted."""


class ModemErrorCode(IntEnum):
    """Enum for vendor error codes returned inside ``<error>`` bodies."""

    def __str__(self) -> str:
        return f"{self.name}({self.value})"

    @staticmethod
    @cache
    def from_int(value: int) -> ModemErrorCode:
        """Convert an integer to a ModemErrorCode."""
        return ModemErrorCode(value)

    SUCCESS = 0

    # System errors
    UNKNOWN_ERROR = 100001
    NOT_SUPPORTED = 100002
    NO_RIGHT = 100003
    BUSY = 100004
    PARAMETER_ERROR = 100005
    NO_SUCH_ITEM = 100006

    # Login errors
    USERNAME_PWD_WRONG = 108001
    ALREADY_LOGGED_IN = 108002
    USER_NOT_EXIST = 108003
    USER_LOCKED = 108006
    LOGIN_TIMEOUT = 108007

    # Token / session errors
    WRONG_SESSION = 125001
    WRONG_SESSION_TOKEN = 125002
    WRONG_TOKEN = 125003

    # Library internal for unknown error codes
    INTERNAL_UNKNOWN_ERROR = -100_000


SESSION_EXPIRED_ERRORS = [
    ModemErrorCode.WRONG_SESSION_TOKEN,
    ModemErrorCode.WRONG_TOKEN,
]


class DeviceError(ModemException):
    """Base exception for errors reported by the device."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.error_code: ModemErrorCode | None = kwargs.get("error_code")
        #: The code as it appeared in the response body
        self.raw_code: str | None = kwargs.get("raw_code")
        if self.raw_code is None and self.error_code is not None:
            self.raw_code = str(self.error_code.value)
        super().__init__(*args)

    def __repr__(self) -> str:
        err_code = self.error_code.__repr__() if self.error_code else ""
        return f"{self.__class__.__name__}({err_code})"

    def __str__(self) -> str:
        if self.error_code:
            err_code = f" (error_code={self.error_code.name})"
        elif self.raw_code:
            err_code = f" (error_code={self.raw_code})"
        else:
            err_code = ""
        return super().__str__() + err_code


class SessionExpiredError(DeviceError):
    """The device rejected the session or verification token."""


class ParameterError(DeviceError):
    """The device rejected the request as malformed."""


class VendorError(DeviceError):
    """Any other vendor error code."""


class AuthenticationError(DeviceError):
    """Base exception for device authentication errors."""


#: Name used by callers that branch on a rejected login
AuthenticationRejected = AuthenticationError
