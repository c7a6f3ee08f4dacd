"""Configuration for connecting to a modem.

A :class:`ModemConfig` holds everything needed to talk to one device address
and can be stored and restored without the live http session:

>>> from huawei_modem import ModemConfig, Credentials
>>> config = ModemConfig("192.168.8.1", credentials=Credentials("admin", "pw"))
>>> config_dict = config.to_dict()
>>> print(config_dict["login_method"])
AUTO
>>> later = ModemConfig.from_dict(config_dict)

"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Self

from aiohttp import ClientSession
from mashumaro import field_options
from mashumaro.config import BaseConfig
from mashumaro.mixins.json import DataClassJSONMixin
from mashumaro.types import SerializationStrategy

from .credentials import Credentials
from .exceptions import ModemException

if TYPE_CHECKING:
    from aiohttp import ClientSession

_LOGGER = logging.getLogger(__name__)


class LoginMethod(Enum):
    """Which login strategy to use."""

    #: Try the legacy password hash first, SCRAM as fallback
    Auto = "AUTO"
    Legacy = "LEGACY"
    Scram = "SCRAM"

    @staticmethod
    def from_value(value: str) -> LoginMethod:
        """Return the login method from a case-insensitive string value."""
        try:
            return LoginMethod(value.upper())
        except ValueError as ex:
            raise ModemException(f"Invalid login method {value}") from ex


class _ModemConfigBaseMixin(DataClassJSONMixin):
    """Base class for serialization mixin."""

    class Config(BaseConfig):
        """Serialization config."""

        omit_none = True


class _DoNotSerialize(SerializationStrategy):
    def serialize(self, value: Any) -> None:
        return None

    def deserialize(self, value: Any) -> None:
        return None


@dataclass
class ModemConfig(_ModemConfigBaseMixin):
    """Class to represent paramaters that determine how to connect to a modem."""

    DEFAULT_TIMEOUT = 10
    #: IP address or hostname
    host: str
    #: Timeout for a single http request
    timeout: int | None = DEFAULT_TIMEOUT
    #: Credentials used by login() when none are passed explicitly
    credentials: Credentials | None = None
    #: Login strategy to use
    login_method: LoginMethod = LoginMethod.Auto
    #: Seconds a fetched verification token is considered valid
    token_ttl: int = 120
    #: Refresh the token this many seconds before it expires
    refresh_margin: int = 10

    # compare=False will be excluded from object comparison.
    #: Set a custom http_client for the client to use.
    http_client: ClientSession | None = field(
        default=None,
        compare=False,
        metadata=field_options(serialization_strategy=_DoNotSerialize()),
    )

    def __post_init__(self) -> None:
        if self.login_method is None:
            self.login_method = LoginMethod.Auto
        if isinstance(self.login_method, str):
            self.login_method = LoginMethod.from_value(self.login_method)

    def __pre_serialize__(self) -> Self:
        return replace(self, http_client=None)

    def to_dict_control_credentials(
        self, *, exclude_credentials: bool = False
    ) -> dict[str, Any]:
        """Convert the config to a dict, optionally dropping the credentials."""
        if not exclude_credentials:
            return self.to_dict()
        return replace(self, credentials=None).to_dict()
