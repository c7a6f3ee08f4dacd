"""RSA-OAEP encryption of sensitive settings fields.

The firmware publishes a 2048-bit RSA public key at
``/api/webserver/publickey``. Sensitive values such as the WiFi passphrase are
escaped, base64 encoded, OAEP-SHA1 padded and encrypted with that key before
they are put into a request body::

    <response>
      <encpubkeyn>c3a2...</encpubkeyn>
      <encpubkeye>010001</encpubkeye>
    </response>
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding as asymmetric_padding
from cryptography.hazmat.primitives.asymmetric import rsa

from .exceptions import FieldEncryptionError, PublicKeyUnavailableError
from .xmlutils import parse_xml_value

_LOGGER = logging.getLogger(__name__)

PUBLIC_KEY_PATH = "/api/webserver/publickey"
DEFAULT_PUBLIC_EXPONENT = "010001"
KEY_SIZE = 256
#: Longest OAEP-SHA1 message for a 2048-bit key
MAX_MESSAGE_LENGTH = KEY_SIZE - 2 * 20 - 2

_FIELD_ESCAPES = str.maketrans(
    {
        "&": "&amp;",
        "'": "&#39;",
        '"': "&quot;",
        "<": "&lt;",
        ">": "&gt;",
        "/": "&#x2F;",
        "(": "&#40;",
        ")": "&#41;",
    }
)


def escape_field(plaintext: str) -> str:
    """Escape a value with the web UI's entity table."""
    return plaintext.translate(_FIELD_ESCAPES)


@dataclass(frozen=True)
class PublicKey:
    """Hex encoded RSA modulus and exponent published by the device."""

    n: str
    e: str = DEFAULT_PUBLIC_EXPONENT

    @classmethod
    def from_response(cls, xml: str) -> PublicKey:
        """Parse the publickey response."""
        n = parse_xml_value(xml, "encpubkeyn")
        if not n:
            raise PublicKeyUnavailableError("Device did not publish a public key")
        e = parse_xml_value(xml, "encpubkeye") or DEFAULT_PUBLIC_EXPONENT
        return cls(n, e)

    def to_rsa(self) -> rsa.RSAPublicKey:
        """Return the key as a cryptography public key."""
        try:
            numbers = rsa.RSAPublicNumbers(int(self.e, 16), int(self.n, 16))
            key = numbers.public_key()
        except ValueError as ex:
            raise PublicKeyUnavailableError(f"Invalid public key: {ex}") from ex
        if key.key_size != KEY_SIZE * 8:
            raise PublicKeyUnavailableError(
                f"Unsupported public key size {key.key_size}, "
                f"expected {KEY_SIZE * 8}"
            )
        return key


class FieldEncryptor:
    """Encrypts settings fields with a device public key."""

    def __init__(self, public_key: PublicKey) -> None:
        self._public_key = public_key
        self._rsa_key = public_key.to_rsa()
        _LOGGER.debug("Using public key with exponent %s", public_key.e)

    @property
    def public_key(self) -> PublicKey:
        """The key fields are encrypted with."""
        return self._public_key

    def encrypt(self, plaintext: str) -> str:
        """Return the 512 character hex ciphertext of a field value."""
        # The OAEP message is the ASCII of the base64 text
        message = base64.b64encode(escape_field(plaintext).encode())
        if len(message) > MAX_MESSAGE_LENGTH:
            raise FieldEncryptionError(
                f"Field too long to encrypt: {len(message)} encoded bytes, "
                f"maximum {MAX_MESSAGE_LENGTH}"
            )
        try:
            ciphertext = self._rsa_key.encrypt(
                message,
                asymmetric_padding.OAEP(
                    mgf=asymmetric_padding.MGF1(algorithm=hashes.SHA1()),  # noqa: S303
                    algorithm=hashes.SHA1(),  # noqa: S303
                    label=None,
                ),
            )
        except ValueError as ex:
            raise FieldEncryptionError(f"Unable to encrypt field: {ex}") from ex
        return ciphertext.hex()


def encrypt_field(
    plaintext: str,
    public_key_n: str,
    public_key_e: str = DEFAULT_PUBLIC_EXPONENT,
) -> str:
    """Encrypt a field value with a hex encoded public key."""
    if not public_key_n:
        raise PublicKeyUnavailableError("No public key modulus supplied")
    encryptor = FieldEncryptor(
        PublicKey(public_key_n, public_key_e or DEFAULT_PUBLIC_EXPONENT)
    )
    return encryptor.encrypt(plaintext)
