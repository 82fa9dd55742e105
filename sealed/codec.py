"""
The ENCv1 sealed value format.

A sealed value is 'ENCv1:<nonce>:<ciphertext>', where both fields are standard padded base64. The
ciphertext is ChaCha20-Poly1305 output (including the 16 byte tag) using the variable's name as
associated data, so a value copied to another variable no longer decrypts.

Never log keys, plaintexts, or the errors raised by the AEAD.
"""

import base64
import binascii
import logging
import os
import typing

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from .secrets import SecretBytes
from .utils import CryptoError

log = logging.getLogger(__name__)

VERSION = 'ENCv1'
PREFIX = f'{VERSION}:'
KEY_LENGTH = 32
NONCE_LENGTH = 12

DECRYPTION_FAILED = "decryption failed (bad key or data)"


def looks_sealed(value: str) -> bool:
    """Check if a value starts with the ENCv1 prefix. It may still be malformed."""
    return value.startswith(PREFIX)


def decode_key(encoded: SecretBytes) -> SecretBytes:
    """Decode a base64 key, which must be exactly 32 bytes."""
    try:
        key = SecretBytes.copy(base64.b64decode(encoded.expose(), validate=True))
    except (binascii.Error, ValueError):
        raise CryptoError("invalid base64 key") from None

    if len(key) != KEY_LENGTH:
        key.wipe()
        raise CryptoError("key must be 32 bytes after base64 decode")

    return key


def generate_key() -> SecretBytes:
    """Draw a new random key from the operating system's CSPRNG."""
    try:
        return SecretBytes.copy(os.urandom(KEY_LENGTH))
    except (OSError, NotImplementedError) as error:
        raise CryptoError("failed to generate key") from error


def encode_key(key: SecretBytes) -> SecretBytes:
    """Encode a key as standard base64 without line wrapping."""
    return SecretBytes.copy(base64.b64encode(key.expose()))


def parse(value: str) -> typing.Tuple[bytes, bytes]:
    """Split a sealed value into its nonce and ciphertext."""
    parts = value.split(':', 2)

    if len(parts) != 3 or parts[0] != VERSION:
        raise CryptoError("invalid encrypted value format")

    _, nonce_b64, ciphertext_b64 = parts

    try:
        nonce = base64.b64decode(nonce_b64, validate=True)
    except (binascii.Error, ValueError):
        raise CryptoError("invalid base64 nonce") from None

    if len(nonce) != NONCE_LENGTH:
        raise CryptoError("nonce must be 12 bytes after base64 decode")

    try:
        ciphertext = base64.b64decode(ciphertext_b64, validate=True)
    except (binascii.Error, ValueError):
        raise CryptoError("invalid base64 ciphertext") from None

    return nonce, ciphertext


def cipher(key: SecretBytes) -> ChaCha20Poly1305:
    if len(key) != KEY_LENGTH:
        raise CryptoError("key must be 32 bytes after base64 decode")
    return ChaCha20Poly1305(key.expose())


def encode(key: SecretBytes, var_name: str, plaintext: SecretBytes) -> str:
    """Seal a plaintext for a variable, using a fresh random nonce."""
    aead = cipher(key)

    try:
        nonce = os.urandom(NONCE_LENGTH)
    except (OSError, NotImplementedError) as error:
        raise CryptoError("failed to generate nonce") from error

    try:
        ciphertext = aead.encrypt(nonce, plaintext.expose(), var_name.encode('utf-8'))
    except (ValueError, OverflowError, UnicodeEncodeError):
        raise CryptoError("encryption failed") from None

    log.debug(f"Sealed {len(plaintext)} bytes for {var_name}")
    nonce_b64 = base64.b64encode(nonce).decode('ascii')
    ciphertext_b64 = base64.b64encode(ciphertext).decode('ascii')
    return f'{VERSION}:{nonce_b64}:{ciphertext_b64}'


def decode(key: SecretBytes, var_name: str, value: str) -> SecretBytes:
    """
    Open a sealed value for a variable.

    Every authentication failure raises the same CryptoError, whether the key
    is wrong, the variable was renamed, or the ciphertext was modified.
    """
    nonce, ciphertext = parse(value)
    aead = cipher(key)

    try:
        return SecretBytes.copy(aead.decrypt(nonce, ciphertext, var_name.encode('utf-8')))
    except (InvalidTag, ValueError, UnicodeEncodeError):
        raise CryptoError(DECRYPTION_FAILED) from None
