"""
Read sealed variables from the process environment.

These work like os.environ[name], but understand 'ENCv1:...' values. Decrypting a value needs the
base64 key in SEALED_KEY, which is the only key source used here.

\b
    import sealed.api

    password = sealed.api.var('DATABASE_PASSWORD')
    flag = sealed.api.var_or_plain('FEATURE_FLAG')
    token = sealed.api.var_optional('OPTIONAL_TOKEN')
"""

import os
import typing

from .codec import decode, looks_sealed
from .intake import KEY_ENV, EnvKey
from .utils import CryptoError, MissingKey, MissingVar, NotEncrypted


def unseal(name: str, value: str) -> str:
    key_b64 = os.environ.get(KEY_ENV)
    if not key_b64:
        raise MissingKey(f"{KEY_ENV} is not set")

    with EnvKey(key_b64).read() as key:
        with decode(key, name, value) as plaintext:
            try:
                return plaintext.text()
            except UnicodeDecodeError:
                raise CryptoError("decrypted value is not valid UTF-8") from None


def lookup(name: str) -> str:
    try:
        return os.environ[name]
    except KeyError:
        raise MissingVar(f"environment variable '{name}' is not set") from None


def var(name: str) -> str:
    """
    Read an encrypted variable from the environment.

    The variable must be present and encrypted, use var_or_plain() to allow
    plaintext values to pass through.
    """
    value = lookup(name)
    if not looks_sealed(value):
        raise NotEncrypted(f"environment variable '{name}' is not encrypted")
    return unseal(name, value)


def var_or_plain(name: str) -> str:
    """Read a variable, decrypting it if it is encrypted."""
    value = lookup(name)
    return unseal(name, value) if looks_sealed(value) else value


def var_optional(name: str) -> typing.Optional[str]:
    """Read a variable like var_or_plain(), returning None if it is not set."""
    if name not in os.environ:
        return None
    return var_or_plain(name)
