import os

import pytest

import sealed.api
from sealed.codec import encode
from sealed.secrets import SecretBytes
from sealed.utils import CryptoError, MissingKey, MissingVar, NotEncrypted, SealedError


@pytest.fixture()
def sealed_environ(environ, key, secret_key):
    environ.setenv('SEALED_KEY', key)
    environ.setenv('DBPASS', encode(secret_key, 'DBPASS', SecretBytes.from_text('hunter2')))
    environ.setenv('PLAIN', 'hello')
    environ.delenv('NOPE', raising=False)
    return environ


def test_var(sealed_environ):
    assert sealed.api.var('DBPASS') == 'hunter2'


def test_var_missing_key(sealed_environ):
    sealed_environ.delenv('SEALED_KEY')
    with pytest.raises(MissingKey, match='SEALED_KEY is not set'):
        sealed.api.var('DBPASS')


def test_var_empty_key(sealed_environ):
    sealed_environ.setenv('SEALED_KEY', '')
    with pytest.raises(MissingKey):
        sealed.api.var('DBPASS')


def test_var_not_encrypted(sealed_environ):
    with pytest.raises(NotEncrypted, match="environment variable 'PLAIN' is not encrypted"):
        sealed.api.var('PLAIN')


def test_var_missing(sealed_environ):
    with pytest.raises(MissingVar, match="environment variable 'NOPE' is not set"):
        sealed.api.var('NOPE')


def test_var_wrong_key(sealed_environ, other_key):
    sealed_environ.setenv('SEALED_KEY', other_key)
    with pytest.raises(CryptoError, match=r'decryption failed \(bad key or data\)'):
        sealed.api.var('DBPASS')


def test_var_copied_to_another_name(sealed_environ):
    sealed_environ.setenv('OTHER', os.environ['DBPASS'])
    with pytest.raises(CryptoError, match='decryption failed'):
        sealed.api.var('OTHER')


def test_var_invalid_key(sealed_environ):
    sealed_environ.setenv('SEALED_KEY', 'not a key')
    with pytest.raises(CryptoError, match='invalid base64 key'):
        sealed.api.var('DBPASS')


def test_var_not_utf8(sealed_environ, secret_key):
    sealed_environ.setenv('BIN', encode(secret_key, 'BIN', SecretBytes.copy(b'\xff')))
    with pytest.raises(CryptoError, match='not valid UTF-8'):
        sealed.api.var('BIN')


def test_var_or_plain(sealed_environ):
    assert sealed.api.var_or_plain('PLAIN') == 'hello'
    assert sealed.api.var_or_plain('DBPASS') == 'hunter2'


def test_var_or_plain_missing(sealed_environ):
    with pytest.raises(MissingVar):
        sealed.api.var_or_plain('NOPE')


def test_var_or_plain_without_key(sealed_environ):
    sealed_environ.delenv('SEALED_KEY')
    assert sealed.api.var_or_plain('PLAIN') == 'hello'


def test_var_optional(sealed_environ):
    assert sealed.api.var_optional('NOPE') is None
    assert sealed.api.var_optional('PLAIN') == 'hello'
    assert sealed.api.var_optional('DBPASS') == 'hunter2'


def test_var_optional_missing_key(sealed_environ):
    sealed_environ.delenv('SEALED_KEY')
    with pytest.raises(MissingKey):
        sealed.api.var_optional('DBPASS')


def test_errors_share_a_base():
    for error in (CryptoError, MissingKey, MissingVar, NotEncrypted):
        assert issubclass(error, SealedError)


def test_var_key_with_trailing_newline(sealed_environ, key):
    sealed_environ.setenv('SEALED_KEY', f'{key}\r\n')
    assert sealed.api.var('DBPASS') == 'hunter2'
