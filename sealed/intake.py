"""
Each Source produces one secret: a plaintext to seal, or a key.

Sources are selected from command line options. Exactly one value source must be chosen, and at
most one key source may be present; when more than one is, selection fails rather than guessing.
"""

import logging
import os
import pathlib
import typing

import attr
import click

from .codec import decode_key
from .secrets import SecretBytes
from .utils import ArgError

log = logging.getLogger(__name__)

KEY_ENV = 'SEALED_KEY'


def read_stdin() -> SecretBytes:
    try:
        return SecretBytes.read(click.get_binary_stream('stdin'))
    except OSError as error:
        raise ArgError(f"failed to read stdin: {error}") from error


def read_file(path: pathlib.Path, kind: str) -> SecretBytes:
    try:
        with path.open('rb') as f:
            return SecretBytes.read(f)
    except OSError as error:
        raise ArgError(f"failed to read {kind} file {path}: {error}") from error


def require_utf8(secret: SecretBytes, origin: str) -> SecretBytes:
    try:
        secret.text()
    except UnicodeDecodeError:
        secret.wipe()
        raise ArgError(f"{origin} is not valid UTF-8") from None
    return secret


class Source:
    name: typing.ClassVar[str]

    def read(self) -> SecretBytes:
        raise NotImplementedError


class ValueSource(Source):
    """A source of plaintext to seal."""


@attr.s(frozen=True)
class StdinValue(ValueSource):
    name = '--stdin'

    def read(self) -> SecretBytes:
        log.debug("Reading value from stdin")
        return require_utf8(read_stdin().trimmed(), "value from stdin")


@attr.s(frozen=True)
class ArgvValue(ValueSource):
    name = '--value'

    value: str = attr.ib(repr=False)

    def read(self) -> SecretBytes:
        log.debug("Reading value from the command line")
        try:
            return SecretBytes.from_text(self.value)
        except UnicodeEncodeError:
            raise ArgError("value from --value is not valid UTF-8") from None


@attr.s(frozen=True)
class FileValue(ValueSource):
    name = '--value-file'

    path: pathlib.Path = attr.ib(converter=pathlib.Path)

    def read(self) -> SecretBytes:
        log.debug(f"Reading value from {self.path}")
        return require_utf8(read_file(self.path, 'value').trimmed(), f"value file {self.path}")


class KeySource(Source):
    """A source of a base64 key. read() returns the decoded 32 byte key."""

    def encoded(self) -> SecretBytes:
        raise NotImplementedError

    def read(self) -> SecretBytes:
        with self.encoded() as encoded:
            return decode_key(encoded)


@attr.s(frozen=True)
class DirectKey(KeySource):
    name = '--key'

    value: str = attr.ib(repr=False)

    def encoded(self) -> SecretBytes:
        log.debug("Reading key from the command line")
        return SecretBytes.from_text(self.value)


@attr.s(frozen=True)
class FileKey(KeySource):
    name = '--key-file'

    path: pathlib.Path = attr.ib(converter=pathlib.Path)

    def encoded(self) -> SecretBytes:
        log.debug(f"Reading key from {self.path}")
        return read_file(self.path, 'key').trimmed()


@attr.s(frozen=True)
class StdinKey(KeySource):
    name = '--key-stdin'

    def encoded(self) -> SecretBytes:
        log.debug("Reading key from stdin")
        return read_stdin().trimmed()


@attr.s(frozen=True)
class EnvKey(KeySource):
    name = KEY_ENV

    value: str = attr.ib(repr=False)

    def encoded(self) -> SecretBytes:
        log.debug(f"Reading key from ${KEY_ENV}")
        return SecretBytes.from_text(self.value).trimmed()


def select_value_source(
        stdin: bool,
        value: typing.Optional[str],
        value_file: typing.Optional[pathlib.Path],
        allow_argv: bool) -> ValueSource:
    sources: typing.List[ValueSource] = []
    if stdin:
        sources.append(StdinValue())
    if value is not None:
        sources.append(ArgvValue(value))
    if value_file is not None:
        sources.append(FileValue(value_file))

    if len(sources) != 1:
        raise ArgError(
            "value required; choose exactly one of --stdin, --value (with --allow-argv), "
            "or --value-file")

    source, = sources
    if isinstance(source, ArgvValue) and not allow_argv:
        raise ArgError("--value requires --allow-argv")

    return source


def key_sources(
        key: typing.Optional[str],
        key_file: typing.Optional[pathlib.Path],
        key_stdin: bool,
        environ: typing.Optional[typing.Mapping[str, str]] = None) -> typing.List[KeySource]:
    """List every key source that is present, in order of precedence."""
    env_key = (os.environ if environ is None else environ).get(KEY_ENV) or None

    sources: typing.List[KeySource] = []
    if key is not None:
        sources.append(DirectKey(key))
    if key_file is not None:
        sources.append(FileKey(key_file))
    if key_stdin:
        sources.append(StdinKey())
    if env_key is not None:
        sources.append(EnvKey(env_key))
    return sources


def select_key_source(
        key: typing.Optional[str],
        key_file: typing.Optional[pathlib.Path],
        key_stdin: bool,
        environ: typing.Optional[typing.Mapping[str, str]] = None) -> typing.Optional[KeySource]:
    """
    Select the single key source that is present, or None if there are none.

    Having more than one source is an error, even though they have a precedence.
    """
    sources = key_sources(key, key_file, key_stdin, environ)

    if len(sources) > 1:
        log.debug(f"Found key sources {', '.join(s.name for s in sources)}")
        raise ArgError(
            "choose exactly one key source: --key, --key-file, --key-stdin, or SEALED_KEY")

    return sources[0] if sources else None
