import functools
import logging
import os
import pathlib
import typing

import click

from . import __doc__, __version__
from .codec import decode, encode, encode_key, generate_key, looks_sealed
from .envfile import EnvFile
from .intake import select_key_source, select_value_source
from .utils import ArgError, CryptoError, EnvFileError, VarNotFound, is_git_ignored

log = logging.getLogger(__name__)

KEY_SOURCES = "--key, --key-file, --key-stdin, or set SEALED_KEY"


@functools.lru_cache()
def rel(path: pathlib.Path) -> str:
    """
    Convert a path to a relative Path.

    Returns a string as these should only be used for presentation.
    """
    return os.path.relpath(path.as_posix(), pathlib.Path.cwd().as_posix())


class PathType(click.Path):
    def convert(self, value, param, ctx):
        return pathlib.Path(super().convert(value, param, ctx))


var_name_argument = click.argument(
    'var_name',
    metavar='VAR_NAME',
    type=click.STRING,
    required=True)

env_file_option = click.option(
    '-e', '--env-file',
    type=PathType(),
    envvar='SEALED_ENV_FILE',
    default='.env',
    show_default=True,
    help="Path to the env file.")


def key_options(func):
    """Add the key source options, which are mutually exclusive with each other and SEALED_KEY."""
    options = (
        click.option(
            '-k', '--key',
            metavar='BASE64',
            type=click.STRING,
            help="Read the key from a base64 argument."),
        click.option(
            '-K', '--key-file',
            type=PathType(),
            help="Read the base64 key from a file."),
        click.option(
            '-S', '--key-stdin',
            default=False,
            is_flag=True,
            help="Read the base64 key from stdin."),
    )
    for option in reversed(options):
        func = option(func)
    return func


@click.group(help=__doc__)
@click.option(
    '-d', '--debug', 'debug',
    default=False,
    is_flag=True,
    help="Enable debug logging.")
def main(debug: bool):
    logging.basicConfig(level=(logging.DEBUG if debug else logging.WARNING))


@main.command()
def version():
    """Show the application version."""
    click.echo(f"sealed {__version__}")


@main.command(name='set')
@var_name_argument
@click.option(
    '-s', '--stdin',
    default=False,
    is_flag=True,
    help="Read the plaintext value from stdin.")
@click.option(
    '-v', '--value',
    metavar='STRING',
    type=click.STRING,
    help="Read the plaintext value from argv (requires --allow-argv).")
@click.option(
    '-f', '--value-file',
    type=PathType(),
    help="Read the plaintext value from a file.")
@click.option(
    '-a', '--allow-argv',
    default=False,
    is_flag=True,
    help="Allow --value, which exposes the plaintext to other users of this system.")
@key_options
@env_file_option
def set_(
        var_name: str,
        stdin: bool,
        value: typing.Optional[str],
        value_file: typing.Optional[pathlib.Path],
        allow_argv: bool,
        key: typing.Optional[str],
        key_file: typing.Optional[pathlib.Path],
        key_stdin: bool,
        env_file: pathlib.Path):
    """
    Encrypt a value and store it in the env file.

    The value is stored as 'VAR_NAME=ENCv1:<nonce>:<ciphertext>', replacing
    every existing binding of VAR_NAME or appending a new one.

    \b
    Value input: exactly one of --stdin, --value (with --allow-argv), or --value-file.
    Key input: exactly one of --key, --key-file, --key-stdin, or SEALED_KEY.
    """
    if stdin and key_stdin:
        raise ArgError(
            "stdin may be used only once; --stdin and --key-stdin cannot be used together")

    value_source = select_value_source(stdin, value, value_file, allow_argv)
    key_source = select_key_source(key, key_file, key_stdin)
    if key_source is None:
        raise ArgError(f"key required; provide {KEY_SOURCES}")

    with value_source.read() as plaintext, key_source.read() as secret_key:
        sealed = encode(secret_key, var_name, plaintext)

    EnvFile(env_file).upsert(var_name, sealed)
    log.info(f"Stored {var_name} in {rel(env_file)}")


@main.command()
@var_name_argument
@env_file_option
@click.option(
    '-r', '--reveal',
    default=False,
    is_flag=True,
    help="Print the decrypted plaintext to stdout.")
@key_options
def get(
        var_name: str,
        env_file: pathlib.Path,
        reveal: bool,
        key: typing.Optional[str],
        key_file: typing.Optional[pathlib.Path],
        key_stdin: bool):
    """
    Read a variable from the env file.

    Plaintext values are printed as they are. Encrypted values need a key
    (from --key, --key-file, --key-stdin, or SEALED_KEY) and are only printed
    with --reveal.
    """
    value = EnvFile(env_file).read(var_name)
    if value is None:
        raise VarNotFound(f"variable '{var_name}' not found in {env_file}")

    if not looks_sealed(value):
        click.echo(value, color=True)
        return

    key_source = select_key_source(key, key_file, key_stdin)
    if key_source is None:
        raise CryptoError(f"encrypted value requires a key; provide {KEY_SOURCES}")

    with key_source.read() as secret_key, decode(secret_key, var_name, value) as plaintext:
        if not reveal:
            click.echo("value is encrypted; use --reveal to print plaintext", err=True)
            return

        try:
            text = plaintext.text()
        except UnicodeDecodeError:
            raise CryptoError("decrypted value is not valid UTF-8") from None

        click.echo(text, color=True)


@main.command()
@click.option(
    '-o', '--out-file',
    type=PathType(),
    help="Write the base64 key to a file instead of stdout.")
def keygen(out_file: typing.Optional[pathlib.Path]):
    """
    Generate a new random key.

    The key is 32 random bytes, printed as base64. Keep it out of version
    control, and provide it to other commands through SEALED_KEY.
    """
    with generate_key() as secret_key, encode_key(secret_key) as encoded:
        if out_file is None:
            click.echo(encoded.text())
            return

        try:
            fd = os.open(out_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, 'wb') as f:
                f.write(encoded.expose())
                f.write(b'\n')
            out_file.chmod(0o600)
        except OSError as error:
            raise EnvFileError(f"failed to write key file {out_file}: {error}") from error

    log.info(f"Wrote a new key to {rel(out_file)}")

    if not is_git_ignored(out_file):
        click.secho(
            f"Key file {rel(out_file)} is not ignored by git - "
            f"add it to .gitignore or move it outside of the repository",
            fg='yellow',
            err=True)