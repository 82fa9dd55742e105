import base64
import os
import pathlib
import typing

import click.testing
import pytest

import sealed.cli
from sealed.secrets import SecretBytes


@pytest.fixture(autouse=True)
def environ(monkeypatch):
    monkeypatch.delenv('SEALED_KEY', raising=False)
    monkeypatch.delenv('SEALED_ENV_FILE', raising=False)
    return monkeypatch


@pytest.fixture()
def run():
    def run_func(
            arguments: typing.Sequence[str],
            input: typing.Optional[str] = None) -> click.testing.Result:
        assert all(isinstance(arg, str) for arg in arguments)
        runner = click.testing.CliRunner()
        return runner.invoke(sealed.cli.main, list(arguments), input=input)

    return run_func


@pytest.fixture()
def invoke(run):
    def invoke_func(
            arguments: typing.Sequence[str],
            input: typing.Optional[str] = None) -> click.testing.Result:
        result = run(arguments, input)
        if result.exit_code != 0:
            message = f"Command sealed {' '.join(arguments)} failed: {result.output}"
            raise Exception(message) from result.exception
        return result

    return invoke_func


@pytest.fixture()
def key() -> str:
    return base64.b64encode(os.urandom(32)).decode('ascii')


@pytest.fixture()
def other_key(key) -> str:
    other = key
    while other == key:
        other = base64.b64encode(os.urandom(32)).decode('ascii')
    return other


@pytest.fixture()
def secret_key(key) -> SecretBytes:
    return SecretBytes.copy(base64.b64decode(key))


@pytest.fixture()
def env_file(tmp_path) -> pathlib.Path:
    return tmp_path / '.env'
