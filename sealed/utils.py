import logging
import pathlib

import click
import git

log = logging.getLogger(__name__)

NEWLINES = b'\r\n'


def trim_newlines(data: bytearray) -> int:
    """Return the length of data once trailing CR and LF bytes are removed."""
    end = len(data)
    while end and data[end - 1] in NEWLINES:
        end -= 1
    return end


def is_git_ignored(path: pathlib.Path) -> bool:
    """
    Check a path is ignored by the git repository that contains it.

    Paths outside of a git working tree are considered ignored, as there is
    nothing that could commit them. If git is not available the check passes.
    """
    try:
        repo = git.Repo(path.parent, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        return True

    try:
        return bool(repo.ignored(str(path.resolve())))
    except (git.exc.GitCommandNotFound, git.exc.GitCommandError) as error:
        log.debug(f"Skipping git ignore check for {path}: {error}")
        return True


class SealedError(click.ClickException):
    exit_code = 1


class VarNotFound(SealedError):
    exit_code = 1


class CryptoError(SealedError):
    exit_code = 2


class ArgError(SealedError):
    exit_code = 3


class EnvFileError(SealedError):
    exit_code = 4


class MissingVar(SealedError):
    """The requested environment variable is not set."""
    exit_code = 1


class MissingKey(SealedError):
    """SEALED_KEY is needed to decrypt a value but is not set."""
    exit_code = 2


class NotEncrypted(SealedError):
    """The variable is set but is not a sealed value."""
    exit_code = 2
