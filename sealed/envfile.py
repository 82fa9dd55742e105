"""
Line preserving reads and updates of dotenv files.

Only binding lines ('[whitespace][export ]KEY=VALUE') are interpreted, and values are taken
verbatim from the first '=' to the end of the line. Every other line is written back as it was
read. Reads return the last binding of a variable, as a shell would; updates rewrite every binding
of the variable in place.
"""

import logging
import pathlib
import string
import typing

import attr

from .utils import EnvFileError

log = logging.getLogger(__name__)

EXPORT = 'export '


@attr.s(frozen=True, kw_only=True)
class ParsedLine:
    leading_ws: str = attr.ib()
    export_prefix: bool = attr.ib()
    key: str = attr.ib()
    value: str = attr.ib()

    def render(self, value: str) -> str:
        """Rebuild the line with a new value, keeping its indentation and export prefix."""
        export = EXPORT if self.export_prefix else ''
        return f'{self.leading_ws}{export}{self.key}={value}'


def parse_line(line: str) -> typing.Optional[ParsedLine]:
    """Parse a binding line, returning None for blank lines, comments, and anything else."""
    line = line.rstrip('\r')
    rest = line.lstrip(string.whitespace)

    if not rest or rest.startswith('#'):
        return None

    leading_ws = line[:len(line) - len(rest)]
    export_prefix = rest.startswith(EXPORT)
    if export_prefix:
        rest = rest[len(EXPORT):]

    key, eq, value = rest.partition('=')
    key = key.rstrip(string.whitespace)

    if not eq or not key:
        return None

    return ParsedLine(
        leading_ws=leading_ws,
        export_prefix=export_prefix,
        key=key,
        value=value)


def split_lines(content: str) -> typing.List[str]:
    """Split content on LF, keeping any CR and dropping the empty piece after a final newline."""
    lines = content.split('\n')
    if lines[-1] == '':
        lines.pop()
    return lines


@attr.s(frozen=True)
class EnvFile:
    path: pathlib.Path = attr.ib(converter=pathlib.Path)

    def __str__(self):
        return str(self.path)

    def content(self, missing_ok: bool = False) -> str:
        log.debug(f"Reading env file {self.path}")
        try:
            with self.path.open('r', encoding='utf-8', newline='') as f:
                return f.read()
        except FileNotFoundError as error:
            if missing_ok:
                log.debug(f"Env file {self.path} does not exist yet")
                return ''
            raise EnvFileError(f"failed to read env file {self.path}: {error}") from error
        except (OSError, UnicodeDecodeError) as error:
            raise EnvFileError(f"failed to read env file {self.path}: {error}") from error

    def bindings(self) -> typing.Iterator[ParsedLine]:
        for line in split_lines(self.content()):
            parsed = parse_line(line)
            if parsed is not None:
                yield parsed

    def read(self, var: str) -> typing.Optional[str]:
        """Return the value of the last binding of a variable, or None."""
        value = None
        for parsed in self.bindings():
            if parsed.key == var:
                value = parsed.value
        return value

    def upsert(self, var: str, value: str) -> None:
        """
        Set every binding of a variable to a value, or append one.

        A missing file is created. The written file always ends with one newline.
        """
        lines = split_lines(self.content(missing_ok=True))
        replaced = 0

        for index, line in enumerate(lines):
            parsed = parse_line(line)
            if parsed is not None and parsed.key == var:
                lines[index] = parsed.render(value)
                replaced += 1

        if replaced:
            log.debug(f"Replaced {replaced} binding(s) of {var} in {self.path}")
        else:
            log.debug(f"Appending a binding of {var} to {self.path}")
            lines.append(f'{var}={value}')

        try:
            with self.path.open('w', encoding='utf-8', newline='') as f:
                f.write('\n'.join(lines) + '\n')
        except OSError as error:
            raise EnvFileError(f"failed to write env file {self.path}: {error}") from error
