"""
Containers for key and plaintext bytes.

Python cannot promise that no copy of a value survives, but everything that holds secret material
in this package keeps it in a bytearray that is overwritten with zeros as soon as it is released.
"""

import typing

import attr

from .utils import trim_newlines

CHUNK_SIZE = 4096


def wipe(buffer: bytearray) -> None:
    """Overwrite a buffer with zero bytes in place."""
    buffer[:] = bytes(len(buffer))


@attr.s(eq=False, repr=False)
class SecretBytes:
    """
    Holds secret bytes, zeroing them when released.

    Bytes are only available through expose(). Use as a context manager so
    the buffer is wiped on every exit path:

    \b
        with SecretBytes.copy(data) as secret:
            use(secret.expose())
    """
    _buffer: bytearray = attr.ib(validator=attr.validators.instance_of(bytearray))

    @classmethod
    def copy(cls, data: typing.Union[bytes, bytearray, memoryview]) -> 'SecretBytes':
        return cls(bytearray(data))

    @classmethod
    def from_text(cls, text: str) -> 'SecretBytes':
        return cls(bytearray(text, 'utf-8'))

    @classmethod
    def read(cls, stream: typing.BinaryIO) -> 'SecretBytes':
        """Consume a binary stream to EOF without holding the data in immutable bytes."""
        buffer = bytearray()
        chunk = bytearray(CHUNK_SIZE)
        try:
            while True:
                size = stream.readinto(chunk)
                if not size:
                    break
                buffer += memoryview(chunk)[:size]
        except BaseException:
            wipe(buffer)
            raise
        finally:
            wipe(chunk)
        return cls(buffer)

    def expose(self) -> bytearray:
        return self._buffer

    def trimmed(self) -> 'SecretBytes':
        """
        Return a copy without trailing CR and LF bytes, wiping this one.

        Interior newlines are kept.
        """
        end = trim_newlines(self._buffer)
        trimmed = SecretBytes(self._buffer[:end])
        self.wipe()
        return trimmed

    def text(self) -> str:
        """Decode the bytes as UTF-8, raising UnicodeDecodeError for anything else."""
        return self._buffer.decode('utf-8')

    def wipe(self) -> None:
        wipe(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    def __enter__(self) -> 'SecretBytes':
        return self

    def __exit__(self, *exc_info) -> None:
        self.wipe()

    def __del__(self):
        if isinstance(getattr(self, '_buffer', None), bytearray):
            self.wipe()

    def __repr__(self):
        return f"<SecretBytes: {len(self._buffer)} bytes>"
