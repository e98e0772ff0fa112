"""I/O helpers: exception translation for wrapped streams and exact-size copies."""

import gzip
import io
import logging
import tarfile
import zlib
from typing import IO, Any, BinaryIO, Callable, Optional, cast

from ununity.exceptions import UnunityError

logger = logging.getLogger(__name__)

_CAUGHT_EXCEPTIONS = (
    OSError,
    RuntimeError,
    ValueError,
    EOFError,
    zlib.error,
    gzip.BadGzipFile,
    tarfile.TarError,
)


class ExceptionTranslatingIO(io.RawIOBase, BinaryIO):
    """
    Wraps an I/O stream to translate exceptions raised by the underlying library
    into UnunityError subclasses.

    The gzip layer may be provided by the standard library or by rapidgzip, and
    each raises its own exception types for corrupt or truncated data. Wrapping
    the stream keeps the errors seen by the tar reader and by callers consistent.
    """

    def __init__(
        self,
        inner: IO[bytes] | Callable[[], IO[bytes]],
        exception_translator: Callable[[Exception], Optional[UnunityError]],
    ):
        """
        Initialize the ExceptionTranslatingIO wrapper.

        Args:
            inner: The underlying binary stream, or a callable that returns it.
                Exceptions raised by the callable are translated too.
            exception_translator: Takes an exception raised by ``inner`` and
                returns the UnunityError to raise in its place, or None to
                re-raise the original exception.
        """
        super().__init__()
        self._translate = exception_translator
        self._inner: IO[bytes] | None = None

        if callable(inner):
            try:
                self._inner = inner()
            except _CAUGHT_EXCEPTIONS as e:
                self._translate_exception(e)
        else:
            self._inner = inner

    def _translate_exception(self, e: Exception) -> None:
        translated = self._translate(e)
        if translated is not None:
            logger.debug(f"Translated exception: {repr(e)} -> {repr(translated)}")
            raise translated from e

        if not isinstance(e, UnunityError):
            logger.error(f"Unknown exception when reading IO: {e}", exc_info=e)
        raise e

    def read(self, n: int = -1) -> bytes:
        assert self._inner is not None
        try:
            return self._inner.read(n)
        except _CAUGHT_EXCEPTIONS as e:
            self._translate_exception(e)
            return b""  # pragma: no cover - unreachable, _translate_exception always raises

    def readinto(self, b: Any) -> int:
        data = self.read(len(b))
        n = len(data)
        b[:n] = data
        return n

    def tell(self) -> int:
        assert self._inner is not None
        return self._inner.tell()

    def readable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def seekable(self) -> bool:
        return False

    def close(self) -> None:
        try:
            if self._inner is not None:
                self._inner.close()
        except _CAUGHT_EXCEPTIONS as e:
            self._translate_exception(cast(Exception, e))
        super().close()

    def __str__(self) -> str:
        return f"ExceptionTranslatingIO({self._inner!s})"

    def __repr__(self) -> str:
        return f"ExceptionTranslatingIO({self._inner!r})"


def copy_exact(
    src: IO[bytes], dst: IO[bytes], size: int, buffer_size: int = 64 * 1024
) -> int:
    """Copy ``size`` bytes from ``src`` to ``dst``.

    Returns the number of bytes actually copied, which is smaller than ``size``
    only if ``src`` ended early. Errors from either stream propagate.
    """
    remaining = size
    while remaining > 0:
        block = src.read(min(buffer_size, remaining))
        if not block:
            break
        dst.write(block)
        remaining -= len(block)
    return size - remaining


def read_exact(src: IO[bytes], size: int) -> bytes:
    """Read exactly ``size`` bytes, or fewer if the stream ends early."""
    buf = io.BytesIO()
    copy_exact(src, buf, size)
    return buf.getvalue()
