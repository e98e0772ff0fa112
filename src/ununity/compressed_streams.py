import gzip
import logging
import zlib
from typing import TYPE_CHECKING, BinaryIO, Optional

from ununity.config import UnunityConfig
from ununity.exceptions import (
    ArchiveEOFError,
    FormatError,
    InputError,
    PackageNotInstalledError,
    UnunityError,
)
from ununity.io_helpers import ExceptionTranslatingIO

if TYPE_CHECKING:
    import rapidgzip
else:
    try:
        import rapidgzip
    except ImportError:
        rapidgzip = None

logger = logging.getLogger(__name__)


def _translate_gzip_exception(e: Exception) -> Optional[UnunityError]:
    if isinstance(e, gzip.BadGzipFile):
        return FormatError(f"Error reading GZIP stream: {repr(e)}")
    elif isinstance(e, zlib.error):
        return FormatError(f"GZIP stream is corrupted: {repr(e)}")
    elif isinstance(e, EOFError):
        return ArchiveEOFError(f"GZIP stream is truncated: {repr(e)}")
    elif isinstance(e, OSError):
        return InputError(f"Error reading package: {repr(e)}")
    return None


def open_gzip_stream(source: str | BinaryIO) -> BinaryIO:
    if isinstance(source, str):
        return ExceptionTranslatingIO(
            lambda: gzip.open(source, mode="rb"), _translate_gzip_exception
        )
    return ExceptionTranslatingIO(
        gzip.GzipFile(fileobj=source, mode="rb"), _translate_gzip_exception
    )


def _translate_rapidgzip_exception(e: Exception) -> Optional[UnunityError]:
    exc_text = str(e)
    if isinstance(e, RuntimeError) and "IsalInflateWrapper" in exc_text:
        return FormatError(f"Error reading RapidGZIP stream: {repr(e)}")
    elif isinstance(e, ValueError) and "Mismatching CRC32" in exc_text:
        return FormatError(f"Error reading RapidGZIP stream: {repr(e)}")
    elif isinstance(e, ValueError) and "Failed to detect a valid file format" in exc_text:
        return FormatError(f"Not a GZIP stream: {repr(e)}")
    elif (
        isinstance(e, ValueError)
        and "End of file encountered when trying to read zero-terminated string"
        in exc_text
    ):
        return ArchiveEOFError(f"Possibly truncated GZIP stream: {repr(e)}")
    elif isinstance(e, EOFError):
        return ArchiveEOFError(f"GZIP stream is truncated: {repr(e)}")
    elif isinstance(e, (RuntimeError, ValueError)):
        return FormatError(f"Error reading RapidGZIP stream: {repr(e)}")
    elif isinstance(e, OSError):
        return InputError(f"Error reading package: {repr(e)}")
    return None


def open_rapidgzip_stream(source: str | BinaryIO) -> BinaryIO:
    if rapidgzip is None:
        raise PackageNotInstalledError(
            "rapidgzip package is not installed, required for use_rapidgzip"
        ) from None

    return ExceptionTranslatingIO(
        lambda: rapidgzip.open(source, parallelization=1),
        _translate_rapidgzip_exception,
    )


def open_stream(source: str | BinaryIO, config: UnunityConfig) -> BinaryIO:
    """Open the decompressed view of a gzip-compressed package."""
    if config.use_rapidgzip:
        logger.debug(f"Opening {source} with rapidgzip")
        return open_rapidgzip_stream(source)

    logger.debug(f"Opening {source} with gzip")
    return open_gzip_stream(source)
