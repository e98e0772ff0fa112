# Common exceptions for all extraction errors
class UnunityError(Exception):
    """Base exception for all ununity errors."""

    pass


class FormatError(UnunityError):
    """Raised when the package stream is corrupted or has malformed records."""

    pass


class ArchiveEOFError(FormatError):
    """Raised when unexpected EOF is encountered while reading a package."""

    pass


class UnsafePathError(FormatError):
    """Raised when a pathname record points outside the output directory."""

    pass


class ExtractError(UnunityError):
    """Base exception for errors while writing the output tree."""

    pass


class WriteError(ExtractError):
    """Raised when a target file cannot be created or fully written."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class RenameError(ExtractError):
    """Raised when a file cannot be moved to its resolved path."""

    def __init__(self, message: str, source: str, target: str):
        super().__init__(message)
        self.source = source
        self.target = target


class InputError(UnunityError):
    """Raised when the package file is missing or cannot be opened."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class UsageError(UnunityError):
    """Raised when the tool is invoked incorrectly."""

    pass


class PackageNotInstalledError(UnunityError):
    """Raised when a required library is not installed."""

    pass
