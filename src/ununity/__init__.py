from ununity.config import (
    UnunityConfig,
    default_config,
    get_default_config,
    set_default_config,
    set_default_config_fields,
)
from ununity.core import default_output_dir, extract_package
from ununity.exceptions import (
    ArchiveEOFError,
    ExtractError,
    FormatError,
    InputError,
    PackageNotInstalledError,
    RenameError,
    UnsafePathError,
    UnunityError,
    UsageError,
    WriteError,
)
from ununity.package_reader import PackageReader, classify_entry, open_package
from ununity.resolver import Resolver, extract
from ununity.types import Entry, EntryKind, ExtractionResult

__all__ = [
    # Core
    "extract_package",
    "default_output_dir",
    "open_package",
    "PackageReader",
    "classify_entry",
    "Resolver",
    "extract",
    # Types
    "Entry",
    "EntryKind",
    "ExtractionResult",
    # Config
    "UnunityConfig",
    "default_config",
    "get_default_config",
    "set_default_config",
    "set_default_config_fields",
    # Exceptions
    "UnunityError",
    "FormatError",
    "ArchiveEOFError",
    "UnsafePathError",
    "ExtractError",
    "WriteError",
    "RenameError",
    "InputError",
    "UsageError",
    "PackageNotInstalledError",
]

__version__ = "0.1.0"
