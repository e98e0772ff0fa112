from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any


@dataclass
class UnunityConfig:
    """Configuration for :func:`ununity.extract_package`."""

    include_meta: bool = True
    """Write ``.meta`` sidecar files next to the assets."""

    use_rapidgzip: bool = False
    """Decompress with ``rapidgzip`` instead of the standard :mod:`gzip` module."""

    allow_unsafe_paths: bool = False
    """Accept pathname records that are absolute or point outside the output dir."""

    check_integrity: bool = True
    """Read the gzip stream to its end after the last record, verifying its trailer."""

    copy_buffer_size: int = 64 * 1024


_default_config_var: contextvars.ContextVar[UnunityConfig] = contextvars.ContextVar(
    "ununity_default_config", default=UnunityConfig()
)


def get_default_config() -> UnunityConfig:
    """Return the current default configuration."""
    return _default_config_var.get()


def set_default_config(config: UnunityConfig) -> None:
    """Set the default configuration for :func:`extract_package`."""
    _default_config_var.set(config)


def set_default_config_fields(**kwargs: Any) -> None:
    """Replace some fields of the default configuration."""
    config = get_default_config()
    config = replace(config, **kwargs)
    set_default_config(config)


@contextmanager
def default_config(config: UnunityConfig | None = None, **kwargs: Any):
    """Temporarily use ``config`` as the default configuration."""
    if config is None:
        config = get_default_config()

    if kwargs:
        config = replace(config, **kwargs)

    token = _default_config_var.set(config)
    try:
        yield
    finally:
        _default_config_var.reset(token)
