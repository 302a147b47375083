"""Generates typed Python client SDKs from an API intermediate representation."""

from __future__ import annotations

from .config import ConfigError, GeneratorConfig, load_config
from .errors import (
    GenerationError,
    IrLoadError,
    NamingConflictError,
    UnknownTypeError,
    UnsupportedRequestBodyError,
    UnsupportedResponseTypeError,
    UnsupportedTypeShapeError,
)
from .generator import Generator, generate, write_files
from .loader import load_ir, parse_ir
from .writer import GeneratedFile

__all__ = [
    "ConfigError",
    "GeneratedFile",
    "GenerationError",
    "Generator",
    "GeneratorConfig",
    "IrLoadError",
    "NamingConflictError",
    "UnknownTypeError",
    "UnsupportedRequestBodyError",
    "UnsupportedResponseTypeError",
    "UnsupportedTypeShapeError",
    "generate",
    "load_config",
    "load_ir",
    "parse_ir",
    "write_files",
]
