from __future__ import annotations

import keyword
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import GenerationError, IrLoadError
from .loader import load_document

_KEYS = {"package": "package", "sdkVersion": "sdk_version", "sdk_version": "sdk_version", "readme": "readme"}


class ConfigError(GenerationError):
    pass


@dataclass(frozen=True)
class GeneratorConfig:
    """Settings for one generation run.

    ``package`` is the import name of the generated SDK. ``sdk_version`` enables the
    platform headers when the IR declares them. ``readme`` toggles README.md.
    """

    package: str
    sdk_version: str | None = None
    readme: bool = True

    def __post_init__(self) -> None:
        if not self.package.isidentifier() or keyword.iskeyword(self.package):
            raise ConfigError(f"package name must be a valid Python identifier: {self.package!r}")


def load_config(path: Path, **overrides: Any) -> GeneratorConfig:
    """Read a YAML or JSON generator config; non-``None`` overrides (CLI flags) win."""
    try:
        data = load_document(path)
    except IrLoadError as exc:
        raise ConfigError(f"invalid generator config {path}: {exc.message}") from exc
    values: dict[str, Any] = {}
    for key, value in data.items():
        field_name = _KEYS.get(key)
        if field_name is None:
            raise ConfigError(f"unknown generator config key {key!r} in {path}")
        values[field_name] = value
    for key, value in overrides.items():
        if value is not None:
            values[key] = value
    if "package" not in values:
        raise ConfigError(f"generator config {path} does not name a package")
    if values.get("sdk_version") is not None:
        values["sdk_version"] = str(values["sdk_version"])
    return GeneratorConfig(**values)
