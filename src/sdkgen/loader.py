from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import IrLoadError
from .ir import IntermediateRepresentation

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = {".yaml", ".yml"}


def _to_builtin(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _to_builtin(v) for k, v in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_to_builtin(v) for v in value]
    return value


def _load_yaml(path: Path) -> dict[str, Any]:
    yaml = YAML(typ="safe")
    with path.open("r", encoding="utf-8") as file:
        data = yaml.load(file)
    return _to_builtin(data)


def _load_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as file:
        return json.load(file)


def load_document(path: Path) -> dict[str, Any]:
    """Read a JSON or YAML document into plain builtins, keyed off the file suffix."""
    try:
        if path.suffix.lower() in _YAML_SUFFIXES:
            data = _load_yaml(path)
        else:
            data = _load_json(path)
    except FileNotFoundError as exc:
        raise IrLoadError(str(path), "file not found") from exc
    except (json.JSONDecodeError, YAMLError) as exc:
        raise IrLoadError(str(path), f"not a valid document: {exc}") from exc
    if not isinstance(data, dict):
        raise IrLoadError(str(path), "top-level value must be an object")
    return data


def parse_ir(data: Mapping[str, Any], *, source: str = "<memory>") -> IntermediateRepresentation:
    try:
        return IntermediateRepresentation.model_validate(data)
    except ValidationError as exc:
        raise IrLoadError(source, str(exc)) from exc


def load_ir(path: Path) -> IntermediateRepresentation:
    data = load_document(path)
    ir = parse_ir(data, source=str(path))
    logger.debug(
        "loaded IR %s: %d types, %d errors, %d services",
        path,
        len(ir.types),
        len(ir.errors),
        len(ir.services),
    )
    return ir
