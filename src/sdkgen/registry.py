from __future__ import annotations

from .casing import safe_ident
from .errors import UnknownTypeError
from .ir import (
    ErrorDeclaration,
    FernFilepath,
    IntermediateRepresentation,
    TypeDeclaration,
)

# Top-level module names the generated package layout already uses.
_LAYOUT_NAMES = {"client", "core", "environments", "errors", "requests", "types"}


def module_path(package: str, fern_filepath: FernFilepath, leaf: str) -> str:
    """Dotted module path for a package directory plus a leaf module name."""
    parts = [package]
    for index, part in enumerate(fern_filepath.all_parts):
        segment = safe_ident(part.snake_case)
        if index == 0 and segment in _LAYOUT_NAMES:
            segment += "_"
        parts.append(segment)
    if leaf:
        parts.append(leaf)
    return ".".join(parts)


class TypeRegistry:
    """Read-only id -> declaration lookups over a loaded IR."""

    def __init__(self, ir: IntermediateRepresentation, package: str) -> None:
        self._ir = ir
        self._package = package
        self._types = dict(ir.types)
        self._errors = dict(ir.errors)

    @property
    def ir(self) -> IntermediateRepresentation:
        return self._ir

    @property
    def package(self) -> str:
        return self._package

    def resolve(self, type_id: str) -> TypeDeclaration:
        declaration = self._types.get(type_id)
        if declaration is None:
            raise UnknownTypeError(type_id)
        return declaration

    def resolve_error(self, error_id: str) -> ErrorDeclaration:
        declaration = self._errors.get(error_id)
        if declaration is None:
            raise UnknownTypeError(error_id, kind="error")
        return declaration

    def type_ids(self) -> list[str]:
        return sorted(self._types)

    def error_ids(self) -> list[str]:
        return sorted(self._errors)

    def module_for_type(self, type_id: str) -> str:
        return module_path(self._package, self.resolve(type_id).name.fern_filepath, "types")

    def module_for_error(self, error_id: str) -> str:
        return module_path(self._package, self.resolve_error(error_id).name.fern_filepath, "errors")

    def class_name_for_type(self, type_id: str) -> str:
        return safe_ident(self.resolve(type_id).name.name.pascal_case)

    def class_name_for_error(self, error_id: str) -> str:
        return safe_ident(self.resolve_error(error_id).name.name.pascal_case)
