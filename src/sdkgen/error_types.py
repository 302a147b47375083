from __future__ import annotations

from .ir import ErrorDeclaration, literal_of, literal_to_python, optional_inner
from .registry import TypeRegistry
from .scope import Scope
from .type_mapper import map_type
from .writer import FileWriter


class ErrorWriter:
    """Writes one exception class per declared error into a package's ``errors`` module."""

    def __init__(self, registry: TypeRegistry, writer: FileWriter, module: str) -> None:
        self._registry = registry
        self._writer = writer
        self._module = module

    @property
    def _scope(self) -> Scope:
        return self._writer.scope

    def write(self, error_ids: list[str]) -> None:
        for error_id in error_ids:
            declaration = self._registry.resolve_error(error_id)
            name = self._scope.declare(self._registry.class_name_for_error(error_id))
            self._write_error(declaration, name)

    def _write_error(self, declaration: ErrorDeclaration, name: str) -> None:
        core = self._scope.add_import(f"{self._registry.package}.core")
        typing_module = self._scope.add_import("typing")
        writer = self._writer
        body_type = declaration.type
        if body_type is not None:
            annotation = map_type(body_type, self._registry, self._scope, self._module)
            if optional_inner(body_type) is None:
                annotation = f"{annotation} | None"
        else:
            annotation = "None"

        writer.line()
        writer.line()
        writer.line(f"class {name}({core}.ApiError):")
        with writer.indent():
            writer.docstring(declaration.docs)
            writer.line(f"STATUS_CODE = {declaration.status_code}")
            writer.line()
            writer.line(
                f"def __init__(self, body: {annotation} = None, api_error: {core}.ApiError | None = None) -> None:"
            )
            with writer.indent():
                writer.line("self.api_error = api_error")
                writer.line(f"super().__init__({declaration.status_code}, body)")
            writer.line()
            writer.line("@classmethod")
            writer.line(
                f"def from_json(cls, data: {typing_module}.Any, api_error: {core}.ApiError | None = None) -> {name}:"
            )
            with writer.indent():
                writer.docstring(
                    "Decode the error body from raw JSON text, or from an already parsed value.\n\n"
                    "Raises ``ValueError`` when the body does not match the declared type."
                )
                self._write_decode(declaration)
            writer.line()
            writer.line("def to_json(self) -> bytes:")
            with writer.indent():
                pydantic_core = self._scope.add_import("pydantic_core")
                writer.line(f"return {pydantic_core}.to_json(self.body, by_alias=True)")
            writer.line()
            writer.line(f"def unwrap(self) -> {core}.ApiError | None:")
            with writer.indent():
                writer.line("return self.api_error")

    def _write_decode(self, declaration: ErrorDeclaration) -> None:
        writer = self._writer
        body_type = declaration.type
        if body_type is None:
            writer.line("return cls(None, api_error)")
            return
        json_module = self._scope.add_import("json")
        writer.line("if isinstance(data, (bytes, bytearray, str)):")
        with writer.indent():
            writer.line(f"data = {json_module}.loads(data) if data.strip() else None")
        inner = optional_inner(body_type)
        if inner is not None:
            writer.line("if data is None:")
            with writer.indent():
                writer.line("return cls(None, api_error)")
        literal = literal_of(inner if inner is not None else body_type)
        if literal is not None:
            expected = literal_to_python(literal)
            writer.line(f"if data != {expected}:")
            with writer.indent():
                writer.line(f'raise ValueError("expected error body " + repr({expected}))')
            writer.line("return cls(data, api_error)")
            return
        pydantic_module = self._scope.add_import("pydantic")
        annotation = map_type(body_type, self._registry, self._scope, self._module)
        writer.line(f"return cls({pydantic_module}.TypeAdapter({annotation}).validate_python(data), api_error)")
