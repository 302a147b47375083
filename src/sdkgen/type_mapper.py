from __future__ import annotations

from .errors import UnsupportedTypeShapeError
from .ir import (
    BooleanLiteral,
    ContainerTypeReference,
    ListContainer,
    LiteralContainer,
    MapContainer,
    NamedTypeReference,
    NumberLiteral,
    OptionalContainer,
    PrimitiveType,
    PrimitiveTypeReference,
    SetContainer,
    StringLiteral,
    TypeReference,
    UnknownTypeReference,
)
from .registry import TypeRegistry
from .scope import Scope

_BUILTIN_PRIMITIVES: dict[PrimitiveType, str] = {
    PrimitiveType.STRING: "str",
    PrimitiveType.INTEGER: "int",
    PrimitiveType.LONG: "int",
    PrimitiveType.UINT: "int",
    PrimitiveType.UINT_64: "int",
    PrimitiveType.BIG_INTEGER: "int",
    PrimitiveType.FLOAT: "float",
    PrimitiveType.DOUBLE: "float",
    PrimitiveType.BOOLEAN: "bool",
}

_IMPORTED_PRIMITIVES: dict[PrimitiveType, tuple[str, str]] = {
    PrimitiveType.DATE: ("datetime", "date"),
    PrimitiveType.DATE_TIME: ("datetime", "datetime"),
    PrimitiveType.UUID: ("uuid", "UUID"),
    PrimitiveType.BASE_64: ("pydantic", "Base64Bytes"),
}


def map_primitive(primitive: PrimitiveType, scope: Scope) -> str:
    builtin = _BUILTIN_PRIMITIVES.get(primitive)
    if builtin is not None:
        return builtin
    module, name = _IMPORTED_PRIMITIVES[primitive]
    return f"{scope.add_import(module)}.{name}"


def map_type(
    type_reference: TypeReference,
    registry: TypeRegistry,
    scope: Scope,
    import_path: str = "",
) -> str:
    """Render the Python annotation for ``type_reference``.

    Named types living in ``import_path`` (the module being written) are referenced
    by their bare class name; every other named type goes through ``scope``.
    """
    if isinstance(type_reference, PrimitiveTypeReference):
        return map_primitive(type_reference.primitive, scope)
    if isinstance(type_reference, NamedTypeReference):
        module = registry.module_for_type(type_reference.type_id)
        class_name = registry.class_name_for_type(type_reference.type_id)
        if module == import_path:
            return class_name
        return f"{scope.add_import(module)}.{class_name}"
    if isinstance(type_reference, UnknownTypeReference):
        return f"{scope.add_import('typing')}.Any"
    if isinstance(type_reference, ContainerTypeReference):
        container = type_reference.container
        if isinstance(container, OptionalContainer):
            return f"{map_type(container.value_type, registry, scope, import_path)} | None"
        if isinstance(container, ListContainer):
            return f"list[{map_type(container.value_type, registry, scope, import_path)}]"
        if isinstance(container, SetContainer):
            return f"set[{map_type(container.value_type, registry, scope, import_path)}]"
        if isinstance(container, MapContainer):
            key = map_type(container.key_type, registry, scope, import_path)
            value = map_type(container.value_type, registry, scope, import_path)
            return f"dict[{key}, {value}]"
        if isinstance(container, LiteralContainer):
            literal = container.literal
            if isinstance(literal, StringLiteral):
                return "str"
            if isinstance(literal, BooleanLiteral):
                return "bool"
            if isinstance(literal, NumberLiteral):
                return "float" if isinstance(literal.number, float) else "int"
        raise UnsupportedTypeShapeError("<container>", type(container).__name__)
    raise UnsupportedTypeShapeError("<reference>", type(type_reference).__name__)
