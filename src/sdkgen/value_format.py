from __future__ import annotations

from dataclasses import dataclass

from .ir import (
    AliasTypeDeclaration,
    EnumTypeDeclaration,
    NamedTypeReference,
    PrimitiveType,
    PrimitiveTypeReference,
    TypeReference,
    optional_inner,
)
from .registry import TypeRegistry
from .scope import Scope


@dataclass(frozen=True)
class TransportFormat:
    """How to turn a value into the text sent in a URL, query string or header.

    ``prefix + expression + suffix`` always evaluates to a ``str``. ``is_optional``
    means the caller must guard the expression with ``is not None``.
    """

    prefix: str = ""
    suffix: str = ""
    is_optional: bool = False
    is_primitive: bool = False

    def apply(self, expression: str) -> str:
        return f"{self.prefix}{expression}{self.suffix}"


def _format_primitive(primitive: PrimitiveType, scope: Scope) -> tuple[str, str]:
    if primitive in (PrimitiveType.DATE_TIME, PrimitiveType.DATE):
        return "", ".isoformat()"
    if primitive == PrimitiveType.BASE_64:
        return f"{scope.add_import('base64')}.b64encode(", ').decode("ascii")'
    if primitive == PrimitiveType.BOOLEAN:
        return "str(", ").lower()"
    if primitive == PrimitiveType.STRING:
        return "", ""
    return "str(", ")"


def format_for_transport(
    type_reference: TypeReference,
    registry: TypeRegistry,
    scope: Scope,
) -> TransportFormat:
    inner = optional_inner(type_reference)
    if inner is not None:
        nested = format_for_transport(inner, registry, scope)
        return TransportFormat(nested.prefix, nested.suffix, True, nested.is_primitive)
    if isinstance(type_reference, PrimitiveTypeReference):
        prefix, suffix = _format_primitive(type_reference.primitive, scope)
        return TransportFormat(prefix, suffix, False, True)
    if isinstance(type_reference, NamedTypeReference):
        shape = registry.resolve(type_reference.type_id).shape
        if isinstance(shape, EnumTypeDeclaration):
            return TransportFormat("", ".value", False, False)
        if isinstance(shape, AliasTypeDeclaration):
            return format_for_transport(shape.alias_of, registry, scope)
    return TransportFormat("str(", ")", False, False)
