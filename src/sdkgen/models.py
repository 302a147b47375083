"""Renders named IR types as pydantic models in a package's ``types`` module.

Classes come first, ordered so base classes precede subclasses. Aliases and unions
are plain assignments evaluated at import time, so they follow the classes in
dependency order. Every model is rebuilt at the end of the module so annotations
naming types declared further down resolve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .casing import safe_field_name, safe_ident
from .errors import UnsupportedTypeShapeError
from .ir import (
    AliasTypeDeclaration,
    BooleanLiteral,
    ContainerTypeReference,
    EnumTypeDeclaration,
    ListContainer,
    LiteralValue,
    MapContainer,
    NamedTypeReference,
    NoProperties,
    ObjectProperty,
    ObjectTypeDeclaration,
    OptionalContainer,
    SamePropertiesAsObject,
    SetContainer,
    SingleProperty,
    StringLiteral,
    TypeDeclaration,
    TypeReference,
    UndiscriminatedUnionTypeDeclaration,
    UnionTypeDeclaration,
    UnknownTypeReference,
    literal_of,
    literal_to_python,
    optional_inner,
)
from .registry import TypeRegistry
from .scope import Scope
from .type_mapper import map_type
from .writer import FileWriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiteralMember:
    attribute: str
    wire_value: str
    literal: LiteralValue


def literal_python_type(literal: LiteralValue) -> str:
    if isinstance(literal, StringLiteral):
        return "str"
    if isinstance(literal, BooleanLiteral):
        return "bool"
    return "float" if isinstance(literal.number, float) else "int"


def write_literal_properties(writer: FileWriter, literals: list[LiteralMember]) -> None:
    for member in literals:
        writer.line()
        writer.line("@property")
        writer.line(f"def {member.attribute}(self) -> {literal_python_type(member.literal)}:")
        with writer.indent():
            writer.line(f"return {literal_to_python(member.literal)}")


def write_literal_validator(writer: FileWriter, literals: list[LiteralMember]) -> None:
    """A before-validator that rejects a literal field carrying any other value.

    A missing literal is accepted; the constant is implied.
    """
    pydantic_module = writer.scope.add_import("pydantic")
    typing_module = writer.scope.add_import("typing")
    writer.line()
    writer.line(f'@{pydantic_module}.model_validator(mode="before")')
    writer.line("@classmethod")
    writer.line(f"def _check_literals(cls, data: {typing_module}.Any) -> {typing_module}.Any:")
    with writer.indent():
        writer.line("if not isinstance(data, dict):")
        with writer.indent():
            writer.line("return data")
        writer.line("data = dict(data)")
        for member in literals:
            expected = literal_to_python(member.literal)
            wire = repr(member.wire_value)
            writer.line(f"if {wire} in data and data.pop({wire}) != {expected}:")
            with writer.indent():
                writer.line(f'raise ValueError("expected {member.wire_value} to be " + repr({expected}))')
        writer.line("return data")


def write_literal_serializer(writer: FileWriter, literals: list[LiteralMember]) -> None:
    pydantic_module = writer.scope.add_import("pydantic")
    typing_module = writer.scope.add_import("typing")
    writer.line()
    writer.line(f'@{pydantic_module}.model_serializer(mode="wrap")')
    writer.line(
        f"def _add_literals(self, handler: {pydantic_module}.SerializerFunctionWrapHandler)"
        f" -> {typing_module}.Any:"
    )
    with writer.indent():
        writer.line("data = handler(self)")
        writer.line("if isinstance(data, dict):")
        with writer.indent():
            for member in literals:
                writer.line(f"data[{member.wire_value!r}] = {literal_to_python(member.literal)}")
        writer.line("return data")


def field_line(
    writer: FileWriter,
    name: str,
    annotation: str,
    *,
    wire_value: str | None = None,
    optional: bool = False,
    docs: str | None = None,
    exclude: bool = False,
) -> str:
    kwargs: list[str] = []
    if optional:
        kwargs.append("default=None")
    if wire_value is not None and wire_value != name:
        kwargs.append(f"alias={wire_value!r}")
    if exclude:
        kwargs.append("exclude=True")
    if docs:
        kwargs.append(f"description={docs.strip()!r}")
    if not kwargs:
        return f"{name}: {annotation}"
    if kwargs == ["default=None"]:
        return f"{name}: {annotation} = None"
    pydantic_module = writer.scope.add_import("pydantic")
    return f"{name}: {annotation} = {pydantic_module}.Field({', '.join(kwargs)})"


def is_optional_field(type_reference: TypeReference) -> bool:
    return optional_inner(type_reference) is not None or isinstance(type_reference, UnknownTypeReference)


def model_members() -> Scope:
    members = Scope()
    members.declare("model_config")
    return members


def inherited_literals(registry: TypeRegistry, type_ids: list[str]) -> list[LiteralMember]:
    """Literal properties of the given object types and everything they extend."""
    found: list[LiteralMember] = []
    for type_id in type_ids:
        shape = registry.resolve(type_id).shape
        if not isinstance(shape, ObjectTypeDeclaration):
            continue
        found.extend(inherited_literals(registry, shape.extends))
        for prop in shape.properties:
            literal = literal_of(prop.value_type)
            if literal is not None:
                found.append(LiteralMember("", prop.name.wire_value, literal))
    return found


def object_attribute(registry: TypeRegistry, type_id: str, wire_value: str) -> str | None:
    """Python attribute the model for ``type_id`` uses for a wire property, searching bases too."""
    shape = registry.resolve(type_id).shape
    if not isinstance(shape, ObjectTypeDeclaration):
        return None
    members = model_members()
    for prop in shape.properties:
        attribute = members.add_local(safe_field_name(prop.name.name.original_name))
        if prop.name.wire_value == wire_value:
            return attribute
    for parent in shape.extends:
        attribute = object_attribute(registry, parent, wire_value)
        if attribute is not None:
            return attribute
    return None


class ModelWriter:
    def __init__(self, registry: TypeRegistry, writer: FileWriter, module: str) -> None:
        self._registry = registry
        self._writer = writer
        self._module = module

    @property
    def _scope(self) -> Scope:
        return self._writer.scope

    def write(self, type_ids: list[str]) -> None:
        logger.debug("writing %d types into %s", len(type_ids), self._module)
        declarations = [self._registry.resolve(type_id) for type_id in type_ids]
        class_names = {d.name.type_id: self._registry.class_name_for_type(d.name.type_id) for d in declarations}
        for name in class_names.values():
            self._scope.declare(name)

        classes = [d for d in declarations if isinstance(d.shape, (ObjectTypeDeclaration, EnumTypeDeclaration))]
        unions = [d for d in declarations if isinstance(d.shape, UnionTypeDeclaration)]
        assignments = [
            d
            for d in declarations
            if isinstance(d.shape, (AliasTypeDeclaration, UndiscriminatedUnionTypeDeclaration, UnionTypeDeclaration))
        ]
        for declaration in declarations:
            if not isinstance(
                declaration.shape,
                (
                    ObjectTypeDeclaration,
                    EnumTypeDeclaration,
                    AliasTypeDeclaration,
                    UnionTypeDeclaration,
                    UndiscriminatedUnionTypeDeclaration,
                ),
            ):
                raise UnsupportedTypeShapeError(declaration.name.type_id, type(declaration.shape).__name__)

        models: list[str] = []
        for declaration in self._order_classes(classes):
            shape = declaration.shape
            if isinstance(shape, EnumTypeDeclaration):
                self._write_enum(declaration, shape, class_names[declaration.name.type_id])
            elif isinstance(shape, ObjectTypeDeclaration):
                self._write_object(declaration, shape, class_names[declaration.name.type_id])
                models.append(class_names[declaration.name.type_id])
        union_variants: dict[str, list[str]] = {}
        for declaration in unions:
            union = declaration.shape
            if not isinstance(union, UnionTypeDeclaration):
                continue
            variants = self._write_union_variants(declaration, union, class_names[declaration.name.type_id])
            union_variants[declaration.name.type_id] = variants
            models.extend(variants)

        ordered = self._order_assignments(assignments)
        if ordered:
            self._writer.line()
            self._writer.line()
        for declaration in ordered:
            name = class_names[declaration.name.type_id]
            shape = declaration.shape
            if isinstance(shape, AliasTypeDeclaration):
                value = map_type(shape.alias_of, self._registry, self._scope, self._module)
            elif isinstance(shape, UndiscriminatedUnionTypeDeclaration):
                value = self._undiscriminated_value(shape)
            else:
                value = self._union_value(shape, union_variants[declaration.name.type_id])
            self._writer.line(f"{name} = {value}")
            if declaration.docs:
                self._writer.docstring(declaration.docs)

        if models:
            self._writer.line()
            for name in models:
                self._writer.line(f"{name}.model_rebuild()")

    def _same_module_named(self, type_id: str) -> bool:
        return self._registry.module_for_type(type_id) == self._module

    def _base_classes(self, type_ids: list[str]) -> list[str]:
        bases: list[str] = []
        for type_id in type_ids:
            declaration = self._registry.resolve(type_id)
            if not isinstance(declaration.shape, ObjectTypeDeclaration):
                raise UnsupportedTypeShapeError(type_id, "extends a non-object type")
            bases.append(map_type(NamedTypeReference(type_id=type_id), self._registry, self._scope, self._module))
        return bases

    def _order_classes(self, declarations: list[TypeDeclaration]) -> list[TypeDeclaration]:
        by_id = {d.name.type_id: d for d in declarations}
        ordered: list[TypeDeclaration] = []
        visiting: set[str] = set()
        done: set[str] = set()

        def visit(declaration: TypeDeclaration) -> None:
            type_id = declaration.name.type_id
            if type_id in done:
                return
            if type_id in visiting:
                raise UnsupportedTypeShapeError(type_id, "circular extends")
            visiting.add(type_id)
            shape = declaration.shape
            if isinstance(shape, ObjectTypeDeclaration):
                for parent in shape.extends:
                    if parent in by_id:
                        visit(by_id[parent])
            visiting.discard(type_id)
            done.add(type_id)
            ordered.append(declaration)

        for declaration in declarations:
            visit(declaration)
        return ordered

    def _eager_references(self, type_reference: TypeReference) -> set[str]:
        if isinstance(type_reference, NamedTypeReference):
            return {type_reference.type_id}
        if isinstance(type_reference, ContainerTypeReference):
            container = type_reference.container
            if isinstance(container, (OptionalContainer, ListContainer, SetContainer)):
                return self._eager_references(container.value_type)
            if isinstance(container, MapContainer):
                return self._eager_references(container.key_type) | self._eager_references(container.value_type)
        return set()

    def _order_assignments(self, declarations: list[TypeDeclaration]) -> list[TypeDeclaration]:
        by_id = {d.name.type_id: d for d in declarations}
        ordered: list[TypeDeclaration] = []
        visiting: set[str] = set()
        done: set[str] = set()

        def dependencies(declaration: TypeDeclaration) -> list[str]:
            shape = declaration.shape
            found: set[str] = set()
            if isinstance(shape, AliasTypeDeclaration):
                found = self._eager_references(shape.alias_of)
            elif isinstance(shape, UndiscriminatedUnionTypeDeclaration):
                for member in shape.members:
                    found |= self._eager_references(member.value_type)
            return sorted(type_id for type_id in found if type_id in by_id)

        def visit(declaration: TypeDeclaration) -> None:
            type_id = declaration.name.type_id
            if type_id in done:
                return
            if type_id in visiting:
                raise UnsupportedTypeShapeError(type_id, "recursive alias")
            visiting.add(type_id)
            for dependency in dependencies(declaration):
                visit(by_id[dependency])
            visiting.discard(type_id)
            done.add(type_id)
            ordered.append(declaration)

        for declaration in declarations:
            visit(declaration)
        return ordered

    def _write_enum(self, declaration: TypeDeclaration, shape: EnumTypeDeclaration, name: str) -> None:
        enum_module = self._scope.add_import("enum")
        members = Scope()
        writer = self._writer
        writer.line()
        writer.line()
        writer.line(f"class {name}(str, {enum_module}.Enum):")
        with writer.indent():
            writer.docstring(declaration.docs)
            if not shape.values:
                writer.line("pass")
            for value in shape.values:
                member = members.add_local(safe_ident(value.name.name.screaming_snake_case))
                writer.line(f"{member} = {value.name.wire_value!r}")
                writer.docstring(value.docs)

    def _write_properties(
        self,
        properties: list[ObjectProperty],
        members: Scope,
        literals: list[LiteralMember],
    ) -> None:
        for prop in properties:
            attribute = members.add_local(safe_field_name(prop.name.name.original_name))
            literal = literal_of(prop.value_type)
            if literal is not None:
                literals.append(LiteralMember(attribute, prop.name.wire_value, literal))
                continue
            annotation = map_type(prop.value_type, self._registry, self._scope, self._module)
            self._writer.line(
                field_line(
                    self._writer,
                    attribute,
                    annotation,
                    wire_value=prop.name.wire_value,
                    optional=is_optional_field(prop.value_type),
                    docs=prop.docs,
                )
            )

    def _model_header(self, name: str, bases: list[str], docs: str | None) -> Scope:
        pydantic_module = self._scope.add_import("pydantic")
        writer = self._writer
        writer.line()
        writer.line()
        writer.line(f"class {name}({', '.join(bases) or f'{pydantic_module}.BaseModel'}):")
        members = model_members()
        with writer.indent():
            writer.docstring(docs)
            writer.line(f'model_config = {pydantic_module}.ConfigDict(populate_by_name=True, extra="allow")')
            writer.line()
        return members

    def _write_literal_hooks(
        self,
        own: list[LiteralMember],
        inherited: list[LiteralMember],
        serialized_only: list[LiteralMember] | None = None,
    ) -> None:
        # Subclass hooks replace the parent's, so they carry the inherited literals too.
        serialized_only = serialized_only or []
        if own:
            write_literal_properties(self._writer, own)
            write_literal_validator(self._writer, inherited + own)
        if own or serialized_only:
            write_literal_serializer(self._writer, inherited + own + serialized_only)

    def _write_object(self, declaration: TypeDeclaration, shape: ObjectTypeDeclaration, name: str) -> None:
        members = self._model_header(name, self._base_classes(shape.extends), declaration.docs)
        literals: list[LiteralMember] = []
        with self._writer.indent():
            self._write_properties(shape.properties, members, literals)
            self._write_literal_hooks(literals, inherited_literals(self._registry, shape.extends))

    def _write_union_variants(
        self,
        declaration: TypeDeclaration,
        shape: UnionTypeDeclaration,
        name: str,
    ) -> list[str]:
        typing_module = self._scope.add_import("typing")
        pydantic_module = self._scope.add_import("pydantic")
        variants: list[str] = []
        for member in shape.types:
            variant = self._scope.add_local(f"{name}_{member.discriminant_value.name.pascal_case}")
            variants.append(variant)
            parents = list(shape.extends)
            if isinstance(member.shape, SamePropertiesAsObject):
                parents.insert(0, member.shape.type_id)
            properties = list(shape.base_properties)
            if isinstance(member.shape, SingleProperty):
                properties.append(ObjectProperty(name=member.shape.name, value_type=member.shape.value_type))
            elif not isinstance(member.shape, (SamePropertiesAsObject, NoProperties)):
                raise UnsupportedTypeShapeError(declaration.name.type_id, type(member.shape).__name__)

            members = self._model_header(variant, self._base_classes(parents), member.docs)
            literals: list[LiteralMember] = []
            with self._writer.indent():
                discriminant = members.add_local(safe_field_name(shape.discriminant.name.original_name))
                wire = member.discriminant_value.wire_value
                annotation = f"{typing_module}.Literal[{wire!r}]"
                if shape.discriminant.wire_value == discriminant:
                    self._writer.line(f"{discriminant}: {annotation} = {wire!r}")
                else:
                    self._writer.line(
                        f"{discriminant}: {annotation} = "
                        f"{pydantic_module}.Field(default={wire!r}, alias={shape.discriminant.wire_value!r})"
                    )
                self._write_properties(properties, members, literals)
                tag = LiteralMember(discriminant, shape.discriminant.wire_value, StringLiteral(string=wire))
                self._write_literal_hooks(literals, inherited_literals(self._registry, parents), [tag])
        return variants

    def _union_value(self, shape: UnionTypeDeclaration, variants: list[str]) -> str:
        typing_module = self._scope.add_import("typing")
        if not variants:
            return f"{typing_module}.Any"
        if len(variants) == 1:
            return variants[0]
        pydantic_module = self._scope.add_import("pydantic")
        discriminant = safe_field_name(shape.discriminant.name.original_name)
        return (
            f"{typing_module}.Annotated[{typing_module}.Union[{', '.join(variants)}], "
            f"{pydantic_module}.Field(discriminator={discriminant!r})]"
        )

    def _undiscriminated_value(self, shape: UndiscriminatedUnionTypeDeclaration) -> str:
        members = [map_type(m.value_type, self._registry, self._scope, self._module) for m in shape.members]
        typing_module = self._scope.add_import("typing")
        if not members:
            return f"{typing_module}.Any"
        if len(members) == 1:
            return members[0]
        return f"{typing_module}.Union[{', '.join(members)}]"
