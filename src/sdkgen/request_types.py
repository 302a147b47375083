"""Wrapper request classes, the aggregated argument an endpoint method takes.

Header and query fields never reach the JSON body. The body is serialized with
three different strategies:

* no body: no custom serialization at all;
* inlined body: plain model fields, plus literal hooks only when a body property
  is a literal;
* reference body: the body lives in a single field, and a validate/serialize pair
  always (un)wraps it, even when nothing is a literal.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .casing import safe_field_name, safe_ident
from .ir import (
    FileBodyProperty,
    FileUploadRequest,
    HttpEndpoint,
    HttpRequestBodyReference,
    InlinedRequestBody,
    InlinedRequestBodyProperty,
    LiteralValue,
    NamedTypeReference,
    TypeReference,
    Wrapper,
    literal_of,
    literal_to_python,
)
from .models import (
    LiteralMember,
    field_line,
    inherited_literals,
    is_optional_field,
    model_members,
    write_literal_properties,
    write_literal_serializer,
    write_literal_validator,
)
from .registry import TypeRegistry
from .type_mapper import map_type
from .writer import FileWriter


def file_body_properties(body: FileUploadRequest) -> list[FileBodyProperty]:
    return [prop for prop in body.properties if isinstance(prop, FileBodyProperty)]


def needs_request_parameter(endpoint: HttpEndpoint) -> bool:
    """Whether the endpoint method takes an aggregated request argument.

    Query and header parameters always need one, even next to a file upload
    whose only parts are files.
    """
    if endpoint.sdk_request is None:
        return False
    body = endpoint.request_body
    if body is not None:
        if not isinstance(body, FileUploadRequest) or file_body_properties(body):
            return True
    return bool(endpoint.query_parameters or endpoint.headers)


@dataclass(frozen=True)
class WrapperField:
    attribute: str
    wire_value: str
    type_reference: TypeReference
    literal: LiteralValue | None = None
    allow_multiple: bool = False
    docs: str | None = None


@dataclass
class WrapperPlan:
    """Attribute names of a wrapper request class, shared by its writer and the endpoint."""

    class_name: str
    headers: list[WrapperField] = field(default_factory=list)
    query: list[WrapperField] = field(default_factory=list)
    body: list[WrapperField] = field(default_factory=list)
    reference: WrapperField | None = None
    extends: list[str] = field(default_factory=list)

    def header(self, wire_value: str) -> WrapperField:
        return next(item for item in self.headers if item.wire_value == wire_value)

    def query_parameter(self, wire_value: str) -> WrapperField:
        return next(item for item in self.query if item.wire_value == wire_value)

    def body_property(self, wire_value: str) -> WrapperField:
        return next(item for item in self.body if item.wire_value == wire_value)


def plan_wrapper(endpoint: HttpEndpoint) -> WrapperPlan:
    shape = endpoint.sdk_request.shape if endpoint.sdk_request is not None else None
    if not isinstance(shape, Wrapper):
        raise ValueError(f"endpoint {endpoint.name.original_name} has no wrapper request")
    plan = WrapperPlan(class_name=safe_ident(shape.wrapper_name.pascal_case))
    members = model_members()
    for header in endpoint.headers:
        plan.headers.append(
            WrapperField(
                attribute=members.add_local(safe_field_name(header.name.name.original_name)),
                wire_value=header.name.wire_value,
                type_reference=header.value_type,
                literal=literal_of(header.value_type),
                docs=header.docs,
            )
        )
    for parameter in endpoint.query_parameters:
        plan.query.append(
            WrapperField(
                attribute=members.add_local(safe_field_name(parameter.name.name.original_name)),
                wire_value=parameter.name.wire_value,
                type_reference=parameter.value_type,
                literal=literal_of(parameter.value_type),
                allow_multiple=parameter.allow_multiple,
                docs=parameter.docs,
            )
        )
    body = endpoint.request_body
    properties: list[InlinedRequestBodyProperty] = []
    if isinstance(body, InlinedRequestBody):
        properties = list(body.properties)
        plan.extends = list(body.extends)
    elif isinstance(body, FileUploadRequest):
        properties = list(file_body_properties(body))
    elif isinstance(body, HttpRequestBodyReference):
        plan.reference = WrapperField(
            attribute=members.add_local(safe_field_name(shape.body_key.original_name)),
            wire_value=shape.body_key.original_name,
            type_reference=body.request_body_type,
            literal=literal_of(body.request_body_type),
        )
    for prop in properties:
        plan.body.append(
            WrapperField(
                attribute=members.add_local(safe_field_name(prop.name.name.original_name)),
                wire_value=prop.name.wire_value,
                type_reference=prop.value_type,
                literal=literal_of(prop.value_type),
                docs=prop.docs,
            )
        )
    return plan


class RequestWriter:
    def __init__(self, registry: TypeRegistry, writer: FileWriter, module: str) -> None:
        self._registry = registry
        self._writer = writer
        self._module = module

    def _annotation(self, type_reference: TypeReference) -> str:
        return map_type(type_reference, self._registry, self._writer.scope, self._module)

    def write(self, endpoint: HttpEndpoint) -> WrapperPlan:
        plan = plan_wrapper(endpoint)
        scope = self._writer.scope
        writer = self._writer
        scope.declare(plan.class_name)
        pydantic_module = scope.add_import("pydantic")
        bases = [
            self._annotation(NamedTypeReference(type_id=type_id)) for type_id in plan.extends
        ] or [f"{pydantic_module}.BaseModel"]

        writer.line()
        writer.line()
        writer.line(f"class {plan.class_name}({', '.join(bases)}):")
        with writer.indent():
            writer.line(f"model_config = {pydantic_module}.ConfigDict(populate_by_name=True)")
            writer.line()
            literals: list[LiteralMember] = []
            for item in plan.headers + plan.query:
                if item.literal is not None:
                    literals.append(LiteralMember(item.attribute, item.wire_value, item.literal))
                    continue
                annotation = self._annotation(item.type_reference)
                if item.allow_multiple:
                    writer.line(
                        f"{item.attribute}: list[{annotation}] = "
                        f"{pydantic_module}.Field(default_factory=list, exclude=True)"
                    )
                    continue
                writer.line(
                    field_line(
                        writer,
                        item.attribute,
                        annotation,
                        optional=is_optional_field(item.type_reference),
                        docs=item.docs,
                        exclude=True,
                    )
                )

            body_literals: list[LiteralMember] = []
            for item in plan.body:
                if item.literal is not None:
                    body_literals.append(LiteralMember(item.attribute, item.wire_value, item.literal))
                    continue
                writer.line(
                    field_line(
                        writer,
                        item.attribute,
                        self._annotation(item.type_reference),
                        wire_value=item.wire_value,
                        optional=is_optional_field(item.type_reference),
                        docs=item.docs,
                    )
                )
            reference = plan.reference
            if reference is not None and reference.literal is None:
                writer.line(
                    field_line(
                        writer,
                        reference.attribute,
                        self._annotation(reference.type_reference),
                        optional=is_optional_field(reference.type_reference),
                    )
                )

            reference_literals = (
                [LiteralMember(reference.attribute, reference.wire_value, reference.literal)]
                if reference is not None and reference.literal is not None
                else []
            )
            write_literal_properties(writer, literals + body_literals + reference_literals)
            if reference is not None:
                self._write_reference_hooks(reference)
            elif body_literals:
                inherited = inherited_literals(self._registry, plan.extends)
                write_literal_validator(writer, inherited + body_literals)
                write_literal_serializer(writer, inherited + body_literals)
        return plan

    def _write_reference_hooks(self, reference: WrapperField) -> None:
        writer = self._writer
        pydantic_module = writer.scope.add_import("pydantic")
        typing_module = writer.scope.add_import("typing")
        writer.line()
        writer.line(f'@{pydantic_module}.model_validator(mode="before")')
        writer.line("@classmethod")
        writer.line(
            f"def _wrap_body(cls, data: {typing_module}.Any, info: {pydantic_module}.ValidationInfo)"
            f" -> {typing_module}.Any:"
        )
        with writer.indent():
            writer.docstring("JSON input is the bare body; keyword construction is left alone.")
            writer.line('if info.mode != "json":')
            with writer.indent():
                writer.line("return data")
            if reference.literal is not None:
                expected = literal_to_python(reference.literal)
                writer.line(f"if data != {expected}:")
                with writer.indent():
                    writer.line(f'raise ValueError("expected body to be " + repr({expected}))')
                writer.line("return {}")
            else:
                writer.line(f"return {{{reference.attribute!r}: data}}")
        writer.line()
        writer.line(f'@{pydantic_module}.model_serializer(mode="wrap")')
        writer.line(
            f"def _unwrap_body(self, handler: {pydantic_module}.SerializerFunctionWrapHandler)"
            f" -> {typing_module}.Any:"
        )
        with writer.indent():
            if reference.literal is not None:
                writer.line(f"return {literal_to_python(reference.literal)}")
            else:
                writer.line("data = handler(self)")
                writer.line(f"return data.get({reference.attribute!r}) if isinstance(data, dict) else data")
