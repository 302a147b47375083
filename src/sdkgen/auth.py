"""Client options: the shared ``ClientOptions`` record and its functional options."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import UnsupportedTypeShapeError
from .ir import (
    BasicAuthScheme,
    BearerAuthScheme,
    HeaderAuthScheme,
    IntermediateRepresentation,
    PrimitiveType,
    PrimitiveTypeReference,
    TypeReference,
    literal_of,
    literal_to_wire_text,
    optional_inner,
)
from .registry import TypeRegistry
from .scope import Scope
from .type_mapper import map_type
from .value_format import format_for_transport
from .writer import FileWriter

_BUILTIN_ATTRIBUTES = ("base_url", "http_client", "http_header", "to_header")
_BUILTIN_OPTIONS = ("with_base_url", "with_http_client", "with_http_header")
_STRING = PrimitiveTypeReference(primitive=PrimitiveType.STRING)


@dataclass(frozen=True)
class OptionField:
    attribute: str
    parameter: str
    type_reference: TypeReference


@dataclass(frozen=True)
class AuthOption:
    """One functional option and the ``ClientOptions`` attributes it sets."""

    kind: str
    function: str
    fields: tuple[OptionField, ...]
    docs: str | None = None
    wire_value: str | None = None
    prefix: str | None = None
    example: str | None = None


@dataclass(frozen=True)
class LiteralHeader:
    wire_value: str
    value: str


@dataclass(frozen=True)
class OptionsPlan:
    options: tuple[AuthOption, ...]
    literal_headers: tuple[LiteralHeader, ...]
    auth_docs: str | None = None

    @property
    def example(self) -> str | None:
        """Example call for docs, taken from the first scheme that yields an option."""
        for option in self.options:
            if option.example is not None:
                return option.example
        return None


def plan_options(ir: IntermediateRepresentation) -> OptionsPlan:
    """Name every option attribute and function; writers of both files share this."""
    attributes = Scope()
    functions = Scope()
    for name in _BUILTIN_ATTRIBUTES:
        attributes.declare(name)
    for name in _BUILTIN_OPTIONS:
        functions.declare(name)
    options: list[AuthOption] = []
    literals: list[LiteralHeader] = []

    for scheme in ir.auth.schemes:
        if isinstance(scheme, BearerAuthScheme):
            attribute = attributes.add_local(scheme.token.snake_case)
            function = functions.add_local(f"with_{scheme.token.snake_case}")
            options.append(
                AuthOption(
                    kind="bearer",
                    function=function,
                    fields=(OptionField(attribute, scheme.token.snake_case, _STRING),),
                    docs=scheme.docs,
                    example=f'{function}("<YOUR_AUTH_TOKEN>")',
                )
            )
        elif isinstance(scheme, BasicAuthScheme):
            username = attributes.add_local(scheme.username.snake_case)
            password = attributes.add_local(scheme.password.snake_case)
            function = functions.add_local("with_basic_auth")
            options.append(
                AuthOption(
                    kind="basic",
                    function=function,
                    fields=(
                        OptionField(username, scheme.username.snake_case, _STRING),
                        OptionField(password, scheme.password.snake_case, _STRING),
                    ),
                    docs=scheme.docs,
                    example=f'{function}("<YOUR_USERNAME>", "<YOUR_PASSWORD>")',
                )
            )
        elif isinstance(scheme, HeaderAuthScheme):
            literal = literal_of(scheme.value_type)
            if literal is not None:
                value = literal_to_wire_text(literal)
                if scheme.prefix:
                    value = f"{scheme.prefix} {value}"
                literals.append(LiteralHeader(scheme.name.wire_value, value))
                continue
            snake = scheme.name.name.snake_case
            attribute = attributes.add_local(snake)
            function = functions.add_local(f"with_{snake}")
            options.append(
                AuthOption(
                    kind="header",
                    function=function,
                    fields=(OptionField(attribute, snake, scheme.value_type),),
                    docs=scheme.docs,
                    wire_value=scheme.name.wire_value,
                    prefix=scheme.prefix,
                    example=f'{function}("<YOUR_{scheme.name.name.screaming_snake_case}>")',
                )
            )
        else:
            raise UnsupportedTypeShapeError("auth", type(scheme).__name__)

    for header in ir.headers:
        literal = literal_of(header.value_type)
        if literal is not None:
            literals.append(LiteralHeader(header.name.wire_value, literal_to_wire_text(literal)))
            continue
        snake = header.name.name.snake_case
        attribute = attributes.add_local(snake)
        function = functions.add_local(f"with_{snake}")
        options.append(
            AuthOption(
                kind="global_header",
                function=function,
                fields=(OptionField(attribute, snake, header.value_type),),
                docs=header.docs,
                wire_value=header.name.wire_value,
            )
        )
    return OptionsPlan(tuple(options), tuple(literals), ir.auth.docs)


def _optional_annotation(type_reference: TypeReference, registry: TypeRegistry, scope: Scope) -> str:
    if optional_inner(type_reference) is not None:
        return map_type(type_reference, registry, scope)
    return f"{map_type(type_reference, registry, scope)} | None"


def write_client_options_definition(
    plan: OptionsPlan,
    registry: TypeRegistry,
    writer: FileWriter,
    *,
    sdk_name: str,
    sdk_version: str | None,
) -> None:
    scope = writer.scope
    dataclasses_module = scope.add_import("dataclasses")
    typing_module = scope.add_import("typing")
    httpx_module = scope.add_import("httpx")
    scope.declare("ClientOption")
    scope.declare("ClientOptions")
    scope.declare("new_request_options")

    writer.line(f'ClientOption = {typing_module}.Callable[["ClientOptions"], None]')
    writer.line()
    writer.line()
    writer.line(f"@{dataclasses_module}.dataclass")
    writer.line("class ClientOptions:")
    with writer.indent():
        writer.docstring(
            "Every setting a client, or a single call, can be configured with.\n\n"
            "Generated code builds this from ``ClientOption`` callables; use those instead."
        )
        writer.line()
        writer.line("base_url: str | None = None")
        writer.line(f"http_client: {httpx_module}.Client | None = None")
        writer.line(
            f"http_header: {httpx_module}.Headers = "
            f"{dataclasses_module}.field(default_factory={httpx_module}.Headers)"
        )
        for option in plan.options:
            for field in option.fields:
                annotation = _optional_annotation(field.type_reference, registry, scope)
                writer.line(f"{field.attribute}: {annotation} = None")
        writer.line()
        writer.line(f"def to_header(self) -> {httpx_module}.Headers:")
        with writer.indent():
            writer.docstring("Headers sent on every request issued with these options.")
            writer.line("header = self._clone_header()")
            for option in plan.options:
                _write_header_assignment(option, registry, writer)
            for literal in plan.literal_headers:
                writer.line(f"header[{literal.wire_value!r}] = {literal.value!r}")
            writer.line("return header")
        writer.line()
        writer.line(f"def _clone_header(self) -> {httpx_module}.Headers:")
        with writer.indent():
            writer.line("header = self.http_header.copy()")
            platform = registry.ir.sdk_config.platform_headers
            if sdk_version and platform is not None:
                writer.line(f"header[{platform.language!r}] = 'Python'")
                writer.line(f"header[{platform.sdk_name!r}] = {sdk_name!r}")
                writer.line(f"header[{platform.sdk_version!r}] = {sdk_version!r}")
            writer.line("return header")
    writer.line()
    writer.line()
    writer.line("def new_request_options(*opts: ClientOption) -> ClientOptions:")
    with writer.indent():
        writer.line("options = ClientOptions()")
        writer.line("for opt in opts:")
        with writer.indent():
            writer.line("opt(options)")
        writer.line("return options")


def _write_header_assignment(option: AuthOption, registry: TypeRegistry, writer: FileWriter) -> None:
    if option.kind == "bearer":
        attribute = option.fields[0].attribute
        writer.line(f"if self.{attribute} is not None:")
        with writer.indent():
            writer.line(f'header["Authorization"] = "Bearer " + self.{attribute}')
        return
    if option.kind == "basic":
        base64_module = writer.scope.add_import("base64")
        username, password = (field.attribute for field in option.fields)
        writer.line(f"if self.{username} is not None and self.{password} is not None:")
        with writer.indent():
            writer.line(f'credentials = (self.{username} + ":" + self.{password}).encode("utf-8")')
            writer.line(f'header["Authorization"] = "Basic " + {base64_module}.b64encode(credentials).decode("ascii")')
        return
    field = option.fields[0]
    transport = format_for_transport(field.type_reference, registry, writer.scope)
    value = transport.apply(f"self.{field.attribute}")
    if option.prefix:
        value = f"{option.prefix + ' '!r} + {value}"
    writer.line(f"if self.{field.attribute} is not None:")
    with writer.indent():
        writer.line(f"header[{option.wire_value!r}] = {value}")


def write_client_options(plan: OptionsPlan, registry: TypeRegistry, writer: FileWriter) -> None:
    scope = writer.scope
    core = scope.add_import(f"{registry.package}.core")
    httpx_module = scope.add_import("httpx")
    for name in (*_BUILTIN_OPTIONS, *(option.function for option in plan.options)):
        scope.declare(name)

    _write_option(
        writer,
        core,
        "with_base_url",
        [("base_url", "str")],
        "Sets the client's base URL, overriding the default environment, if any.",
        ["opts.base_url = base_url"],
    )
    _write_option(
        writer,
        core,
        "with_http_client",
        [("http_client", f"{httpx_module}.Client")],
        "Uses the given httpx client to issue all HTTP requests.",
        ["opts.http_client = http_client"],
    )
    _write_option(
        writer,
        core,
        "with_http_header",
        [("http_header", f"{httpx_module}.Headers | dict[str, str]")],
        "Adds the given headers to all requests issued by the client.",
        [f"opts.http_header = {httpx_module}.Headers(http_header)"],
    )

    for option in plan.options:
        params = Scope()
        params.declare("opts")
        params.declare("apply")
        arguments: list[tuple[str, str]] = []
        body: list[str] = []
        for field in option.fields:
            parameter = params.add_local(field.parameter)
            arguments.append((parameter, map_type(field.type_reference, registry, scope)))
            body.append(f"opts.{field.attribute} = {parameter}")
        if option.kind == "bearer":
            docs = f"Sets the 'Authorization: Bearer <{arguments[0][0]}>' header on every request."
        elif option.kind == "basic":
            docs = "Sets the 'Authorization: Basic <base64>' header on every request."
        elif option.kind == "header":
            docs = f"Sets the {option.wire_value} auth header on every request."
        else:
            docs = f"Sets the {option.wire_value} header on every request."
        extra = plan.auth_docs if option.kind != "global_header" else option.docs
        if extra:
            docs = f"{docs}\n\n{extra.strip()}"
        _write_option(writer, core, option.function, arguments, docs, body)


def _write_option(
    writer: FileWriter,
    core: str,
    name: str,
    arguments: list[tuple[str, str]],
    docs: str,
    body: list[str],
) -> None:
    signature = ", ".join(f"{parameter}: {annotation}" for parameter, annotation in arguments)
    writer.line()
    writer.line()
    writer.line(f"def {name}({signature}) -> {core}.ClientOption:")
    with writer.indent():
        writer.docstring(docs)
        writer.line()
        writer.line(f"def apply(opts: {core}.ClientOptions) -> None:")
        with writer.indent():
            writer.lines(body)
        writer.line()
        writer.line("return apply")
