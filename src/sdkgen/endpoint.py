"""Assembles one client method per IR endpoint.

Emission runs in a fixed order: signature, base URL, path, query parameters,
headers, multipart body, error decoder, dispatch. Every local the method needs is
allocated from a child scope of the module, so names never collide with each other
or with the module's imports. Unsupported request or response shapes are rejected
before anything is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from .casing import safe_field_name
from .environments import resolve_base_url
from .errors import UnknownTypeError, UnsupportedRequestBodyError, UnsupportedResponseTypeError
from .ir import (
    BytesRequest,
    EnvironmentsConfig,
    ErrorDiscriminationStrategy,
    FileDownloadResponse,
    FileProperty,
    FileStreamChunk,
    FileUploadRequest,
    HttpEndpoint,
    HttpPath,
    JsonHttpResponse,
    JsonStreamChunk,
    JustRequestBody,
    NamedTypeReference,
    NestedPropertyAsResponse,
    PathParameter,
    PropertyErrorDiscrimination,
    StreamingResponse,
    TextResponse,
    TextStreamChunk,
    Wrapper,
    literal_to_wire_text,
    optional_inner,
)
from .models import object_attribute
from .registry import TypeRegistry
from .request_types import WrapperField, WrapperPlan, needs_request_parameter, plan_wrapper
from .scope import Scope
from .type_mapper import map_type
from .value_format import format_for_transport
from .writer import FileWriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResponsePlan:
    annotation: str
    response_type: str | None = None
    kind: str = "json"
    is_optional: bool = False
    streaming: bool = False
    delimiter: str | None = None
    nested_attribute: str | None = None


@dataclass
class Signature:
    parameters: list[str]
    opts: str
    path_locals: dict[str, tuple[str, PathParameter]] = field(default_factory=dict)
    file_locals: list[tuple[str, FileProperty]] = field(default_factory=list)
    request: str | None = None
    plan: WrapperPlan | None = None


def path_template(path: HttpPath) -> str:
    """``str.format`` template for the path after the base URL, e.g. ``users/{}``."""

    def escape(text: str) -> str:
        return text.replace("{", "{{").replace("}", "}}")

    template = "" if path.head == "/" else escape(path.head)
    for part in path.parts:
        template += "{}" + escape(part.tail)
    return template.lstrip("/")


class EndpointAssembler:
    def __init__(
        self,
        registry: TypeRegistry,
        writer: FileWriter,
        *,
        requests_module: str,
        environments: EnvironmentsConfig | None,
        error_strategy: ErrorDiscriminationStrategy,
        members: Scope,
    ) -> None:
        self._registry = registry
        self._writer = writer
        self._requests_module = requests_module
        self._environments = environments
        self._error_strategy = error_strategy
        self._members = members

    @property
    def _core(self) -> str:
        return self._writer.scope.add_import(f"{self._registry.package}.core")

    def write(self, endpoint: HttpEndpoint) -> None:
        label = endpoint.name.original_name
        self._check_request(endpoint)
        scope = self._writer.scope.child()
        response = self._plan_response(endpoint, scope)
        logger.debug("assembling endpoint %s %s", endpoint.method.value, label)

        method_name = self._members.add_local(endpoint.name.snake_case)
        signature = self._signature(endpoint, scope)
        parameters = signature.parameters
        request = signature.request
        plan = signature.plan
        writer = self._writer
        writer.line()
        if len(parameters) > 2:
            writer.line(f"def {method_name}(")
            with writer.indent():
                for parameter in parameters:
                    writer.line(f"{parameter},")
            writer.line(f") -> {response.annotation}:")
        else:
            writer.line(f"def {method_name}({', '.join(parameters)}) -> {response.annotation}:")

        with writer.indent():
            self._docs(endpoint)
            options = scope.add_local("options")
            writer.line(f"{options} = {self._core}.new_request_options(*{signature.opts})")
            endpoint_url = self._url(endpoint, scope, options, signature.path_locals)
            self._query(endpoint, scope, endpoint_url, request, plan)
            headers = self._headers(endpoint, scope, options, request, plan)
            files = self._multipart(endpoint, scope, signature.file_locals, request, plan)
            request_value: str | None = None
            if files is None and request is not None and endpoint.request_body is not None:
                request_value = request
            error_decoder = self._error_decoder(endpoint, scope)
            self._dispatch(
                scope,
                response,
                endpoint,
                endpoint_url,
                headers,
                request_value,
                files,
                error_decoder,
                options,
            )

    def _check_request(self, endpoint: HttpEndpoint) -> None:
        label = endpoint.name.original_name
        body = endpoint.request_body
        if isinstance(body, BytesRequest):
            raise UnsupportedRequestBodyError(label, "bytes")
        has_parameters = bool(endpoint.query_parameters or endpoint.headers)
        if has_parameters and endpoint.sdk_request is None:
            raise UnsupportedRequestBodyError(label, "query or header parameters without a request")
        if (
            has_parameters
            and endpoint.sdk_request is not None
            and isinstance(endpoint.sdk_request.shape, JustRequestBody)
        ):
            raise UnsupportedRequestBodyError(label, "query or header parameters on a bare request body")

    def _plan_response(self, endpoint: HttpEndpoint, scope: Scope) -> ResponsePlan:
        label = endpoint.name.original_name
        response = endpoint.response
        if response is None:
            return ResponsePlan("None")
        if isinstance(response, JsonHttpResponse):
            type_reference = response.value.response_body_type
            response_type = map_type(type_reference, self._registry, scope)
            is_optional = optional_inner(type_reference) is not None
            value = response.value
            if isinstance(value, NestedPropertyAsResponse) and value.response_property is not None:
                prop = value.response_property
                container = type_reference
                inner = optional_inner(container)
                while inner is not None:
                    container = inner
                    inner = optional_inner(container)
                attribute = None
                if isinstance(container, NamedTypeReference):
                    attribute = object_attribute(self._registry, container.type_id, prop.name.wire_value)
                annotation = map_type(prop.value_type, self._registry, scope)
                # A missing body yields None instead of the property.
                if is_optional and optional_inner(prop.value_type) is None:
                    annotation += " | None"
                return ResponsePlan(
                    annotation,
                    response_type,
                    is_optional=is_optional,
                    nested_attribute=attribute or safe_field_name(prop.name.name.original_name),
                )
            return ResponsePlan(response_type, response_type, is_optional=is_optional)
        if isinstance(response, FileDownloadResponse):
            return ResponsePlan("bytes", "bytes", kind="bytes")
        if isinstance(response, TextResponse):
            return ResponsePlan("str", "str", kind="text")
        if isinstance(response, StreamingResponse):
            chunk = response.data_event_type
            if isinstance(chunk, JsonStreamChunk):
                chunk_type = map_type(chunk.value_type, self._registry, scope)
                kind = "json"
            elif isinstance(chunk, TextStreamChunk):
                chunk_type = "str"
                kind = "text"
            elif isinstance(chunk, FileStreamChunk):
                raise UnsupportedResponseTypeError(label, "file streaming")
            else:
                raise UnsupportedResponseTypeError(label, type(chunk).__name__)
            return ResponsePlan(
                f"{self._core}.Stream[{chunk_type}]",
                chunk_type,
                kind=kind,
                streaming=True,
                delimiter=response.terminator,
            )
        raise UnsupportedResponseTypeError(label, type(response).__name__)

    def _signature(self, endpoint: HttpEndpoint, scope: Scope) -> Signature:
        parameters = [scope.declare("self")]
        path_locals: dict[str, tuple[str, PathParameter]] = {}
        for parameter in endpoint.all_path_parameters:
            name = scope.add_local(parameter.name.snake_case)
            path_locals[parameter.name.original_name] = (name, parameter)
            parameters.append(f"{name}: {map_type(parameter.value_type, self._registry, scope)}")

        file_locals: list[tuple[str, FileProperty]] = []
        body = endpoint.request_body
        if isinstance(body, FileUploadRequest):
            typing_module = scope.add_import("typing")
            for prop in body.properties:
                if not isinstance(prop, FileProperty):
                    continue
                name = scope.add_local(prop.key.name.snake_case)
                annotation = f"{typing_module}.IO[bytes] | bytes"
                if prop.is_optional:
                    annotation += " | None"
                parameters.append(f"{name}: {annotation}")
                file_locals.append((name, prop))

        request: str | None = None
        plan: WrapperPlan | None = None
        sdk_request = endpoint.sdk_request
        if sdk_request is not None and needs_request_parameter(endpoint):
            request = scope.add_local(sdk_request.request_parameter_name.snake_case)
            shape = sdk_request.shape
            if isinstance(shape, Wrapper):
                plan = plan_wrapper(endpoint)
                annotation = f"{scope.add_import(self._requests_module)}.{plan.class_name}"
            else:
                annotation = map_type(shape.request_body_type, self._registry, scope)
            parameters.append(f"{request}: {annotation}")

        opts = scope.add_local("opts")
        parameters.append(f"*{opts}: {self._core}.ClientOption")
        return Signature(parameters, opts, path_locals, file_locals, request, plan)

    def _docs(self, endpoint: HttpEndpoint) -> None:
        sections: list[str] = []
        if endpoint.docs:
            sections.append(endpoint.docs.strip())
        parameter_docs = [p.docs.strip() for p in endpoint.all_path_parameters if p.docs and p.docs.strip()]
        if parameter_docs:
            sections.append("\n".join(parameter_docs))
        if sections:
            self._writer.docstring("\n\n".join(sections))

    def _url(
        self,
        endpoint: HttpEndpoint,
        scope: Scope,
        options: str,
        path_locals: dict[str, tuple[str, PathParameter]],
    ) -> str:
        writer = self._writer
        base_url = scope.add_local("base_url")
        endpoint_url = scope.add_local("endpoint_url")
        writer.line(f"{base_url} = {resolve_base_url(self._environments, endpoint.base_url)!r}")
        writer.line("if self._base_url:")
        with writer.indent():
            writer.line(f"{base_url} = self._base_url")
        writer.line(f"if {options}.base_url:")
        with writer.indent():
            writer.line(f"{base_url} = {options}.base_url")

        template = path_template(endpoint.full_path)
        if not template:
            writer.line(f"{endpoint_url} = {base_url}")
            return endpoint_url
        prefix = f'{base_url}.rstrip("/") + "/" + {template!r}'
        if not endpoint.full_path.parts:
            writer.line(f"{endpoint_url} = {prefix}")
            return endpoint_url
        urllib_parse = scope.add_import("urllib.parse", qualified=True)
        arguments: list[str] = []
        for part in endpoint.full_path.parts:
            found = path_locals.get(part.path_parameter)
            if found is None:
                raise UnknownTypeError(part.path_parameter, kind="path parameter")
            name, parameter = found
            transport = format_for_transport(parameter.value_type, self._registry, scope)
            arguments.append(f'{urllib_parse}.quote({transport.apply(name)}, safe="")')
        writer.line(f"{endpoint_url} = {prefix}.format(")
        with writer.indent():
            for argument in arguments:
                writer.line(f"{argument},")
        writer.line(")")
        return endpoint_url

    def _query(
        self,
        endpoint: HttpEndpoint,
        scope: Scope,
        endpoint_url: str,
        request: str | None,
        plan: WrapperPlan | None,
    ) -> None:
        if not endpoint.query_parameters or plan is None or request is None:
            return
        writer = self._writer
        query_params = scope.add_local("query_params")
        urllib_parse = scope.add_import("urllib.parse", qualified=True)
        writer.line()
        writer.line(f"{query_params}: list[tuple[str, str]] = []")
        for parameter in endpoint.query_parameters:
            item = plan.query_parameter(parameter.name.wire_value)
            self._append_value(
                scope,
                item,
                f"{request}.{item.attribute}",
                lambda text, wire=item.wire_value: f"{query_params}.append(({wire!r}, {text}))",
            )
        writer.line(f"if {query_params}:")
        with writer.indent():
            writer.line(f'{endpoint_url} += "?" + {urllib_parse}.urlencode({query_params})')

    def _append_value(
        self,
        scope: Scope,
        item: WrapperField,
        expression: str,
        emit: Callable[[str], str],
    ) -> None:
        writer = self._writer
        if item.literal is not None:
            writer.line(emit(repr(literal_to_wire_text(item.literal))))
            return
        transport = format_for_transport(item.type_reference, self._registry, scope)
        if item.allow_multiple:
            value = scope.add_local("value")
            writer.line(f"for {value} in {expression}:")
            with writer.indent():
                if transport.is_optional:
                    writer.line(f"if {value} is not None:")
                    with writer.indent():
                        writer.line(emit(transport.apply(value)))
                else:
                    writer.line(emit(transport.apply(value)))
            return
        if transport.is_optional:
            writer.line(f"if {expression} is not None:")
            with writer.indent():
                writer.line(emit(transport.apply(expression)))
            return
        writer.line(emit(transport.apply(expression)))

    def _headers(
        self,
        endpoint: HttpEndpoint,
        scope: Scope,
        options: str,
        request: str | None,
        plan: WrapperPlan | None,
    ) -> str:
        writer = self._writer
        headers = scope.add_local("headers")
        writer.line()
        writer.line(f"{headers} = self._header.copy()")
        writer.line(f"{headers}.update({options}.to_header())")
        if plan is None or request is None:
            return headers
        for header in endpoint.headers:
            item = plan.header(header.name.wire_value)
            self._append_value(
                scope,
                item,
                f"{request}.{item.attribute}",
                lambda text, wire=item.wire_value: f"{headers}[{wire!r}] = {text}",
            )
        return headers

    def _multipart(
        self,
        endpoint: HttpEndpoint,
        scope: Scope,
        file_locals: list[tuple[str, FileProperty]],
        request: str | None,
        plan: WrapperPlan | None,
    ) -> str | None:
        """Collects the form parts in declaration order; httpx encodes them."""
        if not isinstance(endpoint.request_body, FileUploadRequest):
            return None
        writer = self._writer
        core = self._core
        files = scope.add_local("files")
        writer.line()
        writer.line(f"{files}: list[tuple[str, {core}.FormPart]] = []")
        for name, prop in file_locals:
            wire = prop.key.wire_value
            statement = f"{files}.append(({wire!r}, {core}.file_part({name}, {wire + '_filename'!r})))"
            if prop.is_optional:
                writer.line(f"if {name} is not None:")
                with writer.indent():
                    writer.line(statement)
            else:
                writer.line(statement)
        if plan is not None and request is not None:
            for item in plan.body:
                expression = f"{request}.{item.attribute}"
                if item.literal is not None:
                    text = literal_to_wire_text(item.literal)
                    writer.line(f"{files}.append(({item.wire_value!r}, {core}.text_part({text!r})))")
                    continue
                transport = format_for_transport(item.type_reference, self._registry, scope)
                if transport.is_primitive:
                    part = f"{core}.text_part({transport.apply(expression)})"
                else:
                    part = f"{core}.json_part({expression})"
                statement = f"{files}.append(({item.wire_value!r}, {part}))"
                if transport.is_optional:
                    writer.line(f"if {expression} is not None:")
                    with writer.indent():
                        writer.line(statement)
                else:
                    writer.line(statement)
        return files

    def _error_decoder(self, endpoint: HttpEndpoint, scope: Scope) -> str | None:
        if not endpoint.errors:
            return None
        writer = self._writer
        core = self._core
        error_decoder = scope.add_local("error_decoder")
        status_code = scope.add_local("status_code")
        body = scope.add_local("body")
        api_error = scope.add_local("api_error")
        strategy = self._error_strategy
        writer.line()
        writer.line(f"def {error_decoder}({status_code}: int, {body}: bytes) -> Exception:")
        with writer.indent():
            writer.line(f"{api_error} = {core}.ApiError.from_body({status_code}, {body})")
            content: str = body
            if isinstance(strategy, PropertyErrorDiscrimination):
                json_module = scope.add_import("json")
                payload = scope.add_local("payload")
                discriminant = scope.add_local("discriminant")
                writer.line("try:")
                with writer.indent():
                    writer.line(f"{payload} = {json_module}.loads({body})")
                writer.line("except ValueError:")
                with writer.indent():
                    writer.line(f"return {api_error}")
                writer.line(f"if not isinstance({payload}, dict):")
                with writer.indent():
                    writer.line(f"return {api_error}")
                writer.line(f"{discriminant} = {payload}.get({strategy.discriminant.wire_value!r})")
                content = f"{payload}.get({strategy.content_property.wire_value!r})"
            for response_error in endpoint.errors:
                declaration = self._registry.resolve_error(response_error.error_id)
                module = scope.add_import(self._registry.module_for_error(response_error.error_id))
                error_class = f"{module}.{self._registry.class_name_for_error(response_error.error_id)}"
                if isinstance(strategy, PropertyErrorDiscrimination):
                    if declaration.discriminant_value is None:
                        continue
                    writer.line(f"if {discriminant} == {declaration.discriminant_value.wire_value!r}:")
                else:
                    writer.line(f"if {status_code} == {declaration.status_code}:")
                with writer.indent():
                    writer.line("try:")
                    with writer.indent():
                        writer.line(f"return {error_class}.from_json({content}, {api_error})")
                    writer.line("except ValueError:")
                    with writer.indent():
                        writer.line(f"return {api_error}")
            writer.line(f"return {api_error}")
        return error_decoder

    def _dispatch(
        self,
        scope: Scope,
        response: ResponsePlan,
        endpoint: HttpEndpoint,
        endpoint_url: str,
        headers: str,
        request_value: str | None,
        files: str | None,
        error_decoder: str | None,
        options: str,
    ) -> None:
        writer = self._writer
        core = self._core
        arguments = [
            f"url={endpoint_url}",
            f"method={endpoint.method.value!r}",
            f"headers={headers}",
        ]
        if request_value is not None:
            arguments.append(f"request={request_value}")
        if files is not None:
            arguments.append(f"files={files}")
        if response.response_type is not None:
            arguments.append(f"response_type={response.response_type}")
            arguments.append(f"response_kind={response.kind!r}")
        if response.streaming:
            if response.delimiter is not None:
                arguments.append(f"delimiter={response.delimiter!r}")
        elif response.is_optional:
            arguments.append("response_is_optional=True")
        if error_decoder is not None:
            arguments.append(f"error_decoder={error_decoder}")
        arguments.append(f"client={options}.http_client")

        writer.line()
        if response.streaming:
            head = f"return self._caller.stream({core}.StreamParams("
        elif response.nested_attribute is not None:
            result = scope.add_local("response")
            head = f"{result} = self._caller.call({core}.CallParams("
        elif response.response_type is None:
            head = f"self._caller.call({core}.CallParams("
        else:
            head = f"return self._caller.call({core}.CallParams("
        writer.line(head)
        with writer.indent():
            for argument in arguments:
                writer.line(f"{argument},")
        writer.line("))")
        if response.nested_attribute is not None:
            if response.is_optional:
                writer.line(f"return None if {result} is None else {result}.{response.nested_attribute}")
            else:
                writer.line(f"return {result}.{response.nested_attribute}")
