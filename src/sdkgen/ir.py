"""Typed, immutable in-memory form of the API intermediate representation.

Every union in the IR is a closed tagged variant keyed by its ``type`` field, so
documents with an unknown variant fail validation instead of silently loading.
"""

from __future__ import annotations

import enum
import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from . import casing


class IrModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Name(IrModel):
    original_name: str

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"originalName": data}
        return data

    @property
    def snake_case(self) -> str:
        return casing.snake_case(self.original_name)

    @property
    def pascal_case(self) -> str:
        return casing.pascal_case(self.original_name)

    @property
    def camel_case(self) -> str:
        return casing.camel_case(self.original_name)

    @property
    def screaming_snake_case(self) -> str:
        return casing.screaming_snake_case(self.original_name)


class NameAndWireValue(IrModel):
    wire_value: str
    name: Name

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"wireValue": data, "name": data}
        if isinstance(data, dict) and "name" not in data:
            wire = data.get("wireValue", data.get("wire_value"))
            return {**data, "name": wire}
        return data


class FernFilepath(IrModel):
    all_parts: list[Name] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _from_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"allParts": data}
        return data


# Literals


class StringLiteral(IrModel):
    type: Literal["string"] = "string"
    string: str


class BooleanLiteral(IrModel):
    type: Literal["boolean"] = "boolean"
    boolean: bool


class NumberLiteral(IrModel):
    type: Literal["number"] = "number"
    number: Union[int, float]


LiteralValue = Annotated[
    Union[StringLiteral, BooleanLiteral, NumberLiteral],
    Field(discriminator="type"),
]


# Type references


class PrimitiveType(str, enum.Enum):
    STRING = "STRING"
    INTEGER = "INTEGER"
    LONG = "LONG"
    UINT = "UINT"
    UINT_64 = "UINT_64"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    DATE_TIME = "DATE_TIME"
    UUID = "UUID"
    BASE_64 = "BASE_64"
    BIG_INTEGER = "BIG_INTEGER"


class PrimitiveTypeReference(IrModel):
    type: Literal["primitive"] = "primitive"
    primitive: PrimitiveType


class NamedTypeReference(IrModel):
    type: Literal["named"] = "named"
    type_id: str


class ContainerTypeReference(IrModel):
    type: Literal["container"] = "container"
    container: ContainerType


class UnknownTypeReference(IrModel):
    type: Literal["unknown"] = "unknown"


TypeReference = Annotated[
    Union[PrimitiveTypeReference, NamedTypeReference, ContainerTypeReference, UnknownTypeReference],
    Field(discriminator="type"),
]


class OptionalContainer(IrModel):
    type: Literal["optional"] = "optional"
    value_type: TypeReference


class ListContainer(IrModel):
    type: Literal["list"] = "list"
    value_type: TypeReference


class SetContainer(IrModel):
    type: Literal["set"] = "set"
    value_type: TypeReference


class MapContainer(IrModel):
    type: Literal["map"] = "map"
    key_type: TypeReference
    value_type: TypeReference


class LiteralContainer(IrModel):
    type: Literal["literal"] = "literal"
    literal: LiteralValue


ContainerType = Annotated[
    Union[OptionalContainer, ListContainer, SetContainer, MapContainer, LiteralContainer],
    Field(discriminator="type"),
]


# Type declarations


class DeclaredTypeName(IrModel):
    type_id: str
    fern_filepath: FernFilepath = Field(default_factory=FernFilepath)
    name: Name


class ObjectProperty(IrModel):
    name: NameAndWireValue
    value_type: TypeReference
    docs: str | None = None


class ObjectTypeDeclaration(IrModel):
    type: Literal["object"] = "object"
    extends: list[str] = Field(default_factory=list)
    properties: list[ObjectProperty] = Field(default_factory=list)


class EnumValue(IrModel):
    name: NameAndWireValue
    docs: str | None = None


class EnumTypeDeclaration(IrModel):
    type: Literal["enum"] = "enum"
    values: list[EnumValue]


class AliasTypeDeclaration(IrModel):
    type: Literal["alias"] = "alias"
    alias_of: TypeReference


class SamePropertiesAsObject(IrModel):
    type: Literal["samePropertiesAsObject"] = "samePropertiesAsObject"
    type_id: str


class SingleProperty(IrModel):
    type: Literal["singleProperty"] = "singleProperty"
    name: NameAndWireValue
    value_type: TypeReference


class NoProperties(IrModel):
    type: Literal["noProperties"] = "noProperties"


SingleUnionTypeProperties = Annotated[
    Union[SamePropertiesAsObject, SingleProperty, NoProperties],
    Field(discriminator="type"),
]


class SingleUnionType(IrModel):
    discriminant_value: NameAndWireValue
    shape: SingleUnionTypeProperties
    docs: str | None = None


class UnionTypeDeclaration(IrModel):
    type: Literal["union"] = "union"
    discriminant: NameAndWireValue
    extends: list[str] = Field(default_factory=list)
    base_properties: list[ObjectProperty] = Field(default_factory=list)
    types: list[SingleUnionType]


class UndiscriminatedUnionMember(IrModel):
    value_type: TypeReference
    docs: str | None = None


class UndiscriminatedUnionTypeDeclaration(IrModel):
    type: Literal["undiscriminatedUnion"] = "undiscriminatedUnion"
    members: list[UndiscriminatedUnionMember]


TypeShape = Annotated[
    Union[
        ObjectTypeDeclaration,
        EnumTypeDeclaration,
        AliasTypeDeclaration,
        UnionTypeDeclaration,
        UndiscriminatedUnionTypeDeclaration,
    ],
    Field(discriminator="type"),
]


class TypeDeclaration(IrModel):
    name: DeclaredTypeName
    shape: TypeShape
    docs: str | None = None


# Errors


class DeclaredErrorName(IrModel):
    error_id: str
    fern_filepath: FernFilepath = Field(default_factory=FernFilepath)
    name: Name


class ErrorDeclaration(IrModel):
    name: DeclaredErrorName
    discriminant_value: NameAndWireValue | None = None
    type: TypeReference | None = None
    status_code: int
    docs: str | None = None


class StatusCodeErrorDiscrimination(IrModel):
    type: Literal["statusCode"] = "statusCode"


class PropertyErrorDiscrimination(IrModel):
    type: Literal["property"] = "property"
    discriminant: NameAndWireValue
    content_property: NameAndWireValue


ErrorDiscriminationStrategy = Annotated[
    Union[StatusCodeErrorDiscrimination, PropertyErrorDiscrimination],
    Field(discriminator="type"),
]


# Environments


class SingleBaseUrlEnvironment(IrModel):
    id: str
    name: Name
    url: str
    docs: str | None = None


class SingleBaseUrlEnvironments(IrModel):
    type: Literal["singleBaseUrl"] = "singleBaseUrl"
    environments: list[SingleBaseUrlEnvironment]


class EnvironmentBaseUrlWithId(IrModel):
    id: str
    name: Name


class MultipleBaseUrlsEnvironment(IrModel):
    id: str
    name: Name
    urls: dict[str, str]
    docs: str | None = None


class MultipleBaseUrlsEnvironments(IrModel):
    type: Literal["multipleBaseUrls"] = "multipleBaseUrls"
    base_urls: list[EnvironmentBaseUrlWithId]
    environments: list[MultipleBaseUrlsEnvironment]


Environments = Annotated[
    Union[SingleBaseUrlEnvironments, MultipleBaseUrlsEnvironments],
    Field(discriminator="type"),
]


class EnvironmentsConfig(IrModel):
    default_environment: str | None = None
    environments: Environments

    @model_validator(mode="after")
    def _check_ids(self) -> EnvironmentsConfig:
        declared = [environment.id for environment in self.environments.environments]
        if self.default_environment is not None and self.default_environment not in declared:
            raise ValueError(f"default environment {self.default_environment!r} is not declared")
        if isinstance(self.environments, MultipleBaseUrlsEnvironments):
            slots = {base_url.id for base_url in self.environments.base_urls}
            for environment in self.environments.environments:
                unknown = sorted(set(environment.urls) - slots)
                if unknown:
                    raise ValueError(f"environment {environment.id!r} uses undeclared base URLs: {unknown}")
        return self


# Auth


class BearerAuthScheme(IrModel):
    type: Literal["bearer"] = "bearer"
    token: Name = Field(default_factory=lambda: Name(original_name="token"))
    docs: str | None = None


class BasicAuthScheme(IrModel):
    type: Literal["basic"] = "basic"
    username: Name = Field(default_factory=lambda: Name(original_name="username"))
    password: Name = Field(default_factory=lambda: Name(original_name="password"))
    docs: str | None = None


class HeaderAuthScheme(IrModel):
    type: Literal["header"] = "header"
    name: NameAndWireValue
    value_type: TypeReference
    prefix: str | None = None
    docs: str | None = None


AuthScheme = Annotated[
    Union[BearerAuthScheme, BasicAuthScheme, HeaderAuthScheme],
    Field(discriminator="type"),
]


class ApiAuth(IrModel):
    docs: str | None = None
    schemes: list[AuthScheme] = Field(default_factory=list)


# HTTP


class HttpMethod(str, enum.Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class HttpHeader(IrModel):
    name: NameAndWireValue
    value_type: TypeReference
    docs: str | None = None


class QueryParameter(IrModel):
    name: NameAndWireValue
    value_type: TypeReference
    allow_multiple: bool = False
    docs: str | None = None


class PathParameter(IrModel):
    name: Name
    value_type: TypeReference
    docs: str | None = None


class HttpPathPart(IrModel):
    path_parameter: str
    tail: str = ""


_PATH_PARAMETER_RE = re.compile(r"\{([^{}]+)\}")


class HttpPath(IrModel):
    head: str = "/"
    parts: list[HttpPathPart] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if not isinstance(data, str):
            return data
        pieces = _PATH_PARAMETER_RE.split(data)
        parts = [
            {"pathParameter": pieces[index], "tail": pieces[index + 1]}
            for index in range(1, len(pieces), 2)
        ]
        return {"head": pieces[0], "parts": parts}


class InlinedRequestBodyProperty(IrModel):
    name: NameAndWireValue
    value_type: TypeReference
    docs: str | None = None


class InlinedRequestBody(IrModel):
    type: Literal["inlinedRequestBody"] = "inlinedRequestBody"
    name: Name
    extends: list[str] = Field(default_factory=list)
    properties: list[InlinedRequestBodyProperty] = Field(default_factory=list)


class HttpRequestBodyReference(IrModel):
    type: Literal["reference"] = "reference"
    request_body_type: TypeReference


class FileProperty(IrModel):
    type: Literal["file"] = "file"
    key: NameAndWireValue
    is_optional: bool = False


class FileBodyProperty(InlinedRequestBodyProperty):
    type: Literal["bodyProperty"] = "bodyProperty"


FileUploadRequestProperty = Annotated[
    Union[FileProperty, FileBodyProperty],
    Field(discriminator="type"),
]


class FileUploadRequest(IrModel):
    type: Literal["fileUpload"] = "fileUpload"
    name: Name
    properties: list[FileUploadRequestProperty] = Field(default_factory=list)


class BytesRequest(IrModel):
    type: Literal["bytes"] = "bytes"
    is_optional: bool = False
    content_type: str | None = None


HttpRequestBody = Annotated[
    Union[InlinedRequestBody, HttpRequestBodyReference, FileUploadRequest, BytesRequest],
    Field(discriminator="type"),
]


class JustRequestBody(IrModel):
    type: Literal["justRequestBody"] = "justRequestBody"
    request_body_type: TypeReference


class Wrapper(IrModel):
    type: Literal["wrapper"] = "wrapper"
    wrapper_name: Name
    body_key: Name = Field(default_factory=lambda: Name(original_name="body"))


SdkRequestShape = Annotated[Union[JustRequestBody, Wrapper], Field(discriminator="type")]


class SdkRequest(IrModel):
    request_parameter_name: Name = Field(default_factory=lambda: Name(original_name="request"))
    shape: SdkRequestShape


class JsonResponseBody(IrModel):
    type: Literal["response"] = "response"
    response_body_type: TypeReference


class NestedPropertyAsResponse(IrModel):
    type: Literal["nestedPropertyAsResponse"] = "nestedPropertyAsResponse"
    response_body_type: TypeReference
    response_property: ObjectProperty | None = None


JsonResponse = Annotated[
    Union[JsonResponseBody, NestedPropertyAsResponse],
    Field(discriminator="type"),
]


class JsonHttpResponse(IrModel):
    type: Literal["json"] = "json"
    value: JsonResponse


class FileDownloadResponse(IrModel):
    type: Literal["fileDownload"] = "fileDownload"


class TextResponse(IrModel):
    type: Literal["text"] = "text"


class JsonStreamChunk(IrModel):
    type: Literal["json"] = "json"
    value_type: TypeReference


class TextStreamChunk(IrModel):
    type: Literal["text"] = "text"


class FileStreamChunk(IrModel):
    type: Literal["file"] = "file"


StreamChunkType = Annotated[
    Union[JsonStreamChunk, TextStreamChunk, FileStreamChunk],
    Field(discriminator="type"),
]


class StreamingResponse(IrModel):
    type: Literal["streaming"] = "streaming"
    data_event_type: StreamChunkType
    terminator: str | None = None


HttpResponse = Annotated[
    Union[JsonHttpResponse, FileDownloadResponse, TextResponse, StreamingResponse],
    Field(discriminator="type"),
]


class ResponseError(IrModel):
    error_id: str

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"errorId": data}
        return data


class HttpEndpoint(IrModel):
    name: Name
    docs: str | None = None
    method: HttpMethod
    base_url: str | None = None
    full_path: HttpPath = Field(default_factory=HttpPath)
    all_path_parameters: list[PathParameter] = Field(default_factory=list)
    query_parameters: list[QueryParameter] = Field(default_factory=list)
    headers: list[HttpHeader] = Field(default_factory=list)
    request_body: HttpRequestBody | None = None
    sdk_request: SdkRequest | None = None
    response: HttpResponse | None = None
    errors: list[ResponseError] = Field(default_factory=list)


class HttpService(IrModel):
    fern_filepath: FernFilepath = Field(default_factory=FernFilepath)
    endpoints: list[HttpEndpoint] = Field(default_factory=list)


class Subpackage(IrModel):
    name: Name
    fern_filepath: FernFilepath
    service: str | None = None
    types: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    subpackages: list[str] = Field(default_factory=list)
    docs: str | None = None


class Package(IrModel):
    fern_filepath: FernFilepath = Field(default_factory=FernFilepath)
    service: str | None = None
    types: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    subpackages: list[str] = Field(default_factory=list)
    docs: str | None = None


class PlatformHeaders(IrModel):
    language: str
    sdk_name: str
    sdk_version: str


class SdkConfig(IrModel):
    platform_headers: PlatformHeaders | None = None


class IntermediateRepresentation(IrModel):
    api_name: Name
    api_docs: str | None = None
    auth: ApiAuth = Field(default_factory=ApiAuth)
    headers: list[HttpHeader] = Field(default_factory=list)
    types: dict[str, TypeDeclaration] = Field(default_factory=dict)
    errors: dict[str, ErrorDeclaration] = Field(default_factory=dict)
    services: dict[str, HttpService] = Field(default_factory=dict)
    subpackages: dict[str, Subpackage] = Field(default_factory=dict)
    root_package: Package = Field(default_factory=Package)
    environments: EnvironmentsConfig | None = None
    error_discrimination_strategy: ErrorDiscriminationStrategy = Field(
        default_factory=StatusCodeErrorDiscrimination
    )
    sdk_config: SdkConfig = Field(default_factory=SdkConfig)


for _model in (
    ContainerTypeReference,
    OptionalContainer,
    ListContainer,
    SetContainer,
    MapContainer,
    LiteralContainer,
):
    _model.model_rebuild()


def literal_of(type_reference: TypeReference) -> LiteralValue | None:
    if isinstance(type_reference, ContainerTypeReference) and isinstance(
        type_reference.container, LiteralContainer
    ):
        return type_reference.container.literal
    return None


def optional_inner(type_reference: TypeReference) -> TypeReference | None:
    if isinstance(type_reference, ContainerTypeReference) and isinstance(
        type_reference.container, OptionalContainer
    ):
        return type_reference.container.value_type
    return None


def maybe_primitive(type_reference: TypeReference) -> PrimitiveType | None:
    """Return the underlying primitive, recursing only through optional containers."""
    if isinstance(type_reference, PrimitiveTypeReference):
        return type_reference.primitive
    inner = optional_inner(type_reference)
    if inner is not None:
        return maybe_primitive(inner)
    return None


def literal_to_python(literal: LiteralValue) -> str:
    if isinstance(literal, StringLiteral):
        return repr(literal.string)
    if isinstance(literal, BooleanLiteral):
        return repr(literal.boolean)
    return repr(literal.number)


def literal_to_wire_text(literal: LiteralValue) -> str:
    if isinstance(literal, StringLiteral):
        return literal.string
    if isinstance(literal, BooleanLiteral):
        return "true" if literal.boolean else "false"
    return str(literal.number)
