from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import httpx
import pydantic
import pydantic_core

from .api_error import ApiError
from .multipart import FormPart
from .stream import Stream

ErrorDecoder = Callable[[int, bytes], Exception]


def _looks_like_json(content_type: str) -> bool:
    if not content_type:
        return False
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime == "application/json" or mime.endswith("+json") or mime == "text/json"


@dataclass
class CallParams:
    url: str
    method: str
    headers: httpx.Headers
    request: Any = None
    files: list[tuple[str, FormPart]] | None = None
    response_type: Any = None
    response_kind: str = "json"
    response_is_optional: bool = False
    error_decoder: ErrorDecoder | None = None
    client: httpx.Client | None = None


@dataclass
class StreamParams:
    url: str
    method: str
    headers: httpx.Headers
    request: Any = None
    files: list[tuple[str, FormPart]] | None = None
    response_type: Any = None
    response_kind: str = "json"
    delimiter: str | None = None
    error_decoder: ErrorDecoder | None = None
    client: httpx.Client | None = None


def _encode_request(request: Any, headers: httpx.Headers) -> bytes | None:
    if request is None:
        return None
    if isinstance(request, (bytes, bytearray)):
        return bytes(request)
    if isinstance(request, pydantic.BaseModel):
        content = request.model_dump_json(by_alias=True, exclude_unset=True).encode("utf-8")
    else:
        content = pydantic_core.to_json(request, by_alias=True)
    if "content-type" not in headers:
        headers["Content-Type"] = "application/json"
    return content


def _decode_error(response: httpx.Response, decoder: ErrorDecoder | None) -> Exception:
    body = response.content
    if decoder is not None:
        return decoder(response.status_code, body)
    return ApiError.from_body(response.status_code, body)


def _chunk_decoder(response_type: Any, response_kind: str) -> Callable[[str], Any]:
    if response_kind == "text":
        return lambda chunk: chunk
    if response_kind == "bytes":
        return lambda chunk: chunk.encode("utf-8")
    adapter = pydantic.TypeAdapter(response_type)
    return adapter.validate_json


class Caller:
    """Sends one request and decodes the response, or raises the decoded error."""

    def __init__(self, client: httpx.Client | None = None) -> None:
        self._client = client if client is not None else httpx.Client()

    def _send(
        self,
        *,
        url: str,
        method: str,
        headers: httpx.Headers,
        request: Any,
        files: list[tuple[str, FormPart]] | None,
        client: httpx.Client | None,
        stream: bool,
    ) -> httpx.Response:
        headers = httpx.Headers(headers)
        content = _encode_request(request, headers)
        http_client = client if client is not None else self._client
        built = http_client.build_request(method, url, headers=headers, content=content, files=files or None)
        try:
            return http_client.send(built, stream=stream)
        except httpx.HTTPError as exc:
            raise ApiError(None, str(exc)) from exc

    def call(self, params: CallParams) -> Any:
        response = self._send(
            url=params.url,
            method=params.method,
            headers=params.headers,
            request=params.request,
            files=params.files,
            client=params.client,
            stream=False,
        )
        if response.status_code >= 400:
            raise _decode_error(response, params.error_decoder)
        if params.response_type is None:
            return None
        if params.response_kind == "bytes":
            return response.content
        if params.response_kind == "text":
            return response.text
        if not response.content or response.status_code == 204:
            if params.response_is_optional:
                return None
            raise ApiError(response.status_code, "expected a JSON response body")
        content_type = response.headers.get("content-type", "")
        if content_type and not _looks_like_json(content_type):
            raise ApiError(response.status_code, f"expected a JSON response, got {content_type}")
        try:
            return pydantic.TypeAdapter(params.response_type).validate_json(response.content)
        except pydantic.ValidationError as exc:
            raise ApiError(response.status_code, f"invalid response body: {exc}") from exc

    def stream(self, params: StreamParams) -> Stream[Any]:
        response = self._send(
            url=params.url,
            method=params.method,
            headers=params.headers,
            request=params.request,
            files=params.files,
            client=params.client,
            stream=True,
        )
        if response.status_code >= 400:
            try:
                response.read()
            finally:
                response.close()
            raise _decode_error(response, params.error_decoder)
        return Stream(
            response,
            _chunk_decoder(params.response_type, params.response_kind),
            delimiter=params.delimiter,
        )
