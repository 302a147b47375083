"""Parts of a ``multipart/form-data`` request, in the shape httpx's ``files=`` takes.

httpx renders the body, picks the boundary and sets the Content-Type header.
A part with a ``None`` filename is rendered as a plain form field.
"""

from __future__ import annotations

import os
from typing import IO, Any, Optional, Tuple, Union

import pydantic
import pydantic_core

FileContent = Union[IO[bytes], bytes, str]
FormPart = Union[Tuple[Optional[str], FileContent], Tuple[Optional[str], FileContent, str]]

_DEFAULT_FILE_CONTENT_TYPE = "application/octet-stream"


def file_part(
    file: IO[bytes] | bytes,
    default_filename: str,
    content_type: str = _DEFAULT_FILE_CONTENT_TYPE,
) -> FormPart:
    """A file part named after ``file.name`` when the object has one."""
    filename = default_filename
    name = getattr(file, "name", None)
    if isinstance(name, str) and name:
        filename = os.path.basename(name)
    return (filename, file, content_type)


def text_part(value: str) -> FormPart:
    return (None, value)


def json_part(value: Any) -> FormPart:
    if isinstance(value, pydantic.BaseModel):
        encoded = value.model_dump_json(by_alias=True, exclude_unset=True)
    else:
        encoded = pydantic_core.to_json(value, by_alias=True).decode("utf-8")
    return (None, encoded, "application/json")
