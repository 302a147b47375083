from __future__ import annotations

import keyword
import re

_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z0-9])|[A-Z]?[a-z0-9]+|[A-Z]+|[0-9]+")

# Attribute names pydantic.BaseModel already uses; fields must not shadow them.
_MODEL_RESERVED = {
    "construct",
    "copy",
    "dict",
    "fields",
    "json",
    "model_config",
    "model_fields",
    "parse_obj",
    "parse_raw",
    "schema",
    "schema_json",
    "validate",
}


def split_words(value: str) -> list[str]:
    return [word.lower() for word in _WORD_RE.findall(value)]


def snake_case(value: str) -> str:
    words = split_words(value)
    return "_".join(words) if words else "value"


def pascal_case(value: str) -> str:
    words = split_words(value)
    return "".join(word[:1].upper() + word[1:] for word in words) if words else "Value"


def camel_case(value: str) -> str:
    pascal = pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


def screaming_snake_case(value: str) -> str:
    return snake_case(value).upper()


def safe_ident(value: str) -> str:
    value = re.sub(r"[^0-9A-Za-z_]", "_", value)
    value = re.sub(r"_+", "_", value).strip("_")
    if not value:
        value = "value"
    if value[0].isdigit():
        value = f"_{value}"
    if keyword.iskeyword(value):
        value += "_"
    return value


def safe_field_name(value: str) -> str:
    value = safe_ident(snake_case(value))
    if value.startswith("_"):
        value = f"field{value}"
    if value in _MODEL_RESERVED or value.startswith("model_"):
        value += "_"
    return value
