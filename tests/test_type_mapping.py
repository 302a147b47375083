from __future__ import annotations

import unittest
from typing import Any

from sdkgen.errors import UnknownTypeError
from sdkgen.ir import NamedTypeReference, TypeReference
from sdkgen.loader import parse_ir
from sdkgen.registry import TypeRegistry
from sdkgen.scope import Scope
from sdkgen.type_mapper import map_type
from sdkgen.value_format import format_for_transport


def _primitive(name: str) -> dict[str, Any]:
    return {"type": "primitive", "primitive": name}


def _container(kind: str, **fields: Any) -> dict[str, Any]:
    return {"type": "container", "container": {"type": kind, **fields}}


def _named(type_id: str) -> dict[str, Any]:
    return {"type": "named", "typeId": type_id}


IR = {
    "apiName": "acme",
    "types": {
        "type_:User": {
            "name": {"typeId": "type_:User", "name": "User"},
            "shape": {"type": "object", "properties": []},
        },
        "type_:Color": {
            "name": {"typeId": "type_:Color", "name": "Color"},
            "shape": {"type": "enum", "values": [{"name": "red"}]},
        },
        "type_:Birthday": {
            "name": {"typeId": "type_:Birthday", "name": "Birthday"},
            "shape": {"type": "alias", "aliasOf": _primitive("DATE")},
        },
        "type_billing:Invoice": {
            "name": {"typeId": "type_billing:Invoice", "name": "Invoice", "fernFilepath": ["billing"]},
            "shape": {"type": "object", "properties": []},
        },
    },
}


class TestTypeMapper(unittest.TestCase):
    def setUp(self) -> None:
        self.ir = parse_ir(IR)
        self.registry = TypeRegistry(self.ir, "acme")
        self.scope = Scope()

    def _ref(self, data: dict[str, Any]) -> TypeReference:
        return parse_ir({"apiName": "x", "headers": [{"name": "h", "valueType": data}]}).headers[0].value_type

    def _map(self, data: dict[str, Any], import_path: str = "") -> str:
        return map_type(self._ref(data), self.registry, self.scope, import_path)

    def test_primitives(self) -> None:
        self.assertEqual(self._map(_primitive("STRING")), "str")
        self.assertEqual(self._map(_primitive("LONG")), "int")
        self.assertEqual(self._map(_primitive("DOUBLE")), "float")
        self.assertEqual(self._map(_primitive("BOOLEAN")), "bool")
        self.assertEqual(self._map(_primitive("DATE_TIME")), "datetime.datetime")
        self.assertEqual(self._map(_primitive("UUID")), "uuid.UUID")
        self.assertEqual(self._map(_primitive("BASE_64")), "pydantic.Base64Bytes")
        self.assertEqual(
            self.scope.render_imports(),
            ["import datetime", "import pydantic", "import uuid"],
        )

    def test_containers(self) -> None:
        self.assertEqual(
            self._map(_container("optional", valueType=_container("list", valueType=_named("type_:User")))),
            "list[types.User] | None",
        )
        self.assertEqual(
            self._map(_container("map", keyType=_primitive("STRING"), valueType=_primitive("INTEGER"))),
            "dict[str, int]",
        )
        self.assertEqual(self._map(_container("set", valueType=_primitive("STRING"))), "set[str]")
        self.assertEqual(self._map({"type": "unknown"}), "typing.Any")

    def test_literals_map_to_their_value_type(self) -> None:
        self.assertEqual(self._map(_container("literal", literal={"type": "string", "string": "v1"})), "str")
        self.assertEqual(self._map(_container("literal", literal={"type": "boolean", "boolean": True})), "bool")

    def test_named_types_in_same_module_are_bare(self) -> None:
        self.assertEqual(self._map(_named("type_:User"), "acme.types"), "User")
        self.assertEqual(self._map(_named("type_:User"), "acme.billing.types"), "types.User")
        self.assertEqual(self._map(_named("type_billing:Invoice"), "acme.types"), "billing_types.Invoice")

    def test_unknown_type_id(self) -> None:
        with self.assertRaises(UnknownTypeError) as ctx:
            map_type(NamedTypeReference(type_id="type_:Missing"), self.registry, self.scope)
        self.assertIn("type_:Missing", str(ctx.exception))


class TestValueFormatter(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = TypeRegistry(parse_ir(IR), "acme")
        self.scope = Scope()

    def _format(self, data: dict[str, Any]):
        ref = parse_ir({"apiName": "x", "headers": [{"name": "h", "valueType": data}]}).headers[0].value_type
        return format_for_transport(ref, self.registry, self.scope)

    def test_string_is_passed_through(self) -> None:
        fmt = self._format(_primitive("STRING"))
        self.assertEqual(fmt.apply("value"), "value")
        self.assertTrue(fmt.is_primitive)
        self.assertFalse(fmt.is_optional)

    def test_optional_boolean(self) -> None:
        fmt = self._format(_container("optional", valueType=_primitive("BOOLEAN")))
        self.assertTrue(fmt.is_optional)
        self.assertEqual(fmt.apply("value"), "str(value).lower()")

    def test_dates_and_bytes(self) -> None:
        self.assertEqual(self._format(_primitive("DATE_TIME")).apply("v"), "v.isoformat()")
        self.assertEqual(self._format(_primitive("BASE_64")).apply("v"), 'base64.b64encode(v).decode("ascii")')
        self.assertIn("import base64", self.scope.render_imports())

    def test_named_types(self) -> None:
        enum_format = self._format(_named("type_:Color"))
        self.assertEqual(enum_format.apply("v"), "v.value")
        self.assertFalse(enum_format.is_primitive)
        self.assertEqual(self._format(_named("type_:Birthday")).apply("v"), "v.isoformat()")
        self.assertEqual(self._format(_named("type_:User")).apply("v"), "str(v)")


if __name__ == "__main__":
    unittest.main()
