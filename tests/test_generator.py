from __future__ import annotations

import copy
import json
import unittest
from pathlib import Path
from typing import Any

from sdkgen.config import ConfigError, GeneratorConfig
from sdkgen.errors import (
    UnknownTypeError,
    UnsupportedRequestBodyError,
    UnsupportedResponseTypeError,
)
from sdkgen.generator import generate
from sdkgen.loader import load_ir, parse_ir
from sdkgen.writer import HEADER

FIXTURES = Path(__file__).resolve().parent / "fixtures"


def _acme_document() -> dict[str, Any]:
    return json.loads((FIXTURES / "acme.json").read_text(encoding="utf-8"))


def _endpoint(document: dict[str, Any], name: str) -> dict[str, Any]:
    return next(e for e in document["services"]["service_"]["endpoints"] if e["name"] == name)


class TestGenerator(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.acme_ir = load_ir(FIXTURES / "acme.json")
        cls.billing_ir = load_ir(FIXTURES / "multi.yaml")

    def _files(self, ir=None, **config: Any) -> dict[str, str]:
        settings = {"package": "acme", **config}
        generated = generate(ir if ir is not None else self.acme_ir, GeneratorConfig(**settings))
        return {f.path: f.content for f in generated}

    def test_layout(self) -> None:
        files = self._files()
        for path in (
            "README.md",
            "acme/__init__.py",
            "acme/client/__init__.py",
            "acme/client/client.py",
            "acme/client/options.py",
            "acme/core/__init__.py",
            "acme/core/api_error.py",
            "acme/core/caller.py",
            "acme/core/client_options.py",
            "acme/core/multipart.py",
            "acme/core/stream.py",
            "acme/environments.py",
            "acme/errors.py",
            "acme/requests.py",
            "acme/types.py",
        ):
            self.assertIn(path, files)

    def test_subpackage_layout(self) -> None:
        files = self._files(self.billing_ir, package="billing")
        for path in (
            "billing/auth/__init__.py",
            "billing/auth/client.py",
            "billing/auth/requests.py",
            "billing/auth/types.py",
            "billing/client/client.py",
            "billing/errors.py",
            "billing/types.py",
        ):
            self.assertIn(path, files)
        self.assertNotIn("billing/requests.py", files)
        self.assertIn("import billing.auth.client as client", files["billing/client/client.py"])
        self.assertIn("self.auth = client.Client(*opts)", files["billing/client/client.py"])

    def test_output_is_deterministic_and_sorted(self) -> None:
        first = generate(self.acme_ir, GeneratorConfig(package="acme"))
        second = generate(self.acme_ir, GeneratorConfig(package="acme"))
        self.assertEqual(first, second)
        paths = [f.path for f in first]
        self.assertEqual(paths, sorted(paths))

    def test_every_module_has_header_and_compiles(self) -> None:
        for ir, package in ((self.acme_ir, "acme"), (self.billing_ir, "billing")):
            for path, content in self._files(ir, package=package).items():
                if not path.endswith(".py"):
                    continue
                with self.subTest(path=path):
                    self.assertTrue(content.startswith(HEADER))
                    compile(content, path, "exec")

    def test_endpoint_methods(self) -> None:
        client = self._files()["acme/client/client.py"]
        self.assertIn("    def get_user(\n        self,\n        user_id: str,\n        request: requests.GetUserRequest,\n", client)
        self.assertIn("    def stream_events(self, *opts: core.ClientOption) -> core.Stream[types.Event]:", client)
        self.assertIn(") -> bytes:", client)
        self.assertIn("if request.shallow is not None:", client)
        self.assertIn("for value in request.tag:", client)
        self.assertIn("if status_code == 404:", client)
        self.assertIn("if thumbnail is not None:", client)
        self.assertIn("import urllib.parse", client)

    def test_multipart_parts_are_encoded_by_httpx(self) -> None:
        client = self._files()["acme/client/client.py"]
        self.assertIn("files: list[tuple[str, core.FormPart]] = []", client)
        self.assertIn("files.append(('file', core.file_part(file, 'file_filename')))", client)
        self.assertIn("files.append(('role', core.json_part(request.role)))", client)
        self.assertIn("files=files,", client)
        self.assertNotIn("Content-Type", client)

    def test_optional_nested_response(self) -> None:
        client = self._files(self.billing_ir, package="billing")["billing/auth/client.py"]
        self.assertIn("def refresh_token(self, *opts: core.ClientOption) -> str | None:", client)
        self.assertIn("return None if response is None else response.access_token", client)
        self.assertIn("return response.access_token", client)

    def test_platform_headers_need_a_version(self) -> None:
        without = self._files()["acme/core/client_options.py"]
        self.assertNotIn("X-Fern-SDK-Version", without)
        with_version = self._files(sdk_version="1.2.3")["acme/core/client_options.py"]
        self.assertIn("header['X-Fern-SDK-Version'] = '1.2.3'", with_version)
        self.assertIn("header['X-Fern-SDK-Name'] = 'acme'", with_version)

    def test_readme(self) -> None:
        readme = self._files()["README.md"]
        self.assertIn("from acme.client import Client, with_token", readme)
        self.assertIn('with_token("<YOUR_AUTH_TOKEN>")', readme)
        self.assertNotIn("Environments", readme)

        billing = self._files(self.billing_ir, package="billing")["README.md"]
        self.assertIn('with_basic_auth("<YOUR_USERNAME>", "<YOUR_PASSWORD>")', billing)
        self.assertIn("with_base_url(Environments.Production.API)", billing)
        self.assertIn("from billing.environments import Environments", billing)

        self.assertNotIn("README.md", self._files(readme=False))

    def test_bytes_request_is_rejected(self) -> None:
        document = _acme_document()
        endpoint = _endpoint(document, "updateUser")
        endpoint["requestBody"] = {"type": "bytes"}
        with self.assertRaises(UnsupportedRequestBodyError) as ctx:
            self._files(parse_ir(document))
        self.assertEqual(ctx.exception.endpoint, "updateUser")

    def test_file_stream_is_rejected(self) -> None:
        document = _acme_document()
        _endpoint(document, "streamEvents")["response"] = {"type": "streaming", "dataEventType": {"type": "file"}}
        with self.assertRaises(UnsupportedResponseTypeError):
            self._files(parse_ir(document))

    def test_query_parameters_need_a_wrapper(self) -> None:
        document = _acme_document()
        endpoint = _endpoint(document, "updateUser")
        endpoint["queryParameters"] = [{"name": "dryRun", "valueType": {"type": "primitive", "primitive": "BOOLEAN"}}]
        with self.assertRaises(UnsupportedRequestBodyError):
            self._files(parse_ir(document))

    def test_unknown_type_reference(self) -> None:
        document = _acme_document()
        _endpoint(document, "exportUser")["response"] = {
            "type": "json",
            "value": {"type": "response", "responseBodyType": {"type": "named", "typeId": "type_:Missing"}},
        }
        with self.assertRaises(UnknownTypeError):
            self._files(parse_ir(document))

    def test_unknown_error_reference(self) -> None:
        document = copy.deepcopy(_acme_document())
        _endpoint(document, "deleteUser")["errors"] = ["error_:Gone"]
        with self.assertRaises(UnknownTypeError) as ctx:
            self._files(parse_ir(document))
        self.assertEqual(ctx.exception.kind, "error")

    def test_invalid_package_name(self) -> None:
        with self.assertRaises(ConfigError):
            GeneratorConfig(package="not-a-package")
        with self.assertRaises(ConfigError):
            GeneratorConfig(package="class")


if __name__ == "__main__":
    unittest.main()
