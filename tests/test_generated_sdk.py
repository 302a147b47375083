from __future__ import annotations

import base64
import importlib
import io
import json
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Callable

import httpx
import pydantic

from sdkgen.config import GeneratorConfig
from sdkgen.generator import generate, write_files
from sdkgen.loader import load_ir

FIXTURES = Path(__file__).resolve().parent / "fixtures"

Handler = Callable[[httpx.Request], httpx.Response]


def _generate_and_import(fixture: str, package: str, modules: list[str], **config) -> tuple[Path, dict]:
    output = Path(tempfile.mkdtemp(prefix=f"sdkgen-{package}-"))
    files = generate(load_ir(FIXTURES / fixture), GeneratorConfig(package=package, **config))
    write_files(files, output)
    sys.path.insert(0, str(output))
    importlib.invalidate_caches()
    loaded = {name: importlib.import_module(f"{package}.{name}") for name in modules}
    return output, loaded


def _unload(package: str, output: Path) -> None:
    try:
        sys.path.remove(str(output))
    except ValueError:
        pass
    for name in list(sys.modules):
        if name == package or name.startswith(f"{package}."):
            del sys.modules[name]
    shutil.rmtree(output, ignore_errors=True)


class _Recorder:
    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []
        self._respond = respond

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        return self._respond(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


BILLING_API_URL = "https://api.billing.test"

USER = {"id": "u1", "displayName": "Ada", "role": "admin", "kind": "user"}


class TestGeneratedAcmeSdk(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.output, modules = _generate_and_import(
            "acme.json",
            "acme",
            ["client", "core", "environments", "errors", "requests", "types"],
            sdk_version="1.2.3",
        )
        cls.client_module = modules["client"]
        cls.core = modules["core"]
        cls.environments = modules["environments"]
        cls.errors = modules["errors"]
        cls.requests = modules["requests"]
        cls.types = modules["types"]

    @classmethod
    def tearDownClass(cls) -> None:
        _unload("acme", cls.output)

    def _client(self, respond: Handler, *opts):
        recorder = _Recorder(respond)
        http_client = httpx.Client(transport=httpx.MockTransport(recorder))
        self.addCleanup(http_client.close)
        client = self.client_module.Client(
            self.client_module.with_http_client(http_client),
            self.client_module.with_token("secret"),
            *opts,
        )
        return client, recorder

    def test_client_exports(self) -> None:
        self.assertIn("Client", self.client_module.__all__)
        self.assertIn("with_token", self.client_module.__all__)
        self.assertIn("with_base_url", self.client_module.__all__)

    def test_optional_query_parameter_is_omitted(self) -> None:
        client, recorder = self._client(lambda request: httpx.Response(200, json=USER))
        user = client.get_user("u1", self.requests.GetUserRequest())

        request = recorder.last
        self.assertEqual(request.method, "GET")
        self.assertEqual(str(request.url), "https://api.acme.test/users/u1")
        self.assertNotIn("shallow", request.url.params)
        self.assertNotIn("X-Request-Id", request.headers)
        self.assertEqual(user.display_name, "Ada")
        self.assertIs(user.role, self.types.Role.ADMIN)
        self.assertEqual(user.kind, "user")

    def test_optional_query_parameter_is_sent_when_set(self) -> None:
        client, recorder = self._client(lambda request: httpx.Response(200, json=USER))
        client.get_user(
            "u1",
            self.requests.GetUserRequest(shallow=True, tag=["a", "b"], x_request_id="req-1"),
        )

        request = recorder.last
        self.assertEqual(request.url.params["shallow"], "true")
        self.assertEqual(request.url.params.get_list("tag"), ["a", "b"])
        self.assertEqual(request.headers["X-Request-Id"], "req-1")
        self.assertEqual(request.content, b"")

    def test_path_parameters_are_quoted(self) -> None:
        client, recorder = self._client(lambda request: httpx.Response(200, json=USER))
        client.get_user("a/b c", self.requests.GetUserRequest())
        self.assertIn(b"/users/a%2Fb%20c", recorder.last.url.raw_path)

    def test_client_headers(self) -> None:
        client, recorder = self._client(lambda request: httpx.Response(204))
        client.delete_user("u1", self.client_module.with_http_header({"X-Trace": "t-1"}))

        headers = recorder.last.headers
        self.assertEqual(headers["Authorization"], "Bearer secret")
        self.assertEqual(headers["X-Api-Version"], "2024-06-01")
        self.assertEqual(headers["X-Fern-Language"], "Python")
        self.assertEqual(headers["X-Fern-SDK-Name"], "acme")
        self.assertEqual(headers["X-Fern-SDK-Version"], "1.2.3")
        self.assertEqual(headers["X-Trace"], "t-1")

    def test_inlined_request_literal_round_trip(self) -> None:
        client, recorder = self._client(lambda request: httpx.Response(200, json=USER))
        client.create_user(self.requests.CreateUserRequest(display_name="Ada"))

        request = recorder.last
        self.assertEqual(request.headers["Content-Type"], "application/json")
        self.assertEqual(json.loads(request.content), {"displayName": "Ada", "source": "api"})
        self.assertEqual(self.requests.CreateUserRequest(display_name="Ada").source, "api")

    def test_inlined_request_literal_is_asserted_on_decode(self) -> None:
        request_type = self.requests.CreateUserRequest
        decoded = request_type.model_validate_json('{"displayName":"Ada","source":"api"}')
        self.assertEqual(decoded.display_name, "Ada")
        self.assertEqual(decoded.source, "api")
        with self.assertRaises(pydantic.ValidationError):
            request_type.model_validate_json('{"displayName":"Ada","source":"web"}')

    def test_model_literal_round_trip(self) -> None:
        user = self.types.User.model_validate({"id": "u1", "displayName": "Ada", "role": "member"})
        self.assertEqual(user.kind, "user")
        self.assertEqual(user.model_dump(by_alias=True, exclude_unset=True)["kind"], "user")
        with self.assertRaises(pydantic.ValidationError):
            self.types.User.model_validate({"id": "u1", "displayName": "Ada", "role": "member", "kind": "bot"})

    def test_reference_body_is_sent_as_is(self) -> None:
        client, recorder = self._client(lambda request: httpx.Response(200, json=USER))
        user = self.types.User(id="u1", display_name="Grace", role=self.types.Role.MEMBER)
        client.update_user("u1", user)

        request = recorder.last
        self.assertEqual(request.method, "PUT")
        self.assertEqual(
            json.loads(request.content),
            {"id": "u1", "displayName": "Grace", "role": "member", "kind": "user"},
        )

    def test_status_code_error_discrimination(self) -> None:
        client, _ = self._client(lambda request: httpx.Response(404, json="no such user"))
        with self.assertRaises(self.errors.NotFoundError) as ctx:
            client.get_user("u1", self.requests.GetUserRequest())
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.body, "no such user")
        self.assertIsInstance(ctx.exception.unwrap(), self.core.ApiError)

        client, _ = self._client(lambda request: httpx.Response(409, json={"message": "taken"}))
        with self.assertRaises(self.errors.ConflictError) as ctx:
            client.get_user("u1", self.requests.GetUserRequest())
        self.assertEqual(ctx.exception.body.message, "taken")
        self.assertEqual(json.loads(ctx.exception.to_json()), {"message": "taken"})

    def test_empty_body_for_optional_error(self) -> None:
        client, _ = self._client(lambda request: httpx.Response(404))
        with self.assertRaises(self.errors.NotFoundError) as ctx:
            client.get_user("u1", self.requests.GetUserRequest())
        self.assertIsNone(ctx.exception.body)

    def test_undeclared_and_undecodable_errors_fall_back(self) -> None:
        client, _ = self._client(lambda request: httpx.Response(500, text="boom"))
        with self.assertRaises(self.core.ApiError) as ctx:
            client.get_user("u1", self.requests.GetUserRequest())
        self.assertIs(type(ctx.exception), self.core.ApiError)
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.body, "boom")

        client, _ = self._client(lambda request: httpx.Response(409, json=[1, 2]))
        with self.assertRaises(self.core.ApiError) as ctx:
            client.get_user("u1", self.requests.GetUserRequest())
        self.assertIs(type(ctx.exception), self.core.ApiError)
        self.assertEqual(ctx.exception.status_code, 409)

    def test_multipart_upload(self) -> None:
        client, recorder = self._client(lambda request: httpx.Response(200, text="stored"))
        result = client.upload_avatar(
            "u1",
            b"PNGDATA",
            None,
            self.requests.UploadAvatarRequest(role=self.types.Role.MEMBER),
        )
        self.assertEqual(result, "stored")

        request = recorder.last
        self.assertTrue(request.headers["Content-Type"].startswith("multipart/form-data; boundary="))
        body = request.content
        self.assertIn(b'name="file"; filename="file_filename"', body)
        self.assertIn(b"PNGDATA", body)
        self.assertIn(b'name="role"', body)
        self.assertIn(b'"member"', body)
        self.assertNotIn(b'name="thumbnail"', body)
        self.assertNotIn(b'name="caption"', body)
        self.assertLess(body.index(b'name="file"'), body.index(b'name="role"'))

    def test_multipart_uses_file_name(self) -> None:
        client, recorder = self._client(lambda request: httpx.Response(200, text="stored"))
        upload = io.BytesIO(b"IMG")
        upload.name = "/tmp/avatar.png"
        client.upload_avatar(
            "u1",
            upload,
            b"THUMB",
            self.requests.UploadAvatarRequest(caption="me", role=self.types.Role.ADMIN),
        )
        body = recorder.last.content
        self.assertIn(b'filename="avatar.png"', body)
        self.assertIn(b'name="thumbnail"; filename="thumbnail_filename"', body)
        self.assertIn(b'name="caption"\r\n\r\nme\r\n', body)

    def test_file_download(self) -> None:
        client, _ = self._client(lambda request: httpx.Response(200, content=b"\x00\x01"))
        self.assertEqual(client.export_user("u1"), b"\x00\x01")

    def test_stream(self) -> None:
        lines = [
            {"id": "e1", "shape": {"type": "circle", "radius": 1.5}},
            {"id": "e2", "shape": {"type": "square", "side": 2}},
            {"id": "e3", "shape": {"type": "point"}},
        ]
        content = "\n\n".join(json.dumps(line) for line in lines).encode("utf-8")
        client, _ = self._client(lambda request: httpx.Response(200, content=content))
        with client.stream_events() as stream:
            events = list(stream)
        self.assertEqual([event.id for event in events], ["e1", "e2", "e3"])
        self.assertEqual(events[0].shape.radius, 1.5)
        self.assertEqual(events[1].shape.side, 2.0)
        self.assertEqual(events[2].shape.type, "point")

    def test_union_serialization_keeps_discriminant(self) -> None:
        event = self.types.Event.model_validate({"id": "e1", "shape": {"type": "square", "side": 3}})
        dumped = json.loads(event.model_dump_json(by_alias=True, exclude_unset=True))
        self.assertEqual(dumped["shape"], {"type": "square", "side": 3.0})

    def test_environments_and_base_url_overrides(self) -> None:
        self.assertEqual(self.environments.Environments.PRODUCTION, "https://api.acme.test")

        client, recorder = self._client(
            lambda request: httpx.Response(204),
            self.client_module.with_base_url(self.environments.Environments.STAGING),
        )
        client.delete_user("u1")
        self.assertEqual(str(recorder.last.url), "https://staging.acme.test/users/u1")

        client.delete_user("u1", self.client_module.with_base_url("https://call.acme.test/"))
        self.assertEqual(str(recorder.last.url), "https://call.acme.test/users/u1")


class TestGeneratedBillingSdk(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.output, modules = _generate_and_import(
            "multi.yaml",
            "billing",
            ["auth.requests", "client", "core", "environments", "errors"],
        )
        cls.auth_requests = modules["auth.requests"]
        cls.client_module = modules["client"]
        cls.core = modules["core"]
        cls.environments = modules["environments"]
        cls.errors = modules["errors"]

    @classmethod
    def tearDownClass(cls) -> None:
        _unload("billing", cls.output)

    def _client(self, respond: Handler, *opts, base_url: str | None = BILLING_API_URL):
        recorder = _Recorder(respond)
        http_client = httpx.Client(transport=httpx.MockTransport(recorder))
        self.addCleanup(http_client.close)
        options = [
            self.client_module.with_http_client(http_client),
            self.client_module.with_basic_auth("user", "pass"),
            self.client_module.with_x_api_key("abc"),
        ]
        if base_url is not None:
            options.append(self.client_module.with_base_url(base_url))
        client = self.client_module.Client(*options, *opts)
        return client, recorder

    def test_runtime_base_url_and_auth_headers(self) -> None:
        client, recorder = self._client(lambda request: httpx.Response(200, text="pong"))
        self.assertEqual(client.ping(), "pong")

        request = recorder.last
        self.assertEqual(str(request.url), "https://api.billing.test/ping")
        expected = "Basic " + base64.b64encode(b"user:pass").decode("ascii")
        self.assertEqual(request.headers["Authorization"], expected)
        self.assertEqual(request.headers["X-Api-Key"], "Key abc")

    def test_no_default_environment_bakes_no_base_url(self) -> None:
        content = (self.output / "billing" / "client" / "client.py").read_text(encoding="utf-8")
        self.assertIn("base_url = ''", content)
        self.assertNotIn("https://api.billing.test", content)

    def test_endpoint_slot_override_and_nested_response(self) -> None:
        client, recorder = self._client(
            lambda request: httpx.Response(200, json={"accessToken": "tok", "expiresIn": 60}),
            base_url=None,
        )
        token = client.auth.get_token(self.auth_requests.GetTokenRequest(client_id="c1"))
        self.assertEqual(token, "tok")

        request = recorder.last
        self.assertEqual(str(request.url), "https://auth.billing.test/token")
        self.assertEqual(json.loads(request.content), {"clientId": "c1"})

    def test_optional_nested_response(self) -> None:
        client, recorder = self._client(lambda request: httpx.Response(204), base_url=None)
        self.assertIsNone(client.auth.refresh_token())
        self.assertEqual(str(recorder.last.url), "https://auth.billing.test/token/refresh")

        client, _ = self._client(
            lambda request: httpx.Response(200, json={"accessToken": "fresh", "expiresIn": 60}),
            base_url=None,
        )
        self.assertEqual(client.auth.refresh_token(), "fresh")

    def test_environment_classes(self) -> None:
        environments = self.environments.Environments
        self.assertEqual(environments.Production.API, "https://api.billing.test")
        self.assertEqual(environments.Sandbox.AUTH, "https://auth.sandbox.billing.test")

    def test_property_error_discrimination(self) -> None:
        body = {"errorType": "BadRequestError", "content": {"reason": "missing field"}}
        client, _ = self._client(lambda request: httpx.Response(400, json=body))
        with self.assertRaises(self.errors.BadRequestError) as ctx:
            client.ping()
        self.assertEqual(ctx.exception.body.reason, "missing field")
        self.assertEqual(ctx.exception.unwrap().body, body)

        client, _ = self._client(lambda request: httpx.Response(403, json={"errorType": "ForbiddenError"}))
        with self.assertRaises(self.errors.ForbiddenError) as ctx:
            client.ping()
        self.assertIsNone(ctx.exception.body)

    def test_unmatched_discriminant_falls_back(self) -> None:
        client, _ = self._client(lambda request: httpx.Response(400, json={"errorType": "Other"}))
        with self.assertRaises(self.core.ApiError) as ctx:
            client.ping()
        self.assertIs(type(ctx.exception), self.core.ApiError)

        client, _ = self._client(lambda request: httpx.Response(400, text="not json"))
        with self.assertRaises(self.core.ApiError) as ctx:
            client.ping()
        self.assertIs(type(ctx.exception), self.core.ApiError)
        self.assertEqual(ctx.exception.body, "not json")


if __name__ == "__main__":
    unittest.main()
