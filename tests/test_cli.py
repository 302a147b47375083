from __future__ import annotations

import contextlib
import io
import tempfile
import unittest
from pathlib import Path

from sdkgen.cli import main
from sdkgen.config import ConfigError, load_config

FIXTURES = Path(__file__).resolve().parent / "fixtures"


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str) -> tuple[int, str]:
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            code = main(list(argv))
        return code, stderr.getvalue()

    def test_generate_writes_package(self) -> None:
        output = self.tmp / "out"
        code, _ = self._run("generate", "--ir", str(FIXTURES / "acme.json"), "--output", str(output), "--package", "acme")
        self.assertEqual(code, 0)
        self.assertTrue((output / "acme" / "client" / "client.py").is_file())
        self.assertTrue((output / "acme" / "core" / "caller.py").is_file())
        self.assertTrue((output / "README.md").is_file())

    def test_no_readme_flag(self) -> None:
        output = self.tmp / "out"
        code, _ = self._run(
            "generate",
            "--ir",
            str(FIXTURES / "multi.yaml"),
            "--output",
            str(output),
            "--package",
            "billing",
            "--no-readme",
        )
        self.assertEqual(code, 0)
        self.assertFalse((output / "README.md").exists())
        self.assertTrue((output / "billing" / "auth" / "client.py").is_file())

    def test_config_file(self) -> None:
        config = self.tmp / "sdkgen.yaml"
        config.write_text("package: acme\nsdkVersion: 2.0.0\n", encoding="utf-8")
        output = self.tmp / "out"
        code, _ = self._run("generate", "--ir", str(FIXTURES / "acme.json"), "--output", str(output), "--config", str(config))
        self.assertEqual(code, 0)
        options = (output / "acme" / "core" / "client_options.py").read_text(encoding="utf-8")
        self.assertIn("'2.0.0'", options)

    def test_flags_override_config_file(self) -> None:
        config = self.tmp / "sdkgen.yaml"
        config.write_text("package: acme\nreadme: false\n", encoding="utf-8")
        loaded = load_config(config, package="other", sdk_version=None)
        self.assertEqual(loaded.package, "other")
        self.assertFalse(loaded.readme)
        self.assertIsNone(loaded.sdk_version)

    def test_unknown_config_key(self) -> None:
        config = self.tmp / "sdkgen.yaml"
        config.write_text("package: acme\ncolour: blue\n", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(config)

    def test_invalid_ir_exits_with_error(self) -> None:
        broken = self.tmp / "broken.json"
        broken.write_text('{"apiName": "x", "types": {"t": {"shape": {"type": "nope"}}}}', encoding="utf-8")
        code, stderr = self._run("generate", "--ir", str(broken), "--output", str(self.tmp / "out"), "--package", "acme")
        self.assertEqual(code, 1)
        self.assertIn("Invalid IR document", stderr)
        self.assertFalse((self.tmp / "out").exists())

    def test_package_is_required(self) -> None:
        code, stderr = self._run("generate", "--ir", str(FIXTURES / "acme.json"), "--output", str(self.tmp / "out"))
        self.assertEqual(code, 1)
        self.assertIn("--package", stderr)


if __name__ == "__main__":
    unittest.main()
