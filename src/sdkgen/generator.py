"""Partitions an IR into generation units and renders each one into a file.

Every unit gets its own FileWriter and Scope. Output is a list of GeneratedFile
sorted by path; nothing touches the filesystem until ``write_files``.
"""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path, PurePosixPath

from .auth import plan_options, write_client_options, write_client_options_definition
from .client import CLIENT_CLASS, ClientWriter, PackageNode, client_module, package_tree, write_readme
from .config import GeneratorConfig
from .environments import write_environments
from .error_types import ErrorWriter
from .ir import IntermediateRepresentation, Wrapper
from .models import ModelWriter
from .registry import TypeRegistry, module_path
from .request_types import RequestWriter, needs_request_parameter
from .writer import HEADER, FileWriter, GeneratedFile

logger = logging.getLogger(__name__)

_ASSET_PACKAGE = "sdkgen"


def module_file(module: str) -> str:
    return module.replace(".", "/") + ".py"


def core_assets(package: str) -> list[GeneratedFile]:
    """The static runtime library, copied verbatim under ``<package>/core``."""
    root = resources.files(_ASSET_PACKAGE).joinpath("assets").joinpath("core")
    files: list[GeneratedFile] = []
    for entry in sorted(root.iterdir(), key=lambda item: item.name):
        if not entry.name.endswith(".py"):
            continue
        content = entry.read_text(encoding="utf-8")
        files.append(GeneratedFile(f"{package}/core/{entry.name}", f"{HEADER}\n{content}"))
    return files


def _walk(node: PackageNode) -> list[PackageNode]:
    nodes = [node]
    for child in node.children:
        nodes.extend(_walk(child))
    return nodes


class Generator:
    def __init__(self, ir: IntermediateRepresentation, config: GeneratorConfig) -> None:
        self._ir = ir
        self._config = config
        self._registry = TypeRegistry(ir, config.package)
        self._options = plan_options(ir)

    def generate(self) -> list[GeneratedFile]:
        package = self._config.package
        files: dict[str, GeneratedFile] = {}

        def add(generated: GeneratedFile) -> None:
            files[generated.path] = generated

        for asset in core_assets(package):
            add(asset)
        add(self._client_options_definition())
        add(self._client_options())

        environment_example: str | None = None
        if self._ir.environments is not None:
            writer = FileWriter(module_file(f"{package}.environments"))
            environment_example = write_environments(self._ir.environments, writer)
            add(writer.to_file())

        for generated in self._type_modules():
            add(generated)
        for generated in self._error_modules():
            add(generated)

        tree = package_tree(self._ir)
        for node in _walk(tree):
            requests = self._request_module(node)
            if requests is not None:
                add(requests)
        for node in _walk(tree):
            if node.has_endpoints:
                writer = FileWriter(module_file(client_module(package, node.fern_filepath)))
                ClientWriter(self._registry, writer).write(node)
                add(writer.to_file())
        add(self._client_exports(tree.has_endpoints))

        root = FileWriter(f"{package}/__init__.py", docs=self._ir.api_docs)
        add(root.to_file())
        for generated in self._package_markers(files):
            add(generated)
        if self._config.readme:
            readme = write_readme(self._ir, self._options, package, environment_example)
            add(GeneratedFile("README.md", readme))

        ordered = [files[path] for path in sorted(files)]
        logger.info("generated %d files for package %s", len(ordered), package)
        return ordered

    def _client_options_definition(self) -> GeneratedFile:
        writer = FileWriter(f"{self._config.package}/core/client_options.py")
        write_client_options_definition(
            self._options,
            self._registry,
            writer,
            sdk_name=self._config.package,
            sdk_version=self._config.sdk_version,
        )
        return writer.to_file()

    def _client_options(self) -> GeneratedFile:
        writer = FileWriter(f"{self._config.package}/client/options.py")
        write_client_options(self._options, self._registry, writer)
        return writer.to_file()

    def _client_exports(self, has_client: bool) -> GeneratedFile:
        writer = FileWriter(f"{self._config.package}/client/__init__.py")
        names = ["with_base_url", "with_http_client", "with_http_header"]
        names += [option.function for option in self._options.options]
        exported = sorted(names)
        if has_client:
            writer.line(f"from .client import {CLIENT_CLASS}")
            exported = [CLIENT_CLASS, *exported]
        writer.line(f"from .options import {', '.join(sorted(names))}")
        writer.line()
        writer.line("__all__ = [")
        with writer.indent():
            for name in exported:
                writer.line(f"{name!r},")
        writer.line("]")
        return writer.to_file()

    def _type_modules(self) -> list[GeneratedFile]:
        by_module: dict[str, list[str]] = {}
        for type_id in self._registry.type_ids():
            by_module.setdefault(self._registry.module_for_type(type_id), []).append(type_id)
        generated: list[GeneratedFile] = []
        for module in sorted(by_module):
            writer = FileWriter(module_file(module))
            ModelWriter(self._registry, writer, module).write(by_module[module])
            generated.append(writer.to_file())
        return generated

    def _error_modules(self) -> list[GeneratedFile]:
        by_module: dict[str, list[str]] = {}
        for error_id in self._registry.error_ids():
            by_module.setdefault(self._registry.module_for_error(error_id), []).append(error_id)
        generated: list[GeneratedFile] = []
        for module in sorted(by_module):
            writer = FileWriter(module_file(module))
            ErrorWriter(self._registry, writer, module).write(by_module[module])
            generated.append(writer.to_file())
        return generated

    def _request_module(self, node: PackageNode) -> GeneratedFile | None:
        wrappers = [
            endpoint
            for endpoint in node.endpoints
            if endpoint.sdk_request is not None
            and isinstance(endpoint.sdk_request.shape, Wrapper)
            and needs_request_parameter(endpoint)
        ]
        if not wrappers:
            return None
        module = module_path(self._config.package, node.fern_filepath, "requests")
        writer = FileWriter(module_file(module))
        request_writer = RequestWriter(self._registry, writer, module)
        for endpoint in wrappers:
            request_writer.write(endpoint)
        return writer.to_file()

    def _package_markers(self, files: dict[str, GeneratedFile]) -> list[GeneratedFile]:
        """An ``__init__.py`` for every generated directory that lacks one."""
        directories: set[PurePosixPath] = set()
        for path in files:
            parent = PurePosixPath(path).parent
            while parent != PurePosixPath("."):
                directories.add(parent)
                parent = parent.parent
        markers: list[GeneratedFile] = []
        for directory in sorted(directories):
            marker = str(directory / "__init__.py")
            if marker not in files:
                markers.append(FileWriter(marker).to_file())
        return markers


def generate(ir: IntermediateRepresentation, config: GeneratorConfig) -> list[GeneratedFile]:
    return Generator(ir, config).generate()


def write_files(files: list[GeneratedFile], output: Path) -> None:
    for generated in files:
        target = output / generated.path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(generated.content, encoding="utf-8")
        logger.debug("wrote %s", target)
