from __future__ import annotations

import logging
from dataclasses import dataclass

from .auth import OptionsPlan
from .endpoint import EndpointAssembler
from .environments import ENVIRONMENTS_CLASS
from .ir import FernFilepath, HttpEndpoint, IntermediateRepresentation
from .registry import TypeRegistry, module_path
from .scope import Scope
from .writer import FileWriter

logger = logging.getLogger(__name__)

CLIENT_CLASS = "Client"


@dataclass(frozen=True)
class PackageNode:
    """One package of the IR tree, root included, with what its client needs."""

    key: str
    fern_filepath: FernFilepath
    attribute: str
    endpoints: tuple[HttpEndpoint, ...]
    children: tuple[PackageNode, ...]
    docs: str | None = None

    @property
    def has_endpoints(self) -> bool:
        return bool(self.endpoints) or any(child.has_endpoints for child in self.children)


def package_tree(ir: IntermediateRepresentation) -> PackageNode:
    def endpoints(service_id: str | None) -> tuple[HttpEndpoint, ...]:
        if service_id is None:
            return ()
        service = ir.services.get(service_id)
        if service is None:
            return ()
        return tuple(service.endpoints)

    def build(subpackage_id: str, seen: frozenset[str]) -> PackageNode | None:
        subpackage = ir.subpackages.get(subpackage_id)
        if subpackage is None or subpackage_id in seen:
            return None
        nested = seen | {subpackage_id}
        children = tuple(
            node for node in (build(child, nested) for child in subpackage.subpackages) if node is not None
        )
        return PackageNode(
            key=subpackage_id,
            fern_filepath=subpackage.fern_filepath,
            attribute=subpackage.name.snake_case,
            endpoints=endpoints(subpackage.service),
            children=children,
            docs=subpackage.docs,
        )

    root = ir.root_package
    children = tuple(node for node in (build(child, frozenset()) for child in root.subpackages) if node is not None)
    return PackageNode(
        key="",
        fern_filepath=root.fern_filepath,
        attribute="",
        endpoints=endpoints(root.service),
        children=children,
        docs=root.docs,
    )


def client_module(package: str, fern_filepath: FernFilepath) -> str:
    if not fern_filepath.all_parts:
        return f"{package}.client.client"
    return module_path(package, fern_filepath, "client")


class ClientWriter:
    """Writes the ``Client`` class of one package: its sub-clients first, then one method per endpoint."""

    def __init__(self, registry: TypeRegistry, writer: FileWriter) -> None:
        self._registry = registry
        self._writer = writer

    def write(self, node: PackageNode) -> None:
        registry = self._registry
        writer = self._writer
        scope = writer.scope
        core = scope.add_import(f"{registry.package}.core")
        scope.declare(CLIENT_CLASS)
        logger.debug("writing client for package %r with %d endpoints", node.key, len(node.endpoints))

        members = Scope()
        for reserved in ("_base_url", "_caller", "_header"):
            members.declare(reserved)
        subclients: list[tuple[str, str]] = []
        for child in node.children:
            if not child.has_endpoints:
                continue
            attribute = members.add_local(child.attribute)
            module = scope.add_import(client_module(registry.package, child.fern_filepath))
            subclients.append((attribute, module))

        writer.line(f"class {CLIENT_CLASS}:")
        with writer.indent():
            writer.docstring(node.docs)
            locals_ = scope.child()
            self_ = locals_.declare("self")
            opts = locals_.add_local("opts")
            options = locals_.add_local("options")
            writer.line(f"def __init__({self_}, *{opts}: {core}.ClientOption) -> None:")
            with writer.indent():
                writer.line(f"{options} = {core}.new_request_options(*{opts})")
                writer.line(f"{self_}._base_url = {options}.base_url")
                writer.line(f"{self_}._caller = {core}.Caller({options}.http_client)")
                writer.line(f"{self_}._header = {options}.to_header()")
                for attribute, module in subclients:
                    writer.line(f"{self_}.{attribute} = {module}.{CLIENT_CLASS}(*{opts})")

            assembler = EndpointAssembler(
                registry,
                writer,
                requests_module=module_path(registry.package, node.fern_filepath, "requests"),
                environments=registry.ir.environments,
                error_strategy=registry.ir.error_discrimination_strategy,
                members=members,
            )
            for endpoint in node.endpoints:
                assembler.write(endpoint)


def write_readme(
    ir: IntermediateRepresentation,
    plan: OptionsPlan,
    package: str,
    environment_example: str | None,
) -> str:
    """Markdown README with an installation note and a usage snippet built from the client options."""
    imports = [CLIENT_CLASS]
    arguments: list[str] = []
    example = plan.example
    if example is not None:
        imports.append(example.split("(", 1)[0])
        arguments.append(example)
    if environment_example is not None:
        imports.append("with_base_url")
        arguments.append(f"with_base_url({environment_example})")

    lines = [f"# {ir.api_name.pascal_case} Python Library", ""]
    if ir.api_docs:
        lines += [ir.api_docs.strip(), ""]
    lines += [
        "## Usage",
        "",
        "```python",
        f"from {package}.client import {', '.join(imports)}",
    ]
    if environment_example is not None:
        lines.append(f"from {package}.environments import {ENVIRONMENTS_CLASS}")
    lines.append("")
    if arguments:
        lines.append(f"client = {CLIENT_CLASS}(")
        lines += [f"    {argument}," for argument in arguments]
        lines.append(")")
    else:
        lines.append(f"client = {CLIENT_CLASS}()")
    lines += [
        "```",
        "",
        "## Errors",
        "",
        f"Failed calls raise `{package}.core.ApiError`, or the error class declared for the",
        "endpoint when the response matches one. Declared errors keep the generic error",
        "available through `unwrap()`.",
        "",
    ]
    return "\n".join(lines)
