from __future__ import annotations

from .casing import safe_ident
from .errors import UnsupportedTypeShapeError
from .ir import (
    EnvironmentsConfig,
    MultipleBaseUrlsEnvironment,
    MultipleBaseUrlsEnvironments,
    SingleBaseUrlEnvironments,
)
from .scope import Scope
from .writer import FileWriter

ENVIRONMENTS_CLASS = "Environments"


def _slot_names(environments: MultipleBaseUrlsEnvironments) -> dict[str, str]:
    members = Scope()
    return {
        base_url.id: members.add_local(base_url.name.screaming_snake_case)
        for base_url in sorted(environments.base_urls, key=lambda item: item.id)
    }


def write_environments(config: EnvironmentsConfig, writer: FileWriter) -> str | None:
    """Write the ``Environments`` class; return an example expression for docs, if any."""
    writer.scope.declare(ENVIRONMENTS_CLASS)
    members = Scope()
    example: str | None = None
    writer.line(f"class {ENVIRONMENTS_CLASS}:")
    with writer.indent():
        writer.docstring(
            "Every environment the API is served from.\n\n"
            "Pass one of these to ``with_base_url`` to override the default base URL."
        )
        environments = config.environments
        if isinstance(environments, SingleBaseUrlEnvironments):
            for environment in environments.environments:
                attribute = members.add_local(environment.name.screaming_snake_case)
                if example is None:
                    example = f"{ENVIRONMENTS_CLASS}.{attribute}"
                writer.line()
                writer.line(f"{attribute} = {environment.url!r}")
                writer.docstring(environment.docs)
        elif isinstance(environments, MultipleBaseUrlsEnvironments):
            slots = _slot_names(environments)
            for environment in environments.environments:
                nested = members.add_local(safe_ident(environment.name.pascal_case))
                writer.line()
                writer.line(f"class {nested}:")
                with writer.indent():
                    writer.docstring(environment.docs)
                    for slot_id in sorted(environment.urls):
                        writer.line(f"{slots[slot_id]} = {environment.urls[slot_id]!r}")
                    if not environment.urls:
                        writer.line("pass")
                if example is None:
                    first = sorted(environment.urls)
                    if first:
                        example = f"{ENVIRONMENTS_CLASS}.{nested}.{slots[first[0]]}"
        else:
            raise UnsupportedTypeShapeError("environments", type(environments).__name__)
    if config.default_environment is not None:
        return None
    return example


def _multiple_base_url(
    candidates: list[MultipleBaseUrlsEnvironment],
    slot_id: str,
) -> str:
    for environment in candidates:
        url = environment.urls.get(slot_id)
        if url is not None:
            return url
    return ""


def resolve_base_url(config: EnvironmentsConfig | None, endpoint_base_url: str | None) -> str:
    """Base URL baked into an endpoint; an empty string defers to the runtime value."""
    if config is None:
        return ""
    environments = config.environments
    if isinstance(environments, SingleBaseUrlEnvironments):
        environment_id = endpoint_base_url or config.default_environment
        for environment in environments.environments:
            if environment.id == environment_id:
                return environment.url
        return ""
    if isinstance(environments, MultipleBaseUrlsEnvironments):
        candidates = list(environments.environments)
        if config.default_environment is not None:
            candidates = [e for e in candidates if e.id == config.default_environment]
        elif endpoint_base_url is None:
            # Nothing to pick an environment by; the runtime base URL decides.
            return ""
        slot_id = endpoint_base_url
        if slot_id is None and environments.base_urls:
            slot_id = environments.base_urls[0].id
        if slot_id is None:
            return ""
        return _multiple_base_url(candidates, slot_id)
    raise UnsupportedTypeShapeError("environments", type(environments).__name__)
