from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from .scope import Scope

HEADER = "# This file was auto-generated by sdkgen from the API definition. Do not edit."


@dataclass(frozen=True)
class GeneratedFile:
    path: str
    content: str


def _render_lines(lines: list[str]) -> str:
    return "\n".join(lines) + "\n"


class FileWriter:
    """Accumulates the body of one Python module; imports come from its Scope."""

    def __init__(self, path: str, scope: Scope | None = None, *, docs: str | None = None) -> None:
        self.path = path
        self.scope = scope if scope is not None else Scope()
        self._docs = docs
        self._lines: list[str] = []
        self._indent = 0

    def line(self, text: str = "") -> None:
        if not text:
            self._lines.append("")
            return
        self._lines.append("    " * self._indent + text)

    def lines(self, texts: list[str]) -> None:
        for text in texts:
            self.line(text)

    @contextmanager
    def indent(self) -> Iterator[None]:
        self._indent += 1
        try:
            yield
        finally:
            self._indent -= 1

    def docstring(self, docs: str | None) -> None:
        if not docs:
            return
        text = docs.strip().replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
        body = text.splitlines()
        if len(body) == 1:
            self.line(f'"""{body[0]}"""')
            return
        self.line(f'"""{body[0]}')
        for item in body[1:]:
            self.line(item.rstrip())
        self.line('"""')

    def is_empty(self) -> bool:
        return not any(text.strip() for text in self._lines)

    def render(self) -> str:
        out: list[str] = [HEADER]
        if self._docs:
            out.append("")
            text = self._docs.strip().replace('"""', '\\"\\"\\"')
            out.append(f'"""{text}"""')
        out.append("")
        out.append("from __future__ import annotations")
        imports = self.scope.render_imports()
        if imports:
            out.append("")
            out.extend(imports)
        body = list(self._lines)
        while body and not body[0]:
            body.pop(0)
        while body and not body[-1]:
            body.pop()
        if body:
            out.append("")
            out.append("")
            out.extend(body)
        return _render_lines(out)

    def to_file(self) -> GeneratedFile:
        return GeneratedFile(path=self.path, content=self.render())
