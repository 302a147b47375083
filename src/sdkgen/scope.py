"""Deterministic name allocation for one generation unit.

A root scope owns the unit's imports; child scopes (one per emitted function)
share that import namespace and own their locals. Every local claimed anywhere in
the unit is remembered by the root, so import aliases never collide with, or get
shadowed by, a local.
"""

from __future__ import annotations

from typing import Iterator

from .casing import safe_ident
from .errors import NamingConflictError

# Builtins the generated code calls; locals must not shadow them.
_RESERVED = frozenset(
    {
        "bool",
        "bytes",
        "classmethod",
        "cls",
        "dict",
        "float",
        "int",
        "isinstance",
        "list",
        "object",
        "property",
        "self",
        "set",
        "str",
        "super",
        "tuple",
    }
)


class Scope:
    def __init__(self, parent: Scope | None = None) -> None:
        self._parent = parent
        self._root: Scope = parent._root if parent is not None else self
        self._locals: set[str] = set()
        # Root-only state.
        self._imports: dict[str, str] = {}
        self._qualified: set[str] = set()
        self._aliases: set[str] = set()
        self._claimed: set[str] = set()

    @property
    def is_root(self) -> bool:
        return self._parent is None

    def child(self) -> Scope:
        return Scope(self)

    def add_import(self, path: str, *, qualified: bool = False) -> str:
        """Bind ``path`` and return the expression generated code uses to reach it.

        Idempotent per path. ``qualified`` requests a plain ``import a.b`` whose
        reference is the dotted path itself; it falls back to an alias when the
        top-level name is already taken.
        """
        root = self._root
        existing = root._imports.get(path)
        if existing is not None:
            return path if path in root._qualified else existing
        parts = path.split(".")
        if qualified and len(parts) > 1:
            head = parts[0]
            owner = next((p for p, a in root._imports.items() if a == head), None)
            if owner is None and root._alias_free(head):
                root._bind_import(path, head)
                root._qualified.add(path)
                return path
            if owner is not None and owner in root._qualified:
                root._imports[path] = head
                root._qualified.add(path)
                return path
        for candidate in self._alias_candidates(parts):
            if root._alias_free(candidate):
                root._bind_import(path, candidate)
                return candidate
        raise NamingConflictError(path)  # pragma: no cover

    def add_local(self, name: str) -> str:
        base = safe_ident(name)
        if base in _RESERVED:
            base += "_"
        candidate = base
        suffix = 2
        while not self._local_free(candidate):
            candidate = f"{base}{suffix}"
            suffix += 1
        self._claim(candidate)
        return candidate

    def declare(self, name: str) -> str:
        """Claim an exact name, e.g. a class that other code refers to by name."""
        if name in self._locals:
            raise NamingConflictError(name)
        if name in self._root._aliases:
            owner = next(p for p, a in self._root._imports.items() if a == name)
            raise NamingConflictError(name, existing=f"import {owner}")
        self._claim(name)
        return name

    def is_bound(self, name: str) -> bool:
        root = self._root
        return name in self._locals or name in root._aliases or name in root._locals

    def imports(self) -> list[tuple[str, str]]:
        root = self._root
        return sorted(root._imports.items())

    def render_imports(self) -> list[str]:
        root = self._root
        lines: list[str] = []
        for path, alias in self.imports():
            if path == alias or path in root._qualified:
                lines.append(f"import {path}")
            else:
                lines.append(f"import {path} as {alias}")
        return lines

    def _claim(self, name: str) -> None:
        self._locals.add(name)
        self._root._claimed.add(name)

    def _bind_import(self, path: str, alias: str) -> None:
        self._imports[path] = alias
        self._aliases.add(alias)

    def _alias_free(self, candidate: str) -> bool:
        return candidate not in self._aliases and candidate not in self._claimed

    def _local_free(self, candidate: str) -> bool:
        root = self._root
        if candidate in self._locals or candidate in root._aliases:
            return False
        if self.is_root:
            # Module-level names must not be shadowed by any function local.
            return candidate not in root._claimed
        return candidate not in root._locals

    @staticmethod
    def _alias_candidates(parts: list[str]) -> Iterator[str]:
        last = safe_ident(parts[-1])
        yield last
        if len(parts) > 1:
            yield safe_ident(f"{parts[-2]}_{parts[-1]}")
        suffix = 2
        while True:
            yield f"{last}{suffix}"
            suffix += 1
