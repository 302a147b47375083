from __future__ import annotations


class GenerationError(Exception):
    """Base class for every failure that aborts a generation unit."""


class IrLoadError(GenerationError):
    def __init__(self, source: str, message: str) -> None:
        self.source = source
        self.message = message
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"Invalid IR document {self.source}: {self.message}"


class UnknownTypeError(GenerationError):
    def __init__(self, identifier: str, *, kind: str = "type") -> None:
        self.identifier = identifier
        self.kind = kind
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"IR references undeclared {self.kind} id: {self.identifier}"


class UnsupportedRequestBodyError(GenerationError):
    def __init__(self, endpoint: str, variant: str) -> None:
        self.endpoint = endpoint
        self.variant = variant
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"{self.variant} requests are not supported yet (endpoint {self.endpoint})"


class UnsupportedResponseTypeError(GenerationError):
    def __init__(self, endpoint: str, variant: str) -> None:
        self.endpoint = endpoint
        self.variant = variant
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"unsupported response type: {self.variant} (endpoint {self.endpoint})"


class UnsupportedTypeShapeError(GenerationError):
    def __init__(self, type_id: str, shape: str) -> None:
        self.type_id = type_id
        self.shape = shape
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"unsupported type shape {self.shape} for {self.type_id}"


class NamingConflictError(GenerationError):
    """Two bindings claimed the same name in one scope; indicates an allocator bug."""

    def __init__(self, name: str, *, existing: str | None = None) -> None:
        self.name = name
        self.existing = existing
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.existing:
            return f"name {self.name!r} is already bound to {self.existing}"
        return f"name {self.name!r} is already bound in this scope"
