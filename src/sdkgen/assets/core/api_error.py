from __future__ import annotations

import json
from typing import Any


def decode_body(body: bytes) -> Any:
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return body.decode("utf-8", errors="replace")


class ApiError(Exception):
    """Raised for any non-success response the endpoint did not declare."""

    def __init__(self, status_code: int | None = None, body: Any | None = None) -> None:
        self.status_code = status_code
        self.body = body

        super().__init__(str(self))

    @classmethod
    def from_body(cls, status_code: int, body: bytes) -> ApiError:
        return cls(status_code, decode_body(body))

    def __str__(self) -> str:
        if self.body is not None:
            return f"API error {self.status_code}: {self.body}"
        return f"API error {self.status_code}"
