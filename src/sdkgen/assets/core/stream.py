from __future__ import annotations

from typing import Callable, Generic, Iterator, TypeVar

import httpx

T = TypeVar("T")

_DEFAULT_DELIMITER = "\n"


class Stream(Generic[T]):
    """Iterates the messages of a streamed response.

    Messages are separated by ``delimiter`` (a newline by default); blank messages
    are skipped. The underlying response is closed once iteration finishes.
    """

    def __init__(
        self,
        response: httpx.Response,
        decode: Callable[[str], T],
        *,
        delimiter: str | None = None,
    ) -> None:
        self._response = response
        self._decode = decode
        self._delimiter = delimiter or _DEFAULT_DELIMITER

    def __iter__(self) -> Iterator[T]:
        try:
            for message in self._messages():
                if message.strip():
                    yield self._decode(message)
        finally:
            self.close()

    def _messages(self) -> Iterator[str]:
        buffer = ""
        for text in self._response.iter_text():
            buffer += text
            while self._delimiter in buffer:
                message, buffer = buffer.split(self._delimiter, 1)
                yield message
        if buffer:
            yield buffer

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> Stream[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
