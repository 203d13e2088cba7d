from __future__ import annotations

import typing as tp

import httpx
import pytest

JSON_BODY = b'{"message": "Hello, world"}'


class Upstream:
    """
    Callable for ``httpx.MockTransport`` that counts the requests it serves.

    Set ``error`` to make the next calls fail with that exception instead.
    """

    def __init__(
        self,
        status_code: int = 200,
        headers: tp.Optional[tp.List[tp.Tuple[tp.Union[str, bytes], tp.Union[str, bytes]]]] = None,
        content: bytes = JSON_BODY,
    ) -> None:
        self.status_code = status_code
        self.headers = headers if headers is not None else [("Content-Type", "application/json")]
        self.content = content
        self.error: tp.Optional[Exception] = None
        self.requests: tp.List[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, headers=self.headers, content=self.content)


@pytest.fixture()
def upstream() -> Upstream:
    return Upstream()
