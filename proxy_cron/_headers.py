from __future__ import annotations

from typing import (
    Any,
    Iterable,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Tuple,
    Union,
)

__all__ = ("Headers", "copy_headers", "filter_headers")

HeaderValues = Union[str, List[str]]


class Headers(MutableMapping[str, str]):
    """
    Ordered, case-insensitive, multi-valued HTTP header mapping.

    Names are stored lowercased in first-seen order and every name maps to the
    list of its values. Item access joins multiple values with ``", "``, use
    ``get_list`` or ``get_first`` to look at individual values.

    Example:
        ```python
        headers = Headers({"Content-Type": "application/json"})
        headers.add("Set-Cookie", "a=1")
        headers.add("Set-Cookie", "b=2")

        headers["content-type"]  # 'application/json'
        headers.get_list("set-cookie")  # ['a=1', 'b=2']
        ```
    """

    def __init__(
        self,
        headers: Mapping[str, HeaderValues] | Iterable[Tuple[str, str]] | None = None,
    ) -> None:
        self._headers: dict[str, list[str]] = {}
        if headers is None:
            return
        if isinstance(headers, Mapping):
            for key, value in headers.items():
                for item in [value] if isinstance(value, str) else value:
                    self.add(key, item)
        else:
            for key, item in headers:
                self.add(key, item)

    def add(self, key: str, value: str) -> None:
        """Append ``value`` to ``key``, keeping any values already present."""
        self._headers.setdefault(key.lower(), []).append(value)

    def get_list(self, key: str) -> Optional[List[str]]:
        values = self._headers.get(key.lower())
        return values[:] if values is not None else None

    def get_first(self, key: str, default: Optional[str] = None) -> Optional[str]:
        values = self._headers.get(key.lower())
        return values[0] if values else default

    def multi_items(self) -> List[Tuple[str, str]]:
        return [(key, value) for key, values in self._headers.items() for value in values]

    def copy(self) -> Headers:
        return Headers(self.multi_items())

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[key.lower()])

    def __setitem__(self, key: str, value: str) -> None:
        self._headers[key.lower()] = [value]

    def __delitem__(self, key: str) -> None:
        del self._headers[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"Headers({self.multi_items()!r})"

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers


def copy_headers(dst: Headers, src: Headers) -> None:
    """
    Copy every value of every header in ``src`` onto ``dst``.

    Values are appended, never replaced: if ``dst`` already carries a header
    with the same name, the copied values end up after the existing ones.
    """
    for key, value in src.multi_items():
        dst.add(key, value)


def filter_headers(headers: Headers, keys_to_exclude: Iterable[str]) -> Headers:
    """
    Return a copy of ``headers`` without the given names (case-insensitive).

    Example:
        ```python
        filtered = filter_headers(Headers({"A": "1", "B": "2"}), ["b"])
        # filtered == Headers({"a": "1"})
        ```
    """
    exclude_set = {k.lower() for k in keys_to_exclude}
    return Headers([(k, v) for k, v in headers.multi_items() if k not in exclude_set])
