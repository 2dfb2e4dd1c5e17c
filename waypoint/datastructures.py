from __future__ import annotations

from collections.abc import Generator, Iterable, Mapping
from typing import Any, cast

from multidict import CIMultiDict, MultiDict, MultiMapping


class Header(CIMultiDict):
    """Container used for both request and response headers.
    It is a subclass of [CIMultiDict](https://multidict.readthedocs.io/en/stable/multidict.html#cimultidict)
    so lookups ignore the case of the header name.
    """

    def __init__(
        self,
        value: MultiMapping
        | Mapping[str, Any]
        | Iterable[tuple[bytes | str, bytes | str]]
        | None = None,
    ) -> None:
        if not value:
            value = []

        assert isinstance(value, (Mapping, Iterable)), (
            "The headers must be in the format of a Iterable of tuples or dictionary."
        )
        super().__init__(self.parse_headers(value))

    def parse_headers(self, value: Any) -> list[tuple[str, str]]:
        """
        Parses the headers and decodes any bytes keys or values.
        """
        headers: list[tuple[str, str]] = []

        if isinstance(value, (Mapping, MultiMapping)):
            items: Iterable[Any] = value.items()
        else:
            items = value

        for k, v in items:
            key = k.decode("latin-1") if isinstance(k, bytes) else str(k)
            values = v if isinstance(v, (list, tuple)) else [v]
            for header_value in values:
                if isinstance(header_value, bytes):
                    header_value = header_value.decode("latin-1")
                headers.append((key, str(header_value)))
        return headers

    def get_all(self, key: str) -> list[str]:
        """Convenience method mapped to getall()."""
        return cast(list[str], self.getall(key, []))

    def add_vary_header(self, vary: str) -> None:
        existing = self.get("vary")
        if existing is not None:
            if vary.lower() in [item.strip().lower() for item in existing.split(",")]:
                return
            vary = ", ".join([existing, vary])
        self["vary"] = vary

    def encoded_multi_items(self) -> Generator[tuple[bytes, bytes], None, None]:
        """Get all keys and values, including duplicates, bytes encoded for ASGI."""
        return (
            (key.lower().encode("latin-1"), value.encode("latin-1", errors="surrogateescape"))
            for key, value in self.items()
        )

    def copy(self) -> Header:
        return Header(list(self.items()))

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        return f"{class_name}({list(self.items())!r})"


class QueryParams(MultiDict):
    """
    The parsed query string. Repeated keys keep every value.
    """

    def getlist(self, key: str) -> list[str]:
        return cast(list[str], self.getall(key, []))
