"""Structured request bodies: multipart form data and URL-encoded pairs."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping, Union
from urllib.parse import parse_qsl, urlencode

from urllib3 import encode_multipart_formdata

FormValue = Union[str, bytes, "FormFile"]


class FormFile:
    """A binary form field with an optional filename and content type."""

    def __init__(
        self,
        content: bytes,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> None:
        self.content = bytes(content)
        self.filename = filename
        self.content_type = content_type

    @property
    def size(self) -> int:
        return len(self.content)

    def __repr__(self) -> str:
        return f"FormFile(filename={self.filename!r}, size={self.size})"


class FormData:
    """Ordered multipart form fields. Names may repeat."""

    def __init__(self) -> None:
        self._fields: list[tuple[str, FormValue]] = []

    def append(
        self,
        name: str,
        value: str | bytes | FormFile,
        filename: str | None = None,
    ) -> None:
        if isinstance(value, (bytes, bytearray, memoryview)):
            value = FormFile(bytes(value), filename=filename)
        elif isinstance(value, FormFile) and filename is not None:
            value = FormFile(value.content, filename, value.content_type)
        elif not isinstance(value, (str, FormFile)):
            value = str(value)
        self._fields.append((name, value))

    def get(self, name: str) -> FormValue | None:
        for key, value in self._fields:
            if key == name:
                return value
        return None

    def get_all(self, name: str) -> list[FormValue]:
        return [value for key, value in self._fields if key == name]

    def entries(self) -> Iterator[tuple[str, FormValue]]:
        return iter(list(self._fields))

    __iter__ = entries

    def __len__(self) -> int:
        return len(self._fields)

    def encode(self, boundary: str | None = None) -> tuple[bytes, str]:
        """Encode as ``multipart/form-data``.

        Returns:
            The body bytes and the matching content type, boundary included.
        """
        fields: list[tuple[str, Any]] = []
        for name, value in self._fields:
            if isinstance(value, FormFile):
                fields.append(
                    (
                        name,
                        (
                            value.filename or "blob",
                            value.content,
                            value.content_type or "application/octet-stream",
                        ),
                    )
                )
            else:
                fields.append((name, value))
        return encode_multipart_formdata(fields, boundary=boundary)


def _stringify(value: Any) -> str:
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    return str(value)


class SearchParams:
    """Ordered ``name=value`` pairs serialized as a URL-encoded string.

    Accepts a pre-encoded query string, a mapping, or an iterable of pairs.
    Booleans serialize as ``true``/``false``.
    """

    def __init__(
        self,
        init: str | Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
    ) -> None:
        self._pairs: list[tuple[str, str]] = []
        if init is None:
            return
        if isinstance(init, str):
            self._pairs = parse_qsl(init.lstrip("?"), keep_blank_values=True)
        elif isinstance(init, Mapping):
            self._pairs = [(str(k), _stringify(v)) for k, v in init.items()]
        else:
            self._pairs = [(str(k), _stringify(v)) for k, v in init]

    def append(self, name: str, value: Any) -> None:
        self._pairs.append((name, _stringify(value)))

    def get(self, name: str) -> str | None:
        for key, value in self._pairs:
            if key == name:
                return value
        return None

    def items(self) -> list[tuple[str, str]]:
        return list(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __str__(self) -> str:
        return urlencode(self._pairs)

    def __repr__(self) -> str:
        return f"SearchParams({str(self)!r})"
