from __future__ import annotations

from collections.abc import Mapping, Sequence
from inspect import isclass
from typing import TYPE_CHECKING, Any, Protocol, cast, runtime_checkable
from urllib.parse import quote

from waypoint import status
from waypoint.datastructures import Header
from waypoint.encoders import ENCODER_TYPES, Encoder, is_encodable, json_encode
from waypoint.enums import HTTPMethod, MediaType
from waypoint.types import Receive, Scope, Send

if TYPE_CHECKING:
    from waypoint.requests import Request


@runtime_checkable
class Responsable(Protocol):
    """
    Any object that knows how to turn itself into a response.
    """

    def to_response(self, request: Request) -> Response: ...


class Response:
    media_type: str | None = None
    status_code: int = status.HTTP_200_OK
    charset: str = "utf-8"
    headers: Header

    def __init__(
        self,
        content: Any = None,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
        media_type: str | None = None,
        encoders: Sequence[Encoder | type[Encoder]] | None = None,
    ) -> None:
        if status_code is not None:
            self.status_code = status_code
        if media_type is not None:
            self.media_type = media_type
        self.encoders: list[Encoder] = [
            encoder() if isclass(encoder) else encoder for encoder in encoders or ()
        ]
        self.body = self.make_response(content)
        self.make_headers(headers)

    def make_response(self, content: Any) -> bytes:
        """
        Turns the content into the raw body.
        """
        if content is None:
            return b""
        if isinstance(content, (bytearray, memoryview)):
            content = bytes(content)
        if isinstance(content, bytes):
            return content
        return str(content).encode(self.charset)

    def make_headers(self, content_headers: Mapping[str, str] | None = None) -> None:
        """
        Sets the content length and type unless the status forbids a body.
        """
        headers = Header(content_headers)

        if not status.is_empty_body(self.status_code):
            headers.setdefault("content-length", str(len(self.body)))
            if self.media_type is not None:
                content_type = self.media_type
                if content_type.startswith("text/") and "charset=" not in content_type:
                    content_type += f"; charset={self.charset}"
                headers.setdefault("content-type", content_type)
        self.headers = headers

    def content(self) -> str:
        return self.body.decode(self.charset)

    def with_header(self, name: str, value: str) -> Response:
        self.headers[name] = value
        return self

    def without_body(self) -> Response:
        """
        Drops the body but keeps the headers, as answers to HEAD require.
        """
        self.body = b""
        return self

    def message(self) -> dict[str, Any]:
        return {
            "type": "http.response.start",
            "status": self.status_code,
            "headers": list(self.headers.encoded_multi_items()),
        }

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        body = b"" if scope.get("method", "").upper() == HTTPMethod.HEAD else self.body
        await send(self.message())
        await send({"type": "http.response.body", "body": body})

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(media_type={self.media_type}, status_code={self.status_code}, charset={self.charset})"


class HTMLResponse(Response):
    media_type = MediaType.HTML


class PlainText(Response):
    media_type = MediaType.TEXT


class JSONResponse(Response):
    media_type = MediaType.JSON

    def make_response(self, content: Any) -> bytes:
        params: dict[str, Any] = {"post_transform_fn": None}
        if self.encoders:
            params["with_encoders"] = (*self.encoders, *ENCODER_TYPES.get())
        return cast(str, json_encode(content, **params)).encode(self.charset)


class RedirectResponse(Response):
    def __init__(
        self,
        url: str,
        status_code: int = status.HTTP_302_FOUND,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(content=b"", status_code=status_code, headers=headers)
        self.headers["location"] = quote(str(url), safe=":/%#?=@[]!$&'()*+,;")


def make_response(
    content: Any,
    response_class: type[Response] = JSONResponse,
    status_code: int = status.HTTP_200_OK,
    headers: Mapping[str, str] | None = None,
    encoders: Sequence[Encoder | type[Encoder]] | None = None,
) -> Response:
    """
    Build JSON responses from a given content and
    providing extra parameters.
    """
    return response_class(
        content=content, status_code=status_code, headers=headers, encoders=encoders
    )


def prepare_response(request: Request | None, value: Any) -> Response:
    """
    Normalizes whatever a handler returned into a `Response`.

    * `Response` instances pass through unchanged.
    * `Responsable` objects build their own response.
    * `str` and `bytes` become an HTML response.
    * Mappings, lists and any value a registered encoder understands become JSON.
    * `None` becomes an empty HTML response.
    * Anything else is stringified into an HTML response.

    Answers to `HEAD` requests never carry a body.
    """
    if isinstance(value, Response):
        response = value
    elif isinstance(value, Responsable) and request is not None:
        response = prepare_response(request, value.to_response(request))
    elif isinstance(value, (str, bytes, bytearray)) or value is None:
        response = HTMLResponse(value)
    elif isinstance(value, (Mapping, list)) or is_encodable(value):
        response = JSONResponse(value)
    else:
        response = HTMLResponse(str(value))

    if request is not None and request.method == HTTPMethod.HEAD:
        response.without_body()
    return response
