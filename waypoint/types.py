from collections.abc import Awaitable, Callable, Mapping, MutableMapping
from typing import Any, TypeVar

from typing_extensions import Doc as Doc

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]

Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]

ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

CallableDecorator = TypeVar("CallableDecorator", bound=Callable[..., Any])
AnyCallable = Callable[..., Any]

# Anything accepted where a middleware is declared: a dotted path or alias
# (optionally with ":arg1,arg2"), a class, an instance or a plain callable.
MiddlewareReference = Any
HeadersType = Mapping[str, str]


class Empty: ...


EmptyType = type[Empty]
