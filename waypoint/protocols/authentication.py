from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AuthenticationBackend(Protocol):  # pragma: no cover
    """
    Looks up the user owning a bearer token.

    Returns `None` when the token is unknown or expired.
    """

    def authenticate(self, token: str) -> Any | None: ...
