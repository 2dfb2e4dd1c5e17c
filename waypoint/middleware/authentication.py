from __future__ import annotations

from waypoint.conf import settings
from waypoint.container import Container
from waypoint.exceptions import AuthenticationError, ImproperlyConfigured
from waypoint.logging import logger
from waypoint.protocols.authentication import AuthenticationBackend
from waypoint.protocols.middleware import MiddlewareProtocol, Next
from waypoint.requests import Request
from waypoint.routing.results import Continue


class Authenticate(MiddlewareProtocol):
    """
    Requires a valid bearer token.

    The token is checked by the `AuthenticationBackend` bound in the
    container. On success the user is stored in the `user` request
    attribute. Otherwise `AuthenticationError` is raised, redirecting to
    `settings.login_url` unless the client wants JSON.

    Guards may be given as middleware parameters, `"auth:api,admin"`.
    They are only carried on the raised error.
    """

    def __init__(self, container: Container) -> None:
        self.container = container

    def handle(self, request: Request, next: Next, *guards: str) -> Continue:
        token = request.bearer_token()
        user = self.get_backend().authenticate(token) if token else None

        if user is None:
            logger.debug(f"Unauthenticated request to {request.path}.")
            raise AuthenticationError(
                guards=list(guards),
                redirect_to=self.redirect_to(request),
            )
        return Continue(request.with_attribute("user", user))

    def get_backend(self) -> AuthenticationBackend:
        if not self.container.bound(AuthenticationBackend):
            raise ImproperlyConfigured(
                "No AuthenticationBackend is bound in the container, `auth` cannot be used."
            )
        return self.container.make(AuthenticationBackend)

    def redirect_to(self, request: Request) -> str | None:
        if request.wants_json():
            return None
        return settings.login_url
