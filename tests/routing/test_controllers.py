import pytest

from waypoint.container import Container
from waypoint.exceptions import DependencyResolutionError
from waypoint.requests import Request
from waypoint.routing import CallableResolver, Controller, ControllerResolver, Route


class Mailer:
    def send(self, to: str) -> str:
        return f"mail to {to}"


class AccountController(Controller):
    def __init__(self) -> None:
        super().__init__()
        self.middleware("auth")
        self.middleware("log").only("show")
        self.middleware("throttle:10", except_=["show", "update"])

    def show(self, account: str, mailer: Mailer, request: Request):
        return (account, mailer.send(account), request.method)

    def update(self, account: str, **extra):
        return (account, extra)

    def missing(self, account: str, token):
        return token


class WrappingController(Controller):
    def call_action(self, method, args, kwargs):
        return f"wrapped {getattr(self, method)(*args, **kwargs)}"

    def index(self):
        return "index"


def bound(uri, action, **parameters):
    return Route("GET", uri, action).bind(parameters)


def test_get_middleware_filters_only_and_except():
    resolver = ControllerResolver(Container())
    controller = AccountController()

    assert resolver.get_middleware(controller, "show") == ["auth", "log"]
    assert resolver.get_middleware(controller, "update") == ["auth"]
    assert resolver.get_middleware(controller, "destroy") == ["auth", "throttle:10"]


def test_get_middleware_accepts_plain_entries():
    class Plain:
        def get_middleware(self):
            return [{"middleware": "auth", "options": {"only": ["index"]}}, "log"]

    resolver = ControllerResolver(Container())

    assert resolver.get_middleware(Plain(), "index") == ["auth", "log"]
    assert resolver.get_middleware(Plain(), "store") == ["log"]


def test_get_middleware_without_declarations():
    assert ControllerResolver(Container()).get_middleware(object(), "index") == []


def test_dispatch_resolves_route_parameters_services_and_request():
    container = Container()
    route = bound("accounts/{account}", (AccountController, "show"), account="AC1")

    result = ControllerResolver(container).dispatch(
        route, AccountController(), "show", Request("PUT", "/accounts/AC1")
    )

    assert result == ("AC1", "mail to AC1", "PUT")


def test_dispatch_passes_remaining_parameters_to_var_keyword():
    route = bound("accounts/{account}/{section}", (AccountController, "update"), account="AC1", section="x")

    result = ControllerResolver(Container()).dispatch(route, AccountController(), "update")

    assert result == ("AC1", {"section": "x"})


def test_dispatch_uses_bound_services():
    class FakeMailer(Mailer):
        def send(self, to: str) -> str:
            return "faked"

    container = Container()
    container.instance(Mailer, FakeMailer())
    route = bound("accounts/{account}", (AccountController, "show"), account="AC1")

    result = ControllerResolver(container).dispatch(route, AccountController(), "show", Request())

    assert result[1] == "faked"


def test_dispatch_unresolvable_parameter():
    route = bound("accounts/{account}", (AccountController, "missing"), account="AC1")

    with pytest.raises(DependencyResolutionError) as raised:
        ControllerResolver(Container()).dispatch(route, AccountController(), "missing")

    assert raised.value.parameter == "token"
    assert "AccountController.missing" in str(raised.value)


def test_dispatch_goes_through_call_action():
    route = bound("/", (WrappingController, "index"))

    assert ControllerResolver(Container()).dispatch(route, WrappingController(), "index") == (
        "wrapped index"
    )


def test_callable_resolver_injects_route_and_request():
    def handler(route: Route, request, user: str):
        return (route.uri, request.path, user)

    route = bound("users/{user}", handler, user="US1")

    assert CallableResolver(Container()).dispatch(route, handler, Request("GET", "/users/US1")) == (
        "users/{user}",
        "/users/US1",
        "US1",
    )


def test_controller_middleware_returns_the_last_options():
    controller = Controller()

    options = controller.middleware("a", "b", only=["index"])

    assert options.middleware == "b"
    assert [entry.options for entry in controller.get_middleware()] == [
        {"only": ["index"]},
        {"only": ["index"]},
    ]
