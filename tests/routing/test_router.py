import json

import pytest

from waypoint.conf import reload_settings
from waypoint.container import Container
from waypoint.exceptions import (
    DependencyResolutionError,
    ImproperlyConfigured,
    MethodNotAllowed,
    NoMatchFound,
    NotFound,
)
from waypoint.requests import Request
from waypoint.responses import JSONResponse, PlainText
from waypoint.routing import Controller, Respond, Route, RouteRegistrar, Router

from .sample_app import HealthController, UserController


def show_user(user: str):
    return user


def ok():
    return "ok"


class Recorder:
    calls: list = []

    def handle(self, request, next):
        Recorder.calls.append(self.__class__.__name__)
        return next(request)


class A(Recorder): ...


class B(Recorder): ...


class C(Recorder): ...


@pytest.fixture(autouse=True)
def reset_calls():
    Recorder.calls = []
    yield
    Recorder.calls = []


def test_dispatch_binds_route_parameters():
    router = Router()
    router.get("/users/{user}", show_user, name="users.show")

    response = router.dispatch(Request("GET", "/users/US123"))

    assert response.status_code == 200
    assert response.body == b"US123"
    assert router.routes.match(Request("GET", "/users/US123")).route.parameter("user") == "US123"


def test_dispatch_method_not_allowed_and_options():
    router = Router()
    router.post("/login", ok)

    with pytest.raises(MethodNotAllowed) as raised:
        router.dispatch(Request("GET", "/login"))
    assert raised.value.allowed_methods == ["POST"]

    response = router.dispatch(Request("OPTIONS", "/login"))
    assert response.status_code == 200
    assert response.headers["Allow"] == "POST"


def test_dispatch_not_found():
    router = Router()
    router.get("/users", ok)

    with pytest.raises(NotFound):
        router.dispatch(Request("GET", "/missing"))


def test_nested_group_prefixes():
    router = Router()

    def users(routes: RouteRegistrar):
        routes.get("/{id}", ok, name="show")

    def api(routes: RouteRegistrar):
        routes.group({"prefix": "users", "as": "users."}, users)

    router.group({"prefix": "api", "as": "api."}, api)

    route = router.get_by_name("api.users.show")
    assert route.uri == "api/users/{id}"
    assert route.get_prefix() == "api/users"
    assert router.dispatch(Request("GET", "/api/users/7")).body == b"ok"


def test_groups_do_not_leak_attributes():
    router = Router()
    router.group({"prefix": "admin", "middleware": ["auth"]}, lambda routes: routes.get("/", ok))
    outside = router.get("/public", ok)

    assert outside.uri == "public"
    assert outside.get_middleware() == []


def test_scoped_registrars():
    router = Router()

    def admin(routes):
        routes.get("/dashboard", ok, name="dashboard")

    router.prefix("admin").name("admin.").middleware("auth").group(admin)

    route = router.get_by_name("admin.dashboard")
    assert route.uri == "admin/dashboard"
    assert route.get_middleware() == ["auth"]


def test_group_controller_and_where():
    router = Router()

    def users(routes):
        routes.get("/", "index", name="index")
        routes.get("/{user}", "show", name="show")

    router.group(
        {"prefix": "users", "as": "users.", "controller": UserController, "where": {"user": "US[0-9]+"}},
        users,
    )

    assert json.loads(router.dispatch(Request("GET", "/users/US123")).body) == {"user": "US123"}
    with pytest.raises(NotFound):
        router.dispatch(Request("GET", "/users/abc"))


def test_group_from_module_path_and_list():
    router = Router()
    router.group({"prefix": "v1"}, ["tests.routing.sample_app", lambda routes: routes.get("/x", ok)])

    assert router.has("status", "health")
    assert router.has_route("status")
    assert router.url("health") == "/v1/health"
    assert router.dispatch(Request("GET", "/v1/health")).body == b"healthy"
    assert router.dispatch(Request("GET", "/v1/x")).body == b"ok"


def test_group_from_module_without_register():
    router = Router()

    with pytest.raises(ImproperlyConfigured):
        router.group({}, "tests.routing.test_path")


def test_verb_decorators():
    router = Router()

    @router.get("/hello/{name}", name="hello")
    def hello(name: str):
        return f"hello {name}"

    @router.post("/hello")
    def store():
        return {"stored": True}

    assert hello("x") == "hello x"
    assert router.dispatch(Request("GET", "/hello/waypoint")).body == b"hello waypoint"
    assert isinstance(router.dispatch(Request("POST", "/hello")), JSONResponse)


def test_any_and_match():
    router = Router()
    router.any("/any", ok)
    router.match(["put", "patch"], "/update", ok)

    for method in ("GET", "POST", "DELETE", "OPTIONS"):
        assert router.dispatch(Request(method, "/any")).status_code == 200

    assert router.get_routes().get_by_name("x") is None
    assert sorted(router.get_routes().get_routes()[1].methods) == ["PATCH", "PUT"]


def test_action_mapping():
    router = Router()
    route = router.get("/users", {"uses": ok, "as": "users.index", "middleware": ["a"]})

    assert route.get_name() == "users.index"
    assert route.get_middleware() == ["a"]


def test_unknown_route_option():
    router = Router()

    with pytest.raises(ImproperlyConfigured):
        router.get("/users", {"uses": ok, "domain": "example.com"})


def test_middleware_priority_is_applied():
    router = Router(middleware_priority=[A, B])
    router.get("/", ok).middleware(B, C, A)

    router.dispatch(Request("GET", "/"))

    assert Recorder.calls == ["A", "B", "C"]


def test_aliases_and_groups():
    router = Router()
    router.alias_middleware("a", A).alias_middleware("b", B)
    router.middleware_group("web", ["b"])
    router.prepend_middleware_to_group("web", "a")
    router.push_middleware_to_group("web", C)
    router.get("/", ok).middleware("web")

    router.dispatch(Request("GET", "/"))

    assert Recorder.calls == ["A", "B", "C"]
    assert router.has_middleware_group("web")
    assert router.get_middleware_groups() == {"web": ["a", "b", C]}
    assert router.get_middleware() == {"a": A, "b": B}


def test_excluded_group_middleware():
    router = Router(middleware_aliases={"a": A, "b": B})

    def routes(group):
        group.get("/", ok).without_middleware("b")

    router.group({"middleware": ["a", "b"]}, routes)
    router.dispatch(Request("GET", "/"))

    assert Recorder.calls == ["A"]


def test_middleware_can_be_disabled():
    container = Container()
    container.instance("middleware.disable", True)
    router = Router(container)
    router.get("/", ok).middleware(A)

    router.dispatch(Request("GET", "/"))

    assert Recorder.calls == []


def test_middleware_disabled_by_settings(monkeypatch):
    monkeypatch.setenv("DISABLE_MIDDLEWARE", "true")
    reload_settings()
    try:
        router = Router()
        router.get("/", ok).middleware(A)

        router.dispatch(Request("GET", "/"))

        assert Recorder.calls == []
    finally:
        monkeypatch.delenv("DISABLE_MIDDLEWARE")
        reload_settings()


def test_middleware_short_circuit():
    class Deny:
        def handle(self, request, next):
            return Respond(PlainText("denied", status_code=403))

    router = Router()
    router.get("/", ok).middleware(Deny, A)

    response = router.dispatch(Request("GET", "/"))

    assert response.status_code == 403
    assert Recorder.calls == []


def test_controller_middleware():
    class Secured(Controller):
        def __init__(self) -> None:
            super().__init__()
            self.middleware(A).only("index")

        def index(self):
            return "index"

        def show(self):
            return "show"

    router = Router()
    router.get("/", (Secured, "index"))
    router.get("/show", (Secured, "show"))

    router.dispatch(Request("GET", "/"))
    router.dispatch(Request("GET", "/show"))

    assert Recorder.calls == ["A"]


def test_controllers_receive_the_current_request():
    class Echo:
        def __init__(self, request: Request) -> None:
            self.request = request

        def __call__(self):
            return self.request.attribute("token")

    router = Router()
    router.get("/", Echo)

    assert router.dispatch(Request("GET", "/", attributes={"token": "abc"})).body == b"abc"


def test_request_attributes_carry_parameters_and_route():
    router = Router()

    @router.get("/users/{user}")
    def show(request: Request):
        return {"user": request.attribute("user"), "uri": request.route.uri}

    assert json.loads(router.dispatch(Request("GET", "/users/US1")).body) == {
        "user": "US1",
        "uri": "users/{user}",
    }


def test_current_route():
    router = Router()

    @router.get("/users/{user}", name="users.show")
    def show(user: str):
        return [
            router.current().parameter("user"),
            router.current_route_name(),
            router.current_route_named("users.*"),
        ]

    assert json.loads(router.dispatch(Request("GET", "/users/US1")).body) == [
        "US1",
        "users.show",
        True,
    ]
    assert router.current() is None


def test_head_requests_have_no_body():
    router = Router()
    router.get("/", ok)

    response = router.dispatch(Request("HEAD", "/"))

    assert response.status_code == 200
    assert response.body == b""
    assert response.headers["content-length"] == "2"


def test_registration_after_finalize():
    router = Router()
    router.get("/", ok)
    router.dispatch(Request("GET", "/"))

    assert router.is_finalized
    with pytest.raises(ImproperlyConfigured):
        router.get("/late", ok)
    with pytest.raises(ImproperlyConfigured):
        router.alias_middleware("a", A)
    with pytest.raises(ImproperlyConfigured):
        router.middleware_priority = [A]


def test_finalize_is_idempotent():
    router = Router()
    route = router.get("/", ok)

    assert router.finalize() is router.finalize()
    assert route.is_finalized
    assert route.resolved_middleware == []


def test_lookups():
    router = Router()
    router.get("/users/{user}", (UserController, "show")).name("users.show")
    router.get("/health", HealthController)

    assert router.get_by_name("users.show").uri == "users/{user}"
    assert router.get_by_action("tests.routing.sample_app.UserController@show").uri == "users/{user}"
    assert router.get_by_action("tests.routing.sample_app.HealthController").uri == "health"
    assert router.url("users.show", user="US123", tab="posts") == "/users/US123?tab=posts"

    with pytest.raises(NoMatchFound):
        router.url("missing")


def test_route_registered_by_name_is_found_by_that_name_only():
    router = Router()
    route = router.get("/a", ok, name="first")
    router.get("/b", ok, name="second")

    assert router.get_by_name("first") is route
    assert [name for name, found in router.routes.get_routes_by_name().items() if found is route] == [
        "first"
    ]


def test_set_routes():
    router = Router()
    other = Router().get_routes()
    other.add(Route("GET", "/", ok))

    router.set_routes(other)

    assert router.dispatch(Request("GET", "/")).body == b"ok"


def test_unresolvable_handler_parameter_propagates():
    router = Router()

    @router.get("/")
    def broken(limit: int):
        return limit

    with pytest.raises(DependencyResolutionError):
        router.dispatch(Request("GET", "/"))


def test_router_is_registered_in_the_container():
    container = Container()
    router = Router(container)

    assert container.make(Router) is router
    assert container.make("router") is router
