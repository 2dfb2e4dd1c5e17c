import pytest

from waypoint.container import Container
from waypoint.exceptions import DependencyResolutionError, ImproperlyConfigured, RouteNotBound
from waypoint.requests import Request
from waypoint.routing import ControllerAction, InlineHandler, Route
from waypoint.routing.results import Respond
from waypoint.responses import PlainText

from .sample_app import HealthController, UserController


def show_user(user: str):
    return user


def show_post(slug: str | None = None):
    return slug or "latest"


def test_get_implies_head():
    route = Route("GET", "/users", show_user)

    assert route.methods == ["GET", "HEAD"]


def test_methods_are_normalized():
    route = Route(["post", "POST", "put"], "/users", show_user)

    assert route.methods == ["POST", "PUT"]


@pytest.mark.parametrize(
    "uri,expected",
    [("//users//{user}/", "users/{user}"), ("/", "/"), ("", "/"), ("users", "users")],
)
def test_uri_is_normalized(uri, expected):
    assert Route("GET", uri, show_user).uri == expected


def test_actions_are_parsed():
    assert isinstance(Route("GET", "/", show_user).action, InlineHandler)
    assert Route("GET", "/", (UserController, "show")).action == ControllerAction(
        UserController, "show"
    )
    assert Route("GET", "/", HealthController).action == ControllerAction(HealthController)


def test_controller_identifier():
    route = Route("GET", "/", "tests.routing.sample_app.UserController@show")

    assert route.identifier == "tests.routing.sample_app.UserController@show"
    assert route.get_controller_class() is UserController
    assert route.get_controller_method() == "show"
    assert Route("GET", "/", HealthController).identifier == "tests.routing.sample_app.HealthController"
    assert Route("GET", "/", show_user).identifier is None


def test_unknown_controller_method():
    with pytest.raises(ImproperlyConfigured):
        Route("GET", "/", (UserController, "missing"))


def test_invalid_action():
    with pytest.raises(ImproperlyConfigured):
        Route("GET", "/", 42)


def test_parameters_before_binding():
    route = Route("GET", "users/{user}", show_user)

    with pytest.raises(RouteNotBound) as raised:
        route.parameters

    assert str(raised.value) == "Route 'users/{user}' is not bound."
    assert route.has_parameters() is False


def test_bind_returns_a_bound_copy():
    route = Route("GET", "users/{user}", show_user)

    bound = route.bind({"user": "US123"})

    assert bound is not route
    assert bound.parameter("user") == "US123"
    assert bound.has_parameter("user")
    assert route.has_parameters() is False


def test_bind_drops_empty_and_undeclared_values():
    route = Route("GET", "posts/{slug?}", show_post)

    bound = route.bind({"slug": "", "page": "2"})

    assert bound.parameters == {}
    assert bound.parameter("slug") is None
    assert bound.parameters_without_nulls() == {}


def test_set_and_forget_parameter():
    bound = Route("GET", "users/{user}", show_user).bind({"user": "US123"})

    bound.set_parameter("user", "US456")
    assert bound.parameter("user") == "US456"
    assert bound.original_parameter("user") == "US123"

    bound.forget_parameter("user")
    assert bound.parameters == {}


def test_name_is_appended():
    route = Route("GET", "/", show_user, name="users.")

    route.name("show")

    assert route.get_name() == "users.show"
    assert route.named("users.show")
    assert route.named("users.*")
    assert not route.named("posts.*")


def test_where_helpers():
    route = (
        Route("GET", "{id}/{kind}/{uuid}/{code}", show_user)
        .where_number("id")
        .where_in("kind", ["a", "b"])
        .where_uuid("uuid")
        .where("code", "[A-Z]{2}")
    )

    assert route.wheres["id"] == "[0-9]+"
    assert route.wheres["kind"] == "a|b"
    assert route.wheres["code"] == "[A-Z]{2}"
    assert route.compile().match("1/a/123e4567-e89b-12d3-a456-426614174000/PT")
    assert route.compile().match("1/c/123e4567-e89b-12d3-a456-426614174000/PT") is None


def test_middleware_and_exclusions():
    route = Route("GET", "/", show_user, middleware=["web"]).middleware("auth", ["throttle"])
    route.without_middleware("web")

    assert route.get_middleware() == ["web", "auth", "throttle"]
    assert route.excluded_middleware() == ["web"]


def test_finalize_freezes_registration_attributes():
    route = Route("GET", "users/{user}", show_user).finalize()

    assert route.is_finalized
    assert route.parameter_names() == ("user",)

    with pytest.raises(ImproperlyConfigured):
        route.name("users.show")
    with pytest.raises(ImproperlyConfigured):
        route.middleware("auth")


def test_finalize_resolves_middleware_once():
    calls = []

    def resolve(middleware, excluded):
        calls.append((middleware, excluded))
        return ["resolved"]

    route = Route("GET", "/", show_user, middleware=["a", "a", "b"], excluded_middleware=["b"])
    route.finalize(resolve)
    route.finalize(resolve)

    assert calls == [(["a", "b"], ["b"])]
    assert route.resolved_middleware == ["resolved"]
    assert route.gather_middleware() == ["a", "b"]


def test_finalize_rejects_duplicated_placeholders():
    route = Route("GET", "users/{id}/posts/{id}", show_user)

    with pytest.raises(ImproperlyConfigured):
        route.finalize()


def test_run_inline_handler_with_parameters():
    route = Route("GET", "users/{user}", show_user).bind({"user": "US123"})

    assert route.run(Request("GET", "/users/US123")) == "US123"


def test_run_optional_parameter_uses_default():
    route = Route("GET", "posts/{slug?}", show_post).bind({})

    assert route.run(Request("GET", "/posts")) == "latest"


def test_run_controller_action():
    route = Route("GET", "users/{user}", (UserController, "show")).bind({"user": "US123"})

    assert route.run(Request("GET", "/users/US123")) == {"user": "US123"}


def test_run_unwraps_respond():
    def handler():
        return Respond(PlainText("early", status_code=202))

    response = Route("GET", "/", handler).bind({}).run(Request())

    assert response.status_code == 202
    assert response.body == b"early"


def test_run_unresolvable_parameter():
    def handler(limit: int):
        return limit

    route = Route("GET", "/", handler).bind({})

    with pytest.raises(DependencyResolutionError) as raised:
        route.run(Request())

    assert raised.value.parameter == "limit"


def test_controller_is_built_through_the_container():
    class Greeter:
        def greet(self, name: str) -> str:
            return f"hello {name}"

    class GreetController:
        def __init__(self, greeter: Greeter) -> None:
            self.greeter = greeter

        def show(self, name: str):
            return self.greeter.greet(name)

    container = Container()
    route = Route("GET", "hello/{name}", (GreetController, "show"), container=container)

    assert route.bind({"name": "waypoint"}).run(Request()) == "hello waypoint"


def test_url():
    route = Route("GET", "users/{user}/posts/{post?}", show_user)

    assert route.url(user="US123") == "/users/US123/posts"
    assert route.url(user="US123", post="7") == "/users/US123/posts/7"


def test_get_action():
    route = Route(
        "GET", "users/{user}", (UserController, "show"), name="users.show", wheres={"user": "[A-Z0-9]+"}
    )

    action = route.get_action()

    assert action["uses"] == "tests.routing.sample_app.UserController@show"
    assert action["controller"] == "tests.routing.sample_app.UserController@show"
    assert action["as"] == "users.show"
    assert route.get_action("where") == {"user": "[A-Z0-9]+"}


def test_binding_fields_are_kept():
    route = Route("GET", "posts/{post:slug}", show_post)

    assert route.uri == "posts/{post}"
    assert route.binding_fields == {"post": "slug"}
