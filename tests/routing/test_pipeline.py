import pytest

from waypoint.container import Container
from waypoint.exceptions import ImproperlyConfigured
from waypoint.middleware import DefineMiddleware
from waypoint.requests import Request
from waypoint.responses import PlainText
from waypoint.routing import Continue, Pipeline, Respond
from waypoint.routing.middleware import BoundMiddleware


class Recorder:
    def __init__(self, name: str, calls: list) -> None:
        self.name = name
        self.calls = calls

    def handle(self, request, next):
        self.calls.append(f"before {self.name}")
        response = next(request)
        self.calls.append(f"after {self.name}")
        return response


class AddHeader:
    def handle(self, request, next, name="X-Stage", value="1"):
        return Continue(request.with_header(name, value))


class Deny:
    def handle(self, request, next):
        return Respond(PlainText("denied", status_code=403))


class Boom:
    def handle(self, request, next):
        raise RuntimeError("boom")


def test_then_return():
    assert Pipeline().send("value").through([]).then_return() == "value"


def test_stages_run_in_declaration_order():
    calls = []
    stages = [Recorder("a", calls), Recorder("b", calls), Recorder("c", calls)]

    def destination(request):
        calls.append("destination")
        return "done"

    result = Pipeline().send(Request()).through(stages).then(destination)

    assert result == "done"
    assert calls == [
        "before a",
        "before b",
        "before c",
        "destination",
        "after c",
        "after b",
        "after a",
    ]


def test_through_accepts_positional_stages():
    calls = []

    Pipeline().send(Request()).through(Recorder("a", calls), Recorder("b", calls)).then_return()

    assert calls == ["before a", "before b", "after b", "after a"]


def test_continue_hands_the_request_to_the_next_stage():
    result = (
        Pipeline()
        .send(Request())
        .through([AddHeader()])
        .then(lambda request: request.headers["X-Stage"])
    )

    assert result == "1"


def test_respond_short_circuits():
    reached = []

    response = (
        Pipeline()
        .send(Request())
        .through([Deny(), Recorder("never", reached)])
        .then(lambda request: reached.append("destination"))
    )

    assert response.status_code == 403
    assert reached == []


def test_destination_respond_is_unwrapped():
    response = Pipeline().send(Request()).then(lambda request: Respond("final"))

    assert response == "final"


def test_functions_as_stages():
    def upper(value, next):
        return next(value.upper())

    assert Pipeline().send("abc").through([upper]).then_return() == "ABC"


def test_string_parameters_are_passed():
    container = Container()
    container.instance("header", AddHeader())

    result = (
        Pipeline(container)
        .send(Request())
        .through(["header:X-Tenant,acme"])
        .then(lambda request: request.headers["X-Tenant"])
    )

    assert result == "acme"


def test_bound_middleware_parameters_are_passed():
    result = (
        Pipeline()
        .send(Request())
        .through([BoundMiddleware(AddHeader, ("X-Tenant", "acme"))])
        .then(lambda request: request.headers["X-Tenant"])
    )

    assert result == "acme"


def test_classes_are_built_through_the_container():
    calls = []
    container = Container()
    container.instance(list, calls)

    class Tracked:
        def __init__(self, container: Container) -> None:
            container.make(list).append("built")

        def handle(self, request, next):
            return next(request)

    Pipeline(container).send(Request()).through([Tracked]).then_return()

    assert calls == ["built"]


def test_import_paths_and_define_middleware():
    result = (
        Pipeline()
        .send(Request())
        .through(
            [
                "tests.routing.test_pipeline.AddHeader",
                DefineMiddleware(Recorder, "define", []),
            ]
        )
        .then(lambda request: request.headers["X-Stage"])
    )

    assert result == "1"


def test_via_changes_the_called_method():
    class Stage:
        def process(self, value, next):
            return next(value + 1)

    assert Pipeline().send(1).through([Stage()]).via("process").then_return() == 2


def test_exceptions_propagate():
    with pytest.raises(RuntimeError, match="boom"):
        Pipeline().send(Request()).through([Boom()]).then_return()


def test_unknown_string_stage():
    with pytest.raises(ImproperlyConfigured):
        Pipeline().send(Request()).through(["nope"]).then_return()


def test_missing_import_path():
    with pytest.raises(ImproperlyConfigured):
        Pipeline().send(Request()).through(["tests.routing.missing.Stage"]).then_return()
