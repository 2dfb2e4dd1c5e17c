import pytest

from waypoint.exceptions import BadRequest
from waypoint.middleware.body_parsing import ParseBody
from waypoint.requests import Request
from waypoint.routing import Continue


def post(body, content_type):
    return Request("POST", "/", headers={"Content-Type": content_type}, body=body)


def test_json_body():
    result = ParseBody().handle(post(b'{"title": "sunset"}', "application/json; charset=utf-8"), None)

    assert isinstance(result, Continue)
    assert result.request.parsed_body == {"title": "sunset"}
    assert result.request.input("title") == "sunset"


def test_vendor_json_body():
    result = ParseBody().handle(post(b"[1, 2]", "application/vnd.api+json"), None)

    assert result.request.parsed_body == [1, 2]


def test_form_body():
    result = ParseBody().handle(post(b"a=1&b=&c=x+y", "application/x-www-form-urlencoded"), None)

    assert result.request.parsed_body == {"a": "1", "b": "", "c": "x y"}


def test_malformed_json():
    with pytest.raises(BadRequest) as raised:
        ParseBody().handle(post(b"{oops", "application/json"), None)

    assert raised.value.status_code == 400


def test_other_content_types_and_methods_are_left_alone():
    assert ParseBody().handle(post(b"raw", "text/plain"), None).request.parsed_body is None

    request = Request("GET", "/", headers={"Content-Type": "application/json"}, body=b"{oops")
    assert ParseBody().handle(request, None).request is request


def test_already_parsed_body_is_kept():
    request = post(b'{"a": 1}', "application/json").with_parsed_body({"b": 2})

    assert ParseBody().handle(request, None).request.parsed_body == {"b": 2}
