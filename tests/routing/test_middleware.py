import itertools

import pytest

from waypoint.exceptions import ImproperlyConfigured
from waypoint.routing.middleware import (
    BoundMiddleware,
    MiddlewareResolver,
    is_excluded,
    parse_middleware,
    resolve_middleware_name,
    sort_middleware,
    unique_middleware,
)


class First:
    def handle(self, request, next):
        return next(request)


class Second(First): ...


class Third(First): ...


class Unlisted:
    def handle(self, request, next):
        return next(request)


def test_parse_middleware():
    assert parse_middleware("throttle:60,1") == ("throttle", ("60", "1"))
    assert parse_middleware("auth") == ("auth", ())


def test_resolve_alias_keeps_parameters():
    aliases = {"role": "app.middleware.Role", "first": First}

    assert resolve_middleware_name("role:admin", aliases, {}) == ["app.middleware.Role:admin"]
    assert resolve_middleware_name("first:x", aliases, {}) == [BoundMiddleware(First, ("x",))]
    assert resolve_middleware_name("first", aliases, {}) == [First]
    assert resolve_middleware_name(Second, aliases, {}) == [Second]
    assert resolve_middleware_name("unknown", aliases, {}) == ["unknown"]


def test_groups_are_flattened_recursively():
    aliases = {"auth": "app.Auth", "cors": "app.Cors"}
    groups = {"web": ["cors", "session"], "api": ["web", "auth:api", Third]}

    assert resolve_middleware_name("api", aliases, groups) == [
        "app.Cors",
        "session",
        "app.Auth:api",
        Third,
    ]


def test_group_cycle_is_reported():
    groups = {"a": ["b"], "b": ["a"]}

    with pytest.raises(ImproperlyConfigured) as raised:
        resolve_middleware_name("a", {}, groups)

    assert "a -> b -> a" in raised.value.detail


def test_unique_middleware_keeps_first_occurrence():
    instance = First()

    assert unique_middleware(["a", "b", "a", instance, instance, First]) == [
        "a",
        "b",
        instance,
        First,
    ]


def test_sort_middleware_scenario():
    assert sort_middleware([First, Second], [Second, First]) == [First, Second]


@pytest.mark.parametrize("declared", list(itertools.permutations([First, Second, Third, Unlisted])))
def test_sort_middleware_respects_priority_for_any_order(declared):
    priority = [First, Second, Third]

    result = sort_middleware(priority, list(declared))

    listed = [item for item in result if item in priority]
    assert listed == [First, Second, Third]
    assert len(result) == 4


def test_sort_middleware_keeps_unlisted_relative_order():
    result = sort_middleware(["b", "a"], ["x", "a", "y", "b", "z"])

    assert result == ["x", "b", "a", "y", "z"]


def test_sort_middleware_matches_parameterized_strings():
    assert sort_middleware(["auth", "throttle"], ["throttle:60,1", "auth:api"]) == [
        "auth:api",
        "throttle:60,1",
    ]


def test_sort_middleware_matches_subclasses():
    assert sort_middleware([Second, First], [First, Third, Second]) == [Second, First, Third]


def test_is_excluded():
    assert is_excluded("auth", ["auth"])
    assert is_excluded("auth:api", ["auth"])
    assert not is_excluded("auth:api", ["auth:web"])
    assert is_excluded(Second, [First])
    assert is_excluded(BoundMiddleware(Second, ("x",)), [Second])
    assert not is_excluded(First, [Second])


def test_resolver_removes_excluded_and_sorts():
    resolver = MiddlewareResolver(
        aliases={"auth": "app.Auth", "cors": "app.Cors", "body": "app.Body"},
        groups={"api": ["cors", "body"]},
        priority=["cors", "body", "auth"],
    )

    assert resolver.resolve(["auth", "api"]) == ["app.Cors", "app.Body", "app.Auth"]
    assert resolver.resolve(["auth", "api"], ["body"]) == ["app.Cors", "app.Auth"]
    assert resolver.resolve(["auth:api", "auth:api"], ["auth"]) == []


def test_excluded_middleware_never_appear():
    resolver = MiddlewareResolver(groups={"web": ["a", "b", "c"]}, priority=["c", "a"])

    for excluded in (["a"], ["b"], ["web"], ["a", "c"]):
        chain = resolver.resolve(["web", "a", "d"], excluded)
        assert not set(chain) & set(resolver.expand(excluded))
