from waypoint.routing.actions import ControllerAction, InlineHandler
from waypoint.routing.collection import RouteCollection
from waypoint.routing.controllers import Controller
from waypoint.routing.middleware import MiddlewareResolver
from waypoint.routing.pipeline import Pipeline
from waypoint.routing.resolvers import CallableResolver, ControllerResolver
from waypoint.routing.results import Continue, Matched, Preflight, Respond
from waypoint.routing.route import Route
from waypoint.routing.router import RouteRegistrar, Router

__all__ = [
    "CallableResolver",
    "Continue",
    "Controller",
    "ControllerAction",
    "ControllerResolver",
    "InlineHandler",
    "Matched",
    "MiddlewareResolver",
    "Pipeline",
    "Preflight",
    "Respond",
    "Route",
    "RouteCollection",
    "RouteRegistrar",
    "Router",
]
