"""
Tagged values exchanged between the collection, the pipeline and the router.

Pipeline stages return `Continue` to hand a request to the next stage or
`Respond` to finish early. Matching returns `Matched` with a bound route, or
`Preflight` when an `OPTIONS` request is answered directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias

if TYPE_CHECKING:
    from waypoint.requests import Request
    from waypoint.responses import Response
    from waypoint.routing.route import Route


@dataclass(frozen=True)
class Continue:
    request: Request


@dataclass(frozen=True)
class Respond:
    response: Any


@dataclass(frozen=True)
class Matched:
    route: Route


@dataclass(frozen=True)
class Preflight:
    response: Response
    allowed_methods: list[str] = field(default_factory=list)


StageResult: TypeAlias = "Continue | Respond"
MatchResult: TypeAlias = "Matched | Preflight"


def unwrap(result: Any) -> Any:
    """
    The response carried by a `Respond`, or `result` itself.
    """
    if isinstance(result, Respond):
        return result.response
    return result
