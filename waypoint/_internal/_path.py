from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from re import Pattern
from typing import Any
from urllib.parse import quote, urlencode

from waypoint.exceptions import ImproperlyConfigured

PARAMETER_REGEX = re.compile(r"\{([a-zA-Z_]\w*)(?::([a-zA-Z_]\w*))?(\?)?\}")


@dataclass(frozen=True)
class ParsedUri:
    """
    A route URI with the implicit binding fields stripped out.

    `{user:slug}` is stored as `{user}` with `binding_fields == {"user": "slug"}`.
    """

    uri: str
    binding_fields: dict[str, str] = field(default_factory=dict)


def trim_path(path: str) -> str:
    """
    Strip the leading and trailing slashes, collapse repeated ones and
    return `/` for the root.
    """
    path = re.sub("//+", "/", path or "")
    return path.strip("/") or "/"


def join_paths(paths: Iterable[str | None]) -> str:
    """
    Join path segments with exactly one slash between them.
    """
    return trim_path("/".join(part.strip("/") for part in paths if part))


def parse_uri(uri: str) -> ParsedUri:
    """
    Normalizes a route URI and extracts the `{name:field}` binding fields.
    """
    binding_fields: dict[str, str] = {}

    def replace(match: re.Match[str]) -> str:
        name, binding_field, optional = match.groups()
        if binding_field:
            binding_fields[name] = binding_field
        return "{" + name + (optional or "") + "}"

    return ParsedUri(PARAMETER_REGEX.sub(replace, trim_path(uri)), binding_fields)


def parameter_names(uri: str) -> tuple[str, ...]:
    """
    The placeholder names of a URI in order of appearance.
    """
    return tuple(match.group(1) for match in PARAMETER_REGEX.finditer(uri))


def optional_parameters(uri: str) -> frozenset[str]:
    return frozenset(match.group(1) for match in PARAMETER_REGEX.finditer(uri) if match.group(3))


def raise_for_duplicate_params(uri: str) -> None:
    seen: set[str] = set()
    duplicated: list[str] = []
    for name in parameter_names(uri):
        if name in seen and name not in duplicated:
            duplicated.append(name)
        seen.add(name)
    if duplicated:
        names = ", ".join(sorted(duplicated))
        ending = "s" if len(duplicated) > 1 else ""
        raise ImproperlyConfigured(f"Duplicated param name{ending} {names} at path {uri}")


def is_static(uri: str) -> bool:
    return PARAMETER_REGEX.search(uri) is None


@lru_cache(maxsize=1024)
def _compile(uri: str, wheres: tuple[tuple[str, str], ...], default_pattern: str) -> Pattern[str]:
    constraints = dict(wheres)
    regex, index = "^", 0

    for match in PARAMETER_REGEX.finditer(uri):
        name, _, optional = match.groups()
        pattern = constraints.get(name, default_pattern)
        literal = uri[index : match.start()]
        capture = f"(?P<{name}>{pattern})"

        if optional:
            # The slash in front of an optional placeholder is optional too.
            if literal.endswith("/"):
                regex += re.escape(literal[:-1]) + f"(?:/{capture})?"
            else:
                regex += re.escape(literal) + f"{capture}?"
        else:
            regex += re.escape(literal) + capture
        index = match.end()

    regex += re.escape(uri[index:]) + r"\Z"
    return re.compile(regex)


def compile_path(
    uri: str, wheres: Mapping[str, str] | None = None, default_pattern: str = "[^/]+"
) -> Pattern[str]:
    """
    Compile a route URI into a regular expression with one named group per
    placeholder. `wheres` overrides the pattern of individual placeholders.

    Args:
        uri: The normalized route URI, for example `users/{user}/posts/{post?}`.
        wheres: Placeholder name to regular expression.
        default_pattern: The pattern of placeholders without a constraint.

    Returns:
        The compiled pattern, anchored on both ends.

    Raises:
        ImproperlyConfigured: When a placeholder name repeats or a constraint
            is not a valid regular expression.
    """
    raise_for_duplicate_params(uri)
    try:
        return _compile(uri, tuple(sorted((wheres or {}).items())), default_pattern)
    except re.error as exc:
        raise ImproperlyConfigured(f"Invalid constraint for route {uri}: {exc}") from exc


def replace_params(uri: str, parameters: Mapping[str, Any]) -> str:
    """
    Builds a URL path from a route URI and parameter values.

    Parameters without a placeholder are appended as the query string.

    Raises:
        ImproperlyConfigured: When a required placeholder has no value.
    """
    remaining = {key: value for key, value in parameters.items() if value is not None}
    missing: list[str] = []

    def replace(match: re.Match[str]) -> str:
        name, _, optional = match.groups()
        if name in remaining:
            return quote(str(remaining.pop(name)), safe="")
        if not optional:
            missing.append(name)
        return ""

    path = PARAMETER_REGEX.sub(replace, uri)
    if missing:
        raise ImproperlyConfigured(
            f"Missing required parameter{'s' if len(missing) > 1 else ''} for route {uri}: "
            + ", ".join(missing)
        )

    trimmed = trim_path(path)
    path = "/" if trimmed == "/" else "/" + trimmed
    if remaining:
        path += "?" + urlencode(remaining, doseq=True)
    return path
