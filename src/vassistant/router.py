"""Ordered verb + path pattern routing.

Routes are tried in registration order and the first one whose verb and
pattern both match wins. A path that matches a pattern under another verb is
skipped, so a later route for the same shape can still match; when nothing
matches the caller gets ``None`` from :meth:`Router.match` and ``dispatch``
raises :class:`RoutingMiss`. Per-verb 405 answers are left to handlers.

Pattern strings use ``{name}`` placeholders for single path segments::

    router.register("GET", "/financial/groups/{groupId}/expenses", handler)

Pre-compiled regular expressions are accepted as well; only their named
groups become path variables. Captured values are URL-decoded, and a route
whose capture would gain a ``/`` from decoding (``%2F``) does not match.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import unquote

from .errors import RoutingMiss

logger = logging.getLogger(__name__)

Handler = Callable[..., Dict[str, Any]]

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def compile_pattern(pattern: Union[str, "re.Pattern[str]"]) -> "re.Pattern[str]":
    if isinstance(pattern, re.Pattern):
        return pattern
    parts = []
    position = 0
    for placeholder in _PLACEHOLDER.finditer(pattern):
        parts.append(re.escape(pattern[position:placeholder.start()]))
        parts.append(f"(?P<{placeholder.group(1)}>[^/]+)")
        position = placeholder.end()
    parts.append(re.escape(pattern[position:]))
    return re.compile("".join(parts))


@dataclass(frozen=True)
class Route:
    method: str
    pattern: "re.Pattern[str]"
    handler: Handler


@dataclass(frozen=True)
class RouteMatch:
    route: Route
    variables: Dict[str, str] = field(default_factory=dict)

    @property
    def handler(self) -> Handler:
        return self.route.handler


class Router:
    def __init__(self, prefix: str = ""):
        self.prefix = prefix.rstrip("/")
        self._routes: List[Route] = []

    @property
    def routes(self) -> List[Route]:
        return list(self._routes)

    def register(self, method: str, pattern: Union[str, "re.Pattern[str]"], handler: Handler) -> Route:
        if isinstance(pattern, str):
            pattern = self.prefix + pattern
        route = Route(method=method.upper(), pattern=compile_pattern(pattern), handler=handler)
        self._routes.append(route)
        return route

    def get(self, pattern, handler: Handler) -> Route:
        return self.register("GET", pattern, handler)

    def post(self, pattern, handler: Handler) -> Route:
        return self.register("POST", pattern, handler)

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        method = (method or "").upper()
        for route in self._routes:
            if route.method != method:
                continue
            found = route.pattern.fullmatch(path or "")
            if found is None:
                continue
            raw = {name: value for name, value in found.groupdict().items() if value is not None}
            variables = {name: unquote(value) for name, value in raw.items()}
            # A decoded %2F must not turn one segment into two.
            if any(variables[name].count("/") != value.count("/") for name, value in raw.items()):
                continue
            return RouteMatch(route=route, variables=variables)
        return None

    def dispatch(self, request) -> Dict[str, Any]:
        """Invoke the first matching handler with ``request``.

        The matched path variables are attached to the request before the
        handler runs. Raises :class:`RoutingMiss` without invoking anything
        when no route matches.
        """
        matched = self.match(request.method, request.path)
        if matched is None:
            raise RoutingMiss(request.method, request.path)
        request.path_variables = matched.variables
        return matched.handler(request)
