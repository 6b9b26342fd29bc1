"""Route table: split configured routes into static and dynamic policies.

Static routes carry fixed payment options and are served by
``x402HTTPResourceServer``. Dynamic routes compute their options per request
and are matched here, ahead of any static route.

Only exact paths and trailing wildcards (``/api/v1/*``) are supported for
dynamic routes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from fastapi import Request
from x402.http import PaymentOption
from x402.http.types import RouteConfig

WILDCARD_METHOD = "*"
WILDCARD_SUFFIX = "*"

# None or an empty list means the request is served without payment
PaymentOptions = Optional[list[PaymentOption]]
AcceptsFunc = Callable[[Request], Union[PaymentOptions, Awaitable[PaymentOptions]]]


@dataclass
class DynamicRouteConfig:
    """Route whose payment options are computed from each request."""

    accepts: AcceptsFunc
    description: str | None = None
    mime_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DynamicRouteConfig:
        return cls(
            accepts=data["accepts"],
            description=data.get("description"),
            mime_type=data.get("mimeType", data.get("mime_type")),
        )


StaticRouteConfig = Union[RouteConfig, dict[str, Any]]
RoutesConfig = dict[str, Union[StaticRouteConfig, DynamicRouteConfig]]


def normalize_route_config(
    config: StaticRouteConfig | DynamicRouteConfig,
) -> StaticRouteConfig | DynamicRouteConfig:
    """Resolve a config into one of the two policy kinds.

    A dict whose ``accepts`` is callable is dynamic. Static configs are
    returned unchanged; ``x402HTTPResourceServer`` parses them.
    """
    if isinstance(config, (RouteConfig, DynamicRouteConfig)):
        return config
    if isinstance(config, dict):
        if callable(config.get("accepts")):
            return DynamicRouteConfig.from_dict(config)
        return config
    raise TypeError(f"Unsupported route config type: {type(config).__name__}")


def parse_route_key(key: str) -> tuple[str, str]:
    """Split ``"POST /api/draw"`` into ``("POST", "/api/draw")``.

    A key without exactly one space is a path for any method.
    """
    parts = key.split(" ")
    if len(parts) == 2:
        return parts[0].upper(), parts[1]
    return WILDCARD_METHOD, key


def path_matches(pattern: str, path: str) -> bool:
    """Exact match, or prefix match for a pattern ending in ``*``."""
    if pattern == path:
        return True
    if pattern.endswith(WILDCARD_SUFFIX):
        return path.startswith(pattern[: -len(WILDCARD_SUFFIX)])
    return False


@dataclass
class DynamicRouteEntry:
    path_pattern: str
    config: DynamicRouteConfig


class RouteTable:
    """Immutable partition of the configured routes."""

    def __init__(self, routes: RoutesConfig) -> None:
        static: dict[str, StaticRouteConfig] = {}
        dynamic: dict[str, list[DynamicRouteEntry]] = {}

        for key, raw in routes.items():
            config = normalize_route_config(raw)
            if isinstance(config, DynamicRouteConfig):
                method, path_pattern = parse_route_key(key)
                dynamic.setdefault(method, []).append(DynamicRouteEntry(path_pattern, config))
            else:
                static[key] = config

        self._static_routes = static
        self._dynamic_by_method = {m: tuple(entries) for m, entries in dynamic.items()}

    @property
    def static_routes(self) -> dict[str, StaticRouteConfig]:
        return dict(self._static_routes)

    @property
    def has_static_routes(self) -> bool:
        return bool(self._static_routes)

    @property
    def has_dynamic_routes(self) -> bool:
        return bool(self._dynamic_by_method)

    def find_dynamic_route(self, method: str, path: str) -> DynamicRouteConfig | None:
        """First dynamic route matching the request.

        Method-specific routes are tried before method-agnostic ones, each in
        configuration order.
        """
        for group in (method.upper(), WILDCARD_METHOD):
            for entry in self._dynamic_by_method.get(group, ()):
                if path_matches(entry.path_pattern, path):
                    return entry.config
        return None
