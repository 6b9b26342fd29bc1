"""FastAPI/Starlette request adapter."""

from __future__ import annotations

from fastapi import Request


class FastAPIAdapter:
    """Read-only ``HTTPAdapter`` over a Starlette request."""

    def __init__(self, request: Request) -> None:
        self._request = request

    def get_header(self, name: str) -> str | None:
        return self._request.headers.get(name)

    def get_method(self) -> str:
        return self._request.method

    def get_path(self) -> str:
        return self._request.url.path

    def get_url(self) -> str:
        return str(self._request.url)

    def get_accept_header(self) -> str:
        return self._request.headers.get("accept", "")

    def get_user_agent(self) -> str:
        return self._request.headers.get("user-agent", "")

    def get_query_params(self) -> dict[str, str | list[str]]:
        """Query parameters; repeated keys become lists in first-seen order."""
        params: dict[str, str | list[str]] = {}
        for key, value in self._request.query_params.multi_items():
            existing = params.get(key)
            if existing is None:
                params[key] = value
            elif isinstance(existing, list):
                existing.append(value)
            else:
                params[key] = [existing, value]
        return params

    def get_query_param(self, name: str) -> str | list[str] | None:
        values = self._request.query_params.getlist(name)
        if not values:
            return None
        if len(values) == 1:
            return values[0]
        return values
