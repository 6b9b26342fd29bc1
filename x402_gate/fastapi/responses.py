"""Response cloning with extra headers.

Responses coming back from ``call_next`` stream their body through a
one-shot async iterator. Adding headers therefore means buffering the body,
replaying it into the original response, and building a new response
around the buffered copy.
"""

from __future__ import annotations

import inspect
import json
from typing import Any, AsyncIterator

from fastapi.responses import JSONResponse, Response
from starlette.datastructures import MutableHeaders
from x402.http.types import HTTPResponseInstructions

from ..errors import ErrorMessages
from .constants import SERVICE_UNAVAILABLE_STATUS


def is_body_consumed(response: Response) -> bool:
    """True if a streaming body has already been read to the end."""
    if getattr(response, "body", None) is not None:
        return False
    iterator = getattr(response, "body_iterator", None)
    # An exhausted or closed async generator has no frame left
    return inspect.isasyncgen(iterator) and iterator.ag_frame is None


async def _replay(chunks: list[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


async def read_body(response: Response) -> bytes:
    """Buffer a response body, leaving the response readable again."""
    body = getattr(response, "body", None)
    if body is not None:
        return bytes(body)

    chunks: list[bytes] = []
    async for chunk in response.body_iterator:  # type: ignore[attr-defined]
        if isinstance(chunk, str):
            chunk = chunk.encode(response.charset)
        chunks.append(bytes(chunk))
    response.body_iterator = _replay(chunks)  # type: ignore[attr-defined]
    return b"".join(chunks)


async def clone_with_headers(response: Response, headers: dict[str, str]) -> Response:
    """Copy a response, merging in ``headers`` (same-named headers are replaced).

    Status code, body, background task and all other headers carry over.
    """
    body = await read_body(response)

    merged = MutableHeaders(raw=list(response.raw_headers))
    for name, value in headers.items():
        merged[name] = value
    if "content-length" in merged:
        merged["content-length"] = str(len(body))

    clone = Response(content=body, status_code=response.status_code, background=response.background)
    clone.raw_headers = merged.raw
    return clone


def instructions_to_response(instructions: HTTPResponseInstructions) -> Response:
    """Render framework-agnostic response instructions."""
    body: Any = instructions.body
    if body is None:
        content = b""
    elif isinstance(body, (str, bytes)):
        content = body
    else:
        content = json.dumps(body)
    return Response(content=content, status_code=instructions.status, headers=instructions.headers)


def service_unavailable_response() -> JSONResponse:
    return JSONResponse(
        content={"error": ErrorMessages.SERVICE_UNAVAILABLE},
        status_code=SERVICE_UNAVAILABLE_STATUS,
    )
