"""Pytest configuration and fixtures for luminode_core tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
    content_type: str | None = "application/json",
    json_error: Exception | None = None,
) -> AsyncMock:
    """Create a configured mock response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call
        content_type: Content-Type header value, None to omit the header
        json_error: Exception raised by json() instead of returning data

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status
    response.headers = {} if content_type is None else {"Content-Type": content_type}

    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response


class AsyncIteratorMock:
    """Async iterator over fixed frames, optionally blocking at the end."""

    def __init__(
        self,
        items: list[Any],
        *,
        raise_on_iter: Exception | None = None,
        block: bool = False,
    ) -> None:
        import asyncio

        self._items = list(items)
        self._raise_on_iter = raise_on_iter
        self._block = block
        self._release = asyncio.Event()
        self.close = AsyncMock(side_effect=self._on_close)
        self.send = AsyncMock()

    async def _on_close(self) -> None:
        self._release.set()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._items:
            return self._items.pop(0)
        if self._raise_on_iter is not None:
            raise self._raise_on_iter
        if self._block:
            await self._release.wait()
        raise StopAsyncIteration


class FakeDeviceSocket:
    """Stand-in for a websockets connection to a LumiNode.

    Frames pushed with :meth:`push` are yielded in order; closing the socket
    ends iteration the way a peer close does.
    """

    def __init__(self, *, auto_pong: bool = True) -> None:
        import asyncio

        self.auto_pong = auto_pong
        self.sent: list[str] = []
        self.closed = False
        self._frames: asyncio.Queue[str | None] = asyncio.Queue()

    def push(self, frame: str) -> None:
        self._frames.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the device going away."""
        self._frames.put_nowait(None)

    async def send(self, data: str) -> None:
        self.sent.append(data)
        if self.auto_pong and data == "ping":
            self.push("pong")

    async def close(self) -> None:
        self.closed = True
        self._frames.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        frame = await self._frames.get()
        if frame is None:
            raise StopAsyncIteration
        return frame


class FakeDevice:
    """Answers ``session.request`` calls from a table of ``/api`` routes.

    A route maps to a JSON payload, an ``int`` status for an error reply, or
    an exception raised when the request is made. Paths listed in ``held``
    wait for ``release`` before answering.
    """

    def __init__(self, routes: dict[str, Any]) -> None:
        import asyncio

        self.routes = dict(routes)
        self.calls: list[tuple[str, str]] = []
        self.held: set[str] = set()
        self.release = asyncio.Event()

    def paths(self) -> list[str]:
        return [path for _, path in self.calls]

    def request(self, method: str, url: str, **kwargs: Any) -> AsyncMock:
        path = url.split("/api/", 1)[1]
        self.calls.append((method, path))
        route = self.routes.get(path)
        if isinstance(route, Exception):
            raise route

        if isinstance(route, int) and not isinstance(route, bool):
            response = create_mock_response(status=route, content_type=None)
        elif method != "GET":
            response = create_mock_response(content_type=None)
        elif path not in self.routes:
            response = create_mock_response(status=404, content_type=None)
        else:
            response = create_mock_response(json_data=route)

        if path in self.held:

            async def _held_enter():
                await self.release.wait()
                return response

            response.__aenter__.side_effect = _held_enter
        return response
