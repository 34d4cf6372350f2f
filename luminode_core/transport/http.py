"""HTTP client for LumiNode REST endpoints."""

from __future__ import annotations

from typing import Any

import aiohttp

from ..errors import (
    LuminodeConnectionError,
    LuminodeProtocolError,
    LuminodeResponseError,
    LuminodeTimeout,
)
from ..protocol import AUTH_USERNAME, SOFTWARE_VERSION_PATH

JSON_CONTENT_TYPE = "application/json"


class LuminodeHttpClient:
    """HTTP client wrapper for LumiNode ``/api`` endpoints."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        host: str,
        *,
        password: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._session = session
        self._host = host
        self._password = password
        self._timeout = timeout

    @property
    def host(self) -> str:
        return self._host

    def _url(self, path: str) -> str:
        return f"http://{self._host}/api/{path}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": JSON_CONTENT_TYPE}
        if self._password:
            headers["Authorization"] = aiohttp.BasicAuth(
                AUTH_USERNAME, self._password
            ).encode()
        return headers

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Issue a request against ``/api/<path>``.

        Non-GET requests return None on any 2xx status; the device sends no
        body for them. GET requests must answer with JSON.

        Raises:
            LuminodeResponseError: If the device returns a non-2xx status.
            LuminodeProtocolError: If a GET response is not valid JSON.
            LuminodeTimeout: If the request times out.
            LuminodeConnectionError: If the network request fails.
        """
        url = self._url(path)
        kwargs: dict[str, Any] = {
            "headers": self._headers(),
            "timeout": aiohttp.ClientTimeout(total=self._timeout),
        }
        if body is not None:
            kwargs["json"] = body

        try:
            async with self._session.request(method, url, **kwargs) as resp:
                if not 200 <= resp.status < 300:
                    raise LuminodeResponseError(
                        resp.status, f"{method} {path} failed with status {resp.status}"
                    )
                if method != "GET":
                    return None

                content_type = resp.headers.get("Content-Type", "")
                if JSON_CONTENT_TYPE not in content_type:
                    raise LuminodeProtocolError(
                        f"Unexpected content type for {path}: {content_type or None}"
                    )
                try:
                    return await resp.json(content_type=None)
                except ValueError as err:
                    raise LuminodeProtocolError(
                        f"Malformed JSON in response to {path}"
                    ) from err
        except TimeoutError as err:
            raise LuminodeTimeout(f"{method} {path} timed out") from err
        except aiohttp.ClientError as err:
            raise LuminodeConnectionError(f"{method} {path} failed: {err}") from err

    async def fetch_software_version(self) -> dict[str, Any]:
        """Fetch ``{current, alternate?}`` from /api/software/version.

        Raises:
            LuminodeProtocolError: If the payload is not a JSON object.
        """
        data = await self.request(SOFTWARE_VERSION_PATH)
        if not isinstance(data, dict):
            raise LuminodeProtocolError("Software version payload is not an object")
        return data
