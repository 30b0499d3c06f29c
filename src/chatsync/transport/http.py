"""
REST HTTP client for the chat backend.

403 maps to AccessDeniedError; every other failure is transient.
"""

from typing import Any, Optional

import httpx

from chatsync.config import DEFAULT_BASE_URL
from chatsync.errors import AccessDeniedError, TransientError

USER_AGENT = "chatsync/0.1.0"


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/api",
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _check(resp: httpx.Response) -> Any:
        if resp.status_code == 403:
            raise AccessDeniedError(
                f"HTTP 403: {resp.text[:200]}",
                details={"path": resp.request.url.path},
            )
        if resp.status_code >= 400:
            raise TransientError(
                f"HTTP {resp.status_code}: {resp.text[:200]}",
                details={"status": resp.status_code},
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TransientError(f"Invalid JSON response: {e}")

    async def get(self, path: str) -> Any:
        try:
            resp = await self._client.get(path, headers=self._auth_headers())
        except httpx.HTTPError as e:
            raise TransientError(f"GET {path} failed: {e}")
        return self._check(resp)

    async def post(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        try:
            resp = await self._client.post(path, json=body, headers=self._auth_headers())
        except httpx.HTTPError as e:
            raise TransientError(f"POST {path} failed: {e}")
        return self._check(resp)

    async def close(self) -> None:
        await self._client.aclose()
