"""Async HTTP client for the TriggerX backend."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from .config import SDKConfig
from .constants import DEFAULT_REQUEST_TIMEOUT_SECONDS
from .errors import ApiError, NetworkError
from .trace import generate_trace_id


def preview_api_key(api_key: Optional[str]) -> str:
    if not api_key:
        return "<unset>"
    if len(api_key) <= 8:
        return "****"
    return f"{api_key[:4]}...{api_key[-4:]}"


class TriggerXClient:
    """Thin JSON client: ``get``/``post``/``put`` returning the decoded body.

    HTTP statuses >= 400 raise ApiError (status and body in ``details``);
    connection failures and timeouts raise NetworkError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
        user_address: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if api_key is None or api_url is None or timeout is None:
            config = SDKConfig.from_env()
            api_key = config.api_key if api_key is None else api_key
            api_url = config.api_url if api_url is None else api_url
            timeout = config.request_timeout if timeout is None else timeout
        self.api_key = api_key or ""
        self.api_url = (api_url or "").rstrip("/")
        self.timeout = float(timeout or DEFAULT_REQUEST_TIMEOUT_SECONDS)
        self.user_address = user_address
        self._session = session
        self._owns_session = session is None
        self._logger = logger or logging.getLogger("triggerx.client")

    async def __aenter__(self) -> "TriggerXClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _headers(self, method: str, path: str, extra: Optional[Dict[str, str]]) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-API-KEY": self.api_key,
            "X-Trace-ID": generate_trace_id(method, path, self.user_address),
        }
        headers.update(extra or {})
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = f"{self.api_url}/{path.lstrip('/')}"
        request_headers = self._headers(method, path, headers)
        self._logger.debug(
            f"{method.upper()} {path} trace={request_headers['X-Trace-ID']} "
            f"key={preview_api_key(self.api_key)}"
        )
        session = self._get_session()
        try:
            async with session.request(
                method.upper(),
                url,
                params=params,
                json=body,
                headers=request_headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                text = await resp.text()
                payload = _decode_body(text)
                if resp.status >= 400:
                    self._logger.error(f"Backend error {resp.status} on {method.upper()} {path}: {text[:500]}")
                    raise ApiError(
                        f"Request to {path} failed with status {resp.status}",
                        {"status": resp.status, "response": payload, "path": path},
                        http_status=resp.status,
                    )
                return payload
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise NetworkError(
                f"Request to {path} failed: {exc or type(exc).__name__}",
                {"path": path, "original_error": str(exc)},
            ) from exc

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("get", path, params=params, headers=headers)

    async def post(self, path: str, body: Any = None, headers: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("post", path, body=body, headers=headers)

    async def put(self, path: str, body: Any = None, headers: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("put", path, body=body, headers=headers)


def _decode_body(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text
