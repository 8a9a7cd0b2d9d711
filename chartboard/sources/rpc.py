"""
Remote procedure call transports.

``HTTPRPCClient`` posts to ``{base_url}/api/method/{method_path}`` and returns
the ``message`` member of the JSON reply. ``LocalRPCClient`` dispatches to an
in-process table of callables and is used when sources live in the same
process (and in tests).
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Optional

import requests

from ..core.config import RPCConfig
from ..core.exceptions import RPCError
from ..core.interfaces import RPCClientInterface


logger = logging.getLogger(__name__)


class HTTPRPCClient(RPCClientInterface):
    """RPC client over HTTP using requests, run off the event loop."""

    def __init__(self, config: Optional[RPCConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or RPCConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if self.config.api_key and self.config.api_secret:
            self.session.headers["Authorization"] = f"token {self.config.api_key}:{self.config.api_secret}"

    async def call(self, method_path: str, args: Dict[str, Any]) -> Any:
        return await asyncio.to_thread(self._post, method_path, args)

    def _post(self, method_path: str, args: Dict[str, Any]) -> Any:
        url = f"{self.base_url}/api/method/{method_path}"
        try:
            response = self.session.post(
                url,
                json=args,
                timeout=self.config.timeout_seconds,
                verify=self.config.verify_ssl
            )
        except requests.RequestException as e:
            raise RPCError(f"Failed to reach {url}: {e}", error_code="RPC_UNREACHABLE") from e

        payload = self._decode(response)

        if response.status_code >= 400 or "exc" in payload:
            detail = payload.get("exc") or payload.get("message") or response.reason
            raise RPCError(
                f"{method_path} returned {response.status_code}: {detail}",
                status_code=response.status_code,
                error_code="RPC_REMOTE_ERROR",
                context={"method_path": method_path}
            )

        return payload.get("message")

    def _decode(self, response: requests.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            if response.status_code >= 400:
                return {}
            raise RPCError(
                f"Invalid JSON from {response.url}",
                status_code=response.status_code,
                error_code="RPC_INVALID_RESPONSE"
            )
        if not isinstance(payload, dict):
            return {"message": payload}
        return payload

    def close(self) -> None:
        self.session.close()


class LocalRPCClient(RPCClientInterface):
    """RPC client dispatching to registered in-process callables."""

    def __init__(self, methods: Optional[Dict[str, Callable[..., Any]]] = None):
        self.methods: Dict[str, Callable[..., Any]] = dict(methods or {})

    def register(self, method_path: str, func: Callable[..., Any]) -> None:
        self.methods[method_path] = func

    async def call(self, method_path: str, args: Dict[str, Any]) -> Any:
        func = self.methods.get(method_path)
        if func is None:
            raise RPCError(f"Method not found: {method_path}", status_code=404, error_code="RPC_NOT_FOUND")

        logger.debug(f"Local call {method_path}")
        result = func(**args)
        if inspect.isawaitable(result):
            result = await result
        return result
