"""
JSON-RPC transport for the CyberConnect sponsor/relayer endpoint
"""

import itertools
import logging
import threading
from typing import Any, List, Optional, Protocol

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from cyber_abstract.config import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class RelayerError(Exception):
    """Transport-level failure talking to the relayer"""


class RelayerHttpError(RelayerError):
    """Relayer answered with a non-2xx status or an unreadable body"""

    def __init__(self, method: str, status_code: int, body: str):
        self.method = method
        self.status_code = status_code
        self.body = body
        super().__init__(f"{method} failed with HTTP {status_code}: {body[:200]}")


class RpcResponseError(RelayerError):
    """Relayer answered with a JSON-RPC error object"""

    def __init__(self, method: str, code: Optional[int], message: str, data: Any = None):
        self.method = method
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"{method} failed ({code}): {message}")


class Transport(Protocol):
    def request(self, method: str, params: List[Any]) -> Any:
        ...


class HttpTransport:
    """JSON-RPC 2.0 over HTTP POST, exactly one attempt per request

    A session passed in by the caller is used as-is; retry adapters are only
    mounted on a session the transport creates itself.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout_seconds = timeout_seconds
        if session is None:
            session = requests.Session()
            # No retries at this layer
            adapter = HTTPAdapter(max_retries=Retry(total=0, connect=0, read=0, redirect=0))
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session
        self._ids = itertools.count(1)
        self._ids_lock = threading.Lock()

    def _next_id(self) -> int:
        with self._ids_lock:
            return next(self._ids)

    def request(self, method: str, params: List[Any]) -> Any:
        """Make JSON-RPC request to the relayer and return its result"""
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._next_id(),
        }

        response = self.session.post(
            self.rpc_url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=self.timeout_seconds,
        )

        if not response.ok:
            logger.error(f"HTTP error from relayer for {method}: {response.status_code}")
            raise RelayerHttpError(method, response.status_code, response.text)

        try:
            body = response.json()
        except ValueError:
            logger.error(f"Relayer returned a non-JSON body for {method}")
            raise RelayerHttpError(method, response.status_code, response.text) from None

        if not isinstance(body, dict):
            raise RelayerHttpError(method, response.status_code, response.text)

        if body.get("error") is not None:
            error = body["error"]
            if not isinstance(error, dict):
                error = {"message": str(error)}
            logger.error(f"Relayer error for {method}: {error.get('message', 'Unknown error')}")
            raise RpcResponseError(
                method,
                error.get("code"),
                error.get("message", "Unknown error"),
                error.get("data"),
            )

        return body.get("result")

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
