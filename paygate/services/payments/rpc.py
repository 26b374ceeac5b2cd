"""
JSON-RPC client for chain nodes (EVM and Solana speak the same envelope).

Bounded timeout, bounded retries with jitter on transient failures (transport errors,
429, 5xx) and a circuit breaker around the whole retried call. Every failure surfaces as
ChainUnavailable / MalformedRpcResponse; callers turn those into "unverified".
"""
import json
import logging
import random
import time
from typing import Any, Callable

import httpx
import pybreaker

from paygate.services.payments.base import ChainUnavailable, MalformedRpcResponse
from paygate.utils.metrics import chain_rpc_duration_seconds, chain_rpc_requests_total

logger = logging.getLogger(__name__)


class _TransientHttpError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class JsonRpcClient:
    def __init__(
        self,
        chain: str,
        url: str,
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        breaker: pybreaker.CircuitBreaker | None = None,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.chain = chain
        self.url = url
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.breaker = breaker
        self._client = client
        self._sleep = sleep
        self._request_id = 0

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def call(self, method: str, params: list[Any]) -> Any:
        """Return the `result` member. None is a legitimate result (e.g. unknown tx)."""
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}

        try:
            if self.breaker is not None:
                raw = self.breaker.call(self._post_with_retry, payload)
            else:
                raw = self._post_with_retry(payload)
        except pybreaker.CircuitBreakerError as e:
            chain_rpc_requests_total.labels(chain=self.chain, status="circuit_open").inc()
            raise ChainUnavailable(f"{self.chain} RPC temporarily disabled") from e

        try:
            body = json.loads(raw)
        except ValueError as e:
            raise MalformedRpcResponse(f"{self.chain} RPC returned non-JSON body") from e
        if not isinstance(body, dict):
            raise MalformedRpcResponse(f"{self.chain} RPC returned unexpected body")
        if body.get("error"):
            error = body["error"]
            code = error.get("code") if isinstance(error, dict) else None
            logger.warning(
                "chain_rpc_error",
                extra={"chain": self.chain, "method": method, "error": str(code)},
            )
            raise ChainUnavailable(f"{self.chain} RPC error {code}")
        if "result" not in body:
            raise MalformedRpcResponse(f"{self.chain} RPC response has no result")
        return body["result"]

    def _post_with_retry(self, payload: dict) -> bytes:
        attempt = 0
        while True:
            attempt += 1
            start = time.monotonic()
            try:
                response = self.client.post(self.url, json=payload, timeout=self.timeout)
                if response.status_code == 429 or response.status_code >= 500:
                    raise _TransientHttpError(response.status_code)
                if response.status_code >= 400:
                    chain_rpc_requests_total.labels(chain=self.chain, status="error").inc()
                    raise ChainUnavailable(f"{self.chain} RPC rejected request: HTTP {response.status_code}")
                chain_rpc_requests_total.labels(chain=self.chain, status="success").inc()
                chain_rpc_duration_seconds.labels(chain=self.chain).observe(time.monotonic() - start)
                return response.content
            except (httpx.TransportError, _TransientHttpError) as e:
                chain_rpc_requests_total.labels(chain=self.chain, status="error").inc()
                logger.warning(
                    "chain_rpc_attempt_failed",
                    extra={"chain": self.chain, "attempt": attempt, "error": type(e).__name__},
                )
                if attempt >= self.max_attempts:
                    raise ChainUnavailable(
                        f"{self.chain} RPC unreachable after {attempt} attempts"
                    ) from e
                self._sleep(self.backoff_seconds * attempt + random.uniform(0, self.backoff_seconds))
