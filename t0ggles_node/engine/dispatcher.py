"""
t0ggles Request Dispatcher — Outbound HTTP call pipeline for the t0ggles API.

Pipeline (per call):
    1. Resolve the API key from the credential source (fail before any I/O)
    2. Build the request: Bearer auth, JSON content type, body, query string
    3. Execute via httpx.AsyncClient (one pooled client per dispatcher)
    4. Decode the JSON response; wrap transport errors and non-2xx statuses
       into RemoteApiError
    5. Log the call to requests/execution (body only if log_payload=True)

No retries, no pagination, no rate limiting: a failure is surfaced as-is.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Optional, Protocol

import httpx

from t0ggles_node.engine.context import current_execution_id
from t0ggles_node.engine.credentials import CREDENTIAL_NAME
from t0ggles_node.engine.errors import AuthenticationError, RemoteApiError
from t0ggles_node.engine.logging import (
    AsyncLogQueue,
    LogEntry,
    get_log_queue,
    log_request_call,
    log_security_event,
)

logger = logging.getLogger("t0ggles_node.engine.dispatcher")


class CredentialSource(Protocol):
    def get_credentials(self, name: str = CREDENTIAL_NAME) -> Optional[Dict[str, Any]]: ...


def _encode_query(qs: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten query values: booleans as true/false, lists comma-joined, objects as JSON."""
    encoded: Dict[str, Any] = {}
    for key, value in qs.items():
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            encoded[key] = ",".join(str(v) for v in value)
        elif isinstance(value, dict):
            encoded[key] = json.dumps(value, separators=(",", ":"))
        elif value is None:
            encoded[key] = ""
        else:
            encoded[key] = value
    return encoded


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict) and isinstance(value.get("message"), str):
                return value["message"]
    if isinstance(body, str) and body:
        return body[:200]
    return None


class RequestDispatcher:
    """
    Executes one authenticated HTTP call per request() against the t0ggles API.

    Usage:
        async with RequestDispatcher(credential_manager) as dispatcher:
            data = await dispatcher.request("GET", "/tasks", qs={"projectKey": "SWIPER"})

    Tests pass transport=httpx.MockTransport(handler) to stay offline.
    """

    def __init__(
        self,
        credential_source: CredentialSource,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        log_payload: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        log_queue: Optional[AsyncLogQueue] = None,
    ):
        if base_url is None or timeout is None or log_payload is None:
            from t0ggles_node.engine.config import get_node_config

            cfg = get_node_config()
            base_url = base_url if base_url is not None else cfg.base_url
            timeout = timeout if timeout is not None else cfg.api.timeout
            log_payload = log_payload if log_payload is not None else cfg.api.log_payload

        self._credential_source = credential_source
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._log_payload = log_payload
        self._transport = transport
        self._log_queue = log_queue
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "RequestDispatcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # -----------------------------------------------------------------------
    # Request building
    # -----------------------------------------------------------------------

    def _api_key(self) -> str:
        credentials = self._credential_source.get_credentials(CREDENTIAL_NAME)
        api_key = (credentials or {}).get("apiKey")
        if not api_key:
            self._log(log_security_event(
                "api_key_missing",
                object_ref=CREDENTIAL_NAME,
                execution_id=current_execution_id(),
            ))
            raise AuthenticationError(
                "No API key provided. Please configure your t0ggles credentials.",
                credential_name=CREDENTIAL_NAME,
                execution_id=current_execution_id(),
            )
        return str(api_key)

    def build_request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
        qs: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Build the keyword arguments for httpx.AsyncClient.request().

        The body is attached only for non-GET methods and only when non-empty;
        an empty query is left off entirely.
        """
        method = method.upper()
        options: Dict[str, Any] = {
            "method": method,
            "url": f"{self._base_url}{endpoint}",
            "headers": {
                "Authorization": f"Bearer {self._api_key()}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        }
        if method != "GET" and body:
            options["json"] = body
        if qs:
            options["params"] = _encode_query(qs)
        return options

    # -----------------------------------------------------------------------
    # Execution
    # -----------------------------------------------------------------------

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
        qs: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Execute one call and return the decoded JSON response ({} for an empty body).

        Raises:
            AuthenticationError before any network I/O when no API key is set.
            RemoteApiError on transport failure or a non-2xx response.
        """
        options = self.build_request(method, endpoint, body, qs)
        method, url = options["method"], options["url"]
        client = self._get_or_create_client()
        start_time = time.monotonic()

        try:
            response = await client.request(**options)
        except httpx.HTTPError as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            self._log(log_request_call(
                method, url, 0, duration_ms, success=False,
                execution_id=current_execution_id(),
                log_payload=self._log_payload, request_body=options.get("json"),
                query=options.get("params"), error=str(e),
            ))
            logger.error(f"{method} {url} failed: {e}")
            raise RemoteApiError(
                f"Request to t0ggles failed: {e}",
                method=method,
                url=url,
                response_body={"error": str(e), "type": type(e).__name__},
                execution_id=current_execution_id(),
            ) from e

        duration_ms = (time.monotonic() - start_time) * 1000
        response_body = self._decode(response)

        self._log(log_request_call(
            method, url, response.status_code, duration_ms,
            success=response.is_success,
            execution_id=current_execution_id(),
            log_payload=self._log_payload,
            request_body=options.get("json"),
            query=options.get("params"),
            response_body=response_body,
        ))

        if not response.is_success:
            detail = _error_message(response_body) or response.reason_phrase
            logger.warning(f"{method} {url} returned HTTP {response.status_code}: {detail}")
            raise RemoteApiError(
                f"t0ggles API returned HTTP {response.status_code}: {detail}",
                status_code=response.status_code,
                response_body=response_body,
                method=method,
                url=url,
                execution_id=current_execution_id(),
            )

        logger.debug(f"{method} {url} -> {response.status_code} ({duration_ms:.1f}ms)")
        return response_body

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return response.text

    def _get_or_create_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=10.0),
                follow_redirects=True,
                transport=self._transport,
            )
            logger.debug(f"Created httpx client for {self._base_url}")
        return self._client

    async def close(self) -> None:
        """Close the pooled httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _log(self, entry: LogEntry) -> None:
        queue = self._log_queue or get_log_queue()
        if queue is not None:
            queue.push(entry)
