"""
t0ggles node test suite — shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest


# ---------------------------------------------------------------------------
# No real t0ggles API and no global state leaking between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Reset global singletons and credential env vars between tests."""
    import t0ggles_node.engine.config as cfg_mod
    import t0ggles_node.engine.credentials as cred_mod
    import t0ggles_node.engine.logging as log_mod

    monkeypatch.delenv("T0GGLES_API_KEY", raising=False)
    monkeypatch.delenv("T0GGLES_SECRET_KEY", raising=False)
    monkeypatch.delenv("T0GGLES_CONFIG", raising=False)

    cfg_mod._node_config = None
    cred_mod._credential_manager = None
    yield
    log_mod.shutdown_logging()
    cfg_mod._node_config = None
    cred_mod._credential_manager = None


@pytest.fixture
def project_root(tmp_path):
    """
    Create a minimal project directory with t0ggles.yaml.
    Returns the root Path.
    """
    root = tmp_path / "project"
    root.mkdir()
    (root / "t0ggles.yaml").write_text(
        "node:\n"
        "  name: t0ggles-test\n"
        "  environment: dev\n"
        "api:\n"
        "  base_url: https://t0ggles.test/api/v1/\n"
        "  timeout: 5\n"
        "credentials:\n"
        "  store_path: " + str(root / ".t0ggles" / "credentials.json") + "\n"
        "logging:\n"
        "  level: debug\n"
        "  directory: " + str(root / ".t0ggles" / "logs") + "\n",
        encoding="utf-8",
    )
    return root


class StaticCredentials:
    """Credential source returning a fixed API key (or nothing)."""

    def __init__(self, api_key: Optional[str] = "test-api-key"):
        self.api_key = api_key
        self.calls: List[str] = []

    def get_credentials(self, name: str = "t0gglesApi") -> Optional[Dict[str, Any]]:
        self.calls.append(name)
        if self.api_key is None:
            return None
        return {"apiKey": self.api_key}


@pytest.fixture
def credentials():
    return StaticCredentials()


class RecordingTransport:
    """
    Wraps httpx.MockTransport and keeps every request it sees.

    responder(request) returns an httpx.Response; the default answers 200 {}.
    """

    def __init__(self, responder: Optional[Callable[[httpx.Request], httpx.Response]] = None):
        self.requests: List[httpx.Request] = []
        self._responder = responder or (lambda request: httpx.Response(200, json={}))
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content) if self.last.content else None


@pytest.fixture
def mock_api():
    """Factory: mock_api(responder) -> RecordingTransport."""
    return RecordingTransport


@pytest.fixture
def make_dispatcher(credentials):
    """Factory building a RequestDispatcher wired to a mock transport."""
    from t0ggles_node.engine.dispatcher import RequestDispatcher

    def _make(recording: RecordingTransport, source: Any = None, **kwargs: Any) -> RequestDispatcher:
        return RequestDispatcher(
            source if source is not None else credentials,
            base_url=kwargs.pop("base_url", "https://t0ggles.test/api/v1"),
            timeout=kwargs.pop("timeout", 5),
            log_payload=kwargs.pop("log_payload", False),
            transport=recording.transport,
            **kwargs,
        )

    return _make
