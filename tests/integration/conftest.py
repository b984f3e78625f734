"""
Integration test fixtures — a full project tree plus an in-process fake of the
t0ggles API that keeps tasks and dependencies between calls.
Mark with @pytest.mark.integration to skip in unit-only runs.

Run: pytest tests/integration/ -v -m integration
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest


# Custom marker for integration tests
def pytest_configure(config):
    config.addinivalue_line("markers", "integration: exercises several node subsystems end to end")


@pytest.fixture
def integration_project(tmp_path):
    """
    Create a project tree with t0ggles.yaml, a credential store location
    and a log directory. Returns the root Path.
    """
    root = tmp_path / "project"
    root.mkdir()
    (root / "t0ggles.yaml").write_text(
        "node:\n"
        "  name: t0ggles-integration\n"
        "  environment: staging\n"
        "api:\n"
        "  base_url: https://t0ggles.com/api/v1\n"
        "  log_payload: true\n"
        "environment_overrides:\n"
        "  staging: https://staging.t0ggles.test/api/v1\n"
        "credentials:\n"
        "  store_path: " + str(root / ".t0ggles" / "credentials.json") + "\n"
        "logging:\n"
        "  directory: " + str(root / ".t0ggles" / "logs") + "\n"
        "  async_queue:\n"
        "    flush_interval_ms: 10\n",
        encoding="utf-8",
    )
    return root


class FakeT0ggles:
    """
    Minimal stateful stand-in for the t0ggles REST API.

    Tasks are keyed by id and by (projectKey, key); dependencies by id.
    Authorization must be "Bearer <api_key>".
    """

    def __init__(self, api_key: str = "tg_integration_key"):
        self.api_key = api_key
        self.tasks: Dict[str, Dict[str, Any]] = {}
        self.dependencies: Dict[str, Dict[str, Any]] = {}
        self.calls: List[httpx.Request] = []
        self._next_key: Dict[str, int] = {}
        self.transport = httpx.MockTransport(self._handle)

    # -- helpers --------------------------------------------------------

    def _new_task(self, data: Dict[str, Any], parent_id: Optional[str] = None) -> Dict[str, Any]:
        project = data["projectKey"]
        key = self._next_key.get(project, 1)
        self._next_key[project] = key + 1
        task = {k: v for k, v in data.items() if k != "subtasks"}
        task.update({"id": f"task_{len(self.tasks) + 1}", "key": key})
        if parent_id:
            task["parentId"] = parent_id
        self.tasks[task["id"]] = task
        for sub in data.get("subtasks", []):
            self._new_task(sub, parent_id=task["id"])
        return task

    def _find(self, data: Dict[str, Any], prefix: str = "") -> Optional[Dict[str, Any]]:
        def name(n: str) -> str:
            return prefix + n[0].upper() + n[1:] if prefix else n

        if data.get(name("id")):
            return self.tasks.get(data[name("id")])
        for task in self.tasks.values():
            if task["projectKey"] == data.get(name("projectKey")) and task["key"] == data.get(name("key")):
                return task
        return None

    @staticmethod
    def _json(status: int, body: Any) -> httpx.Response:
        return httpx.Response(status, json=body)

    # -- routing --------------------------------------------------------

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if request.headers.get("Authorization") != f"Bearer {self.api_key}":
            return self._json(401, {"error": "Invalid API key"})

        body = json.loads(request.content) if request.content else {}
        path = request.url.path.rsplit("/api/v1", 1)[-1]
        route = (request.method, path)

        if route == ("POST", "/tasks"):
            return self._json(201, {"tasks": [self._new_task(t) for t in body["tasks"]]})

        if route == ("PUT", "/tasks"):
            updated = []
            for change in body["tasks"]:
                task = self._find(change)
                if task is None:
                    return self._json(404, {"error": "Task not found"})
                for k, v in change.items():
                    if k in ("id", "projectKey", "key"):
                        continue
                    if v == "":
                        task.pop(k, None)
                    else:
                        task[k] = v
                updated.append(task)
            return self._json(200, {"tasks": updated})

        if route == ("GET", "/tasks"):
            params = request.url.params
            tasks = list(self.tasks.values())
            if "projectKey" in params:
                keys = params["projectKey"].split(",")
                tasks = [t for t in tasks if t["projectKey"] in keys]
            if "priority" in params:
                tasks = [t for t in tasks if t.get("priority") == params["priority"]]
            return self._json(200, {"tasks": tasks})

        if route == ("POST", "/dependencies"):
            pred, succ = self._find(body, "predecessor"), self._find(body, "successor")
            if pred is None or succ is None:
                return self._json(404, {"error": "Task not found"})
            dep = {
                "id": f"dep_{len(self.dependencies) + 1}",
                "predecessorId": pred["id"],
                "successorId": succ["id"],
                "lagDays": body.get("lagDays", 0),
            }
            self.dependencies[dep["id"]] = dep
            return self._json(201, {"dependency": dep})

        if route == ("GET", "/dependencies"):
            deps = list(self.dependencies.values())
            task_id = request.url.params.get("taskId")
            if task_id:
                deps = [d for d in deps if task_id in (d["predecessorId"], d["successorId"])]
            return self._json(200, {"dependencies": deps})

        if route == ("DELETE", "/dependencies"):
            if "id" in body:
                dep = self.dependencies.pop(body["id"], None)
            else:
                pred, succ = self._find(body, "predecessor"), self._find(body, "successor")
                dep = next(
                    (d for d in self.dependencies.values()
                     if pred and succ and d["predecessorId"] == pred["id"] and d["successorId"] == succ["id"]),
                    None,
                )
                if dep:
                    del self.dependencies[dep["id"]]
            if dep is None:
                return self._json(404, {"error": "Dependency not found"})
            return self._json(200, {"success": True})

        return self._json(404, {"error": f"No route for {request.method} {path}"})


@pytest.fixture
def fake_t0ggles():
    return FakeT0ggles()
