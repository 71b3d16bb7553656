"""
Synthetic backend used whenever the live cluster is unavailable.

Returns one fixed, well-formed pod and a fixed log text. Payloads use the
same JSON layout the live client produces (camelCase keys, ISO timestamps)
so callers cannot tell them apart structurally. Stateless and never fails.
"""

from __future__ import annotations

SYNTHETIC_POD_NAME = "mock-pod"
SYNTHETIC_CONTAINER = "mock-container"
SYNTHETIC_IMAGE = "mock-image:latest"
SYNTHETIC_POD_IP = "10.0.0.1"
SYNTHETIC_TIMESTAMP = "2024-01-01T00:00:00+00:00"

SYNTHETIC_LOGS = "Mock pod logs\nThis is a simulated log output\nEverything is running fine"


def _container_status() -> dict:
    return {
        "name": SYNTHETIC_CONTAINER,
        "ready": True,
        "restartCount": 0,
        "state": {"running": {"startedAt": SYNTHETIC_TIMESTAMP}},
    }


def _pod(name: str, namespace: str, *, with_conditions: bool) -> dict:
    status: dict = {"phase": "Running"}
    if with_conditions:
        status["conditions"] = [
            {
                "type": "Ready",
                "status": "True",
                "lastTransitionTime": SYNTHETIC_TIMESTAMP,
                "reason": "MockReady",
                "message": "Mock pod is ready",
            }
        ]
    status["containerStatuses"] = [_container_status()]
    status["podIP"] = SYNTHETIC_POD_IP
    return {
        "metadata": {
            "name": name,
            "namespace": namespace,
            "creationTimestamp": SYNTHETIC_TIMESTAMP,
        },
        "spec": {
            "containers": [{"name": SYNTHETIC_CONTAINER, "image": SYNTHETIC_IMAGE}],
        },
        "status": status,
    }


class SyntheticBackend:
    async def list_pods(self, namespace: str | None = None) -> dict:
        return {
            "kind": "PodList",
            "apiVersion": "v1",
            "metadata": {"resourceVersion": "1"},
            "items": [_pod(SYNTHETIC_POD_NAME, namespace or "default", with_conditions=False)],
        }

    async def describe_pod(self, name: str, namespace: str = "default") -> dict:
        return _pod(name, namespace or "default", with_conditions=True)

    async def get_logs(self, name: str, namespace: str = "default", container: str | None = None) -> str:
        return SYNTHETIC_LOGS
