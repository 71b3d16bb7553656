"""
Shared fixtures for the test suite.
"""

from __future__ import annotations

import copy
from unittest.mock import MagicMock

import pytest

from k8s_pod_mcp.backend.client import BackendClient
from k8s_pod_mcp.backend.config import BackendConfig, ConfigResolver
from k8s_pod_mcp.dispatcher import Dispatcher
from k8s_pod_mcp.errors import BackendError


# ---------------------------------------------------------------------------
# Sample payloads (shape of ApiClient.sanitize_for_serialization output)
# ---------------------------------------------------------------------------

PODS_JSON = {
    "apiVersion": "v1",
    "kind": "PodList",
    "metadata": {"resourceVersion": "42"},
    "items": [
        {
            "metadata": {
                "name": "app-abc",
                "namespace": "default",
                "creationTimestamp": "2024-05-01T10:00:00+00:00",
            },
            "spec": {"containers": [{"name": "app", "image": "app:1"}], "nodeName": "node-1"},
            "status": {
                "phase": "Running",
                "podIP": "10.1.0.5",
                "containerStatuses": [{"name": "app", "ready": True, "restartCount": 2}],
            },
        },
        {
            "metadata": {
                "name": "app-pending",
                "namespace": "default",
                "creationTimestamp": "2024-05-01T11:00:00+00:00",
            },
            "spec": {"containers": [{"name": "app", "image": "app:1"}]},
            "status": {"phase": "Pending", "containerStatuses": []},
        },
    ],
}

POD_JSON = {
    "metadata": {"name": "app-abc", "namespace": "default"},
    "spec": {"containers": [{"name": "app", "image": "app:1"}]},
    "status": {
        "phase": "Running",
        "conditions": [
            {
                "type": "Ready",
                "status": "True",
                "lastTransitionTime": "2024-05-01T10:01:00+00:00",
                "reason": "",
                "message": "",
            }
        ],
    },
}

LOGS_TEXT = "starting\nlistening on :8080"


# ---------------------------------------------------------------------------
# Backend doubles
# ---------------------------------------------------------------------------

class StaticResolver(ConfigResolver):
    """Resolver that returns a fixed config and counts calls."""

    def __init__(self, config: BackendConfig | None = None):
        super().__init__([])
        self.config = config or BackendConfig(api_server="https://test-api:6443", namespace="default")
        self.calls = 0

    def resolve(self) -> BackendConfig:
        self.calls += 1
        return self.config


def make_api(pods=None, pod=None, logs=LOGS_TEXT):
    """Blocking fake of KubernetesApi with canned payloads."""
    api = MagicMock()
    api.list_pods.return_value = copy.deepcopy(pods if pods is not None else PODS_JSON)
    api.describe_pod.return_value = copy.deepcopy(pod if pod is not None else POD_JSON)
    api.get_logs.return_value = logs
    return api


@pytest.fixture
def resolver():
    return StaticResolver()


@pytest.fixture
def fake_api():
    return make_api()


@pytest.fixture
def live_backend(resolver, fake_api):
    """Backend client whose initialization succeeds with ``fake_api``."""
    factory = MagicMock(return_value=fake_api)
    backend = BackendClient(resolver, api_factory=factory)
    backend.factory = factory
    return backend


@pytest.fixture
def degraded_backend(resolver):
    """Backend client whose initialization always fails."""
    factory = MagicMock(side_effect=BackendError("API server unreachable"))
    backend = BackendClient(resolver, api_factory=factory)
    backend.factory = factory
    return backend


@pytest.fixture
def dispatcher(degraded_backend):
    return Dispatcher(degraded_backend)


@pytest.fixture
def live_dispatcher(live_backend):
    return Dispatcher(live_backend)
