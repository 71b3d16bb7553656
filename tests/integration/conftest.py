"""
Integration test fixtures — requires a reachable Kubernetes API server
(resolved the same way the server resolves it: ./k8s_config.yaml, then
the user's kubeconfig, then the environment).
"""

from __future__ import annotations

import os

import pytest

from k8s_pod_mcp.backend.client import build_kubernetes_api
from k8s_pod_mcp.backend.config import ConfigResolver, default_candidates
from k8s_pod_mcp.settings import load_settings


def _resolver() -> ConfigResolver:
    settings = load_settings()
    return ConfigResolver(
        default_candidates(settings.config_file, settings.kubeconfig, os.environ),
        namespace_override=settings.namespace_override,
    )


def _cluster_reachable() -> bool:
    try:
        build_kubernetes_api(_resolver().resolve(), preflight_timeout=5)
        return True
    except Exception:
        return False


skip_no_cluster = pytest.mark.skipif(
    not _cluster_reachable(),
    reason="Kubernetes API server not reachable — skipping integration tests",
)


@pytest.fixture
def cluster_resolver():
    return _resolver()
