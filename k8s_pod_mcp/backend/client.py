"""
Resilient Kubernetes backend client.

Three read operations (list pods, describe pod, fetch logs) on top of the
official ``kubernetes`` client. Behaviour:

  - Initialization is lazy: the first call resolves the config and builds
    the live API under an asyncio lock, so concurrent first callers share
    a single attempt.
  - An initialization failure marks the client degraded for the rest of
    the process. Degraded clients answer from the synthetic backend and
    never retry the live connection.
  - A failing live call is logged and answered by the synthetic backend.

Every operation returns ``Real(data)`` or ``Synthetic(data, reason)``; the
caller always receives a value.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config

from k8s_pod_mcp.backend.config import BackendConfig, ConfigResolver
from k8s_pod_mcp.backend.synthetic import SyntheticBackend
from k8s_pod_mcp.errors import BackendError

logger = logging.getLogger(__name__)

CONTEXT_NAME = "default"


# ---------------------------------------------------------------------------
# Tagged results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Real:
    data: Any

    @property
    def synthetic(self) -> bool:
        return False


@dataclass(frozen=True)
class Synthetic:
    data: Any
    reason: str = ""

    @property
    def synthetic(self) -> bool:
        return True


BackendResult = Union[Real, Synthetic]


# ---------------------------------------------------------------------------
# Live API
# ---------------------------------------------------------------------------

def build_kubeconfig(config: BackendConfig) -> dict:
    """In-memory kubeconfig pointing at ``config.api_server``."""
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [
            {
                "name": CONTEXT_NAME,
                "cluster": {"server": config.api_server, "insecure-skip-tls-verify": True},
            }
        ],
        "contexts": [
            {
                "name": CONTEXT_NAME,
                "context": {"cluster": CONTEXT_NAME, "namespace": config.namespace},
            }
        ],
        "current-context": CONTEXT_NAME,
        "preferences": {},
        "users": [],
    }


class KubernetesApi:
    """Blocking wrapper over CoreV1Api returning JSON-compatible payloads."""

    def __init__(self, api_client: k8s_client.ApiClient):
        self.api_client = api_client
        self.core = k8s_client.CoreV1Api(api_client)

    def _plain(self, obj: Any) -> Any:
        return self.api_client.sanitize_for_serialization(obj)

    def probe(self, timeout: float) -> str:
        info = k8s_client.VersionApi(self.api_client).get_code(_request_timeout=timeout)
        return getattr(info, "git_version", "unknown")

    def list_pods(self, namespace: str | None = None) -> dict:
        if namespace:
            pods = self.core.list_namespaced_pod(namespace)
        else:
            pods = self.core.list_pod_for_all_namespaces()
        return self._plain(pods)

    def describe_pod(self, name: str, namespace: str) -> dict:
        return self._plain(self.core.read_namespaced_pod(name, namespace))

    def get_logs(self, name: str, namespace: str, container: str | None = None) -> str:
        kwargs = {"container": container} if container else {}
        return self.core.read_namespaced_pod_log(name, namespace, **kwargs)


def build_kubernetes_api(config: BackendConfig, preflight_timeout: float = 0) -> KubernetesApi:
    """Build the live API and, when ``preflight_timeout`` > 0, probe the server."""
    try:
        api_client = k8s_config.new_client_from_config_dict(
            build_kubeconfig(config), context=CONTEXT_NAME
        )
    except Exception as exc:  # noqa: BLE001
        raise BackendError(f"invalid client configuration: {exc}") from exc

    api = KubernetesApi(api_client)
    if preflight_timeout > 0:
        try:
            version = api.probe(preflight_timeout)
        except Exception as exc:  # noqa: BLE001
            raise BackendError(f"API server {config.api_server} unreachable: {exc}") from exc
        logger.info("Kubernetes API server %s reachable (version %s)", config.api_server, version)
    return api


ApiFactory = Callable[[BackendConfig, float], Any]


# ---------------------------------------------------------------------------
# Backend client
# ---------------------------------------------------------------------------

class BackendClient:
    def __init__(
        self,
        resolver: ConfigResolver,
        *,
        synthetic: SyntheticBackend | None = None,
        api_factory: ApiFactory = build_kubernetes_api,
        preflight_timeout: float = 5.0,
    ):
        self._resolver = resolver
        self._synthetic = synthetic or SyntheticBackend()
        self._api_factory = api_factory
        self._preflight_timeout = preflight_timeout
        self._lock = asyncio.Lock()
        self._api: Any = None
        self._config: BackendConfig | None = None
        self._initialized = False
        self._degraded = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def config(self) -> BackendConfig | None:
        return self._config

    async def _ensure_api(self) -> Any:
        if self._initialized:
            return self._api
        async with self._lock:
            if self._initialized:
                return self._api
            try:
                self._config = await asyncio.to_thread(self._resolver.resolve)
                self._api = await asyncio.to_thread(
                    self._api_factory, self._config, self._preflight_timeout
                )
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to initialize Kubernetes client, using synthetic backend: %s", exc)
                self._api = None
                self._degraded = True
            else:
                logger.info(
                    "Kubernetes client ready (server=%s namespace=%s)",
                    self._config.api_server,
                    self._config.namespace,
                )
            self._initialized = True
        return self._api

    async def _call(
        self,
        what: str,
        live: Callable[[Any], Any],
        fallback: Callable[[], Awaitable[Any]],
    ) -> BackendResult:
        api = await self._ensure_api()
        if api is None:
            return Synthetic(await fallback(), reason="backend degraded")
        try:
            return Real(await asyncio.to_thread(live, api))
        except Exception as exc:  # noqa: BLE001
            logger.error("Error %s: %s", what, exc)
            return Synthetic(await fallback(), reason=str(exc))

    async def list_pods(self, namespace: str | None = None) -> BackendResult:
        return await self._call(
            "getting pods",
            lambda api: api.list_pods(namespace),
            lambda: self._synthetic.list_pods(namespace),
        )

    async def describe_pod(self, name: str, namespace: str = "default") -> BackendResult:
        return await self._call(
            "describing pod",
            lambda api: api.describe_pod(name, namespace),
            lambda: self._synthetic.describe_pod(name, namespace),
        )

    async def get_logs(
        self, name: str, namespace: str = "default", container: str | None = None
    ) -> BackendResult:
        return await self._call(
            "getting pod logs",
            lambda api: api.get_logs(name, namespace, container),
            lambda: self._synthetic.get_logs(name, namespace, container),
        )
