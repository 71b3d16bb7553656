"""
Backend configuration resolution.

Produces one ``BackendConfig`` per process by trying candidate sources in
priority order:

  1. a kubeconfig-style YAML file in the working directory (k8s_config.yaml)
  2. the user's kubeconfig (~/.kube/config or $KUBECONFIG)
  3. environment variables (K8S_MCP_API_SERVER, or the in-cluster
     KUBERNETES_SERVICE_HOST / KUBERNETES_SERVICE_PORT pair)

The first candidate that parses and names a non-empty server URL wins.
When every candidate fails the hard-coded defaults are used for the rest of
the process lifetime. ``ConfigResolver.resolve`` never raises.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

import yaml

from k8s_pod_mcp.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_API_SERVER = "http://localhost:8080"
DEFAULT_NAMESPACE = "default"


@dataclass(frozen=True)
class BackendConfig:
    api_server: str
    namespace: str = DEFAULT_NAMESPACE
    source: str = "defaults"


DEFAULT_CONFIG = BackendConfig(api_server=DEFAULT_API_SERVER, namespace=DEFAULT_NAMESPACE)


class ConfigCandidate(Protocol):
    name: str

    def load(self) -> BackendConfig:
        """Return a config or raise ConfigError."""


# ---------------------------------------------------------------------------
# kubeconfig parsing
# ---------------------------------------------------------------------------

def _named_entry(entries: list, name: str, key: str) -> dict | None:
    for entry in entries:
        if isinstance(entry, dict) and entry.get("name") == name:
            value = entry.get(key)
            return value if isinstance(value, dict) else None
    return None


def parse_kubeconfig(
    data: Any,
    *,
    source: str,
    honor_current_context: bool = False,
) -> BackendConfig:
    """Extract server URL and namespace from a parsed kubeconfig document.

    By default the first cluster and first context are used, which is how
    the generated ``k8s_config.yaml`` files are laid out. With
    ``honor_current_context`` the cluster referenced by ``current-context``
    wins when it can be found.
    """
    if not isinstance(data, dict):
        raise ConfigError("not a valid YAML object")

    clusters = data.get("clusters")
    if not isinstance(clusters, list) or not clusters:
        raise ConfigError("clusters array is empty or missing")

    contexts = data.get("contexts")
    contexts = contexts if isinstance(contexts, list) else []

    cluster: dict | None = None
    context: dict | None = None

    current = data.get("current-context")
    if honor_current_context and isinstance(current, str) and current:
        context = _named_entry(contexts, current, "context")
        if context and isinstance(context.get("cluster"), str):
            cluster = _named_entry(clusters, context["cluster"], "cluster")

    if cluster is None:
        first = clusters[0]
        cluster = first.get("cluster") if isinstance(first, dict) else None
        if not isinstance(cluster, dict):
            raise ConfigError("first cluster is invalid")

    if context is None and contexts and isinstance(contexts[0], dict):
        first_ctx = contexts[0].get("context")
        context = first_ctx if isinstance(first_ctx, dict) else None

    server = cluster.get("server")
    if not isinstance(server, str) or not server.strip():
        raise ConfigError("server URL is missing or invalid")

    namespace = DEFAULT_NAMESPACE
    if context and isinstance(context.get("namespace"), str) and context["namespace"]:
        namespace = context["namespace"]

    return BackendConfig(api_server=server.strip(), namespace=namespace, source=source)


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------

class FileCandidate:
    """A kubeconfig-layout YAML file on disk."""

    def __init__(self, path: Path | str, *, name: str | None = None, honor_current_context: bool = False):
        self.path = Path(path).expanduser()
        self.name = name or str(self.path)
        self.honor_current_context = honor_current_context

    def load(self) -> BackendConfig:
        if not self.path.is_file():
            raise ConfigError(f"{self.path} not found")
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"cannot read {self.path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"cannot parse {self.path}: {exc}") from exc
        return parse_kubeconfig(
            data,
            source=self.name,
            honor_current_context=self.honor_current_context,
        )


class EnvCandidate:
    """Server address from K8S_MCP_API_SERVER or the in-cluster service env."""

    name = "environment"

    def __init__(self, environ: Mapping[str, str] | None = None):
        self.environ = os.environ if environ is None else environ

    def load(self) -> BackendConfig:
        explicit = self.environ.get("K8S_MCP_API_SERVER", "").strip()
        if explicit:
            return BackendConfig(api_server=explicit, source=self.name)

        host = self.environ.get("KUBERNETES_SERVICE_HOST", "").strip()
        port = self.environ.get("KUBERNETES_SERVICE_PORT", "").strip() or "443"
        if not host:
            raise ConfigError("neither K8S_MCP_API_SERVER nor KUBERNETES_SERVICE_HOST is set")
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"  # IPv6 literal
        return BackendConfig(api_server=f"https://{host}:{port}", source=self.name)


def default_candidates(
    config_file: Path | str,
    kubeconfig: Path | str,
    environ: Mapping[str, str] | None = None,
) -> list[ConfigCandidate]:
    return [
        FileCandidate(config_file, name="local-config"),
        FileCandidate(kubeconfig, name="kubeconfig", honor_current_context=True),
        EnvCandidate(environ),
    ]


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class ConfigResolver:
    """Memoizing resolver over an ordered list of candidates."""

    def __init__(
        self,
        candidates: Sequence[ConfigCandidate],
        *,
        namespace_override: str | None = None,
        defaults: BackendConfig = DEFAULT_CONFIG,
    ):
        self.candidates = list(candidates)
        self.namespace_override = namespace_override
        self.defaults = defaults
        self._resolved: BackendConfig | None = None

    @property
    def resolved(self) -> BackendConfig | None:
        return self._resolved

    def resolve(self) -> BackendConfig:
        if self._resolved is None:
            self._resolved = self._apply_override(self._first_valid())
            logger.info(
                "Kubernetes config from %s: server=%s namespace=%s",
                self._resolved.source,
                self._resolved.api_server,
                self._resolved.namespace,
            )
        return self._resolved

    def _first_valid(self) -> BackendConfig:
        for candidate in self.candidates:
            try:
                return candidate.load()
            except ConfigError as exc:
                logger.warning("Config candidate %s rejected: %s", candidate.name, exc)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Config candidate %s failed unexpectedly: %s", candidate.name, exc)
        logger.warning("No usable Kubernetes config found, using defaults")
        return self.defaults

    def _apply_override(self, config: BackendConfig) -> BackendConfig:
        if self.namespace_override:
            return replace(config, namespace=self.namespace_override)
        return config
