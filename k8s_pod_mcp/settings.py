"""
Process settings read from the environment.

Environment variables:
  K8S_MCP_TRANSPORT=stdio|http     — transport mode (default: http)
  SMITHERY=true                    — force stdio mode
  PORT=3000                        — HTTP/WebSocket port
  K8S_MCP_HOST=0.0.0.0             — bind address
  K8S_MCP_NAMESPACE=...            — namespace override for the backend config
  K8S_MCP_CONFIG_FILE=...          — first config candidate (default: ./k8s_config.yaml)
  KUBECONFIG=...                   — second config candidate (default: ~/.kube/config)
  K8S_MCP_API_SERVER=...           — API server URL for the environment candidate
  K8S_MCP_PREFLIGHT_TIMEOUT=5      — seconds for the startup probe (0 disables)
  K8S_MCP_LOG_LEVEL=INFO           — log level for stderr logging
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

logger = logging.getLogger(__name__)

TRANSPORT_STDIO = "stdio"
TRANSPORT_HTTP = "http"

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_CONFIG_FILE = "k8s_config.yaml"
DEFAULT_PREFLIGHT_TIMEOUT = 5.0


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def env_bool(environ: Mapping[str, str], key: str) -> bool:
    return environ.get(key, "").strip().lower() in ("1", "true", "yes")


def env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %d", key, raw, default)
        return default


def env_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", key, raw, default)
        return default


def env_optional_str(environ: Mapping[str, str], key: str) -> str | None:
    value = environ.get(key, "").strip()
    return value or None


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Settings:
    transport: str = TRANSPORT_HTTP
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    namespace_override: str | None = None
    config_file: Path = Path(DEFAULT_CONFIG_FILE)
    kubeconfig: Path = Path("~/.kube/config").expanduser()
    api_server: str | None = None
    preflight_timeout: float = DEFAULT_PREFLIGHT_TIMEOUT
    log_level: str = "INFO"

    @property
    def stdio(self) -> bool:
        return self.transport == TRANSPORT_STDIO


def _kubeconfig_path(environ: Mapping[str, str]) -> Path:
    # KUBECONFIG may hold a path list; only the first entry is a candidate.
    raw = environ.get("KUBECONFIG", "").strip()
    if raw:
        first = raw.split(os.pathsep)[0]
        if first:
            return Path(first).expanduser()
    return Path("~/.kube/config").expanduser()


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build a :class:`Settings` from ``environ`` (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ

    transport = env.get("K8S_MCP_TRANSPORT", TRANSPORT_HTTP).strip().lower() or TRANSPORT_HTTP
    if env_bool(env, "SMITHERY"):
        transport = TRANSPORT_STDIO
    if transport not in (TRANSPORT_STDIO, TRANSPORT_HTTP):
        logger.warning("Unknown K8S_MCP_TRANSPORT=%r, using %s", transport, TRANSPORT_HTTP)
        transport = TRANSPORT_HTTP

    return Settings(
        transport=transport,
        host=env_optional_str(env, "K8S_MCP_HOST") or DEFAULT_HOST,
        port=env_int(env, "PORT", DEFAULT_PORT),
        namespace_override=env_optional_str(env, "K8S_MCP_NAMESPACE"),
        config_file=Path(env_optional_str(env, "K8S_MCP_CONFIG_FILE") or DEFAULT_CONFIG_FILE),
        kubeconfig=_kubeconfig_path(env),
        api_server=env_optional_str(env, "K8S_MCP_API_SERVER"),
        preflight_timeout=env_float(env, "K8S_MCP_PREFLIGHT_TIMEOUT", DEFAULT_PREFLIGHT_TIMEOUT),
        log_level=(env_optional_str(env, "K8S_MCP_LOG_LEVEL") or "INFO").upper(),
    )
