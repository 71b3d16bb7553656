"""
Kubernetes pod inspection MCP server.

Serves a read-only JSON-RPC method table (initialize, tools/list,
get_pod_status, describe_pod, get_pod_logs) over one of two modes:

  • stdio — one JSON-RPC object per line (K8S_MCP_TRANSPORT=stdio or SMITHERY=true)
  • http  — POST /mcp plus WebSocket /mcp on the same port (default)

The backend client and dispatcher are built once here and handed to the
transports. When the cluster is unreachable every method still answers,
using synthetic pod data.

Run with:
    python -m k8s_pod_mcp.server [--transport stdio|http] [--port N]
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import errno
import logging
import socket
import sys
from typing import Mapping, Sequence

import uvicorn

from k8s_pod_mcp.backend.client import BackendClient
from k8s_pod_mcp.backend.config import ConfigResolver, default_candidates
from k8s_pod_mcp.dispatcher import TOOL_DESCRIPTORS, Dispatcher
from k8s_pod_mcp.settings import TRANSPORT_HTTP, TRANSPORT_STDIO, Settings, load_settings
from k8s_pod_mcp.transports.http import create_app
from k8s_pod_mcp.transports.stdio import run_stdio

logger = logging.getLogger("k8s_pod_mcp")

MAX_PORT_RETRIES = 10
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

def configure_logging(level: str) -> None:
    """Send every log record to stderr; stdout carries protocol frames only."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def build_components(
    settings: Settings, environ: Mapping[str, str] | None = None
) -> tuple[BackendClient, Dispatcher]:
    resolver = ConfigResolver(
        default_candidates(settings.config_file, settings.kubeconfig, environ),
        namespace_override=settings.namespace_override,
    )
    backend = BackendClient(resolver, preflight_timeout=settings.preflight_timeout)
    return backend, Dispatcher(backend)


def find_available_port(host: str, port: int, retries: int = MAX_PORT_RETRIES) -> int:
    """Return the first bindable port in ``port .. port + retries``."""
    for candidate in range(port, port + retries + 1):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                sock.bind((host, candidate))
            except OSError as exc:
                if exc.errno != errno.EADDRINUSE:
                    raise
                logger.warning("Port %d is in use, trying port %d", candidate, candidate + 1)
                continue
        return candidate
    raise OSError(errno.EADDRINUSE, f"No free port in range {port}-{port + retries}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

async def _run_http(settings: Settings, backend: BackendClient, dispatcher: Dispatcher) -> None:
    port = find_available_port(settings.host, settings.port)
    config = uvicorn.Config(
        app=create_app(dispatcher, backend),
        host=settings.host,
        port=port,
        log_level=settings.log_level.lower(),
        log_config=None,
        access_log=False,
    )
    logger.info("Server is running on port %d", port)
    await uvicorn.Server(config).serve()


async def _run(settings: Settings) -> None:
    backend, dispatcher = build_components(settings)
    logger.info(
        "kubernetes MCP server starting — %d tools registered (%s mode)",
        len(TOOL_DESCRIPTORS),
        settings.transport,
    )
    if settings.stdio:
        await run_stdio(dispatcher)
    else:
        await _run_http(settings, backend, dispatcher)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="k8s-pod-mcp", description=__doc__.splitlines()[1])
    parser.add_argument("--transport", choices=[TRANSPORT_STDIO, TRANSPORT_HTTP])
    parser.add_argument("--host")
    parser.add_argument("--port", type=int)
    return parser.parse_args(argv)


def apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        key: value
        for key, value in (("transport", args.transport), ("host", args.host), ("port", args.port))
        if value is not None
    }
    return dataclasses.replace(settings, **overrides)


def main(argv: Sequence[str] | None = None) -> None:
    settings = apply_args(load_settings(), parse_args(argv))
    configure_logging(settings.log_level)
    try:
        asyncio.run(_run(settings))
    except OSError as exc:
        logger.error("Failed to start server: %s", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
