"""
Unit tests for k8s_pod_mcp/server.py — startup wiring, no network beyond localhost binds.
"""

from __future__ import annotations

import errno
import logging
import socket
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from k8s_pod_mcp.backend.client import BackendClient
from k8s_pod_mcp.dispatcher import Dispatcher
from k8s_pod_mcp.server import (
    apply_args,
    build_components,
    configure_logging,
    find_available_port,
    main,
    parse_args,
)
from k8s_pod_mcp.settings import Settings


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------

def test_build_components_is_lazy(tmp_path: Path):
    settings = Settings(
        config_file=tmp_path / "missing.yaml",
        kubeconfig=tmp_path / "also-missing",
        preflight_timeout=0,
    )
    backend, dispatcher = build_components(settings, environ={})
    assert isinstance(backend, BackendClient)
    assert isinstance(dispatcher, Dispatcher)
    assert not backend.initialized


def test_build_components_applies_namespace_override(tmp_path: Path):
    config = tmp_path / "k8s_config.yaml"
    config.write_text("clusters:\n- name: c\n  cluster:\n    server: https://api:6443\n")
    settings = Settings(
        config_file=config,
        kubeconfig=tmp_path / "missing",
        namespace_override="ops",
        preflight_timeout=0,
    )
    backend, _ = build_components(settings, environ={})
    resolved = backend._resolver.resolve()
    assert resolved.api_server == "https://api:6443"
    assert resolved.namespace == "ops"


# ---------------------------------------------------------------------------
# Port selection
# ---------------------------------------------------------------------------

def test_find_available_port_free():
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        port = probe.getsockname()[1]
    assert find_available_port("127.0.0.1", port) == port


def test_find_available_port_skips_busy_port():
    def fake_bind(self, address):
        if address[1] == 5000:
            raise OSError(errno.EADDRINUSE, "Address already in use")

    with patch.object(socket.socket, "bind", fake_bind):
        assert find_available_port("127.0.0.1", 5000) == 5001


def test_find_available_port_gives_up():
    def always_busy(self, address):
        raise OSError(errno.EADDRINUSE, "Address already in use")

    with patch.object(socket.socket, "bind", always_busy):
        with pytest.raises(OSError) as exc_info:
            find_available_port("127.0.0.1", 5000, retries=2)
    assert exc_info.value.errno == errno.EADDRINUSE


def test_find_available_port_other_errors_propagate():
    def denied(self, address):
        raise OSError(errno.EACCES, "Permission denied")

    with patch.object(socket.socket, "bind", denied):
        with pytest.raises(OSError) as exc_info:
            find_available_port("127.0.0.1", 80)
    assert exc_info.value.errno == errno.EACCES


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def test_cli_overrides_settings():
    settings = apply_args(Settings(), parse_args(["--transport", "stdio", "--port", "9000"]))
    assert settings.stdio
    assert settings.port == 9000
    assert settings.host == Settings().host


def test_cli_without_flags_keeps_settings():
    base = Settings(port=1234)
    assert apply_args(base, parse_args([])) == base


def test_configure_logging_targets_stderr():
    configure_logging("debug")
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert root.handlers[0].stream is sys.stderr
    configure_logging("INFO")


def test_main_exits_on_startup_failure(monkeypatch):
    async def refuse(settings):
        raise OSError(errno.EADDRINUSE, "No free port")

    monkeypatch.setattr("k8s_pod_mcp.server._run", refuse)
    monkeypatch.setattr("k8s_pod_mcp.server.configure_logging", lambda level: None)
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1
